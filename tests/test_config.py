"""Tests for settings loading."""

from pathlib import Path

import pytest

from nginx_manager.config import Settings, load_settings


class TestLoadSettings:
    def test_defaults(self, tmp_path):
        settings = load_settings(tmp_path / "absent.yaml", environ={})

        assert settings.config_dir == Path("/etc/nginx")
        assert settings.sites_available == Path("/etc/nginx/sites-available")
        assert settings.sites_enabled == Path("/etc/nginx/sites-enabled")
        assert settings.conf_d == Path("/etc/nginx/conf.d")
        assert settings.access_log == Path("/var/log/nginx/access.log")
        assert settings.reload_command == "nginx -s reload"

    def test_yaml_file(self, tmp_path):
        config = tmp_path / "config.yaml"
        config.write_text(
            "config_dir: /srv/nginx\n"
            "metrics_interval: 2.5\n"
            "log_read_limit: 50\n"
            "network_interface: ens3\n"
        )

        settings = load_settings(config, environ={})

        assert settings.sites_available == Path("/srv/nginx/sites-available")
        assert settings.metrics_interval == 2.5
        assert settings.log_read_limit == 50
        assert settings.network_interface == "ens3"

    def test_env_overrides_yaml(self, tmp_path):
        config = tmp_path / "config.yaml"
        config.write_text("log_dir: /from/yaml\nprocess_name: openresty\n")

        settings = load_settings(config, environ={"NGINX_MANAGER_LOG_DIR": "/from/env"})

        assert settings.log_dir == Path("/from/env")
        assert settings.process_name == "openresty"

    def test_config_path_from_env(self, tmp_path):
        config = tmp_path / "other.yaml"
        config.write_text("status_url: http://127.0.0.1:8080/status\n")

        settings = load_settings(environ={"NGINX_MANAGER_CONFIG": str(config)})

        assert settings.status_url == "http://127.0.0.1:8080/status"

    def test_unknown_keys_ignored(self, tmp_path):
        config = tmp_path / "config.yaml"
        config.write_text("colour: blue\ncertbot_command: /usr/local/bin/certbot\n")

        settings = load_settings(config, environ={})

        assert settings.certbot_command == "/usr/local/bin/certbot"

    def test_invalid_yaml_falls_back_to_defaults(self, tmp_path):
        config = tmp_path / "config.yaml"
        config.write_text("config_dir: [unclosed\n")

        assert load_settings(config, environ={}) == Settings()

    def test_non_mapping_yaml_ignored(self, tmp_path):
        config = tmp_path / "config.yaml"
        config.write_text("- a\n- b\n")

        assert load_settings(config, environ={}) == Settings()

    def test_bad_value_raises(self, tmp_path):
        with pytest.raises(ValueError, match="metrics_interval"):
            load_settings(tmp_path / "absent.yaml", environ={"NGINX_MANAGER_METRICS_INTERVAL": "fast"})

    def test_relative_dirs_become_absolute(self, tmp_path, monkeypatch):
        monkeypatch.chdir(tmp_path)

        settings = Settings(config_dir="etc/nginx", log_dir="log")

        assert settings.config_dir == tmp_path / "etc" / "nginx"
        assert settings.config_dir.is_absolute()
        assert settings.access_log == tmp_path / "log" / "access.log"
