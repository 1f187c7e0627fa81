"""Tests for the on-disk site store."""

import os
from pathlib import Path
from unittest.mock import patch

import pytest

from nginx_manager.config import Settings
from nginx_manager.connector.local import CommandResult
from nginx_manager.errors import CommandError, InvalidDirectiveError, InvalidSiteNameError, SiteOperationError
from nginx_manager.model.site import LocationRule, SiteConfig, StorageClass
from nginx_manager.storage.sites import SiteStore


def write_site(directory, name, listen="80"):
    path = directory / f"{name}.conf"
    path.write_text(f"server {{\n    listen {listen};\n    server_name {name};\n}}\n")
    return path


class TestListSites:
    def test_empty_layout(self, site_store):
        assert site_store.list_sites() == []

    def test_missing_directories(self, tmp_path, mock_control, mock_issuer):
        store = SiteStore(Settings(config_dir=tmp_path / "nowhere"), mock_control, mock_issuer)

        assert store.list_sites() == []

    def test_lists_both_storage_classes(self, site_store, nginx_settings):
        write_site(nginx_settings.sites_available, "b.example.com")
        write_site(nginx_settings.sites_available, "a.example.com")
        write_site(nginx_settings.conf_d, "c.example.com")

        sites = site_store.list_sites()

        assert [s.server_name for s in sites] == ["a.example.com", "b.example.com", "c.example.com"]
        assert [s.storage_class for s in sites] == [
            StorageClass.AVAILABLE,
            StorageClass.AVAILABLE,
            StorageClass.IMMEDIATE,
        ]

    def test_enabled_derived_from_link(self, site_store, nginx_settings):
        source = write_site(nginx_settings.sites_available, "on.example.com")
        write_site(nginx_settings.sites_available, "off.example.com")
        (nginx_settings.sites_enabled / "on.example.com.conf").symlink_to(source)

        enabled = {s.server_name: s.enabled for s in site_store.list_sites()}

        assert enabled == {"off.example.com": False, "on.example.com": True}

    def test_immediate_sites_always_enabled(self, site_store, nginx_settings):
        write_site(nginx_settings.conf_d, "always.example.com")

        assert site_store.list_sites()[0].enabled is True

    def test_unusable_files_are_skipped(self, site_store, nginx_settings):
        write_site(nginx_settings.sites_available, "good.example.com")
        (nginx_settings.sites_available / "snippet.conf").write_text("gzip on;\n")
        (nginx_settings.sites_available / "notes.txt").write_text("listen 80; server_name x;")

        sites = site_store.list_sites()

        assert [s.server_name for s in sites] == ["good.example.com"]

    def test_get(self, site_store, nginx_settings):
        write_site(nginx_settings.conf_d, "c.example.com", listen="8080")

        site = site_store.get("c.example.com")

        assert site.listen == "8080"
        assert site.storage_class is StorageClass.IMMEDIATE
        assert site_store.get("c.example.com", StorageClass.AVAILABLE) is None
        assert site_store.get("missing.example.com") is None


class TestActivation:
    def test_enable_creates_link_and_reloads(self, site_store, nginx_settings, mock_control):
        source = write_site(nginx_settings.sites_available, "app.example.com")

        site_store.enable("app.example.com")

        link = nginx_settings.sites_enabled / "app.example.com.conf"
        assert link.is_symlink()
        assert os.readlink(link) == str(source)
        assert site_store.is_enabled("app.example.com")
        mock_control.reload.assert_called_once()

    def test_enable_missing_site(self, site_store, mock_control):
        with pytest.raises(SiteOperationError) as exc_info:
            site_store.enable("missing.example.com")

        assert isinstance(exc_info.value.__cause__, FileNotFoundError)
        mock_control.reload.assert_not_called()

    def test_enable_twice_fails(self, site_store, nginx_settings):
        write_site(nginx_settings.sites_available, "app.example.com")
        site_store.enable("app.example.com")

        with pytest.raises(SiteOperationError) as exc_info:
            site_store.enable("app.example.com")

        assert isinstance(exc_info.value.__cause__, FileExistsError)

    def test_disable_removes_link(self, site_store, nginx_settings, mock_control):
        write_site(nginx_settings.sites_available, "app.example.com")
        site_store.enable("app.example.com")

        site_store.disable("app.example.com")

        assert not site_store.is_enabled("app.example.com")
        assert (nginx_settings.sites_available / "app.example.com.conf").exists()
        assert mock_control.reload.call_count == 2

    def test_disable_without_link_fails(self, site_store, nginx_settings, mock_control):
        write_site(nginx_settings.sites_available, "app.example.com")

        with pytest.raises(SiteOperationError) as exc_info:
            site_store.disable("app.example.com")

        assert exc_info.value.operation == "disable"
        assert exc_info.value.name == "app.example.com"
        assert isinstance(exc_info.value.__cause__, FileNotFoundError)
        mock_control.reload.assert_not_called()

    def test_dangling_link_counts_as_enabled(self, site_store, nginx_settings):
        (nginx_settings.sites_enabled / "gone.example.com.conf").symlink_to(
            nginx_settings.sites_available / "gone.example.com.conf"
        )

        assert site_store.is_enabled("gone.example.com")

    def test_reload_failure_propagates(self, site_store, nginx_settings, mock_control):
        write_site(nginx_settings.sites_available, "app.example.com")
        mock_control.reload.side_effect = CommandError(
            CommandResult(command="nginx -s reload", stdout="", stderr="emerg", exit_code=1)
        )

        with pytest.raises(CommandError):
            site_store.enable("app.example.com")

        # Not transactional: the link stays
        assert site_store.is_enabled("app.example.com")


class TestCrud:
    def make_site(self, name="new.example.com"):
        return SiteConfig(
            server_name=name,
            listen="80",
            root="/var/www/new",
            locations=[LocationRule("/", "http://127.0.0.1:3000")],
        )

    def test_create_writes_rendered_file(self, site_store, nginx_settings, mock_control):
        path = site_store.create(self.make_site())

        assert path == nginx_settings.sites_available / "new.example.com.conf"
        assert "proxy_pass http://127.0.0.1:3000;" in path.read_text()
        mock_control.reload.assert_called_once()

        listed = site_store.list_sites()
        assert listed[0].server_name == "new.example.com"
        assert listed[0].enabled is False

    def test_create_immediate(self, site_store, nginx_settings):
        path = site_store.create(self.make_site(), StorageClass.IMMEDIATE)

        assert path.parent == nginx_settings.conf_d
        assert site_store.list_sites()[0].enabled is True

    def test_create_existing_fails(self, site_store, mock_control):
        site_store.create(self.make_site())

        with pytest.raises(SiteOperationError) as exc_info:
            site_store.create(self.make_site())

        assert isinstance(exc_info.value.__cause__, FileExistsError)
        assert mock_control.reload.call_count == 1

    def test_create_rejects_path_names(self, site_store, nginx_settings, mock_control):
        with pytest.raises(InvalidSiteNameError):
            site_store.create(self.make_site("../../evil"))

        assert list(nginx_settings.config_dir.rglob("*evil*")) == []
        mock_control.reload.assert_not_called()

    def test_update_overwrites(self, site_store):
        site_store.create(self.make_site())
        changed = self.make_site()
        changed.listen = "8080"
        changed.locations = []

        site_store.update("new.example.com", changed)

        site = site_store.get("new.example.com")
        assert site.listen == "8080"
        assert site.locations == []

    def test_update_missing_fails(self, site_store, mock_control):
        with pytest.raises(SiteOperationError):
            site_store.update("missing.example.com", self.make_site("missing.example.com"))

        mock_control.reload.assert_not_called()

    def test_delete_removes_file_and_link(self, site_store, nginx_settings):
        site_store.create(self.make_site())
        site_store.enable("new.example.com")

        site_store.delete("new.example.com")

        assert not (nginx_settings.sites_available / "new.example.com.conf").exists()
        assert not site_store.is_enabled("new.example.com")

    def test_delete_without_link(self, site_store, nginx_settings, mock_control):
        site_store.create(self.make_site())

        site_store.delete("new.example.com")

        assert site_store.list_sites() == []
        assert mock_control.reload.call_count == 2

    def test_delete_immediate(self, site_store, nginx_settings):
        site_store.create(self.make_site(), StorageClass.IMMEDIATE)

        site_store.delete("new.example.com", StorageClass.IMMEDIATE)

        assert not (nginx_settings.conf_d / "new.example.com.conf").exists()

    def test_delete_missing_fails(self, site_store):
        with pytest.raises(SiteOperationError) as exc_info:
            site_store.delete("missing.example.com")

        assert isinstance(exc_info.value.__cause__, FileNotFoundError)

    def test_delete_link_failure_still_reloads(self, site_store, nginx_settings, mock_control, caplog):
        site_store.create(self.make_site())
        site_store.enable("new.example.com")
        link = site_store.link_path("new.example.com")
        real_unlink = Path.unlink

        def unlink(path, *args, **kwargs):
            if path == link:
                raise PermissionError(13, "Permission denied", str(path))
            return real_unlink(path, *args, **kwargs)

        with patch.object(Path, "unlink", autospec=True, side_effect=unlink):
            site_store.delete("new.example.com")

        assert not (nginx_settings.sites_available / "new.example.com.conf").exists()
        assert os.path.lexists(link)
        assert "Could not remove activation link" in caplog.text
        assert mock_control.reload.call_count == 3

    def test_create_rejects_unwritable_values(self, site_store, nginx_settings, mock_control):
        site = self.make_site()
        site.listen = "80;\n    include /etc/shadow"

        with pytest.raises(InvalidDirectiveError):
            site_store.create(site)

        assert list(nginx_settings.sites_available.iterdir()) == []
        mock_control.reload.assert_not_called()


class TestRelativeLayout:
    def test_enable_link_resolves_from_relative_config_dir(self, tmp_path, monkeypatch, mock_control, mock_issuer):
        monkeypatch.chdir(tmp_path)
        settings = Settings(config_dir="nginx")
        for directory in (settings.sites_available, settings.sites_enabled):
            directory.mkdir(parents=True)
        store = SiteStore(settings, mock_control, mock_issuer)
        write_site(settings.sites_available, "rel.example.com")

        store.enable("rel.example.com")

        link = tmp_path / "nginx" / "sites-enabled" / "rel.example.com.conf"
        assert link.is_symlink()
        assert link.exists()
        assert link.resolve() == (tmp_path / "nginx" / "sites-available" / "rel.example.com.conf").resolve()


class TestTls:
    def test_generate_tls_issues_then_reloads(self, site_store, mock_control, mock_issuer):
        site_store.generate_tls("app.example.com", "admin@example.com")

        mock_issuer.issue.assert_called_once_with("app.example.com", "admin@example.com")
        mock_control.reload.assert_called_once()

    def test_issue_failure_skips_reload(self, site_store, mock_control, mock_issuer):
        mock_issuer.issue.side_effect = CommandError(
            CommandResult(command="certbot", stdout="", stderr="rate limited", exit_code=1)
        )

        with pytest.raises(CommandError, match="rate limited"):
            site_store.generate_tls("app.example.com", "admin@example.com")

        mock_control.reload.assert_not_called()

    def test_invalid_name(self, site_store, mock_issuer):
        with pytest.raises(InvalidSiteNameError):
            site_store.generate_tls("a/b", "admin@example.com")

        mock_issuer.issue.assert_not_called()
