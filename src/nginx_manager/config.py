"""Settings for nginx-manager.

Values come from, in increasing priority:
1. Built-in defaults (standard Debian/Ubuntu nginx layout)
2. A YAML file: explicit path, $NGINX_MANAGER_CONFIG, or ~/.nginx-manager/config.yaml
3. Environment variables named NGINX_MANAGER_<FIELD> (e.g. NGINX_MANAGER_LOG_DIR)
"""

import dataclasses
import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import yaml

logger = logging.getLogger(__name__)

ENV_PREFIX = "NGINX_MANAGER_"
DEFAULT_CONFIG_FILE = Path.home() / ".nginx-manager" / "config.yaml"


@dataclass
class Settings:
    """Filesystem layout and external command settings."""

    config_dir: Path = Path("/etc/nginx")
    log_dir: Path = Path("/var/log/nginx")
    access_log_name: str = "access.log"
    status_url: str = "http://127.0.0.1/nginx_status"
    network_interface: str = "eth0"
    process_name: str = "nginx"
    reload_command: str = "nginx -s reload"
    test_command: str = "nginx -t"
    certbot_command: str = "certbot"
    metrics_interval: float = 1.0
    command_timeout: float = 30.0
    log_read_limit: int = 1000

    def __post_init__(self) -> None:
        self.config_dir = Path(self.config_dir).expanduser().absolute()
        self.log_dir = Path(self.log_dir).expanduser().absolute()

    @property
    def sites_available(self) -> Path:
        return self.config_dir / "sites-available"

    @property
    def sites_enabled(self) -> Path:
        return self.config_dir / "sites-enabled"

    @property
    def conf_d(self) -> Path:
        return self.config_dir / "conf.d"

    @property
    def access_log(self) -> Path:
        return self.log_dir / self.access_log_name


def load_settings(path: Path | str | None = None, environ: dict[str, str] | None = None) -> Settings:
    """Load settings from YAML and environment overrides.

    Args:
        path: Explicit YAML file. Falls back to $NGINX_MANAGER_CONFIG, then
            ~/.nginx-manager/config.yaml when it exists.
        environ: Environment mapping, defaults to os.environ.

    Returns:
        Settings with all overrides applied.
    """
    environ = os.environ if environ is None else environ
    values: dict[str, Any] = {}

    config_file = _resolve_config_file(path, environ)
    if config_file is not None:
        values.update(_load_yaml(config_file))

    for f in dataclasses.fields(Settings):
        env_value = environ.get(f"{ENV_PREFIX}{f.name.upper()}")
        if env_value is not None:
            values[f.name] = env_value

    known = {f.name: f for f in dataclasses.fields(Settings)}
    kwargs: dict[str, Any] = {}
    for key, raw in values.items():
        if key not in known:
            logger.debug("Ignoring unknown setting %r", key)
            continue
        kwargs[key] = _coerce(known[key].default, raw, key)

    return Settings(**kwargs)


def _resolve_config_file(path: Path | str | None, environ: dict[str, str]) -> Path | None:
    if path:
        return Path(path).expanduser()
    env_config = environ.get(f"{ENV_PREFIX}CONFIG")
    if env_config:
        return Path(env_config).expanduser()
    if DEFAULT_CONFIG_FILE.exists():
        return DEFAULT_CONFIG_FILE
    return None


def _load_yaml(config_file: Path) -> dict[str, Any]:
    try:
        with open(config_file, "r") as f:
            data = yaml.safe_load(f) or {}
    except (OSError, yaml.YAMLError) as e:
        logger.warning("Could not read settings from %s: %s", config_file, e)
        return {}

    if not isinstance(data, dict):
        logger.warning("Ignoring settings file %s: expected a mapping", config_file)
        return {}
    return data


def _coerce(default: Any, raw: Any, key: str) -> Any:
    """Convert a YAML/env value to the type of the field default."""
    try:
        if isinstance(default, Path):
            return Path(str(raw))
        if isinstance(default, float):
            return float(raw)
        if isinstance(default, int):
            return int(raw)
        return str(raw)
    except (TypeError, ValueError) as e:
        raise ValueError(f"Invalid value for setting {key!r}: {raw!r}") from e
