"""Site model dataclasses - One nginx virtual host and its parts."""

import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

# Port that follows the host part of an upstream URL: http://127.0.0.1:3000/api
_PROXY_PORT_RE = re.compile(r":(\d+)(?=/|$)")


class StorageClass(Enum):
    """Directory a site configuration lives in."""

    AVAILABLE = "sites-available"  # needs an activation link in sites-enabled
    IMMEDIATE = "conf.d"  # always active

    @classmethod
    def parse(cls, value: "str | StorageClass") -> "StorageClass":
        """Accept an enum member, its value or its name (case-insensitive)."""
        if isinstance(value, cls):
            return value
        text = str(value).strip().lower()
        for member in cls:
            if text in (member.value, member.name.lower()):
                return member
        raise ValueError(f"Unknown storage class: {value!r}")


@dataclass
class LocationRule:
    """Nginx location block with an optional reverse-proxy target."""

    path: str  # /api, /static, ~* \.php$
    proxy_target: str | None = None

    @property
    def proxy_port(self) -> str | None:
        """Upstream port taken from proxy_target, None when there is none."""
        if not self.proxy_target:
            return None
        match = _PROXY_PORT_RE.search(self.proxy_target)
        return match.group(1) if match else None

    def to_dict(self) -> dict[str, Any]:
        return {
            "path": self.path,
            "proxy_pass": self.proxy_target,
            "proxy_port": self.proxy_port,
        }


@dataclass
class SslInfo:
    """SSL certificate settings of a server block."""

    certificate_path: str
    certificate_key_path: str
    protocols: tuple[str, ...] = ()

    def __post_init__(self) -> None:
        # Ordered set: keep first occurrence of each protocol
        self.protocols = tuple(dict.fromkeys(self.protocols))

    def to_dict(self) -> dict[str, Any]:
        return {
            "certificate": self.certificate_path,
            "certificate_key": self.certificate_key_path,
            "protocols": list(self.protocols),
        }


@dataclass
class SiteConfig:
    """Nginx server block managed as one configuration file."""

    server_name: str
    listen: str
    root: str = ""
    locations: list[LocationRule] = field(default_factory=list)
    ssl: SslInfo | None = None
    enabled: bool = False  # derived from sites-enabled, never written to the file
    storage_class: StorageClass = StorageClass.AVAILABLE

    @property
    def file_name(self) -> str:
        """Name of the backing file inside its storage directory."""
        return f"{self.server_name}.conf"

    def to_dict(self) -> dict[str, Any]:
        """Convert to API response dict."""
        return {
            "server_name": self.server_name,
            "listen": self.listen,
            "root": self.root,
            "locations": [loc.to_dict() for loc in self.locations],
            "ssl": self.ssl.to_dict() if self.ssl else None,
            "enabled": self.enabled,
            "source": self.storage_class.value,
        }
