"""Site store - Site configuration files on disk.

Layout (Debian/Ubuntu style):
    sites-available/<name>.conf   staged sites, active only when linked
    sites-enabled/<name>.conf     activation links -> sites-available
    conf.d/<name>.conf            always-active sites

The files are the system of record: every read parses them again and
``enabled`` is recomputed from the links each time. Every change is
followed by an nginx reload. Changes are not transactional; if the reload
fails the new file stays on disk and the error is raised to the caller.
"""

import contextlib
import logging
import os
from pathlib import Path
from typing import Iterator

from nginx_manager.actions.control import CertbotIssuer, NginxControl
from nginx_manager.config import Settings
from nginx_manager.errors import SiteOperationError
from nginx_manager.model.site import SiteConfig, StorageClass
from nginx_manager.parser.site_codec import SiteConfigCodec, validate_server_name

logger = logging.getLogger(__name__)

CONFIG_SUFFIX = ".conf"


@contextlib.contextmanager
def _fs_operation(operation: str, name: str) -> Iterator[None]:
    """Turn OSError into SiteOperationError, keeping the cause."""
    try:
        yield
    except OSError as e:
        raise SiteOperationError(operation, name, e.strerror or str(e)) from e


class SiteStore:
    """Discovery, activation and CRUD of nginx site files."""

    def __init__(
        self,
        settings: Settings,
        control: NginxControl,
        issuer: CertbotIssuer,
        codec: SiteConfigCodec | None = None,
    ) -> None:
        self.settings = settings
        self.control = control
        self.issuer = issuer
        self.codec = codec or SiteConfigCodec()

    @classmethod
    def from_settings(cls, settings: Settings) -> "SiteStore":
        return cls(
            settings,
            NginxControl.from_settings(settings),
            CertbotIssuer.from_settings(settings),
        )

    def directory(self, storage_class: StorageClass) -> Path:
        if storage_class is StorageClass.IMMEDIATE:
            return self.settings.conf_d
        return self.settings.sites_available

    def site_path(self, name: str, storage_class: StorageClass = StorageClass.AVAILABLE) -> Path:
        return self.directory(storage_class) / f"{validate_server_name(name)}{CONFIG_SUFFIX}"

    def link_path(self, name: str) -> Path:
        return self.settings.sites_enabled / f"{validate_server_name(name)}{CONFIG_SUFFIX}"

    # =========================================================================
    # READ OPERATIONS
    # =========================================================================

    def list_sites(self) -> list[SiteConfig]:
        """Parse every site file in sites-available, then conf.d.

        Files that are unreadable or not a usable site are skipped.
        """
        sites: list[SiteConfig] = []
        for storage_class in (StorageClass.AVAILABLE, StorageClass.IMMEDIATE):
            for path in self._site_files(storage_class):
                site = self._load(path, storage_class)
                if site is not None:
                    sites.append(site)
        return sites

    def get(self, name: str, storage_class: StorageClass | None = None) -> SiteConfig | None:
        """Load one site by name, searching both directories unless told which."""
        classes = [storage_class] if storage_class else list(StorageClass)
        for cls in classes:
            site = self._load(self.site_path(name, cls), cls)
            if site is not None:
                return site
        return None

    def is_enabled(self, name: str) -> bool:
        """True iff an activation link exists (a dangling link still counts)."""
        return os.path.lexists(self.link_path(name))

    def _site_files(self, storage_class: StorageClass) -> list[Path]:
        directory = self.directory(storage_class)
        try:
            return sorted(p for p in directory.iterdir() if p.name.endswith(CONFIG_SUFFIX))
        except OSError as e:
            logger.debug("Skipping %s: %s", directory, e)
            return []

    def _load(self, path: Path, storage_class: StorageClass) -> SiteConfig | None:
        try:
            text = path.read_text(encoding="utf-8", errors="replace")
        except OSError as e:
            logger.debug("Skipping unreadable site file %s: %s", path, e)
            return None

        site = self.codec.parse(text, storage_class)
        if site is None:
            logger.debug("Skipping %s: not a site configuration", path)
            return None

        if storage_class is StorageClass.IMMEDIATE:
            site.enabled = True
        else:
            site.enabled = self._safe_is_enabled(site.server_name)
        return site

    def _safe_is_enabled(self, server_name: str) -> bool:
        try:
            return self.is_enabled(server_name)
        except ValueError:
            # server_name is not usable as a file name, so it can't have a link
            return False

    # =========================================================================
    # WRITE OPERATIONS - each one reloads nginx
    # =========================================================================

    def enable(self, name: str) -> None:
        """Create the activation link for a staged site, then reload.

        Raises:
            SiteOperationError: If the site file is missing or the link exists.
        """
        source = self.site_path(name, StorageClass.AVAILABLE)
        link = self.link_path(name)
        with _fs_operation("enable", name):
            if not source.exists():
                raise FileNotFoundError(2, "No such site", str(source))
            link.symlink_to(source.absolute())
        logger.info("Enabled site %s", name)
        self.control.reload()

    def disable(self, name: str) -> None:
        """Remove the activation link, then reload.

        Raises:
            SiteOperationError: If there is no activation link.
        """
        with _fs_operation("disable", name):
            self.link_path(name).unlink()
        logger.info("Disabled site %s", name)
        self.control.reload()

    def create(self, site: SiteConfig, storage_class: StorageClass = StorageClass.AVAILABLE) -> Path:
        """Write a new site file, then reload.

        Raises:
            SiteOperationError: If a file for this site already exists.
        """
        path = self.site_path(site.server_name, storage_class)
        content = self.codec.render(site)
        with _fs_operation("create", site.server_name):
            with open(path, "x", encoding="utf-8") as f:
                f.write(content)
        logger.info("Created site %s in %s", site.server_name, storage_class.value)
        self.control.reload()
        return path

    def update(self, name: str, site: SiteConfig, storage_class: StorageClass = StorageClass.AVAILABLE) -> Path:
        """Overwrite an existing site file with ``site`` rendered, then reload.

        Raises:
            SiteOperationError: If the site file does not exist.
        """
        path = self.site_path(name, storage_class)
        content = self.codec.render(site)
        with _fs_operation("update", name):
            if not path.exists():
                raise FileNotFoundError(2, "No such site", str(path))
            path.write_text(content, encoding="utf-8")
        logger.info("Updated site %s in %s", name, storage_class.value)
        self.control.reload()
        return path

    def delete(self, name: str, storage_class: StorageClass = StorageClass.AVAILABLE) -> None:
        """Remove a site file and, for staged sites, its activation link, then reload.

        The link is removed best-effort: once the site file is gone a failure
        there is logged and the reload still runs.

        Raises:
            SiteOperationError: If the site file cannot be removed.
        """
        with _fs_operation("delete", name):
            self.site_path(name, storage_class).unlink()

        # Links in sites-enabled only ever point into sites-available
        if storage_class is StorageClass.AVAILABLE:
            link = self.link_path(name)
            try:
                link.unlink()
            except FileNotFoundError:
                pass
            except OSError as e:
                logger.warning("Could not remove activation link %s: %s", link, e)

        logger.info("Deleted site %s from %s", name, storage_class.value)
        self.control.reload()

    def generate_tls(self, name: str, contact_email: str) -> None:
        """Issue a certificate for ``name`` with certbot, then reload."""
        domain = validate_server_name(name)
        self.issuer.issue(domain, contact_email)
        self.control.reload()
