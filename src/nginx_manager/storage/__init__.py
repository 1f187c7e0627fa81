"""Storage package - Site configuration files as the system of record."""

from nginx_manager.storage.sites import SiteStore

__all__ = ["SiteStore"]
