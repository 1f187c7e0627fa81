"""Actions package - Operations that change the running server."""

from nginx_manager.actions.control import CertbotIssuer, NginxControl

__all__ = ["CertbotIssuer", "NginxControl"]
