"""Exception types for operations that change the server.

Malformed input data (config files, log lines, probe output) never raises.
Failed side effects (writes, symlinks, external commands) always do.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from nginx_manager.connector.local import CommandResult


class NginxManagerError(Exception):
    """Base class for all propagated operational failures."""


class SiteOperationError(NginxManagerError):
    """A filesystem operation on a site file or activation link failed.

    The underlying OSError is available as ``__cause__``.
    """

    def __init__(self, operation: str, name: str, message: str) -> None:
        self.operation = operation
        self.name = name
        super().__init__(f"{operation} '{name}' failed: {message}")


class CommandError(NginxManagerError):
    """An external command (reload, certificate issuance) exited non-zero."""

    def __init__(self, result: "CommandResult") -> None:
        self.result = result
        detail = (result.stderr or result.stdout).strip()
        message = f"Command failed with exit code {result.exit_code}: {result.command}"
        if detail:
            message = f"{message} ({detail})"
        super().__init__(message)


class InvalidSiteNameError(NginxManagerError, ValueError):
    """Site name cannot be used as a file name inside a storage directory."""


class InvalidDirectiveError(NginxManagerError, ValueError):
    """A site field cannot be written as a single nginx directive value."""
