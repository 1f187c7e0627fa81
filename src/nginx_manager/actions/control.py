"""Server control actions - nginx reload/test and certificate issuance.

CONTRACT:
- read_only: False (reload and certbot change the running server)
- retries: none, a failed command raises CommandError to the caller
"""

import logging

from nginx_manager.config import Settings
from nginx_manager.connector.local import CommandResult, LocalConnector
from nginx_manager.errors import CommandError

logger = logging.getLogger(__name__)


class NginxControl:
    """Signals the running nginx master process."""

    def __init__(
        self,
        connector: LocalConnector,
        reload_command: str = "nginx -s reload",
        test_command: str = "nginx -t",
    ) -> None:
        self.connector = connector
        self.reload_command = reload_command
        self.test_command = test_command

    @classmethod
    def from_settings(cls, settings: Settings, connector: LocalConnector | None = None) -> "NginxControl":
        connector = connector or LocalConnector(timeout=settings.command_timeout)
        return cls(connector, settings.reload_command, settings.test_command)

    def reload(self) -> CommandResult:
        """Reload configuration.

        Raises:
            CommandError: If the reload command fails.
        """
        result = self.connector.run(self.reload_command)
        if not result.success:
            raise CommandError(result)
        logger.info("nginx reloaded")
        return result

    def test(self) -> CommandResult:
        """Run the configuration test; the result is returned, not raised."""
        return self.connector.run(self.test_command)


class CertbotIssuer:
    """Issues certificates with certbot's nginx plugin."""

    def __init__(self, connector: LocalConnector, certbot_command: str = "certbot") -> None:
        self.connector = connector
        self.certbot_command = certbot_command

    @classmethod
    def from_settings(cls, settings: Settings, connector: LocalConnector | None = None) -> "CertbotIssuer":
        connector = connector or LocalConnector(timeout=max(settings.command_timeout, 300.0))
        return cls(connector, settings.certbot_command)

    def issue(self, domain: str, contact_email: str) -> CommandResult:
        """Obtain and install a certificate for ``domain``.

        Raises:
            CommandError: If certbot fails.
        """
        argv = [
            self.certbot_command,
            "--nginx",
            "-d",
            domain,
            "--email",
            contact_email,
            "--agree-tos",
            "--non-interactive",
        ]
        result = self.connector.run(argv)
        if not result.success:
            raise CommandError(result)
        logger.info("Certificate issued for %s", domain)
        return result
