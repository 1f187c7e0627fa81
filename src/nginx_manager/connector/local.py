"""Local Connector - Runs commands and reads files on the nginx host.

Every external collaborator (reload, certificate issuance, system probes)
goes through this connector so it can be replaced in tests. Commands are
executed without a shell: a string is split with shlex, a list is used
as-is.
"""

import logging
import shlex
import subprocess
from dataclasses import dataclass, field
from pathlib import Path
from typing import Sequence

logger = logging.getLogger(__name__)


@dataclass
class CommandResult:
    """Result of a command execution."""

    command: str
    stdout: str
    stderr: str
    exit_code: int
    success: bool = field(init=False)

    def __post_init__(self) -> None:
        self.success = self.exit_code == 0


class LocalConnector:
    """Command runner for the machine nginx runs on.

    Example:
        >>> connector = LocalConnector(timeout=10)
        >>> result = connector.run(["nginx", "-t"])
        >>> print(result.success)
    """

    def __init__(self, timeout: float = 30.0) -> None:
        self.timeout = timeout

    def run(self, command: str | Sequence[str], timeout: float | None = None) -> CommandResult:
        """Execute a command and capture its output.

        Args:
            command: Argument vector, or a string to split with shlex.
            timeout: Command timeout in seconds. Defaults to the connector timeout.

        Returns:
            CommandResult with stdout, stderr, and exit_code. Launch failures
            and timeouts are reported as exit code 127 and 124 respectively.
        """
        argv = shlex.split(command) if isinstance(command, str) else list(command)
        display = shlex.join(argv)
        cmd_timeout = timeout if timeout is not None else self.timeout

        if not argv:
            return CommandResult(command=display, stdout="", stderr="Empty command", exit_code=127)

        logger.debug("Running %s", display)
        try:
            completed = subprocess.run(
                argv,
                capture_output=True,
                text=True,
                errors="replace",
                timeout=cmd_timeout,
                check=False,
            )
        except subprocess.TimeoutExpired:
            return CommandResult(
                command=display,
                stdout="",
                stderr=f"Timed out after {cmd_timeout}s",
                exit_code=124,
            )
        except OSError as e:
            return CommandResult(
                command=display,
                stdout="",
                stderr=f"Execution Error: {e}",
                exit_code=127,
            )

        return CommandResult(
            command=display,
            stdout=completed.stdout,
            stderr=completed.stderr,
            exit_code=completed.returncode,
        )

    def read_file(self, path: str | Path) -> str | None:
        """Read a text file.

        Returns:
            File contents as string, or None if it can't be read.
        """
        try:
            return Path(path).read_text(encoding="utf-8", errors="replace")
        except OSError:
            return None
