"""
External command invocation (database dumps, remote sync).

Commands are run without a shell; the configured command string is split
with shlex and the task-specific arguments are appended.
"""

import logging
import shlex
import subprocess
from typing import List, Optional, Sequence

logger = logging.getLogger(__name__)


class CommandError(Exception):
    """Raised when an external command cannot be launched, times out or fails."""
    pass


def run_command(args: Sequence[str], timeout: Optional[float] = None) -> bytes:
    """
    Run a command to completion and return its standard output.

    Args:
        args: Command and arguments
        timeout: Seconds before the process is killed (None = no limit)

    Returns:
        Captured standard output

    Raises:
        CommandError: On launch failure, timeout or non-zero exit status
    """
    logger.debug("Running command: %s", shlex.join(args))

    try:
        result = subprocess.run(
            list(args),
            stdout=subprocess.PIPE,
            stderr=subprocess.PIPE,
            timeout=timeout,
            check=False
        )
    except FileNotFoundError:
        raise CommandError(f"Command not found: {args[0]}")
    except subprocess.TimeoutExpired:
        raise CommandError(f"Command timed out after {timeout}s: {args[0]}")
    except OSError as e:
        raise CommandError(f"Failed to launch {args[0]}: {e}")

    if result.returncode != 0:
        stderr = result.stderr.decode('utf-8', errors='replace').strip()
        raise CommandError(
            f"{args[0]} exited with status {result.returncode}"
            + (f": {stderr}" if stderr else "")
        )

    return result.stdout


def split_command(command: str) -> List[str]:
    """Split a configured command string into arguments."""
    parts = shlex.split(command)
    if not parts:
        raise ValueError("Command must not be empty")
    return parts


class DumpRunner:
    """
    Runs an external database dump utility (mysqldump by default).
    """

    def __init__(self, command: str = 'mysqldump', timeout: Optional[float] = None):
        """
        Initialize dump runner.

        Args:
            command: Dump command, the database name is appended
            timeout: Seconds before the dump is killed (None = no limit)
        """
        self.command = split_command(command)
        self.timeout = timeout

    def run_dump(self, database: str) -> bytes:
        """
        Dump a database and return the dump output.

        Raises:
            CommandError: If the dump fails
        """
        return run_command(self.command + [database], timeout=self.timeout)
