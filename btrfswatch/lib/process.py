"""Process utilities for the balance checks."""

import subprocess
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from btrfswatch.core.context import Context


class CommandError(Exception):
    """Error running a command."""

    pass


class CommandTimeout(CommandError):
    """A command did not finish within its timeout."""

    def __init__(self, cmd: list[str], timeout: float | None):
        super().__init__(f"Command timed out after {timeout}s: {' '.join(cmd)}")
        self.cmd = cmd
        self.timeout = timeout


def run_command(
    cmd: list[str],
    context: "Context | None" = None,
    timeout: float | None = None,
) -> subprocess.CompletedProcess:
    """
    Run a command to completion and return the finished process.

    A non-zero exit is not an error here; callers inspect returncode.

    Args:
        cmd: Command and arguments
        context: Execution context (for testing)
        timeout: Seconds to wait before giving up, None to wait forever

    Returns:
        CompletedProcess with stdout, stderr, returncode

    Raises:
        CommandTimeout: If the command outlives its timeout
        CommandError: If the command could not be started
    """
    if context is None:
        from btrfswatch.core.context import Context
        context = Context()

    try:
        return context.run(cmd, check=False, timeout=timeout)
    except subprocess.TimeoutExpired as e:
        raise CommandTimeout(cmd, timeout) from e
    except OSError as e:
        raise CommandError(f"Command failed: {cmd}") from e


def require_tools(
    names: list[str],
    context: "Context | None" = None,
) -> None:
    """
    Check that every tool in names exists in PATH.

    Tools are checked in order and the first missing one is reported.

    Raises:
        CommandError: If a tool is missing
    """
    if context is None:
        from btrfswatch.core.context import Context
        context = Context()

    for name in names:
        if not context.check_tool(name):
            raise CommandError(f"Binary {name} not found, aborting")
