"""Helpers shared by the balance checks."""

from btrfswatch.lib.process import CommandError, CommandTimeout, require_tools, run_command

__all__ = [
    "CommandError",
    "CommandTimeout",
    "require_tools",
    "run_command",
]
