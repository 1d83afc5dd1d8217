"""Chunk allocation checks and balancing."""

from btrfswatch.balance.monitor import MountReport, check_mount, run_checks
from btrfswatch.balance.policy import AlertEvent, decide
from btrfswatch.balance.sizes import SizeError, normalize
from btrfswatch.balance.usage import FilesystemSample, PoolUsage, UsageError, evaluate

__all__ = [
    "AlertEvent",
    "FilesystemSample",
    "MountReport",
    "PoolUsage",
    "SizeError",
    "UsageError",
    "check_mount",
    "decide",
    "evaluate",
    "normalize",
    "run_checks",
]
