"""
Sample btrfs space usage for one mount point.

Overall utilization comes from ``df -P``. Chunk allocation per pool comes
from ``btrfs filesystem df``, whose report has one line per allocation
kind and profile::

    Data, single: total=200.00GiB, used=140.00GiB
    System, DUP: total=8.00MiB, used=48.00KiB
    Metadata, DUP: total=20.00GiB, used=15.00GiB
    GlobalReserve, single: total=512.00MiB, used=0.00B

Lines that do not match this shape are skipped. A pool with a size that
does not normalize is dropped. A kind listed under several profiles
(mid-conversion) is summed. Mixed-mode ``Data+Metadata`` lines count as
neither pool.
"""

import re
from dataclasses import dataclass
from typing import TYPE_CHECKING

from btrfswatch.balance.sizes import SizeError, normalize
from btrfswatch.lib.process import run_command

if TYPE_CHECKING:
    from btrfswatch.core.config import ThresholdConfig
    from btrfswatch.core.context import Context

POOL_KINDS = {"Data": "data", "Metadata": "metadata"}

_REPORT_LINE = re.compile(
    r"^(?P<kind>[\w+]+),\s*(?P<profile>[^:]+):\s*"
    r"total=(?P<total>[^,\s]+),\s*used=(?P<used>\S+)\s*$"
)


class UsageError(Exception):
    """Overall utilization could not be determined."""

    pass


@dataclass(frozen=True)
class PoolUsage:
    """Allocated and used bytes of one allocation pool."""

    total_bytes: int
    used_bytes: int

    @property
    def used_percent(self) -> int:
        """Used share of allocated chunks, truncated."""
        return self.used_bytes * 100 // self.total_bytes


@dataclass(frozen=True)
class FilesystemSample:
    """Usage figures for one mount point. A pool of None is absent."""

    mount_point: str
    fs_used_percent: int
    data: PoolUsage | None
    metadata: PoolUsage | None


def parse_df_percent(output: str) -> int:
    """Extract the Capacity column from ``df -P`` output."""
    lines = [line for line in output.splitlines() if line.strip()]
    if len(lines) < 2:
        raise UsageError("df returned no filesystem row")

    fields = lines[-1].split()
    if len(fields) < 6 or not fields[4].endswith("%"):
        raise UsageError(f"Unexpected df row: {lines[-1]!r}")

    try:
        return int(fields[4][:-1])
    except ValueError:
        raise UsageError(f"Unexpected df capacity: {fields[4]!r}")


def get_usage_percent(
    mount_point: str,
    context: "Context",
    timeout: float | None = None,
) -> int:
    """Overall filesystem utilization as an integer percentage."""
    result = run_command(["df", "-P", mount_point], context=context, timeout=timeout)
    if result.returncode != 0:
        raise UsageError(
            f"df failed on {mount_point}: {result.stderr.strip() or result.returncode}"
        )
    return parse_df_percent(result.stdout)


def parse_allocation_report(text: str) -> dict[str, PoolUsage]:
    """
    Parse ``btrfs filesystem df`` output.

    Returns:
        Mapping of pool name ("data", "metadata") to usage. Pools that are
        missing, malformed or have no allocated chunks are left out.
    """
    totals: dict[str, list[int]] = {}
    broken = set()

    for line in text.splitlines():
        match = _REPORT_LINE.match(line.strip())
        if not match:
            continue
        pool = POOL_KINDS.get(match.group("kind"))
        if pool is None:
            continue
        try:
            total = normalize(match.group("total"))
            used = normalize(match.group("used"))
        except SizeError:
            broken.add(pool)
            continue
        sums = totals.setdefault(pool, [0, 0])
        sums[0] += total
        sums[1] += used

    pools = {}
    for pool, (total, used) in totals.items():
        # One unparseable line makes the whole pool absent.
        if pool in broken or total == 0:
            continue
        pools[pool] = PoolUsage(total_bytes=total, used_bytes=used)
    return pools


def get_allocation(
    mount_point: str,
    context: "Context",
    timeout: float | None = None,
) -> dict[str, PoolUsage]:
    """Chunk allocation per pool, empty if the diagnostic tool fails."""
    result = run_command(
        ["btrfs", "filesystem", "df", mount_point], context=context, timeout=timeout
    )
    if result.returncode != 0:
        return {}
    return parse_allocation_report(result.stdout)


def evaluate(
    mount_point: str,
    config: "ThresholdConfig",
    context: "Context",
) -> FilesystemSample | None:
    """
    Sample a mount point.

    Returns None when overall utilization is below the activation
    threshold; the allocation report is not queried in that case.

    Raises:
        UsageError: If df cannot report utilization
        CommandTimeout: If a command exceeds config.command_timeout
        CommandError: If a command cannot be started
    """
    fs_used_percent = get_usage_percent(mount_point, context, config.command_timeout)
    if fs_used_percent < config.fs_threshold:
        return None

    pools = get_allocation(mount_point, context, config.command_timeout)
    return FilesystemSample(
        mount_point=mount_point,
        fs_used_percent=fs_used_percent,
        data=pools.get("data"),
        metadata=pools.get("metadata"),
    )
