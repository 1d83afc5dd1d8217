"""Run incremental balance passes for a pool."""

from dataclasses import dataclass
from typing import TYPE_CHECKING

from btrfswatch.lib.process import CommandError, CommandTimeout, run_command

if TYPE_CHECKING:
    from btrfswatch.balance.policy import AlertEvent
    from btrfswatch.core.config import RemediationPlan
    from btrfswatch.core.context import Context
    from btrfswatch.core.logging import SysLog

USAGE_FILTERS = {"data": "-dusage", "metadata": "-musage"}


@dataclass
class BalanceResult:
    """Outcome of one balance pass."""

    pool: str
    target: int
    returncode: int | None
    timed_out: bool = False

    @property
    def ok(self) -> bool:
        """True if the pass completed successfully."""
        return self.returncode == 0 and not self.timed_out

    @property
    def filter(self) -> str:
        return f"{USAGE_FILTERS[self.pool]}={self.target}"


def balance_command(pool: str, target: int, mount_point: str) -> list[str]:
    """Argv for one balance pass with a usage filter."""
    return ["btrfs", "balance", "start", f"{USAGE_FILTERS[pool]}={target}", mount_point]


def remediate(
    event: "AlertEvent",
    plan: "RemediationPlan",
    context: "Context",
    syslog: "SysLog",
    timeout: float | None = None,
) -> list[BalanceResult]:
    """
    Balance the alerted pool, one usage target at a time.

    Passes run strictly in sequence and each finishes before the next
    starts. A failed or timed-out pass is logged as an error and the
    remaining passes still run.

    Returns:
        One BalanceResult per target, in the order run
    """
    label = "balance" if event.pool == "data" else "metadata balance"
    syslog.warning(f"Autobalance enabled. Btrfs {label} starting...")

    results = []
    for target in plan.targets_for(event.pool):
        cmd = balance_command(event.pool, target, event.mount_point)
        try:
            completed = run_command(cmd, context=context, timeout=timeout)
            result = BalanceResult(event.pool, target, completed.returncode)
        except CommandTimeout:
            result = BalanceResult(event.pool, target, None, timed_out=True)
        except CommandError:
            result = BalanceResult(event.pool, target, None)
        results.append(result)

        if not result.ok:
            reason = "timed out" if result.timed_out else f"exit {result.returncode}"
            syslog.error(
                f"Btrfs balance pass {result.filter} failed on filesystem "
                f"{event.mount_point} ({reason})"
            )

    syslog.warning(f"Btrfs {label} completed")
    return results
