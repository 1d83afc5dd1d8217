"""Check every mounted btrfs filesystem once."""

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from btrfswatch.balance.mounts import get_btrfs_mounts
from btrfswatch.balance.policy import AlertEvent, decide
from btrfswatch.balance.remediate import BalanceResult, remediate
from btrfswatch.balance.sizes import format_bytes
from btrfswatch.balance.usage import FilesystemSample, UsageError, evaluate
from btrfswatch.core.logging import RunLogger
from btrfswatch.lib.process import CommandError

if TYPE_CHECKING:
    from btrfswatch.core.config import ThresholdConfig
    from btrfswatch.core.context import Context
    from btrfswatch.core.logging import SysLog


@dataclass
class MountReport:
    """What happened to one mount point during a run."""

    mount_point: str
    sample: FilesystemSample | None = None
    alerts: list[AlertEvent] = field(default_factory=list)
    balances: list[BalanceResult] = field(default_factory=list)
    error: str | None = None

    @property
    def status(self) -> str:
        if self.error:
            return "error"
        if self.sample is None:
            return "skipped"
        if self.alerts:
            return "alert"
        return "ok"

    def to_dict(self) -> dict[str, Any]:
        sample = self.sample
        return {
            "mount_point": self.mount_point,
            "status": self.status,
            "fs_used_percent": sample.fs_used_percent if sample else None,
            "data_used_percent": (
                sample.data.used_percent if sample and sample.data else None
            ),
            "metadata_used_percent": (
                sample.metadata.used_percent if sample and sample.metadata else None
            ),
            "alerts": [
                {"severity": a.severity, "pool": a.pool, "command": a.command}
                for a in self.alerts
            ],
            "balances": [
                {"filter": b.filter, "returncode": b.returncode, "timed_out": b.timed_out}
                for b in self.balances
            ],
            "error": self.error,
        }


def _pool_extra(sample: FilesystemSample) -> dict[str, str]:
    extra = {}
    for name, pool in (("data", sample.data), ("metadata", sample.metadata)):
        if pool is not None:
            extra[name] = (
                f"{format_bytes(pool.used_bytes)} of {format_bytes(pool.total_bytes)}"
                f" ({pool.used_percent}%)"
            )
    return extra


def check_mount(
    mount_point: str,
    config: "ThresholdConfig",
    context: "Context",
    syslog: "SysLog",
    runlog: RunLogger,
) -> MountReport:
    """Evaluate one mount point, alert, and balance if enabled."""
    report = MountReport(mount_point)

    try:
        sample = evaluate(mount_point, config, context)
    except (UsageError, CommandError) as e:
        report.error = str(e)
        syslog.error(f"Btrfs usage check aborted on filesystem {mount_point}: {e}")
        runlog.error("check aborted", mount_point=mount_point, error=str(e))
        return report

    if sample is None:
        runlog.debug("below activation threshold", mount_point=mount_point)
        return report

    report.sample = sample
    runlog.info(
        "sampled",
        mount_point=mount_point,
        fs_used_percent=sample.fs_used_percent,
        **_pool_extra(sample),
    )

    report.alerts = decide(sample, config)
    for alert in report.alerts:
        syslog.warning(alert.message)
        runlog.warning(alert.message, mount_point=mount_point, pool=alert.pool)

        if not config.autobalance:
            continue

        results = remediate(
            alert, config.plan, context, syslog, timeout=config.command_timeout
        )
        runlog.info("balance finished", mount_point=mount_point, pool=alert.pool)
        report.balances.extend(results)
        for result in results:
            if not result.ok:
                runlog.error(
                    "balance pass failed",
                    mount_point=mount_point,
                    filter=result.filter,
                    returncode=result.returncode,
                    timed_out=result.timed_out,
                )

    return report


def run_checks(
    config: "ThresholdConfig",
    context: "Context",
    syslog: "SysLog",
    runlog: RunLogger | None = None,
) -> list[MountReport]:
    """
    Check mounted btrfs filesystems in mount-table order.

    Each filesystem is handled on its own; an error on one does not
    affect the others.
    """
    if runlog is None:
        runlog = RunLogger()

    reports = []
    for record in get_btrfs_mounts(context):
        reports.append(check_mount(record.mount_point, config, context, syslog, runlog))
    return reports
