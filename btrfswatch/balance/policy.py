"""Decide which pools of a sampled filesystem need a balance."""

from dataclasses import dataclass
from typing import TYPE_CHECKING

from btrfswatch.core.config import RemediationPlan

if TYPE_CHECKING:
    from btrfswatch.balance.usage import FilesystemSample
    from btrfswatch.core.config import ThresholdConfig

__all__ = ["AlertEvent", "RemediationPlan", "decide"]

POOL_FLAGS = {"data": "-d", "metadata": "-m"}


@dataclass(frozen=True)
class AlertEvent:
    """A pool that needs balancing, with the command that would fix it."""

    severity: str
    pool: str
    mount_point: str
    command: str

    @property
    def message(self) -> str:
        label = "balance" if self.pool == "data" else "metadata balance"
        return (
            f"Btrfs {label} required on filesystem {self.mount_point}, "
            f'you can run "{self.command}" to correct this issue'
        )


def _alert(pool: str, mount_point: str) -> AlertEvent:
    return AlertEvent(
        severity="WARNING",
        pool=pool,
        mount_point=mount_point,
        command=f"btrfs balance start {POOL_FLAGS[pool]} -v {mount_point}",
    )


def decide(sample: "FilesystemSample", config: "ThresholdConfig") -> list[AlertEvent]:
    """
    Apply thresholds to a sample.

    Data alerts when usage of allocated data chunks is at or below
    data_threshold: many chunks are sparsely filled. Metadata alerts when
    usage is at or above metadata_threshold: new metadata chunks may fail
    to allocate. Absent pools never alert.

    Returns:
        Data alert first, then metadata alert, either may be missing
    """
    alerts = []

    if sample.data is not None and sample.data.used_percent <= config.data_threshold:
        alerts.append(_alert("data", sample.mount_point))

    if (
        sample.metadata is not None
        and sample.metadata.used_percent >= config.metadata_threshold
    ):
        alerts.append(_alert("metadata", sample.mount_point))

    return alerts
