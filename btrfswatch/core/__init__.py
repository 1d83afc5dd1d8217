"""Core btrfswatch functionality."""

from btrfswatch.core.config import ConfigError, RemediationPlan, ThresholdConfig, load_config
from btrfswatch.core.context import Context
from btrfswatch.core.logging import RunLogger, SysLog
from btrfswatch.core.output import Output

__all__ = [
    "ConfigError",
    "Context",
    "Output",
    "RemediationPlan",
    "RunLogger",
    "SysLog",
    "ThresholdConfig",
    "load_config",
]
