"""Configuration loading with layered overrides."""

from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Any

import yaml

DEFAULT_BALANCE_LIST = (0, 5, 10, 15, 25, 50, 75)
# Metadata is more stable and easier to balance, so its list is shorter.
DEFAULT_META_BALANCE_LIST = (0, 5, 10, 15, 25, 50)

DEFAULT_COMMAND_TIMEOUT = 3600

PERCENT_KEYS = ("fs_threshold", "data_threshold", "metadata_threshold")


class ConfigError(Exception):
    """Error loading or validating configuration."""

    pass


@dataclass(frozen=True)
class RemediationPlan:
    """Balance usage filters to step through, per pool."""

    data_targets: tuple[int, ...] = DEFAULT_BALANCE_LIST
    metadata_targets: tuple[int, ...] = DEFAULT_META_BALANCE_LIST

    def targets_for(self, pool: str) -> tuple[int, ...]:
        """Ascending usage targets for the data or metadata pool."""
        if pool == "data":
            targets = self.data_targets
        elif pool == "metadata":
            targets = self.metadata_targets
        else:
            raise ValueError(f"Unknown pool: {pool}")
        return tuple(sorted(set(targets)))


@dataclass(frozen=True)
class ThresholdConfig:
    """Thresholds and switches for one run."""

    fs_threshold: int = 60
    data_threshold: int = 70
    metadata_threshold: int = 85
    autobalance: bool = False
    command_timeout: float | None = DEFAULT_COMMAND_TIMEOUT
    log_dir: Path | None = None
    plan: RemediationPlan = field(default_factory=RemediationPlan)


def load_config_file(path: Path, required: bool = False) -> dict[str, Any]:
    """Load a YAML config file if it exists."""
    if not path.exists():
        if required:
            raise ConfigError(f"Config file not found: {path}")
        return {}

    try:
        with open(path) as f:
            data = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML in config {path}: {e}")
    except OSError as e:
        raise ConfigError(f"Cannot read config {path}: {e}")

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigError(f"Config must be a YAML mapping: {path}")
    return data


def user_config_path() -> Path:
    return Path.home() / ".config" / "btrfswatch" / "config.yaml"


def project_config_path() -> Path:
    return Path(".btrfswatch.yaml")


def _percent(key: str, value: Any) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        try:
            value = int(str(value), 10)
        except ValueError:
            raise ConfigError(f"{key} must be an integer percentage, got {value!r}")
    if not 0 <= value <= 100:
        raise ConfigError(f"{key} must be between 0 and 100, got {value}")
    return value


def _balance_list(key: str, value: Any) -> tuple[int, ...]:
    if isinstance(value, str):
        value = value.split()
    if not isinstance(value, (list, tuple)) or not value:
        raise ConfigError(f"{key} must be a non-empty list of percentages")
    return tuple(sorted({_percent(key, v) for v in value}))


def _timeout(value: Any) -> float | None:
    if value is None:
        return None
    try:
        timeout = float(value)
    except (TypeError, ValueError):
        raise ConfigError(f"command_timeout must be a number of seconds, got {value!r}")
    if timeout <= 0:
        raise ConfigError(f"command_timeout must be positive, got {value}")
    return timeout


def build_config(data: dict[str, Any], base: ThresholdConfig | None = None) -> ThresholdConfig:
    """
    Apply recognised keys from data on top of base.

    Unknown keys are ignored.

    Raises:
        ConfigError: If a recognised key has an invalid value
    """
    config = base or ThresholdConfig()
    changes: dict[str, Any] = {}

    for key in PERCENT_KEYS:
        if data.get(key) is not None:
            changes[key] = _percent(key, data[key])

    if data.get("autobalance") is not None:
        if not isinstance(data["autobalance"], bool):
            raise ConfigError(f"autobalance must be true or false, got {data['autobalance']!r}")
        changes["autobalance"] = data["autobalance"]

    if "command_timeout" in data:
        changes["command_timeout"] = _timeout(data["command_timeout"])

    if data.get("log_dir") is not None:
        changes["log_dir"] = Path(data["log_dir"]).expanduser()

    plan = config.plan
    if data.get("balance_list") is not None:
        plan = replace(plan, data_targets=_balance_list("balance_list", data["balance_list"]))
    if data.get("meta_balance_list") is not None:
        plan = replace(
            plan, metadata_targets=_balance_list("meta_balance_list", data["meta_balance_list"])
        )
    changes["plan"] = plan

    return replace(config, **changes)


def load_config(
    config_path: Path | None = None,
    overrides: dict[str, Any] | None = None,
) -> ThresholdConfig:
    """
    Resolve configuration for a run.

    Precedence, lowest first: defaults, user config, project config,
    overrides. An explicit config_path replaces the user and project layers.

    Args:
        config_path: Explicit config file, must exist if given
        overrides: Values from the command line, None entries are skipped

    Returns:
        Immutable ThresholdConfig

    Raises:
        ConfigError: On unreadable files or invalid values
    """
    config = ThresholdConfig()

    if config_path is not None:
        config = build_config(load_config_file(config_path, required=True), config)
    else:
        config = build_config(load_config_file(user_config_path()), config)
        config = build_config(load_config_file(project_config_path()), config)

    if overrides:
        config = build_config(overrides, config)

    return config
