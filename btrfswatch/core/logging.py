"""System log sink and JSONL run log."""

import json
import subprocess
from datetime import date, datetime, timezone
from pathlib import Path
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from btrfswatch.core.context import Context


LOG_NAME = "btrfswatch"


class SysLog:
    """
    Sends tagged messages to syslog through logger(1).

    Delivery is fire-and-forget: a failing logger call is recorded in
    failures and otherwise ignored.
    """

    def __init__(self, context: "Context", timeout: float | None = 30):
        self.context = context
        self.timeout = timeout
        self.failures: list[str] = []

    def send(self, tag: str, message: str) -> None:
        """Log message under tag (WARNING, ERROR, ...)."""
        cmd = ["logger", "-t", tag, message]
        try:
            result = self.context.run(cmd, timeout=self.timeout)
        except (OSError, subprocess.SubprocessError) as e:
            self.failures.append(f"{message}: {e}")
            return
        if result.returncode != 0:
            self.failures.append(f"{message}: logger exited {result.returncode}")

    def warning(self, message: str) -> None:
        self.send("WARNING", message)

    def error(self, message: str) -> None:
        self.send("ERROR", message)


def get_log_path(base_path: Path, log_date: date | None = None) -> Path:
    """
    Get the run log path.

    Returns:
        Path to the log file: {base}/{date}/btrfswatch.jsonl
    """
    if log_date is None:
        log_date = date.today()
    return base_path / log_date.isoformat() / f"{LOG_NAME}.jsonl"


class RunLogger:
    """
    JSONL logger for one run.

    Writes structured log entries to a JSONL file. With no log path
    every call is a no-op. Once a write fails the logger records the
    error in failures and stops writing; the run itself goes on.
    """

    def __init__(self, log_path: Path | None = None):
        self.log_path = log_path
        self.failures: list[str] = []
        self._file = None

    @classmethod
    def for_dir(cls, log_dir: Path | None) -> "RunLogger":
        """Logger writing under log_dir, or a disabled one if log_dir is None."""
        if log_dir is None:
            return cls()
        return cls(get_log_path(log_dir))

    @property
    def enabled(self) -> bool:
        return self.log_path is not None and not self.failures

    def open(self) -> None:
        """
        Open the log file, creating its directory.

        Raises:
            OSError: If the file cannot be created
        """
        if self.enabled and self._file is None:
            self.log_path.parent.mkdir(parents=True, exist_ok=True)
            self._file = open(self.log_path, "a")

    def _log(self, level: str, message: str, **extra: Any) -> None:
        """Write a log entry."""
        if not self.enabled:
            return
        entry = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": level,
            "component": LOG_NAME,
            "message": message,
            **extra,
        }
        try:
            self.open()
            self._file.write(json.dumps(entry, default=str) + "\n")
            self._file.flush()
        except OSError as e:
            self.failures.append(f"{self.log_path}: {e}")
            self.close()

    def debug(self, message: str, **extra: Any) -> None:
        self._log("debug", message, **extra)

    def info(self, message: str, **extra: Any) -> None:
        self._log("info", message, **extra)

    def warning(self, message: str, **extra: Any) -> None:
        self._log("warning", message, **extra)

    def error(self, message: str, **extra: Any) -> None:
        self._log("error", message, **extra)

    def close(self) -> None:
        """Close the log file."""
        if self._file is None:
            return
        try:
            self._file.close()
        except OSError as e:
            self.failures.append(f"{self.log_path}: {e}")
        self._file = None

    def __enter__(self) -> "RunLogger":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()
