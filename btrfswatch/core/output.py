"""Structured run report."""

import json
from typing import Any


class Output:
    """Collects what a run found and renders it on request."""

    def __init__(self):
        self.data: dict[str, Any] = {}
        self.errors: list[str] = []
        self.warnings: list[str] = []
        self._summary: str | None = None
        self._printed: bool = False

    def emit(self, data: dict[str, Any]) -> None:
        """Store structured output data."""
        self.data.update(data)

    def error(self, message: str) -> None:
        """Record an error message."""
        self.errors.append(message)

    def warning(self, message: str) -> None:
        """Record a warning message."""
        self.warnings.append(message)

    def set_summary(self, summary: str) -> None:
        """Set a one-line summary."""
        self._summary = summary

    @property
    def summary(self) -> str:
        """Get summary or generate from data."""
        if self._summary:
            return self._summary
        if self.errors:
            return f"Error: {self.errors[0]}"
        if self.warnings:
            return f"Warning: {self.warnings[0]}"
        return "ok"

    def to_json(self) -> str:
        """Return report as JSON string."""
        payload = dict(self.data)
        payload["summary"] = self.summary
        payload["warnings"] = self.warnings
        payload["errors"] = self.errors
        return json.dumps(payload, indent=2, default=str)

    def to_plain(self, title: str | None = None) -> str:
        """Return report as plain text."""
        lines = []

        if title:
            lines.append(title)
            lines.append("=" * len(title))
            lines.append("")

        for fs in self.data.get("filesystems", []):
            lines.append(f"{fs['mount_point']}: {fs['status']}")
            for key in ("fs_used_percent", "data_used_percent", "metadata_used_percent"):
                if fs.get(key) is not None:
                    label = key.replace("_", " ").replace("percent", "%")
                    lines.append(f"  {label}: {fs[key]}")

        if self.warnings:
            lines.append("")
            lines.append("Warnings:")
            for warning in self.warnings:
                lines.append(f"  [WARNING] {warning}")

        if self.errors:
            lines.append("")
            lines.append("Errors:")
            for error in self.errors:
                lines.append(f"  [ERROR] {error}")

        lines.append("")
        lines.append(self.summary)
        return "\n".join(lines)

    def render(self, format: str = "plain", title: str | None = None) -> None:
        """Print the report once in the specified format."""
        if self._printed:
            return
        self._printed = True

        if format == "json":
            print(self.to_json())
        else:
            print(self.to_plain(title))
