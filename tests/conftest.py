"""Shared test fixtures."""

import errno
import subprocess
import sys
from pathlib import Path

import pytest

# Add project root to path for package imports
PROJECT_ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

FIXTURES_DIR = Path(__file__).parent / "fixtures"


class FullDisk:
    """File object whose writes fail like a full filesystem."""

    def write(self, data):
        raise OSError(errno.ENOSPC, "No space left on device")

    def flush(self):
        pass

    def close(self):
        pass


class MockContext:
    """Mock Context for testing checks without real system access."""

    def __init__(
        self,
        tools_available: list[str] | None = None,
        command_outputs: dict[tuple, "str | subprocess.CompletedProcess | Exception"] | None = None,
        file_contents: dict[str, str] | None = None,
        euid: int = 1000,
    ):
        self.tools_available = set(tools_available or [])
        self.command_outputs = command_outputs or {}
        self.file_contents = file_contents or {}
        self._euid = euid
        self.commands_run: list[list[str]] = []
        self.timeouts: list[float | None] = []

    def check_tool(self, name: str) -> bool:
        """Check if tool is in mocked available list."""
        return name in self.tools_available

    def run(
        self,
        cmd: list[str],
        check: bool = False,
        timeout: float | None = None,
        **kwargs,
    ) -> subprocess.CompletedProcess:
        """Return mocked command output."""
        self.commands_run.append(cmd)
        self.timeouts.append(timeout)
        key = tuple(cmd)

        # logger always succeeds unless a test says otherwise
        if key not in self.command_outputs and cmd and cmd[0] == "logger":
            return subprocess.CompletedProcess(cmd, returncode=0, stdout="", stderr="")

        if key not in self.command_outputs:
            raise KeyError(f"No mock output for command: {cmd}")

        output = self.command_outputs[key]
        if isinstance(output, Exception):
            raise output

        # Allow passing CompletedProcess directly for more control (e.g., non-zero returncode)
        if isinstance(output, subprocess.CompletedProcess):
            return output

        return subprocess.CompletedProcess(
            cmd,
            returncode=0,
            stdout=output,
            stderr="",
        )

    def read_file(self, path: str) -> str:
        """Return mocked file content."""
        if path not in self.file_contents:
            raise FileNotFoundError(f"No mock content for: {path}")
        return self.file_contents[path]

    def euid(self) -> int:
        return self._euid

    def is_root(self) -> bool:
        return self._euid == 0

    def syslog_messages(self) -> list[tuple[str, str]]:
        """(tag, message) pairs sent through logger, in order."""
        return [(cmd[2], cmd[3]) for cmd in self.commands_run if cmd[0] == "logger"]

    def balance_commands(self) -> list[list[str]]:
        """Balance invocations, in order."""
        return [cmd for cmd in self.commands_run if cmd[:3] == ["btrfs", "balance", "start"]]


@pytest.fixture
def mock_context():
    """Factory fixture for creating MockContext instances."""
    def _create(**kwargs) -> MockContext:
        return MockContext(**kwargs)
    return _create


@pytest.fixture
def fixtures_dir() -> Path:
    """Path to test fixtures directory."""
    return FIXTURES_DIR


def load_fixture(category: str, name: str) -> str:
    """Load a fixture file by category and name."""
    fixture_path = FIXTURES_DIR / category / name
    if not fixture_path.exists():
        raise FileNotFoundError(f"Fixture not found: {fixture_path}")
    return fixture_path.read_text()


def completed(cmd: list[str], returncode: int = 0, stdout: str = "", stderr: str = ""):
    """Build a CompletedProcess for command_outputs."""
    return subprocess.CompletedProcess(cmd, returncode=returncode, stdout=stdout, stderr=stderr)
