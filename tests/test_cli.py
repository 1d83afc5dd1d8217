"""Tests for the btrfswatch command line."""

import json
from pathlib import Path

import pytest

from btrfswatch.balance.mounts import MOUNTS_FILE
from btrfswatch.cli import REQUIRED_TOOLS, main
from tests.conftest import completed, load_fixture

DATA_TARGETS = (0, 5, 10, 15, 25, 50, 75)

DATA_MOUNT = "/dev/sdb1 /data btrfs rw,relatime,space_cache=v2,subvolid=5,subvol=/ 0 0\n"


@pytest.fixture(autouse=True)
def isolated(tmp_path, monkeypatch):
    """Keep real user and project config out of the way."""
    monkeypatch.chdir(tmp_path)
    monkeypatch.setattr(Path, "home", lambda: tmp_path / "home")
    return tmp_path


@pytest.fixture
def scenario(mock_context):
    """/data at 65%: data pool 140/200 GiB, metadata 15/20 GiB."""
    def _create(euid: int = 1000, **kwargs):
        outputs = {
            ("df", "-P", "/data"): load_fixture("btrfs", "df_65.txt"),
            ("btrfs", "filesystem", "df", "/data"): load_fixture(
                "btrfs", "fi_df_imbalanced.txt"
            ),
        }
        for target in DATA_TARGETS:
            outputs[("btrfs", "balance", "start", f"-dusage={target}", "/data")] = ""
        return mock_context(
            tools_available=REQUIRED_TOOLS,
            file_contents={MOUNTS_FILE: DATA_MOUNT},
            command_outputs=outputs,
            euid=euid,
            **kwargs,
        )
    return _create


class TestStartupChecks:
    """Checks that run before any filesystem is touched."""

    def test_help_exits_zero(self, capsys):
        """-h prints usage and exits 0."""
        with pytest.raises(SystemExit) as exc_info:
            main(["-h"])

        assert exc_info.value.code == 0
        out = capsys.readouterr().out
        assert "-t PERCENT" in out
        assert "--fix" in out

    def test_missing_binary(self, mock_context, capsys):
        """A missing tool aborts with exit 1 and names the tool."""
        ctx = mock_context(tools_available=["df", "logger"])

        assert main([], context=ctx) == 1
        assert "Binary btrfs not found, aborting" in capsys.readouterr().err
        assert ctx.commands_run == []

    def test_fix_requires_root(self, scenario, capsys):
        """-f without root exits 1 before evaluating anything."""
        ctx = scenario(euid=1000)

        assert main(["-f"], context=ctx) == 1
        assert "Option -f requires superuser privileges" in capsys.readouterr().err
        assert ctx.commands_run == []

    def test_autobalance_from_config_requires_root(self, scenario, isolated):
        """Enabling autobalance in YAML needs root too."""
        (isolated / ".btrfswatch.yaml").write_text("autobalance: true\n")
        ctx = scenario(euid=1000)

        assert main([], context=ctx) == 1
        assert ctx.commands_run == []

    def test_invalid_threshold(self, scenario, capsys):
        """Out of range percentages are configuration errors."""
        ctx = scenario()

        assert main(["-b", "150"], context=ctx) == 1
        assert "data_threshold" in capsys.readouterr().err
        assert ctx.commands_run == []

    def test_invalid_config_file(self, scenario, isolated, capsys):
        """Broken YAML aborts the run."""
        bad = isolated / "bad.yaml"
        bad.write_text("fs_threshold: [")
        ctx = scenario()

        assert main(["-c", str(bad)], context=ctx) == 1
        assert "Configuration error" in capsys.readouterr().err

    def test_unusable_log_dir(self, scenario, isolated, capsys):
        """A log directory that cannot be created exits 1 before any check."""
        blocker = isolated / "logs"
        blocker.write_text("not a directory\n")
        ctx = scenario()

        assert main(["--log-dir", str(blocker)], context=ctx) == 1
        assert "Configuration error: cannot open run log" in capsys.readouterr().err
        assert ctx.commands_run == []


class TestRun:
    """Full runs against mocked collaborators."""

    def test_no_btrfs_filesystems(self, mock_context):
        """Zero qualifying filesystems is a normal completion."""
        ctx = mock_context(
            tools_available=REQUIRED_TOOLS,
            file_contents={MOUNTS_FILE: "/dev/sda2 / ext4 rw 0 0\n"},
        )

        assert main([], context=ctx) == 0
        assert ctx.commands_run == []

    def test_end_to_end_advisory(self, scenario):
        """Exactly one data WARNING and no balance without -f."""
        ctx = scenario()

        assert main([], context=ctx) == 0

        assert ctx.syslog_messages() == [(
            "WARNING",
            'Btrfs balance required on filesystem /data, you can run '
            '"btrfs balance start -d -v /data" to correct this issue',
        )]
        assert ctx.balance_commands() == []

    def test_end_to_end_autobalance(self, scenario):
        """With -f as root the default data list runs in order against /data."""
        ctx = scenario(euid=0)

        assert main(["-f"], context=ctx) == 0

        assert ctx.balance_commands() == [
            ["btrfs", "balance", "start", f"-dusage={t}", "/data"] for t in DATA_TARGETS
        ]
        messages = ctx.syslog_messages()
        assert len([m for m in messages if "required" in m[1]]) == 1
        assert messages[-1] == ("WARNING", "Btrfs balance completed")

    def test_activation_threshold_flag(self, scenario):
        """-t above current usage skips the filesystem."""
        ctx = scenario()

        assert main(["-t", "66"], context=ctx) == 0

        assert ctx.syslog_messages() == []
        assert ["btrfs", "filesystem", "df", "/data"] not in ctx.commands_run

    def test_data_threshold_flag(self, scenario):
        """-b below data usage silences the data alert."""
        ctx = scenario()

        assert main(["-b", "69"], context=ctx) == 0

        assert ctx.syslog_messages() == []

    def test_metadata_threshold_flag(self, scenario):
        """-m at metadata usage raises a metadata alert."""
        ctx = scenario()

        assert main(["-b", "10", "-m", "75"], context=ctx) == 0

        assert [m[1].split(" on ")[0] for m in ctx.syslog_messages()] == [
            "Btrfs metadata balance required",
        ]

    def test_timeout_flag(self, scenario):
        """--timeout reaches every external command."""
        ctx = scenario()

        main(["--timeout", "90"], context=ctx)

        commands = [
            t for cmd, t in zip(ctx.commands_run, ctx.timeouts) if cmd[0] != "logger"
        ]
        assert commands == [90, 90]

    def test_verbose_json_report(self, scenario, capsys):
        """-v --format json prints the run report."""
        ctx = scenario()

        assert main(["-v", "--format", "json"], context=ctx) == 0

        report = json.loads(capsys.readouterr().out)
        (fs,) = report["filesystems"]
        assert fs["mount_point"] == "/data"
        assert fs["status"] == "alert"
        assert fs["data_used_percent"] == 70
        assert fs["metadata_used_percent"] == 75
        assert report["summary"] == "filesystems: 1, alerts: 1"

    def test_quiet_by_default(self, scenario, capsys):
        """Cron-friendly: nothing on stdout without -v."""
        ctx = scenario()

        main([], context=ctx)

        assert capsys.readouterr().out == ""

    def test_log_dir(self, scenario, isolated):
        """--log-dir writes a JSONL run log."""
        ctx = scenario()

        main(["--log-dir", str(isolated / "logs")], context=ctx)

        (log_file,) = (isolated / "logs").glob("*/btrfswatch.jsonl")
        messages = [json.loads(line)["message"] for line in log_file.read_text().splitlines()]
        assert messages[0] == "run started"
        assert messages[-1] == "run finished"

    def test_lost_syslog_messages_are_reported(self, scenario, isolated, capsys):
        """Failed logger deliveries reach the run log and the report."""
        ctx = scenario()
        advisory = (
            "Btrfs balance required on filesystem /data, you can run "
            '"btrfs balance start -d -v /data" to correct this issue'
        )
        cmd = ["logger", "-t", "WARNING", advisory]
        ctx.command_outputs[tuple(cmd)] = completed(cmd, returncode=1)

        assert main(["-v", "--log-dir", str(isolated / "logs")], context=ctx) == 0

        (log_file,) = (isolated / "logs").glob("*/btrfswatch.jsonl")
        entries = [json.loads(line) for line in log_file.read_text().splitlines()]
        lost = [e for e in entries if e["message"] == "syslog delivery failed"]
        assert len(lost) == 1
        assert "logger exited 1" in lost[0]["detail"]
        assert "Log delivery failed" in capsys.readouterr().out
