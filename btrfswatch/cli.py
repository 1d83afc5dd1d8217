"""Command-line interface for btrfswatch."""

import argparse
import sys
from pathlib import Path

from btrfswatch import __version__
from btrfswatch.balance import run_checks
from btrfswatch.core import ConfigError, Context, Output, RunLogger, SysLog, load_config
from btrfswatch.lib.process import CommandError, require_tools

REQUIRED_TOOLS = ["df", "logger", "btrfs"]

TITLE = "btrfs chunk allocation check"


def create_parser() -> argparse.ArgumentParser:
    """Create the argument parser."""
    parser = argparse.ArgumentParser(
        prog="btrfswatch",
        description=(
            "Log a syslog WARNING when btrfs chunk allocation needs a balance, "
            "and optionally run the balance."
        ),
        epilog="Intended to run from cron during low filesystem activity.",
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"btrfswatch {__version__}",
    )
    parser.add_argument(
        "-t", "--fs-threshold",
        type=int,
        metavar="PERCENT",
        help="Filesystem usage below which nothing is checked (default: 60)",
    )
    parser.add_argument(
        "-b", "--data-threshold",
        type=int,
        metavar="PERCENT",
        help="Alert when data chunk usage is at or below this (default: 70)",
    )
    parser.add_argument(
        "-m", "--metadata-threshold",
        type=int,
        metavar="PERCENT",
        help="Alert when metadata chunk usage is at or above this (default: 85)",
    )
    parser.add_argument(
        "-f", "--fix",
        action="store_true",
        help="Run btrfs balance on alerted pools (requires root)",
    )
    parser.add_argument(
        "-c", "--config",
        type=Path,
        help="YAML config file (replaces user and project config)",
    )
    parser.add_argument(
        "--timeout",
        type=float,
        metavar="SECONDS",
        help="Timeout for each external command (default: 3600)",
    )
    parser.add_argument(
        "--log-dir",
        type=Path,
        help="Write a JSONL run log under this directory",
    )
    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Print a report of the run to stdout",
    )
    parser.add_argument(
        "--format",
        choices=["plain", "json"],
        default="plain",
        help="Report format with --verbose (default: plain)",
    )
    return parser


def build_output(reports, delivery_failures=()) -> Output:
    """Summarize mount reports and lost log messages for display."""
    output = Output()
    output.emit({"filesystems": [r.to_dict() for r in reports]})

    for report in reports:
        if report.error:
            output.error(f"{report.mount_point}: {report.error}")
        for alert in report.alerts:
            output.warning(alert.message)
        for balance in report.balances:
            if not balance.ok:
                output.error(f"{report.mount_point}: balance {balance.filter} failed")
    for failure in delivery_failures:
        output.warning(f"Log delivery failed: {failure}")

    if not reports:
        output.set_summary("No btrfs filesystems found")
    else:
        alerts = sum(len(r.alerts) for r in reports)
        output.set_summary(f"filesystems: {len(reports)}, alerts: {alerts}")
    return output


def main(argv: list[str] | None = None, context: Context | None = None) -> int:
    """Main entry point."""
    parser = create_parser()
    args = parser.parse_args(argv)

    if context is None:
        context = Context()

    overrides = {
        "fs_threshold": args.fs_threshold,
        "data_threshold": args.data_threshold,
        "metadata_threshold": args.metadata_threshold,
        "log_dir": args.log_dir,
    }
    if args.fix:
        overrides["autobalance"] = True
    if args.timeout is not None:
        overrides["command_timeout"] = args.timeout

    try:
        config = load_config(args.config, overrides)
    except ConfigError as e:
        print(f"Configuration error: {e}", file=sys.stderr)
        return 1

    try:
        require_tools(REQUIRED_TOOLS, context=context)
    except CommandError as e:
        print(e, file=sys.stderr)
        return 1

    # Checked before any filesystem is touched.
    if config.autobalance and not context.is_root():
        print("Option -f requires superuser privileges", file=sys.stderr)
        return 1

    runlog = RunLogger.for_dir(config.log_dir)
    try:
        runlog.open()
    except OSError as e:
        print(f"Configuration error: cannot open run log: {e}", file=sys.stderr)
        return 1

    syslog = SysLog(context)
    with runlog:
        runlog.info(
            "run started",
            fs_threshold=config.fs_threshold,
            data_threshold=config.data_threshold,
            metadata_threshold=config.metadata_threshold,
            autobalance=config.autobalance,
        )
        reports = run_checks(config, context, syslog, runlog)
        for failure in syslog.failures:
            runlog.error("syslog delivery failed", detail=failure)
        runlog.info("run finished", filesystems=len(reports))

    if args.verbose:
        failures = syslog.failures + runlog.failures
        build_output(reports, failures).render(args.format, TITLE)

    return 0


if __name__ == "__main__":
    sys.exit(main())
