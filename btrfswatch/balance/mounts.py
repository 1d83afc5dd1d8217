"""Find mounted btrfs filesystems."""

import re
from dataclasses import dataclass
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from btrfswatch.core.context import Context

MOUNTS_FILE = "/proc/mounts"

_OCTAL_ESCAPE = re.compile(r"\\([0-7]{3})")


@dataclass(frozen=True)
class MountRecord:
    """One line of the mount table."""

    device: str
    mount_point: str
    fstype: str


def _unescape(field: str) -> str:
    # The kernel escapes space, tab, newline and backslash as \ooo.
    return _OCTAL_ESCAPE.sub(lambda m: chr(int(m.group(1), 8)), field)


def parse_mounts(content: str, fstype: str = "btrfs") -> list[MountRecord]:
    """
    Parse /proc/mounts content, keeping entries of the given type.

    Order follows the mount table.
    """
    records = []
    for line in content.splitlines():
        parts = line.split()
        if len(parts) < 3:
            continue
        if parts[2] != fstype:
            continue
        records.append(MountRecord(
            device=_unescape(parts[0]),
            mount_point=_unescape(parts[1]),
            fstype=parts[2],
        ))
    return records


def unique_filesystems(records: list[MountRecord]) -> list[MountRecord]:
    """Keep the first mount point of each device (subvolume mounts share one)."""
    seen_devices = set()
    filesystems = []
    for record in records:
        if record.device in seen_devices:
            continue
        seen_devices.add(record.device)
        filesystems.append(record)
    return filesystems


def get_btrfs_mounts(context: "Context") -> list[MountRecord]:
    """Get mounted btrfs filesystems, one record per device."""
    return unique_filesystems(parse_mounts(context.read_file(MOUNTS_FILE)))
