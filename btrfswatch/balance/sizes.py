"""Convert btrfs size strings such as ``8.00GiB`` into byte counts."""

import re
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation

# KB and KiB both mean 1024 bytes, matching btrfs-progs' own output.
UNIT_POWERS = {
    "B": 0,
    "KB": 1, "KiB": 1,
    "MB": 2, "MiB": 2,
    "GB": 3, "GiB": 3,
    "TB": 4, "TiB": 4,
}

_SIZE_RE = re.compile(r"^(?P<number>[0-9]*\.?[0-9]+)\s*(?P<unit>[KMGT]i?B|B)$")


class SizeError(ValueError):
    """A size string could not be normalized."""

    pass


def normalize(text: str) -> int:
    """
    Convert a size string to bytes.

    Args:
        text: Magnitude followed by a unit, e.g. "1.50GiB" or "512KB"

    Returns:
        Byte count, rounded to the nearest byte

    Raises:
        SizeError: If the unit is not recognised or the number is malformed
    """
    match = _SIZE_RE.match(text.strip())
    if not match:
        raise SizeError(f"Unrecognised size: {text!r}")

    try:
        number = Decimal(match.group("number"))
    except InvalidOperation:
        raise SizeError(f"Unrecognised size: {text!r}")

    scaled = number * 1024 ** UNIT_POWERS[match.group("unit")]
    return int(scaled.to_integral_value(rounding=ROUND_HALF_UP))


def format_bytes(bytes_val: int) -> str:
    """Format bytes to human readable format."""
    if bytes_val == 0:
        return "0 B"
    if bytes_val >= 1024**4:
        return f"{bytes_val / (1024**4):.1f} TiB"
    elif bytes_val >= 1024**3:
        return f"{bytes_val / (1024**3):.1f} GiB"
    elif bytes_val >= 1024**2:
        return f"{bytes_val / (1024**2):.1f} MiB"
    elif bytes_val >= 1024:
        return f"{bytes_val / 1024:.1f} KiB"
    else:
        return f"{bytes_val} B"
