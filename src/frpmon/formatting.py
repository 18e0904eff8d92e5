"""Display helpers."""

from __future__ import annotations

_UNITS = ("B", "KB", "MB", "GB", "TB")


def format_bytes(value: float) -> str:
    """Render a byte count (or rate) with base-1024 units, e.g. ``"1.5 KB"``.

    Rounds to at most two decimals and drops trailing zeros.
    """
    if value <= 0:
        return "0 B"
    scaled = float(value)
    exponent = 0
    while scaled >= 1024 and exponent < len(_UNITS) - 1:
        scaled /= 1024
        exponent += 1
    text = f"{scaled:.2f}".rstrip("0").rstrip(".")
    return f"{text} {_UNITS[exponent]}"
