"""
Duration parsing and formatting helpers.

All durations are integer milliseconds. Formatting always floors to whole
minutes; nothing is rounded up.
"""

import re
import time
from decimal import ROUND_HALF_UP, Decimal
from typing import Optional

MS_PER_MINUTE = 60_000
MS_PER_HOUR = 3_600_000
_CENTS = Decimal("0.01")

_MINUTES_ONLY = re.compile(r"^(\d+)m$")
_HOURS_ONLY = re.compile(r"^(\d+)h$")
_HOURS_MINUTES = re.compile(r"^(\d+)h\s*(?:(\d+)m)?$")
_BARE_INTEGER = re.compile(r"^\d+$")


def parse_duration(text: str) -> int:
    """
    Parse a human duration into milliseconds.

    Accepted, first match wins:
        "90m"       -> minutes
        "2h"        -> hours
        "1h 30m"    -> hours + optional minutes ("1h30m" too)
        "45"        -> bare integer, read as minutes

    Returns 0 for anything else. Callers must treat 0 as invalid input,
    not as a zero-length entry.

    Example:
        parse_duration("1h 30m") -> 5400000
        parse_duration("garbage") -> 0
    """
    if not text or not isinstance(text, str):
        return 0

    clean = re.sub(r"\s+", " ", text.strip().lower())

    if m := _MINUTES_ONLY.match(clean):
        return int(m.group(1)) * MS_PER_MINUTE

    if m := _HOURS_ONLY.match(clean):
        return int(m.group(1)) * MS_PER_HOUR

    if m := _HOURS_MINUTES.match(clean):
        hours = int(m.group(1))
        minutes = int(m.group(2) or 0)
        return hours * MS_PER_HOUR + minutes * MS_PER_MINUTE

    if _BARE_INTEGER.match(clean):
        return int(clean) * MS_PER_MINUTE

    return 0


def _split(ms) -> tuple:
    total_minutes = max(0, int(ms or 0)) // MS_PER_MINUTE
    return total_minutes // 60, total_minutes % 60


def format_duration(ms) -> str:
    """Compact format: '1h 30m', '1h', '45m' or '0m'."""
    hours, minutes = _split(ms)
    if hours == 0:
        return f"{minutes}m"
    if minutes == 0:
        return f"{hours}h"
    return f"{hours}h {minutes}m"


def format_total(ms) -> str:
    """Report total format: '3h 4m', '1h 0m', '45m' or '0m'."""
    hours, minutes = _split(ms)
    return f"{hours}h {minutes}m" if hours > 0 else f"{minutes}m"


def hours_decimal(ms) -> float:
    """Hours to 2 decimals, ties rounded up (450000 -> 0.13)."""
    hours = Decimal(int(ms or 0)) / MS_PER_HOUR
    return float(hours.quantize(_CENTS, rounding=ROUND_HALF_UP))


def elapsed_ms(start_ms: Optional[int], now_ms: Optional[int] = None) -> int:
    """Elapsed time of a running timer; never negative."""
    if not start_ms:
        return 0
    if now_ms is None:
        now_ms = int(time.time() * 1000)
    return max(0, now_ms - int(start_ms))
