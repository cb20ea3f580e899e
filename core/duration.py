"""Duration parsing helpers for configuration values."""

from __future__ import annotations

import re
from datetime import timedelta

_DURATION_RE = re.compile(r"^\s*(\d+)\s*(ms|[smhd])\s*$", re.IGNORECASE)
_UNIT_MILLISECONDS = {
    "ms": 1,
    "s": 1000,
    "m": 60_000,
    "h": 3_600_000,
    "d": 86_400_000,
}


def parse_duration(value: str | int) -> timedelta:
    """Parse compact duration strings like '3000ms', '60s', '4h', '7d'.

    A bare integer is read as milliseconds, matching the polling intervals
    used throughout the price feed.
    """
    if isinstance(value, int) and not isinstance(value, bool):
        if value < 0:
            raise ValueError(f"Invalid duration: {value!r}. Must not be negative.")
        return timedelta(milliseconds=value)

    match = _DURATION_RE.match(str(value or ""))
    if not match:
        raise ValueError(
            f"Invalid duration: {value!r}. Expected '<int><ms|s|m|h|d>'."
        )

    amount = int(match.group(1))
    unit = match.group(2).lower()
    return timedelta(milliseconds=amount * _UNIT_MILLISECONDS[unit])


def to_milliseconds(value: str | int) -> int:
    """Parse a duration and return it as whole milliseconds."""
    return int(parse_duration(value) / timedelta(milliseconds=1))
