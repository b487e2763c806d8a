"""
Duration parsing shared by the CLI and the rename watcher.
"""

import math
import re
import time
from typing import Optional

_DURATION_PART = re.compile(r"(\d+(?:\.\d+)?)(h|min|m|s)")
_UNIT_SECONDS = {"h": 3600.0, "m": 60.0, "min": 60.0, "s": 1.0}


def parse_duration(value: str) -> float:
    """Parse a duration string like '5m', '1h30m', '10min', '90' into seconds.

    A bare number is taken as seconds. The result is always finite and
    positive.

    Raises:
        ValueError: If the string is empty, not a duration, or not positive
    """
    s = value.strip().lower()
    if not s:
        raise ValueError("empty duration")

    try:
        total = float(s)
    except ValueError:
        total = _sum_parts(s, value)

    if not math.isfinite(total) or total <= 0:
        raise ValueError(f"duration must be positive, got {value!r}")
    return total


def _sum_parts(s: str, value: str) -> float:
    total = 0.0
    pos = 0
    for match in _DURATION_PART.finditer(s):
        if match.start() != pos:
            break
        total += float(match.group(1)) * _UNIT_SECONDS[match.group(2)]
        pos = match.end()
    if pos != len(s):
        raise ValueError(f"invalid duration {value!r}")
    return total


def parse_created_at(value: str, now_ms: Optional[int] = None) -> int:
    """Parse a created-at value into Unix milliseconds.

    The value is either an integer millisecond timestamp or a relative
    duration ("10m", "5min", "1h30m") meaning that long before now.

    Raises:
        ValueError: If the value is empty, malformed, or a non-positive duration
    """
    s = value.strip()
    if not s:
        raise ValueError("empty value")

    if re.fullmatch(r"-?\d+", s):
        return int(s)

    offset_ms = parse_duration(s) * 1000
    if not math.isfinite(offset_ms):
        raise ValueError(f"duration too large: {s!r}")

    if now_ms is None:
        now_ms = int(time.time() * 1000)
    return now_ms - int(offset_ms)
