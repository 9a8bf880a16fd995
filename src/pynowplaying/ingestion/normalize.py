"""Normalization helpers.

Centralizes lenient parsing of values coming from pages and clients.
"""

from __future__ import annotations

import math
from datetime import UTC, datetime
from typing import Any

# Threshold to distinguish seconds from milliseconds.
_MS_THRESHOLD = 1e11


def safe_float(value: Any) -> float | None:
    if value is None or value == "" or isinstance(value, bool):
        return None
    try:
        result = float(value)
    except (TypeError, ValueError, OverflowError):
        return None
    if not math.isfinite(result):
        return None
    return result


def coerce_seconds(value: Any) -> float:
    """Return *value* as a finite, non-negative number of seconds.

    Anything else (NaN, infinities, negatives, strings that do not parse,
    ``None``) becomes ``0.0``, which downstream means "unknown".
    """
    parsed = safe_float(value)
    if parsed is None or parsed < 0:
        return 0.0
    return parsed


def coerce_text(value: Any) -> str:
    """Return *value* as a string; ``None`` and containers become ``""``."""
    if value is None:
        return ""
    if isinstance(value, str):
        return value
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return str(value)
    return ""


def parse_epoch_timestamp(value: Any) -> datetime | None:
    """Convert an epoch timestamp (seconds **or** milliseconds) to a UTC datetime."""
    if value is None or isinstance(value, datetime):
        return value
    ts = safe_float(value)
    if ts is None or ts <= 0:
        return None
    if ts > _MS_THRESHOLD:
        ts /= 1000.0
    return datetime.fromtimestamp(ts, tz=UTC)


def to_epoch_millis(value: datetime) -> int:
    return int(value.timestamp() * 1000)
