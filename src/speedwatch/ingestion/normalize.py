"""Normalization helpers.

Centralizes defensive parsing of values arriving from the database, the
configuration feed and sample sources.
"""

from __future__ import annotations

import math
from datetime import UTC, datetime
from typing import Any

# Values above this are epoch milliseconds rather than seconds.
_MS_THRESHOLD = 1e11


def safe_float(value: Any) -> float | None:
    if value is None or value == "" or value == "--" or isinstance(value, bool):
        return None
    try:
        result = float(value)
    except (TypeError, ValueError):
        return None
    if math.isnan(result):
        return None
    return result


def safe_str(value: Any) -> str | None:
    if value is None:
        return None
    text = str(value).strip()
    return text if text else None


def parse_speed_limit(raw: Any) -> float | None:
    """Parse a remote speed limit value.

    Returns ``None`` for anything that is not a finite, non-negative number.
    """
    value = safe_float(safe_str(raw))
    if value is None or math.isinf(value) or value < 0:
        return None
    return value


def normalize_timestamp_seconds(value: Any) -> float | None:
    """Normalize epoch timestamps to seconds.

    - Empty/missing -> None
    - <= 0 -> None
    - Milliseconds (> 1e11) -> seconds
    """

    if value is None or value == "" or isinstance(value, bool):
        return None
    try:
        ts = float(value)
    except (TypeError, ValueError):
        return None
    if math.isnan(ts) or ts <= 0:
        return None
    if ts > _MS_THRESHOLD:
        ts /= 1000.0
    return ts


def parse_timestamp(value: Any) -> datetime | None:
    """Convert a stored timestamp into a UTC-aware datetime.

    Accepts datetimes, epoch seconds or milliseconds (numbers or numeric
    strings), ISO-8601 strings, and legacy date objects that carry their
    epoch milliseconds under ``time``.
    """
    if value is None:
        return None
    if isinstance(value, datetime):
        return value if value.tzinfo is not None else value.replace(tzinfo=UTC)
    if isinstance(value, dict):
        return parse_timestamp(value.get("time"))

    seconds = normalize_timestamp_seconds(value)
    if seconds is not None:
        return datetime.fromtimestamp(seconds, tz=UTC)

    if isinstance(value, str):
        try:
            parsed = datetime.fromisoformat(value.strip().replace("Z", "+00:00"))
        except ValueError:
            return None
        return parsed if parsed.tzinfo is not None else parsed.replace(tzinfo=UTC)
    return None


def to_epoch_millis(value: datetime) -> int:
    if value.tzinfo is None:
        value = value.replace(tzinfo=UTC)
    return int(round(value.timestamp() * 1000))
