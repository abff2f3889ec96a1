"""Normalization helpers.

Centralizes defensive parsing of raw device fixes.
"""

from __future__ import annotations

import math
from datetime import UTC, datetime
from typing import Any

from pygeoverify._constants import MS_THRESHOLD


def safe_float(value: Any) -> float | None:
    if value is None or value == "" or isinstance(value, bool):
        return None
    try:
        result = float(value)
    except (TypeError, ValueError):
        return None
    if math.isnan(result) or math.isinf(result):
        return None
    return result


def positive_or_none(value: Any) -> float | None:
    """Parse *value* as a float, dropping zero and negative readings.

    Devices report ``0`` or ``-1`` when horizontal accuracy is unknown.
    """
    parsed = safe_float(value)
    if parsed is None or parsed <= 0:
        return None
    return parsed


def parse_epoch_timestamp(value: Any) -> datetime | None:
    """Convert an epoch timestamp (seconds **or** milliseconds) to a UTC datetime.

    Datetimes pass through; naive ones are assumed to be UTC. ISO-8601
    strings are accepted. Returns ``None`` for missing or unparseable values.
    """
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value if value.tzinfo is not None else value.replace(tzinfo=UTC)
    if isinstance(value, str):
        try:
            parsed = datetime.fromisoformat(value)
        except ValueError:
            parsed = None
        if parsed is not None:
            return parsed if parsed.tzinfo is not None else parsed.replace(tzinfo=UTC)
    ts = safe_float(value)
    if ts is None or ts <= 0:
        return None
    if ts >= MS_THRESHOLD:
        ts /= 1000.0
    try:
        return datetime.fromtimestamp(ts, tz=UTC)
    except (OverflowError, OSError, ValueError):
        return None
