"""Helpers for privacy-safe logging.

Location fixes identify where a person is. Coordinates are coarsened to
roughly a city block and personal labels are dropped before anything is
written to logs.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from typing import Any

from pygeoverify._constants import LOG_COORDINATE_PRECISION

_COORDINATE_KEYS: frozenset[str] = frozenset({"lat", "lng", "lon", "latitude", "longitude"})

_SENSITIVE_VALUE_KEYS: frozenset[str] = frozenset(
    {
        "label",
        "subject_label",
        "subjectlabel",
        "name",
        "username",
        "phone",
    }
)


def redact_for_log(value: Any, *, precision: int = LOG_COORDINATE_PRECISION, _depth: int = 0) -> Any:
    """Return a copy of *value* with coordinates coarsened and labels removed."""
    if _depth > 20:
        return "<max-depth>"

    if value is None or isinstance(value, (str, int, float, bool)):
        return value

    if isinstance(value, Mapping):
        redacted: dict[str, Any] = {}
        for k, v in value.items():
            key = str(k)
            lowered = key.lower()
            if lowered in _SENSITIVE_VALUE_KEYS:
                redacted[key] = "<redacted>"
            elif lowered in _COORDINATE_KEYS and isinstance(v, (int, float)) and not isinstance(v, bool):
                redacted[key] = round(float(v), precision)
            else:
                redacted[key] = redact_for_log(v, precision=precision, _depth=_depth + 1)
        return redacted

    if isinstance(value, Sequence) and not isinstance(value, (bytes, bytearray)):
        return [redact_for_log(v, precision=precision, _depth=_depth + 1) for v in value]

    # Models expose their fields through model_dump.
    dump = getattr(value, "model_dump", None)
    if callable(dump):
        return redact_for_log(dump(), precision=precision, _depth=_depth + 1)

    return repr(value)
