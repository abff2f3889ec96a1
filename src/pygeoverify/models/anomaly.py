"""Anomaly classification models."""

from __future__ import annotations

import enum
from enum import StrEnum
from typing import Any

from pydantic import Field

from pygeoverify.models._base import GeoBaseModel


class AnomalyKind(StrEnum):
    SUDDEN_JUMP = "SUDDEN_JUMP"
    LEFT_GEOFENCE = "LEFT_GEOFENCE"
    MOCK_GPS = "MOCK_GPS"
    LOW_ACCURACY = "LOW_ACCURACY"
    STOPPED_SENDING = "STOPPED_SENDING"
    IMPOSSIBLE_SPEED = "IMPOSSIBLE_SPEED"
    WRONG_LOCATION = "WRONG_LOCATION"


class Severity(enum.IntEnum):
    """Fraud likelihood, ordered ``NONE < LOW < MEDIUM < HIGH < CRITICAL``.

    ``NONE`` only appears as the overall severity of a clean session;
    individual anomalies are always ``LOW`` or above.
    """

    NONE = 0
    LOW = 1
    MEDIUM = 2
    HIGH = 3
    CRITICAL = 4


# Fixed per-kind wording used by summaries and user-facing messages.
ANOMALY_DESCRIPTIONS: dict[AnomalyKind, str] = {
    AnomalyKind.SUDDEN_JUMP: "Location jumped farther than allowed in a short time",
    AnomalyKind.LEFT_GEOFENCE: "User left office area during verification",
    AnomalyKind.MOCK_GPS: "Mock GPS location detected",
    AnomalyKind.LOW_ACCURACY: "GPS accuracy too low while moving",
    AnomalyKind.STOPPED_SENDING: "Location updates stopped before verification completed",
    AnomalyKind.IMPOSSIBLE_SPEED: "Movement speed exceeds plausible limit",
    AnomalyKind.WRONG_LOCATION: "Initial check-in location outside office geofence",
}


class Anomaly(GeoBaseModel):
    """A structured finding that fixes are inconsistent with genuine presence."""

    kind: AnomalyKind
    description: str
    severity: Severity
    evidence: dict[str, Any] = Field(default_factory=dict)
