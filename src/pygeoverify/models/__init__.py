"""Data models for location fixes, anomalies, sessions and results."""

from pygeoverify.models._base import GeoBaseModel, UtcDateTime
from pygeoverify.models.anomaly import ANOMALY_DESCRIPTIONS, Anomaly, AnomalyKind, Severity
from pygeoverify.models.geofence import AnchorGeofence, Coordinate, GeofenceCheck
from pygeoverify.models.results import (
    OperationResult,
    SampleResult,
    StalledSession,
    StartResult,
    StopResult,
    TickReport,
    TrackerStatistics,
    TrackingError,
)
from pygeoverify.models.sample import GeoSample
from pygeoverify.models.session import (
    FinalVerdict,
    SessionAnalysis,
    SessionSnapshot,
    SessionState,
    StopReason,
    VerificationSession,
    VerificationStatus,
)

__all__ = [
    "ANOMALY_DESCRIPTIONS",
    "AnchorGeofence",
    "Anomaly",
    "AnomalyKind",
    "Coordinate",
    "FinalVerdict",
    "GeoBaseModel",
    "GeoSample",
    "GeofenceCheck",
    "OperationResult",
    "SampleResult",
    "SessionAnalysis",
    "SessionSnapshot",
    "SessionState",
    "Severity",
    "StalledSession",
    "StartResult",
    "StopReason",
    "StopResult",
    "TickReport",
    "TrackerStatistics",
    "TrackingError",
    "UtcDateTime",
    "VerificationSession",
    "VerificationStatus",
]
