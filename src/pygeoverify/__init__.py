"""pygeoverify - Location-based attendance integrity verification."""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("pygeoverify")
except PackageNotFoundError:
    __version__ = "0+local"
from pygeoverify.config import VerificationConfig
from pygeoverify.detection.analysis import analyze_session, format_anomaly_message, summarize_anomalies
from pygeoverify.exceptions import (
    AlreadyTrackingError,
    CapacityExceededError,
    GeoVerifyConfigError,
    GeoVerifyError,
    InvalidSampleError,
    NoSessionError,
    SessionError,
    SessionInactiveError,
)
from pygeoverify.models import (
    AnchorGeofence,
    Anomaly,
    AnomalyKind,
    Coordinate,
    FinalVerdict,
    GeofenceCheck,
    GeoSample,
    SampleResult,
    SessionAnalysis,
    SessionSnapshot,
    SessionState,
    Severity,
    StalledSession,
    StartResult,
    StopReason,
    StopResult,
    TickReport,
    TrackerStatistics,
    TrackingError,
    VerificationStatus,
)
from pygeoverify.state import InMemorySessionBackend, SessionBackend, SessionTracker

__all__ = [
    "__version__",
    "AlreadyTrackingError",
    "AnchorGeofence",
    "Anomaly",
    "AnomalyKind",
    "CapacityExceededError",
    "Coordinate",
    "FinalVerdict",
    "GeoSample",
    "GeoVerifyConfigError",
    "GeoVerifyError",
    "GeofenceCheck",
    "InMemorySessionBackend",
    "InvalidSampleError",
    "NoSessionError",
    "SampleResult",
    "SessionAnalysis",
    "SessionBackend",
    "SessionError",
    "SessionInactiveError",
    "SessionSnapshot",
    "SessionState",
    "SessionTracker",
    "Severity",
    "StalledSession",
    "StartResult",
    "StopReason",
    "StopResult",
    "TickReport",
    "TrackerStatistics",
    "TrackingError",
    "VerificationConfig",
    "VerificationStatus",
    "analyze_session",
    "format_anomaly_message",
    "summarize_anomalies",
]
