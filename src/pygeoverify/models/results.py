"""Result envelopes returned across the tracker boundary.

Expected failures are reported through ``success``/``error`` rather than
raised, so a host loop can branch on :class:`TrackingError` without
exception handling.
"""

from __future__ import annotations

from enum import StrEnum

from pydantic import Field

from pygeoverify.models._base import GeoBaseModel
from pygeoverify.models.anomaly import Anomaly
from pygeoverify.models.session import FinalVerdict, SessionAnalysis, SessionSnapshot, VerificationStatus


class TrackingError(StrEnum):
    ALREADY_TRACKING = "ALREADY_TRACKING"
    INVALID_LOCATION = "INVALID_LOCATION"
    NO_SESSION = "NO_SESSION"
    SESSION_INACTIVE = "SESSION_INACTIVE"
    CAPACITY_EXCEEDED = "CAPACITY_EXCEEDED"
    INTERNAL_ERROR = "INTERNAL_ERROR"


class OperationResult(GeoBaseModel):
    success: bool
    error: TrackingError | None = None
    message: str = ""


class StartResult(OperationResult):
    session: SessionSnapshot | None = None
    has_initial_anomaly: bool = False
    initial_anomaly: Anomaly | None = None


class SampleResult(OperationResult):
    new_anomalies: tuple[Anomaly, ...] = ()
    total_anomalies: int = 0
    sample_count: int = 0
    should_stop_tracking: bool = False
    tracking_progress: float = Field(default=0.0, ge=0, le=100)

    @property
    def has_anomalies(self) -> bool:
        return bool(self.new_anomalies)


class StopResult(OperationResult):
    session: SessionSnapshot | None = None
    verdict: FinalVerdict | None = None
    already_stopped: bool = False

    @property
    def analysis(self) -> SessionAnalysis | None:
        return self.verdict.analysis if self.verdict is not None else None

    @property
    def verification_status(self) -> VerificationStatus | None:
        return self.verdict.status if self.verdict is not None else None


class StalledSession(GeoBaseModel):
    """An active session whose updates stopped before verification completed."""

    subject_id: str
    subject_label: str
    seconds_since_last_sample: float
    elapsed_seconds: float
    sample_count: int
    has_enough_data: bool


class TickReport(GeoBaseModel):
    swept_subject_ids: tuple[str, ...] = ()
    stalled: tuple[StalledSession, ...] = ()
    swept: bool = False


class TrackerStatistics(GeoBaseModel):
    total_sessions: int
    active_sessions: int
    inactive_sessions: int
    max_sessions: int
    utilization_percent: float
