"""Verification session, analysis and verdict models."""

from __future__ import annotations

from collections import deque
from dataclasses import dataclass, field
from datetime import datetime
from enum import StrEnum

from pydantic import Field

from pygeoverify.models._base import GeoBaseModel, UtcDateTime
from pygeoverify.models.anomaly import Anomaly, Severity
from pygeoverify.models.geofence import AnchorGeofence
from pygeoverify.models.sample import GeoSample


class StopReason(StrEnum):
    COMPLETED = "COMPLETED"
    ANOMALY = "ANOMALY"
    TIMEOUT = "TIMEOUT"
    FORCED = "FORCED"


class VerificationStatus(StrEnum):
    OK = "OK"
    FLAGGED = "FLAGGED"


class SessionState(StrEnum):
    CREATED = "CREATED"
    ACCUMULATING = "ACCUMULATING"
    STOPPED = "STOPPED"
    FORCE_STOPPED = "FORCE_STOPPED"


class SessionAnalysis(GeoBaseModel):
    """Full-history re-analysis computed when a session closes."""

    anomalies: tuple[Anomaly, ...] = ()
    severity: Severity = Severity.NONE
    summary: str = ""

    @property
    def has_anomaly(self) -> bool:
        return bool(self.anomalies)

    @property
    def anomaly_count(self) -> int:
        return len(self.anomalies)


class FinalVerdict(GeoBaseModel):
    """Outcome recorded exactly once, when a session is stopped normally."""

    closed_at: UtcDateTime
    reason: StopReason
    status: VerificationStatus
    anomaly_summary: str
    duration_seconds: float = Field(ge=0)
    sample_count: int = Field(ge=0)
    analysis: SessionAnalysis = Field(default_factory=SessionAnalysis)


class SessionSnapshot(GeoBaseModel):
    """Read-only copy of a session handed out by the tracker."""

    subject_id: str
    subject_label: str
    started_at: UtcDateTime
    last_sample_at: UtcDateTime
    active: bool
    state: SessionState
    anchor: AnchorGeofence
    samples: tuple[GeoSample, ...]
    anomalies: tuple[Anomaly, ...]
    sample_count: int
    verdict: FinalVerdict | None = None


@dataclass(slots=True)
class VerificationSession:
    """Mutable per-subject session. Owned exclusively by the tracker.

    ``samples`` is a ring buffer: once it holds ``maxlen`` fixes the
    oldest one is dropped for each new fix. ``anomalies`` is append-only.
    """

    subject_id: str
    subject_label: str
    started_at: datetime
    last_sample_at: datetime
    anchor: AnchorGeofence
    samples: deque[GeoSample]
    anomalies: list[Anomaly] = field(default_factory=list)
    sample_count: int = 1
    active: bool = True
    verdict: FinalVerdict | None = None

    @classmethod
    def open(
        cls,
        subject_id: str,
        subject_label: str,
        initial_sample: GeoSample,
        *,
        anchor: AnchorGeofence,
        now: datetime,
        capacity: int,
        initial_anomaly: Anomaly | None = None,
    ) -> VerificationSession:
        return cls(
            subject_id=subject_id,
            subject_label=subject_label,
            started_at=now,
            last_sample_at=now,
            anchor=anchor,
            samples=deque([initial_sample], maxlen=capacity),
            anomalies=[initial_anomaly] if initial_anomaly is not None else [],
        )

    @property
    def state(self) -> SessionState:
        if self.active:
            return SessionState.ACCUMULATING if self.sample_count > 1 else SessionState.CREATED
        return SessionState.STOPPED if self.verdict is not None else SessionState.FORCE_STOPPED

    @property
    def last_sample(self) -> GeoSample | None:
        return self.samples[-1] if self.samples else None

    def elapsed_seconds(self, now: datetime) -> float:
        return max(0.0, (now - self.started_at).total_seconds())

    def idle_seconds(self, now: datetime) -> float:
        return max(0.0, (now - self.last_sample_at).total_seconds())

    def snapshot(self) -> SessionSnapshot:
        return SessionSnapshot(
            subject_id=self.subject_id,
            subject_label=self.subject_label,
            started_at=self.started_at,
            last_sample_at=self.last_sample_at,
            active=self.active,
            state=self.state,
            anchor=self.anchor,
            samples=tuple(self.samples),
            anomalies=tuple(self.anomalies),
            sample_count=self.sample_count,
            verdict=self.verdict,
        )
