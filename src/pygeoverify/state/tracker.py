"""Verification session tracker.

This is the only component that mutates session state. Lifecycle
operations return a result envelope; expected failures are reported as a
:class:`TrackingError` and unexpected ones as ``INTERNAL_ERROR``, so a
single malformed fix can never take the host down. Maintenance and
read-only operations log unexpected errors and return an empty value.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Mapping
from datetime import UTC, datetime
from typing import Any, TypeVar

from pydantic import ValidationError

from pygeoverify import geo
from pygeoverify._redact import redact_for_log
from pygeoverify.config import VerificationConfig
from pygeoverify.detection.analysis import analyze_session, summarize_anomalies
from pygeoverify.detection.rules import detect_incremental, detect_wrong_location
from pygeoverify.exceptions import (
    AlreadyTrackingError,
    CapacityExceededError,
    InvalidSampleError,
    NoSessionError,
    SessionError,
    SessionInactiveError,
)
from pygeoverify.models.anomaly import Anomaly, AnomalyKind
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
    SessionSnapshot,
    StopReason,
    VerificationSession,
    VerificationStatus,
)
from pygeoverify.state.backend import InMemorySessionBackend, KeyedLocks, SessionBackend

_logger = logging.getLogger(__name__)

T = TypeVar("T")
TResult = TypeVar("TResult", bound=OperationResult)

SampleInput = GeoSample | Mapping[str, Any]


def _utcnow() -> datetime:
    return datetime.now(UTC)


def _coerce_sample(sample: SampleInput | None, now: datetime) -> GeoSample:
    """Parse and validate a raw fix, stamping it with *now* if it has no time."""
    if sample is None:
        raise InvalidSampleError("Invalid location coordinates", reason="missing")
    if not isinstance(sample, GeoSample):
        if not isinstance(sample, Mapping):
            raise InvalidSampleError("Invalid location coordinates", reason=f"unsupported type {type(sample).__name__}")
        try:
            sample = GeoSample.model_validate(dict(sample))
        except ValidationError as exc:
            raise InvalidSampleError("Invalid location coordinates", reason=str(exc)) from exc
    if not geo.is_valid_sample(sample):
        raise InvalidSampleError("Invalid location coordinates", reason="out of range")
    return sample.stamped(now)


class SessionTracker:
    """Owns per-subject verification sessions.

    Usage::

        tracker = SessionTracker(VerificationConfig.from_env())
        started = tracker.start_tracking("42", {"lat": 41.31, "lng": 69.24, "accuracy": 12})
        update = tracker.add_sample("42", {"lat": 41.3111, "lng": 69.2406})
        if update.should_stop_tracking:
            verdict = tracker.stop_tracking("42").verdict

    The tracker owns no timer. Hosts call :meth:`tick` periodically (or a
    test drives it with a fake ``clock``) to sweep expired sessions and
    find stalled ones.
    """

    def __init__(
        self,
        config: VerificationConfig,
        *,
        backend: SessionBackend | None = None,
        clock: Callable[[], datetime] = _utcnow,
        on_anomaly: Callable[[str, Anomaly], None] | None = None,
    ) -> None:
        self._config = config
        self._backend: SessionBackend = backend if backend is not None else InMemorySessionBackend()
        self._clock = clock
        self._on_anomaly = on_anomaly
        self._locks = KeyedLocks()
        self._last_sweep_at: datetime | None = None

    @property
    def config(self) -> VerificationConfig:
        return self._config

    # ------------------------------------------------------------------
    # Operation boundary
    # ------------------------------------------------------------------

    def _guarded(self, operation: str, result_cls: type[TResult], func: Callable[[], TResult]) -> TResult:
        try:
            return func()
        except (InvalidSampleError, SessionError) as exc:
            return result_cls(success=False, error=TrackingError(exc.code), message=str(exc))
        except Exception as exc:  # noqa: BLE001
            _logger.exception("Unexpected error in %s", operation)
            return result_cls(success=False, error=TrackingError.INTERNAL_ERROR, message=str(exc))

    def _safely(self, operation: str, default: T, func: Callable[[], T]) -> T:
        """Boundary for operations without a result envelope: log and fall back to *default*."""
        try:
            return func()
        except Exception:  # noqa: BLE001
            _logger.exception("Unexpected error in %s", operation)
            return default

    def _emit(self, subject_id: str, anomalies: list[Anomaly]) -> None:
        if self._on_anomaly is None:
            return
        for anomaly in anomalies:
            try:
                self._on_anomaly(subject_id, anomaly)
            except Exception:  # noqa: BLE001
                _logger.debug("on_anomaly callback failed", exc_info=True)

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def start_tracking(self, subject_id: str | int, initial_sample: SampleInput, label: str = "") -> StartResult:
        """Open a session from *initial_sample*.

        A start outside the site is still opened, but the CRITICAL
        ``WRONG_LOCATION`` finding is recorded and reported through
        ``has_initial_anomaly`` so the caller can reject it immediately.
        """
        key = str(subject_id)
        return self._guarded("start_tracking", StartResult, lambda: self._start(key, initial_sample, label))

    def _start(self, key: str, initial_sample: SampleInput, label: str) -> StartResult:
        with self._locks.hold(key):
            existing = self._backend.get(key)
            if existing is not None and existing.active:
                raise AlreadyTrackingError("User already has an active tracking session", subject_id=key)

            now = self._clock()
            sample = _coerce_sample(initial_sample, now)

            # Replacing this subject's closed session does not grow the store.
            if existing is None and len(self._backend) >= self._config.max_sessions:
                _logger.warning("Session store at capacity: %d sessions", len(self._backend))
                evicted = self._evict_oldest_inactive()
                if evicted is None and self._config.enforce_session_capacity:
                    raise CapacityExceededError("Session store is full", subject_id=key)

            initial_anomaly = detect_wrong_location(sample, self._config, anchor=self._config.anchor)
            session = VerificationSession.open(
                key,
                label,
                sample,
                anchor=self._config.anchor,
                now=now,
                capacity=self._config.max_samples_per_session,
                initial_anomaly=initial_anomaly,
            )
            self._backend.set(key, session)

        _logger.info(
            "Started tracking subject=%s at %s accuracy=%s",
            key,
            redact_for_log({"lat": sample.latitude, "lng": sample.longitude}),
            f"{sample.accuracy:.1f}m" if sample.accuracy is not None else "unknown",
        )
        if initial_anomaly is not None:
            _logger.warning("Initial anomaly for subject=%s: %s", key, initial_anomaly.kind)
            self._emit(key, [initial_anomaly])

        return StartResult(
            success=True,
            session=session.snapshot(),
            has_initial_anomaly=initial_anomaly is not None,
            initial_anomaly=initial_anomaly,
        )

    def add_sample(self, subject_id: str | int, sample: SampleInput) -> SampleResult:
        """Append a fix to the subject's active session and run the per-fix detectors."""
        key = str(subject_id)
        return self._guarded("add_sample", SampleResult, lambda: self._add(key, sample))

    def _add(self, key: str, raw_sample: SampleInput) -> SampleResult:
        with self._locks.hold(key):
            session = self._backend.get(key)
            if session is None:
                raise NoSessionError("No active tracking session found", subject_id=key)
            if not session.active:
                raise SessionInactiveError("Tracking session is no longer active", subject_id=key)

            now = self._clock()
            try:
                sample = _coerce_sample(raw_sample, now)
            except InvalidSampleError:
                _logger.warning("Invalid location update for subject=%s", key)
                raise

            prev = session.last_sample
            session.samples.append(sample)
            session.last_sample_at = now
            session.sample_count += 1

            new_anomalies = detect_incremental(prev, sample, self._config, anchor=session.anchor)
            session.anomalies.extend(new_anomalies)

            elapsed = session.elapsed_seconds(now)
            required = self._config.required_duration.total_seconds()
            result = SampleResult(
                success=True,
                new_anomalies=tuple(new_anomalies),
                total_anomalies=len(session.anomalies),
                sample_count=session.sample_count,
                should_stop_tracking=elapsed >= required,
                tracking_progress=min(100.0, elapsed / required * 100),
            )

        if new_anomalies:
            _logger.warning(
                "Anomalies detected for subject=%s: %s",
                key,
                ", ".join(anomaly.kind for anomaly in new_anomalies),
            )
            self._emit(key, new_anomalies)
        return result

    def stop_tracking(self, subject_id: str | int, reason: StopReason = StopReason.COMPLETED) -> StopResult:
        """Close the session and record its verdict.

        Stopping a session that already has a verdict returns that verdict
        again with ``already_stopped=True``. A force-stopped session never
        gets a verdict and reports ``SESSION_INACTIVE``.
        """
        key = str(subject_id)
        return self._guarded("stop_tracking", StopResult, lambda: self._stop(key, StopReason(reason)))

    def _stop(self, key: str, reason: StopReason) -> StopResult:
        with self._locks.hold(key):
            session = self._backend.get(key)
            if session is None:
                raise NoSessionError("No tracking session found", subject_id=key)
            if not session.active:
                if session.verdict is None:
                    raise SessionInactiveError("Tracking session was force-stopped", subject_id=key)
                return StopResult(
                    success=True,
                    session=session.snapshot(),
                    verdict=session.verdict,
                    already_stopped=True,
                )

            now = self._clock()
            analysis = analyze_session(session, self._config, now=now)
            # Silence is only observable at close, so it is recorded here.
            stalled = [a for a in analysis.anomalies if a.kind == AnomalyKind.STOPPED_SENDING]
            recorded = [*session.anomalies, *stalled]

            status = VerificationStatus.FLAGGED if recorded else VerificationStatus.OK
            verdict = FinalVerdict(
                closed_at=now,
                reason=reason,
                status=status,
                anomaly_summary=summarize_anomalies(recorded),
                duration_seconds=session.elapsed_seconds(now),
                sample_count=session.sample_count,
                analysis=analysis,
            )

            # Committed together: a stop that fails above leaves the session active.
            session.anomalies.extend(stalled)
            session.verdict = verdict
            session.active = False
            snapshot = session.snapshot()

        _logger.info(
            "Stopped tracking subject=%s reason=%s duration=%.0fs updates=%d status=%s",
            key,
            reason,
            verdict.duration_seconds,
            verdict.sample_count,
            status,
        )
        if status == VerificationStatus.FLAGGED:
            _logger.warning("Anomalies for subject=%s: %d - %s", key, len(snapshot.anomalies), verdict.anomaly_summary)
        self._emit(key, stalled)
        return StopResult(success=True, session=snapshot, verdict=verdict)

    def force_stop_tracking(self, subject_id: str | int) -> bool:
        """Deactivate a session without a verdict.

        Returns ``True`` if an active session was stopped. Missing or
        already inactive sessions are left alone.
        """
        key = str(subject_id)
        return self._safely("force_stop_tracking", False, lambda: self._force_stop(key))

    def _force_stop(self, key: str) -> bool:
        with self._locks.hold(key):
            session = self._backend.get(key)
            if session is None or not session.active:
                return False
            session.active = False
        _logger.info("Force stopped tracking for subject=%s", key)
        return True

    # ------------------------------------------------------------------
    # Maintenance
    # ------------------------------------------------------------------

    def _evict_oldest_inactive(self) -> str | None:
        candidates = [(key, s) for key, s in self._backend.items() if not s.active]
        for key, session in sorted(candidates, key=lambda item: item[1].started_at):
            # Another thread may have replaced or removed it since the snapshot.
            if self._backend.delete_if(key, session):
                _logger.info("Removed oldest inactive session for subject=%s to make room", key)
                return key
        return None

    def sweep(self, now: datetime | None = None) -> list[str]:
        """Remove every session, active or not, older than ``max_session_age``."""
        return self._safely("sweep", [], lambda: self._sweep(now or self._clock()))

    def _sweep(self, now: datetime) -> list[str]:
        max_age = self._config.max_session_age
        removed: list[str] = []
        for key, session in self._backend.items():
            if now - session.started_at > max_age and self._backend.delete_if(key, session):
                removed.append(key)
        if removed:
            _logger.info("Cleaned up %d old tracking sessions", len(removed))
        return removed

    def check_stalled_sessions(self, now: datetime | None = None) -> list[StalledSession]:
        """Active sessions whose updates stopped before the required duration."""
        return self._safely("check_stalled_sessions", [], lambda: self._check_stalled(now or self._clock()))

    def _check_stalled(self, now: datetime) -> list[StalledSession]:
        required = self._config.required_duration.total_seconds()
        timeout = self._config.update_timeout_seconds
        stalled: list[StalledSession] = []
        for key, session in self._backend.items():
            if not session.active:
                continue
            elapsed = session.elapsed_seconds(now)
            idle = session.idle_seconds(now)
            if elapsed < required and idle > timeout:
                stalled.append(
                    StalledSession(
                        subject_id=key,
                        subject_label=session.subject_label,
                        seconds_since_last_sample=idle,
                        elapsed_seconds=elapsed,
                        sample_count=session.sample_count,
                        has_enough_data=session.sample_count >= self._config.min_updates_for_verification,
                    )
                )
        return stalled

    def tick(self, now: datetime | None = None) -> TickReport:
        """Periodic entry point for the host scheduler.

        Sweeps expired sessions at most once per ``sweep_interval`` and
        reports stalled sessions on every call. Stopping them is left to
        the caller (typically ``stop_tracking(subject, StopReason.TIMEOUT)``).
        A failing backend yields an empty report.
        """
        return self._safely("tick", TickReport(), lambda: self._tick(now or self._clock()))

    def _tick(self, now: datetime) -> TickReport:
        swept: list[str] = []
        did_sweep = False
        if self._last_sweep_at is None or now - self._last_sweep_at >= self._config.sweep_interval:
            swept = self._sweep(now)
            self._last_sweep_at = now
            did_sweep = True
        return TickReport(
            swept_subject_ids=tuple(swept),
            stalled=tuple(self._check_stalled(now)),
            swept=did_sweep,
        )

    def clear_all_sessions(self) -> int:
        return self._safely("clear_all_sessions", 0, self._clear)

    def _clear(self) -> int:
        count = self._backend.clear()
        _logger.info("Cleared all %d tracking sessions", count)
        return count

    # ------------------------------------------------------------------
    # Read-only views
    # ------------------------------------------------------------------

    def _snapshot(self, key: str) -> SessionSnapshot | None:
        # Under the key lock so a concurrent stop is never seen half applied.
        with self._locks.hold(key):
            session = self._backend.get(key)
            return session.snapshot() if session is not None else None

    def has_active_session(self, subject_id: str | int) -> bool:
        snapshot = self._safely("has_active_session", None, lambda: self._snapshot(str(subject_id)))
        return snapshot is not None and snapshot.active

    def get_session(self, subject_id: str | int) -> SessionSnapshot | None:
        return self._safely("get_session", None, lambda: self._snapshot(str(subject_id)))

    def get_all_active_sessions(self) -> list[SessionSnapshot]:
        return self._safely("get_all_active_sessions", [], self._active_snapshots)

    def _active_snapshots(self) -> list[SessionSnapshot]:
        snapshots: list[SessionSnapshot] = []
        for key, _ in self._backend.items():
            snapshot = self._snapshot(key)
            if snapshot is not None and snapshot.active:
                snapshots.append(snapshot)
        return snapshots

    def get_statistics(self) -> TrackerStatistics:
        empty = TrackerStatistics(
            total_sessions=0,
            active_sessions=0,
            inactive_sessions=0,
            max_sessions=self._config.max_sessions,
            utilization_percent=0.0,
        )
        return self._safely("get_statistics", empty, self._statistics)

    def _statistics(self) -> TrackerStatistics:
        sessions = [session for _, session in self._backend.items()]
        active = sum(1 for session in sessions if session.active)
        return TrackerStatistics(
            total_sessions=len(sessions),
            active_sessions=active,
            inactive_sessions=len(sessions) - active,
            max_sessions=self._config.max_sessions,
            utilization_percent=round(len(sessions) / self._config.max_sessions * 100, 1),
        )
