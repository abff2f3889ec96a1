"""Full-session analysis and anomaly reporting."""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from datetime import datetime

from pygeoverify.config import VerificationConfig
from pygeoverify.detection.rules import detect_incremental, detect_stopped_sending
from pygeoverify.models.anomaly import ANOMALY_DESCRIPTIONS, Anomaly, AnomalyKind, Severity
from pygeoverify.models.session import SessionAnalysis, VerificationSession

NO_ANOMALIES_SUMMARY = "No anomalies detected"


def overall_severity(anomalies: Iterable[Anomaly]) -> Severity:
    """Highest severity among *anomalies*, ``Severity.NONE`` when empty."""
    return max((anomaly.severity for anomaly in anomalies), default=Severity.NONE)


def summarize_anomalies(anomalies: Sequence[Anomaly]) -> str:
    """One description per distinct kind, in first-seen order."""
    if not anomalies:
        return NO_ANOMALIES_SUMMARY
    kinds = list(dict.fromkeys(anomaly.kind for anomaly in anomalies))
    return "; ".join(ANOMALY_DESCRIPTIONS.get(kind, str(kind)) for kind in kinds)


def analyze_session(session: VerificationSession, config: VerificationConfig, *, now: datetime) -> SessionAnalysis:
    """Re-run every detector over the session's retained history.

    The initial-location finding cannot be recomputed once the first fix
    has rotated out of the ring buffer, so it is carried over from the
    recorded anomalies. The session itself is not modified.
    """
    anomalies: list[Anomaly] = [a for a in session.anomalies if a.kind == AnomalyKind.WRONG_LOCATION]

    prev = None
    for sample in session.samples:
        anomalies.extend(detect_incremental(prev, sample, config, anchor=session.anchor))
        prev = sample

    if session.samples:
        stalled = detect_stopped_sending(
            started_at=session.started_at,
            last_sample_at=session.last_sample_at,
            sample_count=session.sample_count,
            now=now,
            config=config,
        )
        if stalled is not None:
            anomalies.append(stalled)

    return SessionAnalysis(
        anomalies=tuple(anomalies),
        severity=overall_severity(anomalies),
        summary=summarize_anomalies(anomalies),
    )


def format_anomaly_message(analysis: SessionAnalysis) -> str:
    """User-facing text listing each anomaly kind once, with a repeat count."""
    if not analysis.has_anomaly:
        return ""

    counts: dict[AnomalyKind, int] = {}
    for anomaly in analysis.anomalies:
        counts[anomaly.kind] = counts.get(anomaly.kind, 0) + 1

    lines = ["Attendance verification issue detected:", ""]
    for kind, count in counts.items():
        lines.append(f"- {ANOMALY_DESCRIPTIONS.get(kind, str(kind))}")
        if count > 1:
            lines.append(f"  (Detected {count} times)")
    lines.append("")
    lines.append("Your manager has been notified.")
    return "\n".join(lines)
