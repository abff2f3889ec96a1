"""Anomaly detection rules.

Each detector is a pure function of one or two fixes plus configuration
and returns at most one :class:`Anomaly`. Pairwise detectors compare a fix
with its immediate predecessor, so callers must feed fixes in arrival
order.
"""

from __future__ import annotations

import logging
from datetime import datetime

from pygeoverify import geo
from pygeoverify._constants import (
    DRIFT_MARGIN_METERS,
    DRIFT_MAX_JUMP_METERS,
    MIN_SPEED_INTERVAL_SECONDS,
    STATIONARY_THRESHOLD_METERS,
)
from pygeoverify._redact import redact_for_log
from pygeoverify.config import VerificationConfig
from pygeoverify.models.anomaly import Anomaly, AnomalyKind, Severity
from pygeoverify.models.geofence import AnchorGeofence
from pygeoverify.models.sample import GeoSample

_logger = logging.getLogger(__name__)


def _point(sample: GeoSample) -> dict[str, float | None]:
    return {"lat": sample.latitude, "lng": sample.longitude}


def _is_benign_drift(prev: GeoSample, curr: GeoSample, distance: float, anchor: AnchorGeofence) -> bool:
    """Both fixes near the site and a sub-kilometre hop: GPS drift, not relocation."""
    allowed = anchor.radius_meters + DRIFT_MARGIN_METERS
    both_near = (
        geo.distance_meters(prev, anchor.center) <= allowed and geo.distance_meters(curr, anchor.center) <= allowed
    )
    return both_near and distance < DRIFT_MAX_JUMP_METERS


def _outside_with_confidence(sample: GeoSample, anchor: AnchorGeofence) -> tuple[bool, float, float]:
    """Whether *sample* is outside *anchor* even after widening by its accuracy.

    Returns ``(outside, distance, confidence_margin)``.
    """
    check = geo.check_geofence(sample, anchor)
    margin = anchor.radius_meters + sample.accuracy_or_zero
    return (not check.is_inside and check.distance > margin), check.distance, margin


def detect_sudden_jump(
    prev: GeoSample,
    curr: GeoSample,
    config: VerificationConfig,
    *,
    anchor: AnchorGeofence | None = None,
) -> Anomaly | None:
    """Flag consecutive fixes too far apart for the time between them."""
    anchor = anchor or config.anchor
    dt = geo.elapsed_seconds(prev, curr)
    # Out-of-order device timestamps say nothing about travel time.
    if dt <= 0 or dt >= config.jump_window_seconds:
        return None

    distance = geo.distance_meters(prev, curr)
    if distance <= config.max_jump_distance_meters:
        return None

    if _is_benign_drift(prev, curr, distance, anchor):
        _logger.debug("Jump of %.0fm in %.0fs near site treated as drift", distance, dt)
        return None

    return Anomaly(
        kind=AnomalyKind.SUDDEN_JUMP,
        description=f"Location jumped {round(distance)}m in {round(dt)}s",
        severity=Severity.HIGH,
        evidence={
            "distance": distance,
            "time_diff": dt,
            "from": _point(prev),
            "to": _point(curr),
        },
    )


def detect_left_geofence(
    sample: GeoSample,
    config: VerificationConfig,
    *,
    anchor: AnchorGeofence | None = None,
) -> Anomaly | None:
    """Flag a fix that is clearly outside the site, given its accuracy."""
    anchor = anchor or config.anchor
    outside, distance, margin = _outside_with_confidence(sample, anchor)
    if not outside:
        return None

    accuracy = sample.accuracy_or_zero
    return Anomaly(
        kind=AnomalyKind.LEFT_GEOFENCE,
        description=(
            f"User is {geo.format_distance(distance)} from office "
            f"(outside {round(anchor.radius_meters)}m radius, accuracy: {round(accuracy)}m)"
        ),
        severity=Severity.HIGH,
        evidence={
            "distance": distance,
            "accuracy": accuracy,
            "confidence_margin": margin,
            "location": _point(sample),
        },
    )


def detect_low_accuracy(prev: GeoSample, curr: GeoSample, config: VerificationConfig) -> Anomaly | None:
    """Flag a low-accuracy fix, but only when the subject is also moving.

    Indoor fixes are routinely imprecise; a stationary subject with poor
    accuracy is not penalised.
    """
    accuracy = curr.accuracy
    if accuracy is None or accuracy <= config.max_accuracy_meters:
        return None

    displacement = geo.distance_meters(prev, curr)
    if displacement <= STATIONARY_THRESHOLD_METERS:
        return None

    return Anomaly(
        kind=AnomalyKind.LOW_ACCURACY,
        description=(
            f"GPS accuracy is {round(accuracy)}m (threshold: {round(config.max_accuracy_meters)}m) while moving"
        ),
        severity=Severity.MEDIUM,
        evidence={
            "accuracy": accuracy,
            "threshold": config.max_accuracy_meters,
            "displacement": displacement,
        },
    )


def detect_stopped_sending(
    *,
    started_at: datetime,
    last_sample_at: datetime,
    sample_count: int,
    now: datetime,
    config: VerificationConfig,
) -> Anomaly | None:
    """Flag a session whose updates went silent before the required duration.

    Severity is ``LOW`` when enough fixes were already collected (the user
    most likely switched apps) and ``HIGH`` when verification is incomplete.
    """
    since_last = (now - last_sample_at).total_seconds()
    total = (now - started_at).total_seconds()
    required = config.required_duration.total_seconds()

    if total >= required or since_last <= config.update_timeout_seconds:
        return None

    evidence = {
        "time_since_last_update": since_last,
        "total_tracking_time": total,
        "required_duration": required,
        "update_count": sample_count,
    }
    if sample_count >= config.min_updates_for_verification:
        return Anomaly(
            kind=AnomalyKind.STOPPED_SENDING,
            description=(
                f"Location updates stopped after {round(total)}s, "
                f"but sufficient data collected ({sample_count} updates)"
            ),
            severity=Severity.LOW,
            evidence=evidence,
        )
    return Anomaly(
        kind=AnomalyKind.STOPPED_SENDING,
        description=(
            f"Location updates stopped after {round(total)}s with only {sample_count} updates "
            f"(minimum: {config.min_updates_for_verification})"
        ),
        severity=Severity.HIGH,
        evidence=evidence,
    )


def detect_impossible_speed(
    prev: GeoSample,
    curr: GeoSample,
    config: VerificationConfig,
    *,
    anchor: AnchorGeofence | None = None,
) -> Anomaly | None:
    """Flag movement faster than a person could plausibly travel."""
    anchor = anchor or config.anchor
    dt = geo.elapsed_seconds(prev, curr)
    # Bursts of fixes within the same few seconds give meaningless speeds.
    if dt < MIN_SPEED_INTERVAL_SECONDS:
        return None

    speed = geo.speed_kmh(prev, curr)
    if speed <= config.max_speed_kmh:
        return None

    distance = geo.distance_meters(prev, curr)
    if _is_benign_drift(prev, curr, distance, anchor):
        _logger.debug("Speed spike of %.1f km/h near site treated as drift", speed)
        return None

    return Anomaly(
        kind=AnomalyKind.IMPOSSIBLE_SPEED,
        description=f"Movement speed is {speed:.1f} km/h (threshold: {round(config.max_speed_kmh)} km/h)",
        severity=Severity.HIGH,
        evidence={
            "speed": speed,
            "threshold": config.max_speed_kmh,
            "distance": distance,
            "from": _point(prev),
            "to": _point(curr),
        },
    )


def detect_wrong_location(
    sample: GeoSample,
    config: VerificationConfig,
    *,
    anchor: AnchorGeofence | None = None,
) -> Anomaly | None:
    """Check the fix a session starts from. An untrustworthy start is CRITICAL."""
    anchor = anchor or config.anchor
    outside, distance, margin = _outside_with_confidence(sample, anchor)
    accuracy = sample.accuracy_or_zero

    if not outside:
        _logger.debug("Initial fix accepted: %.0fm from site (margin %.0fm)", distance, margin)
        return None

    _logger.warning(
        "Initial fix rejected: %.0fm from site (margin %.0fm) at %s",
        distance,
        margin,
        redact_for_log(_point(sample)),
    )
    return Anomaly(
        kind=AnomalyKind.WRONG_LOCATION,
        description=f"Check-in location is {geo.format_distance(distance)} from office (accuracy: {round(accuracy)}m)",
        severity=Severity.CRITICAL,
        evidence={
            "distance": distance,
            "accuracy": accuracy,
            "confidence_margin": margin,
            "location": _point(sample),
        },
    )


def detect_incremental(
    prev: GeoSample | None,
    curr: GeoSample,
    config: VerificationConfig,
    *,
    anchor: AnchorGeofence | None = None,
) -> list[Anomaly]:
    """Run the per-fix detectors for *curr* against its predecessor.

    Order: sudden jump, impossible speed, left geofence, low accuracy.
    """
    anchor = anchor or config.anchor
    found: list[Anomaly | None] = []
    if prev is not None:
        found.append(detect_sudden_jump(prev, curr, config, anchor=anchor))
        found.append(detect_impossible_speed(prev, curr, config, anchor=anchor))
    found.append(detect_left_geofence(curr, config, anchor=anchor))
    if prev is not None:
        found.append(detect_low_accuracy(prev, curr, config))
    return [anomaly for anomaly in found if anomaly is not None]
