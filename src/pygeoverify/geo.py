"""Geographic calculations for location verification.

All functions are pure. Distance and speed functions assume their inputs
already passed :func:`is_valid_sample`.
"""

from __future__ import annotations

import math
from typing import Any

from pygeoverify._constants import EARTH_RADIUS_M, MPS_TO_KMH
from pygeoverify.models.geofence import AnchorGeofence, Coordinate, GeofenceCheck
from pygeoverify.models.sample import GeoSample

Point = GeoSample | Coordinate


def distance_meters(a: Point, b: Point) -> float:
    """Haversine great-circle distance between two points, rounded to 0.1 m."""
    phi1 = math.radians(a.latitude)  # type: ignore[arg-type]
    phi2 = math.radians(b.latitude)  # type: ignore[arg-type]
    d_phi = math.radians(b.latitude - a.latitude)  # type: ignore[operator]
    d_lambda = math.radians(b.longitude - a.longitude)  # type: ignore[operator]

    h = math.sin(d_phi / 2) ** 2 + math.cos(phi1) * math.cos(phi2) * math.sin(d_lambda / 2) ** 2
    c = 2 * math.atan2(math.sqrt(h), math.sqrt(1 - h))
    return round(EARTH_RADIUS_M * c, 1)


def elapsed_seconds(a: GeoSample, b: GeoSample) -> float:
    """Seconds from *a* to *b* by capture time; ``0.0`` if either is unstamped."""
    if a.captured_at is None or b.captured_at is None:
        return 0.0
    return (b.captured_at - a.captured_at).total_seconds()


def speed_kmh(a: GeoSample, b: GeoSample) -> float:
    """Average speed from *a* to *b* in km/h, rounded to 0.1.

    Returns ``0.0`` when the time delta is zero or negative.
    """
    dt = elapsed_seconds(a, b)
    if dt <= 0:
        return 0.0
    return round(distance_meters(a, b) / dt * MPS_TO_KMH, 1)


def within_radius(point: Point, anchor: Point, radius_meters: float) -> bool:
    return distance_meters(point, anchor) <= radius_meters


def check_geofence(point: Point, anchor: AnchorGeofence) -> GeofenceCheck:
    distance = distance_meters(point, anchor.center)
    return GeofenceCheck(is_inside=distance <= anchor.radius_meters, distance=distance)


def is_valid_sample(sample: Any) -> bool:
    """Return ``True`` when *sample* carries numeric, in-range coordinates."""
    if sample is None:
        return False
    latitude = getattr(sample, "latitude", None)
    longitude = getattr(sample, "longitude", None)
    for value in (latitude, longitude):
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            return False
        if not math.isfinite(value):
            return False
    return -90.0 <= latitude <= 90.0 and -180.0 <= longitude <= 180.0  # type: ignore[operator]


def format_distance(meters: float) -> str:
    """Human-readable distance: ``"850m"`` below a kilometre, ``"1.2km"`` above."""
    if meters < 1000:
        return f"{round(meters)}m"
    return f"{meters / 1000:.1f}km"
