from __future__ import annotations

import math
from collections.abc import Callable
from datetime import UTC, datetime, timedelta

import pytest

from pygeoverify._constants import EARTH_RADIUS_M
from pygeoverify.config import VerificationConfig
from pygeoverify.models.sample import GeoSample
from pygeoverify.state.tracker import SessionTracker

ANCHOR_LAT = 41.311081
ANCHOR_LNG = 69.240562
T0 = datetime(2026, 1, 1, 9, 0, tzinfo=UTC)


class FakeClock:
    def __init__(self, start: datetime = T0) -> None:
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, seconds: float) -> datetime:
        self.now += timedelta(seconds=seconds)
        return self.now


def offset(north_m: float = 0.0, east_m: float = 0.0) -> tuple[float, float]:
    """Coordinates *north_m*/*east_m* meters away from the test anchor."""
    lat = ANCHOR_LAT + math.degrees(north_m / EARTH_RADIUS_M)
    lng = ANCHOR_LNG + math.degrees(east_m / (EARTH_RADIUS_M * math.cos(math.radians(ANCHOR_LAT))))
    return lat, lng


SampleFactory = Callable[..., GeoSample]


@pytest.fixture
def at() -> SampleFactory:
    """Build a fix relative to the anchor, ``seconds`` after ``T0``."""

    def _make(
        north_m: float = 0.0,
        east_m: float = 0.0,
        *,
        accuracy: float | None = None,
        seconds: float | None = 0.0,
    ) -> GeoSample:
        lat, lng = offset(north_m, east_m)
        captured_at = T0 + timedelta(seconds=seconds) if seconds is not None else None
        return GeoSample(latitude=lat, longitude=lng, accuracy=accuracy, captured_at=captured_at)

    return _make


@pytest.fixture
def config() -> VerificationConfig:
    return VerificationConfig(office_latitude=ANCHOR_LAT, office_longitude=ANCHOR_LNG, geofence_radius_meters=200)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def tracker(config: VerificationConfig, clock: FakeClock) -> SessionTracker:
    return SessionTracker(config, clock=clock)
