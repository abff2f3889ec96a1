from __future__ import annotations

from datetime import timedelta

import pytest
from conftest import ANCHOR_LAT, ANCHOR_LNG, T0, offset

from pygeoverify import geo
from pygeoverify.models.geofence import AnchorGeofence, Coordinate
from pygeoverify.models.sample import GeoSample

ANCHOR = AnchorGeofence(center=Coordinate(latitude=ANCHOR_LAT, longitude=ANCHOR_LNG), radius_meters=200)


def _sample(lat: float, lng: float, seconds: float = 0.0) -> GeoSample:
    return GeoSample(latitude=lat, longitude=lng, captured_at=T0 + timedelta(seconds=seconds))


# ------------------------------------------------------------------
# distance_meters
# ------------------------------------------------------------------


class TestDistance:
    @pytest.mark.parametrize(
        ("a", "b"),
        [
            ((41.311081, 69.240562), (41.320000, 69.250000)),
            ((0.0, 0.0), (0.0, 179.9)),
            ((-33.8688, 151.2093), (51.5074, -0.1278)),
            ((89.9, 10.0), (-89.9, -170.0)),
        ],
    )
    def test_symmetric(self, a: tuple[float, float], b: tuple[float, float]) -> None:
        pa, pb = _sample(*a), _sample(*b)
        assert geo.distance_meters(pa, pb) == pytest.approx(geo.distance_meters(pb, pa), abs=0.1)

    def test_identical_points_are_zero(self) -> None:
        point = _sample(ANCHOR_LAT, ANCHOR_LNG)
        assert geo.distance_meters(point, point) == 0.0

    def test_one_degree_of_latitude(self) -> None:
        # 6371 km * pi / 180
        assert geo.distance_meters(_sample(0.0, 0.0), _sample(1.0, 0.0)) == pytest.approx(111_194.9, abs=0.1)

    def test_rounded_to_decimeters(self) -> None:
        distance = geo.distance_meters(_sample(*offset()), _sample(*offset(north_m=123.456)))
        assert distance == round(distance, 1)
        assert distance == pytest.approx(123.5, abs=0.1)

    def test_accepts_coordinates(self) -> None:
        lat, lng = offset(north_m=500)
        assert geo.distance_meters(_sample(lat, lng), ANCHOR.center) == pytest.approx(500.0, abs=0.1)


# ------------------------------------------------------------------
# speed_kmh
# ------------------------------------------------------------------


class TestSpeed:
    def test_speed_from_distance_and_time(self) -> None:
        a = _sample(*offset(), seconds=0)
        b = _sample(*offset(north_m=100), seconds=10)
        # 10 m/s
        assert geo.speed_kmh(a, b) == pytest.approx(36.0, abs=0.1)

    def test_zero_when_no_time_elapsed(self) -> None:
        a = _sample(*offset(), seconds=5)
        b = _sample(*offset(north_m=1000), seconds=5)
        assert geo.speed_kmh(a, b) == 0.0

    def test_zero_when_time_runs_backwards(self) -> None:
        a = _sample(*offset(), seconds=10)
        b = _sample(*offset(north_m=1000), seconds=0)
        assert geo.speed_kmh(a, b) == 0.0

    def test_zero_when_unstamped(self) -> None:
        a = GeoSample(latitude=0.0, longitude=0.0)
        b = GeoSample(latitude=1.0, longitude=0.0)
        assert geo.speed_kmh(a, b) == 0.0

    @pytest.mark.parametrize("seconds", [-30.0, -1.0, 0.0, 0.5, 1.0, 60.0])
    def test_never_negative(self, seconds: float) -> None:
        a = _sample(*offset(), seconds=0)
        b = _sample(*offset(north_m=250, east_m=-40), seconds=seconds)
        assert geo.speed_kmh(a, b) >= 0.0


# ------------------------------------------------------------------
# Containment
# ------------------------------------------------------------------


class TestGeofence:
    def test_within_radius_inclusive(self) -> None:
        point = _sample(*offset(north_m=150))
        assert geo.within_radius(point, ANCHOR.center, 200)
        assert not geo.within_radius(point, ANCHOR.center, 100)

    def test_check_geofence_inside(self) -> None:
        result = geo.check_geofence(_sample(*offset(north_m=150)), ANCHOR)
        assert result.is_inside
        assert result.distance == pytest.approx(150.0, abs=0.1)

    def test_check_geofence_outside(self) -> None:
        result = geo.check_geofence(_sample(*offset(north_m=-350)), ANCHOR)
        assert not result.is_inside
        assert result.distance == pytest.approx(350.0, abs=0.1)


# ------------------------------------------------------------------
# Validation and formatting
# ------------------------------------------------------------------


class TestIsValidSample:
    @pytest.mark.parametrize(
        ("lat", "lng"),
        [(0.0, 0.0), (90.0, 180.0), (-90.0, -180.0), (ANCHOR_LAT, ANCHOR_LNG)],
    )
    def test_valid(self, lat: float, lng: float) -> None:
        assert geo.is_valid_sample(GeoSample(latitude=lat, longitude=lng))

    @pytest.mark.parametrize(
        ("lat", "lng"),
        [(90.01, 0.0), (-91.0, 0.0), (0.0, 180.5), (0.0, -181.0), (None, 0.0), (0.0, None)],
    )
    def test_invalid(self, lat: float | None, lng: float | None) -> None:
        assert not geo.is_valid_sample(GeoSample(latitude=lat, longitude=lng))

    def test_unparseable_coordinates_are_invalid(self) -> None:
        sample = GeoSample.model_validate({"lat": "north", "lng": "69.2"})
        assert sample.latitude is None
        assert not geo.is_valid_sample(sample)

    def test_none_is_invalid(self) -> None:
        assert not geo.is_valid_sample(None)


@pytest.mark.parametrize(
    ("meters", "expected"),
    [(0.0, "0m"), (849.6, "850m"), (999.4, "999m"), (1000.0, "1.0km"), (1234.0, "1.2km"), (15_500.0, "15.5km")],
)
def test_format_distance(meters: float, expected: str) -> None:
    assert geo.format_distance(meters) == expected
