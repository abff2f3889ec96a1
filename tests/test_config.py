from __future__ import annotations

from datetime import timedelta

import pytest

from pygeoverify.config import VerificationConfig
from pygeoverify.exceptions import GeoVerifyConfigError


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    for name in (
        "GEOVERIFY_OFFICE_LATITUDE",
        "GEOVERIFY_OFFICE_LONGITUDE",
        "GEOVERIFY_GEOFENCE_RADIUS_METERS",
        "GEOVERIFY_MAX_SESSIONS",
        "GEOVERIFY_ENFORCE_SESSION_CAPACITY",
    ):
        monkeypatch.delenv(name, raising=False)


def test_defaults() -> None:
    config = VerificationConfig(office_latitude=41.3, office_longitude=69.2)
    assert config.geofence_radius_meters == 200.0
    assert config.max_jump_distance_meters == 500.0
    assert config.max_speed_kmh == 100.0
    assert config.required_duration == timedelta(minutes=5)
    assert config.update_timeout == timedelta(seconds=60)
    assert config.max_session_age == timedelta(minutes=10)
    assert config.max_sessions == 500
    assert not config.enforce_session_capacity


def test_anchor_built_from_site() -> None:
    config = VerificationConfig(office_latitude=41.3, office_longitude=69.2, geofence_radius_meters=150)
    assert config.anchor.center.latitude == 41.3
    assert config.anchor.center.longitude == 69.2
    assert config.anchor.radius_meters == 150
    assert config.anchor is config.anchor


def test_from_env(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("GEOVERIFY_OFFICE_LATITUDE", "41.311081")
    monkeypatch.setenv("GEOVERIFY_OFFICE_LONGITUDE", "69.240562")
    monkeypatch.setenv("GEOVERIFY_GEOFENCE_RADIUS_METERS", "250")
    monkeypatch.setenv("GEOVERIFY_MAX_SESSIONS", "20")
    monkeypatch.setenv("GEOVERIFY_ENFORCE_SESSION_CAPACITY", "yes")

    config = VerificationConfig.from_env()

    assert config.office_latitude == 41.311081
    assert config.geofence_radius_meters == 250.0
    assert config.max_sessions == 20
    assert isinstance(config.max_sessions, int)
    assert config.enforce_session_capacity


def test_overrides_win_over_env(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("GEOVERIFY_OFFICE_LATITUDE", "10")
    monkeypatch.setenv("GEOVERIFY_GEOFENCE_RADIUS_METERS", "not-a-number")

    config = VerificationConfig.from_env(office_latitude=20.0, office_longitude=30.0, geofence_radius_meters=75.0)

    assert config.office_latitude == 20.0
    assert config.geofence_radius_meters == 75.0


def test_missing_site_is_an_error() -> None:
    with pytest.raises(GeoVerifyConfigError, match="OFFICE_LATITUDE"):
        VerificationConfig.from_env(office_longitude=69.2)


def test_unparseable_number(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("GEOVERIFY_MAX_SESSIONS", "lots")
    with pytest.raises(GeoVerifyConfigError, match="GEOVERIFY_MAX_SESSIONS"):
        VerificationConfig.from_env(office_latitude=1.0, office_longitude=1.0)


@pytest.mark.parametrize(
    "overrides",
    [
        {"office_latitude": 95.0},
        {"office_longitude": -200.0},
        {"geofence_radius_meters": 0},
        {"max_speed_kmh": -5},
        {"max_sessions": 0},
        {"max_samples_per_session": 0},
    ],
)
def test_invalid_values_rejected(overrides: dict[str, float]) -> None:
    kwargs: dict[str, float] = {"office_latitude": 41.3, "office_longitude": 69.2, **overrides}
    with pytest.raises(GeoVerifyConfigError):
        VerificationConfig(**kwargs)  # type: ignore[arg-type]


def test_config_is_frozen() -> None:
    config = VerificationConfig(office_latitude=41.3, office_longitude=69.2)
    with pytest.raises(AttributeError):
        config.max_sessions = 1  # type: ignore[misc]
