"""Engine configuration for pygeoverify."""

from __future__ import annotations

import dataclasses
import functools
import os
from datetime import timedelta
from typing import Any

from pygeoverify.exceptions import GeoVerifyConfigError
from pygeoverify.models.geofence import AnchorGeofence, Coordinate


def _env_bool(value: str | None, default: bool) -> bool:
    if value is None:
        return default
    normalized = value.strip().lower()
    if normalized in {"1", "true", "yes", "y", "on"}:
        return True
    if normalized in {"0", "false", "no", "n", "off"}:
        return False
    return default


@dataclasses.dataclass(frozen=True)
class VerificationConfig:
    """Thresholds and capacities used by the detectors and the tracker.

    Parameters
    ----------
    office_latitude : float
        Latitude of the registered site (geofence center).
    office_longitude : float
        Longitude of the registered site (geofence center).
    geofence_radius_meters : float
        Accepted radius around the site.
    max_jump_distance_meters : float
        Displacement between consecutive fixes that counts as a jump.
    jump_window_seconds : float
        Only fixes closer together than this are checked for jumps.
    max_accuracy_meters : float
        Reported accuracy above this is considered low confidence.
    max_speed_kmh : float
        Speed between consecutive fixes above this is implausible on foot.
    tracking_duration_minutes : float
        How long a session must collect fixes to complete verification.
    min_updates_for_verification : int
        Fix count considered sufficient if updates stop early.
    update_timeout_seconds : float
        Silence after which a session counts as stalled.
    max_session_age_minutes : float
        Hard ceiling after which the sweep removes a session in any state.
    max_sessions : int
        Soft capacity of the session store.
    max_samples_per_session : int
        Ring-buffer capacity for each session's fixes.
    sweep_interval_seconds : float
        Minimum spacing between age sweeps run from ``tick``.
    enforce_session_capacity : bool
        Reject new sessions when the store is full and nothing inactive
        can be evicted. Off by default (capacity is advisory).
    """

    office_latitude: float
    office_longitude: float
    geofence_radius_meters: float = 200.0
    max_jump_distance_meters: float = 500.0
    jump_window_seconds: float = 30.0
    max_accuracy_meters: float = 50.0
    max_speed_kmh: float = 100.0
    tracking_duration_minutes: float = 5.0
    min_updates_for_verification: int = 3
    update_timeout_seconds: float = 60.0
    max_session_age_minutes: float = 10.0
    max_sessions: int = 500
    max_samples_per_session: int = 60
    sweep_interval_seconds: float = 60.0
    enforce_session_capacity: bool = False

    def __post_init__(self) -> None:
        if not -90.0 <= self.office_latitude <= 90.0:
            raise GeoVerifyConfigError(f"office_latitude must be within [-90, 90], got {self.office_latitude}")
        if not -180.0 <= self.office_longitude <= 180.0:
            raise GeoVerifyConfigError(f"office_longitude must be within [-180, 180], got {self.office_longitude}")
        for name in (
            "geofence_radius_meters",
            "max_jump_distance_meters",
            "jump_window_seconds",
            "max_accuracy_meters",
            "max_speed_kmh",
            "tracking_duration_minutes",
            "update_timeout_seconds",
            "max_session_age_minutes",
            "sweep_interval_seconds",
        ):
            if getattr(self, name) <= 0:
                raise GeoVerifyConfigError(f"{name} must be positive, got {getattr(self, name)}")
        for name in ("max_sessions", "max_samples_per_session", "min_updates_for_verification"):
            if getattr(self, name) < 1:
                raise GeoVerifyConfigError(f"{name} must be at least 1, got {getattr(self, name)}")

    @functools.cached_property
    def anchor(self) -> AnchorGeofence:
        """The registered site as a geofence."""
        return AnchorGeofence(
            center=Coordinate(latitude=self.office_latitude, longitude=self.office_longitude),
            radius_meters=self.geofence_radius_meters,
        )

    @property
    def required_duration(self) -> timedelta:
        return timedelta(minutes=self.tracking_duration_minutes)

    @property
    def update_timeout(self) -> timedelta:
        return timedelta(seconds=self.update_timeout_seconds)

    @property
    def max_session_age(self) -> timedelta:
        return timedelta(minutes=self.max_session_age_minutes)

    @property
    def sweep_interval(self) -> timedelta:
        return timedelta(seconds=self.sweep_interval_seconds)

    @classmethod
    def from_env(cls, **overrides: Any) -> VerificationConfig:
        """Create configuration from environment variables.

        Reads ``GEOVERIFY_OFFICE_LATITUDE``, ``GEOVERIFY_OFFICE_LONGITUDE``
        and the optional ``GEOVERIFY_*`` variables named after each field.
        Explicit keyword arguments override environment values.

        Parameters
        ----------
        **overrides
            Explicit field values that take precedence over env vars.

        Returns
        -------
        VerificationConfig
            Populated configuration.

        Raises
        ------
        GeoVerifyConfigError
            If a required value is missing or a value cannot be parsed.
        """
        env = os.environ
        config_kwargs: dict[str, Any] = {}

        for field in dataclasses.fields(cls):
            if field.name in overrides:
                continue
            raw = env.get(f"GEOVERIFY_{field.name.upper()}")
            if raw is None:
                continue
            if field.type in ("bool", bool):
                config_kwargs[field.name] = _env_bool(raw, bool(field.default))
                continue
            try:
                if field.type in ("int", int):
                    config_kwargs[field.name] = int(raw)
                else:
                    config_kwargs[field.name] = float(raw)
            except ValueError as exc:
                raise GeoVerifyConfigError(f"GEOVERIFY_{field.name.upper()} is not a number: {raw!r}") from exc

        config_kwargs.update(overrides)

        for required in ("office_latitude", "office_longitude"):
            if required not in config_kwargs:
                raise GeoVerifyConfigError(f"GEOVERIFY_{required.upper()} is required")

        return cls(**config_kwargs)
