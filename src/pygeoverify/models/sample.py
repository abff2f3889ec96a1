"""Device location fix model."""

from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator

from pygeoverify._normalize import parse_epoch_timestamp, positive_or_none, safe_float


class GeoSample(BaseModel):
    """One reported device location fix.

    Parsing is lenient: numeric fields are ``None`` when the value is
    absent or unparseable, so a malformed fix still produces a model that
    :func:`pygeoverify.geo.is_valid_sample` can reject.

    Parameters
    ----------
    latitude : float or None
        Latitude in degrees.
    longitude : float or None
        Longitude in degrees.
    accuracy : float or None
        Horizontal accuracy radius in meters. ``None`` when unknown.
    captured_at : datetime or None
        UTC capture time. The tracker stamps fixes that arrive without one.
    """

    model_config = ConfigDict(
        frozen=True,
        extra="ignore",
        populate_by_name=True,
    )

    latitude: float | None = Field(default=None, validation_alias=AliasChoices("latitude", "lat"))
    longitude: float | None = Field(default=None, validation_alias=AliasChoices("longitude", "lng", "lon"))
    accuracy: float | None = Field(
        default=None,
        validation_alias=AliasChoices("accuracy", "horizontal_accuracy", "horizontalAccuracy"),
    )
    captured_at: datetime | None = Field(
        default=None,
        validation_alias=AliasChoices("captured_at", "capturedAt", "timestamp", "time"),
        serialization_alias="capturedAt",
    )

    @field_validator("latitude", "longitude", mode="before")
    @classmethod
    def _coerce_floats(cls, value: Any) -> float | None:
        return safe_float(value)

    @field_validator("accuracy", mode="before")
    @classmethod
    def _coerce_accuracy(cls, value: Any) -> float | None:
        return positive_or_none(value)

    @field_validator("captured_at", mode="before")
    @classmethod
    def _coerce_timestamp(cls, value: Any) -> datetime | None:
        return parse_epoch_timestamp(value)

    @property
    def accuracy_or_zero(self) -> float:
        """Accuracy in meters, with unknown treated as a perfect fix."""
        return self.accuracy or 0.0

    def stamped(self, captured_at: datetime) -> GeoSample:
        """Return a copy with ``captured_at`` set when it is missing."""
        if self.captured_at is not None:
            return self
        return self.model_copy(update={"captured_at": captured_at})
