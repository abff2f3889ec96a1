"""Coordinates and geofence models."""

from __future__ import annotations

from pydantic import Field

from pygeoverify.models._base import GeoBaseModel


class Coordinate(GeoBaseModel):
    """A validated latitude/longitude pair in decimal degrees."""

    latitude: float = Field(ge=-90.0, le=90.0)
    longitude: float = Field(ge=-180.0, le=180.0)


class AnchorGeofence(GeoBaseModel):
    """Reference point plus radius defining the accepted physical area."""

    center: Coordinate
    radius_meters: float = Field(gt=0)


class GeofenceCheck(GeoBaseModel):
    """Outcome of a containment test against an anchor."""

    is_inside: bool
    distance: float
