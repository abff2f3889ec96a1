"""Base model and shared annotated types.

Every public model inherits from :class:`GeoBaseModel` which provides:

* ``alias_generator=to_camel`` so hosts written against camelCase
  payloads (``capturedAt``, ``radiusMeters``) can round-trip models
  with ``model_dump(by_alias=True)``.
* Frozen instances; values handed out by the tracker are never mutated.
"""

from __future__ import annotations

from datetime import datetime
from typing import Annotated

from pydantic import BaseModel, BeforeValidator, ConfigDict
from pydantic.alias_generators import to_camel

from pygeoverify._normalize import parse_epoch_timestamp

UtcDateTime = Annotated[datetime, BeforeValidator(parse_epoch_timestamp)]
"""Annotated type that coerces epoch ints (seconds or ms) and naive datetimes to UTC."""


class GeoBaseModel(BaseModel):
    """Base for pygeoverify value objects."""

    model_config = ConfigDict(
        frozen=True,
        extra="ignore",
        populate_by_name=True,
        alias_generator=to_camel,
    )
