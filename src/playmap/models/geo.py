"""Geographic value types."""

from __future__ import annotations

import math

from pydantic import BaseModel, ConfigDict, Field, field_validator


class Coordinate(BaseModel):
    """A latitude/longitude pair in decimal degrees."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    latitude: float = Field(..., ge=-90.0, le=90.0)
    longitude: float = Field(..., ge=-180.0, le=180.0)

    @field_validator("latitude", "longitude")
    @classmethod
    def _require_finite(cls, value: float) -> float:
        if not math.isfinite(value):
            raise ValueError("coordinate components must be finite")
        return value


class Span(BaseModel):
    """Extent of a viewport in degrees."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    latitude_delta: float = Field(..., ge=0.0)
    longitude_delta: float = Field(..., ge=0.0)


class BoundingBox(BaseModel):
    model_config = ConfigDict(frozen=True, extra="forbid")

    min_latitude: float
    max_latitude: float
    min_longitude: float
    max_longitude: float


class Viewport(BaseModel):
    """The currently visible map region.

    Equality is structural, which is what lets a repeated viewport change
    be recognised as a no-op.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    center: Coordinate
    span: Span

    @classmethod
    def around(cls, latitude: float, longitude: float, latitude_delta: float, longitude_delta: float) -> Viewport:
        return cls(
            center=Coordinate(latitude=latitude, longitude=longitude),
            span=Span(latitude_delta=latitude_delta, longitude_delta=longitude_delta),
        )

    @property
    def bounding_box(self) -> BoundingBox:
        half_lat = self.span.latitude_delta / 2.0
        half_lon = self.span.longitude_delta / 2.0
        return BoundingBox(
            min_latitude=self.center.latitude - half_lat,
            max_latitude=self.center.latitude + half_lat,
            min_longitude=self.center.longitude - half_lon,
            max_longitude=self.center.longitude + half_lon,
        )
