"""Ride (facility sub-record) model."""

from __future__ import annotations

from enum import StrEnum
from typing import Any

from pydantic import AliasChoices, Field, field_validator

from playmap.ingestion.normalize import parse_latitude, parse_longitude, safe_str
from playmap.models._base import RecordModel
from playmap.models.geo import Coordinate


class RideCategory(StrEnum):
    """Ride style codes (``rideStylCd``).

    Codes without a mapped member resolve to ``OTHER`` instead of raising.
    """

    SWING = "D001"
    SLIDE = "D002"
    JUNGLE_GYM = "D003"
    AERIAL = "D004"
    ROTATING = "D005"
    ROCKING = "D006"
    CLIMBING = "D007"
    CROSSING = "D008"
    COMBINATION = "D009"
    HORIZONTAL_BAR = "D020"
    WALL_BARS = "D021"
    BALANCE_BEAM = "D022"
    OTHER = "D080"
    SURFACE_SAND = "D091"
    SURFACE_RUBBER = "D092"
    SURFACE_COATING = "D093"
    SURFACE_OTHER = "D094"

    @classmethod
    def _missing_(cls, value: object) -> RideCategory:
        return cls.OTHER

    @property
    def display_name(self) -> str:
        return _DISPLAY_NAMES[self]

    @property
    def is_surface(self) -> bool:
        """Whether the code describes an impact-absorbing surface rather than a ride."""
        return self.value.startswith("D09")


_DISPLAY_NAMES: dict[RideCategory, str] = {
    RideCategory.SWING: "그네",
    RideCategory.SLIDE: "미끄럼틀",
    RideCategory.JUNGLE_GYM: "정글짐",
    RideCategory.AERIAL: "공중놀이기구",
    RideCategory.ROTATING: "회전놀이기구",
    RideCategory.ROCKING: "흔들놀이기구",
    RideCategory.CLIMBING: "오르는기구",
    RideCategory.CROSSING: "건너는기구",
    RideCategory.COMBINATION: "조합놀이대",
    RideCategory.HORIZONTAL_BAR: "철봉",
    RideCategory.WALL_BARS: "늑목",
    RideCategory.BALANCE_BEAM: "평균대",
    RideCategory.OTHER: "기타",
    RideCategory.SURFACE_SAND: "충격흡수용표면재(모래)",
    RideCategory.SURFACE_RUBBER: "충격흡수용표면재(고무바닥재)",
    RideCategory.SURFACE_COATING: "충격흡수용표면재(포설도포바닥재)",
    RideCategory.SURFACE_OTHER: "충격흡수용표면재(기타바닥재)",
}


class SubRecord(RecordModel):
    """A ride or amenity belonging to a facility (``rides`` collection).

    Many sub-records reference one :class:`~playmap.models.facility.FacilityRecord`
    through ``facility_id``.
    """

    id: str = Field(..., validation_alias=AliasChoices("rideSn", "id", "ride_id"))
    facility_id: str = Field(..., validation_alias=AliasChoices("pfctSn", "facility_id"))
    install_date: str = Field(default="", validation_alias=AliasChoices("rideInstlYmd", "install_date"))
    name: str = Field(default="", validation_alias=AliasChoices("rideNm", "name"))
    facility_name: str = Field(default="", validation_alias=AliasChoices("pfctNm", "facility_name"))
    category: RideCategory = Field(default=RideCategory.OTHER, validation_alias=AliasChoices("rideStylCd", "category"))
    address: str = Field(default="", validation_alias=AliasChoices("ronaAddr", "address"))
    latitude: float | None = Field(default=None, validation_alias=AliasChoices("latCrtsVl", "latitude", "lat"))
    longitude: float | None = Field(
        default=None,
        validation_alias=AliasChoices("lotCrtsVl", "longitude", "lon", "lng"),
    )

    @field_validator("id", "facility_id", mode="before")
    @classmethod
    def _coerce_ids(cls, value: Any) -> str:
        text = safe_str(value)
        if text is None:
            raise ValueError("ids must be non-empty")
        return text

    @field_validator("category", mode="before")
    @classmethod
    def _coerce_category(cls, value: Any) -> RideCategory:
        text = safe_str(value)
        return RideCategory(text) if text is not None else RideCategory.OTHER

    @field_validator("latitude", mode="before")
    @classmethod
    def _coerce_latitude(cls, value: Any) -> float | None:
        return parse_latitude(value)

    @field_validator("longitude", mode="before")
    @classmethod
    def _coerce_longitude(cls, value: Any) -> float | None:
        return parse_longitude(value)

    @property
    def coordinate(self) -> Coordinate | None:
        if self.latitude is None or self.longitude is None:
            return None
        return Coordinate(latitude=self.latitude, longitude=self.longitude)
