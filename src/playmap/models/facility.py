"""Facility (playground) record model."""

from __future__ import annotations

from enum import StrEnum
from typing import Any

from pydantic import AliasChoices, Field, field_validator

from playmap.ingestion.normalize import flatten_document, parse_latitude, parse_longitude, safe_str
from playmap.models._base import RecordModel
from playmap.models.geo import Coordinate


class IndoorOutdoor(StrEnum):
    """Facility placement as labelled by the backend (``idrodrCdNm``)."""

    INDOOR = "실내"
    OUTDOOR = "실외"
    UNKNOWN = ""

    @classmethod
    def _missing_(cls, value: object) -> IndoorOutdoor:
        if isinstance(value, str):
            normalized = value.strip().lower()
            if normalized in {"indoor", "실내"}:
                return cls.INDOOR
            if normalized in {"outdoor", "실외"}:
                return cls.OUTDOOR
        return cls.UNKNOWN


class CategoryFilter(StrEnum):
    """Indoor/outdoor filter applied to an aggregation cycle."""

    ALL = "all"
    INDOOR = "indoor"
    OUTDOOR = "outdoor"

    def accepts(self, placement: IndoorOutdoor) -> bool:
        if self is CategoryFilter.ALL:
            return True
        if self is CategoryFilter.INDOOR:
            return placement is IndoorOutdoor.INDOOR
        return placement is IndoorOutdoor.OUTDOOR


class FacilityRecord(RecordModel):
    """A playground facility from the ``playgrounds`` collection.

    The backend stores coordinates as text; ``latitude``/``longitude``
    are ``None`` when the text does not parse.  The untouched strings are
    kept in ``raw_location_strings`` for diagnostics.
    """

    id: str = Field(..., validation_alias=AliasChoices("pfctSn", "id", "facility_id"))
    name: str = Field(default="", validation_alias=AliasChoices("pfctNm", "name"))
    latitude: float | None = Field(default=None, validation_alias=AliasChoices("latCrtsVl", "latitude", "lat"))
    longitude: float | None = Field(
        default=None,
        validation_alias=AliasChoices("lotCrtsVl", "longitude", "lon", "lng"),
    )
    indoor_outdoor: IndoorOutdoor = Field(
        default=IndoorOutdoor.UNKNOWN,
        validation_alias=AliasChoices("idrodrCdNm", "indoor_outdoor"),
    )
    address: str = Field(default="", validation_alias=AliasChoices("ronaAddr", "address"))

    @field_validator("id", mode="before")
    @classmethod
    def _coerce_id(cls, value: Any) -> str:
        text = safe_str(value)
        if text is None:
            raise ValueError("facility id must be non-empty")
        return text

    @field_validator("latitude", mode="before")
    @classmethod
    def _coerce_latitude(cls, value: Any) -> float | None:
        return parse_latitude(value)

    @field_validator("longitude", mode="before")
    @classmethod
    def _coerce_longitude(cls, value: Any) -> float | None:
        return parse_longitude(value)

    @field_validator("indoor_outdoor", mode="before")
    @classmethod
    def _coerce_placement(cls, value: Any) -> IndoorOutdoor:
        return IndoorOutdoor(value) if isinstance(value, str) else IndoorOutdoor.UNKNOWN

    @property
    def raw_location_strings(self) -> tuple[str | None, str | None]:
        """The coordinate fields exactly as stored, before parsing."""
        flat = flatten_document(self.raw)
        lat = flat.get("latCrtsVl", flat.get("latitude"))
        lon = flat.get("lotCrtsVl", flat.get("longitude"))
        return (None if lat is None else str(lat), None if lon is None else str(lon))

    @property
    def coordinate(self) -> Coordinate | None:
        if self.latitude is None or self.longitude is None:
            return None
        return Coordinate(latitude=self.latitude, longitude=self.longitude)
