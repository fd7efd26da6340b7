"""Presentation models produced by the detail projection."""

from __future__ import annotations

from enum import StrEnum

from pydantic import BaseModel, ConfigDict

from playmap.models.facility import CategoryFilter, IndoorOutdoor


class DisplayKind(StrEnum):
    SINGLE = "single"
    CLUSTER = "cluster"


class DisplayItem(BaseModel):
    """One row of a detail surface."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    entity_id: str
    title: str
    subtitle: str
    category_name: str
    icon: str
    distance_meters: float | None = None
    distance_text: str


class DisplayModel(BaseModel):
    """Presentation-ready fields for the currently presented detail surface."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    kind: DisplayKind
    title: str
    subtitle: str
    distance_meters: float | None = None
    distance_text: str
    count: int
    icons: tuple[str, ...] = ()
    items: tuple[DisplayItem, ...] = ()


class FacilityListItem(BaseModel):
    """One facility row of the viewport list."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    facility_id: str
    name: str
    address: str
    indoor_outdoor: IndoorOutdoor
    ride_count: int
    distance_meters: float | None = None
    distance_text: str


class FacilityListModel(BaseModel):
    """Facilities of one aggregation cycle, nearest to the user first."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    epoch: int
    category: CategoryFilter
    items: tuple[FacilityListItem, ...] = ()
