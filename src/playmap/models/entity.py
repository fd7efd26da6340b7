"""Derived map entities and clusters.

These are never persisted.  Entities are rebuilt on every aggregation
cycle and clusters on every render pass.
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field, model_validator

from playmap._constants import marker_size_for_count
from playmap.models.facility import IndoorOutdoor
from playmap.models.geo import Coordinate
from playmap.models.ride import RideCategory


class FacilityInfo(BaseModel):
    """The facility an entity belongs to."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    id: str
    name: str = ""
    indoor_outdoor: IndoorOutdoor = IndoorOutdoor.UNKNOWN
    address: str = ""
    coordinate: Coordinate | None = None
    """The facility's own location, which may differ from a ride's."""


class RideInfo(BaseModel):
    model_config = ConfigDict(frozen=True, extra="forbid")

    id: str
    name: str = ""
    category: RideCategory = RideCategory.OTHER
    install_date: str = ""


class MapEntity(BaseModel):
    """The unit the map renders: one ride placed at a coordinate."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    id: str
    coordinate: Coordinate
    facility: FacilityInfo
    ride: RideInfo
    distance_from_user: float | None = Field(default=None, ge=0.0)
    """Meters from the user's location when it was known at build time."""


class Cluster(BaseModel):
    """A render-time group of entities whose markers would overlap.

    ``members`` is an immutable snapshot taken when the cluster was built;
    a cluster of one member is equivalent to the bare entity.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    representative: MapEntity
    members: tuple[MapEntity, ...]
    coordinate: Coordinate

    @model_validator(mode="after")
    def _check_members(self) -> Cluster:
        if not self.members:
            raise ValueError("cluster must have at least one member")
        if all(member.id != self.representative.id for member in self.members):
            raise ValueError("representative must be one of the members")
        return self

    @property
    def count(self) -> int:
        return len(self.members)

    @property
    def is_singleton(self) -> bool:
        return len(self.members) == 1

    @property
    def member_ids(self) -> tuple[str, ...]:
        return tuple(member.id for member in self.members)

    @property
    def marker_size(self) -> int:
        return marker_size_for_count(len(self.members))
