"""Aggregation cycle result."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict

from playmap.models.entity import FacilityInfo, MapEntity
from playmap.models.facility import CategoryFilter
from playmap.models.geo import Viewport


class AggregationResult(BaseModel):
    """Merged output of one aggregation cycle.

    Parameters
    ----------
    epoch : int
        Cycle tag; only the most recently requested epoch is delivered.
    viewport : Viewport
        Viewport the cycle was run for.
    category : CategoryFilter
        Indoor/outdoor filter the cycle was run with.
    entities : tuple of MapEntity
        Merged, deduplicated entities.  Order is not meaningful.
    facilities : tuple of FacilityInfo
        Facilities that survived spatial and category filtering, including
        those that contributed no rides.
    facility_count : int
        Facilities that survived spatial and category filtering.
    failed_facility_ids : tuple of str
        Facilities whose sub-record fetch raised.
    timed_out_facility_ids : tuple of str
        Facilities whose sub-record fetch was still pending at the join timeout.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    epoch: int
    viewport: Viewport
    category: CategoryFilter = CategoryFilter.ALL
    entities: tuple[MapEntity, ...] = ()
    facilities: tuple[FacilityInfo, ...] = ()
    facility_count: int = 0
    failed_facility_ids: tuple[str, ...] = ()
    timed_out_facility_ids: tuple[str, ...] = ()

    @property
    def partial(self) -> bool:
        """Whether some facilities contributed nothing because their fetch failed."""
        return bool(self.failed_facility_ids or self.timed_out_facility_ids)

    @property
    def entity_ids(self) -> frozenset[str]:
        return frozenset(entity.id for entity in self.entities)
