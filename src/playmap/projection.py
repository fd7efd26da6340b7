"""Read-only presentation projection for the detail surface."""

from __future__ import annotations

from collections import Counter
from collections.abc import Sequence

from playmap.config import ProjectionConfig
from playmap.models.aggregation import AggregationResult
from playmap.models.display import DisplayItem, DisplayKind, DisplayModel, FacilityListItem, FacilityListModel
from playmap.models.entity import Cluster, FacilityInfo, MapEntity
from playmap.models.facility import CategoryFilter
from playmap.models.geo import Coordinate
from playmap.spatial import distance_from, sort_by_distance
from playmap.state.selection import ClusterSelected, SelectionState, SingleSelected


def _facility_coordinate(facility: FacilityInfo) -> Coordinate | None:
    return facility.coordinate


class DetailProjectionBuilder:
    """Turn a selected entity or cluster into a :class:`DisplayModel`."""

    def __init__(self, config: ProjectionConfig | None = None) -> None:
        self._config = config or ProjectionConfig()

    def format_distance(self, meters: float | None) -> str:
        """Format a distance: ``"850m"`` below 1 km, ``"1.5km"`` from 1 km on.

        ``None`` (no user location) renders the configured unavailable
        sentinel, never ``"0m"``.
        """
        if meters is None:
            return self._config.distance_unavailable_text
        if meters < 1000:
            return f"{int(meters)}{self._config.meter_suffix}"
        return f"{meters / 1000:.1f}{self._config.kilometer_suffix}"

    def icon_for(self, entity: MapEntity) -> str:
        return self._config.category_icons.get(entity.ride.category.value, self._config.default_icon)

    def item(self, entity: MapEntity, distance: float | None) -> DisplayItem:
        return DisplayItem(
            entity_id=entity.id,
            title=entity.ride.name or entity.facility.name,
            subtitle=entity.facility.name,
            category_name=entity.ride.category.display_name,
            icon=self.icon_for(entity),
            distance_meters=distance,
            distance_text=self.format_distance(distance),
        )

    def build_entity(self, entity: MapEntity, user_location: Coordinate | None) -> DisplayModel:
        distance = distance_from(user_location, entity.coordinate)
        return DisplayModel(
            kind=DisplayKind.SINGLE,
            title=entity.facility.name or entity.ride.name,
            subtitle=entity.facility.address,
            distance_meters=distance,
            distance_text=self.format_distance(distance),
            count=1,
            icons=(self.icon_for(entity),),
            items=(self.item(entity, distance),),
        )

    def build_members(self, members: Sequence[MapEntity], user_location: Coordinate | None) -> DisplayModel:
        """Project a member list; a single member projects exactly like the bare entity."""
        if not members:
            raise ValueError("cannot project an empty member list")
        if len(members) == 1:
            return self.build_entity(members[0], user_location)

        ordered = sort_by_distance(members, user_location)
        nearest, nearest_distance = ordered[0]
        icons: list[str] = []
        for entity, _distance in ordered:
            icon = self.icon_for(entity)
            if icon not in icons:
                icons.append(icon)
        facility_ids = {entity.facility.id for entity in members}
        title = nearest.facility.name
        if len(facility_ids) > 1:
            title = f"{title} +{len(facility_ids) - 1}"
        return DisplayModel(
            kind=DisplayKind.CLUSTER,
            title=title,
            subtitle=nearest.facility.address,
            distance_meters=nearest_distance,
            distance_text=self.format_distance(nearest_distance),
            count=len(members),
            icons=tuple(icons),
            items=tuple(self.item(entity, distance) for entity, distance in ordered),
        )

    def build_cluster(self, cluster: Cluster, user_location: Coordinate | None) -> DisplayModel:
        return self.build_members(cluster.members, user_location)

    def build(self, target: MapEntity | Cluster, user_location: Coordinate | None) -> DisplayModel:
        if isinstance(target, Cluster):
            return self.build_cluster(target, user_location)
        return self.build_entity(target, user_location)

    def build_facility_list(
        self,
        result: AggregationResult,
        user_location: Coordinate | None,
        *,
        category: CategoryFilter | None = None,
    ) -> FacilityListModel:
        """Project the facilities of a cycle into a list sorted by user distance.

        *category* narrows the cycle's own filter, e.g. when the list offers
        its own indoor/outdoor tabs.  Without a user location the list keeps
        cycle order and every row shows the unavailable sentinel.
        """
        category = category or result.category
        ride_counts = Counter(entity.facility.id for entity in result.entities)
        facilities = [facility for facility in result.facilities if category.accepts(facility.indoor_outdoor)]
        ordered = sort_by_distance(facilities, user_location, coordinate_of=_facility_coordinate)
        return FacilityListModel(
            epoch=result.epoch,
            category=category,
            items=tuple(
                FacilityListItem(
                    facility_id=facility.id,
                    name=facility.name,
                    address=facility.address,
                    indoor_outdoor=facility.indoor_outdoor,
                    ride_count=ride_counts.get(facility.id, 0),
                    distance_meters=distance,
                    distance_text=self.format_distance(distance),
                )
                for facility, distance in ordered
            ),
        )

    def build_for_state(self, state: SelectionState, user_location: Coordinate | None) -> DisplayModel | None:
        """Project a selection snapshot; ``None`` when nothing is presented."""
        if isinstance(state, SingleSelected):
            return self.build_entity(state.entity, user_location)
        if isinstance(state, ClusterSelected):
            return self.build_members(state.members, user_location)
        return None
