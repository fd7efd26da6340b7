"""Build map entities from facility and sub-record pairs."""

from __future__ import annotations

import logging
from collections.abc import Iterable

from playmap.models.entity import FacilityInfo, MapEntity, RideInfo
from playmap.models.facility import FacilityRecord
from playmap.models.geo import Coordinate
from playmap.models.ride import SubRecord
from playmap.spatial import distance_from

_logger = logging.getLogger(__name__)


def facility_info(facility: FacilityRecord) -> FacilityInfo:
    return FacilityInfo(
        id=facility.id,
        name=facility.name,
        indoor_outdoor=facility.indoor_outdoor,
        address=facility.address,
        coordinate=facility.coordinate,
    )


def build_entity(
    record: SubRecord,
    facility: FacilityRecord,
    *,
    user_location: Coordinate | None = None,
) -> MapEntity | None:
    """Project a sub-record onto the map.

    Rides without their own parseable coordinate or address inherit the
    facility's.  Returns ``None`` when neither carries a coordinate.
    """
    coordinate = record.coordinate or facility.coordinate
    if coordinate is None:
        _logger.debug("Dropping ride %s: no usable coordinate", record.id)
        return None
    return MapEntity(
        id=record.id,
        coordinate=coordinate,
        facility=facility_info(facility).model_copy(
            update={
                "name": record.facility_name or facility.name,
                "address": record.address or facility.address,
            }
        ),
        ride=RideInfo(
            id=record.id,
            name=record.name,
            category=record.category,
            install_date=record.install_date,
        ),
        distance_from_user=distance_from(user_location, coordinate),
    )


def merge_entities(
    batches: Iterable[tuple[FacilityRecord, Iterable[SubRecord]]],
    *,
    user_location: Coordinate | None = None,
) -> tuple[MapEntity, ...]:
    """Flatten per-facility sub-record batches into unique entities.

    The first occurrence of an id wins; later duplicates are dropped.
    """
    seen: set[str] = set()
    merged: list[MapEntity] = []
    for facility, records in batches:
        for record in records:
            if record.id in seen:
                continue
            entity = build_entity(record, facility, user_location=user_location)
            if entity is None:
                continue
            seen.add(record.id)
            merged.append(entity)
    return tuple(merged)
