"""Client-side geographic filtering and distances.

The backend exposes no bounding-box query, so every facility is tested
against the viewport here after the full collection has been fetched.
"""

from __future__ import annotations

from collections.abc import Callable, Sequence
from math import asin, cos, radians, sin, sqrt
from typing import TypeVar

from playmap._constants import EARTH_RADIUS_M
from playmap.models.entity import MapEntity
from playmap.models.geo import Coordinate, Viewport

T = TypeVar("T")

# Absorbs float error in ``center ± span / 2`` so a coordinate lying exactly on
# the edge is never excluded.  Far below the precision of stored coordinates.
_BOUNDARY_EPSILON = 1e-9


def includes(viewport: Viewport, coordinate: Coordinate) -> bool:
    """Return whether *coordinate* lies inside *viewport*, edges included."""
    box = viewport.bounding_box
    return (
        box.min_latitude - _BOUNDARY_EPSILON <= coordinate.latitude <= box.max_latitude + _BOUNDARY_EPSILON
        and box.min_longitude - _BOUNDARY_EPSILON <= coordinate.longitude <= box.max_longitude + _BOUNDARY_EPSILON
    )


def distance_meters(a: Coordinate, b: Coordinate) -> float:
    """Great-circle (haversine) distance between two coordinates in meters."""
    lat1 = radians(a.latitude)
    lon1 = radians(a.longitude)
    lat2 = radians(b.latitude)
    lon2 = radians(b.longitude)

    dlat = lat2 - lat1
    dlon = lon2 - lon1

    h = sin(dlat / 2) ** 2 + cos(lat1) * cos(lat2) * sin(dlon / 2) ** 2
    return 2 * EARTH_RADIUS_M * asin(min(1.0, sqrt(h)))


def distance_from(origin: Coordinate | None, target: Coordinate) -> float | None:
    """Distance from *origin* to *target*, or ``None`` without an origin."""
    if origin is None:
        return None
    return distance_meters(origin, target)


def _entity_coordinate(entity: MapEntity) -> Coordinate | None:
    return entity.coordinate


def sort_by_distance(
    items: Sequence[T],
    origin: Coordinate | None,
    *,
    coordinate_of: Callable[[T], Coordinate | None] = _entity_coordinate,  # type: ignore[assignment]
) -> tuple[tuple[T, float | None], ...]:
    """Pair items with their distance from *origin*, nearest first.

    Ties keep input order.  Items without a coordinate, and every item when
    *origin* is unknown, have no distance and sort last in input order.
    """
    paired: list[tuple[T, float | None]] = []
    for item in items:
        coordinate = coordinate_of(item)
        paired.append((item, None if coordinate is None else distance_from(origin, coordinate)))
    paired.sort(key=lambda pair: (pair[1] is None, pair[1] or 0.0))
    return tuple(paired)
