from __future__ import annotations

import pytest

from playmap.models.entity import FacilityInfo, MapEntity, RideInfo
from playmap.models.geo import Coordinate, Viewport
from playmap.spatial import distance_from, distance_meters, includes, sort_by_distance

SEOUL = Viewport.around(37.5665, 126.9780, 0.1, 0.1)


def _entity(entity_id: str, latitude: float, longitude: float) -> MapEntity:
    return MapEntity(
        id=entity_id,
        coordinate=Coordinate(latitude=latitude, longitude=longitude),
        facility=FacilityInfo(id="F1", name="Park"),
        ride=RideInfo(id=entity_id, name=f"Ride {entity_id}"),
    )


def test_coordinate_on_top_edge_is_included() -> None:
    assert includes(SEOUL, Coordinate(latitude=37.6165, longitude=126.9780))


def test_coordinate_just_past_top_edge_is_excluded() -> None:
    assert not includes(SEOUL, Coordinate(latitude=37.6166, longitude=126.9780))


@pytest.mark.parametrize(
    ("latitude", "longitude"),
    [
        (37.5165, 126.9780),
        (37.5665, 126.9280),
        (37.5665, 127.0280),
        (37.6165, 127.0280),
    ],
)
def test_all_edges_are_inclusive(latitude: float, longitude: float) -> None:
    assert includes(SEOUL, Coordinate(latitude=latitude, longitude=longitude))


def test_zero_span_viewport_contains_only_its_center() -> None:
    viewport = Viewport.around(37.5, 127.0, 0.0, 0.0)
    assert includes(viewport, Coordinate(latitude=37.5, longitude=127.0))
    assert not includes(viewport, Coordinate(latitude=37.5001, longitude=127.0))


def test_distance_of_one_degree_latitude() -> None:
    meters = distance_meters(Coordinate(latitude=0.0, longitude=0.0), Coordinate(latitude=1.0, longitude=0.0))
    assert meters == pytest.approx(111_194.93, abs=1.0)


def test_distance_is_symmetric_and_zero_for_same_point() -> None:
    a = Coordinate(latitude=37.5665, longitude=126.9780)
    b = Coordinate(latitude=37.4979, longitude=127.0276)
    assert distance_meters(a, a) == 0.0
    assert distance_meters(a, b) == pytest.approx(distance_meters(b, a))
    assert 8_000 < distance_meters(a, b) < 9_500


def test_distance_from_without_origin_is_none() -> None:
    assert distance_from(None, Coordinate(latitude=1.0, longitude=1.0)) is None


def test_sort_by_distance_orders_nearest_first() -> None:
    origin = Coordinate(latitude=37.0, longitude=127.0)
    far = _entity("far", 37.1, 127.0)
    near = _entity("near", 37.01, 127.0)
    mid = _entity("mid", 37.05, 127.0)

    ordered = sort_by_distance([far, near, mid], origin)

    assert [entity.id for entity, _ in ordered] == ["near", "mid", "far"]
    assert all(distance is not None for _, distance in ordered)


def test_sort_by_distance_keeps_input_order_on_ties_and_without_origin() -> None:
    origin = Coordinate(latitude=37.0, longitude=127.0)
    east = _entity("east", 37.0, 127.01)
    west = _entity("west", 37.0, 127.01)

    assert [e.id for e, _ in sort_by_distance([east, west], origin)] == ["east", "west"]
    assert [e.id for e, _ in sort_by_distance([west, east], origin)] == ["west", "east"]

    unordered = sort_by_distance([west, east], None)
    assert [e.id for e, _ in unordered] == ["west", "east"]
    assert [d for _, d in unordered] == [None, None]
