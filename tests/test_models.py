from __future__ import annotations

import pytest
from pydantic import ValidationError

from playmap.models.entity import Cluster, FacilityInfo, MapEntity, RideInfo
from playmap.models.facility import CategoryFilter, FacilityRecord, IndoorOutdoor
from playmap.models.geo import Coordinate, Viewport
from playmap.models.ride import RideCategory, SubRecord


def _entity(entity_id: str) -> MapEntity:
    return MapEntity(
        id=entity_id,
        coordinate=Coordinate(latitude=37.5, longitude=127.0),
        facility=FacilityInfo(id="F1"),
        ride=RideInfo(id=entity_id),
    )


def test_facility_parses_string_coordinates() -> None:
    facility = FacilityRecord.model_validate(
        {
            "pfctSn": "F-100",
            "pfctNm": "Hangang Park",
            "latCrtsVl": " 37.5665 ",
            "lotCrtsVl": "126.9780",
            "idrodrCdNm": "실외",
            "ronaAddr": "Seoul Jung-gu",
        }
    )

    assert facility.id == "F-100"
    assert facility.name == "Hangang Park"
    assert facility.coordinate == Coordinate(latitude=37.5665, longitude=126.978)
    assert facility.indoor_outdoor is IndoorOutdoor.OUTDOOR
    assert facility.address == "Seoul Jung-gu"
    assert facility.raw["latCrtsVl"] == " 37.5665 "


@pytest.mark.parametrize(
    ("latitude", "longitude"),
    [
        ("abc", "126.9"),
        ("37.5", ""),
        ("--", "--"),
        ("137.5", "126.9"),
        ("37.5", "nan"),
    ],
)
def test_facility_with_unparseable_coordinates_has_no_coordinate(latitude: str, longitude: str) -> None:
    facility = FacilityRecord.model_validate({"pfctSn": "F-1", "latCrtsVl": latitude, "lotCrtsVl": longitude})

    assert facility.coordinate is None
    assert facility.raw_location_strings == (latitude, longitude)


def test_facility_reads_nested_fields() -> None:
    facility = FacilityRecord.model_validate(
        {"id": "F-2", "fields": {"pfctNm": "Indoor Kids Cafe", "latCrtsVl": "37.1", "lotCrtsVl": "127.1"}}
    )

    assert facility.id == "F-2"
    assert facility.name == "Indoor Kids Cafe"
    assert facility.coordinate is not None


def test_facility_without_id_is_rejected() -> None:
    with pytest.raises(ValidationError):
        FacilityRecord.model_validate({"pfctNm": "Nameless", "latCrtsVl": "37.1", "lotCrtsVl": "127.1"})


def test_facility_is_frozen() -> None:
    facility = FacilityRecord.model_validate({"pfctSn": "F-1"})
    with pytest.raises(ValidationError):
        facility.name = "changed"  # type: ignore[misc]


@pytest.mark.parametrize(
    ("label", "expected"),
    [
        ("실내", IndoorOutdoor.INDOOR),
        ("실외", IndoorOutdoor.OUTDOOR),
        ("Indoor", IndoorOutdoor.INDOOR),
        ("mixed", IndoorOutdoor.UNKNOWN),
    ],
)
def test_indoor_outdoor_labels(label: str, expected: IndoorOutdoor) -> None:
    assert IndoorOutdoor(label) is expected


def test_category_filter_accepts() -> None:
    assert CategoryFilter.ALL.accepts(IndoorOutdoor.UNKNOWN)
    assert CategoryFilter.INDOOR.accepts(IndoorOutdoor.INDOOR)
    assert not CategoryFilter.INDOOR.accepts(IndoorOutdoor.OUTDOOR)
    assert CategoryFilter.OUTDOOR.accepts(IndoorOutdoor.OUTDOOR)
    assert not CategoryFilter.OUTDOOR.accepts(IndoorOutdoor.UNKNOWN)


def test_sub_record_parses_backend_document() -> None:
    ride = SubRecord.model_validate(
        {
            "rideSn": "R-1",
            "pfctSn": "F-100",
            "rideNm": "Big swing",
            "rideStylCd": "D001",
            "rideInstlYmd": "20190412",
            "pfctNm": "Hangang Park",
        }
    )

    assert ride.id == "R-1"
    assert ride.facility_id == "F-100"
    assert ride.category is RideCategory.SWING
    assert ride.category.display_name == "그네"
    assert ride.coordinate is None


def test_sub_record_unknown_category_falls_back_to_other() -> None:
    ride = SubRecord.model_validate({"rideSn": "R-2", "pfctSn": "F-1", "rideStylCd": "X999"})
    assert ride.category is RideCategory.OTHER

    missing = SubRecord.model_validate({"rideSn": "R-3", "pfctSn": "F-1"})
    assert missing.category is RideCategory.OTHER


def test_surface_categories() -> None:
    assert RideCategory.SURFACE_SAND.is_surface
    assert not RideCategory.SLIDE.is_surface


def test_viewport_equality_is_structural() -> None:
    assert Viewport.around(37.5, 127.0, 0.1, 0.1) == Viewport.around(37.5, 127.0, 0.1, 0.1)
    assert Viewport.around(37.5, 127.0, 0.1, 0.1) != Viewport.around(37.5, 127.0, 0.2, 0.1)


def test_viewport_rejects_negative_span() -> None:
    with pytest.raises(ValidationError):
        Viewport.around(37.5, 127.0, -0.1, 0.1)


def test_cluster_requires_members() -> None:
    entity = _entity("a")
    with pytest.raises(ValidationError):
        Cluster(representative=entity, members=(), coordinate=entity.coordinate)


def test_cluster_representative_must_be_member() -> None:
    with pytest.raises(ValidationError):
        Cluster(representative=_entity("a"), members=(_entity("b"),), coordinate=_entity("b").coordinate)


@pytest.mark.parametrize(("count", "size"), [(1, 40), (9, 40), (10, 50), (99, 50), (100, 60), (500, 60)])
def test_cluster_marker_size(count: int, size: int) -> None:
    members = tuple(_entity(f"e{i}") for i in range(count))
    cluster = Cluster(representative=members[0], members=members, coordinate=members[0].coordinate)
    assert cluster.marker_size == size
    assert cluster.count == count
