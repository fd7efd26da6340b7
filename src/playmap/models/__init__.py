"""Data models for playmap records, derived entities and presentation."""

from playmap.models.aggregation import AggregationResult
from playmap.models.display import DisplayItem, DisplayKind, DisplayModel, FacilityListItem, FacilityListModel
from playmap.models.entity import Cluster, FacilityInfo, MapEntity, RideInfo
from playmap.models.facility import CategoryFilter, FacilityRecord, IndoorOutdoor
from playmap.models.geo import BoundingBox, Coordinate, Span, Viewport
from playmap.models.ride import RideCategory, SubRecord

__all__ = [
    "AggregationResult",
    "BoundingBox",
    "CategoryFilter",
    "Cluster",
    "Coordinate",
    "DisplayItem",
    "DisplayKind",
    "DisplayModel",
    "FacilityInfo",
    "FacilityListItem",
    "FacilityListModel",
    "FacilityRecord",
    "IndoorOutdoor",
    "MapEntity",
    "RideCategory",
    "RideInfo",
    "Span",
    "SubRecord",
    "Viewport",
]
