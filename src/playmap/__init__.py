"""playmap - Async viewport aggregation, clustering and selection for playground maps."""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("playmap")
except PackageNotFoundError:
    __version__ = "0+local"
from playmap.client import PlaymapClient
from playmap.clustering import ClusterEngine, ClusterPass
from playmap.config import ClusterConfig, PlaymapConfig, ProjectionConfig
from playmap.coordinator import FacilitySource, ViewportQueryCoordinator
from playmap.exceptions import (
    FacilityFetchError,
    PlaymapConfigError,
    PlaymapError,
    PlaymapTransportError,
    RecordNotFoundError,
)
from playmap.models import (
    AggregationResult,
    CategoryFilter,
    Cluster,
    Coordinate,
    DisplayItem,
    DisplayKind,
    DisplayModel,
    FacilityRecord,
    IndoorOutdoor,
    MapEntity,
    RideCategory,
    Span,
    SubRecord,
    Viewport,
)
from playmap.projection import DetailProjectionBuilder
from playmap.screen import MapScreen, RenderFrame, ScreenError
from playmap.spatial import distance_meters, includes
from playmap.state.selection import (
    ClusterSelected,
    Dismissed,
    Idle,
    SelectionState,
    SelectionStateMachine,
    SingleSelected,
)

__all__ = [
    "__version__",
    "AggregationResult",
    "CategoryFilter",
    "Cluster",
    "ClusterConfig",
    "ClusterEngine",
    "ClusterPass",
    "ClusterSelected",
    "Coordinate",
    "DetailProjectionBuilder",
    "Dismissed",
    "DisplayItem",
    "DisplayKind",
    "DisplayModel",
    "FacilityFetchError",
    "FacilityRecord",
    "FacilitySource",
    "Idle",
    "IndoorOutdoor",
    "MapEntity",
    "MapScreen",
    "PlaymapClient",
    "PlaymapConfig",
    "PlaymapConfigError",
    "PlaymapError",
    "PlaymapTransportError",
    "ProjectionConfig",
    "RecordNotFoundError",
    "RenderFrame",
    "RideCategory",
    "ScreenError",
    "SelectionState",
    "SelectionStateMachine",
    "SingleSelected",
    "Span",
    "SubRecord",
    "Viewport",
    "ViewportQueryCoordinator",
    "distance_meters",
    "includes",
]
