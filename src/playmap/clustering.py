"""Screen-space clustering of map entities.

Entities are projected to Web-Mercator pixels at the zoom implied by the
viewport span and the surface width, then grouped greedily: walking the
input in order, each entity not yet assigned seeds a group with every other
unassigned entity whose marker lies within ``radius_px`` of it.  Because the
grouping depends on zoom, it is recomputed on every render pass rather than
cached geographically.
"""

from __future__ import annotations

import dataclasses
import logging
import math
from collections.abc import Sequence

from playmap.config import ClusterConfig
from playmap.models.entity import Cluster, MapEntity
from playmap.models.geo import Coordinate, Viewport

_logger = logging.getLogger(__name__)

# Web-Mercator is undefined at the poles; clamp like slippy-map tiles do.
_MAX_MERCATOR_LATITUDE = 85.05112878


@dataclasses.dataclass(frozen=True)
class ClusterPass:
    """Output of one render pass.

    ``clusters`` contains every entity exactly once; singletons are
    clusters of one member.
    """

    clusters: tuple[Cluster, ...]
    width: int
    height: int

    @property
    def singletons(self) -> tuple[MapEntity, ...]:
        return tuple(cluster.representative for cluster in self.clusters if cluster.is_singleton)

    @property
    def groups(self) -> tuple[Cluster, ...]:
        return tuple(cluster for cluster in self.clusters if not cluster.is_singleton)

    def cluster_for(self, entity_id: str) -> Cluster | None:
        for cluster in self.clusters:
            if entity_id in cluster.member_ids:
                return cluster
        return None


def _mercator_x(longitude: float) -> float:
    return (longitude + 180.0) / 360.0


def _mercator_y(latitude: float) -> float:
    lat = max(-_MAX_MERCATOR_LATITUDE, min(_MAX_MERCATOR_LATITUDE, latitude))
    phi = math.radians(lat)
    return (1.0 - math.log(math.tan(phi) + 1.0 / math.cos(phi)) / math.pi) / 2.0


def world_size_px(viewport: Viewport, width: int) -> float:
    """Pixel size of the whole Mercator world at the viewport's zoom."""
    span = viewport.span.longitude_delta
    if span <= 0:
        return math.inf
    return width * 360.0 / span


def project(coordinate: Coordinate, world_px: float) -> tuple[float, float]:
    return _mercator_x(coordinate.longitude) * world_px, _mercator_y(coordinate.latitude) * world_px


def _centroid(coordinates: Sequence[Coordinate]) -> Coordinate:
    count = len(coordinates)
    return Coordinate(
        latitude=sum(c.latitude for c in coordinates) / count,
        longitude=sum(c.longitude for c in coordinates) / count,
    )


class ClusterEngine:
    """Group entities whose markers would overlap on screen.

    Configuration is passed explicitly; the engine holds no state between
    passes.  The representative of a cluster is stable only within one pass.
    """

    def __init__(self, config: ClusterConfig | None = None) -> None:
        self._config = config or ClusterConfig()

    @property
    def config(self) -> ClusterConfig:
        return self._config

    def cluster(
        self,
        entities: Sequence[MapEntity],
        viewport: Viewport,
        *,
        width: int | None = None,
        height: int | None = None,
    ) -> ClusterPass:
        """Build the clusters for one render pass."""
        width = width if width is not None else self._config.default_width
        height = height if height is not None else self._config.default_height
        if width <= 0 or height <= 0:
            raise ValueError(f"surface size must be positive, got {width}x{height}")

        world_px = world_size_px(viewport, width)
        radius = self._config.radius_px
        if math.isinf(world_px):
            # Zero span: everything projects onto one point.
            points = [(0.0, 0.0)] * len(entities)
        else:
            points = [project(entity.coordinate, world_px) for entity in entities]

        assigned = [False] * len(entities)
        clusters: list[Cluster] = []
        for seed in range(len(entities)):
            if assigned[seed]:
                continue
            sx, sy = points[seed]
            indices = []
            for other in range(seed, len(entities)):
                if assigned[other]:
                    continue
                ox, oy = points[other]
                if math.hypot(ox - sx, oy - sy) <= radius:
                    indices.append(other)
                    assigned[other] = True
            clusters.append(self._build_cluster([entities[i] for i in indices], [points[i] for i in indices]))

        _logger.debug("Clustered %d entities into %d markers", len(entities), len(clusters))
        return ClusterPass(clusters=tuple(clusters), width=width, height=height)

    @staticmethod
    def _build_cluster(members: list[MapEntity], points: list[tuple[float, float]]) -> Cluster:
        cx = sum(p[0] for p in points) / len(points)
        cy = sum(p[1] for p in points) / len(points)
        # min() keeps the first of equally near members, i.e. input order.
        best = min(range(len(members)), key=lambda i: math.hypot(points[i][0] - cx, points[i][1] - cy))
        return Cluster(
            representative=members[best],
            members=tuple(members),
            coordinate=_centroid([member.coordinate for member in members]),
        )
