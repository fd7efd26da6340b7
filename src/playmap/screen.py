"""Map screen wiring.

:class:`MapScreen` connects the coordinator, cluster engine, selection
state machine and detail projection into the control flow of a map screen,
and publishes immutable snapshots on four streams: render frames, detail
models, distance-sorted facility lists and retryable errors.  It holds no
reference to the rendering layer.
"""

from __future__ import annotations

import contextlib
import dataclasses
import logging
from collections.abc import Callable, Iterable
from typing import Generic, TypeVar

from playmap.clustering import ClusterEngine, ClusterPass
from playmap.config import PlaymapConfig
from playmap.coordinator import FacilitySource, LocationProvider, ViewportQueryCoordinator
from playmap.exceptions import FacilityFetchError
from playmap.models.aggregation import AggregationResult
from playmap.models.display import DisplayModel, FacilityListModel
from playmap.models.entity import MapEntity
from playmap.models.facility import CategoryFilter
from playmap.models.geo import Coordinate, Viewport
from playmap.projection import DetailProjectionBuilder
from playmap.state.events import (
    CategoryFilterChanged,
    ClusterTapped,
    DetailDismissed,
    EntityTapped,
    ViewportChanged,
)
from playmap.state.selection import SelectionState, SelectionStateMachine

_logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclasses.dataclass(frozen=True)
class RenderFrame:
    """Everything the map needs to redraw after a cycle or resize."""

    epoch: int
    viewport: Viewport
    entities: tuple[MapEntity, ...]
    clusters: ClusterPass
    partial: bool = False


@dataclasses.dataclass(frozen=True)
class ScreenError:
    """A user-visible, retryable failure of the facility listing."""

    message: str
    epoch: int | None
    viewport: Viewport
    retryable: bool = True


class _Stream(Generic[T]):
    def __init__(self, name: str) -> None:
        self._name = name
        self._subscribers: list[Callable[[T], None]] = []

    def subscribe(self, callback: Callable[[T], None]) -> Callable[[], None]:
        self._subscribers.append(callback)

        def _unsubscribe() -> None:
            with contextlib.suppress(ValueError):
                self._subscribers.remove(callback)

        return _unsubscribe

    def publish(self, value: T) -> None:
        for callback in list(self._subscribers):
            try:
                callback(value)
            except Exception:
                _logger.debug("%s subscriber failed", self._name, exc_info=True)


def _no_location() -> Coordinate | None:
    return None


class MapScreen:
    """Drive one map screen for its whole lifetime.

    Usage::

        screen = MapScreen.from_config(client, config, location_provider=gps.last_fix)
        screen.subscribe_render(draw)
        screen.subscribe_detail(show_sheet)
        await screen.viewport_changed(viewport)
        screen.cluster_tapped(frame.clusters.groups[0].member_ids)
    """

    def __init__(
        self,
        coordinator: ViewportQueryCoordinator,
        *,
        cluster_engine: ClusterEngine | None = None,
        selection: SelectionStateMachine | None = None,
        projection: DetailProjectionBuilder | None = None,
        location_provider: LocationProvider | None = None,
    ) -> None:
        self._coordinator = coordinator
        self._cluster_engine = cluster_engine or ClusterEngine()
        self._location_provider = location_provider or _no_location
        self._selection = selection or SelectionStateMachine(location_provider=self._location_provider)
        self._projection = projection or DetailProjectionBuilder()

        self._render = _Stream[RenderFrame]("render")
        self._detail = _Stream[DisplayModel | None]("detail")
        self._errors = _Stream[ScreenError]("error")
        self._facilities = _Stream[FacilityListModel]("facility list")

        self._viewport: Viewport | None = None
        self._category = CategoryFilter.ALL
        self._last_delivered: tuple[Viewport, CategoryFilter] | None = None
        self._result: AggregationResult | None = None
        self._frame: RenderFrame | None = None
        self._facility_list: FacilityListModel | None = None
        self._width: int | None = None
        self._height: int | None = None

        self._coordinator.subscribe(self._on_result)
        self._selection.subscribe(self._on_selection)

    @classmethod
    def from_config(
        cls,
        source: FacilitySource,
        config: PlaymapConfig,
        *,
        location_provider: LocationProvider | None = None,
    ) -> MapScreen:
        coordinator = ViewportQueryCoordinator.from_config(source, config, location_provider=location_provider)
        return cls(
            coordinator,
            cluster_engine=ClusterEngine(config.cluster),
            projection=DetailProjectionBuilder(config.projection),
            location_provider=location_provider,
        )

    # ------------------------------------------------------------------
    # Streams and snapshots
    # ------------------------------------------------------------------

    def subscribe_render(self, callback: Callable[[RenderFrame], None]) -> Callable[[], None]:
        return self._render.subscribe(callback)

    def subscribe_detail(self, callback: Callable[[DisplayModel | None], None]) -> Callable[[], None]:
        return self._detail.subscribe(callback)

    def subscribe_errors(self, callback: Callable[[ScreenError], None]) -> Callable[[], None]:
        return self._errors.subscribe(callback)

    def subscribe_facilities(self, callback: Callable[[FacilityListModel], None]) -> Callable[[], None]:
        """Receive the distance-sorted facility list of every delivered cycle."""
        return self._facilities.subscribe(callback)

    @property
    def frame(self) -> RenderFrame | None:
        return self._frame

    @property
    def facility_list(self) -> FacilityListModel | None:
        return self._facility_list

    @property
    def selection(self) -> SelectionState:
        return self._selection.state

    @property
    def category(self) -> CategoryFilter:
        return self._category

    # ------------------------------------------------------------------
    # Inputs
    # ------------------------------------------------------------------

    async def viewport_changed(self, viewport: Viewport, *, force: bool = False) -> AggregationResult | None:
        """Run an aggregation cycle for *viewport*.

        A viewport/category pair equal to the last delivered one is a no-op
        while no other cycle is in flight, unless *force* is set.
        """
        self._viewport = viewport
        return await self._run(force=force)

    async def category_changed(self, category: CategoryFilter, *, force: bool = False) -> AggregationResult | None:
        self._category = category
        if self._viewport is None:
            return None
        return await self._run(force=force)

    async def retry(self) -> AggregationResult | None:
        """Re-run the last requested viewport, typically after a :class:`ScreenError`."""
        if self._viewport is None:
            return None
        return await self._run(force=True)

    async def handle(self, event: ViewportChanged | CategoryFilterChanged) -> AggregationResult | None:
        if isinstance(event, ViewportChanged):
            return await self.viewport_changed(event.viewport)
        return await self.category_changed(event.category)

    def surface_resized(self, width: int, height: int) -> None:
        """Re-cluster the current entities for a new surface size."""
        self._width = width
        self._height = height
        if self._result is not None:
            self._publish_frame(self._result)

    def entity_tapped(self, entity_id: str) -> SelectionState:
        return self._selection.handle(EntityTapped(entity_id=entity_id))

    def cluster_tapped(self, entity_ids: Iterable[str]) -> SelectionState:
        return self._selection.handle(ClusterTapped(entity_ids=tuple(entity_ids)))

    def dismissed(self) -> SelectionState:
        return self._selection.handle(DetailDismissed())

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    async def _run(self, *, force: bool) -> AggregationResult | None:
        viewport = self._viewport
        assert viewport is not None  # noqa: S101
        key = (viewport, self._category)
        # Only a no-op while no other cycle is in flight.
        idle = self._coordinator.latest_epoch == self._coordinator.delivered_epoch
        if not force and idle and key == self._last_delivered:
            _logger.debug("Viewport unchanged; skipping aggregation")
            return self._result
        try:
            return await self._coordinator.refresh(viewport, self._category)
        except FacilityFetchError as exc:
            _logger.warning("Aggregation cycle %s failed: %s", exc.epoch, exc)
            self._errors.publish(ScreenError(message=str(exc), epoch=exc.epoch, viewport=viewport))
            return None

    def _on_result(self, result: AggregationResult) -> None:
        self._result = result
        self._last_delivered = (result.viewport, result.category)
        self._selection.reconcile(result.entities)
        self._publish_frame(result)
        self._facility_list = self._projection.build_facility_list(result, self._location_provider())
        self._facilities.publish(self._facility_list)

    def _publish_frame(self, result: AggregationResult) -> None:
        clusters = self._cluster_engine.cluster(
            result.entities,
            result.viewport,
            width=self._width,
            height=self._height,
        )
        self._frame = RenderFrame(
            epoch=result.epoch,
            viewport=result.viewport,
            entities=result.entities,
            clusters=clusters,
            partial=result.partial,
        )
        self._render.publish(self._frame)

    def _on_selection(self, state: SelectionState) -> None:
        self._detail.publish(self._projection.build_for_state(state, self._location_provider()))
