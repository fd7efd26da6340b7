"""Viewport aggregation: two-level fetch, client-side filter, fan-out/fan-in join.

One aggregation cycle:

1. fetch the whole facility collection (no geo query on the backend),
2. keep facilities inside the viewport and matching the category filter,
3. fetch every surviving facility's rides concurrently,
4. join on all of them (bounded by ``join_timeout``),
5. merge into unique :class:`~playmap.models.entity.MapEntity` values and
   deliver them on the consumer loop, unless a newer cycle was requested
   in the meantime.
"""

from __future__ import annotations

import asyncio
import concurrent.futures
import contextlib
import logging
from collections.abc import Callable, Sequence
from typing import Protocol

from playmap import spatial
from playmap.config import PlaymapConfig
from playmap.exceptions import FacilityFetchError
from playmap.ingestion.entities import facility_info, merge_entities
from playmap.models.aggregation import AggregationResult
from playmap.models.facility import CategoryFilter, FacilityRecord
from playmap.models.geo import Coordinate, Viewport
from playmap.models.ride import SubRecord

_logger = logging.getLogger(__name__)

ResultCallback = Callable[[AggregationResult], None]
LocationProvider = Callable[[], Coordinate | None]


class FacilitySource(Protocol):
    """The two collection-fetch collaborators an aggregation cycle needs."""

    async def list_facilities(self) -> list[FacilityRecord]:
        ...

    async def list_sub_records(self, facility_id: str) -> list[SubRecord]:
        ...


def _no_location() -> Coordinate | None:
    return None


def select_facilities(
    facilities: Sequence[FacilityRecord],
    viewport: Viewport,
    category: CategoryFilter = CategoryFilter.ALL,
) -> list[FacilityRecord]:
    """Facilities inside *viewport* that pass *category*, unique by id.

    Facilities whose coordinates did not parse are excluded here; they
    are expected, not errors.
    """
    selected: list[FacilityRecord] = []
    seen: set[str] = set()
    unparsed = 0
    for facility in facilities:
        if facility.id in seen:
            continue
        coordinate = facility.coordinate
        if coordinate is None:
            unparsed += 1
            continue
        if not spatial.includes(viewport, coordinate):
            continue
        if not category.accepts(facility.indoor_outdoor):
            continue
        seen.add(facility.id)
        selected.append(facility)
    if unparsed:
        _logger.debug("Excluded %d facilities with unparseable coordinates", unparsed)
    return selected


class ViewportQueryCoordinator:
    """Produce one merged entity list per viewport (or category) change.

    Every :meth:`refresh` is tagged with a new epoch.  When a cycle
    finishes after a newer one was requested, its result is discarded:
    subscribers only ever see the latest requested viewport.

    Subscribers are invoked on *consumer_loop* (the loop the coordinator is
    created for, typically the UI loop).  When a cycle completes on a
    different loop or thread the delivery is marshalled with
    ``call_soon_threadsafe`` and awaited.
    """

    def __init__(
        self,
        source: FacilitySource,
        *,
        join_timeout: float = 20.0,
        max_concurrent_fetches: int | None = None,
        location_provider: LocationProvider | None = None,
        consumer_loop: asyncio.AbstractEventLoop | None = None,
    ) -> None:
        if join_timeout <= 0:
            raise ValueError(f"join_timeout must be positive, got {join_timeout}")
        self._source = source
        self._join_timeout = join_timeout
        self._max_concurrent_fetches = max_concurrent_fetches
        self._location_provider = location_provider or _no_location
        self._consumer_loop = consumer_loop
        self._epoch = 0
        self._delivered_epoch = 0
        self._subscribers: list[ResultCallback] = []

    @classmethod
    def from_config(
        cls,
        source: FacilitySource,
        config: PlaymapConfig,
        *,
        location_provider: LocationProvider | None = None,
        consumer_loop: asyncio.AbstractEventLoop | None = None,
    ) -> ViewportQueryCoordinator:
        return cls(
            source,
            join_timeout=config.join_timeout,
            max_concurrent_fetches=config.max_concurrent_fetches,
            location_provider=location_provider,
            consumer_loop=consumer_loop,
        )

    @property
    def latest_epoch(self) -> int:
        """Epoch of the most recently requested cycle."""
        return self._epoch

    @property
    def delivered_epoch(self) -> int:
        """Epoch of the last result handed to subscribers (``0`` before any)."""
        return self._delivered_epoch

    def subscribe(self, callback: ResultCallback) -> Callable[[], None]:
        """Register *callback* for delivered results; returns an unsubscribe function."""
        self._subscribers.append(callback)

        def _unsubscribe() -> None:
            with contextlib.suppress(ValueError):
                self._subscribers.remove(callback)

        return _unsubscribe

    def is_current(self, epoch: int) -> bool:
        return epoch == self._epoch

    # ------------------------------------------------------------------
    # Cycles
    # ------------------------------------------------------------------

    async def refresh(
        self,
        viewport: Viewport,
        category: CategoryFilter = CategoryFilter.ALL,
    ) -> AggregationResult | None:
        """Run one aggregation cycle and deliver its result.

        Returns
        -------
        AggregationResult or None
            The result subscribers received, or ``None`` when a newer cycle
            was requested before this one finished or before its marshalled
            delivery ran on the consumer loop.

        Raises
        ------
        FacilityFetchError
            If the facility listing failed and this cycle is still current.
        """
        self._epoch += 1
        epoch = self._epoch
        try:
            result = await self.aggregate(viewport, category, epoch=epoch)
        except FacilityFetchError:
            if not self.is_current(epoch):
                _logger.debug("Dropping facility fetch failure of superseded cycle %d", epoch)
                return None
            raise

        if not self.is_current(epoch):
            _logger.debug("Discarding result of superseded cycle %d (latest=%d)", epoch, self._epoch)
            return None
        if not await self._deliver(result):
            return None
        return result

    async def aggregate(
        self,
        viewport: Viewport,
        category: CategoryFilter = CategoryFilter.ALL,
        *,
        epoch: int = 0,
    ) -> AggregationResult:
        """Run the fetch/filter/join pipeline without touching epochs or subscribers."""
        try:
            facilities = await self._source.list_facilities()
        except Exception as exc:
            raise FacilityFetchError(f"Facility listing failed: {exc}", epoch=epoch) from exc

        selected = select_facilities(facilities, viewport, category)
        _logger.debug(
            "Cycle %d: %d/%d facilities in viewport (category=%s)",
            epoch,
            len(selected),
            len(facilities),
            category.value,
        )
        if not selected:
            return AggregationResult(epoch=epoch, viewport=viewport, category=category)

        batches, failed, timed_out = await self._fan_out(selected, epoch)
        entities = merge_entities(batches, user_location=self._location_provider())
        in_view = tuple(entity for entity in entities if spatial.includes(viewport, entity.coordinate))
        if len(in_view) != len(entities):
            _logger.debug("Cycle %d: dropped %d rides outside the viewport", epoch, len(entities) - len(in_view))

        return AggregationResult(
            epoch=epoch,
            viewport=viewport,
            category=category,
            entities=in_view,
            facilities=tuple(facility_info(facility) for facility in selected),
            facility_count=len(selected),
            failed_facility_ids=failed,
            timed_out_facility_ids=timed_out,
        )

    async def _fan_out(
        self,
        facilities: list[FacilityRecord],
        epoch: int,
    ) -> tuple[list[tuple[FacilityRecord, list[SubRecord]]], tuple[str, ...], tuple[str, ...]]:
        """Fetch rides for every facility concurrently and join on all of them.

        The number of outstanding fetches is fixed here, before any of them
        can complete.  Individual failures contribute no rides.
        """
        semaphore = asyncio.Semaphore(self._max_concurrent_fetches) if self._max_concurrent_fetches else None

        async def _fetch(facility_id: str) -> list[SubRecord]:
            if semaphore is None:
                return await self._source.list_sub_records(facility_id)
            async with semaphore:
                return await self._source.list_sub_records(facility_id)

        tasks: dict[asyncio.Task[list[SubRecord]], FacilityRecord] = {
            asyncio.create_task(_fetch(facility.id), name=f"playmap-rides-{facility.id}"): facility
            for facility in facilities
        }
        try:
            _done, pending = await asyncio.wait(tasks, timeout=self._join_timeout)
        finally:
            outstanding = [task for task in tasks if not task.done()]
            for task in outstanding:
                task.cancel()
            if outstanding:
                await asyncio.gather(*outstanding, return_exceptions=True)

        timed_out = tuple(tasks[task].id for task in pending)
        if timed_out:
            _logger.warning(
                "Cycle %d: %d ride fetches still pending after %.1fs; continuing without them",
                epoch,
                len(timed_out),
                self._join_timeout,
            )

        failed: list[str] = []
        batches: list[tuple[FacilityRecord, list[SubRecord]]] = []
        for task, facility in tasks.items():
            if task in pending:
                continue
            if task.cancelled():
                _logger.warning("Cycle %d: ride fetch for facility %s was cancelled", epoch, facility.id)
                failed.append(facility.id)
                continue
            exc = task.exception()
            if exc is not None:
                _logger.warning("Cycle %d: ride fetch for facility %s failed: %s", epoch, facility.id, exc)
                failed.append(facility.id)
                continue
            batches.append((facility, task.result()))
        return batches, tuple(failed), timed_out

    # ------------------------------------------------------------------
    # Delivery
    # ------------------------------------------------------------------

    async def _deliver(self, result: AggregationResult) -> bool:
        """Hand *result* to subscribers on the consumer loop.

        Returns whether subscribers received it.  A marshalled delivery is
        awaited, so the consumer loop must be running.
        """
        loop = self._consumer_loop
        if loop is None or loop is asyncio.get_running_loop():
            return self._notify(result)

        delivered: concurrent.futures.Future[bool] = concurrent.futures.Future()

        def _notify_on_consumer() -> None:
            delivered.set_result(self._notify(result))

        loop.call_soon_threadsafe(_notify_on_consumer)
        return await asyncio.wrap_future(delivered)

    def _notify(self, result: AggregationResult) -> bool:
        # Re-checked on the consumer side: a newer cycle may have been requested
        # or delivered while this one was being marshalled.
        if not self.is_current(result.epoch) or result.epoch <= self._delivered_epoch:
            _logger.debug("Skipping delivery of stale cycle %d", result.epoch)
            return False
        self._delivered_epoch = result.epoch
        for callback in list(self._subscribers):
            try:
                callback(result)
            except Exception:
                _logger.debug("Aggregation subscriber failed", exc_info=True)
        return True
