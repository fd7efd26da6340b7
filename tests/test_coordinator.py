from __future__ import annotations

import asyncio
import threading

import pytest

from playmap.coordinator import ViewportQueryCoordinator, select_facilities
from playmap.exceptions import FacilityFetchError, PlaymapTransportError
from playmap.models.aggregation import AggregationResult
from playmap.models.facility import CategoryFilter, FacilityRecord
from playmap.models.geo import Coordinate, Viewport
from playmap.models.ride import SubRecord

VIEWPORT = Viewport.around(37.5665, 126.9780, 0.1, 0.1)


def _facility(facility_id: str, latitude: str, longitude: str, placement: str = "실외") -> FacilityRecord:
    return FacilityRecord.model_validate(
        {
            "pfctSn": facility_id,
            "pfctNm": f"Park {facility_id}",
            "latCrtsVl": latitude,
            "lotCrtsVl": longitude,
            "idrodrCdNm": placement,
        }
    )


def _ride(ride_id: str, facility_id: str) -> SubRecord:
    return SubRecord.model_validate({"rideSn": ride_id, "pfctSn": facility_id, "rideNm": f"Ride {ride_id}"})


class _FakeSource:
    def __init__(
        self,
        facilities: list[FacilityRecord],
        rides: dict[str, list[SubRecord]],
        *,
        fail: set[str] | None = None,
        hang: set[str] | None = None,
        facility_error: Exception | None = None,
    ) -> None:
        self.facilities = facilities
        self.rides = rides
        self.fail = fail or set()
        self.hang = hang or set()
        self.facility_error = facility_error
        self.facility_calls = 0
        self.sub_record_calls: list[str] = []

    async def list_facilities(self) -> list[FacilityRecord]:
        self.facility_calls += 1
        if self.facility_error is not None:
            raise self.facility_error
        return list(self.facilities)

    async def list_sub_records(self, facility_id: str) -> list[SubRecord]:
        self.sub_record_calls.append(facility_id)
        if facility_id in self.fail:
            raise PlaymapTransportError("HTTP 500 from /rides", status_code=500, endpoint="/rides")
        if facility_id in self.hang:
            await asyncio.Event().wait()
        return list(self.rides.get(facility_id, []))


class _GatedSource(_FakeSource):
    """Holds the first facility listing until ``gate`` is set."""

    def __init__(self, *args: object, **kwargs: object) -> None:
        super().__init__(*args, **kwargs)  # type: ignore[arg-type]
        self.gate = asyncio.Event()

    async def list_facilities(self) -> list[FacilityRecord]:
        first = self.facility_calls == 0
        self.facility_calls += 1
        if first:
            await self.gate.wait()
        if self.facility_error is not None:
            raise self.facility_error
        return list(self.facilities)


def _abc_source(**kwargs: object) -> _FakeSource:
    return _FakeSource(
        [
            _facility("A", "37.5600", "126.9700"),
            _facility("B", "37.5700", "126.9800"),
            _facility("C", "37.5800", "126.9900"),
        ],
        {
            "A": [_ride("a1", "A"), _ride("a2", "A")],
            "B": [_ride("b1", "B")],
            "C": [_ride("c1", "C")],
        },
        **kwargs,  # type: ignore[arg-type]
    )


@pytest.mark.asyncio
async def test_empty_selection_completes_immediately_without_sub_record_fetches() -> None:
    source = _FakeSource([_facility("far", "35.1", "129.0")], {"far": [_ride("x", "far")]})
    coordinator = ViewportQueryCoordinator(source)
    delivered: list[AggregationResult] = []
    coordinator.subscribe(delivered.append)

    result = await asyncio.wait_for(coordinator.refresh(VIEWPORT), timeout=1.0)

    assert result is not None
    assert result.entities == ()
    assert result.facility_count == 0
    assert not result.partial
    assert source.sub_record_calls == []
    assert delivered == [result]


@pytest.mark.asyncio
async def test_all_facilities_contribute_rides() -> None:
    coordinator = ViewportQueryCoordinator(_abc_source())

    result = await coordinator.refresh(VIEWPORT)

    assert result is not None
    assert result.entity_ids == {"a1", "a2", "b1", "c1"}
    assert result.facility_count == 3
    assert [facility.id for facility in result.facilities] == ["A", "B", "C"]
    assert not result.partial


@pytest.mark.asyncio
async def test_failed_sub_record_fetch_yields_partial_result() -> None:
    coordinator = ViewportQueryCoordinator(_abc_source(fail={"B"}))

    result = await coordinator.refresh(VIEWPORT)

    assert result is not None
    assert result.entity_ids == {"a1", "a2", "c1"}
    assert result.failed_facility_ids == ("B",)
    assert result.timed_out_facility_ids == ()
    assert result.partial


@pytest.mark.asyncio
async def test_join_timeout_cancels_pending_fetches() -> None:
    coordinator = ViewportQueryCoordinator(_abc_source(hang={"C"}), join_timeout=0.05)

    result = await asyncio.wait_for(coordinator.refresh(VIEWPORT), timeout=2.0)

    assert result is not None
    assert result.entity_ids == {"a1", "a2", "b1"}
    assert result.timed_out_facility_ids == ("C",)
    assert result.partial


@pytest.mark.asyncio
async def test_aggregation_is_idempotent() -> None:
    coordinator = ViewportQueryCoordinator(_abc_source())

    first = await coordinator.aggregate(VIEWPORT)
    second = await coordinator.aggregate(VIEWPORT)

    assert first.entity_ids == second.entity_ids
    assert set(first.entities) == set(second.entities)


@pytest.mark.asyncio
async def test_duplicate_sub_records_are_merged_once() -> None:
    source = _abc_source()
    source.rides["B"].append(_ride("a1", "B"))
    coordinator = ViewportQueryCoordinator(source)

    result = await coordinator.refresh(VIEWPORT)

    assert result is not None
    assert [entity.id for entity in result.entities].count("a1") == 1
    a1 = next(entity for entity in result.entities if entity.id == "a1")
    assert a1.facility.id == "A"


@pytest.mark.asyncio
async def test_facilities_with_unparseable_coordinates_are_skipped() -> None:
    source = _abc_source()
    source.facilities.append(_facility("broken", "not-a-number", "126.97"))
    source.rides["broken"] = [_ride("z", "broken")]
    coordinator = ViewportQueryCoordinator(source)

    result = await coordinator.refresh(VIEWPORT)

    assert result is not None
    assert "broken" not in source.sub_record_calls
    assert "z" not in result.entity_ids


@pytest.mark.asyncio
async def test_category_filter_limits_facilities() -> None:
    source = _FakeSource(
        [
            _facility("in", "37.56", "126.97", placement="실내"),
            _facility("out", "37.57", "126.98", placement="실외"),
        ],
        {"in": [_ride("i1", "in")], "out": [_ride("o1", "out")]},
    )
    coordinator = ViewportQueryCoordinator(source)

    result = await coordinator.refresh(VIEWPORT, CategoryFilter.INDOOR)

    assert result is not None
    assert result.entity_ids == {"i1"}
    assert result.category is CategoryFilter.INDOOR
    assert source.sub_record_calls == ["in"]


@pytest.mark.asyncio
async def test_entities_inherit_facility_coordinate_and_carry_distance() -> None:
    user = Coordinate(latitude=37.5600, longitude=126.9700)
    coordinator = ViewportQueryCoordinator(_abc_source(), location_provider=lambda: user)

    result = await coordinator.refresh(VIEWPORT)

    assert result is not None
    a1 = next(entity for entity in result.entities if entity.id == "a1")
    assert a1.coordinate == Coordinate(latitude=37.56, longitude=126.97)
    assert a1.distance_from_user == pytest.approx(0.0)
    assert a1.facility.coordinate == a1.coordinate
    c1 = next(entity for entity in result.entities if entity.id == "c1")
    assert c1.distance_from_user is not None and c1.distance_from_user > 1000


@pytest.mark.asyncio
async def test_facility_listing_failure_raises_and_delivers_nothing() -> None:
    coordinator = ViewportQueryCoordinator(_abc_source(facility_error=PlaymapTransportError("offline")))
    delivered: list[AggregationResult] = []
    coordinator.subscribe(delivered.append)

    with pytest.raises(FacilityFetchError) as exc_info:
        await coordinator.refresh(VIEWPORT)

    assert exc_info.value.epoch == 1
    assert exc_info.value.retryable
    assert delivered == []
    assert coordinator.delivered_epoch == 0


@pytest.mark.asyncio
async def test_superseded_cycle_is_discarded() -> None:
    base = _abc_source()
    source = _GatedSource(base.facilities, base.rides)
    coordinator = ViewportQueryCoordinator(source)
    delivered: list[AggregationResult] = []
    coordinator.subscribe(delivered.append)

    other_viewport = Viewport.around(37.58, 126.99, 0.004, 0.004)
    first = asyncio.create_task(coordinator.refresh(VIEWPORT))
    await asyncio.sleep(0)

    second = await coordinator.refresh(other_viewport)
    source.gate.set()
    stale = await first

    assert stale is None
    assert second is not None
    assert second.entity_ids == {"c1"}
    assert delivered == [second]
    assert coordinator.latest_epoch == 2
    assert coordinator.delivered_epoch == 2


@pytest.mark.asyncio
async def test_superseded_facility_failure_is_swallowed() -> None:
    source = _GatedSource([], {}, facility_error=PlaymapTransportError("offline"))
    coordinator = ViewportQueryCoordinator(source)

    first = asyncio.create_task(coordinator.refresh(VIEWPORT))
    await asyncio.sleep(0)
    source.facility_error = None
    await coordinator.refresh(VIEWPORT)
    source.facility_error = PlaymapTransportError("offline")
    source.gate.set()

    assert await first is None


@pytest.mark.asyncio
async def test_max_concurrent_fetches_bounds_fan_out() -> None:
    in_flight = 0
    peak = 0

    class _SlowSource(_FakeSource):
        async def list_sub_records(self, facility_id: str) -> list[SubRecord]:
            nonlocal in_flight, peak
            in_flight += 1
            peak = max(peak, in_flight)
            await asyncio.sleep(0.01)
            in_flight -= 1
            return await super().list_sub_records(facility_id)

    base = _abc_source()
    coordinator = ViewportQueryCoordinator(_SlowSource(base.facilities, base.rides), max_concurrent_fetches=1)

    result = await coordinator.refresh(VIEWPORT)

    assert result is not None
    assert peak == 1
    assert len(result.entities) == 4


@pytest.mark.asyncio
async def test_subscriber_errors_do_not_break_delivery() -> None:
    coordinator = ViewportQueryCoordinator(_abc_source())
    delivered: list[AggregationResult] = []

    def _boom(_result: AggregationResult) -> None:
        raise RuntimeError("subscriber bug")

    coordinator.subscribe(_boom)
    unsubscribe = coordinator.subscribe(delivered.append)

    await coordinator.refresh(VIEWPORT)
    unsubscribe()
    await coordinator.refresh(VIEWPORT)

    assert len(delivered) == 1


class _ConsumerThread:
    """A consumer loop running on its own thread, the way a UI loop would."""

    def __init__(self) -> None:
        self.loop = asyncio.new_event_loop()
        self.thread = threading.Thread(target=self.loop.run_forever, daemon=True)

    def start(self) -> None:
        self.thread.start()

    def close(self) -> None:
        if self.thread.is_alive():
            self.loop.call_soon_threadsafe(self.loop.stop)
            self.thread.join()
        self.loop.close()


@pytest.mark.asyncio
async def test_delivery_is_marshalled_to_consumer_loop() -> None:
    consumer = _ConsumerThread()
    try:
        coordinator = ViewportQueryCoordinator(_abc_source(), consumer_loop=consumer.loop)
        threads: list[int] = []
        coordinator.subscribe(lambda _result: threads.append(threading.get_ident()))
        consumer.start()

        result = await asyncio.wait_for(coordinator.refresh(VIEWPORT), 2.0)

        assert result is not None
        assert threads == [consumer.thread.ident]
        assert coordinator.delivered_epoch == result.epoch
    finally:
        consumer.close()


@pytest.mark.asyncio
async def test_refresh_returns_none_when_marshalled_delivery_is_dropped() -> None:
    consumer = _ConsumerThread()
    try:
        coordinator = ViewportQueryCoordinator(_abc_source(), consumer_loop=consumer.loop)
        delivered: list[AggregationResult] = []
        coordinator.subscribe(delivered.append)

        # Both cycles finish before the consumer loop gets to run either delivery.
        first = asyncio.create_task(coordinator.refresh(VIEWPORT))
        await asyncio.sleep(0.05)
        second = asyncio.create_task(coordinator.refresh(VIEWPORT))
        await asyncio.sleep(0.05)
        assert not first.done()
        assert delivered == []

        consumer.start()
        stale, fresh = await asyncio.wait_for(asyncio.gather(first, second), 2.0)

        assert stale is None
        assert fresh is not None
        assert delivered == [fresh]
        assert coordinator.delivered_epoch == fresh.epoch == 2
    finally:
        consumer.close()


def test_select_facilities_dedupes_and_filters() -> None:
    facilities = [
        _facility("A", "37.56", "126.97"),
        _facility("A", "37.56", "126.97"),
        _facility("far", "35.0", "129.0"),
        _facility("bad", "", ""),
    ]

    selected = select_facilities(facilities, VIEWPORT)

    assert [facility.id for facility in selected] == ["A"]


def test_join_timeout_must_be_positive() -> None:
    with pytest.raises(ValueError):
        ViewportQueryCoordinator(_abc_source(), join_timeout=0)
