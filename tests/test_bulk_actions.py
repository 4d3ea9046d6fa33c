"""
Tests for bulk actions on combined grooming + garden visits.
"""

from __future__ import annotations

import asyncio
from datetime import date, datetime
from zoneinfo import ZoneInfo

import pytest

from schedule_board.application.exceptions import MutationInFlightError, UnknownEntryError
from schedule_board.application.use_cases.bulk_actions import BulkAction, BulkActionOrchestrator
from schedule_board.application.use_cases.load_schedule import DayScheduleQuery
from schedule_board.application.use_cases.optimistic_mutation import MutationCoordinator
from schedule_board.application.utils.composite_id import encode_legacy_composite_id
from schedule_board.domain.entities.booking import BookingStatus, ServiceBooking, ServiceDomain
from schedule_board.domain.entities.bulk_result import FullFailure, FullSuccess, PartialFailure
from schedule_board.infrastructure.remote.memory_booking_store import MemoryBookingStore
from schedule_board.infrastructure.store.memory_schedule_cache import MemoryScheduleCache

TZ = ZoneInfo("Asia/Jerusalem")
DAY = date(2025, 3, 10)

GROOMING_ID = "11111111-1111-4111-8111-111111111111"
GARDEN_ID = "22222222-2222-4222-8222-222222222222"


def _at(hour: int, minute: int = 0) -> datetime:
    return datetime(2025, 3, 10, hour, minute, tzinfo=TZ)


def _visit(grooming_id="G1", garden_id="D1", subject="S1"):
    return [
        ServiceBooking(
            id=grooming_id,
            domain=ServiceDomain.grooming,
            start_at=_at(10),
            end_at=_at(11),
            subject_id=subject,
        ),
        ServiceBooking(
            id=garden_id,
            domain=ServiceDomain.garden,
            start_at=_at(11),
            end_at=_at(12),
            subject_id=subject,
        ),
    ]


def _setup(bookings):
    store = MemoryBookingStore(bookings)
    query = DayScheduleQuery(source=store, cache=MemoryScheduleCache(), timezone=TZ)
    coordinator = MutationCoordinator(query, store, refresh_after_mutation=False)
    return store, query, coordinator, BulkActionOrchestrator(coordinator, store, query)


def test_bulk_approve_succeeds_on_both_halves():
    store, query, coordinator, bulk = _setup(_visit())

    async def scenario():
        await query.load(DAY)
        result = await bulk.run(DAY, "G1", BulkAction.approve)

        assert result == FullSuccess(entry_id="G1")
        assert store.get(ServiceDomain.grooming, "G1").status is BookingStatus.approved
        assert store.get(ServiceDomain.garden, "D1").status is BookingStatus.approved
        assert query.cache.is_stale(DAY)

        entries = await query.load(DAY)
        assert entries[0].status is BookingStatus.approved

    asyncio.run(scenario())


def test_partial_failure_names_the_failed_half_and_keeps_the_other():
    store, query, coordinator, bulk = _setup(_visit())

    async def scenario():
        await query.load(DAY)
        store.fail_next("D1", reason="conflict", message="Slot taken")

        result = await bulk.run(DAY, "G1", BulkAction.approve)

        assert isinstance(result, PartialFailure)
        assert result.failed_side is ServiceDomain.garden
        assert result.failed_booking_id == "D1"
        assert result.succeeded_side is ServiceDomain.grooming
        assert result.error == "Slot taken"
        assert result.message.startswith("Grooming was updated but garden failed (Slot taken)")

        # no compensating write for the half that went through
        assert store.get(ServiceDomain.grooming, "G1").status is BookingStatus.approved
        assert store.get(ServiceDomain.garden, "D1").status is BookingStatus.pending
        assert len(store.calls) == 2

        entry = (await query.load(DAY))[0]
        assert entry.grooming.status is BookingStatus.approved
        assert entry.status is BookingStatus.pending

    asyncio.run(scenario())


def test_full_failure_leaves_the_cache_untouched():
    store, query, coordinator, bulk = _setup(_visit())

    async def scenario():
        before = await query.load(DAY)
        store.fail_next("G1", reason="permission", message="Forbidden")
        store.fail_next("D1", reason="unavailable", message="Timeout")

        result = await bulk.run(DAY, "G1", BulkAction.cancel)

        assert isinstance(result, FullFailure)
        assert result.errors == {ServiceDomain.grooming: "Forbidden", ServiceDomain.garden: "Timeout"}
        assert not query.cache.is_stale(DAY)
        assert query.cache.get_entries(DAY) == before

    asyncio.run(scenario())


def test_bulk_delete_removes_both_bookings():
    store, query, coordinator, bulk = _setup(_visit())

    async def scenario():
        await query.load(DAY)
        assert await bulk.run(DAY, "G1", BulkAction.delete) == FullSuccess(entry_id="G1")
        assert await query.load(DAY) == []

    asyncio.run(scenario())


def test_legacy_combined_id_resolves_the_visit():
    store, query, coordinator, bulk = _setup(_visit(GROOMING_ID, GARDEN_ID))

    async def scenario():
        await query.load(DAY)
        result = await bulk.run(DAY, encode_legacy_composite_id(GROOMING_ID, GARDEN_ID), BulkAction.approve)

        assert result == FullSuccess(entry_id=GROOMING_ID)
        assert sorted(call[0] for call in store.calls) == sorted([GROOMING_ID, GARDEN_ID])

    asyncio.run(scenario())


def test_bulk_rejects_single_kind_and_unknown_entries():
    store, query, coordinator, bulk = _setup(_visit() + [
        ServiceBooking(id="G9", domain=ServiceDomain.grooming, start_at=_at(15), end_at=_at(16), subject_id="S9")
    ])

    async def scenario():
        await query.load(DAY)
        with pytest.raises(ValueError):
            await bulk.run(DAY, "G9", BulkAction.approve)
        with pytest.raises(UnknownEntryError):
            await bulk.run(DAY, "missing", BulkAction.approve)
        with pytest.raises(ValueError):
            await bulk.run(DAY, "G1", BulkAction.approve, garden_booking_id="D-other")
        assert store.calls == []

    asyncio.run(scenario())


def test_bulk_is_rejected_while_a_half_is_in_flight():
    store, query, coordinator, bulk = _setup(_visit())

    async def scenario():
        await query.load(DAY)
        gate = store.stall("G1")
        task = asyncio.create_task(bulk.run(DAY, "G1", BulkAction.approve))
        await asyncio.sleep(0)

        with pytest.raises(MutationInFlightError):
            await coordinator.change_status(DAY, "G1", BookingStatus.cancelled, domain=ServiceDomain.grooming)
        with pytest.raises(MutationInFlightError):
            await bulk.run(DAY, "G1", BulkAction.cancel)

        gate.set()
        assert await task == FullSuccess(entry_id="G1")

    asyncio.run(scenario())
