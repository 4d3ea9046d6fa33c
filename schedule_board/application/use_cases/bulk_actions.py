from __future__ import annotations

import asyncio
import logging
from datetime import date
from enum import Enum

from schedule_board.application.exceptions import BookingStoreError, UnknownEntryError
from schedule_board.application.ports.booking_mutations import BookingMutationPort
from schedule_board.application.use_cases.load_schedule import CacheTag, DayScheduleQuery
from schedule_board.application.use_cases.optimistic_mutation import MutationCoordinator
from schedule_board.application.utils.composite_id import (
    extract_garden_booking_id,
    extract_grooming_booking_id,
)
from schedule_board.domain.entities.booking import BookingStatus, ServiceDomain
from schedule_board.domain.entities.bulk_result import BulkResult, FullFailure, FullSuccess, PartialFailure
from schedule_board.domain.entities.mutation import BookingChange, PendingMutation, SubMutation
from schedule_board.domain.entities.schedule_entry import ScheduleEntry


class BulkAction(str, Enum):
    approve = "approve"
    cancel = "cancel"
    delete = "delete"

    def change(self) -> BookingChange:
        if self is BulkAction.approve:
            return BookingChange.set_status(BookingStatus.approved)
        if self is BulkAction.cancel:
            return BookingChange.set_status(BookingStatus.cancelled)
        return BookingChange.remove()


class BulkActionOrchestrator:
    """
    Apply one action to both halves of a combined visit.

    Both remote calls run concurrently and are classified once both settle.
    There is no cross-store transaction: when one half fails the other half
    stays written and the result says which half to retry.
    """

    def __init__(
        self,
        coordinator: MutationCoordinator,
        mutations: BookingMutationPort,
        query: DayScheduleQuery,
    ) -> None:
        self._coordinator = coordinator
        self._mutations = mutations
        self._query = query
        self._logger = logging.getLogger(__name__)

    def _resolve_entry(
        self,
        day: date,
        entry_id: str,
        grooming_booking_id: str | None,
        garden_booking_id: str | None,
    ) -> ScheduleEntry:
        grooming_id = extract_grooming_booking_id(entry_id, grooming_booking_id)
        entry = self._query.cache.get_entry(day, entry_id) or self._query.cache.get_entry(day, grooming_id)
        if entry is None:
            raise UnknownEntryError(entry_id)
        if not entry.is_composite:
            raise ValueError(f"Entry {entry.id} is not a combined visit")

        garden_id = extract_garden_booking_id(entry_id, garden_booking_id)
        if grooming_id not in (entry.id, entry.grooming_booking_id):
            raise ValueError(f"Grooming booking {grooming_id} does not belong to entry {entry.id}")
        if garden_id not in (entry_id, entry.garden_booking_id):
            raise ValueError(f"Garden booking {garden_id} does not belong to entry {entry.id}")
        return entry

    async def run(
        self,
        day: date,
        entry_id: str,
        action: BulkAction,
        grooming_booking_id: str | None = None,
        garden_booking_id: str | None = None,
    ) -> BulkResult:
        entry = self._resolve_entry(day, entry_id, grooming_booking_id, garden_booking_id)
        change = action.change()
        subs = (
            SubMutation(booking_id=entry.grooming_booking_id, domain=ServiceDomain.grooming, change=change),
            SubMutation(booking_id=entry.garden_booking_id, domain=ServiceDomain.garden, change=change),
        )
        pending = PendingMutation(
            target_entry_id=entry.id,
            previous_snapshot=entry,
            kind=change.kind,
            sub_mutations=subs,
        )

        with self._coordinator.hold(pending, extra_ids=[entry.garden_booking_id]):
            outcomes = await asyncio.gather(
                *(self._mutations.apply(sub.booking_id, sub.domain, sub.change) for sub in subs),
                return_exceptions=True,
            )

        failures: dict[ServiceDomain, str] = {}
        for sub, outcome in zip(subs, outcomes):
            if isinstance(outcome, Exception):
                failures[sub.domain] = str(outcome)
                if not isinstance(outcome, BookingStoreError):
                    self._logger.error(
                        "Unexpected error in bulk sub-mutation",
                        exc_info=outcome,
                        extra={"entry_id": entry.id, "booking_id": sub.booking_id, "domain": sub.domain.value},
                    )
            elif isinstance(outcome, BaseException):
                raise outcome

        log_extra = {"day": day.isoformat(), "entry_id": entry.id, "kind": action.value}

        if len(failures) == len(subs):
            self._logger.warning("Bulk action failed on both bookings", extra={**log_extra, "outcome": "full_failure"})
            return FullFailure(entry_id=entry.id, errors=failures)

        self._query.invalidate({CacheTag.schedule, CacheTag.grooming, CacheTag.garden}, day)
        for sub in subs:
            if sub.domain not in failures:
                await self._coordinator.run_hooks(entry.id, sub.booking_id, sub.domain, sub.change)

        if not failures:
            self._logger.info("Bulk action applied", extra={**log_extra, "outcome": "full_success"})
            return FullSuccess(entry_id=entry.id)

        failed = next(sub for sub in subs if sub.domain in failures)
        succeeded = next(sub for sub in subs if sub.domain not in failures)
        self._logger.warning(
            "Bulk action partially applied",
            extra={**log_extra, "outcome": "partial_failure", "domain": failed.domain.value, "reason": failures[failed.domain]},
        )
        return PartialFailure(
            entry_id=entry.id,
            failed_side=failed.domain,
            failed_booking_id=failed.booking_id,
            succeeded_side=succeeded.domain,
            error=failures[failed.domain],
        )
