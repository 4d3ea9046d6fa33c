from __future__ import annotations

import asyncio
import logging
from contextlib import contextmanager
from dataclasses import replace
from datetime import date, datetime
from typing import Iterable, Iterator

from schedule_board.application.exceptions import (
    BookingStoreError,
    MutationFailedError,
    MutationInFlightError,
    UnknownEntryError,
)
from schedule_board.application.ports.booking_mutations import BookingMutationPort
from schedule_board.application.ports.commit_hooks import CommitHooksPort
from schedule_board.application.use_cases.load_schedule import CacheTag, DayScheduleQuery
from schedule_board.application.use_cases.merge_entries import build_entry
from schedule_board.domain.entities.booking import BookingStatus, ServiceBooking, ServiceDomain
from schedule_board.domain.entities.mutation import BookingChange, MutationKind, PendingMutation, SubMutation
from schedule_board.domain.entities.schedule_entry import ScheduleEntry

_STATUS_VERBS = {
    BookingStatus.approved: "approve",
    BookingStatus.cancelled: "cancel",
    BookingStatus.completed: "complete",
    BookingStatus.pending: "reopen",
}


def describe_change(change: BookingChange) -> str:
    if change.kind is MutationKind.status_change and change.status is not None:
        return _STATUS_VERBS[change.status]
    if change.kind is MutationKind.reschedule:
        return "reschedule"
    return "delete"


def apply_change_locally(booking: ServiceBooking, change: BookingChange) -> ServiceBooking | None:
    if change.kind is MutationKind.status_change:
        return replace(booking, status=change.status)
    if change.kind is MutationKind.reschedule:
        return replace(booking, start_at=change.start_at, end_at=change.end_at)
    return None


class MutationCoordinator:
    """
    Optimistic single-entity mutations over the cached day schedule.

    The cache is patched before the remote call and restored from the
    snapshot if the call fails. Each entry id holds at most one pending
    mutation; a second one is rejected, never queued.
    """

    def __init__(
        self,
        query: DayScheduleQuery,
        mutations: BookingMutationPort,
        hooks: CommitHooksPort | None = None,
        refresh_after_mutation: bool = True,
    ) -> None:
        self._query = query
        self._mutations = mutations
        self._hooks = hooks
        self._refresh_after_mutation = refresh_after_mutation
        self._pending: dict[str, PendingMutation] = {}
        self._logger = logging.getLogger(__name__)

    def pending(self, entry_id: str) -> PendingMutation | None:
        return self._pending.get(entry_id)

    def is_pending(self, entry_id: str) -> bool:
        return entry_id in self._pending

    def pending_ids(self) -> list[str]:
        return sorted(self._pending)

    @contextmanager
    def hold(self, pending: PendingMutation, extra_ids: Iterable[str] = ()) -> Iterator[PendingMutation]:
        """Register a pending mutation under its entry id (and any ids it will produce)."""
        keys = {pending.target_entry_id, *extra_ids}
        busy = [key for key in keys if key in self._pending]
        if busy:
            self._logger.info("Rejected concurrent mutation", extra={"entry_id": pending.target_entry_id})
            raise MutationInFlightError(pending.target_entry_id)
        for key in keys:
            self._pending[key] = pending
        try:
            yield pending
        finally:
            for key in keys:
                self._pending.pop(key, None)

    def clear(self) -> None:
        self._pending.clear()

    async def change_status(
        self, day: date, entry_id: str, status: BookingStatus, domain: ServiceDomain | None = None
    ) -> ScheduleEntry | None:
        return await self._run(day, entry_id, domain, BookingChange.set_status(status))

    async def reschedule(
        self,
        day: date,
        entry_id: str,
        start_at: datetime,
        end_at: datetime,
        domain: ServiceDomain | None = None,
    ) -> ScheduleEntry | None:
        return await self._run(day, entry_id, domain, BookingChange.move(start_at, end_at))

    async def delete(self, day: date, entry_id: str, domain: ServiceDomain | None = None) -> None:
        await self._run(day, entry_id, domain, BookingChange.remove())

    def _target(self, entry: ScheduleEntry, domain: ServiceDomain | None) -> ServiceBooking:
        if domain is None:
            if entry.is_composite:
                raise ValueError("Choose grooming or garden for a combined visit, or use a bulk action")
            return entry.constituents()[0]
        booking = entry.constituent(domain)
        if booking is None:
            raise ValueError(f"Entry {entry.id} has no {domain.value} booking")
        return booking

    @staticmethod
    def _project(day: date, entry: ScheduleEntry, domain: ServiceDomain, updated: ServiceBooking | None) -> list[ScheduleEntry]:
        other = entry.garden if domain is ServiceDomain.grooming else entry.grooming
        if updated is not None and updated.service_date != day:
            updated = None
        if updated is None:
            if other is None:
                return []
            if other.domain is ServiceDomain.grooming:
                return [build_entry(other, None)]
            return [build_entry(None, other)]
        if domain is ServiceDomain.grooming:
            return [build_entry(updated, other)]
        return [build_entry(other, updated)]

    async def _run(
        self, day: date, entry_id: str, domain: ServiceDomain | None, change: BookingChange
    ) -> ScheduleEntry | None:
        cache = self._query.cache
        if entry_id in self._pending:
            self._logger.info("Rejected concurrent mutation", extra={"entry_id": entry_id})
            raise MutationInFlightError(entry_id)
        snapshot = cache.get_entry(day, entry_id)
        if snapshot is None:
            raise UnknownEntryError(entry_id)

        booking = self._target(snapshot, domain)
        projected = self._project(day, snapshot, booking.domain, apply_change_locally(booking, change))
        pending = PendingMutation(
            target_entry_id=entry_id,
            previous_snapshot=snapshot,
            kind=change.kind,
            sub_mutations=(SubMutation(booking_id=booking.id, domain=booking.domain, change=change),),
        )
        log_extra = {
            "day": day.isoformat(),
            "entry_id": entry_id,
            "booking_id": booking.id,
            "domain": booking.domain.value,
            "kind": change.kind.value,
        }

        with self.hold(pending, extra_ids=[e.id for e in projected]):
            cache.remove_entry(day, entry_id)
            for entry in projected:
                cache.put_entry(day, entry)
            self._logger.info("Optimistic change applied", extra=log_extra)

            try:
                await self._mutations.apply(booking.id, booking.domain, change)
            except BookingStoreError as e:
                self._rollback(day, pending, projected)
                self._logger.warning("Mutation rejected, rolled back", extra={**log_extra, "reason": e.reason})
                raise MutationFailedError(
                    f"Could not {describe_change(change)} the {booking.domain.value} booking: {e}",
                    entry_id=entry_id,
                    domain=booking.domain.value,
                    reason=e.reason,
                ) from e
            except asyncio.CancelledError:
                self._rollback(day, pending, projected)
                raise
            except Exception as e:
                self._rollback(day, pending, projected)
                self._logger.exception("Unexpected mutation error, rolled back", extra=log_extra)
                raise MutationFailedError(
                    f"Could not {describe_change(change)} the {booking.domain.value} booking",
                    entry_id=entry_id,
                    domain=booking.domain.value,
                ) from e

        self._logger.info("Mutation confirmed", extra=log_extra)
        if self._refresh_after_mutation:
            self._query.invalidate({CacheTag.schedule, CacheTag.for_domain(booking.domain)}, day)
        await self.run_hooks(entry_id, booking.id, booking.domain, change)
        return projected[0] if projected else None

    def _rollback(self, day: date, pending: PendingMutation, projected: list[ScheduleEntry]) -> None:
        cache = self._query.cache
        for entry in projected:
            cache.remove_entry(day, entry.id)
        cache.put_entry(day, pending.previous_snapshot)

    async def run_hooks(self, entry_id: str, booking_id: str, domain: ServiceDomain, change: BookingChange) -> None:
        if self._hooks is None:
            return
        try:
            await self._hooks.after_commit(entry_id, booking_id, domain, change)
        except Exception:
            # the write is already committed; a hook failure must not undo it
            self._logger.exception(
                "Post-commit hook failed",
                extra={"entry_id": entry_id, "booking_id": booking_id, "domain": domain.value},
            )
