from __future__ import annotations

import asyncio
import logging
from dataclasses import replace
from datetime import date
from typing import Any, Iterable

from schedule_board.application.exceptions import MutationRejectedError
from schedule_board.application.ports.booking_mutations import BookingMutationPort
from schedule_board.application.ports.schedule_source import RawDaySchedule, ScheduleSourcePort
from schedule_board.application.utils.booking_parser import booking_to_payload
from schedule_board.domain.entities.booking import ServiceBooking, ServiceDomain
from schedule_board.domain.entities.mutation import BookingChange, MutationKind


class MemoryBookingStore(ScheduleSourcePort, BookingMutationPort):
    """In-process stand-in for the booking backend, used in dev and tests."""

    def __init__(self, bookings: Iterable[ServiceBooking] = ()) -> None:
        self._bookings: dict[tuple[ServiceDomain, str], ServiceBooking] = {}
        self._raw: dict[date, list[tuple[ServiceDomain, dict[str, Any]]]] = {}
        self._failures: dict[str, MutationRejectedError] = {}
        self._stalls: dict[str, asyncio.Event] = {}
        self.calls: list[tuple[str, ServiceDomain, BookingChange]] = []
        self.fetches: list[date] = []
        self._logger = logging.getLogger(__name__)
        for booking in bookings:
            self.add(booking)

    def add(self, booking: ServiceBooking) -> None:
        self._bookings[(booking.domain, booking.id)] = booking

    def add_raw(self, day: date, domain: ServiceDomain, payload: dict[str, Any]) -> None:
        """Serve a record as-is for a day, e.g. a malformed one."""
        self._raw.setdefault(day, []).append((domain, payload))

    def get(self, domain: ServiceDomain, booking_id: str) -> ServiceBooking | None:
        return self._bookings.get((domain, booking_id))

    def fail_next(self, booking_id: str, reason: str = "conflict", message: str = "Rejected by store") -> None:
        self._failures[booking_id] = MutationRejectedError(message, reason=reason)

    def stall(self, booking_id: str) -> asyncio.Event:
        """Hold mutations for a booking until the returned event is set."""
        gate = asyncio.Event()
        self._stalls[booking_id] = gate
        return gate

    async def fetch_day(self, day: date) -> RawDaySchedule:
        await asyncio.sleep(0)
        self.fetches.append(day)
        schedule = RawDaySchedule()
        for (domain, _), booking in self._bookings.items():
            if booking.service_date == day:
                target = schedule.grooming if domain is ServiceDomain.grooming else schedule.garden
                target.append(booking_to_payload(booking))
        for domain, payload in self._raw.get(day, []):
            target = schedule.grooming if domain is ServiceDomain.grooming else schedule.garden
            target.append(dict(payload))
        return schedule

    async def apply(self, booking_id: str, domain: ServiceDomain, change: BookingChange) -> ServiceBooking | None:
        self.calls.append((booking_id, domain, change))
        gate = self._stalls.get(booking_id)
        if gate is not None:
            await gate.wait()
            self._stalls.pop(booking_id, None)
        else:
            await asyncio.sleep(0)

        failure = self._failures.pop(booking_id, None)
        if failure is not None:
            raise failure

        key = (domain, booking_id)
        booking = self._bookings.get(key)
        if booking is None:
            raise MutationRejectedError(f"{domain.value} booking {booking_id} not found", reason="not_found")

        if change.kind is MutationKind.delete:
            del self._bookings[key]
            self._logger.info("Mock booking deleted", extra={"booking_id": booking_id, "domain": domain.value})
            return None
        if change.kind is MutationKind.status_change:
            updated = replace(booking, status=change.status)
        else:
            updated = replace(booking, start_at=change.start_at, end_at=change.end_at)
        self._bookings[key] = updated
        self._logger.info(
            "Mock booking updated",
            extra={"booking_id": booking_id, "domain": domain.value, "kind": change.kind.value},
        )
        return updated
