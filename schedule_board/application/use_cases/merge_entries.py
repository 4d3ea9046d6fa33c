from __future__ import annotations

import logging
from collections import defaultdict
from datetime import date
from typing import Iterable

from schedule_board.application.utils.composite_id import composite_id
from schedule_board.domain.entities.booking import BookingStatus, ServiceBooking, ServiceDomain
from schedule_board.domain.entities.schedule_entry import EntryKind, ScheduleEntry

logger = logging.getLogger(__name__)

_KIND_ORDER = {EntryKind.both: 0, EntryKind.grooming: 1, EntryKind.garden: 2}
_KIND_LABELS = {
    EntryKind.grooming: "Grooming",
    EntryKind.garden: "Garden",
    EntryKind.both: "Grooming & Garden",
}

_APPROVED_LIKE = {BookingStatus.approved, BookingStatus.completed}


def aggregate_status(grooming: BookingStatus, garden: BookingStatus) -> BookingStatus:
    """Approved only when both halves are; cancelled when either half is."""
    if BookingStatus.cancelled in (grooming, garden):
        return BookingStatus.cancelled
    if grooming is BookingStatus.completed and garden is BookingStatus.completed:
        return BookingStatus.completed
    if grooming in _APPROVED_LIKE and garden in _APPROVED_LIKE:
        return BookingStatus.approved
    return BookingStatus.pending


def _label(kind: EntryKind, booking: ServiceBooking) -> str:
    who = booking.subject_name or booking.subject_id or booking.client_id
    if who:
        return f"{who} · {_KIND_LABELS[kind]}"
    return _KIND_LABELS[kind]


def build_entry(grooming: ServiceBooking | None, garden: ServiceBooking | None) -> ScheduleEntry:
    """Project one or two bookings into a ScheduleEntry."""
    if grooming is not None and grooming.domain is not ServiceDomain.grooming:
        raise ValueError(f"Booking {grooming.id} is not a grooming booking")
    if garden is not None and garden.domain is not ServiceDomain.garden:
        raise ValueError(f"Booking {garden.id} is not a garden booking")

    if grooming is not None and garden is not None:
        return ScheduleEntry(
            id=composite_id(grooming.id, garden.id),
            kind=EntryKind.both,
            start_at=min(grooming.start_at, garden.start_at),
            end_at=max(grooming.end_at, garden.end_at),
            status=aggregate_status(grooming.status, garden.status),
            display_label=_label(EntryKind.both, grooming),
            grooming=grooming,
            garden=garden,
        )

    single = grooming or garden
    if single is None:
        raise ValueError("An entry needs at least one booking")
    kind = EntryKind.grooming if grooming is not None else EntryKind.garden
    return ScheduleEntry(
        id=single.id,
        kind=kind,
        start_at=single.start_at,
        end_at=single.end_at,
        status=single.status,
        display_label=_label(kind, single),
        grooming=grooming,
        garden=garden,
    )


def entry_sort_key(entry: ScheduleEntry):
    return (entry.start_at, entry.end_at, _KIND_ORDER[entry.kind], entry.id)


def _booking_sort_key(booking: ServiceBooking):
    return (booking.start_at, booking.end_at, booking.id)


def _group_by_visit(bookings: list[ServiceBooking]) -> dict[tuple[str, date], list[ServiceBooking]]:
    groups: dict[tuple[str, date], list[ServiceBooking]] = defaultdict(list)
    for booking in bookings:
        if booking.subject_id:
            groups[(booking.subject_id, booking.service_date)].append(booking)
    return groups


def merge_day_bookings(
    grooming_bookings: Iterable[ServiceBooking],
    garden_bookings: Iterable[ServiceBooking],
) -> list[ScheduleEntry]:
    """
    Correlate grooming and garden bookings into ScheduleEntries.

    A grooming and a garden booking for the same subject on the same service
    date are one visit. When a subject has several bookings of one kind that
    day, only the earliest of each kind is paired; the rest stay singletons.
    Bookings without a subject never merge. The result is ordered by start,
    then end, and does not depend on input order.
    """
    grooming = sorted(grooming_bookings, key=_booking_sort_key)
    garden = sorted(garden_bookings, key=_booking_sort_key)

    garden_groups = _group_by_visit(garden)
    paired_garden: dict[str, ServiceBooking] = {}

    for key, grooming_group in _group_by_visit(grooming).items():
        garden_group = garden_groups.get(key)
        if not garden_group:
            continue
        first_grooming, first_garden = grooming_group[0], garden_group[0]
        paired_garden[first_grooming.id] = first_garden
        if len(grooming_group) > 1 or len(garden_group) > 1:
            logger.info(
                "Subject has extra bookings on one day, merging first pair only",
                extra={"subject_id": key[0], "day": key[1].isoformat(), "entry_id": first_grooming.id},
            )

    used_garden_ids = {b.id for b in paired_garden.values()}
    entries: list[ScheduleEntry] = []
    for booking in grooming:
        entries.append(build_entry(booking, paired_garden.get(booking.id)))
    for booking in garden:
        if booking.id not in used_garden_ids:
            entries.append(build_entry(None, booking))

    entries.sort(key=entry_sort_key)
    return entries
