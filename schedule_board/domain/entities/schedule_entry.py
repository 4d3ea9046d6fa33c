from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum

from schedule_board.domain.entities.booking import BookingStatus, ServiceBooking, ServiceDomain


class EntryKind(str, Enum):
    grooming = "grooming"
    garden = "garden"
    both = "both"


@dataclass(frozen=True)
class ScheduleEntry:
    """
    Render-ready projection of one booking, or of a grooming and a garden
    booking for the same subject and day.

    Entries are recomputed from bookings on every refresh and never persisted.
    A `both` entry always carries both constituents; a single-kind entry
    carries exactly one.
    """

    id: str
    kind: EntryKind
    start_at: datetime
    end_at: datetime
    status: BookingStatus
    display_label: str
    grooming: ServiceBooking | None = None
    garden: ServiceBooking | None = None

    @property
    def grooming_booking_id(self) -> str | None:
        return self.grooming.id if self.grooming else None

    @property
    def garden_booking_id(self) -> str | None:
        return self.garden.id if self.garden else None

    @property
    def is_composite(self) -> bool:
        return self.kind is EntryKind.both

    def constituents(self) -> list[ServiceBooking]:
        return [b for b in (self.grooming, self.garden) if b is not None]

    def constituent(self, domain: ServiceDomain) -> ServiceBooking | None:
        return self.grooming if domain is ServiceDomain.grooming else self.garden
