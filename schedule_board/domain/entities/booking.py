from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from enum import Enum


class ServiceDomain(str, Enum):
    grooming = "grooming"
    garden = "garden"

    @property
    def label(self) -> str:
        return "Grooming" if self is ServiceDomain.grooming else "Garden"


class BookingStatus(str, Enum):
    pending = "pending"
    approved = "approved"
    cancelled = "cancelled"
    completed = "completed"


@dataclass(frozen=True)
class ServiceBooking:
    id: str
    domain: ServiceDomain
    start_at: datetime  # half-open [start_at, end_at)
    end_at: datetime
    status: BookingStatus = BookingStatus.pending
    client_id: str | None = None
    subject_id: str | None = None  # the animal being serviced
    subject_name: str | None = None
    resource_id: str | None = None  # grooming station; unused for garden
    notes: str = ""
    add_ons: tuple[str, ...] = ()

    @property
    def service_date(self) -> date:
        return self.start_at.date()

    @property
    def duration_minutes(self) -> float:
        return (self.end_at - self.start_at).total_seconds() / 60
