from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum

from schedule_board.domain.entities.booking import BookingStatus, ServiceDomain
from schedule_board.domain.entities.schedule_entry import ScheduleEntry


class MutationKind(str, Enum):
    status_change = "status_change"
    reschedule = "reschedule"
    delete = "delete"


@dataclass(frozen=True)
class BookingChange:
    kind: MutationKind
    status: BookingStatus | None = None
    start_at: datetime | None = None
    end_at: datetime | None = None

    @staticmethod
    def set_status(status: BookingStatus) -> "BookingChange":
        return BookingChange(kind=MutationKind.status_change, status=status)

    @staticmethod
    def move(start_at: datetime, end_at: datetime) -> "BookingChange":
        if end_at <= start_at:
            raise ValueError("Reschedule end must be after start")
        return BookingChange(kind=MutationKind.reschedule, start_at=start_at, end_at=end_at)

    @staticmethod
    def remove() -> "BookingChange":
        return BookingChange(kind=MutationKind.delete)


@dataclass(frozen=True)
class SubMutation:
    booking_id: str
    domain: ServiceDomain
    change: BookingChange


@dataclass(frozen=True)
class PendingMutation:
    target_entry_id: str
    previous_snapshot: ScheduleEntry
    kind: MutationKind
    sub_mutations: tuple[SubMutation, ...] = ()
