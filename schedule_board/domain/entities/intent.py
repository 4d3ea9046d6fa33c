from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum

from schedule_board.domain.entities.booking import ServiceDomain
from schedule_board.domain.entities.bulk_result import BulkResult
from schedule_board.domain.entities.schedule_entry import ScheduleEntry


class IntentAction(str, Enum):
    approve = "approve"
    decline = "decline"
    cancel = "cancel"
    delete = "delete"
    reschedule = "reschedule"
    bulk_approve = "bulk_approve"
    bulk_cancel = "bulk_cancel"
    bulk_delete = "bulk_delete"

    @property
    def is_bulk(self) -> bool:
        return self.value.startswith("bulk_")


@dataclass(frozen=True)
class Intent:
    action: IntentAction
    entry_id: str
    domain: ServiceDomain | None = None  # which half of a combined visit
    start_at: datetime | None = None
    end_at: datetime | None = None
    grooming_booking_id: str | None = None
    garden_booking_id: str | None = None


@dataclass(frozen=True)
class IntentResult:
    action: IntentAction
    entry_id: str
    entry: ScheduleEntry | None = None  # optimistic entry after a single-entity change
    bulk: BulkResult | None = None
