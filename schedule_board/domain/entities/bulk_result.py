from __future__ import annotations

from dataclasses import dataclass, field
from typing import Union

from schedule_board.domain.entities.booking import ServiceDomain


@dataclass(frozen=True)
class FullSuccess:
    entry_id: str
    outcome: str = "full_success"


@dataclass(frozen=True)
class PartialFailure:
    # the succeeded half is kept; failed_side needs a manual retry
    entry_id: str
    failed_side: ServiceDomain
    failed_booking_id: str
    succeeded_side: ServiceDomain
    error: str
    outcome: str = "partial_failure"

    @property
    def message(self) -> str:
        return (
            f"{self.succeeded_side.label} was updated but {self.failed_side.label.lower()} "
            f"failed ({self.error}). Retry the {self.failed_side.label.lower()} booking."
        )


@dataclass(frozen=True)
class FullFailure:
    entry_id: str
    errors: dict[ServiceDomain, str] = field(default_factory=dict)
    outcome: str = "full_failure"


BulkResult = Union[FullSuccess, PartialFailure, FullFailure]
