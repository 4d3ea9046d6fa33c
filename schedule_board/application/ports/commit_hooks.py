from __future__ import annotations

from abc import ABC, abstractmethod

from schedule_board.domain.entities.booking import ServiceDomain
from schedule_board.domain.entities.mutation import BookingChange


class CommitHooksPort(ABC):
    @abstractmethod
    async def after_commit(self, entry_id: str, booking_id: str, domain: ServiceDomain, change: BookingChange) -> None:
        """Run side effects (reminders, cart updates) for a committed booking change."""
        raise NotImplementedError
