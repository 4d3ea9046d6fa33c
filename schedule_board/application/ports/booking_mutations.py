from __future__ import annotations

from abc import ABC, abstractmethod

from schedule_board.domain.entities.booking import ServiceBooking, ServiceDomain
from schedule_board.domain.entities.mutation import BookingChange


class BookingMutationPort(ABC):
    @abstractmethod
    async def apply(self, booking_id: str, domain: ServiceDomain, change: BookingChange) -> ServiceBooking | None:
        """
        Apply one change to one booking.

        Returns the stored booking, or None for deletes.
        Raises MutationRejectedError or BookingStoreUnavailableError.
        """
        raise NotImplementedError
