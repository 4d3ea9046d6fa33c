from __future__ import annotations

import logging

from schedule_board.application.ports.commit_hooks import CommitHooksPort
from schedule_board.domain.entities.booking import ServiceDomain
from schedule_board.domain.entities.mutation import BookingChange


class LogCommitHooks(CommitHooksPort):
    def __init__(self) -> None:
        self._logger = logging.getLogger(__name__)

    async def after_commit(self, entry_id: str, booking_id: str, domain: ServiceDomain, change: BookingChange) -> None:
        self._logger.info(
            "Booking change committed",
            extra={"entry_id": entry_id, "booking_id": booking_id, "domain": domain.value, "kind": change.kind.value},
        )
