from __future__ import annotations

from abc import ABC, abstractmethod
from datetime import date

from schedule_board.domain.entities.schedule_entry import ScheduleEntry


class ScheduleCachePort(ABC):
    @abstractmethod
    def has_day(self, day: date) -> bool:
        raise NotImplementedError

    @abstractmethod
    def get_entries(self, day: date) -> list[ScheduleEntry]:
        """Entries for the day, ordered by start then end."""
        raise NotImplementedError

    @abstractmethod
    def get_entry(self, day: date, entry_id: str) -> ScheduleEntry | None:
        raise NotImplementedError

    @abstractmethod
    def replace_day(self, day: date, entries: list[ScheduleEntry]) -> None:
        raise NotImplementedError

    @abstractmethod
    def put_entry(self, day: date, entry: ScheduleEntry) -> None:
        raise NotImplementedError

    @abstractmethod
    def remove_entry(self, day: date, entry_id: str) -> None:
        raise NotImplementedError

    @abstractmethod
    def mark_stale(self, day: date) -> None:
        raise NotImplementedError

    @abstractmethod
    def is_stale(self, day: date) -> bool:
        raise NotImplementedError
