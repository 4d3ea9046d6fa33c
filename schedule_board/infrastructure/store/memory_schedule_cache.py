from __future__ import annotations

import logging
from datetime import date

from schedule_board.application.ports.schedule_cache import ScheduleCachePort
from schedule_board.application.use_cases.merge_entries import entry_sort_key
from schedule_board.domain.entities.schedule_entry import ScheduleEntry


class MemoryScheduleCache(ScheduleCachePort):
    """Client-held day snapshots. The oldest stored day is evicted past `snapshot_limit`."""

    def __init__(self, snapshot_limit: int = 8) -> None:
        if snapshot_limit < 1:
            raise ValueError("snapshot_limit must be at least 1")
        self._days: dict[date, dict[str, ScheduleEntry]] = {}
        self._stale: set[date] = set()
        self._snapshot_limit = snapshot_limit
        self._logger = logging.getLogger(__name__)

    def has_day(self, day: date) -> bool:
        return day in self._days

    def get_entries(self, day: date) -> list[ScheduleEntry]:
        return sorted(self._days.get(day, {}).values(), key=entry_sort_key)

    def get_entry(self, day: date, entry_id: str) -> ScheduleEntry | None:
        return self._days.get(day, {}).get(entry_id)

    def replace_day(self, day: date, entries: list[ScheduleEntry]) -> None:
        self._days.pop(day, None)
        self._days[day] = {entry.id: entry for entry in entries}
        self._stale.discard(day)
        while len(self._days) > self._snapshot_limit:
            oldest = next(iter(self._days))
            del self._days[oldest]
            self._stale.discard(oldest)
            self._logger.debug("Evicted day snapshot", extra={"day": oldest.isoformat()})

    def put_entry(self, day: date, entry: ScheduleEntry) -> None:
        self._days.setdefault(day, {})[entry.id] = entry

    def remove_entry(self, day: date, entry_id: str) -> None:
        self._days.get(day, {}).pop(entry_id, None)

    def mark_stale(self, day: date) -> None:
        if day in self._days:
            self._stale.add(day)

    def is_stale(self, day: date) -> bool:
        return day in self._stale
