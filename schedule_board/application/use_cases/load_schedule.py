from __future__ import annotations

import asyncio
import logging
from datetime import date, tzinfo
from enum import Enum
from typing import Iterable

from schedule_board.application.exceptions import BookingStoreError, MalformedBookingError
from schedule_board.application.ports.schedule_cache import ScheduleCachePort
from schedule_board.application.ports.schedule_source import ScheduleSourcePort
from schedule_board.application.use_cases.merge_entries import merge_day_bookings
from schedule_board.application.utils.booking_parser import parse_booking
from schedule_board.domain.entities.booking import ServiceBooking, ServiceDomain
from schedule_board.domain.entities.schedule_entry import ScheduleEntry


class CacheTag(str, Enum):
    schedule = "schedule"
    grooming = "grooming"
    garden = "garden"

    @staticmethod
    def for_domain(domain: ServiceDomain) -> "CacheTag":
        return CacheTag.grooming if domain is ServiceDomain.grooming else CacheTag.garden


class DayScheduleQuery:
    """
    Day-keyed read-through query over the booking store.

    Fetches both booking collections, drops malformed records, merges the
    rest into ScheduleEntries and stores them in the cache. Invalidating a
    tag this query provides marks the day stale and re-fetches it in the
    background while the cached entries stay visible.
    """

    provides: frozenset[CacheTag] = frozenset(CacheTag)

    def __init__(self, source: ScheduleSourcePort, cache: ScheduleCachePort, timezone: tzinfo) -> None:
        self._source = source
        self._cache = cache
        self._timezone = timezone
        self._active_day: date | None = None
        self._tasks: set[asyncio.Task] = set()
        self._logger = logging.getLogger(__name__)

    @property
    def cache(self) -> ScheduleCachePort:
        return self._cache

    @property
    def active_day(self) -> date | None:
        return self._active_day

    def set_active_day(self, day: date | None) -> None:
        self._active_day = day

    async def load(self, day: date) -> list[ScheduleEntry]:
        if self._cache.has_day(day) and not self._cache.is_stale(day):
            return self._cache.get_entries(day)
        return await self.refresh(day)

    async def refresh(self, day: date) -> list[ScheduleEntry]:
        raw = await self._source.fetch_day(day)
        grooming = self._parse_all(day, ServiceDomain.grooming, raw.grooming)
        garden = self._parse_all(day, ServiceDomain.garden, raw.garden)
        entries = merge_day_bookings(grooming, garden)
        self._cache.replace_day(day, entries)
        self._logger.info(
            "Day schedule loaded",
            extra={"day": day.isoformat(), "entries": len(entries)},
        )
        return entries

    def _parse_all(self, day: date, domain: ServiceDomain, records: Iterable[dict]) -> list[ServiceBooking]:
        bookings: list[ServiceBooking] = []
        for record in records or []:
            try:
                bookings.append(parse_booking(domain, record, self._timezone))
            except MalformedBookingError as e:
                record_id = record.get("id") if isinstance(record, dict) else None
                self._logger.warning(
                    "Skipping malformed booking",
                    extra={"day": day.isoformat(), "domain": domain.value, "booking_id": record_id, "reason": str(e)},
                )
        return bookings

    def invalidate(self, tags: Iterable[CacheTag], day: date) -> bool:
        """Mark the day stale if any tag matches; re-fetch in the background when it is on screen."""
        if not self.provides.intersection(tags):
            return False
        self._cache.mark_stale(day)
        if day != self._active_day:
            return True
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            return True
        task = loop.create_task(self._background_refresh(day))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return True

    async def _background_refresh(self, day: date) -> None:
        try:
            await self.refresh(day)
        except BookingStoreError as e:
            self._logger.exception(
                "Background refresh failed, keeping cached entries",
                extra={"day": day.isoformat(), "reason": str(e)},
            )

    async def settle(self) -> None:
        """Wait for outstanding background re-fetches."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks))
