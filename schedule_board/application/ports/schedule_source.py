from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import date
from typing import Any


@dataclass(frozen=True)
class RawDaySchedule:
    grooming: list[dict[str, Any]] = field(default_factory=list)
    garden: list[dict[str, Any]] = field(default_factory=list)


class ScheduleSourcePort(ABC):
    @abstractmethod
    async def fetch_day(self, day: date) -> RawDaySchedule:
        """Fetch raw grooming and garden booking records for one calendar day."""
        raise NotImplementedError
