from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime

from schedule_board.domain.entities.schedule_entry import ScheduleEntry


@dataclass(frozen=True)
class TimelineSlot:
    top_offset_px: float
    height_px: float
    lane: int = 0
    lane_count: int = 1


@dataclass(frozen=True)
class HourMarker:
    label: str  # HH:MM
    offset_px: float


@dataclass(frozen=True)
class GridSlot:
    label: str
    offset_px: float
    height_px: float


@dataclass(frozen=True)
class TimelineConfig:
    start: datetime
    end: datetime
    total_minutes: int
    height_px: float
    pixels_per_minute: float
    interval_minutes: int
    hour_markers: tuple[HourMarker, ...] = field(default_factory=tuple)
    grid_slots: tuple[GridSlot, ...] = field(default_factory=tuple)


@dataclass(frozen=True)
class ShadowInterval:
    """Preview interval for an entry being resized or dragged. Never written to the cache."""

    entry_id: str
    start_at: datetime
    end_at: datetime


@dataclass(frozen=True)
class BoardItem:
    entry: ScheduleEntry
    slot: TimelineSlot
