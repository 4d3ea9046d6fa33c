from __future__ import annotations

import math
from datetime import date, datetime, time, timedelta, tzinfo
from typing import Sequence

from schedule_board.domain.entities.schedule_entry import ScheduleEntry
from schedule_board.domain.entities.timeline import (
    BoardItem,
    GridSlot,
    HourMarker,
    ShadowInterval,
    TimelineConfig,
    TimelineSlot,
)

PIXELS_PER_MINUTE_SCALE: tuple[float, ...] = (0.8, 1.2, 1.6, 2.0, 2.4, 2.8, 3.2)
MIN_TIMELINE_MINUTES = 60


def pixels_per_minute(scale: int) -> float:
    """Map a zoom level (1-based) to its pixels-per-minute value."""
    if not 1 <= scale <= len(PIXELS_PER_MINUTE_SCALE):
        raise ValueError(f"Zoom level must be between 1 and {len(PIXELS_PER_MINUTE_SCALE)}, got {scale}")
    return PIXELS_PER_MINUTE_SCALE[scale - 1]


def _check_interval(interval_minutes: int) -> int:
    if interval_minutes <= 0:
        raise ValueError(f"Interval must be a positive number of minutes, got {interval_minutes}")
    return interval_minutes


def _minutes_between(start: datetime, end: datetime) -> float:
    return (end - start).total_seconds() / 60


def _round_half_up(value: float) -> int:
    return math.floor(value + 0.5)


def build_timeline(
    day: date,
    entries: Sequence[ScheduleEntry],
    timezone: tzinfo,
    interval_minutes: int = 15,
    scale: int = 3,
    start_hour: int = 8,
    end_hour: int = 20,
    start_minute: int = 0,
    end_minute: int = 0,
) -> TimelineConfig:
    """
    Build the visible window for a day.

    The window opens at business open or at the earliest entry, whichever is
    earlier, and always closes at business close. It is never shorter than
    an hour of grid.
    """
    _check_interval(interval_minutes)
    ppm = pixels_per_minute(scale)

    start = datetime.combine(day, time(start_hour, start_minute), tzinfo=timezone)
    end = datetime.combine(day, time(end_hour, end_minute), tzinfo=timezone)

    if entries:
        start = min([start, *(e.start_at for e in entries)])

    if end <= start:
        end = start + timedelta(hours=1)

    total_minutes = max(MIN_TIMELINE_MINUTES, int(_minutes_between(start, end)))
    height_px = total_minutes * ppm

    hour_markers: list[HourMarker] = []
    cursor = start
    while cursor <= end:
        hour_markers.append(HourMarker(label=cursor.strftime("%H:%M"), offset_px=_minutes_between(start, cursor) * ppm))
        cursor += timedelta(hours=1)

    grid_slots: list[GridSlot] = []
    cursor = start
    step = timedelta(minutes=interval_minutes)
    while cursor < end:
        slot_end = min(end, cursor + step)
        grid_slots.append(
            GridSlot(
                label=cursor.strftime("%H:%M"),
                offset_px=_minutes_between(start, cursor) * ppm,
                height_px=max(1.0, _minutes_between(cursor, slot_end) * ppm),
            )
        )
        cursor = slot_end

    return TimelineConfig(
        start=start,
        end=end,
        total_minutes=total_minutes,
        height_px=height_px,
        pixels_per_minute=ppm,
        interval_minutes=interval_minutes,
        hour_markers=tuple(hour_markers),
        grid_slots=tuple(grid_slots),
    )


def assign_lanes(intervals: Sequence[tuple[str, datetime, datetime]]) -> dict[str, tuple[int, int]]:
    """
    Greedy interval colouring.

    Intervals are taken by start, then end (shorter first); each gets the
    lowest lane whose last interval has ended by its start. Lane count is
    the widest lane used within the overlapping cluster the interval sits
    in. Returns {id: (lane, lane_count)}.
    """
    ordered = sorted(intervals, key=lambda item: (item[1], item[2], item[0]))

    lane_ends: list[datetime] = []
    lanes: dict[str, int] = {}
    clusters: list[list[str]] = []
    cluster_end: datetime | None = None

    for entry_id, start, end in ordered:
        if cluster_end is None or start >= cluster_end:
            clusters.append([])
            cluster_end = end
            lane_ends = []
        else:
            cluster_end = max(cluster_end, end)
        clusters[-1].append(entry_id)

        for index, lane_end in enumerate(lane_ends):
            if lane_end <= start:
                lanes[entry_id] = index
                lane_ends[index] = end
                break
        else:
            lanes[entry_id] = len(lane_ends)
            lane_ends.append(end)

    result: dict[str, tuple[int, int]] = {}
    for cluster in clusters:
        lane_count = max(lanes[entry_id] for entry_id in cluster) + 1
        for entry_id in cluster:
            result[entry_id] = (lanes[entry_id], lane_count)
    return result


def layout_entries(
    entries: Sequence[ScheduleEntry],
    timeline: TimelineConfig,
    min_row_height_px: float = 24.0,
    preview: ShadowInterval | None = None,
) -> list[BoardItem]:
    """Position entries on the timeline. A preview replaces its entry's interval for this pass only."""

    def interval_of(entry: ScheduleEntry) -> tuple[datetime, datetime]:
        if preview is not None and preview.entry_id == entry.id:
            return preview.start_at, preview.end_at
        return entry.start_at, entry.end_at

    lanes = assign_lanes([(e.id, *interval_of(e)) for e in entries])
    ppm = timeline.pixels_per_minute

    items: list[BoardItem] = []
    for entry in entries:
        start, end = interval_of(entry)
        lane, lane_count = lanes[entry.id]
        items.append(
            BoardItem(
                entry=entry,
                slot=TimelineSlot(
                    top_offset_px=_minutes_between(timeline.start, start) * ppm,
                    height_px=max(min_row_height_px, _minutes_between(start, end) * ppm),
                    lane=lane,
                    lane_count=lane_count,
                ),
            )
        )
    return items


def snap_end(start: datetime, candidate_end: datetime, interval_minutes: int, timeline_end: datetime | None = None) -> datetime:
    """Snap an end to the interval grid, never shorter than one interval."""
    _check_interval(interval_minutes)
    duration = _minutes_between(start, candidate_end)
    snapped = max(interval_minutes, _round_half_up(duration / interval_minutes) * interval_minutes)
    end = start + timedelta(minutes=snapped)
    if timeline_end is not None:
        end = max(min(end, timeline_end), start + timedelta(minutes=interval_minutes))
    return end


def resize_preview(
    entry: ScheduleEntry,
    candidate_end: datetime,
    interval_minutes: int,
    timeline_end: datetime | None = None,
) -> ShadowInterval:
    return ShadowInterval(
        entry_id=entry.id,
        start_at=entry.start_at,
        end_at=snap_end(entry.start_at, candidate_end, interval_minutes, timeline_end),
    )


def resize_preview_from_delta(
    entry: ScheduleEntry,
    delta_px: float,
    pixels_per_minute: float,
    interval_minutes: int,
    timeline_end: datetime | None = None,
) -> ShadowInterval:
    """Resize driven by a vertical pointer delta from the original bottom edge."""
    _check_interval(interval_minutes)
    delta_minutes = delta_px / pixels_per_minute
    relative = _round_half_up(delta_minutes / interval_minutes) * interval_minutes
    base = max(interval_minutes, _minutes_between(entry.start_at, entry.end_at))
    candidate_end = entry.start_at + timedelta(minutes=base + relative)
    return resize_preview(entry, candidate_end, interval_minutes, timeline_end)


def move_preview(
    entry: ScheduleEntry,
    candidate_start: datetime,
    interval_minutes: int,
    timeline: TimelineConfig,
) -> ShadowInterval:
    """Drag preview: keep the duration, snap the start to the grid, stay inside the window."""
    _check_interval(interval_minutes)
    duration = entry.end_at - entry.start_at
    offset = _minutes_between(timeline.start, candidate_start)
    snapped = _round_half_up(offset / interval_minutes) * interval_minutes
    start = timeline.start + timedelta(minutes=snapped)

    latest_start = timeline.end - duration
    if start > latest_start:
        start = latest_start
    if start < timeline.start:
        start = timeline.start
    return ShadowInterval(entry_id=entry.id, start_at=start, end_at=start + duration)
