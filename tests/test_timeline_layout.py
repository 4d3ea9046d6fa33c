"""
Tests for the day timeline: window, lanes, slots and resize/move previews.
"""

from __future__ import annotations

from datetime import date, datetime
from zoneinfo import ZoneInfo

import pytest

from schedule_board.application.use_cases.merge_entries import build_entry
from schedule_board.application.use_cases.timeline_layout import (
    assign_lanes,
    build_timeline,
    layout_entries,
    move_preview,
    pixels_per_minute,
    resize_preview,
    resize_preview_from_delta,
    snap_end,
)
from schedule_board.domain.entities.booking import ServiceBooking, ServiceDomain
from schedule_board.domain.entities.timeline import ShadowInterval

TZ = ZoneInfo("Asia/Jerusalem")
DAY = date(2025, 3, 10)


def _at(hour: int, minute: int = 0, second: int = 0) -> datetime:
    return datetime(2025, 3, 10, hour, minute, second, tzinfo=TZ)


def _entry(entry_id, start, end):
    return build_entry(
        ServiceBooking(id=entry_id, domain=ServiceDomain.grooming, start_at=start, end_at=end, subject_id=entry_id),
        None,
    )


def test_pixels_per_minute_scale():
    assert pixels_per_minute(1) == 0.8
    assert pixels_per_minute(3) == 1.6
    assert pixels_per_minute(7) == 3.2
    with pytest.raises(ValueError):
        pixels_per_minute(8)


def test_timeline_covers_business_hours():
    timeline = build_timeline(DAY, [_entry("A", _at(10), _at(11))], TZ)

    assert timeline.start == _at(8)
    assert timeline.end == _at(20)
    assert timeline.total_minutes == 720
    assert timeline.height_px == pytest.approx(1152.0)
    assert [m.label for m in timeline.hour_markers][:2] == ["08:00", "09:00"]
    assert len(timeline.hour_markers) == 13
    assert len(timeline.grid_slots) == 48
    assert timeline.grid_slots[1].offset_px == pytest.approx(24.0)


def test_grid_slots_cover_the_window_in_interval_steps():
    timeline = build_timeline(DAY, [], TZ, interval_minutes=30, end_minute=10)

    slots = timeline.grid_slots
    assert len(slots) == 25
    assert [s.label for s in slots[:3]] == ["08:00", "08:30", "09:00"]
    assert [s.offset_px for s in slots[:3]] == pytest.approx([0.0, 48.0, 96.0])
    assert all(s.height_px == pytest.approx(48.0) for s in slots[:-1])
    assert slots[-1].label == "20:00"
    assert slots[-1].offset_px == pytest.approx(720 * 1.6)
    assert slots[-1].height_px == pytest.approx(16.0)


def test_grid_slots_are_at_least_one_pixel_high():
    timeline = build_timeline(DAY, [], TZ, interval_minutes=1, scale=1, end_hour=8)

    assert timeline.total_minutes == 60
    assert len(timeline.grid_slots) == 60
    assert all(s.height_px == 1.0 for s in timeline.grid_slots)


def test_timeline_opens_early_for_early_entries():
    timeline = build_timeline(DAY, [_entry("A", _at(6, 30), _at(7, 30))], TZ)

    assert timeline.start == _at(6, 30)
    assert timeline.hour_markers[0].label == "06:30"
    assert timeline.end == _at(20)


def test_three_overlapping_entries_use_three_lanes():
    lanes = assign_lanes(
        [
            ("A", _at(10), _at(11)),
            ("B", _at(10, 15), _at(11, 15)),
            ("C", _at(10, 30), _at(11, 30)),
            ("D", _at(12), _at(12, 30)),
        ]
    )

    assert {lanes[k][0] for k in "ABC"} == {0, 1, 2}
    assert all(lanes[k][1] == 3 for k in "ABC")
    assert lanes["D"] == (0, 1)


def test_mutually_overlapping_entries_take_lanes_in_start_order():
    lanes = assign_lanes(
        [
            ("A", _at(10), _at(10, 30)),
            ("B", _at(10, 15), _at(10, 45)),
            ("C", _at(10, 20), _at(10, 50)),
        ]
    )

    assert lanes == {"A": (0, 3), "B": (1, 3), "C": (2, 3)}


def _max_depth(intervals):
    events = sorted([(s, 1) for _, s, _ in intervals] + [(e, -1) for _, _, e in intervals])
    depth = best = 0
    for _, delta in events:
        depth += delta
        best = max(best, depth)
    return best


def test_lane_count_never_exceeds_overlap_depth():
    intervals = [
        ("A", _at(9), _at(10)),
        ("B", _at(9, 15), _at(9, 45)),
        ("C", _at(9, 50), _at(11)),
        ("D", _at(10, 30), _at(11, 30)),
        ("E", _at(11), _at(12)),
        ("F", _at(11, 15), _at(11, 20)),
    ]
    lanes = assign_lanes(intervals)

    assert max(lane_count for _, lane_count in lanes.values()) <= _max_depth(intervals)
    assert max(lane for lane, _ in lanes.values()) + 1 <= _max_depth(intervals)


def test_lanes_are_reused_once_free():
    lanes = assign_lanes(
        [
            ("A", _at(10), _at(11)),
            ("B", _at(10, 30), _at(11, 30)),
            ("C", _at(11), _at(12)),
        ]
    )

    assert lanes["A"] == (0, 2)
    assert lanes["B"] == (1, 2)
    assert lanes["C"] == (0, 2)


def test_touching_entries_share_a_lane():
    lanes = assign_lanes([("A", _at(10), _at(11)), ("B", _at(11), _at(12))])

    assert lanes == {"A": (0, 1), "B": (0, 1)}


def test_overlapping_entries_never_share_a_lane():
    intervals = [
        ("A", _at(9), _at(12)),
        ("B", _at(9, 30), _at(10)),
        ("C", _at(10), _at(10, 45)),
        ("D", _at(10, 30), _at(11)),
        ("E", _at(11), _at(13)),
    ]
    lanes = assign_lanes(intervals)

    for i, (a, a_start, a_end) in enumerate(intervals):
        for b, b_start, b_end in intervals[i + 1:]:
            if a_start < b_end and b_start < a_end:
                assert lanes[a][0] != lanes[b][0]


def test_layout_positions_and_min_height():
    entries = [_entry("A", _at(10), _at(11)), _entry("B", _at(12), _at(12, 10))]
    timeline = build_timeline(DAY, entries, TZ)

    items = {item.entry.id: item for item in layout_entries(entries, timeline)}

    assert items["A"].slot.top_offset_px == pytest.approx(192.0)
    assert items["A"].slot.height_px == pytest.approx(96.0)
    assert items["B"].slot.height_px == 24.0


def test_layout_uses_preview_interval():
    entries = [_entry("A", _at(10), _at(11)), _entry("B", _at(11, 30), _at(12))]
    timeline = build_timeline(DAY, entries, TZ)
    preview = ShadowInterval(entry_id="A", start_at=_at(10), end_at=_at(12))

    items = {item.entry.id: item for item in layout_entries(entries, timeline, preview=preview)}

    assert items["A"].slot.height_px == pytest.approx(192.0)
    assert items["A"].slot.lane_count == 2
    assert items["A"].entry.end_at == _at(11)


def test_resize_of_an_hour_down_to_five_minutes_snaps_to_one_interval():
    entry = _entry("A", _at(10), _at(11))

    preview = resize_preview(entry, _at(10, 5), 15)

    assert (preview.start_at, preview.end_at) == (_at(10), _at(10, 15))


def test_resize_snaps_to_one_interval_minimum():
    entry = _entry("A", _at(10), _at(10, 30))

    assert resize_preview(entry, _at(10, 5), 15).end_at == _at(10, 15)
    assert resize_preview(entry, _at(10, 37), 15).end_at == _at(10, 30)
    assert resize_preview(entry, _at(10, 37, 30), 15).end_at == _at(10, 45)
    assert resize_preview(entry, _at(9), 15).end_at == _at(10, 15)


def test_resize_is_clamped_to_the_timeline_end():
    assert snap_end(_at(19, 30), _at(20, 30), 15, timeline_end=_at(20)) == _at(20)


def test_resize_from_pointer_delta():
    entry = _entry("A", _at(10), _at(10, 30))

    assert resize_preview_from_delta(entry, 48, 1.6, 15).end_at == _at(11)
    assert resize_preview_from_delta(entry, -100, 1.6, 15).end_at == _at(10, 15)


def test_move_keeps_duration_and_snaps_to_grid():
    entry = _entry("A", _at(10), _at(11))
    timeline = build_timeline(DAY, [entry], TZ)

    preview = move_preview(entry, _at(10, 8), 15, timeline)
    assert (preview.start_at, preview.end_at) == (_at(10, 15), _at(11, 15))
    assert move_preview(entry, _at(10, 7), 15, timeline).start_at == _at(10)


def test_move_stays_inside_the_window():
    entry = _entry("A", _at(10), _at(11))
    timeline = build_timeline(DAY, [entry], TZ)

    late = move_preview(entry, _at(19, 40), 15, timeline)
    assert (late.start_at, late.end_at) == (_at(19), _at(20))
    assert move_preview(entry, _at(7), 15, timeline).start_at == _at(8)
