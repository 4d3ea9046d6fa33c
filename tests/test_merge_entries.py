"""
Tests for merging grooming and garden bookings into schedule entries.
"""

from __future__ import annotations

import random
from datetime import date, datetime
from zoneinfo import ZoneInfo

from schedule_board.application.use_cases.merge_entries import aggregate_status, build_entry, merge_day_bookings
from schedule_board.domain.entities.booking import BookingStatus, ServiceBooking, ServiceDomain
from schedule_board.domain.entities.schedule_entry import EntryKind

TZ = ZoneInfo("Asia/Jerusalem")
DAY = date(2025, 3, 10)


def _at(hour: int, minute: int = 0, day: date = DAY) -> datetime:
    return datetime(day.year, day.month, day.day, hour, minute, tzinfo=TZ)


def _grooming(booking_id, start, end, subject="S1", status=BookingStatus.pending):
    return ServiceBooking(
        id=booking_id,
        domain=ServiceDomain.grooming,
        start_at=start,
        end_at=end,
        status=status,
        subject_id=subject,
        subject_name="Rex" if subject else None,
    )


def _garden(booking_id, start, end, subject="S1", status=BookingStatus.pending):
    return ServiceBooking(
        id=booking_id,
        domain=ServiceDomain.garden,
        start_at=start,
        end_at=end,
        status=status,
        subject_id=subject,
        subject_name="Rex" if subject else None,
    )


def test_same_subject_same_day_merges_into_one_entry():
    g1 = _grooming("G1", _at(10), _at(11))
    d1 = _garden("D1", _at(10, 30), _at(12))

    entries = merge_day_bookings([g1], [d1])

    assert len(entries) == 1
    entry = entries[0]
    assert entry.kind is EntryKind.both
    assert entry.id == "G1"
    assert entry.start_at == _at(10)
    assert entry.end_at == _at(12)
    assert entry.grooming_booking_id == "G1"
    assert entry.garden_booking_id == "D1"
    assert entry.display_label == "Rex · Grooming & Garden"


def test_different_subjects_stay_separate_and_sorted():
    g1 = _grooming("G1", _at(11), _at(12), subject="S1")
    d2 = _garden("D2", _at(9), _at(10), subject="S2")

    entries = merge_day_bookings([g1], [d2])

    assert [e.id for e in entries] == ["D2", "G1"]
    assert [e.kind for e in entries] == [EntryKind.garden, EntryKind.grooming]


def test_bookings_without_subject_never_merge():
    g1 = _grooming("G1", _at(10), _at(11), subject=None)
    d1 = _garden("D1", _at(10), _at(11), subject=None)

    entries = merge_day_bookings([g1], [d1])

    assert {e.kind for e in entries} == {EntryKind.grooming, EntryKind.garden}
    assert entries[0].display_label in ("Grooming", "Garden")


def test_same_subject_on_different_days_does_not_merge():
    g1 = _grooming("G1", _at(10), _at(11))
    d1 = _garden("D1", _at(10, day=date(2025, 3, 11)), _at(11, day=date(2025, 3, 11)))

    entries = merge_day_bookings([g1], [d1])

    assert len(entries) == 2
    assert all(not e.is_composite for e in entries)


def test_extra_bookings_of_one_kind_pair_first_only():
    g1 = _grooming("G1", _at(9), _at(10))
    g2 = _grooming("G2", _at(14), _at(15))
    d1 = _garden("D1", _at(10), _at(11))

    entries = merge_day_bookings([g2, g1], [d1])

    by_id = {e.id: e for e in entries}
    assert by_id["G1"].kind is EntryKind.both
    assert by_id["G1"].garden_booking_id == "D1"
    assert by_id["G2"].kind is EntryKind.grooming
    assert "D1" not in by_id


def test_every_booking_is_in_exactly_one_entry():
    grooming = [
        _grooming("G1", _at(9), _at(10), subject="S1"),
        _grooming("G2", _at(10), _at(11), subject="S2"),
        _grooming("G3", _at(12), _at(13), subject="S1"),
    ]
    garden = [
        _garden("D1", _at(9), _at(11), subject="S1"),
        _garden("D2", _at(15), _at(16), subject="S3"),
    ]

    entries = merge_day_bookings(grooming, garden)

    seen = []
    for entry in entries:
        seen.extend(b.id for b in entry.constituents())
    assert sorted(seen) == ["D1", "D2", "G1", "G2", "G3"]


def test_merge_is_independent_of_input_order():
    grooming = [
        _grooming("G1", _at(9), _at(10), subject="S1"),
        _grooming("G2", _at(9), _at(10), subject="S2"),
        _grooming("G3", _at(13), _at(14), subject="S3"),
    ]
    garden = [
        _garden("D1", _at(9, 30), _at(10, 30), subject="S1"),
        _garden("D2", _at(8), _at(9), subject="S4"),
    ]
    expected = merge_day_bookings(grooming, garden)

    shuffler = random.Random(7)
    for _ in range(5):
        g, d = list(grooming), list(garden)
        shuffler.shuffle(g)
        shuffler.shuffle(d)
        assert merge_day_bookings(g, d) == expected


def test_merging_again_gives_the_same_entries():
    grooming = [_grooming("G1", _at(10), _at(11))]
    garden = [_garden("D1", _at(10), _at(11))]

    first = merge_day_bookings(grooming, garden)
    constituents_g = [e.grooming for e in first if e.grooming]
    constituents_d = [e.garden for e in first if e.garden]

    assert merge_day_bookings(constituents_g, constituents_d) == first


def test_composite_status_is_pending_until_both_halves_approved():
    g1 = _grooming("G1", _at(10), _at(11), status=BookingStatus.approved)
    d1 = _garden("D1", _at(10), _at(11), status=BookingStatus.pending)

    assert build_entry(g1, d1).status is BookingStatus.pending

    d1_approved = _garden("D1", _at(10), _at(11), status=BookingStatus.approved)
    assert build_entry(g1, d1_approved).status is BookingStatus.approved


def test_aggregate_status_rules():
    s = BookingStatus
    assert aggregate_status(s.cancelled, s.approved) is s.cancelled
    assert aggregate_status(s.pending, s.cancelled) is s.cancelled
    assert aggregate_status(s.completed, s.completed) is s.completed
    assert aggregate_status(s.completed, s.approved) is s.approved
    assert aggregate_status(s.pending, s.pending) is s.pending


def test_build_entry_rejects_wrong_domain():
    d1 = _garden("D1", _at(10), _at(11))
    try:
        build_entry(d1, None)
    except ValueError as e:
        assert "not a grooming booking" in str(e)
    else:
        raise AssertionError("expected ValueError")


def test_all_day_garden_stay_widens_the_visit():
    g1 = _grooming("G1", _at(10), _at(11))
    d1 = _garden("D1", _at(7), _at(19))

    (entry,) = merge_day_bookings([g1], [d1])

    assert (entry.start_at, entry.end_at) == (_at(7), _at(19))
    assert entry.id == "G1"


def test_constituent_ids_look_up_the_original_bookings():
    grooming = [_grooming("G1", _at(9), _at(10), subject="S1"), _grooming("G2", _at(11), _at(12), subject="S2")]
    garden = [_garden("D1", _at(9), _at(17), subject="S1"), _garden("D2", _at(8), _at(9), subject="S2")]
    grooming_by_id = {b.id: b for b in grooming}
    garden_by_id = {b.id: b for b in garden}

    for entry in merge_day_bookings(grooming, garden):
        assert entry.is_composite
        assert grooming_by_id[entry.grooming_booking_id] == entry.grooming
        assert garden_by_id[entry.garden_booking_id] == entry.garden
