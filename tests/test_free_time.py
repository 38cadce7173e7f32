"""
Tests for the day partition, gap detection and schedule cells.
"""

from __future__ import annotations

from datetime import date, datetime, timedelta, timezone

import pytest

from bathhouse.application.exceptions import FormatError
from bathhouse.application.use_cases.chan_rules import TimeOfDayChanPolicy
from bathhouse.application.use_cases.free_time import (
    build_segments,
    check_gaps,
    classify_cells,
    cleaning_ranges,
    day_partition,
    free_ranges,
    offered_slots,
    tight_gaps,
    tight_ranges,
)
from bathhouse.application.utils.schedule_days import display_days, end_time_options, start_time_options
from bathhouse.application.utils.time_kernel import day_bounds, format_time, time_to_minutes
from bathhouse.domain.entities.booking import Booking, BookingStatus
from bathhouse.domain.entities.schedule_cell import CellStatus
from bathhouse.domain.entities.schedule_settings import ScheduleSettings

TZ = "Europe/Kyiv"
DAY = date(2030, 6, 3)
SETTINGS = ScheduleSettings(time_zone=TZ, day_open_time="09:00", day_close_time="23:00")
CREATED = datetime(2030, 6, 1, 12, 0, tzinfo=timezone.utc)


def make_booking(start: str, end: str, with_chan: bool = False, status: BookingStatus = BookingStatus.CONFIRMED):
    return Booking(
        id=f"b{start}{end}".replace(":", ""),
        date=DAY,
        start_time=start,
        end_time=end,
        duration_minutes=time_to_minutes(end) - time_to_minutes(start),
        created_by=1,
        created_at=CREATED,
        with_chan=with_chan,
        status=status,
    )


def labels(ranges):
    return [(format_time(r.start, DAY, TZ), format_time(r.end, DAY, TZ)) for r in ranges]


def test_partition_covers_working_hours_exactly():
    bookings = [make_booking("10:00", "12:00"), make_booking("15:00", "18:00"), make_booking("18:00", "20:00")]
    pieces = day_partition(DAY, bookings, SETTINGS)
    bounds = day_bounds(DAY, SETTINGS)

    assert pieces[0][0].start == bounds.start
    assert pieces[-1][0].end == bounds.end
    for (left, _), (right, _) in zip(pieces, pieces[1:]):
        assert left.end == right.start
    assert sum(r.duration_minutes for r, _ in pieces) == bounds.duration_minutes


def test_partition_statuses():
    bookings = [make_booking("10:00", "12:00"), make_booking("15:00", "18:00")]
    pieces = day_partition(DAY, bookings, SETTINGS)
    assert [(labels([r])[0], status) for r, status in pieces] == [
        (("09:00", "10:00"), CellStatus.AVAILABLE),
        (("10:00", "12:00"), CellStatus.BOOKED),
        (("12:00", "13:00"), CellStatus.CLEANING),
        (("13:00", "15:00"), CellStatus.AVAILABLE),
        (("15:00", "18:00"), CellStatus.BOOKED),
        (("18:00", "19:00"), CellStatus.CLEANING),
        (("19:00", "23:00"), CellStatus.AVAILABLE),
    ]
    assert labels(free_ranges(DAY, bookings, SETTINGS)) == [("09:00", "10:00"), ("13:00", "15:00"), ("19:00", "23:00")]
    assert labels(cleaning_ranges(DAY, bookings, SETTINGS)) == [("12:00", "13:00"), ("18:00", "19:00")]


def test_cleaning_buffer_cut_by_next_booking():
    bookings = [make_booking("10:00", "12:00"), make_booking("12:30", "14:30")]
    assert labels(cleaning_ranges(DAY, bookings, SETTINGS)) == [("12:00", "12:30"), ("14:30", "15:30")]


def test_empty_day_is_free():
    assert labels(free_ranges(DAY, [], SETTINGS)) == [("09:00", "23:00")]
    assert tight_ranges(DAY, [], SETTINGS) == []


def test_cancelled_bookings_do_not_block():
    bookings = [make_booking("10:00", "12:00", status=BookingStatus.CANCELLED)]
    assert labels(free_ranges(DAY, bookings, SETTINGS)) == [("09:00", "23:00")]


def test_tight_ranges():
    # Two hours before the first booking cannot hold a booking plus cleaning.
    bookings = [make_booking("11:00", "13:00"), make_booking("16:00", "18:00")]
    assert labels(tight_ranges(DAY, bookings, SETTINGS)) == [("09:00", "11:00"), ("13:00", "16:00")]


def test_tight_gap_after_existing_booking():
    bookings = [make_booking("10:00", "12:00")]
    gaps = tight_gaps(DAY, "13:00", "15:00", bookings, SETTINGS)
    assert labels(gaps) == [("12:00", "13:00")]
    assert check_gaps(DAY, "13:00", "15:00", bookings, SETTINGS)


def test_adjacent_request_leaves_no_gap():
    """12:00-14:00 right after 10:00-12:00 leaves nothing behind it."""
    bookings = [make_booking("10:00", "12:00")]
    assert not check_gaps(DAY, "12:00", "14:00", bookings, SETTINGS)


def test_late_gaps_are_exempt():
    bookings = [make_booking("17:00", "19:00")]
    # 22:00-23:00 is past the useful end of the day; 19:00-20:00 is too short.
    assert labels(tight_gaps(DAY, "20:00", "22:00", bookings, SETTINGS)) == [("19:00", "20:00")]
    settings = ScheduleSettings(time_zone=TZ, useful_day_end_time="20:00")
    assert tight_gaps(DAY, "20:00", "22:00", bookings, settings) == []


def test_gap_check_rejects_malformed_times():
    bookings = [make_booking("10:00", "12:00")]
    with pytest.raises(FormatError):
        check_gaps(DAY, "10:00", "25:00", bookings, SETTINGS)
    with pytest.raises(FormatError):
        tight_gaps(DAY, "1pm", "15:00", bookings, SETTINGS)


def test_tight_gap_threshold_override():
    bookings = [make_booking("10:00", "12:00")]
    settings = ScheduleSettings(time_zone=TZ, tight_gap_minutes=45)
    assert tight_gaps(DAY, "13:00", "15:00", bookings, settings) == []


def test_classify_cells_precedence():
    bookings = [make_booking("10:00", "12:00")]
    cells = classify_cells(DAY, bookings, SETTINGS)
    assert len(cells) == 14
    statuses = [c.status for c in cells]
    assert statuses[:4] == [CellStatus.TOO_TIGHT, CellStatus.BOOKED, CellStatus.BOOKED, CellStatus.CLEANING]
    assert set(statuses[4:]) == {CellStatus.AVAILABLE}


def test_past_cells():
    bookings = [make_booking("10:00", "12:00")]
    now = day_bounds(DAY, SETTINGS).start + timedelta(hours=3, minutes=30)
    cells = classify_cells(DAY, bookings, SETTINGS, now=now)
    assert [c.status for c in cells[:3]] == [CellStatus.PAST] * 3
    assert cells[3].status is CellStatus.CLEANING


def test_cells_carry_chan_eligibility():
    cells = classify_cells(DAY, [], SETTINGS, policy=TimeOfDayChanPolicy())
    eligible = [format_time(c.cell_start, DAY, TZ) for c in cells if c.auxiliary_eligible]
    assert eligible[0] == "13:00"
    assert len(eligible) == 10


def test_segments_run_length():
    bookings = [make_booking("10:00", "12:00")]
    segments = build_segments(classify_cells(DAY, bookings, SETTINGS, policy=TimeOfDayChanPolicy()))
    assert [(s.status, s.cell_count) for s in segments] == [
        (CellStatus.TOO_TIGHT, 1),
        (CellStatus.BOOKED, 2),
        (CellStatus.CLEANING, 1),
        (CellStatus.AVAILABLE, 10),
    ]
    assert not segments[0].auxiliary_eligible
    assert segments[3].auxiliary_eligible
    assert format_time(segments[3].start, DAY, TZ) == "13:00"


def test_offered_slots_keep_cleaning_buffer():
    bookings = [make_booking("12:00", "14:00")]
    slots = offered_slots(DAY, bookings, SETTINGS)
    buffered_start = day_bounds(DAY, SETTINGS).start + timedelta(hours=2)
    buffered_end = buffered_start + timedelta(hours=4)
    assert slots
    assert all(not (s.start < buffered_end and s.end > buffered_start) for s in slots)
    assert [(format_time(s.start, DAY, TZ), s.duration_hours) for s in slots[:2]] == [("09:00", 2), ("15:00", 2)]


def test_offered_slots_future_only():
    now = day_bounds(DAY, SETTINGS).start + timedelta(hours=10)
    slots = offered_slots(DAY, [], SETTINGS, now=now)
    assert all(s.start > now for s in slots)
    assert [format_time(s.start, DAY, TZ) for s in slots] == ["19:30", "19:30", "20:00", "20:00", "20:30", "21:00"]


def test_display_days_roll_over_late_evening():
    morning = datetime(2030, 6, 3, 7, 0, tzinfo=timezone.utc)
    late = datetime(2030, 6, 3, 20, 0, tzinfo=timezone.utc)
    assert display_days(SETTINGS, morning)[0] == DAY
    assert display_days(SETTINGS, late)[0] == DAY + timedelta(days=1)
    assert display_days(SETTINGS, morning, week_offset=1)[0] == DAY + timedelta(days=7)
    assert len(display_days(SETTINGS, morning)) == 7


def test_time_options():
    starts = start_time_options(SETTINGS)
    assert starts[0] == "09:00" and starts[-1] == "22:30"
    ends = end_time_options(SETTINGS, "20:00", min_minutes=120)
    assert ends == ["22:00", "22:30", "23:00"]
