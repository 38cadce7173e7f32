"""
Tests for heated tub eligibility under both rule sets.
"""

from __future__ import annotations

from datetime import date, datetime, timezone

import pytest

from bathhouse.application.exceptions import AuxiliaryResourceError, FormatError
from bathhouse.application.use_cases.chan_rules import (
    ChanReason,
    HeatingGapChanPolicy,
    TimeOfDayChanPolicy,
    WindowType,
    chan_holder,
    compute_chan_windows,
    is_auxiliary_eligible,
)
from bathhouse.application.utils.time_kernel import format_time, time_to_minutes
from bathhouse.domain.entities.booking import Booking, BookingStatus
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


def test_too_early_for_chan():
    """10:00-12:00 with chan is refused under the 13:00 rule; force lets it through."""
    policy = TimeOfDayChanPolicy()
    result = is_auxiliary_eligible(DAY, "10:00", [], SETTINGS, policy, end_time="12:00")
    assert not result.eligible
    assert result.reason is ChanReason.TOO_EARLY
    with pytest.raises(AuxiliaryResourceError) as exc_info:
        result.raise_for_error()
    assert exc_info.value.reason == "too_early"

    forced = is_auxiliary_eligible(DAY, "10:00", [], SETTINGS, policy, end_time="12:00", force=True)
    assert forced.eligible


def test_cutoff_is_inclusive():
    policy = TimeOfDayChanPolicy()
    assert is_auxiliary_eligible(DAY, "13:00", [], SETTINGS, policy).eligible
    assert not is_auxiliary_eligible(DAY, "12:30", [], SETTINGS, policy).eligible
    assert is_auxiliary_eligible(DAY, "11:00", [], SETTINGS, TimeOfDayChanPolicy("11:00")).eligible


def test_one_chan_booking_per_day():
    holder = make_booking("13:00", "15:00", with_chan=True)
    result = TimeOfDayChanPolicy().evaluate(DAY, "17:00", [holder], SETTINGS, end_time="19:00")
    assert not result.eligible
    assert result.reason is ChanReason.ALREADY_USED_TODAY
    assert chan_holder(DAY, [holder]) == holder


def test_inactive_chan_booking_frees_the_tub():
    cancelled = make_booking("13:00", "15:00", with_chan=True, status=BookingStatus.CANCELLED)
    assert chan_holder(DAY, [cancelled]) is None
    assert TimeOfDayChanPolicy().evaluate(DAY, "17:00", [cancelled], SETTINGS).eligible


def test_holder_excluded_when_re_evaluating_itself():
    holder = make_booking("13:00", "15:00", with_chan=True)
    result = TimeOfDayChanPolicy().evaluate(DAY, "13:00", [holder], SETTINGS, exclude_id=holder.id)
    assert result.eligible


def test_chan_windows_are_typed():
    windows = compute_chan_windows(DAY, [make_booking("14:00", "16:00")], SETTINGS)
    assert [w.type for w in windows] == [WindowType.START_OF_DAY, WindowType.END_OF_DAY]
    assert format_time(windows[0].range.end, DAY, TZ) == "14:00"

    windows = compute_chan_windows(DAY, [make_booking("09:00", "11:00"), make_booking("17:00", "19:00")], SETTINGS)
    assert [w.type for w in windows] == [WindowType.MID_DAY]


def test_empty_day_is_one_start_window():
    windows = compute_chan_windows(DAY, [], SETTINGS)
    assert len(windows) == 1
    assert windows[0].type is WindowType.START_OF_DAY
    assert windows[0].range.duration_minutes == 14 * 60


def test_heating_gap_needs_start_of_day_window():
    policy = HeatingGapChanPolicy(min_gap_minutes=300)

    # 09:00-15:00 is free, long enough to heat the tub.
    bookings = [make_booking("15:00", "17:00")]
    assert policy.evaluate(DAY, "09:00", bookings, SETTINGS, end_time="11:00").eligible

    # Only mid-day and end-of-day stretches remain.
    bookings = [make_booking("11:00", "13:00")]
    result = policy.evaluate(DAY, "15:00", bookings, SETTINGS, end_time="17:00")
    assert not result.eligible
    assert result.reason is ChanReason.INSUFFICIENT_HEATING_GAP


def test_heating_gap_without_end_time():
    policy = HeatingGapChanPolicy(min_gap_minutes=300)
    bookings = [make_booking("15:00", "17:00")]
    assert policy.evaluate(DAY, "14:30", bookings, SETTINGS).eligible
    assert not policy.evaluate(DAY, "15:00", bookings, SETTINGS).eligible


def test_heating_gap_still_enforces_one_per_day():
    policy = HeatingGapChanPolicy()
    holder = make_booking("20:00", "22:00", with_chan=True)
    result = policy.evaluate(DAY, "09:00", [holder], SETTINGS, end_time="11:00")
    assert result.reason is ChanReason.ALREADY_USED_TODAY


def test_mid_day_gap_of_same_length_does_not_qualify():
    """A 300-minute stretch only counts for the tub at the start of the day."""
    policy = HeatingGapChanPolicy(min_gap_minutes=300)

    # 09:00-14:00 is free: 300 minutes at the start of the day.
    assert policy.evaluate(DAY, "09:00", [make_booking("14:00", "16:00")], SETTINGS, end_time="11:00").eligible

    # 11:00-16:00 is free: the same 300 minutes, but mid-day.
    bookings = [make_booking("09:00", "11:00"), make_booking("16:00", "18:00")]
    windows = compute_chan_windows(DAY, bookings, SETTINGS, 300)
    mid_day = [w for w in windows if w.type is WindowType.MID_DAY]
    assert [w.range.duration_minutes for w in mid_day] == [300]

    result = policy.evaluate(DAY, "11:00", bookings, SETTINGS, end_time="13:00")
    assert not result.eligible
    assert result.reason is ChanReason.INSUFFICIENT_HEATING_GAP


def test_malformed_times_raise_format_error():
    policy = TimeOfDayChanPolicy()
    with pytest.raises(FormatError):
        is_auxiliary_eligible(DAY, "1pm", [], SETTINGS, policy)
    with pytest.raises(FormatError):
        is_auxiliary_eligible(DAY, "14:00", [], SETTINGS, policy, end_time="4pm")
    with pytest.raises(FormatError):
        is_auxiliary_eligible(DAY, "1pm", [], SETTINGS, policy, force=True)
