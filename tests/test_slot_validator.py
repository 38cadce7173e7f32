"""
Tests for candidate range validation.
"""

from __future__ import annotations

from datetime import date

import pytest

from bathhouse.application.exceptions import FormatError, RangeError
from bathhouse.application.use_cases.validate_slot import ValidationFailure, effective_step_minutes, validate_slot
from bathhouse.domain.entities.schedule_settings import ScheduleSettings

DAY = date(2030, 6, 3)
SETTINGS = ScheduleSettings(time_zone="Europe/Kyiv", day_open_time="09:00", day_close_time="23:00")


def test_valid_range():
    result = validate_slot(DAY, "10:00", "12:00", SETTINGS)
    assert result.ok
    assert result.duration_minutes == 120
    assert result.error is None
    result.raise_for_error()


def test_malformed_time_is_format_error():
    result = validate_slot(DAY, "9:00", "12:00", SETTINGS)
    assert not result.ok
    assert result.failure is ValidationFailure.MALFORMED_TIME
    assert isinstance(result.error, FormatError)


def test_misaligned_time_is_format_error():
    result = validate_slot(DAY, "10:15", "12:15", SETTINGS)
    assert result.failure is ValidationFailure.MISALIGNED_STEP
    with pytest.raises(FormatError):
        result.raise_for_error()


def test_checks_run_in_order():
    # Misaligned and reversed: alignment is reported first.
    result = validate_slot(DAY, "10:15", "10:00", SETTINGS)
    assert result.failure is ValidationFailure.MISALIGNED_STEP


def test_end_before_start():
    result = validate_slot(DAY, "14:00", "12:00", SETTINGS)
    assert result.failure is ValidationFailure.NON_POSITIVE_RANGE
    assert isinstance(result.error, RangeError)


def test_too_short():
    """12:00-13:00 is shorter than the two hour minimum."""
    result = validate_slot(DAY, "12:00", "13:00", SETTINGS)
    assert result.failure is ValidationFailure.DURATION_OUT_OF_BOUNDS
    assert isinstance(result.error, RangeError)


def test_too_long():
    result = validate_slot(DAY, "10:00", "17:00", SETTINGS)
    assert result.failure is ValidationFailure.DURATION_OUT_OF_BOUNDS


def test_outside_working_hours():
    assert validate_slot(DAY, "08:00", "10:00", SETTINGS).failure is ValidationFailure.OUTSIDE_WORKING_HOURS
    assert validate_slot(DAY, "22:00", "24:00", SETTINGS).failure is ValidationFailure.OUTSIDE_WORKING_HOURS
    assert validate_slot(DAY, "21:00", "23:00", SETTINGS).ok


def test_midnight_close():
    settings = ScheduleSettings(time_zone="Europe/Kyiv", day_close_time="24:00")
    assert validate_slot(DAY, "22:00", "24:00", settings).ok
    assert validate_slot(DAY, "24:00", "24:00", settings).failure is ValidationFailure.MALFORMED_TIME


def test_step_is_clamped():
    assert effective_step_minutes(ScheduleSettings(slot_step_minutes=60)) == 30
    assert effective_step_minutes(ScheduleSettings(slot_step_minutes=1)) == 5
    assert effective_step_minutes(ScheduleSettings(slot_step_minutes=15)) == 15

    coarse = ScheduleSettings(time_zone="Europe/Kyiv", slot_step_minutes=60)
    assert validate_slot(DAY, "10:30", "12:30", coarse).ok


def test_window_mode_only_needs_one_step():
    assert validate_slot(DAY, "10:00", "10:30", SETTINGS, window=True).ok
    assert validate_slot(DAY, "09:00", "23:00", SETTINGS, window=True).ok
    assert not validate_slot(DAY, "10:00", "10:30", SETTINGS).ok


def test_step_grid_starts_at_opening_time():
    """A 7-minute step still makes the opening minute bookable."""
    odd = ScheduleSettings(time_zone="Europe/Kyiv", day_open_time="09:00", slot_step_minutes=7)
    assert validate_slot(DAY, "09:00", "11:06", odd).ok
    assert validate_slot(DAY, "09:07", "11:13", odd).ok
    assert validate_slot(DAY, "09:05", "11:05", odd).failure is ValidationFailure.MISALIGNED_STEP

    late_open = ScheduleSettings(time_zone="Europe/Kyiv", day_open_time="09:15")
    assert validate_slot(DAY, "09:15", "11:15", late_open).ok
    assert validate_slot(DAY, "10:00", "12:00", late_open).failure is ValidationFailure.MISALIGNED_STEP
