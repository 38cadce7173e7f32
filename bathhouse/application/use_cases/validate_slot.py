from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from enum import Enum

from bathhouse.application.exceptions import BookingError, FormatError, RangeError
from bathhouse.application.utils.time_kernel import (
    day_bounds,
    is_valid_time,
    minutes_between,
    time_to_minutes,
    to_instant,
)
from bathhouse.domain.entities.schedule_settings import ScheduleSettings

MIN_STEP_MINUTES = 5
MAX_STEP_MINUTES = 30
FALLBACK_MIN_DURATION_MINUTES = 120


class ValidationFailure(str, Enum):
    MALFORMED_TIME = "malformed_time"
    MISALIGNED_STEP = "misaligned_step"
    NON_POSITIVE_RANGE = "non_positive_range"
    DURATION_OUT_OF_BOUNDS = "duration_out_of_bounds"
    OUTSIDE_WORKING_HOURS = "outside_working_hours"


_FORMAT_FAILURES = {ValidationFailure.MALFORMED_TIME, ValidationFailure.MISALIGNED_STEP}


@dataclass(frozen=True)
class SlotValidation:
    ok: bool
    failure: ValidationFailure | None = None
    reason: str | None = None
    duration_minutes: int | None = None

    @property
    def error(self) -> BookingError | None:
        if self.ok or self.failure is None:
            return None
        if self.failure in _FORMAT_FAILURES:
            return FormatError(self.reason or "Invalid time", failure=self.failure.value)
        return RangeError(self.reason or "Invalid time range", failure=self.failure.value)

    def raise_for_error(self) -> None:
        error = self.error
        if error is not None:
            raise error


def effective_step_minutes(settings: ScheduleSettings) -> int:
    """Configured step clamped to [5, 30] minutes regardless of the configured value."""
    configured = settings.slot_step_minutes or MAX_STEP_MINUTES
    return min(MAX_STEP_MINUTES, max(MIN_STEP_MINUTES, configured))


def minimum_duration_minutes(settings: ScheduleSettings) -> int:
    if not settings.allowed_durations_hours:
        return FALLBACK_MIN_DURATION_MINUTES
    return min(settings.allowed_durations_hours) * 60


def maximum_duration_minutes(settings: ScheduleSettings) -> int | None:
    if not settings.allowed_durations_hours:
        return None
    return max(settings.allowed_durations_hours) * 60


def _fail(failure: ValidationFailure, reason: str) -> SlotValidation:
    return SlotValidation(ok=False, failure=failure, reason=reason)


def validate_slot(
    day: date,
    start_time: str,
    end_time: str,
    settings: ScheduleSettings,
    window: bool = False,
) -> SlotValidation:
    """Check a candidate range. The first failing rule wins; nothing is raised.

    With `window=True` the range is an open-time window rather than a booking:
    it only has to span one step and has no upper length bound.
    """
    if not is_valid_time(start_time):
        return _fail(ValidationFailure.MALFORMED_TIME, f"Start time {start_time!r} must use the HH:MM format")
    if not is_valid_time(end_time, allow_midnight_end=True):
        return _fail(ValidationFailure.MALFORMED_TIME, f"End time {end_time!r} must use the HH:MM format")

    step = effective_step_minutes(settings)
    # The grid starts at opening time.
    origin = time_to_minutes(settings.day_open_time)
    for label, value in (("Start", start_time), ("End", end_time)):
        if (time_to_minutes(value) - origin) % step != 0:
            return _fail(
                ValidationFailure.MISALIGNED_STEP,
                f"{label} time {value} is not on the {step}-minute grid",
            )

    tz = settings.time_zone
    start = to_instant(day, start_time, tz)
    end = to_instant(day, end_time, tz)
    if end <= start:
        return _fail(ValidationFailure.NON_POSITIVE_RANGE, "End time must be later than start time")

    duration = minutes_between(start, end)
    min_duration = step if window else minimum_duration_minutes(settings)
    if duration < min_duration:
        return _fail(
            ValidationFailure.DURATION_OUT_OF_BOUNDS,
            f"Minimum booking length is {min_duration} minutes, got {duration}",
        )
    max_duration = None if window else maximum_duration_minutes(settings)
    if max_duration is not None and duration > max_duration:
        return _fail(
            ValidationFailure.DURATION_OUT_OF_BOUNDS,
            f"Maximum booking length is {max_duration} minutes, got {duration}",
        )

    bounds = day_bounds(day, settings)
    if start < bounds.start or end > bounds.end:
        return _fail(
            ValidationFailure.OUTSIDE_WORKING_HOURS,
            f"Booking must fit within working hours {settings.day_open_time}-{settings.day_close_time}",
        )

    return SlotValidation(ok=True, duration_minutes=duration)
