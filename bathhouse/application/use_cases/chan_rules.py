"""Eligibility rules for the heated tub ("chan").

The tub needs hours of heating and serves one booking per day. Two rule sets
exist and are selected by configuration:

* ``TimeOfDayChanPolicy``: a booking may take the tub only if it starts at or
  after a cut-off time (13:00 by default).
* ``HeatingGapChanPolicy``: the tub is offered only inside a free stretch of at
  least ``min_gap_minutes`` at the start of the day. Mid-day and end-of-day
  stretches of the same length do not qualify.

Both enforce one tub booking per date. ``force`` skips the tub rules only.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Iterable
from dataclasses import dataclass
from datetime import date, timedelta
from enum import Enum

from bathhouse.application.exceptions import AuxiliaryResourceError
from bathhouse.application.utils.time_kernel import booking_range, day_bounds, minutes_between, parse_time, to_instant
from bathhouse.domain.entities.booking import Booking
from bathhouse.domain.entities.schedule_settings import ScheduleSettings
from bathhouse.domain.entities.time_range import TimeRange

DEFAULT_CHAN_START_TIME = "13:00"
DEFAULT_HEATING_GAP_MINUTES = 5 * 60


class ChanReason(str, Enum):
    TOO_EARLY = "too_early"
    ALREADY_USED_TODAY = "already_used_today"
    INSUFFICIENT_HEATING_GAP = "insufficient_heating_gap"


@dataclass(frozen=True)
class ChanEligibility:
    eligible: bool
    reason: ChanReason | None = None
    message: str | None = None

    def raise_for_error(self) -> None:
        if not self.eligible and self.reason is not None:
            raise AuxiliaryResourceError(self.reason.value, self.message or "Chan is not available")


ELIGIBLE = ChanEligibility(eligible=True)


class WindowType(str, Enum):
    START_OF_DAY = "startOfDay"
    MID_DAY = "midDay"
    END_OF_DAY = "endOfDay"


@dataclass(frozen=True)
class ChanWindow:
    range: TimeRange
    type: WindowType


def _day_bookings(day: date, bookings: Iterable[Booking], exclude_id: str | None) -> list[Booking]:
    return [b for b in bookings if b.date == day and b.is_active and b.id != exclude_id]


def chan_holder(day: date, bookings: Iterable[Booking], exclude_id: str | None = None) -> Booking | None:
    """The active booking already holding the tub on `day`, if any."""
    for booking in _day_bookings(day, bookings, exclude_id):
        if booking.with_chan:
            return booking
    return None


def compute_chan_windows(
    day: date,
    bookings: Iterable[Booking],
    settings: ScheduleSettings,
    min_gap_minutes: int = DEFAULT_HEATING_GAP_MINUTES,
    exclude_id: str | None = None,
) -> list[ChanWindow]:
    """Free stretches of at least `min_gap_minutes`, tagged by their position in the day."""
    tz = settings.time_zone
    bounds = day_bounds(day, settings)
    ranges = sorted(
        r for r in (booking_range(b, tz) for b in _day_bookings(day, bookings, exclude_id)) if r.overlaps(bounds)
    )

    windows: list[ChanWindow] = []
    if not ranges:
        if minutes_between(bounds.start, bounds.end) >= min_gap_minutes:
            windows.append(ChanWindow(bounds, WindowType.START_OF_DAY))
        return windows

    if minutes_between(bounds.start, ranges[0].start) >= min_gap_minutes:
        windows.append(ChanWindow(TimeRange(bounds.start, ranges[0].start), WindowType.START_OF_DAY))

    for left, right in zip(ranges, ranges[1:]):
        if minutes_between(left.end, right.start) >= min_gap_minutes:
            windows.append(ChanWindow(TimeRange(left.end, right.start), WindowType.MID_DAY))

    if minutes_between(ranges[-1].end, bounds.end) >= min_gap_minutes:
        windows.append(ChanWindow(TimeRange(ranges[-1].end, bounds.end), WindowType.END_OF_DAY))
    return windows


class ChanPolicy(ABC):
    name: str = ""

    def evaluate(
        self,
        day: date,
        start_time: str,
        bookings: Iterable[Booking],
        settings: ScheduleSettings,
        end_time: str | None = None,
        exclude_id: str | None = None,
    ) -> ChanEligibility:
        bookings = list(bookings)
        timing = self.check_timing(day, start_time, end_time, bookings, settings, exclude_id)
        if not timing.eligible:
            return timing
        holder = chan_holder(day, bookings, exclude_id)
        if holder is not None:
            return ChanEligibility(
                eligible=False,
                reason=ChanReason.ALREADY_USED_TODAY,
                message=f"Chan is already booked on {day.isoformat()} ({holder.start_time}-{holder.end_time})",
            )
        return ELIGIBLE

    @abstractmethod
    def check_timing(
        self,
        day: date,
        start_time: str,
        end_time: str | None,
        bookings: list[Booking],
        settings: ScheduleSettings,
        exclude_id: str | None,
    ) -> ChanEligibility:
        raise NotImplementedError


class TimeOfDayChanPolicy(ChanPolicy):
    name = "time_of_day"

    def __init__(self, start_time: str = DEFAULT_CHAN_START_TIME) -> None:
        self._start_time = start_time

    def check_timing(self, day, start_time, end_time, bookings, settings, exclude_id) -> ChanEligibility:
        tz = settings.time_zone
        if to_instant(day, start_time, tz) < to_instant(day, self._start_time, tz):
            return ChanEligibility(
                eligible=False,
                reason=ChanReason.TOO_EARLY,
                message=f"Chan can be booked only from {self._start_time}",
            )
        return ELIGIBLE


class HeatingGapChanPolicy(ChanPolicy):
    name = "heating_gap"

    def __init__(self, min_gap_minutes: int = DEFAULT_HEATING_GAP_MINUTES) -> None:
        self._min_gap_minutes = min_gap_minutes

    @property
    def min_gap_minutes(self) -> int:
        return self._min_gap_minutes

    def check_timing(self, day, start_time, end_time, bookings, settings, exclude_id) -> ChanEligibility:
        tz = settings.time_zone
        start = to_instant(day, start_time, tz)
        # Without an end the candidate is the single minute at its start.
        end = to_instant(day, end_time, tz) if end_time else start + timedelta(minutes=1)
        candidate = TimeRange(start, end)

        windows = compute_chan_windows(day, bookings, settings, self._min_gap_minutes, exclude_id)
        if any(w.type is WindowType.START_OF_DAY and w.range.overlaps(candidate) for w in windows):
            return ELIGIBLE
        return ChanEligibility(
            eligible=False,
            reason=ChanReason.INSUFFICIENT_HEATING_GAP,
            message=f"Chan needs a free stretch of {self._min_gap_minutes} minutes at the start of the day",
        )


def is_auxiliary_eligible(
    day: date,
    start_time: str,
    bookings: Iterable[Booking],
    settings: ScheduleSettings,
    policy: ChanPolicy,
    end_time: str | None = None,
    exclude_id: str | None = None,
    force: bool = False,
) -> ChanEligibility:
    parse_time(start_time)
    if end_time is not None:
        parse_time(end_time)
    if force:
        return ELIGIBLE
    return policy.evaluate(day, start_time, bookings, settings, end_time=end_time, exclude_id=exclude_id)
