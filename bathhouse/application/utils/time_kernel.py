from __future__ import annotations

import re
from datetime import date, datetime, time, timedelta, timezone
from functools import lru_cache
from zoneinfo import ZoneInfo

from bathhouse.application.exceptions import FormatError
from bathhouse.domain.entities.booking import Booking
from bathhouse.domain.entities.schedule_settings import ScheduleSettings
from bathhouse.domain.entities.time_range import TimeRange

MIDNIGHT_END = "24:00"

_TIME_RE = re.compile(r"^([01]\d|2[0-3]):([0-5]\d)$")


@lru_cache(maxsize=32)
def get_zone(name: str) -> ZoneInfo:
    return ZoneInfo(name)


def is_valid_time(value: str, allow_midnight_end: bool = False) -> bool:
    """Strict HH:MM check. "24:00" passes only when it is allowed as an end time."""
    if not isinstance(value, str):
        return False
    if value == MIDNIGHT_END:
        return allow_midnight_end
    return _TIME_RE.match(value) is not None


def parse_time(value: str) -> tuple[int, int]:
    """Split a strict HH:MM string (or "24:00") into hours and minutes; raise FormatError otherwise."""
    if value == MIDNIGHT_END:
        return (24, 0)
    match = _TIME_RE.match(value)
    if not match:
        raise FormatError(f"Expected HH:MM time, got {value!r}", failure="malformed_time")
    return int(match.group(1)), int(match.group(2))


def time_to_minutes(value: str) -> int:
    hours, minutes = parse_time(value)
    return hours * 60 + minutes


def minutes_to_label(total_minutes: int) -> str:
    return f"{total_minutes // 60:02d}:{total_minutes % 60:02d}"


def to_instant(day: date, value: str, tz: str) -> datetime:
    """Resolve a wall-clock time on `day` in `tz` to an absolute UTC instant.

    "24:00" is 00:00 of the following date.
    """
    hours, minutes = parse_time(value)
    if hours == 24:
        day = day + timedelta(days=1)
        hours = 0
    local = datetime.combine(day, time(hours, minutes), tzinfo=get_zone(tz))
    return local.astimezone(timezone.utc)


def format_time(instant: datetime, day: date, tz: str) -> str:
    """Inverse of `to_instant` for instants belonging to `day`."""
    local = instant.astimezone(get_zone(tz))
    if local.date() == day + timedelta(days=1) and local.hour == 0 and local.minute == 0:
        return MIDNIGHT_END
    return local.strftime("%H:%M")


def local_date(instant: datetime, tz: str) -> date:
    return instant.astimezone(get_zone(tz)).date()


def time_range(day: date, start_time: str, end_time: str, tz: str) -> TimeRange:
    return TimeRange(to_instant(day, start_time, tz), to_instant(day, end_time, tz))


def booking_range(booking: Booking, tz: str) -> TimeRange:
    return time_range(booking.date, booking.start_time, booking.end_time, tz)


def day_bounds(day: date, settings: ScheduleSettings) -> TimeRange:
    return time_range(day, settings.day_open_time, settings.day_close_time, settings.time_zone)


def minutes_between(start: datetime, end: datetime) -> int:
    return int(round((end - start).total_seconds() / 60))
