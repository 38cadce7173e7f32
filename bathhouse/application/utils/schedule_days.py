from __future__ import annotations

from datetime import date, datetime, timedelta

from bathhouse.application.use_cases.validate_slot import effective_step_minutes
from bathhouse.application.utils.time_kernel import get_zone, minutes_to_label, time_to_minutes
from bathhouse.domain.entities.schedule_settings import ScheduleSettings

# From this local hour on, today is no longer offered.
ROLLOVER_HOUR = 22


def display_days(settings: ScheduleSettings, now: datetime, week_offset: int = 0) -> list[date]:
    """Dates offered for booking, starting today (or tomorrow late in the evening)."""
    local_now = now.astimezone(get_zone(settings.time_zone))
    first = local_now.date()
    if local_now.hour >= ROLLOVER_HOUR:
        first += timedelta(days=1)
    first += timedelta(days=7 * week_offset)
    return [first + timedelta(days=i) for i in range(settings.schedule_days)]


def start_time_options(settings: ScheduleSettings) -> list[str]:
    step = effective_step_minutes(settings)
    open_minutes = time_to_minutes(settings.day_open_time)
    close_minutes = time_to_minutes(settings.day_close_time)
    return [minutes_to_label(m) for m in range(open_minutes, close_minutes, step)]


def end_time_options(settings: ScheduleSettings, start_time: str | None = None, min_minutes: int = 0) -> list[str]:
    """End times up to and including closing time, at least `min_minutes` after `start_time`."""
    step = effective_step_minutes(settings)
    open_minutes = time_to_minutes(settings.day_open_time)
    close_minutes = time_to_minutes(settings.day_close_time)
    floor = time_to_minutes(start_time) if start_time else open_minutes
    floor += max(min_minutes, step)
    return [minutes_to_label(m) for m in range(open_minutes, close_minutes + 1, step) if m >= floor]
