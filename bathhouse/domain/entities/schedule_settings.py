from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class ScheduleSettings:
    time_zone: str = "Europe/Kyiv"
    day_open_time: str = "09:00"  # HH:MM
    day_close_time: str = "23:00"  # HH:MM, "24:00" allowed
    slot_step_minutes: int = 30
    allowed_durations_hours: tuple[int, ...] = (2, 3, 4, 5, 6)
    schedule_days: int = 7
    cleaning_buffer_minutes: int = 60
    tight_gap_minutes: int | None = None
    useful_day_end_time: str = "22:00"
