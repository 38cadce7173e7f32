from pydantic_settings import BaseSettings, SettingsConfigDict

from bathhouse.domain.entities.schedule_settings import ScheduleSettings


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    TIME_ZONE: str = "Europe/Kyiv"
    DAY_OPEN_TIME: str = "09:00"
    DAY_CLOSE_TIME: str = "23:00"
    SLOT_STEP_MINUTES: int = 30
    ALLOWED_DURATIONS_HOURS: str = "2,3,4,5,6"  # comma-separated
    SCHEDULE_DAYS: int = 7

    CLEANING_BUFFER_MINUTES: int = 60
    TIGHT_GAP_MINUTES: int | None = None  # None -> shortest allowed duration
    USEFUL_DAY_END_TIME: str = "22:00"

    CHAN_POLICY: str = "time_of_day"  # "time_of_day" | "heating_gap"
    CHAN_START_TIME: str = "13:00"
    CHAN_HEATING_GAP_MINUTES: int = 300

    APPROVAL_REQUIRED: bool = True

    STORE_PROVIDER: str = "json"  # "json" | "memory"
    DATA_DIR: str = "./data"

    ENV: str = "dev"
    LOG_LEVEL: str = "INFO"


def parse_durations(raw: str) -> tuple[int, ...]:
    values: list[int] = []
    for part in raw.split(","):
        part = part.strip()
        if not part:
            continue
        try:
            value = int(part)
        except ValueError:
            continue
        if value > 0:
            values.append(value)
    return tuple(sorted(set(values)))


def schedule_settings(config: Settings) -> ScheduleSettings:
    return ScheduleSettings(
        time_zone=config.TIME_ZONE,
        day_open_time=config.DAY_OPEN_TIME,
        day_close_time=config.DAY_CLOSE_TIME,
        slot_step_minutes=config.SLOT_STEP_MINUTES,
        allowed_durations_hours=parse_durations(config.ALLOWED_DURATIONS_HOURS),
        schedule_days=config.SCHEDULE_DAYS,
        cleaning_buffer_minutes=config.CLEANING_BUFFER_MINUTES,
        tight_gap_minutes=config.TIGHT_GAP_MINUTES,
        useful_day_end_time=config.USEFUL_DAY_END_TIME,
    )


settings = Settings()
