from dataclasses import dataclass
import logging
from pathlib import Path

from bathhouse.core.config import Settings, schedule_settings, settings
from bathhouse.application.ports.booking_store import BookingStorePort
from bathhouse.application.use_cases.booking_lifecycle import BookingService, OpeningsService
from bathhouse.application.use_cases.chan_rules import ChanPolicy, HeatingGapChanPolicy, TimeOfDayChanPolicy
from bathhouse.infrastructure.store.json_store import JsonBookingStore
from bathhouse.infrastructure.store.memory_store import MemoryBookingStore


@dataclass
class Container:
    booking_service: BookingService
    openings_service: OpeningsService


_container: Container | None = None


def build_chan_policy(config: Settings) -> ChanPolicy:
    name = config.CHAN_POLICY.strip().lower()
    if name == TimeOfDayChanPolicy.name:
        return TimeOfDayChanPolicy(start_time=config.CHAN_START_TIME)
    if name == HeatingGapChanPolicy.name:
        return HeatingGapChanPolicy(min_gap_minutes=config.CHAN_HEATING_GAP_MINUTES)
    raise ValueError(f"Unknown CHAN_POLICY: {config.CHAN_POLICY!r}")


def build_store(config: Settings, filename: str) -> BookingStorePort:
    provider = config.STORE_PROVIDER.strip().lower()
    if provider == "memory":
        return MemoryBookingStore()
    if provider == "json":
        return JsonBookingStore(Path(config.DATA_DIR) / filename)
    raise ValueError(f"Unknown STORE_PROVIDER: {config.STORE_PROVIDER!r}")


def build_container(config: Settings = settings) -> Container:
    schedule = schedule_settings(config)
    policy = build_chan_policy(config)
    logger = logging.getLogger(__name__)
    logger.info(
        "Building services store=%s chan_policy=%s approval_required=%s",
        config.STORE_PROVIDER,
        policy.name,
        config.APPROVAL_REQUIRED,
    )
    return Container(
        booking_service=BookingService(
            store=build_store(config, "bookings.json"),
            settings=schedule,
            chan_policy=policy,
            approval_required=config.APPROVAL_REQUIRED,
        ),
        openings_service=OpeningsService(
            store=build_store(config, "availability.json"),
            settings=schedule,
        ),
    )


def get_container() -> Container:
    global _container
    if _container is None:
        _container = build_container(settings)
    return _container


def get_booking_service() -> BookingService:
    return get_container().booking_service


def get_openings_service() -> OpeningsService:
    return get_container().openings_service
