from __future__ import annotations

import uuid
from dataclasses import dataclass
from datetime import date, datetime
from enum import Enum


class BookingStatus(str, Enum):
    PENDING = "PENDING"
    CONFIRMED = "CONFIRMED"
    REJECTED = "REJECTED"
    CANCELLED = "CANCELLED"


# Statuses that hold time on the resource.
ACTIVE_STATUSES = frozenset({BookingStatus.PENDING, BookingStatus.CONFIRMED})
TERMINAL_STATUSES = frozenset({BookingStatus.REJECTED, BookingStatus.CANCELLED})


@dataclass(frozen=True)
class Booking:
    id: str
    date: date
    start_time: str  # HH:MM
    end_time: str  # HH:MM, "24:00" means midnight of the next day
    duration_minutes: int
    created_by: int
    created_at: datetime
    with_chan: bool = False
    status: BookingStatus = BookingStatus.CONFIRMED
    note: str | None = None
    chan_forced: bool = False
    rejection_reason: str | None = None

    @property
    def is_active(self) -> bool:
        return self.status in ACTIVE_STATUSES

    @property
    def date_iso(self) -> str:
        return self.date.isoformat()


def new_booking_id() -> str:
    return uuid.uuid4().hex[:10]
