from __future__ import annotations

from abc import ABC, abstractmethod
from datetime import date

from bathhouse.domain.entities.booking import Booking


class BookingStorePort(ABC):
    """Persistence boundary for bookings. Every call may perform I/O."""

    @abstractmethod
    async def list(self, day: date | None = None) -> list[Booking]:
        """All bookings sorted by date and start time, optionally for one date."""
        raise NotImplementedError

    @abstractmethod
    async def get(self, booking_id: str) -> Booking | None:
        raise NotImplementedError

    @abstractmethod
    async def add(self, booking: Booking) -> None:
        raise NotImplementedError

    @abstractmethod
    async def remove(self, booking_id: str) -> bool:
        """Remove a booking. Returns True if it existed."""
        raise NotImplementedError

    @abstractmethod
    async def replace_all_for_date(self, day: date, bookings: list[Booking]) -> None:
        """Swap every record of `day` for `bookings` in a single write."""
        raise NotImplementedError

    @abstractmethod
    async def clear_date(self, day: date) -> int:
        """Remove every record of `day`. Returns how many were removed."""
        raise NotImplementedError
