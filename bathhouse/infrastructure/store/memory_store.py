from __future__ import annotations

from datetime import date

from bathhouse.application.ports.booking_store import BookingStorePort
from bathhouse.domain.entities.booking import Booking


def sort_key(booking: Booking) -> tuple[date, str, str]:
    return (booking.date, booking.start_time, booking.end_time)


class MemoryBookingStore(BookingStorePort):
    def __init__(self, bookings: list[Booking] | None = None) -> None:
        self._bookings: dict[str, Booking] = {b.id: b for b in bookings or []}

    async def list(self, day: date | None = None) -> list[Booking]:
        items = [b for b in self._bookings.values() if day is None or b.date == day]
        return sorted(items, key=sort_key)

    async def get(self, booking_id: str) -> Booking | None:
        return self._bookings.get(booking_id)

    async def add(self, booking: Booking) -> None:
        self._bookings[booking.id] = booking

    async def remove(self, booking_id: str) -> bool:
        return self._bookings.pop(booking_id, None) is not None

    async def replace_all_for_date(self, day: date, bookings: list[Booking]) -> None:
        kept = {k: v for k, v in self._bookings.items() if v.date != day}
        kept.update({b.id: b for b in bookings})
        self._bookings = kept

    async def clear_date(self, day: date) -> int:
        before = len(self._bookings)
        self._bookings = {k: v for k, v in self._bookings.items() if v.date != day}
        return before - len(self._bookings)
