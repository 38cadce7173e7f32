from __future__ import annotations

import asyncio
import json
import logging
import threading
from collections.abc import Callable
from datetime import date, datetime, timezone
from pathlib import Path
from typing import Any, TypeVar

from bathhouse.application.ports.booking_store import BookingStorePort
from bathhouse.domain.entities.booking import Booking, BookingStatus
from bathhouse.infrastructure.store.memory_store import sort_key

T = TypeVar("T")


def serialize_booking(booking: Booking) -> dict[str, Any]:
    data: dict[str, Any] = {
        "id": booking.id,
        "dateISO": booking.date.isoformat(),
        "startTime": booking.start_time,
        "endTime": booking.end_time,
        "durationMinutes": booking.duration_minutes,
        "createdBy": booking.created_by,
        "createdAt": booking.created_at.isoformat(),
        "withChan": booking.with_chan,
        "status": booking.status.value,
        "chanForced": booking.chan_forced,
    }
    if booking.note:
        data["note"] = booking.note
    if booking.rejection_reason:
        data["rejectionReason"] = booking.rejection_reason
    return data


def deserialize_booking(data: dict[str, Any]) -> Booking:
    created_at = datetime.fromisoformat(str(data["createdAt"]).replace("Z", "+00:00"))
    if created_at.tzinfo is None:
        created_at = created_at.replace(tzinfo=timezone.utc)
    # Older files carry "chanAvailable" instead of "withChan" and no status.
    with_chan = data.get("withChan", data.get("chanAvailable", False))
    return Booking(
        id=str(data["id"]),
        date=date.fromisoformat(data["dateISO"]),
        start_time=str(data["startTime"]),
        end_time=str(data["endTime"]),
        duration_minutes=int(data["durationMinutes"]),
        created_by=int(data["createdBy"]),
        created_at=created_at,
        with_chan=bool(with_chan),
        status=BookingStatus(data.get("status", BookingStatus.CONFIRMED.value)),
        note=data.get("note") or None,
        chan_forced=bool(data.get("chanForced", False)),
        rejection_reason=data.get("rejectionReason") or None,
    )


class JsonBookingStore(BookingStorePort):
    """Bookings kept in memory and rewritten to one JSON array file on every change.

    Mutations run in a worker thread under a lock, so the snapshot and the file
    change together.
    """

    def __init__(self, file_path: str | Path = "./data/bookings.json") -> None:
        self._file_path = Path(file_path)
        self._file_path.parent.mkdir(parents=True, exist_ok=True)
        self._lock = threading.Lock()
        self._logger = logging.getLogger(__name__)
        self._bookings: list[Booking] = self._load()

    @property
    def file_path(self) -> Path:
        return self._file_path

    def _load(self) -> list[Booking]:
        if not self._file_path.exists():
            return []
        try:
            with open(self._file_path, "r", encoding="utf-8") as f:
                raw = json.load(f)
        except (json.JSONDecodeError, IOError) as e:
            backup = self._file_path.with_suffix(".json.corrupt")
            self._file_path.replace(backup)
            self._logger.warning(
                "Booking file unreadable, moved aside", extra={"reason": str(e), "path": str(backup)}
            )
            return []

        bookings: list[Booking] = []
        for item in raw if isinstance(raw, list) else []:
            try:
                bookings.append(deserialize_booking(item))
            except (KeyError, TypeError, ValueError) as e:
                self._logger.warning("Skipping malformed booking record", extra={"reason": str(e)})
        return bookings

    def _write(self, bookings: list[Booking]) -> None:
        """Write the file atomically."""
        temp_path = self._file_path.with_suffix(".json.tmp")
        payload = [serialize_booking(b) for b in sorted(bookings, key=sort_key)]
        try:
            with open(temp_path, "w", encoding="utf-8") as f:
                json.dump(payload, f, indent=2, ensure_ascii=False)
            temp_path.replace(self._file_path)
        except Exception:
            if temp_path.exists():
                temp_path.unlink()
            raise

    def _mutate(self, change: Callable[[list[Booking]], tuple[list[Booking], T]]) -> T:
        with self._lock:
            updated, result = change(list(self._bookings))
            self._write(updated)
            self._bookings = updated
            return result

    # Reads skip the lock; `_mutate` only ever swaps in a new list.
    async def list(self, day: date | None = None) -> list[Booking]:
        snapshot = self._bookings
        return sorted((b for b in snapshot if day is None or b.date == day), key=sort_key)

    async def get(self, booking_id: str) -> Booking | None:
        snapshot = self._bookings
        return next((b for b in snapshot if b.id == booking_id), None)

    async def add(self, booking: Booking) -> None:
        def change(items: list[Booking]) -> tuple[list[Booking], None]:
            return [b for b in items if b.id != booking.id] + [booking], None

        await asyncio.to_thread(self._mutate, change)

    async def remove(self, booking_id: str) -> bool:
        def change(items: list[Booking]) -> tuple[list[Booking], bool]:
            kept = [b for b in items if b.id != booking_id]
            return kept, len(kept) != len(items)

        return await asyncio.to_thread(self._mutate, change)

    async def replace_all_for_date(self, day: date, bookings: list[Booking]) -> None:
        def change(items: list[Booking]) -> tuple[list[Booking], None]:
            return [b for b in items if b.date != day] + list(bookings), None

        await asyncio.to_thread(self._mutate, change)

    async def clear_date(self, day: date) -> int:
        def change(items: list[Booking]) -> tuple[list[Booking], int]:
            kept = [b for b in items if b.date != day]
            return kept, len(items) - len(kept)

        return await asyncio.to_thread(self._mutate, change)
