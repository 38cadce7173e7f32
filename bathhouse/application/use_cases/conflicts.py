from __future__ import annotations

import logging
from collections.abc import Collection, Iterable
from dataclasses import replace
from datetime import date

from bathhouse.application.exceptions import ConflictError, NotFoundError
from bathhouse.application.ports.booking_store import BookingStorePort
from bathhouse.application.utils.time_kernel import booking_range, format_time, minutes_between, time_range
from bathhouse.domain.entities.booking import ACTIVE_STATUSES, Booking, BookingStatus, new_booking_id
from bathhouse.domain.entities.schedule_settings import ScheduleSettings
from bathhouse.domain.entities.time_range import TimeRange


def find_conflicts(
    bookings: Iterable[Booking],
    candidate: TimeRange,
    tz: str,
    statuses: Collection[BookingStatus] = ACTIVE_STATUSES,
    exclude_ids: Collection[str] = (),
) -> list[Booking]:
    """Bookings whose range strictly overlaps `candidate`, in start order."""
    conflicts = [
        b
        for b in bookings
        if b.status in statuses and b.id not in exclude_ids and booking_range(b, tz).overlaps(candidate)
    ]
    return sorted(conflicts, key=lambda b: booking_range(b, tz).start)


def merge_touching(existing: Iterable[Booking], candidate: TimeRange, tz: str) -> tuple[TimeRange, list[Booking]]:
    """Grow `candidate` over every entry it touches or overlaps until nothing else touches.

    Returns the union range and the absorbed entries.
    """
    remaining = list(existing)
    absorbed: list[Booking] = []
    merged = candidate
    changed = True
    while changed:
        changed = False
        for entry in list(remaining):
            entry_range = booking_range(entry, tz)
            if merged.touches_or_overlaps(entry_range):
                merged = TimeRange(min(merged.start, entry_range.start), max(merged.end, entry_range.end))
                absorbed.append(entry)
                remaining.remove(entry)
                changed = True
    return merged, absorbed


class ConflictResolver:
    def __init__(self, store: BookingStorePort, settings: ScheduleSettings) -> None:
        self._store = store
        self._settings = settings
        self._logger = logging.getLogger(__name__)

    async def find_overlapping(
        self,
        day: date,
        start_time: str,
        end_time: str,
        statuses: Collection[BookingStatus] = ACTIVE_STATUSES,
        exclude_ids: Collection[str] = (),
    ) -> list[Booking]:
        tz = self._settings.time_zone
        candidate = time_range(day, start_time, end_time, tz)
        return find_conflicts(await self._store.list(day), candidate, tz, statuses, exclude_ids)

    async def ensure_free(
        self,
        day: date,
        start_time: str,
        end_time: str,
        statuses: Collection[BookingStatus] = ACTIVE_STATUSES,
        exclude_ids: Collection[str] = (),
    ) -> None:
        conflicts = await self.find_overlapping(day, start_time, end_time, statuses, exclude_ids)
        if conflicts:
            self._logger.info(
                "Booking conflict",
                extra={"date": day.isoformat(), "conflicts": ",".join(b.id for b in conflicts)},
            )
            raise ConflictError(conflicts)

    async def replace(self, ids_to_delete: Collection[str], new_booking: Booking) -> Booking:
        """Delete `ids_to_delete` and insert `new_booking` as one write on the booking's date.

        Every id must exist on that date; otherwise nothing is written.
        """
        day = new_booking.date
        existing = await self._store.list(day)
        known = {b.id for b in existing}
        for booking_id in ids_to_delete:
            if booking_id not in known:
                raise NotFoundError(booking_id)

        kept = [b for b in existing if b.id not in ids_to_delete]
        await self._store.replace_all_for_date(day, kept + [new_booking])
        self._logger.info(
            "Bookings replaced",
            extra={"date": day.isoformat(), "booking_id": new_booking.id, "conflicts": ",".join(ids_to_delete)},
        )
        return new_booking

    async def merge_insert(self, candidate: Booking) -> Booking:
        """Coalesce `candidate` with every touching or overlapping record into one record.

        Only for open-time windows; bookings go through `ensure_free` instead.
        """
        tz = self._settings.time_zone
        day = candidate.date
        existing = await self._store.list(day)
        merged, absorbed = merge_touching(existing, booking_range(candidate, tz), tz)
        absorbed_ids = {b.id for b in absorbed}

        record = replace(
            candidate,
            id=new_booking_id(),
            start_time=format_time(merged.start, day, tz),
            end_time=format_time(merged.end, day, tz),
            duration_minutes=minutes_between(merged.start, merged.end),
        )
        kept = [b for b in existing if b.id not in absorbed_ids]
        await self._store.replace_all_for_date(day, kept + [record])
        self._logger.info(
            "Window merged",
            extra={"date": day.isoformat(), "booking_id": record.id, "conflicts": ",".join(sorted(absorbed_ids))},
        )
        return record
