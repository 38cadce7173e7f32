from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable, Collection
from dataclasses import dataclass, field, replace
from datetime import date, datetime, timezone

from bathhouse.application.exceptions import AuxiliaryResourceError, InvalidTransitionError, NotFoundError
from bathhouse.application.ports.booking_store import BookingStorePort
from bathhouse.application.use_cases.chan_rules import (
    ChanEligibility,
    ChanPolicy,
    ChanReason,
    chan_holder,
    is_auxiliary_eligible,
)
from bathhouse.application.use_cases.conflicts import ConflictResolver, find_conflicts
from bathhouse.application.use_cases.free_time import tight_gaps
from bathhouse.application.use_cases.validate_slot import SlotValidation, validate_slot
from bathhouse.application.utils.time_kernel import time_range
from bathhouse.domain.entities.booking import ACTIVE_STATUSES, Booking, BookingStatus, new_booking_id
from bathhouse.domain.entities.requests import CreateBookingRequest, OpenWindowRequest, ReplaceBookingRequest
from bathhouse.domain.entities.schedule_settings import ScheduleSettings
from bathhouse.domain.entities.time_range import TimeRange


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class BookingAssessment:
    """Dry run of the create pipeline, used to show problems before committing."""

    validation: SlotValidation
    conflicts: list[Booking] = field(default_factory=list)
    chan: ChanEligibility | None = None
    tight_gaps: list[TimeRange] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        chan_ok = self.chan is None or self.chan.eligible
        return self.validation.ok and not self.conflicts and chan_ok


class BookingService:
    """Booking lifecycle: PENDING -> CONFIRMED | REJECTED, PENDING | CONFIRMED -> CANCELLED.

    Every mutation runs under one lock, so validation and the write that follows
    it cannot interleave with another mutation in this process.
    """

    def __init__(
        self,
        store: BookingStorePort,
        settings: ScheduleSettings,
        chan_policy: ChanPolicy,
        approval_required: bool = True,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self._store = store
        self._settings = settings
        self._chan_policy = chan_policy
        self._approval_required = approval_required
        self._clock = clock
        self._resolver = ConflictResolver(store, settings)
        self._write_lock = asyncio.Lock()
        self._logger = logging.getLogger(__name__)

    @property
    def settings(self) -> ScheduleSettings:
        return self._settings

    @property
    def chan_policy(self) -> ChanPolicy:
        return self._chan_policy

    async def list(self, day: date | None = None) -> list[Booking]:
        return await self._store.list(day)

    async def get(self, booking_id: str) -> Booking:
        booking = await self._store.get(booking_id)
        if booking is None:
            raise NotFoundError(booking_id)
        return booking

    async def find_overlapping(self, day: date, start_time: str, end_time: str) -> list[Booking]:
        return await self._resolver.find_overlapping(day, start_time, end_time)

    async def assess(
        self,
        day: date,
        start_time: str,
        end_time: str,
        with_chan: bool = False,
        force_chan: bool = False,
        exclude_id: str | None = None,
    ) -> BookingAssessment:
        validation = validate_slot(day, start_time, end_time, self._settings)
        if not validation.ok:
            return BookingAssessment(validation=validation)

        tz = self._settings.time_zone
        existing = await self._store.list(day)
        exclude = {exclude_id} if exclude_id else set()
        conflicts = find_conflicts(existing, time_range(day, start_time, end_time, tz), tz, exclude_ids=exclude)
        chan = None
        if with_chan:
            chan = is_auxiliary_eligible(
                day,
                start_time,
                existing,
                self._settings,
                self._chan_policy,
                end_time=end_time,
                exclude_id=exclude_id,
                force=force_chan,
            )
        gaps = tight_gaps(day, start_time, end_time, existing, self._settings, exclude_id)
        return BookingAssessment(validation=validation, conflicts=conflicts, chan=chan, tight_gaps=gaps)

    async def create(self, request: CreateBookingRequest) -> Booking:
        async with self._write_lock:
            duration = await self._check_candidate(
                request.date,
                request.start_time,
                request.end_time,
                with_chan=request.with_chan,
                force_chan=request.force_chan,
            )
            status = BookingStatus.PENDING if self._approval_required else BookingStatus.CONFIRMED
            booking = Booking(
                id=new_booking_id(),
                date=request.date,
                start_time=request.start_time,
                end_time=request.end_time,
                duration_minutes=duration,
                created_by=request.created_by,
                created_at=self._clock(),
                with_chan=request.with_chan,
                status=status,
                note=_clean_note(request.note),
                chan_forced=request.with_chan and request.force_chan,
            )
            await self._store.add(booking)
        self._log("Booking created", booking)
        return booking

    async def approve(self, booking_id: str) -> Booking:
        async with self._write_lock:
            booking = await self.get(booking_id)
            self._require_status(booking, {BookingStatus.PENDING}, BookingStatus.CONFIRMED)

            # Pending requests may overlap each other; only confirmed ones block approval.
            confirmed = {BookingStatus.CONFIRMED}
            await self._resolver.ensure_free(
                booking.date, booking.start_time, booking.end_time, statuses=confirmed, exclude_ids={booking.id}
            )
            if booking.with_chan and not booking.chan_forced:
                day_bookings = [b for b in await self._store.list(booking.date) if b.status in confirmed]
                holder = chan_holder(booking.date, day_bookings, exclude_id=booking.id)
                if holder is not None:
                    raise AuxiliaryResourceError(
                        ChanReason.ALREADY_USED_TODAY.value,
                        f"Chan is already confirmed for booking {holder.id} on {booking.date_iso}",
                    )

            updated = replace(booking, status=BookingStatus.CONFIRMED)
            await self._save(updated)
        self._log("Booking approved", updated)
        return updated

    async def reject(self, booking_id: str, reason: str) -> Booking:
        if not reason or not reason.strip():
            raise ValueError("A rejection reason is required")
        async with self._write_lock:
            booking = await self.get(booking_id)
            self._require_status(booking, {BookingStatus.PENDING}, BookingStatus.REJECTED)
            updated = replace(booking, status=BookingStatus.REJECTED, rejection_reason=reason.strip())
            await self._save(updated)
        self._log("Booking rejected", updated, reason=updated.rejection_reason)
        return updated

    async def cancel(self, booking_id: str) -> Booking:
        async with self._write_lock:
            booking = await self.get(booking_id)
            self._require_status(booking, ACTIVE_STATUSES, BookingStatus.CANCELLED)
            updated = replace(booking, status=BookingStatus.CANCELLED)
            await self._save(updated)
        self._log("Booking cancelled", updated)
        return updated

    async def edit(self, booking_id: str, start_time: str, end_time: str) -> Booking:
        """Move a pending booking: the old record is cancelled and a new pending one created."""
        async with self._write_lock:
            old = await self.get(booking_id)
            self._require_status(old, {BookingStatus.PENDING}, BookingStatus.CANCELLED)
            duration = await self._check_candidate(
                old.date,
                start_time,
                end_time,
                with_chan=old.with_chan,
                force_chan=old.chan_forced,
                exclude_ids={old.id},
            )
            new = replace(
                old,
                id=new_booking_id(),
                start_time=start_time,
                end_time=end_time,
                duration_minutes=duration,
                created_at=self._clock(),
                status=BookingStatus.PENDING,
            )
            day_bookings = [
                replace(b, status=BookingStatus.CANCELLED) if b.id == old.id else b
                for b in await self._store.list(old.date)
            ]
            await self._store.replace_all_for_date(old.date, day_bookings + [new])
        self._log("Booking edited", new, reason=f"replaces {old.id}")
        return new

    async def update_times(self, booking_id: str, start_time: str, end_time: str) -> Booking:
        """Operator change of an active booking's times, kept under the same id."""
        async with self._write_lock:
            booking = await self.get(booking_id)
            if not booking.is_active:
                raise InvalidTransitionError(booking.id, booking.status.value, "UPDATED")
            duration = await self._check_candidate(
                booking.date,
                start_time,
                end_time,
                with_chan=booking.with_chan,
                force_chan=booking.chan_forced,
                exclude_ids={booking.id},
            )
            updated = replace(booking, start_time=start_time, end_time=end_time, duration_minutes=duration)
            await self._save(updated)
        self._log("Booking times updated", updated)
        return updated

    async def toggle_chan(self, booking_id: str, force: bool = False) -> Booking:
        async with self._write_lock:
            booking = await self.get(booking_id)
            if not booking.is_active:
                raise InvalidTransitionError(booking.id, booking.status.value, "CHAN_TOGGLED")
            if booking.with_chan:
                updated = replace(booking, with_chan=False, chan_forced=False)
            else:
                is_auxiliary_eligible(
                    booking.date,
                    booking.start_time,
                    await self._store.list(booking.date),
                    self._settings,
                    self._chan_policy,
                    end_time=booking.end_time,
                    exclude_id=booking.id,
                    force=force,
                ).raise_for_error()
                updated = replace(booking, with_chan=True, chan_forced=force)
            await self._save(updated)
        self._log("Booking chan toggled", updated)
        return updated

    async def replace(self, request: ReplaceBookingRequest) -> Booking:
        """Operator overwrite: drop the named bookings and insert a confirmed one."""
        async with self._write_lock:
            replace_ids = set(request.replace_ids)
            duration = await self._check_candidate(
                request.date,
                request.start_time,
                request.end_time,
                with_chan=request.with_chan,
                force_chan=request.force_chan,
                exclude_ids=replace_ids,
            )
            booking = Booking(
                id=new_booking_id(),
                date=request.date,
                start_time=request.start_time,
                end_time=request.end_time,
                duration_minutes=duration,
                created_by=request.created_by,
                created_at=self._clock(),
                with_chan=request.with_chan,
                status=BookingStatus.CONFIRMED,
                note=_clean_note(request.note),
                chan_forced=request.with_chan and request.force_chan,
            )
            await self._resolver.replace(replace_ids, booking)
        self._log("Booking created by replace", booking)
        return booking

    async def remove(self, booking_id: str) -> None:
        async with self._write_lock:
            if not await self._store.remove(booking_id):
                raise NotFoundError(booking_id)
        self._logger.info("Booking removed", extra={"booking_id": booking_id})

    async def clear_day(self, day: date) -> int:
        async with self._write_lock:
            removed = await self._store.clear_date(day)
        self._logger.info("Day cleared", extra={"date": day.isoformat(), "count": removed})
        return removed

    async def _check_candidate(
        self,
        day: date,
        start_time: str,
        end_time: str,
        with_chan: bool,
        force_chan: bool,
        exclude_ids: Collection[str] = (),
    ) -> int:
        """Validate, reject on overlap, then apply chan rules. Returns the duration in minutes."""
        validation = validate_slot(day, start_time, end_time, self._settings)
        validation.raise_for_error()
        await self._resolver.ensure_free(day, start_time, end_time, exclude_ids=exclude_ids)
        if with_chan:
            others = [b for b in await self._store.list(day) if b.id not in exclude_ids]
            is_auxiliary_eligible(
                day,
                start_time,
                others,
                self._settings,
                self._chan_policy,
                end_time=end_time,
                force=force_chan,
            ).raise_for_error()
        return validation.duration_minutes or 0

    async def _save(self, updated: Booking) -> None:
        day_bookings = await self._store.list(updated.date)
        await self._store.replace_all_for_date(
            updated.date, [updated if b.id == updated.id else b for b in day_bookings]
        )

    @staticmethod
    def _require_status(booking: Booking, allowed: Collection[BookingStatus], target: BookingStatus) -> None:
        if booking.status not in allowed:
            raise InvalidTransitionError(booking.id, booking.status.value, target.value)

    def _log(self, message: str, booking: Booking, reason: str | None = None) -> None:
        self._logger.info(
            message,
            extra={
                "booking_id": booking.id,
                "date": booking.date_iso,
                "status": booking.status.value,
                "reason": reason,
            },
        )


class OpeningsService:
    """Open-time windows published by operators; overlapping or touching windows coalesce."""

    def __init__(
        self,
        store: BookingStorePort,
        settings: ScheduleSettings,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self._store = store
        self._settings = settings
        self._clock = clock
        self._resolver = ConflictResolver(store, settings)
        self._write_lock = asyncio.Lock()
        self._logger = logging.getLogger(__name__)

    async def list(self, day: date | None = None) -> list[Booking]:
        return await self._store.list(day)

    async def open_window(self, request: OpenWindowRequest) -> Booking:
        validate_slot(request.date, request.start_time, request.end_time, self._settings, window=True).raise_for_error()
        candidate = Booking(
            id=new_booking_id(),
            date=request.date,
            start_time=request.start_time,
            end_time=request.end_time,
            duration_minutes=0,
            created_by=request.created_by,
            created_at=self._clock(),
            with_chan=request.with_chan,
            status=BookingStatus.CONFIRMED,
            note=_clean_note(request.note),
        )
        async with self._write_lock:
            return await self._resolver.merge_insert(candidate)

    async def get(self, window_id: str) -> Booking:
        window = await self._store.get(window_id)
        if window is None:
            raise NotFoundError(window_id)
        return window

    async def update_times(self, window_id: str, start_time: str, end_time: str) -> Booking:
        """Move a window in place. Touching neighbours are allowed; overlapping ones are not."""
        async with self._write_lock:
            window = await self.get(window_id)
            validation = validate_slot(window.date, start_time, end_time, self._settings, window=True)
            validation.raise_for_error()
            await self._resolver.ensure_free(window.date, start_time, end_time, exclude_ids={window.id})
            updated = replace(
                window, start_time=start_time, end_time=end_time, duration_minutes=validation.duration_minutes or 0
            )
            await self._save(updated)
        self._logger.info("Window times updated", extra={"booking_id": updated.id, "date": updated.date_iso})
        return updated

    async def toggle_chan(self, window_id: str) -> Booking:
        async with self._write_lock:
            window = await self.get(window_id)
            updated = replace(window, with_chan=not window.with_chan)
            await self._save(updated)
        self._logger.info("Window chan toggled", extra={"booking_id": updated.id, "date": updated.date_iso})
        return updated

    async def remove(self, window_id: str) -> None:
        async with self._write_lock:
            if not await self._store.remove(window_id):
                raise NotFoundError(window_id)

    async def clear_day(self, day: date) -> int:
        async with self._write_lock:
            return await self._store.clear_date(day)

    async def _save(self, updated: Booking) -> None:
        day_windows = await self._store.list(updated.date)
        await self._store.replace_all_for_date(
            updated.date, [updated if w.id == updated.id else w for w in day_windows]
        )


def _clean_note(note: str | None) -> str | None:
    if note is None:
        return None
    return note.strip() or None
