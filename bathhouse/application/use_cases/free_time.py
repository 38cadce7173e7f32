from __future__ import annotations

from collections.abc import Iterable
from datetime import date, datetime, timedelta

from bathhouse.application.use_cases.chan_rules import ChanPolicy
from bathhouse.application.use_cases.validate_slot import effective_step_minutes, minimum_duration_minutes
from bathhouse.application.utils.time_kernel import booking_range, day_bounds, format_time, time_range, to_instant
from bathhouse.domain.entities.booking import Booking
from bathhouse.domain.entities.schedule_cell import CellStatus, OfferedSlot, ScheduleCell, ScheduleSegment
from bathhouse.domain.entities.schedule_settings import ScheduleSettings
from bathhouse.domain.entities.time_range import TimeRange


def _active_ranges(
    day: date, bookings: Iterable[Booking], settings: ScheduleSettings, exclude_id: str | None = None
) -> list[TimeRange]:
    """Active booking ranges of `day`, clipped to working hours and sorted by start."""
    tz = settings.time_zone
    bounds = day_bounds(day, settings)
    ranges = []
    for booking in bookings:
        if booking.date != day or not booking.is_active or booking.id == exclude_id:
            continue
        r = booking_range(booking, tz)
        if r.overlaps(bounds):
            ranges.append(TimeRange(max(r.start, bounds.start), min(r.end, bounds.end)))
    return sorted(ranges)


def _append(pieces: list[tuple[TimeRange, CellStatus]], piece: TimeRange, status: CellStatus) -> None:
    if piece.is_empty:
        return
    if pieces and pieces[-1][1] is status and pieces[-1][0].end == piece.start:
        pieces[-1] = (TimeRange(pieces[-1][0].start, piece.end), status)
        return
    pieces.append((piece, status))


def day_partition(day: date, bookings: Iterable[Booking], settings: ScheduleSettings) -> list[tuple[TimeRange, CellStatus]]:
    """Split working hours into booked, cleaning-buffer and available pieces.

    The pieces are ordered, never overlap, and cover [open, close) exactly.
    """
    bounds = day_bounds(day, settings)
    buffer = timedelta(minutes=settings.cleaning_buffer_minutes)
    pieces: list[tuple[TimeRange, CellStatus]] = []

    cursor = bounds.start
    cleaning_until = bounds.start
    for r in _active_ranges(day, bookings, settings):
        if r.end <= cursor:
            continue
        if r.start > cursor:
            if cleaning_until > cursor:
                clean_end = min(cleaning_until, r.start)
                _append(pieces, TimeRange(cursor, clean_end), CellStatus.CLEANING)
                cursor = clean_end
            _append(pieces, TimeRange(cursor, r.start), CellStatus.AVAILABLE)
            cursor = r.start
        _append(pieces, TimeRange(cursor, r.end), CellStatus.BOOKED)
        cursor = r.end
        cleaning_until = min(r.end + buffer, bounds.end)

    if cleaning_until > cursor:
        _append(pieces, TimeRange(cursor, cleaning_until), CellStatus.CLEANING)
        cursor = cleaning_until
    _append(pieces, TimeRange(cursor, bounds.end), CellStatus.AVAILABLE)
    return pieces


def free_ranges(day: date, bookings: Iterable[Booking], settings: ScheduleSettings) -> list[TimeRange]:
    return [r for r, status in day_partition(day, bookings, settings) if status is CellStatus.AVAILABLE]


def cleaning_ranges(day: date, bookings: Iterable[Booking], settings: ScheduleSettings) -> list[TimeRange]:
    return [r for r, status in day_partition(day, bookings, settings) if status is CellStatus.CLEANING]


def tight_ranges(day: date, bookings: Iterable[Booking], settings: ScheduleSettings) -> list[TimeRange]:
    """Gaps between commitments too short to host the shortest booking plus cleaning.

    At the edges of the day one cleaning buffer is needed, between two bookings two.
    """
    ranges = _active_ranges(day, bookings, settings)
    if not ranges:
        return []
    bounds = day_bounds(day, settings)
    min_duration = minimum_duration_minutes(settings)
    buffer = settings.cleaning_buffer_minutes
    edge_required = min_duration + buffer
    middle_required = min_duration + 2 * buffer

    tight: list[TimeRange] = []
    head = TimeRange(bounds.start, ranges[0].start)
    if 0 < head.duration_minutes < edge_required:
        tight.append(head)
    for left, right in zip(ranges, ranges[1:]):
        gap = TimeRange(left.end, right.start)
        if 0 < gap.duration_minutes < middle_required:
            tight.append(gap)
    tail = TimeRange(ranges[-1].end, bounds.end)
    if 0 < tail.duration_minutes < edge_required:
        tight.append(tail)
    return tight


def tight_gaps(
    day: date,
    start_time: str,
    end_time: str,
    bookings: Iterable[Booking],
    settings: ScheduleSettings,
    exclude_id: str | None = None,
) -> list[TimeRange]:
    """Gaps left directly before and after a candidate that would be too short to use."""
    tz = settings.time_zone
    candidate = time_range(day, start_time, end_time, tz)
    bounds = day_bounds(day, settings)
    threshold = settings.tight_gap_minutes or minimum_duration_minutes(settings)
    cutoff = to_instant(day, settings.useful_day_end_time, tz)
    ranges = _active_ranges(day, bookings, settings, exclude_id)

    previous_end = max([r.end for r in ranges if r.end <= candidate.start] + [bounds.start])
    next_start = min([r.start for r in ranges if r.start >= candidate.end] + [bounds.end])

    gaps = []
    for gap in (TimeRange(previous_end, candidate.start), TimeRange(candidate.end, next_start)):
        # Nothing fits after the end of the useful day anyway.
        if gap.end >= cutoff:
            continue
        if 0 < gap.duration_minutes < threshold:
            gaps.append(gap)
    return gaps


def check_gaps(
    day: date,
    start_time: str,
    end_time: str,
    bookings: Iterable[Booking],
    settings: ScheduleSettings,
    exclude_id: str | None = None,
) -> bool:
    """True when the candidate would leave a tight gap next to it. Advisory only."""
    return bool(tight_gaps(day, start_time, end_time, bookings, settings, exclude_id))


def classify_cells(
    day: date,
    bookings: Iterable[Booking],
    settings: ScheduleSettings,
    policy: ChanPolicy | None = None,
    cell_minutes: int = 60,
    now: datetime | None = None,
) -> list[ScheduleCell]:
    bookings = list(bookings)
    tz = settings.time_zone
    bounds = day_bounds(day, settings)
    partition = day_partition(day, bookings, settings)
    booked = [r for r, status in partition if status is CellStatus.BOOKED]
    cleaning = [r for r, status in partition if status is CellStatus.CLEANING]
    tight = tight_ranges(day, bookings, settings)
    step = timedelta(minutes=cell_minutes)

    cells: list[ScheduleCell] = []
    cell_start = bounds.start
    while cell_start < bounds.end:
        cell = TimeRange(cell_start, min(cell_start + step, bounds.end))
        if now is not None and cell.end <= now:
            status = CellStatus.PAST
        elif any(cell.overlaps(r) for r in booked):
            status = CellStatus.BOOKED
        elif any(cell.overlaps(r) for r in cleaning):
            status = CellStatus.CLEANING
        elif any(cell.overlaps(r) for r in tight):
            status = CellStatus.TOO_TIGHT
        else:
            status = CellStatus.AVAILABLE

        eligible = False
        if status is CellStatus.AVAILABLE and policy is not None:
            eligible = policy.evaluate(
                day,
                format_time(cell.start, day, tz),
                bookings,
                settings,
                end_time=format_time(cell.end, day, tz),
            ).eligible

        cells.append(ScheduleCell(day, cell.start, cell.end, status, eligible))
        cell_start = cell.end
    return cells


def build_segments(cells: Iterable[ScheduleCell]) -> list[ScheduleSegment]:
    """Run-length merge of adjacent cells sharing status and chan eligibility."""
    segments: list[ScheduleSegment] = []
    for cell in cells:
        if segments:
            last = segments[-1]
            if (
                last.date == cell.date
                and last.end == cell.cell_start
                and last.status is cell.status
                and last.auxiliary_eligible == cell.auxiliary_eligible
            ):
                segments[-1] = ScheduleSegment(
                    last.date, last.start, cell.cell_end, last.status, last.auxiliary_eligible, last.cell_count + 1
                )
                continue
        segments.append(
            ScheduleSegment(cell.date, cell.cell_start, cell.cell_end, cell.status, cell.auxiliary_eligible, 1)
        )
    return segments


def offered_slots(
    day: date,
    bookings: Iterable[Booking],
    settings: ScheduleSettings,
    policy: ChanPolicy | None = None,
    now: datetime | None = None,
) -> list[OfferedSlot]:
    """Bookable ranges on the step grid for each allowed duration.

    A slot is offered when it keeps a cleaning buffer to every active booking on both sides.
    """
    bookings = list(bookings)
    tz = settings.time_zone
    bounds = day_bounds(day, settings)
    step = timedelta(minutes=effective_step_minutes(settings))
    buffer = timedelta(minutes=settings.cleaning_buffer_minutes)
    ranges = _active_ranges(day, bookings, settings)
    durations = settings.allowed_durations_hours or (minimum_duration_minutes(settings) // 60,)

    slots: list[OfferedSlot] = []
    for hours in durations:
        length = timedelta(hours=hours)
        start = bounds.start
        while start + length <= bounds.end:
            end = start + length
            in_future = now is None or start > now
            clashes = any(start < r.end + buffer and r.start < end + buffer for r in ranges)
            if in_future and not clashes:
                eligible = False
                if policy is not None:
                    eligible = policy.evaluate(
                        day,
                        format_time(start, day, tz),
                        bookings,
                        settings,
                        end_time=format_time(end, day, tz),
                    ).eligible
                slots.append(OfferedSlot(start, end, hours, eligible))
            start += step
    return sorted(slots, key=lambda s: (s.start, s.duration_hours))
