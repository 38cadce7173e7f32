from datetime import date, datetime, timezone

from fastapi import APIRouter, Depends, Query

from bathhouse.api.v1.errors import http_error
from bathhouse.api.v1.schemas import (
    CellSchema,
    ChanCheckSchema,
    ChanEligibilitySchema,
    DayRangesSchema,
    GapsSchema,
    OfferedSlotSchema,
    RangeSchema,
    ScheduleDaysSchema,
    SegmentSchema,
    window_schema,
)
from bathhouse.application.exceptions import BookingError
from bathhouse.application.use_cases.booking_lifecycle import BookingService
from bathhouse.application.use_cases.chan_rules import (
    DEFAULT_HEATING_GAP_MINUTES,
    HeatingGapChanPolicy,
    compute_chan_windows,
    is_auxiliary_eligible,
)
from bathhouse.application.use_cases.free_time import (
    build_segments,
    classify_cells,
    cleaning_ranges,
    free_ranges,
    offered_slots,
    tight_gaps,
    tight_ranges,
)
from bathhouse.application.use_cases.validate_slot import minimum_duration_minutes
from bathhouse.application.utils.schedule_days import display_days, end_time_options, start_time_options
from bathhouse.wiring.dependencies import get_booking_service

router = APIRouter()


def _now() -> datetime:
    return datetime.now(timezone.utc)


@router.get("/days", response_model=ScheduleDaysSchema)
def schedule_days(
    week_offset: int = Query(0, ge=0),
    start_time: str | None = Query(None),
    service: BookingService = Depends(get_booking_service),
):
    settings = service.settings
    min_minutes = minimum_duration_minutes(settings) if start_time else 0
    try:
        end_times = end_time_options(settings, start_time, min_minutes)
    except BookingError as e:
        raise http_error(e)
    return ScheduleDaysSchema(
        days=display_days(settings, _now(), week_offset),
        start_times=start_time_options(settings),
        end_times=end_times,
    )


@router.get("/{day}/free", response_model=DayRangesSchema)
async def day_ranges(day: date, service: BookingService = Depends(get_booking_service)):
    settings = service.settings
    tz = settings.time_zone
    bookings = await service.list(day)
    return DayRangesSchema(
        date=day,
        free=[RangeSchema.from_range(r, day, tz) for r in free_ranges(day, bookings, settings)],
        cleaning=[RangeSchema.from_range(r, day, tz) for r in cleaning_ranges(day, bookings, settings)],
        too_tight=[RangeSchema.from_range(r, day, tz) for r in tight_ranges(day, bookings, settings)],
    )


@router.get("/{day}/gaps", response_model=GapsSchema)
async def gaps(
    day: date,
    start_time: str = Query(...),
    end_time: str = Query(...),
    exclude_id: str | None = Query(None),
    service: BookingService = Depends(get_booking_service),
):
    settings = service.settings
    bookings = await service.list(day)
    try:
        found = tight_gaps(day, start_time, end_time, bookings, settings, exclude_id)
    except BookingError as e:
        raise http_error(e)
    return GapsSchema(
        has_tight_gaps=bool(found),
        gaps=[RangeSchema.from_range(g, day, settings.time_zone) for g in found],
    )


@router.get("/{day}/cells", response_model=list[CellSchema])
async def cells(
    day: date,
    cell_minutes: int = Query(60, ge=5, le=240),
    service: BookingService = Depends(get_booking_service),
):
    settings = service.settings
    result = classify_cells(
        day, await service.list(day), settings, service.chan_policy, cell_minutes=cell_minutes, now=_now()
    )
    return [CellSchema.from_cell(c, settings.time_zone) for c in result]


@router.get("/{day}/segments", response_model=list[SegmentSchema])
async def segments(
    day: date,
    cell_minutes: int = Query(60, ge=5, le=240),
    service: BookingService = Depends(get_booking_service),
):
    settings = service.settings
    result = classify_cells(
        day, await service.list(day), settings, service.chan_policy, cell_minutes=cell_minutes, now=_now()
    )
    return [SegmentSchema.from_segment(s, settings.time_zone) for s in build_segments(result)]


@router.get("/{day}/chan", response_model=ChanCheckSchema)
async def chan(
    day: date,
    start_time: str = Query(...),
    end_time: str | None = Query(None),
    exclude_id: str | None = Query(None),
    service: BookingService = Depends(get_booking_service),
):
    settings = service.settings
    policy = service.chan_policy
    bookings = await service.list(day)
    try:
        result = is_auxiliary_eligible(
            day, start_time, bookings, settings, policy, end_time=end_time, exclude_id=exclude_id
        )
    except BookingError as e:
        raise http_error(e)
    gap = policy.min_gap_minutes if isinstance(policy, HeatingGapChanPolicy) else DEFAULT_HEATING_GAP_MINUTES
    windows = compute_chan_windows(day, bookings, settings, gap, exclude_id=exclude_id)
    return ChanCheckSchema(
        **ChanEligibilitySchema.from_result(result).model_dump(),
        windows=[window_schema(w, day, settings.time_zone) for w in windows],
    )


@router.get("/{day}/offered", response_model=list[OfferedSlotSchema])
async def offered(day: date, service: BookingService = Depends(get_booking_service)):
    settings = service.settings
    slots = offered_slots(day, await service.list(day), settings, service.chan_policy, now=_now())
    return [OfferedSlotSchema.from_slot(s, day, settings.time_zone) for s in slots]
