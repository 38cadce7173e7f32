from datetime import date

from fastapi import APIRouter, Depends, Query, Response

from bathhouse.api.v1.errors import http_error
from bathhouse.api.v1.schemas import BookingSchema, BookingTimesSchema, ClearDaySchema, OpenWindowSchema
from bathhouse.application.exceptions import BookingError
from bathhouse.application.use_cases.booking_lifecycle import OpeningsService
from bathhouse.domain.entities.requests import OpenWindowRequest
from bathhouse.wiring.dependencies import get_openings_service

router = APIRouter()


@router.post("", response_model=BookingSchema, status_code=201)
async def open_window(req: OpenWindowSchema, service: OpeningsService = Depends(get_openings_service)):
    try:
        window = await service.open_window(
            OpenWindowRequest(
                date=req.date,
                start_time=req.start_time,
                end_time=req.end_time,
                created_by=req.created_by,
                with_chan=req.with_chan,
                note=req.note,
            )
        )
    except BookingError as e:
        raise http_error(e)
    return BookingSchema.from_booking(window)


@router.get("", response_model=list[BookingSchema])
async def list_windows(
    day: date | None = Query(None, alias="date"),
    service: OpeningsService = Depends(get_openings_service),
):
    return [BookingSchema.from_booking(w) for w in await service.list(day)]


@router.delete("/days/{day}", response_model=ClearDaySchema)
async def clear_day(day: date, service: OpeningsService = Depends(get_openings_service)):
    return ClearDaySchema(date=day, removed=await service.clear_day(day))


@router.delete("/{window_id}", status_code=204)
async def delete_window(window_id: str, service: OpeningsService = Depends(get_openings_service)):
    try:
        await service.remove(window_id)
    except BookingError as e:
        raise http_error(e)
    return Response(status_code=204)


@router.put("/{window_id}/times", response_model=BookingSchema)
async def update_window_times(
    window_id: str,
    req: BookingTimesSchema,
    service: OpeningsService = Depends(get_openings_service),
):
    try:
        window = await service.update_times(window_id, req.start_time, req.end_time)
    except BookingError as e:
        raise http_error(e)
    return BookingSchema.from_booking(window)


@router.post("/{window_id}/chan", response_model=BookingSchema)
async def toggle_window_chan(window_id: str, service: OpeningsService = Depends(get_openings_service)):
    try:
        window = await service.toggle_chan(window_id)
    except BookingError as e:
        raise http_error(e)
    return BookingSchema.from_booking(window)
