from datetime import date

from fastapi import APIRouter, Depends, HTTPException, Query, Response

from bathhouse.api.v1.errors import http_error
from bathhouse.api.v1.schemas import (
    AssessmentSchema,
    BookingCreateSchema,
    BookingReplaceSchema,
    BookingSchema,
    BookingTimesSchema,
    ChanToggleSchema,
    ClearDaySchema,
    RejectSchema,
    ValidateRequestSchema,
)
from bathhouse.application.exceptions import BookingError
from bathhouse.application.use_cases.booking_lifecycle import BookingService
from bathhouse.domain.entities.requests import CreateBookingRequest, ReplaceBookingRequest
from bathhouse.wiring.dependencies import get_booking_service

router = APIRouter()


@router.get("", response_model=list[BookingSchema])
async def list_bookings(
    day: date | None = Query(None, alias="date"),
    service: BookingService = Depends(get_booking_service),
):
    return [BookingSchema.from_booking(b) for b in await service.list(day)]


@router.get("/overlapping", response_model=list[BookingSchema])
async def overlapping(
    day: date = Query(..., alias="date"),
    start_time: str = Query(...),
    end_time: str = Query(...),
    service: BookingService = Depends(get_booking_service),
):
    try:
        conflicts = await service.find_overlapping(day, start_time, end_time)
    except BookingError as e:
        raise http_error(e)
    return [BookingSchema.from_booking(b) for b in conflicts]


@router.post("/validate", response_model=AssessmentSchema)
async def validate(
    req: ValidateRequestSchema,
    service: BookingService = Depends(get_booking_service),
):
    assessment = await service.assess(
        req.date,
        req.start_time,
        req.end_time,
        with_chan=req.with_chan,
        force_chan=req.force_chan,
        exclude_id=req.exclude_id,
    )
    return AssessmentSchema.from_assessment(assessment, req.date, service.settings.time_zone)


@router.post("", response_model=BookingSchema, status_code=201)
async def create_booking(
    req: BookingCreateSchema,
    service: BookingService = Depends(get_booking_service),
):
    try:
        booking = await service.create(
            CreateBookingRequest(
                date=req.date,
                start_time=req.start_time,
                end_time=req.end_time,
                created_by=req.created_by,
                with_chan=req.with_chan,
                force_chan=req.force_chan,
                note=req.note,
            )
        )
    except BookingError as e:
        raise http_error(e)
    return BookingSchema.from_booking(booking)


@router.post("/replace", response_model=BookingSchema, status_code=201)
async def replace_bookings(
    req: BookingReplaceSchema,
    service: BookingService = Depends(get_booking_service),
):
    try:
        booking = await service.replace(
            ReplaceBookingRequest(
                replace_ids=tuple(req.replace_ids),
                date=req.date,
                start_time=req.start_time,
                end_time=req.end_time,
                created_by=req.created_by,
                with_chan=req.with_chan,
                force_chan=req.force_chan,
                note=req.note,
            )
        )
    except BookingError as e:
        raise http_error(e)
    return BookingSchema.from_booking(booking)


@router.delete("/days/{day}", response_model=ClearDaySchema)
async def clear_day(day: date, service: BookingService = Depends(get_booking_service)):
    removed = await service.clear_day(day)
    return ClearDaySchema(date=day, removed=removed)


@router.get("/{booking_id}", response_model=BookingSchema)
async def get_booking(booking_id: str, service: BookingService = Depends(get_booking_service)):
    try:
        booking = await service.get(booking_id)
    except BookingError as e:
        raise http_error(e)
    return BookingSchema.from_booking(booking)


@router.post("/{booking_id}/approve", response_model=BookingSchema)
async def approve(booking_id: str, service: BookingService = Depends(get_booking_service)):
    try:
        booking = await service.approve(booking_id)
    except BookingError as e:
        raise http_error(e)
    return BookingSchema.from_booking(booking)


@router.post("/{booking_id}/reject", response_model=BookingSchema)
async def reject(
    booking_id: str,
    req: RejectSchema,
    service: BookingService = Depends(get_booking_service),
):
    try:
        booking = await service.reject(booking_id, req.reason)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except BookingError as e:
        raise http_error(e)
    return BookingSchema.from_booking(booking)


@router.post("/{booking_id}/cancel", response_model=BookingSchema)
async def cancel(booking_id: str, service: BookingService = Depends(get_booking_service)):
    try:
        booking = await service.cancel(booking_id)
    except BookingError as e:
        raise http_error(e)
    return BookingSchema.from_booking(booking)


@router.patch("/{booking_id}", response_model=BookingSchema)
async def edit(
    booking_id: str,
    req: BookingTimesSchema,
    service: BookingService = Depends(get_booking_service),
):
    try:
        booking = await service.edit(booking_id, req.start_time, req.end_time)
    except BookingError as e:
        raise http_error(e)
    return BookingSchema.from_booking(booking)


@router.put("/{booking_id}/times", response_model=BookingSchema)
async def update_times(
    booking_id: str,
    req: BookingTimesSchema,
    service: BookingService = Depends(get_booking_service),
):
    try:
        booking = await service.update_times(booking_id, req.start_time, req.end_time)
    except BookingError as e:
        raise http_error(e)
    return BookingSchema.from_booking(booking)


@router.post("/{booking_id}/chan", response_model=BookingSchema)
async def toggle_chan(
    booking_id: str,
    req: ChanToggleSchema,
    service: BookingService = Depends(get_booking_service),
):
    try:
        booking = await service.toggle_chan(booking_id, force=req.force)
    except BookingError as e:
        raise http_error(e)
    return BookingSchema.from_booking(booking)


@router.delete("/{booking_id}", status_code=204)
async def delete_booking(booking_id: str, service: BookingService = Depends(get_booking_service)):
    try:
        await service.remove(booking_id)
    except BookingError as e:
        raise http_error(e)
    return Response(status_code=204)
