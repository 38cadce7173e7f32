from datetime import date, datetime

from pydantic import BaseModel, Field

from bathhouse.application.use_cases.booking_lifecycle import BookingAssessment
from bathhouse.application.use_cases.chan_rules import ChanEligibility, ChanWindow
from bathhouse.application.utils.time_kernel import format_time
from bathhouse.domain.entities.booking import Booking, BookingStatus
from bathhouse.domain.entities.schedule_cell import CellStatus, OfferedSlot, ScheduleCell, ScheduleSegment
from bathhouse.domain.entities.time_range import TimeRange


class BookingCreateSchema(BaseModel):
    date: date
    start_time: str
    end_time: str
    created_by: int
    with_chan: bool = False
    force_chan: bool = False
    note: str | None = None


class BookingReplaceSchema(BookingCreateSchema):
    replace_ids: list[str] = Field(default_factory=list)


class BookingTimesSchema(BaseModel):
    start_time: str
    end_time: str


class RejectSchema(BaseModel):
    reason: str


class ChanToggleSchema(BaseModel):
    force: bool = False


class ValidateRequestSchema(BaseModel):
    date: date
    start_time: str
    end_time: str
    with_chan: bool = False
    force_chan: bool = False
    exclude_id: str | None = None


class OpenWindowSchema(BaseModel):
    date: date
    start_time: str
    end_time: str
    created_by: int
    with_chan: bool = True
    note: str | None = None


class BookingSchema(BaseModel):
    id: str
    date: date
    start_time: str
    end_time: str
    duration_minutes: int
    created_by: int
    created_at: datetime
    with_chan: bool
    chan_forced: bool = False
    status: BookingStatus
    note: str | None = None
    rejection_reason: str | None = None

    @classmethod
    def from_booking(cls, booking: Booking) -> "BookingSchema":
        return cls(
            id=booking.id,
            date=booking.date,
            start_time=booking.start_time,
            end_time=booking.end_time,
            duration_minutes=booking.duration_minutes,
            created_by=booking.created_by,
            created_at=booking.created_at,
            with_chan=booking.with_chan,
            chan_forced=booking.chan_forced,
            status=booking.status,
            note=booking.note,
            rejection_reason=booking.rejection_reason,
        )


class RangeSchema(BaseModel):
    start: str
    end: str
    minutes: int

    @classmethod
    def from_range(cls, r: TimeRange, day: date, tz: str) -> "RangeSchema":
        return cls(start=format_time(r.start, day, tz), end=format_time(r.end, day, tz), minutes=r.duration_minutes)


class ChanEligibilitySchema(BaseModel):
    eligible: bool
    reason: str | None = None
    message: str | None = None

    @classmethod
    def from_result(cls, result: ChanEligibility) -> "ChanEligibilitySchema":
        return cls(
            eligible=result.eligible,
            reason=result.reason.value if result.reason else None,
            message=result.message,
        )


class ChanWindowSchema(BaseModel):
    type: str
    range: RangeSchema


class ChanCheckSchema(ChanEligibilitySchema):
    windows: list[ChanWindowSchema] = Field(default_factory=list)


class AssessmentSchema(BaseModel):
    ok: bool
    failure: str | None = None
    reason: str | None = None
    duration_minutes: int | None = None
    conflicts: list[BookingSchema] = Field(default_factory=list)
    chan: ChanEligibilitySchema | None = None
    tight_gaps: list[RangeSchema] = Field(default_factory=list)

    @classmethod
    def from_assessment(cls, assessment: BookingAssessment, day: date, tz: str) -> "AssessmentSchema":
        validation = assessment.validation
        return cls(
            ok=assessment.ok,
            failure=validation.failure.value if validation.failure else None,
            reason=validation.reason,
            duration_minutes=validation.duration_minutes,
            conflicts=[BookingSchema.from_booking(b) for b in assessment.conflicts],
            chan=ChanEligibilitySchema.from_result(assessment.chan) if assessment.chan else None,
            tight_gaps=[RangeSchema.from_range(g, day, tz) for g in assessment.tight_gaps],
        )


class DayRangesSchema(BaseModel):
    date: date
    free: list[RangeSchema]
    cleaning: list[RangeSchema]
    too_tight: list[RangeSchema]


class GapsSchema(BaseModel):
    has_tight_gaps: bool
    gaps: list[RangeSchema]


class CellSchema(BaseModel):
    start: str
    end: str
    status: CellStatus
    chan_eligible: bool

    @classmethod
    def from_cell(cls, cell: ScheduleCell, tz: str) -> "CellSchema":
        return cls(
            start=format_time(cell.cell_start, cell.date, tz),
            end=format_time(cell.cell_end, cell.date, tz),
            status=cell.status,
            chan_eligible=cell.auxiliary_eligible,
        )


class SegmentSchema(BaseModel):
    start: str
    end: str
    status: CellStatus
    chan_eligible: bool
    cell_count: int

    @classmethod
    def from_segment(cls, segment: ScheduleSegment, tz: str) -> "SegmentSchema":
        return cls(
            start=format_time(segment.start, segment.date, tz),
            end=format_time(segment.end, segment.date, tz),
            status=segment.status,
            chan_eligible=segment.auxiliary_eligible,
            cell_count=segment.cell_count,
        )


class OfferedSlotSchema(BaseModel):
    start: str
    end: str
    duration_hours: int
    chan_eligible: bool

    @classmethod
    def from_slot(cls, slot: OfferedSlot, day: date, tz: str) -> "OfferedSlotSchema":
        return cls(
            start=format_time(slot.start, day, tz),
            end=format_time(slot.end, day, tz),
            duration_hours=slot.duration_hours,
            chan_eligible=slot.chan_eligible,
        )


class ScheduleDaysSchema(BaseModel):
    days: list[date]
    start_times: list[str]
    end_times: list[str]


class ClearDaySchema(BaseModel):
    date: date
    removed: int


def window_schema(window: ChanWindow, day: date, tz: str) -> ChanWindowSchema:
    return ChanWindowSchema(type=window.type.value, range=RangeSchema.from_range(window.range, day, tz))
