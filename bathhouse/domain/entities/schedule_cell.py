from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from enum import Enum


class CellStatus(str, Enum):
    PAST = "past"
    BOOKED = "booked"
    CLEANING = "cleaning-buffer"
    TOO_TIGHT = "too-tight"
    AVAILABLE = "available"


@dataclass(frozen=True)
class ScheduleCell:
    date: date
    cell_start: datetime
    cell_end: datetime
    status: CellStatus
    auxiliary_eligible: bool = False


@dataclass(frozen=True)
class ScheduleSegment:
    date: date
    start: datetime
    end: datetime
    status: CellStatus
    auxiliary_eligible: bool
    cell_count: int


@dataclass(frozen=True)
class OfferedSlot:
    start: datetime
    end: datetime
    duration_hours: int
    chan_eligible: bool = False
