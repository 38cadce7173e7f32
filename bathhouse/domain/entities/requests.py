from __future__ import annotations

from dataclasses import dataclass
from datetime import date


@dataclass(frozen=True)
class CreateBookingRequest:
    date: date
    start_time: str
    end_time: str
    created_by: int
    with_chan: bool = False
    force_chan: bool = False
    note: str | None = None


@dataclass(frozen=True)
class ReplaceBookingRequest:
    """Operator overwrite: delete `replace_ids` and insert the new booking in one write."""

    replace_ids: tuple[str, ...]
    date: date
    start_time: str
    end_time: str
    created_by: int
    with_chan: bool = False
    force_chan: bool = False
    note: str | None = None


@dataclass(frozen=True)
class OpenWindowRequest:
    date: date
    start_time: str
    end_time: str
    created_by: int
    with_chan: bool = True
    note: str | None = None
