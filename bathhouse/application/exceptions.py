from __future__ import annotations

from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from bathhouse.domain.entities.booking import Booking


class BookingError(RuntimeError):
    """Base class for recoverable rules-engine failures."""

    code = "booking_error"

    def to_detail(self) -> dict[str, Any]:
        return {"code": self.code, "message": str(self)}


class FormatError(BookingError):
    """Raised for a malformed time string or a time off the step grid."""

    code = "format_error"

    def __init__(self, message: str, failure: str | None = None) -> None:
        super().__init__(message)
        self.failure = failure

    def to_detail(self) -> dict[str, Any]:
        return {**super().to_detail(), "failure": self.failure}


class RangeError(BookingError):
    """Raised when end <= start, the duration is out of bounds, or the range leaves working hours."""

    code = "range_error"

    def __init__(self, message: str, failure: str | None = None) -> None:
        super().__init__(message)
        self.failure = failure

    def to_detail(self) -> dict[str, Any]:
        return {**super().to_detail(), "failure": self.failure}


class ConflictError(BookingError):
    code = "conflict"

    def __init__(self, conflicts: list[Booking], message: str | None = None) -> None:
        self.conflicts = list(conflicts)
        ids = ", ".join(b.id for b in self.conflicts)
        super().__init__(message or f"Time range overlaps existing booking(s): {ids}")

    def to_detail(self) -> dict[str, Any]:
        return {
            **super().to_detail(),
            "conflicts": [
                {
                    "id": b.id,
                    "date": b.date_iso,
                    "start_time": b.start_time,
                    "end_time": b.end_time,
                    "status": b.status.value,
                }
                for b in self.conflicts
            ],
        }


class AuxiliaryResourceError(BookingError):
    code = "chan_unavailable"

    def __init__(self, reason: str, message: str) -> None:
        super().__init__(message)
        self.reason = reason

    def to_detail(self) -> dict[str, Any]:
        return {**super().to_detail(), "reason": self.reason}


class NotFoundError(BookingError):
    code = "not_found"

    def __init__(self, booking_id: str) -> None:
        super().__init__(f"Booking {booking_id} not found")
        self.booking_id = booking_id


class InvalidTransitionError(BookingError):
    """Lifecycle transition attempted from a state that does not allow it.

    This signals a caller bug rather than bad user input.
    """

    code = "invalid_transition"

    def __init__(self, booking_id: str, current: str, target: str) -> None:
        super().__init__(f"Booking {booking_id} cannot go from {current} to {target}")
        self.booking_id = booking_id
        self.current = current
        self.target = target

    def to_detail(self) -> dict[str, Any]:
        return {**super().to_detail(), "current": self.current, "target": self.target}
