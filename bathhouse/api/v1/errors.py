from fastapi import HTTPException

from bathhouse.application.exceptions import (
    AuxiliaryResourceError,
    BookingError,
    ConflictError,
    FormatError,
    InvalidTransitionError,
    NotFoundError,
    RangeError,
)

_STATUS_CODES: dict[type[BookingError], int] = {
    FormatError: 400,
    RangeError: 400,
    NotFoundError: 404,
    ConflictError: 409,
    AuxiliaryResourceError: 409,
    InvalidTransitionError: 409,
}


def http_error(error: BookingError) -> HTTPException:
    status_code = next((code for cls, code in _STATUS_CODES.items() if isinstance(error, cls)), 400)
    return HTTPException(status_code=status_code, detail=error.to_detail())
