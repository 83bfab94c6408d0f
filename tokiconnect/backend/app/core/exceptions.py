"""Errors raised by the booking flow.

Every failure is local to a single booking attempt. Routes translate these
into HTTP responses; services never swallow them.
"""

from __future__ import annotations


class BookingError(Exception):
    message = "Booking failed"

    def __init__(self, message: str | None = None) -> None:
        self.message = message or self.message
        super().__init__(self.message)


class ValidationError(BookingError):
    """A required field is missing or invalid."""

    def __init__(self, field: str, message: str | None = None) -> None:
        self.field = field
        super().__init__(message or f"{field} is required")


class PastTimeError(BookingError):
    message = "The selected lesson time is in the past"


class ConflictError(BookingError):
    """The natural key of a booking is already taken.

    Not a user-facing failure: callers report ``already_exists``.
    """

    message = "Booking already exists for this lesson slot"

    def __init__(self, booking_id: int | None = None, message: str | None = None) -> None:
        self.booking_id = booking_id
        super().__init__(message)


class TransportError(BookingError):
    message = "We could not complete your booking. Please try again or contact support."


class PaymentNotCompletedError(BookingError):
    """A success redirect names a payment that failed or was canceled."""

    message = "Payment was not completed. No booking was created."


class MissingRedirectParameterError(BookingError):
    def __init__(self, missing: list[str]) -> None:
        self.missing = list(missing)
        super().__init__(
            "Payment redirect is missing booking parameters: " + ", ".join(self.missing)
        )


__all__ = [
    "BookingError",
    "ValidationError",
    "PastTimeError",
    "ConflictError",
    "TransportError",
    "MissingRedirectParameterError",
    "PaymentNotCompletedError",
]
