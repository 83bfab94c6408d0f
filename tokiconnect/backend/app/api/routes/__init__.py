from . import (
    auth,
    teachers,
    bookings,
    payments,
)

__all__ = [
    "auth",
    "teachers",
    "bookings",
    "payments",
]
