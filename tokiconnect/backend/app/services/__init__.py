from . import (
    availability_service,
    booking_intent,
    booking_service,
    checkout_service,
    payment_service,
    pricing_service,
)
__all__ = [
    "availability_service",
    "booking_intent",
    "booking_service",
    "checkout_service",
    "payment_service",
    "pricing_service",
]
