from .user import User
from .teacher import (
    AvailabilityDay,
    AvailableDate,
    DaySlots,
    Discounts,
    Teacher,
    TeacherProfileUpdate,
)
from .booking import (
    Booking,
    BookingCreate,
    BookingRequest,
    BookingResult,
    CheckoutRequest,
    CheckoutResponse,
    PriceQuote,
    RedirectRequest,
    RedirectResponse,
)
