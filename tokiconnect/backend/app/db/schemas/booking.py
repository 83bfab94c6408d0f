from datetime import date, datetime
from decimal import Decimal

from pydantic import Field, field_validator

from .base import CamelModel


class BookingRequest(CamelModel):
    lesson_type: str | None = None
    selected_date: date | None = None
    selected_time_slot: str | None = None
    lesson_duration_minutes: int | None = None
    classes_per_month: int | None = None
    subscription_duration_months: int | None = None
    selected_days: list[str] = Field(default_factory=list)
    preferred_time_slot: str | None = None
    lesson_focus: str | None = None
    notes: str | None = None


class CheckoutRequest(BookingRequest):
    teacher_id: int


class BookingCreate(CamelModel):
    teacher_id: int | None = None
    lesson_type: str | None = None
    lesson_date: datetime | None = None
    lesson_duration: int | None = None
    amount: Decimal | None = None
    currency: str | None = None
    notes: str | None = None
    lesson_focus: str | None = None
    classes_per_month: int | None = None
    subscription_months: int | None = None


class Booking(CamelModel):
    id: int
    student_id: int
    teacher_id: int
    lesson_type: str
    lesson_date: datetime
    lesson_duration_minutes: int
    amount: Decimal
    currency: str
    lesson_focus: str | None = None
    notes: str | None = None
    classes_per_month: int | None = None
    subscription_months: int | None = None
    status: str
    meeting_link: str | None = None
    created_at: datetime | None = None

    @field_validator("lesson_type", "status", mode="before")
    @classmethod
    def _enum_value(cls, value):
        return getattr(value, "value", value)


class BookingResult(CamelModel):
    status: str
    message: str
    booking: Booking | None = None


class PriceQuote(CamelModel):
    original: Decimal
    discounted: Decimal
    discount: Decimal
    total: Decimal
    currency: str


class CheckoutResponse(CamelModel):
    state: str
    message: str
    quote: PriceQuote | None = None
    booking: Booking | None = None
    checkout_url: str | None = None


class RedirectRequest(CamelModel):
    url: str


class RedirectResponse(CamelModel):
    status: str
    message: str
    clean_url: str
    booking: Booking | None = None
