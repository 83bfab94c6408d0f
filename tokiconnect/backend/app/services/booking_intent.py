"""Validation of an in-progress booking request.

A request is checked against the required fields of its lesson type, the
teacher's availability and the submission-time clock, then priced. The
result is a :class:`BookingIntent`, which carries everything needed to
either store the booking or send the student to checkout.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta, tzinfo

from ..core.constants import BOOKING_WINDOW_DAYS, MONTHLY_DISCOUNT_TIERS
from ..core.exceptions import PastTimeError, ValidationError
from ..db import schemas
from ..db.models.booking import LessonType
from .availability_service import AvailabilityIndex, combine_in_zone, normalize_weekday
from .booking_service import BookingPayload, as_utc
from .pricing_service import PriceQuote, RateCard, lesson_duration, quote_price


@dataclass(frozen=True, slots=True)
class BookingIntent:
    teacher_id: int
    student_id: int
    lesson_type: LessonType
    lesson_date: datetime
    lesson_duration: int
    quote: PriceQuote
    currency: str
    lesson_focus: str
    notes: str | None = None
    classes_per_month: int | None = None
    subscription_months: int | None = None

    @property
    def is_free(self) -> bool:
        return self.lesson_type == LessonType.free_demo and self.quote.total == 0

    def to_payload(self, payment_reference: str | None = None) -> BookingPayload:
        return BookingPayload(
            teacher_id=self.teacher_id,
            student_id=self.student_id,
            lesson_type=self.lesson_type,
            lesson_date=self.lesson_date,
            lesson_duration=self.lesson_duration,
            amount=self.quote.total,
            currency=self.currency,
            lesson_focus=self.lesson_focus,
            notes=self.notes,
            classes_per_month=self.classes_per_month,
            subscription_months=self.subscription_months,
            payment_reference=payment_reference,
        )

    def redirect_params(self) -> dict[str, str]:
        """Query parameters that let the success redirect rebuild the booking."""

        params = {
            "teacherId": str(self.teacher_id),
            "lessonType": self.lesson_type.value,
            "lessonDate": as_utc(self.lesson_date).isoformat(),
            "lessonDuration": str(self.lesson_duration),
            "amount": str(self.quote.total),
            "currency": self.currency,
            "lessonFocus": self.lesson_focus,
        }
        if self.notes:
            params["notes"] = self.notes
        if self.classes_per_month is not None:
            params["classesPerMonth"] = str(self.classes_per_month)
        if self.subscription_months is not None:
            params["subscriptionMonths"] = str(self.subscription_months)
        return params


def _required(value, field: str):
    if isinstance(value, str):
        value = value.strip()
    if value is None or value == "" or value == []:
        raise ValidationError(field)
    return value


def _lesson_type(value: str | None) -> LessonType:
    raw = _required(value, "lessonType")
    try:
        return LessonType(raw)
    except ValueError as exc:
        raise ValidationError("lessonType", f"Unknown lesson type: {raw!r}") from exc


def _ensure_future(instant: datetime, now: datetime) -> datetime:
    if instant <= as_utc(now):
        raise PastTimeError()
    return instant


def _single_instant(
    request: schemas.BookingRequest,
    availability: AvailabilityIndex,
    now: datetime,
    tz: tzinfo,
    window_days: int,
) -> datetime:
    selected_date = _required(request.selected_date, "selectedDate")
    slot = _required(request.selected_time_slot, "selectedTimeSlot")
    instant = _ensure_future(combine_in_zone(selected_date, slot, tz), now)
    today = as_utc(now).astimezone(tz).date()
    if selected_date >= today + timedelta(days=window_days):
        raise ValidationError(
            "selectedDate", f"Lessons can only be booked up to {window_days} days ahead"
        )
    if not availability.offers(selected_date, slot):
        raise ValidationError(
            "selectedTimeSlot", f"{slot} is not available on {selected_date.isoformat()}"
        )
    return instant


def _monthly_instant(
    request: schemas.BookingRequest,
    availability: AvailabilityIndex,
    now: datetime,
    tz: tzinfo,
    window_days: int,
) -> datetime:
    classes = _required(request.classes_per_month, "classesPerMonth")
    if classes not in MONTHLY_DISCOUNT_TIERS:
        raise ValidationError(
            "classesPerMonth",
            "classesPerMonth must be one of "
            + ", ".join(str(tier) for tier in MONTHLY_DISCOUNT_TIERS),
        )
    _required(request.subscription_duration_months, "subscriptionDurationMonths")
    days = _required(request.selected_days, "selectedDays")
    slot = _required(request.preferred_time_slot, "preferredTimeSlot")
    if len(days) > classes:
        raise ValidationError(
            "selectedDays",
            f"You've selected {len(days)} days but your plan includes only "
            f"{classes} classes per month",
        )
    selected = {normalize_weekday(day) for day in days}
    unavailable = sorted(selected - set(availability.weekdays))
    if unavailable:
        raise ValidationError(
            "selectedDays", "Teacher is not available on " + ", ".join(unavailable)
        )
    today = as_utc(now).astimezone(tz).date()
    candidates = [
        combine_in_zone(entry.date, slot, tz)
        for entry in availability.upcoming_dates(today, window_days)
        if entry.day in selected and availability.offers(entry.date, slot)
    ]
    if not candidates:
        raise ValidationError(
            "preferredTimeSlot", f"{slot} is not offered on any of the selected days"
        )
    upcoming = [instant for instant in candidates if instant > as_utc(now)]
    if not upcoming:
        raise PastTimeError()
    return upcoming[0]


def build_booking_intent(
    request: schemas.BookingRequest,
    *,
    teacher_id: int,
    student_id: int,
    rate_card: RateCard,
    availability: AvailabilityIndex,
    now: datetime,
    tz: tzinfo,
    currency: str,
    window_days: int = BOOKING_WINDOW_DAYS,
) -> BookingIntent:
    """Validate ``request`` at submission time and price it.

    ``now`` must be read when the student submits, not when the slot was
    picked: a slot that has slipped into the past in between is rejected.
    """

    lesson_type = _lesson_type(request.lesson_type)
    lesson_focus = _required(request.lesson_focus, "lessonFocus")

    if lesson_type == LessonType.monthly:
        instant = _monthly_instant(request, availability, now, tz, window_days)
    else:
        if lesson_type == LessonType.single:
            _required(request.lesson_duration_minutes, "lessonDurationMinutes")
        instant = _single_instant(request, availability, now, tz, window_days)

    quote = quote_price(
        lesson_type,
        rate_card,
        duration_minutes=request.lesson_duration_minutes,
        classes_per_month=request.classes_per_month,
        subscription_months=request.subscription_duration_months,
    )
    monthly = lesson_type == LessonType.monthly
    return BookingIntent(
        teacher_id=teacher_id,
        student_id=student_id,
        lesson_type=lesson_type,
        lesson_date=as_utc(instant),
        lesson_duration=lesson_duration(lesson_type, rate_card, request.lesson_duration_minutes),
        quote=quote,
        currency=currency.lower(),
        lesson_focus=lesson_focus,
        notes=(request.notes or "").strip() or None,
        classes_per_month=request.classes_per_month if monthly else None,
        subscription_months=request.subscription_duration_months if monthly else None,
    )


__all__ = ["BookingIntent", "build_booking_intent"]
