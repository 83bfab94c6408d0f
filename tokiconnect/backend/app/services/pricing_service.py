"""Lesson pricing.

Four mutually exclusive lesson types are priced here, evaluated in
precedence order: free demo, trial, single lesson, monthly subscription.
Everything is computed with :class:`~decimal.Decimal` and rounded to cents
only once, on the final figures.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal

from ..core.constants import (
    CENTS,
    DEFAULT_FREE_DEMO_DURATION_MIN,
    MONTHLY_CLASS_DURATION_MIN,
    MONTHLY_DISCOUNT_TIERS,
    TRIAL_LESSON_DURATION_MIN,
)
from ..core.exceptions import ValidationError
from ..db import models
from ..db.models.booking import LessonType

_ZERO = Decimal("0")
_HUNDRED = Decimal("100")
_MINUTES_PER_HOUR = Decimal("60")
_DECIMAL_FIELDS = (
    "hourly_rate",
    "discount_monthly4",
    "discount_monthly8",
    "discount_monthly12",
    "trial_class_price",
)


@dataclass(frozen=True, slots=True)
class RateCard:
    hourly_rate: Decimal = _ZERO
    discount_monthly4: Decimal = _ZERO
    discount_monthly8: Decimal = _ZERO
    discount_monthly12: Decimal = _ZERO
    trial_class_available: bool = False
    trial_class_price: Decimal = _ZERO
    free_demo_available: bool = False
    free_demo_duration: int = DEFAULT_FREE_DEMO_DURATION_MIN

    def __post_init__(self) -> None:
        for name in _DECIMAL_FIELDS:
            object.__setattr__(self, name, _decimal(getattr(self, name)))

    @classmethod
    def from_profile(cls, profile: models.TeacherProfile) -> "RateCard":
        return cls(
            hourly_rate=_decimal(profile.hourly_rate),
            discount_monthly4=_decimal(profile.discount_monthly4),
            discount_monthly8=_decimal(profile.discount_monthly8),
            discount_monthly12=_decimal(profile.discount_monthly12),
            trial_class_available=bool(profile.trial_class_available),
            trial_class_price=_decimal(profile.trial_class_price),
            free_demo_available=bool(profile.free_demo_available),
            free_demo_duration=profile.free_demo_duration or DEFAULT_FREE_DEMO_DURATION_MIN,
        )

    def monthly_discount(self, classes_per_month: int) -> Decimal:
        tiers = dict(
            zip(
                MONTHLY_DISCOUNT_TIERS,
                (self.discount_monthly4, self.discount_monthly8, self.discount_monthly12),
            )
        )
        return tiers.get(classes_per_month, _ZERO)


@dataclass(frozen=True, slots=True)
class PriceQuote:
    original: Decimal
    discounted: Decimal
    discount: Decimal
    total: Decimal

    @classmethod
    def flat(cls, amount: Decimal) -> "PriceQuote":
        amount = _money(amount)
        return cls(original=amount, discounted=amount, discount=_ZERO, total=amount)


def _decimal(value) -> Decimal:
    if value is None:
        return _ZERO
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


def _money(value: Decimal) -> Decimal:
    return value.quantize(CENTS, rounding=ROUND_HALF_UP)


def _positive(value: int | None, field: str) -> int:
    if value is None:
        raise ValidationError(field)
    if value <= 0:
        raise ValidationError(field, f"{field} must be a positive number")
    return value


def lesson_duration(
    lesson_type: LessonType, rate_card: RateCard, requested: int | None = None
) -> int:
    """Minutes recorded on the booking for a lesson type."""

    if lesson_type == LessonType.free_demo:
        return rate_card.free_demo_duration
    if lesson_type == LessonType.trial:
        return TRIAL_LESSON_DURATION_MIN
    if lesson_type == LessonType.monthly:
        return MONTHLY_CLASS_DURATION_MIN
    return _positive(requested, "lessonDurationMinutes")


def quote_price(
    lesson_type: LessonType | str,
    rate_card: RateCard,
    *,
    duration_minutes: int | None = None,
    classes_per_month: int | None = None,
    subscription_months: int | None = None,
) -> PriceQuote:
    try:
        lesson_type = LessonType(lesson_type)
    except ValueError as exc:
        raise ValidationError("lessonType", f"Unknown lesson type: {lesson_type!r}") from exc

    if lesson_type == LessonType.free_demo:
        if not rate_card.free_demo_available:
            raise ValidationError("lessonType", "This teacher does not offer free demo lessons")
        free = _money(_ZERO)
        return PriceQuote(original=free, discounted=free, discount=_HUNDRED, total=free)

    if lesson_type == LessonType.trial:
        if not rate_card.trial_class_available:
            raise ValidationError("lessonType", "This teacher does not offer trial lessons")
        return PriceQuote.flat(rate_card.trial_class_price)

    if lesson_type == LessonType.single:
        minutes = _positive(duration_minutes, "lessonDurationMinutes")
        return PriceQuote.flat(rate_card.hourly_rate * Decimal(minutes) / _MINUTES_PER_HOUR)

    classes = _positive(classes_per_month, "classesPerMonth")
    months = _positive(subscription_months, "subscriptionDurationMonths")
    base = rate_card.hourly_rate * classes * months
    percent = rate_card.monthly_discount(classes)
    discounted = _money(base * (1 - percent / _HUNDRED))
    return PriceQuote(original=_money(base), discounted=discounted, discount=percent, total=discounted)


__all__ = ["PriceQuote", "RateCard", "lesson_duration", "quote_price"]
