from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone, tzinfo
from enum import Enum
from zoneinfo import ZoneInfo

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..config import Settings, get_settings
from ..core.exceptions import TransportError
from ..db import models, schemas
from . import booking_service, payment_service
from .availability_service import load_index
from .booking_intent import BookingIntent, build_booking_intent
from .pricing_service import PriceQuote, RateCard

logger = logging.getLogger(__name__)


class CheckoutState(str, Enum):
    idle = "idle"
    pricing = "pricing"
    direct_booking = "direct_booking"
    checkout_redirect = "checkout_redirect"
    confirmed = "confirmed"
    already_exists = "already_exists"
    failed = "failed"


@dataclass(slots=True)
class CheckoutOutcome:
    state: CheckoutState = CheckoutState.idle
    message: str = ""
    quote: PriceQuote | None = None
    booking: models.Booking | None = None
    checkout_url: str | None = None
    history: list[CheckoutState] = field(default_factory=list)

    def advance(self, state: CheckoutState) -> None:
        self.history.append(self.state)
        self.state = state


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


def lesson_zone(settings: Settings) -> tzinfo:
    name = settings.lesson_timezone or "UTC"
    if name.upper() == "UTC":
        return timezone.utc
    return ZoneInfo(name)


def prepare_intent(
    teacher: models.TeacherProfile,
    student_id: int,
    request: schemas.BookingRequest,
    *,
    settings: Settings | None = None,
    now: datetime | None = None,
) -> BookingIntent:
    settings = settings or get_settings()
    return build_booking_intent(
        request,
        teacher_id=teacher.user_id,
        student_id=student_id,
        rate_card=RateCard.from_profile(teacher),
        availability=load_index(teacher),
        now=now or _utc_now(),
        tz=lesson_zone(settings),
        currency=settings.payment_currency,
        window_days=settings.booking_window_days,
    )


def start_checkout(
    db: Session,
    teacher: models.TeacherProfile,
    student_id: int,
    request: schemas.BookingRequest,
    *,
    settings: Settings | None = None,
    now: datetime | None = None,
) -> CheckoutOutcome:
    """Run one booking attempt from submission to booking or checkout hand-off.

    Validation and past-time errors propagate before anything is stored or
    sent to the payment provider. Store and provider failures end in the
    ``failed`` state.
    """

    settings = settings or get_settings()
    outcome = CheckoutOutcome()
    intent = prepare_intent(teacher, student_id, request, settings=settings, now=now)

    outcome.advance(CheckoutState.pricing)
    outcome.quote = intent.quote

    if intent.is_free:
        outcome.advance(CheckoutState.direct_booking)
        try:
            result = booking_service.create_booking(db, intent.to_payload())
        except SQLAlchemyError:
            db.rollback()
            logger.exception(
                "Direct booking failed",
                extra={"teacher_id": intent.teacher_id, "student_id": student_id},
            )
            outcome.advance(CheckoutState.failed)
            outcome.message = TransportError.message
            return outcome
        outcome.booking = result.booking
        outcome.message = result.message
        if result.status == booking_service.BookingOutcome.already_exists:
            outcome.advance(CheckoutState.already_exists)
        else:
            outcome.advance(CheckoutState.confirmed)
        return outcome

    outcome.advance(CheckoutState.checkout_redirect)
    try:
        _, gateway_response = payment_service.create_checkout_session(db, intent, settings)
    except TransportError as exc:
        outcome.advance(CheckoutState.failed)
        outcome.message = exc.message
        return outcome
    outcome.checkout_url = gateway_response["checkout_url"]
    outcome.message = "Redirecting to checkout"
    return outcome


__all__ = [
    "CheckoutOutcome",
    "CheckoutState",
    "lesson_zone",
    "prepare_intent",
    "start_checkout",
]
