from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from decimal import Decimal, InvalidOperation
from enum import Enum
from typing import Mapping
from urllib.parse import parse_qsl, urlencode, urlsplit, urlunsplit

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ..core.constants import (
    REDIRECT_CANCEL_FLAG,
    REDIRECT_OPTIONAL_PARAMS,
    REDIRECT_REQUIRED_PARAMS,
    REDIRECT_SUCCESS_FLAG,
)
from ..core.exceptions import (
    ConflictError,
    MissingRedirectParameterError,
    PaymentNotCompletedError,
    ValidationError,
)
from ..db import models
from ..db.models.booking import NATURAL_KEY_CONSTRAINT, BookingStatus, LessonType

logger = logging.getLogger(__name__)

ORDER_ID_PARAM = "orderId"
_UNSETTLED = (models.PaymentStatus.failed, models.PaymentStatus.canceled)
_PROCESSED_PARAMS = frozenset(
    (REDIRECT_SUCCESS_FLAG, REDIRECT_CANCEL_FLAG, ORDER_ID_PARAM)
    + REDIRECT_REQUIRED_PARAMS
    + REDIRECT_OPTIONAL_PARAMS
)


class BookingOutcome(str, Enum):
    confirmed = "confirmed"
    already_exists = "already_exists"


@dataclass(frozen=True, slots=True)
class BookingPayload:
    teacher_id: int
    student_id: int
    lesson_type: LessonType
    lesson_date: datetime
    lesson_duration: int
    amount: Decimal
    currency: str
    lesson_focus: str | None = None
    notes: str | None = None
    classes_per_month: int | None = None
    subscription_months: int | None = None
    payment_reference: str | None = None


@dataclass(slots=True)
class BookingResult:
    status: BookingOutcome
    booking: models.Booking | None

    @property
    def message(self) -> str:
        if self.status == BookingOutcome.already_exists:
            return "Booking already exists for this lesson slot. No new booking created."
        return "Booking confirmed successfully"


def as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def find_booking_by_natural_key(
    db: Session,
    teacher_id: int,
    student_id: int,
    lesson_type: LessonType,
    lesson_date: datetime,
) -> models.Booking | None:
    return db.execute(
        select(models.Booking).where(
            models.Booking.teacher_id == teacher_id,
            models.Booking.student_id == student_id,
            models.Booking.lesson_type == LessonType(lesson_type),
            models.Booking.lesson_date == as_utc(lesson_date),
        )
    ).scalar_one_or_none()


def _is_natural_key_violation(exc: IntegrityError) -> bool:
    constraint = getattr(getattr(exc.orig, "diag", None), "constraint_name", None)
    if constraint:
        return constraint == NATURAL_KEY_CONSTRAINT
    text = str(exc.orig)
    # sqlite names the columns instead of the constraint
    return (
        NATURAL_KEY_CONSTRAINT in text
        or "UNIQUE constraint failed: bookings.teacher_id, bookings.student_id" in text
    )


def insert_booking(db: Session, payload: BookingPayload) -> models.Booking:
    """Insert a confirmed booking.

    Raises :class:`ConflictError` when the natural key is already taken,
    including when another request won the race after our lookup.
    """

    profile = db.get(models.TeacherProfile, payload.teacher_id)
    booking = models.Booking(
        student_id=payload.student_id,
        teacher_id=payload.teacher_id,
        lesson_type=LessonType(payload.lesson_type),
        lesson_date=as_utc(payload.lesson_date),
        lesson_duration_minutes=payload.lesson_duration,
        amount=payload.amount,
        currency=payload.currency,
        lesson_focus=payload.lesson_focus,
        notes=payload.notes,
        classes_per_month=payload.classes_per_month,
        subscription_months=payload.subscription_months,
        status=BookingStatus.confirmed,
        meeting_link=profile.default_meeting_link if profile else None,
        payment_reference=payload.payment_reference,
    )
    db.add(booking)
    try:
        db.commit()
    except IntegrityError as exc:
        db.rollback()
        if not _is_natural_key_violation(exc):
            raise
        existing = find_booking_by_natural_key(
            db,
            payload.teacher_id,
            payload.student_id,
            payload.lesson_type,
            payload.lesson_date,
        )
        raise ConflictError(existing.id if existing else None) from exc
    db.refresh(booking)
    return booking


def create_booking(db: Session, payload: BookingPayload) -> BookingResult:
    existing = find_booking_by_natural_key(
        db,
        payload.teacher_id,
        payload.student_id,
        payload.lesson_type,
        payload.lesson_date,
    )
    if existing:
        logger.warning(
            "Duplicate booking detected",
            extra={"booking_id": existing.id, "student_id": payload.student_id},
        )
        return BookingResult(BookingOutcome.already_exists, existing)
    try:
        booking = insert_booking(db, payload)
    except ConflictError as exc:
        logger.warning(
            "Booking insert lost a race on the natural key",
            extra={"booking_id": exc.booking_id, "student_id": payload.student_id},
        )
        booking = db.get(models.Booking, exc.booking_id) if exc.booking_id else None
        return BookingResult(BookingOutcome.already_exists, booking)
    logger.info(
        "Booking confirmed",
        extra={
            "booking_id": booking.id,
            "teacher_id": booking.teacher_id,
            "student_id": booking.student_id,
            "lesson_type": booking.lesson_type.value,
        },
    )
    return BookingResult(BookingOutcome.confirmed, booking)


def _int_param(params: Mapping[str, str], name: str) -> int | None:
    value = params.get(name)
    if value in (None, ""):
        return None
    try:
        return int(value)
    except (TypeError, ValueError) as exc:
        raise ValidationError(name, f"Invalid {name}: {value!r}") from exc


def payload_from_params(
    student_id: int,
    params: Mapping[str, str],
    *,
    payment_reference: str | None = None,
) -> BookingPayload:
    """Rebuild a booking from redirect (or checkout metadata) parameters."""

    missing = [name for name in REDIRECT_REQUIRED_PARAMS if not params.get(name)]
    if missing:
        raise MissingRedirectParameterError(missing)
    try:
        lesson_type = LessonType(params["lessonType"])
    except ValueError as exc:
        raise ValidationError("lessonType", f"Invalid lessonType: {params['lessonType']!r}") from exc
    try:
        lesson_date = datetime.fromisoformat(params["lessonDate"].replace("Z", "+00:00"))
    except ValueError as exc:
        raise ValidationError("lessonDate", f"Invalid lessonDate: {params['lessonDate']!r}") from exc
    try:
        amount = Decimal(params["amount"])
    except InvalidOperation as exc:
        raise ValidationError("amount", f"Invalid amount: {params['amount']!r}") from exc
    if amount < 0:
        raise ValidationError("amount", "amount must not be negative")
    return BookingPayload(
        teacher_id=_int_param(params, "teacherId"),
        student_id=student_id,
        lesson_type=lesson_type,
        lesson_date=lesson_date,
        lesson_duration=_int_param(params, "lessonDuration"),
        amount=amount,
        currency=(params.get("currency") or "usd").lower(),
        lesson_focus=params.get("lessonFocus") or None,
        notes=params.get("notes") or None,
        classes_per_month=_int_param(params, "classesPerMonth"),
        subscription_months=_int_param(params, "subscriptionMonths"),
        payment_reference=payment_reference or params.get("session_id") or None,
    )


def reconcile_success_redirect(
    db: Session, student_id: int, params: Mapping[str, str]
) -> BookingResult:
    """Finalize a paid booking from the success redirect.

    Safe to call any number of times for the same redirect. A redirect for
    a payment the provider reported as failed or canceled books nothing.
    """

    order_id = params.get(ORDER_ID_PARAM)
    if order_id:
        payment = (
            db.query(models.Payment)
            .filter_by(order_id=order_id, student_id=student_id)
            .first()
        )
        if payment and payment.status in _UNSETTLED:
            logger.warning(
                "Success redirect for an unsettled payment",
                extra={"order_id": order_id, "payment_status": payment.status.value},
            )
            raise PaymentNotCompletedError()
        if payment and payment.booking_params:
            # the stored checkout parameters win over anything in the URL
            params = {**params, **payment.booking_params}
    payload = payload_from_params(student_id, params)
    return create_booking(db, payload)


def strip_redirect_params(url: str) -> str:
    parts = urlsplit(url)
    kept = [
        (key, value)
        for key, value in parse_qsl(parts.query, keep_blank_values=True)
        if key not in _PROCESSED_PARAMS
    ]
    return urlunsplit(parts._replace(query=urlencode(kept)))


def redirect_params(url: str) -> dict[str, str]:
    return dict(parse_qsl(urlsplit(url).query, keep_blank_values=True))


__all__ = [
    "BookingOutcome",
    "BookingPayload",
    "BookingResult",
    "ORDER_ID_PARAM",
    "as_utc",
    "create_booking",
    "find_booking_by_natural_key",
    "insert_booking",
    "payload_from_params",
    "reconcile_success_redirect",
    "redirect_params",
    "strip_redirect_params",
]
