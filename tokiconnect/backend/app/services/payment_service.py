from __future__ import annotations

import logging
import uuid
from datetime import datetime, timezone
from typing import Any
from urllib.parse import urlencode

from sqlalchemy.orm import Session

from ..config import Settings, get_settings
from ..core.constants import REDIRECT_CANCEL_FLAG, REDIRECT_SUCCESS_FLAG
from ..core.exceptions import TransportError
from ..db import models
from ..db.models.booking import LessonType
from . import booking_service
from .booking_intent import BookingIntent
from .payments import gateway

logger = logging.getLogger(__name__)

_DESCRIPTIONS = {
    LessonType.free_demo: "Free Demo Class",
    LessonType.trial: "Trial Lesson",
    LessonType.monthly: "Monthly Subscription",
}


def _describe(intent: BookingIntent) -> str:
    label = _DESCRIPTIONS.get(
        intent.lesson_type, f"{intent.lesson_duration}-minute Single Lesson"
    )
    return f"{label} with teacher #{intent.teacher_id}"


def build_success_url(settings: Settings, intent: BookingIntent, order_id: str) -> str:
    query = {REDIRECT_SUCCESS_FLAG: "true", **intent.redirect_params()}
    query[booking_service.ORDER_ID_PARAM] = order_id
    return f"{settings.public_base_url.rstrip('/')}{settings.payment_success_path}?{urlencode(query)}"


def build_cancel_url(settings: Settings) -> str:
    query = urlencode({REDIRECT_CANCEL_FLAG: "true"})
    return f"{settings.public_base_url.rstrip('/')}{settings.payment_cancel_path}?{query}"


def create_checkout_session(
    db: Session,
    intent: BookingIntent,
    settings: Settings | None = None,
) -> tuple[models.Payment, dict[str, Any]]:
    """Record a pending payment and open a hosted checkout for it.

    Raises :class:`TransportError` when the provider refuses or is unreachable.
    """

    settings = settings or get_settings()
    try:
        provider = models.PaymentProvider(settings.payment_provider)
        gateway_client = gateway.get_gateway(settings)
    except (gateway.GatewayError, ValueError) as exc:
        logger.exception(
            "Payment provider is not usable", extra={"provider": settings.payment_provider}
        )
        raise TransportError() from exc
    order_id = str(uuid.uuid4())
    payment = models.Payment(
        student_id=intent.student_id,
        teacher_id=intent.teacher_id,
        lesson_type=intent.lesson_type.value,
        amount=intent.quote.total,
        currency=intent.currency,
        provider=provider,
        order_id=order_id,
        booking_params=intent.redirect_params(),
    )
    db.add(payment)
    db.commit()
    db.refresh(payment)
    try:
        gateway_response = gateway_client.create_session(
            order_id=order_id,
            amount=intent.quote.total,
            currency=intent.currency,
            description=_describe(intent),
            success_url=build_success_url(settings, intent, order_id),
            cancel_url=build_cancel_url(settings),
            metadata={"student_id": str(intent.student_id), **intent.redirect_params()},
        )
    except (gateway.GatewayError, ValueError) as exc:
        logger.exception("Failed to create checkout session", extra={"order_id": order_id})
        payment.status = models.PaymentStatus.failed
        db.commit()
        raise TransportError() from exc
    checkout_url = gateway_response.get("checkout_url")
    if not checkout_url:
        logger.error("Checkout session has no URL", extra={"order_id": order_id})
        payment.status = models.PaymentStatus.failed
        db.commit()
        raise TransportError()
    payment.checkout_url = checkout_url
    payment.provider_session_id = gateway_response.get("session_id")
    db.commit()
    db.refresh(payment)
    logger.info(
        "Checkout session created",
        extra={
            "order_id": order_id,
            "amount": str(payment.amount),
            "provider": settings.payment_provider,
        },
    )
    if settings.payment_provider == "stub":
        payment = apply_payment(db, payment, models.PaymentStatus.paid)
    return payment, gateway_response


def apply_payment(
    db: Session, payment: models.Payment, status: models.PaymentStatus
) -> models.Payment:
    if payment.status == status:
        return payment
    payment.status = status
    payment.updated_at = datetime.now(timezone.utc)
    if status == models.PaymentStatus.paid:
        payment.checkout_url = None
    db.commit()
    db.refresh(payment)
    if status == models.PaymentStatus.paid and payment.booking_params:
        payload = booking_service.payload_from_params(
            payment.student_id,
            payment.booking_params,
            payment_reference=payment.provider_session_id or payment.order_id,
        )
        result = booking_service.create_booking(db, payload)
        logger.info(
            "Payment settled booking",
            extra={"order_id": payment.order_id, "booking_status": result.status.value},
        )
    return payment


__all__ = [
    "apply_payment",
    "build_cancel_url",
    "build_success_url",
    "create_checkout_session",
]
