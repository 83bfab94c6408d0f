from __future__ import annotations

import json
import logging
from decimal import ROUND_HALF_UP, Decimal
from typing import Any

import stripe

from ...config import Settings
from .gateway import BasePaymentGateway, GatewayError

logger = logging.getLogger(__name__)

_EVENT_STATUS = {
    "checkout.session.completed": "paid",
    "checkout.session.async_payment_succeeded": "paid",
    "checkout.session.async_payment_failed": "failed",
    "checkout.session.expired": "canceled",
}


class StripeGateway(BasePaymentGateway):
    def __init__(self, settings: Settings) -> None:
        super().__init__(settings)
        if not settings.stripe_secret_key:
            raise ValueError("STRIPE_SECRET_KEY is not configured")
        stripe.api_key = settings.stripe_secret_key

    def create_session(
        self,
        order_id: str,
        amount: Decimal,
        currency: str,
        description: str,
        success_url: str,
        cancel_url: str,
        metadata: dict[str, str],
    ) -> dict[str, Any]:
        unit_amount = int((amount * 100).to_integral_value(rounding=ROUND_HALF_UP))
        logger.info(
            "Creating Stripe checkout session",
            extra={"order_id": order_id, "amount": str(amount), "currency": currency},
        )
        try:
            session = stripe.checkout.Session.create(
                payment_method_types=["card"],
                mode="payment",
                line_items=[
                    {
                        "price_data": {
                            "currency": currency,
                            "product_data": {"name": description},
                            "unit_amount": unit_amount,
                        },
                        "quantity": 1,
                    }
                ],
                # Stripe fills the placeholder in on redirect
                success_url=f"{success_url}&session_id={{CHECKOUT_SESSION_ID}}",
                cancel_url=cancel_url,
                client_reference_id=order_id,
                metadata={**metadata, "order_id": order_id},
            )
        except stripe.StripeError as exc:
            raise GatewayError(str(exc)) from exc
        if not session.url:
            raise GatewayError("Stripe session has no checkout URL")
        return {"session_id": session.id, "checkout_url": session.url, "status": session.status}

    def parse_webhook(self, payload: bytes, signature: str | None) -> dict[str, Any]:
        secret = self.settings.stripe_webhook_secret
        if not secret:
            raise GatewayError("Stripe webhook secret is not configured")
        body = payload.decode("utf-8") if isinstance(payload, bytes) else payload
        try:
            stripe.WebhookSignature.verify_header(body, signature or "", secret)
            event = json.loads(body)
        except (ValueError, stripe.SignatureVerificationError) as exc:
            raise GatewayError("Webhook signature verification failed") from exc
        session = event["data"]["object"]
        metadata = session.get("metadata") or {}
        logger.info("Parsing Stripe webhook", extra={"event_type": event["type"]})
        return {
            "order_id": session.get("client_reference_id") or metadata.get("order_id"),
            "session_id": session.get("id"),
            "status": _EVENT_STATUS.get(event["type"]),
        }
