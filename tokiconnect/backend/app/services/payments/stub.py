from __future__ import annotations

import json
from decimal import Decimal
from typing import Any

from .gateway import BasePaymentGateway, GatewayError


class StubGateway(BasePaymentGateway):
    """Local gateway that pretends every checkout succeeds immediately.

    The checkout URL is the success URL itself, so the browser lands straight
    back on the success redirect.
    """

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
        return {
            "session_id": f"stub_{order_id}",
            "checkout_url": success_url,
            "order_id": order_id,
            "amount": str(amount),
            "currency": currency,
            "status": "succeeded",
            "description": description,
            "metadata": metadata,
        }

    def parse_webhook(self, payload: bytes, signature: str | None) -> dict[str, Any]:
        try:
            data = json.loads(payload or b"{}")
        except ValueError as exc:
            raise GatewayError("Invalid webhook payload") from exc
        return {
            "order_id": data.get("order_id"),
            "session_id": data.get("session_id"),
            "status": data.get("status", "succeeded"),
        }
