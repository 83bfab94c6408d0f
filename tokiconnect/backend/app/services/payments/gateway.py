from abc import ABC, abstractmethod
from decimal import Decimal
from typing import Any
from ...config import Settings


class GatewayError(Exception):
    pass


class BasePaymentGateway(ABC):
    def __init__(self, settings: Settings) -> None:
        self.settings = settings

    @abstractmethod
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
        """Open a hosted checkout session.

        Returns a mapping with at least ``session_id`` and ``checkout_url``.
        """
        raise NotImplementedError

    @abstractmethod
    def parse_webhook(self, payload: bytes, signature: str | None) -> dict[str, Any]:
        """Return ``order_id``, ``session_id`` and ``status`` from a webhook."""
        raise NotImplementedError


def get_gateway(settings: Settings) -> BasePaymentGateway:
    if settings.payment_provider == "stub":
        from .stub import StubGateway

        return StubGateway(settings)
    if settings.payment_provider == "stripe":
        from .stripe_checkout import StripeGateway

        return StripeGateway(settings)
    raise ValueError(f"Unsupported payment provider {settings.payment_provider}")
