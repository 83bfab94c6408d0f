from .gateway import BasePaymentGateway, GatewayError, get_gateway
from .stub import StubGateway

__all__ = [
    "BasePaymentGateway",
    "GatewayError",
    "get_gateway",
    "StubGateway",
]
