"""Service provider helpers for wiring OrderService with its ports.

``get_order_service`` returns an ``OrderService`` wired with the Django
``OrderRepository`` and a payment gateway adapter: the ``httpx`` client when
``settings.USE_HTTP_ADAPTERS`` is truthy, the in-process stub otherwise
(tests and local development). Views resolve the service through this module
at call time so tests can patch it.
"""

from django.conf import settings

from .adapters import PaymentGatewayStub
from .domain import OrderService, PaymentGatewayPort
from .http_adapters import HttpPaymentGatewayClient
from .repository import OrderRepository


def get_payment_gateway() -> PaymentGatewayPort:
    if getattr(settings, "USE_HTTP_ADAPTERS", True):
        return HttpPaymentGatewayClient()
    return PaymentGatewayStub()


def get_order_service() -> OrderService:
    """Return a configured OrderService instance."""
    return OrderService(
        gateway=get_payment_gateway(),
        store=OrderRepository(),
        currency=getattr(settings, "STORE_CURRENCY", "INR"),
    )
