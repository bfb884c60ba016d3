"""In-process stub adapter for the payment gateway port.

``PaymentGatewayStub`` implements ``PaymentGatewayPort`` without any network
calls. It is intended for unit tests and local development where
deterministic behavior is useful and the gateway service is not running.
"""

import uuid
from typing import Optional

from .domain import INTENT_SUCCEEDED, PaymentGatewayPort, PaymentIntent

DECLINED_METHOD_PREFIX = "pm_card_declined"
DECLINED_INTENT_PREFIX = "pi_declined_"
REQUIRES_PAYMENT_METHOD = "requires_payment_method"


class PaymentGatewayStub(PaymentGatewayPort):
    """Stateless stub implementation of ``PaymentGatewayPort``.

    Intents are approved when the amount is positive and the payment method
    is not a declined test method (``pm_card_declined...``). The outcome is
    encoded in the intent id, so ``retrieve_intent`` needs no storage:
    ids starting with ``pi_declined_`` report ``requires_payment_method``,
    every other id reports ``succeeded``.
    """

    def create_intent(
        self,
        amount_cents: int,
        currency: str,
        payment_method_id: str,
        metadata: Optional[dict] = None,
        idempotency_key: Optional[str] = None,
    ) -> PaymentIntent:
        """Create a mock payment intent.

        Args:
            amount_cents: Amount to charge in minor units.
            currency: Three-letter ISO currency code.
            payment_method_id: Gateway payment method reference.
            metadata: Echoed back on the returned intent.
            idempotency_key: Ignored.

        Returns:
            PaymentIntent: ``succeeded`` for approvable charges, otherwise
            ``requires_payment_method``.
        """
        declined = amount_cents <= 0 or payment_method_id.startswith(DECLINED_METHOD_PREFIX)
        token = uuid.uuid4().hex
        intent_id = f"{DECLINED_INTENT_PREFIX}{token}" if declined else f"pi_{token}"
        return PaymentIntent(
            id=intent_id,
            status=REQUIRES_PAYMENT_METHOD if declined else INTENT_SUCCEEDED,
            client_secret=f"{intent_id}_secret_{uuid.uuid4().hex[:16]}",
            amount_cents=amount_cents,
            currency=currency,
            metadata=metadata or {},
        )

    def retrieve_intent(self, intent_id: str) -> PaymentIntent:
        if intent_id.startswith(DECLINED_INTENT_PREFIX):
            return PaymentIntent(id=intent_id, status=REQUIRES_PAYMENT_METHOD)
        return PaymentIntent(id=intent_id, status=INTENT_SUCCEEDED)
