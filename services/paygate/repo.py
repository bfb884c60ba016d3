"""SQLAlchemy repository for payment intents.

This module manages persistence for the gateway's payment intents and the
idempotency keys that de-duplicate intent creation. Intents are addressed by
an opaque ``pi_<hex>`` id, the same shape the storefront stores as an
order's ``payment_id``.

The connection URL is read from ``PAYGATE_DATABASE_URL`` and defaults to a
local SQLite file, which is what the test-suite uses; deployments point it
at Postgres (``postgresql+psycopg://...``).
"""

import hashlib
import json
import os
import uuid
from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import JSON, DateTime, Integer, String, create_engine
from sqlalchemy.orm import DeclarativeBase, Session, mapped_column

DATABASE_URL = os.getenv("PAYGATE_DATABASE_URL", "sqlite:///./paygate.db")
_connect_args = {"check_same_thread": False} if DATABASE_URL.startswith("sqlite") else {}
engine = create_engine(DATABASE_URL, pool_pre_ping=True, connect_args=_connect_args)

STATUS_SUCCEEDED = "succeeded"
STATUS_REQUIRES_PAYMENT_METHOD = "requires_payment_method"
DECLINED_METHOD_PREFIX = "pm_card_declined"


class Base(DeclarativeBase):
    pass


class PaymentIntent(Base):
    """SQLAlchemy model representing a payment intent.

    Attributes:
        id: Public opaque id (``pi_<32 hex>``).
        client_secret: Secret the client uses to confirm the intent.
        amount_cents: Amount in minor units.
        currency: Three-letter ISO currency code, upper-case.
        payment_method: Payment method reference supplied at creation.
        status: ``succeeded`` or ``requires_payment_method``.
        meta: Free-form metadata from the merchant (stored as ``metadata``).
        created_at: Creation timestamp (UTC).
    """

    __tablename__ = "payment_intents"

    id = mapped_column(String(64), primary_key=True)
    client_secret = mapped_column(String(128), nullable=False)
    amount_cents = mapped_column(Integer, nullable=False)
    currency = mapped_column(String(3), nullable=False)
    payment_method = mapped_column(String(255), nullable=False)
    status = mapped_column(String(32), nullable=False)
    meta = mapped_column("metadata", JSON, nullable=False, default=dict)
    created_at = mapped_column(DateTime(timezone=True), nullable=False, default=lambda: datetime.now(timezone.utc))

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "client_secret": self.client_secret,
            "amount_cents": self.amount_cents,
            "currency": self.currency,
            "payment_method": self.payment_method,
            "status": self.status,
            "metadata": self.meta or {},
        }


class IdempotencyKey(Base):
    """Persisted idempotency records to deduplicate intent creation.

    Attributes:
        key: Unique idempotency key provided by the client.
        request_hash: Canonical SHA-256 hex digest of the original request.
        intent_id: Id of the intent created for this key. The key and the
            intent are inserted in the same transaction.
    """

    __tablename__ = "idempotency_keys"

    key = mapped_column(String(200), primary_key=True)
    request_hash = mapped_column(String(64), nullable=False)
    intent_id = mapped_column(String(64), nullable=False)


def canonical_hash(payload: dict) -> str:
    """Compute a deterministic SHA-256 hash of a request payload.

    The payload is serialized to JSON with sorted keys and compact
    separators to ensure canonical representation across callers.
    """
    body = json.dumps(payload, sort_keys=True, separators=(",", ":"))
    return hashlib.sha256(body.encode("utf-8")).hexdigest()


def init_db() -> None:
    Base.metadata.create_all(engine)


@contextmanager
def get_session():
    """Yield a SQLAlchemy session bound to the configured engine.

    The session is automatically closed on context exit.
    """
    with Session(engine) as s:
        yield s


def decide_status(payment_method: str, amount_cents: int) -> str:
    """Test-mode charge outcome: declined test methods never succeed."""
    if amount_cents <= 0 or payment_method.startswith(DECLINED_METHOD_PREFIX):
        return STATUS_REQUIRES_PAYMENT_METHOD
    return STATUS_SUCCEEDED


class PaymentsRepo:
    """Repository for creating and reading payment intents."""

    def create_intent(
        self,
        session: Session,
        amount_cents: int,
        currency: str,
        payment_method: str,
        metadata: Optional[dict] = None,
    ) -> PaymentIntent:
        """Create and confirm a payment intent in ``session`` (not committed).

        Args:
            session: Open session participating in the caller's transaction.
            amount_cents: Amount in minor units.
            currency: Three-letter ISO currency code.
            payment_method: Payment method reference.
            metadata: Optional merchant metadata.

        Returns:
            PaymentIntent: The new, flushed intent row.
        """
        intent_id = f"pi_{uuid.uuid4().hex}"
        intent = PaymentIntent(
            id=intent_id,
            client_secret=f"{intent_id}_secret_{uuid.uuid4().hex[:24]}",
            amount_cents=amount_cents,
            currency=currency,
            payment_method=payment_method,
            status=decide_status(payment_method, amount_cents),
            meta=metadata or {},
        )
        session.add(intent)
        session.flush()
        return intent

    def get_intent(self, intent_id: str) -> Optional[dict]:
        with get_session() as s:
            intent = s.get(PaymentIntent, intent_id)
            return intent.to_dict() if intent else None
