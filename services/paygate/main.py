"""Payment gateway service API built with FastAPI.

This module exposes endpoints to check service health, create (and confirm)
payment intents and read them back. Validation is performed with Pydantic
models, while persistence is delegated to the SQLAlchemy-backed repository
in ``repo``.

Run with ``uvicorn paygate.main:app`` (see ``uvicorn.conf.py``).
"""

import logging
import time
import uuid
from typing import Annotated, Optional

from fastapi import FastAPI, Header, HTTPException, Request
from pydantic import BaseModel, Field, constr
from pythonjsonlogger import jsonlogger
from sqlalchemy import text
from sqlalchemy.exc import IntegrityError

from .repo import IdempotencyKey, PaymentIntent, PaymentsRepo, canonical_hash, engine, get_session, init_db

app = FastAPI(title="Payment Gateway Service")

Currency = constr(pattern=r"^[A-Z]{3}$")
PaymentMethod = constr(pattern=r"^[A-Za-z0-9_]{3,255}$")

logger = logging.getLogger("paygate")
if not logger.handlers:
    h = logging.StreamHandler()
    h.setFormatter(jsonlogger.JsonFormatter("%(asctime)s %(levelname)s %(name)s %(message)s %(request_id)s"))
    logger.addHandler(h)
    logger.setLevel(logging.INFO)


@app.on_event("startup")
def _startup_db():
    # brief active wait until the database accepts connections
    deadline = time.time() + 30
    while True:
        try:
            with engine.connect() as conn:
                conn.execute(text("select 1"))
            break
        except Exception:
            if time.time() > deadline:
                raise
            time.sleep(1)
    init_db()


class CreateIntentRequest(BaseModel):
    """Request body for creating a payment intent.

    Attributes:
        amount_cents: Positive amount in minor currency units.
        currency: Three-letter ISO currency code (e.g., INR, EUR).
        payment_method: Payment method reference (e.g., ``pm_card_visa``).
        metadata: Optional merchant metadata echoed back on reads.
    """

    amount_cents: int = Field(gt=0)
    currency: Currency
    payment_method: PaymentMethod
    metadata: dict[str, str] = {}


class IntentResponse(BaseModel):
    id: str
    client_secret: str
    amount_cents: int
    currency: str
    payment_method: str
    status: str
    metadata: dict[str, str] = {}


@app.get("/health")
def health():
    """Liveness/health probe endpoint."""
    return {"ok": True}


@app.post("/v1/payment_intents", response_model=IntentResponse)
def create_payment_intent(
    req: CreateIntentRequest,
    idempotency_key: Annotated[Optional[str], Header(alias="Idempotency-Key")] = None,
):
    """Create and confirm a payment intent with optional idempotency.

    When an ``Idempotency-Key`` header is provided, duplicate requests with
    the same payload are processed at most once: the first request creates
    the intent and binds it to the key in the same transaction; retries
    (and overlapping requests) with the same key and identical payload
    return that one intent. Reusing the key with a different payload
    responds with HTTP 409.

    Raises:
        HTTPException: 409 on an idempotency conflict; 500 when the key
            record cannot be read back.
    """
    repo = PaymentsRepo()

    if not idempotency_key:
        with get_session() as s:
            intent = repo.create_intent(s, req.amount_cents, req.currency, req.payment_method, req.metadata)
            s.commit()
            body = intent.to_dict()
        logger.info("intent created", extra={"intent_id": body["id"], "intent_status": body["status"]})
        return body

    payload_hash = canonical_hash(req.model_dump())
    with get_session() as s:
        # key and intent commit together: a concurrent request with the same
        # key loses on the primary key and creates nothing
        try:
            intent = repo.create_intent(s, req.amount_cents, req.currency, req.payment_method, req.metadata)
            s.add(IdempotencyKey(key=idempotency_key, request_hash=payload_hash, intent_id=intent.id))
            s.commit()
            body = intent.to_dict()
        except IntegrityError:
            s.rollback()
            rec = s.get(IdempotencyKey, idempotency_key)
            if not rec:
                raise HTTPException(status_code=500, detail="IDEMPOTENCY_LOOKUP_ERROR")
            if rec.request_hash != payload_hash:
                raise HTTPException(status_code=409, detail="IDEMPOTENCY_CONFLICT")
            existing = s.get(PaymentIntent, rec.intent_id)
            if existing is None:
                raise HTTPException(status_code=500, detail="IDEMPOTENCY_LOOKUP_ERROR")
            logger.info("intent replayed", extra={"intent_id": existing.id})
            return existing.to_dict()

    logger.info("intent created", extra={"intent_id": body["id"], "intent_status": body["status"]})
    return body


@app.get("/v1/payment_intents/{intent_id}", response_model=IntentResponse)
def retrieve_payment_intent(intent_id: str):
    intent = PaymentsRepo().get_intent(intent_id)
    if intent is None:
        raise HTTPException(status_code=404, detail="INTENT_NOT_FOUND")
    return intent


@app.middleware("http")
async def add_request_id(request: Request, call_next):
    rid = request.headers.get("X-Request-ID") or str(uuid.uuid4())
    request.state.request_id = rid
    try:
        response = await call_next(request)
    finally:
        logger.info("request handled", extra={"request_id": rid, "path": request.url.path, "method": request.method})
    response.headers["X-Request-ID"] = rid
    return response
