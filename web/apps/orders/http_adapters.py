"""HTTP adapter for the payment gateway with retries and a circuit breaker.

This module implements ``PaymentGatewayPort`` over HTTP using ``httpx``
against the paygate service (``services/paygate``) or any gateway exposing
the same ``/v1/payment_intents`` contract. It adds:

- Request correlation: propagates ``X-Request-ID`` from the ContextVar set
    by the gateway middleware.
- A circuit breaker for the gateway to avoid hammering an unhealthy
    dependency, with HALF_OPEN probing after a timeout.
- A retry policy with exponential backoff for transport errors and 5xx.
- Idempotency: ``create_intent`` forwards an ``Idempotency-Key`` header so a
    retried checkout request does not open a second charge.
"""

import os
import sys
import threading
import time
from typing import Callable, Optional

import httpx
from django.conf import settings

from gateway.middleware import REQUEST_ID_CTX

from .domain import InvalidInput, PaymentGatewayPort, PaymentIntent


def _is_test_mode() -> bool:
    return (
        "pytest" in sys.modules
        or os.environ.get("PYTEST_CURRENT_TEST") is not None
        or os.environ.get("PYTEST_RUNNING") == "1"
    )


# ---------------- Circuit Breaker ---------------- #

class CircuitOpenError(RuntimeError):
    """Raised instead of calling the gateway while the circuit is open."""


class CircuitBreaker:
    """Minimal circuit breaker with CLOSED/OPEN/HALF_OPEN states.

    Transitions:
    - CLOSED → OPEN when failures reach ``fail_threshold``.
    - OPEN → HALF_OPEN after ``reset_timeout`` seconds.
    - HALF_OPEN → CLOSED on a successful probe; stays HALF_OPEN while a
      single probe is in flight; transitions back to OPEN on failure.

    This implementation is thread-safe via an internal lock.
    """

    def __init__(self, name: str, fail_threshold: int, reset_timeout: float):
        self.name = name
        self.fail_threshold = fail_threshold
        self.reset_timeout = reset_timeout
        self._lock = threading.RLock()
        self._failures = 0
        self._state = "CLOSED"  # CLOSED | OPEN | HALF_OPEN
        self._opened_at = 0.0
        self._half_open_probe_in_flight = False

    @property
    def state(self) -> str:
        """Current breaker state with time-based transition handling."""
        with self._lock:
            if self._state == "OPEN" and (time.monotonic() - self._opened_at) >= self.reset_timeout:
                self._state = "HALF_OPEN"
                self._half_open_probe_in_flight = False
            return self._state

    def before_call(self) -> str:
        """Check and update state before a protected call.

        Returns:
            str: The state at call time.

        Raises:
            CircuitOpenError: If the circuit is OPEN or a HALF_OPEN probe is
                already in flight.
        """
        with self._lock:
            st = self.state
            if st == "OPEN":
                raise CircuitOpenError("CIRCUIT_OPEN")
            if st == "HALF_OPEN":
                if self._half_open_probe_in_flight:
                    raise CircuitOpenError("CIRCUIT_HALF_OPEN_BUSY")
                self._half_open_probe_in_flight = True
            return st

    def on_success(self):
        """Record a successful call and close/reset the breaker."""
        with self._lock:
            self._failures = 0
            self._state = "CLOSED"
            self._half_open_probe_in_flight = False

    def on_failure(self):
        """Record a failed call and open the breaker if threshold exceeded."""
        with self._lock:
            self._failures += 1
            if self._failures >= self.fail_threshold and self._state != "OPEN":
                self._state = "OPEN"
                self._opened_at = time.monotonic()
                self._half_open_probe_in_flight = False

    def on_finish(self):
        """Release any HALF_OPEN probe flag after a call finishes."""
        with self._lock:
            if self._state == "HALF_OPEN":
                self._half_open_probe_in_flight = False


_gateway_cb = CircuitBreaker(
    "payment-gateway",
    getattr(settings, "HTTP_CIRCUIT_FAIL_THRESHOLD", 5),
    getattr(settings, "HTTP_CIRCUIT_RESET_TIMEOUT", 30.0),
)


def gateway_circuit_state() -> str:
    return _gateway_cb.state


# ---------------- Helpers ---------------- #

def _request_headers(extra: Optional[dict] = None) -> dict:
    """Build base headers including X-Request-ID and any extras."""
    headers: dict[str, str] = {}
    rid = REQUEST_ID_CTX.get()
    if rid and rid != "-":
        headers["X-Request-ID"] = rid
    if extra:
        headers.update(extra)
    return headers


def _retry_policy():
    """Return retry configuration as (max_retries, backoff_base_seconds)."""
    max_retries = getattr(settings, "HTTP_RETRY_MAX", 3)
    backoff = getattr(settings, "HTTP_RETRY_BACKOFF_BASE", 0.15)
    if _is_test_mode():
        backoff = 0.0
    return max(1, max_retries), backoff


def _should_retry(resp: Optional[httpx.Response], exc: Optional[Exception]) -> bool:
    """Retry only on transport exceptions or HTTP 5xx."""
    if exc is not None:
        return True
    if resp is not None and 500 <= resp.status_code < 600:
        return True
    return False


def _to_intent(data: dict) -> PaymentIntent:
    return PaymentIntent(
        id=data["id"],
        status=data.get("status", "unknown"),
        client_secret=data.get("client_secret"),
        amount_cents=data.get("amount_cents"),
        currency=data.get("currency"),
        metadata=data.get("metadata"),
    )


def _idempotency_conflict(resp: httpx.Response):
    raise InvalidInput("Idempotency-Key was already used for a different payment request.")


# ---------------- Payment Gateway Adapter ---------------- #

class HttpPaymentGatewayClient(PaymentGatewayPort):
    """HTTP client for the payment gateway with retry and circuit breaker."""

    def __init__(self, base_url: str | None = None, timeout: float | None = None):
        self.base_url = (base_url or settings.PAYMENT_GATEWAY_BASE_URL).rstrip("/")
        self.timeout = timeout or settings.HTTP_TIMEOUT_SECS

    def _call(self, send: Callable[[httpx.Client, dict], httpx.Response], extra_headers: dict, business: dict):
        """Run ``send`` under the circuit breaker with retries.

        Args:
            send: Performs one HTTP attempt with the given client and headers.
            extra_headers: Headers added to every attempt.
            business: Maps non-2xx status codes that are business outcomes
                (not dependency failures) to a function building the result.

        Returns:
            The parsed ``PaymentIntent`` (or the ``business`` mapping result).

        Raises:
            CircuitOpenError: The circuit is open.
            httpx.RequestError: Transport errors after retries.
            InvalidInput: The gateway answered 4xx (request refused).
            httpx.HTTPStatusError: Exhausted 5xx retries.
        """
        max_retries, backoff = _retry_policy()
        tries = 0

        state = _gateway_cb.before_call()
        headers = _request_headers({**extra_headers, "X-Circuit-State": state, "X-Retry-Count": "0"})

        try:
            with httpx.Client(timeout=self.timeout) as client:
                while True:
                    resp = None
                    exc = None
                    try:
                        resp = send(client, headers)
                        if resp.status_code == 200:
                            _gateway_cb.on_success()
                            return _to_intent(resp.json())
                        if resp.status_code in business:
                            _gateway_cb.on_success()  # business outcome, not a circuit failure
                            return business[resp.status_code](resp)
                        if 400 <= resp.status_code < 500:
                            # the gateway refused this request; it is reachable and healthy
                            _gateway_cb.on_success()
                            raise InvalidInput(f"Payment gateway rejected the request (HTTP {resp.status_code}).")
                        if not _should_retry(resp, None):
                            resp.raise_for_status()
                    except httpx.RequestError as e:
                        exc = e

                    tries += 1
                    headers["X-Retry-Count"] = str(tries)

                    if tries >= max_retries or not _should_retry(resp, exc):
                        _gateway_cb.on_failure()
                        if exc:
                            raise exc
                        resp.raise_for_status()

                    sleep_s = backoff * (2 ** (tries - 1))
                    cap = getattr(settings, "HTTP_RETRY_MAX_SLEEP", 0.5)
                    if sleep_s > 0:
                        time.sleep(min(sleep_s, cap))
        finally:
            _gateway_cb.on_finish()

    def create_intent(
        self,
        amount_cents: int,
        currency: str,
        payment_method_id: str,
        metadata: Optional[dict] = None,
        idempotency_key: Optional[str] = None,
    ) -> PaymentIntent:
        """Create and confirm a payment intent.

        Returns:
            PaymentIntent: The gateway's intent; a declined card comes back
            with status ``requires_payment_method``.
        """
        payload = {
            "amount_cents": amount_cents,
            "currency": currency,
            "payment_method": payment_method_id,
            "metadata": metadata or {},
        }
        extras = {"Idempotency-Key": idempotency_key} if idempotency_key else {}
        return self._call(
            lambda client, headers: client.post(f"{self.base_url}/v1/payment_intents", json=payload, headers=headers),
            extras,
            business={409: _idempotency_conflict},
        )

    def retrieve_intent(self, intent_id: str) -> PaymentIntent:
        """Fetch an intent; an unknown id is reported as status ``not_found``."""
        return self._call(
            lambda client, headers: client.get(f"{self.base_url}/v1/payment_intents/{intent_id}", headers=headers),
            {},
            business={404: lambda resp: PaymentIntent(id=intent_id, status="not_found")},
        )
