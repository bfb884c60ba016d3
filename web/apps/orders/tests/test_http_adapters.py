"""Unit tests for the HTTP payment gateway adapter.

These tests verify that the HTTP client maps gateway responses to payment
intents, forwards idempotency and correlation headers, and propagates
network errors, by monkeypatching ``httpx.Client.post``/``get``.
"""

import httpx
import pytest

from apps.orders.domain import InvalidInput
from apps.orders.http_adapters import HttpPaymentGatewayClient, _gateway_cb

INTENT_BODY = {
    "id": "pi_4f0c2a",
    "client_secret": "pi_4f0c2a_secret_x",
    "status": "succeeded",
    "amount_cents": 7000,
    "currency": "INR",
}


def _resp(status_code, json_data=None, method="GET", url="http://paygate:9002/v1/payment_intents"):
    return httpx.Response(status_code, json=json_data or {}, request=httpx.Request(method, url))


def test_create_intent_ok(monkeypatch):
    seen = {}

    def fake_post(self, url, json=None, headers=None, **kw):
        seen.update(url=url, json=json, headers=headers)
        return _resp(200, INTENT_BODY, "POST", url)

    monkeypatch.setattr(httpx.Client, "post", fake_post, raising=True)
    intent = HttpPaymentGatewayClient(base_url="http://paygate:9002/").create_intent(
        7000, "INR", "pm_card_visa", metadata={"user_id": "1"}, idempotency_key="checkout-1"
    )

    assert intent.id == "pi_4f0c2a"
    assert intent.succeeded
    assert intent.client_secret == "pi_4f0c2a_secret_x"
    assert seen["url"] == "http://paygate:9002/v1/payment_intents"
    assert seen["json"] == {
        "amount_cents": 7000,
        "currency": "INR",
        "payment_method": "pm_card_visa",
        "metadata": {"user_id": "1"},
    }
    assert seen["headers"]["Idempotency-Key"] == "checkout-1"
    assert seen["headers"]["X-Circuit-State"] == "CLOSED"


def test_create_intent_declined(monkeypatch):
    def fake_post(self, url, json=None, headers=None, **kw):
        return _resp(200, {**INTENT_BODY, "status": "requires_payment_method"}, "POST", url)

    monkeypatch.setattr(httpx.Client, "post", fake_post, raising=True)
    intent = HttpPaymentGatewayClient().create_intent(7000, "INR", "pm_card_declined")
    assert intent.status == "requires_payment_method"
    assert not intent.succeeded


def test_create_intent_idempotency_conflict(monkeypatch):
    def fake_post(self, url, json=None, headers=None, **kw):
        return _resp(409, {"detail": "IDEMPOTENCY_CONFLICT"}, "POST", url)

    monkeypatch.setattr(httpx.Client, "post", fake_post, raising=True)
    with pytest.raises(InvalidInput):
        HttpPaymentGatewayClient().create_intent(7000, "INR", "pm_card_visa", idempotency_key="reused")


def test_retrieve_intent_ok(monkeypatch):
    def fake_get(self, url, headers=None, **kw):
        assert url.endswith("/v1/payment_intents/pi_4f0c2a")
        return _resp(200, INTENT_BODY, "GET", url)

    monkeypatch.setattr(httpx.Client, "get", fake_get, raising=True)
    assert HttpPaymentGatewayClient().retrieve_intent("pi_4f0c2a").succeeded


def test_retrieve_unknown_intent_is_not_successful(monkeypatch):
    def fake_get(self, url, headers=None, **kw):
        return _resp(404, {"detail": "INTENT_NOT_FOUND"}, "GET", url)

    monkeypatch.setattr(httpx.Client, "get", fake_get, raising=True)
    intent = HttpPaymentGatewayClient().retrieve_intent("pi_missing")
    assert intent.status == "not_found"
    assert not intent.succeeded


def test_client_error_is_invalid_input_without_retry(monkeypatch, settings):
    settings.HTTP_RETRY_MAX = 3
    calls = {"n": 0}

    def fake_post(self, url, json=None, headers=None, **kw):
        calls["n"] += 1
        return _resp(422, {"detail": []}, "POST", url)

    monkeypatch.setattr(httpx.Client, "post", fake_post, raising=True)
    with pytest.raises(InvalidInput):
        HttpPaymentGatewayClient().create_intent(7000, "INR", "pm_card_visa")
    assert calls["n"] == 1
    assert _gateway_cb.state == "CLOSED"


def test_intent_metadata_is_mapped(monkeypatch):
    def fake_get(self, url, headers=None, **kw):
        return _resp(200, {**INTENT_BODY, "metadata": {"user_id": "7"}}, "GET", url)

    monkeypatch.setattr(httpx.Client, "get", fake_get, raising=True)
    intent = HttpPaymentGatewayClient().retrieve_intent("pi_4f0c2a")
    assert intent.metadata == {"user_id": "7"}
    assert intent.amount_cents == 7000
    assert intent.currency == "INR"


def test_network_error_propagates(monkeypatch, settings):
    settings.HTTP_RETRY_MAX = 1

    def fake_get(self, url, headers=None, **kw):
        raise httpx.ConnectError("boom")

    monkeypatch.setattr(httpx.Client, "get", fake_get, raising=True)
    with pytest.raises(httpx.ConnectError):
        HttpPaymentGatewayClient().retrieve_intent("pi_4f0c2a")


def test_request_id_is_forwarded(monkeypatch):
    from gateway.middleware import REQUEST_ID_CTX

    seen = {}

    def fake_get(self, url, headers=None, **kw):
        seen.update(headers)
        return _resp(200, INTENT_BODY, "GET", url)

    monkeypatch.setattr(httpx.Client, "get", fake_get, raising=True)
    token = REQUEST_ID_CTX.set("req-42")
    try:
        HttpPaymentGatewayClient().retrieve_intent("pi_4f0c2a")
    finally:
        REQUEST_ID_CTX.reset(token)
    assert seen["X-Request-ID"] == "req-42"
