import httpx
import pytest

from apps.orders.http_adapters import CircuitBreaker, CircuitOpenError, HttpPaymentGatewayClient, _gateway_cb

INTENT_BODY = {"id": "pi_4f0c2a", "status": "succeeded"}


def _resp(status_code, json_data=None):
    return httpx.Response(status_code, json=json_data or {}, request=httpx.Request("GET", "http://x/v1/payment_intents"))


def test_retries_on_5xx_then_succeeds(monkeypatch, settings):
    settings.HTTP_RETRY_MAX = 3
    settings.HTTP_RETRY_BACKOFF_BASE = 0.0

    calls = {"n": 0, "retry_headers": []}

    def fake_get(self, url, headers=None, **kwargs):
        calls["n"] += 1
        calls["retry_headers"].append(headers["X-Retry-Count"])
        if calls["n"] == 1:
            return _resp(503)
        return _resp(200, INTENT_BODY)

    monkeypatch.setattr(httpx.Client, "get", fake_get, raising=True)
    monkeypatch.setattr("time.sleep", lambda *a, **k: None, raising=True)

    intent = HttpPaymentGatewayClient(base_url="http://x").retrieve_intent("pi_4f0c2a")
    assert intent.succeeded
    assert calls["n"] == 2
    assert calls["retry_headers"] == ["0", "1"]


def test_gives_up_after_max_attempts(monkeypatch, settings):
    settings.HTTP_RETRY_MAX = 3

    calls = {"n": 0}

    def fake_get(self, url, headers=None, **kwargs):
        calls["n"] += 1
        return _resp(500)

    monkeypatch.setattr(httpx.Client, "get", fake_get, raising=True)
    with pytest.raises(httpx.HTTPStatusError):
        HttpPaymentGatewayClient(base_url="http://x").retrieve_intent("pi_4f0c2a")
    assert calls["n"] == 3


def test_no_retry_on_business_404(monkeypatch, settings):
    settings.HTTP_RETRY_MAX = 3
    calls = {"n": 0}

    def fake_get(self, url, headers=None, **kwargs):
        calls["n"] += 1
        return _resp(404)

    monkeypatch.setattr(httpx.Client, "get", fake_get, raising=True)
    intent = HttpPaymentGatewayClient(base_url="http://x").retrieve_intent("pi_missing")
    assert intent.status == "not_found"
    assert calls["n"] == 1
    assert _gateway_cb.state == "CLOSED"


def test_circuit_opens_and_short_circuits(monkeypatch, settings):
    settings.HTTP_RETRY_MAX = 1
    calls = {"n": 0}

    def fake_get(self, url, headers=None, **kwargs):
        calls["n"] += 1
        raise httpx.ConnectError("down")

    monkeypatch.setattr(httpx.Client, "get", fake_get, raising=True)
    client = HttpPaymentGatewayClient(base_url="http://x")
    for _ in range(_gateway_cb.fail_threshold):
        with pytest.raises(httpx.ConnectError):
            client.retrieve_intent("pi_4f0c2a")

    assert _gateway_cb.state == "OPEN"
    with pytest.raises(CircuitOpenError):
        client.retrieve_intent("pi_4f0c2a")
    assert calls["n"] == _gateway_cb.fail_threshold


def test_breaker_half_open_probe(monkeypatch):
    now = {"t": 100.0}
    monkeypatch.setattr("time.monotonic", lambda: now["t"])

    cb = CircuitBreaker("test", fail_threshold=2, reset_timeout=10.0)
    cb.on_failure()
    cb.on_failure()
    assert cb.state == "OPEN"

    now["t"] += 10.0
    assert cb.state == "HALF_OPEN"
    assert cb.before_call() == "HALF_OPEN"
    with pytest.raises(CircuitOpenError):
        cb.before_call()

    cb.on_success()
    assert cb.state == "CLOSED"


@pytest.mark.django_db
def test_open_circuit_answers_503_on_checkout(customer_client, customer, address, make_product, fill_cart, settings):
    settings.USE_HTTP_ADAPTERS = True
    for _ in range(_gateway_cb.fail_threshold):
        _gateway_cb.on_failure()

    product = make_product(stock=5)
    fill_cart(customer, (product, 1))
    r = customer_client.post(
        "/api/v1/order/payment-intent/",
        data={"address_id": address.id, "payment_method_id": "pm_card_visa"},
        content_type="application/json",
    )
    assert r.status_code == 503
    assert r.json()["detail"] == "UPSTREAM_UNAVAILABLE"
