import threading

import httpx
import pytest

from apps.checkout import providers
from apps.checkout.http_adapters import CircuitBreaker, CircuitOpenError, HttpNotifier


class R:
    def __init__(self, status_code, body=None):
        self.status_code = status_code
        self._body = body or {}
        self.text = ""

    def json(self):
        return self._body

    def raise_for_status(self):
        if self.status_code >= 400:
            raise httpx.HTTPStatusError("err", request=None, response=None)


@pytest.fixture(autouse=True)
def no_sleep(monkeypatch):
    monkeypatch.setattr("time.sleep", lambda *a, **k: None, raising=True)


def test_notifier_retries_on_5xx(monkeypatch, settings):
    settings.HTTP_RETRY_MAX = 1
    calls = {"n": 0, "retry": []}

    def fake_post(self, url, json=None, headers=None, **kwargs):
        calls["n"] += 1
        calls["retry"].append(headers["X-Retry-Count"])
        return R(500) if calls["n"] == 1 else R(200, {"sent": 1})

    monkeypatch.setattr(httpx.Client, "post", fake_post, raising=True)
    HttpNotifier(base_url="http://x", breaker=CircuitBreaker("t", 5, 30.0)).notify("t", "b")
    assert calls["n"] == 2
    assert calls["retry"] == ["0", "1"]


def test_notifier_gives_up_after_max_retries(monkeypatch, settings):
    settings.HTTP_RETRY_MAX = 2
    calls = {"n": 0}

    def fake_post(self, url, json=None, headers=None, **kwargs):
        calls["n"] += 1
        return R(503)

    monkeypatch.setattr(httpx.Client, "post", fake_post, raising=True)
    with pytest.raises(httpx.HTTPStatusError):
        HttpNotifier(base_url="http://x", breaker=CircuitBreaker("t", 5, 30.0)).notify("t", "b")
    assert calls["n"] == 3


def test_notifier_no_retry_on_4xx(monkeypatch, settings):
    settings.HTTP_RETRY_MAX = 3
    calls = {"n": 0}

    def fake_post(self, url, json=None, headers=None, **kwargs):
        calls["n"] += 1
        return R(409)

    monkeypatch.setattr(httpx.Client, "post", fake_post, raising=True)
    breaker = CircuitBreaker("t", 1, 30.0)
    with pytest.raises(httpx.HTTPStatusError):
        HttpNotifier(base_url="http://x", breaker=breaker).notify("t", "b")
    assert calls["n"] == 1
    assert breaker.state == "CLOSED"


def test_circuit_opens_and_short_circuits(monkeypatch, settings):
    settings.HTTP_RETRY_MAX = 0
    calls = {"n": 0}

    def fake_post(self, url, json=None, headers=None, **kwargs):
        calls["n"] += 1
        raise httpx.ConnectError("down")

    monkeypatch.setattr(httpx.Client, "post", fake_post, raising=True)
    notifier = HttpNotifier(base_url="http://x", breaker=CircuitBreaker("t", 2, 30.0))
    for _ in range(2):
        with pytest.raises(httpx.ConnectError):
            notifier.notify("t", "b")
    assert notifier.breaker.state == "OPEN"

    with pytest.raises(CircuitOpenError):
        notifier.notify("t", "b")
    assert calls["n"] == 2


def test_half_open_success_closes_circuit(monkeypatch):
    clock = {"t": 100.0}
    monkeypatch.setattr("time.monotonic", lambda: clock["t"], raising=True)
    breaker = CircuitBreaker("t", 1, 10.0)
    breaker.on_failure()
    assert breaker.state == "OPEN"

    clock["t"] += 10.0
    assert breaker.before_call() == "HALF_OPEN"
    with pytest.raises(CircuitOpenError):
        breaker.before_call()
    breaker.on_success()
    assert breaker.state == "CLOSED"


def test_half_open_failure_reopens(monkeypatch):
    clock = {"t": 0.0}
    monkeypatch.setattr("time.monotonic", lambda: clock["t"], raising=True)
    breaker = CircuitBreaker("t", 3, 5.0)
    for _ in range(3):
        breaker.on_failure()
    clock["t"] = 5.0
    assert breaker.before_call() == "HALF_OPEN"
    breaker.on_failure()
    assert breaker.state == "OPEN"


@pytest.mark.django_db
def test_checkout_succeeds_when_notifications_are_down(client, catalog, checkout_payload, monkeypatch, settings):
    settings.USE_HTTP_ADAPTERS = True
    settings.HTTP_RETRY_MAX = 1

    def fake_post(self, url, json=None, headers=None, **kwargs):
        raise httpx.ConnectError("notifications down")

    monkeypatch.setattr(httpx.Client, "post", fake_post, raising=True)
    r = client.post("/api/checkout/orders/", data=checkout_payload(), content_type="application/json")
    assert r.status_code == 201
    assert r.json()["total"] == "145.00"
    providers.shutdown_notify_executor()


@pytest.mark.django_db
def test_checkout_does_not_wait_for_admin_notification(client, catalog, checkout_payload, monkeypatch, settings):
    settings.USE_HTTP_ADAPTERS = True
    release = threading.Event()
    calls = []

    def slow_post(self, url, json=None, headers=None, **kwargs):
        calls.append((url, release.wait(5)))
        return R(200, {"success": True, "sent": 1})

    monkeypatch.setattr(httpx.Client, "post", slow_post, raising=True)
    r = client.post("/api/checkout/orders/", data=checkout_payload(), content_type="application/json")
    assert r.status_code == 201

    release.set()
    providers.shutdown_notify_executor()
    [(url, released_first)] = calls
    assert url.endswith("/send-to-admins")
    assert released_first is True
