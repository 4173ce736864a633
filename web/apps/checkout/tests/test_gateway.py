"""Tests for the order submission gateway.

The admin notification is best-effort: a notifier failure never undoes a
saved order, while any store failure surfaces as ``PersistenceError``.
"""
import threading
from concurrent.futures import ThreadPoolExecutor
from dataclasses import replace
from datetime import datetime, timezone

import pytest

from apps.checkout.adapters import BackgroundNotifier, InMemoryOrderStore, LoggingNotifier
from apps.checkout.domain import (
    CartLine,
    CheckoutDraft,
    ContactDetails,
    LinePricing,
    PaymentMethod,
    ShippingMethod,
    ShippingZone,
)
from apps.checkout.errors import PersistenceError
from apps.checkout.gateway import OrderSubmissionGateway
from apps.checkout.messages import new_order_notification


def make_draft():
    line = CartLine(product_id="1", title="Mug", unit_price=50, quantity=2)
    return CheckoutDraft(
        payment_method=PaymentMethod.CASH_ON_DELIVERY,
        shipping_method=ShippingMethod.USE_SAVED_ADDRESS,
        shipping_zone=ShippingZone(id="z1", name="Cairo", cost=25.0),
        contact=ContactDetails(name="Mona", phone="0100"),
        lines=[LinePricing(line=line, original=100.0, discounted=90.0)],
        subtotal=90.0,
        shipping_cost=25.0,
        grand_total=115.0,
    )


def test_submit_order_saves_and_notifies():
    store, notifier = InMemoryOrderStore(), LoggingNotifier()
    gw = OrderSubmissionGateway(store, notifier)
    oid = gw.submit_order(make_draft(), order_id="o-1", order_number=1700000000000)
    assert oid == "o-1"
    assert store.get("o-1").currency == "EGP"
    assert notifier.sent == [("New Order", "Order #1700000000000 - 115.00 EGP from Mona")]


def test_notifier_failure_is_swallowed():
    class BrokenNotifier:
        def notify(self, title, body):
            raise ConnectionError("push service down")

    store = InMemoryOrderStore()
    gw = OrderSubmissionGateway(store, BrokenNotifier())
    assert gw.submit_order(make_draft(), order_id="o-2", order_number=2) == "o-2"
    assert "o-2" in store.orders


def test_store_failure_becomes_persistence_error():
    class BrokenStore(InMemoryOrderStore):
        def save(self, order):
            raise OSError("db down")

    notifier = LoggingNotifier()
    gw = OrderSubmissionGateway(BrokenStore(), notifier)
    with pytest.raises(PersistenceError) as ei:
        gw.submit_order(make_draft(), order_id="o-3", order_number=3)
    assert isinstance(ei.value.__cause__, OSError)
    assert notifier.sent == []


def test_notification_text_without_customer_name():
    gw = OrderSubmissionGateway(InMemoryOrderStore(), LoggingNotifier(), currency="USD")
    draft = replace(make_draft(), contact=ContactDetails())
    gw.submit_order(draft, order_id="o-4", order_number=4, created_at=datetime(2024, 1, 1, tzinfo=timezone.utc))
    order = gw.store.get("o-4")
    assert new_order_notification(order) == ("New Order", "Order #4 - 115.00 USD")


def test_background_notifier_does_not_wait_for_delivery():
    release = threading.Event()
    delivered = []

    class SlowNotifier:
        def notify(self, title, body):
            release.wait(5)
            delivered.append((title, body))

    executor = ThreadPoolExecutor(max_workers=1)
    try:
        gw = OrderSubmissionGateway(InMemoryOrderStore(), BackgroundNotifier(SlowNotifier(), executor))
        assert gw.submit_order(make_draft(), order_id="o-5", order_number=5) == "o-5"
        assert delivered == []
        release.set()
    finally:
        executor.shutdown(wait=True)
    assert delivered == [("New Order", "Order #5 - 115.00 EGP from Mona")]


def test_background_notifier_failure_is_logged(monkeypatch):
    warnings = []
    monkeypatch.setattr(
        "apps.checkout.adapters.logger.warning", lambda msg, *a, **k: warnings.append((msg, k.get("exc_info")))
    )

    class BrokenNotifier:
        def notify(self, title, body):
            raise ConnectionError("push service down")

    executor = ThreadPoolExecutor(max_workers=1)
    BackgroundNotifier(BrokenNotifier(), executor).notify("New Order", "x")
    executor.shutdown(wait=True)
    [(msg, exc)] = warnings
    assert msg == "Background admin notification failed"
    assert isinstance(exc, ConnectionError)
