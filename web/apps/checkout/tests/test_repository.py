"""Round-trip tests for the ORM-backed catalog and order store."""
import math
from datetime import datetime, timedelta, timezone

import pytest

from apps.checkout.adapters import LoggingNotifier
from apps.checkout.domain import CartLine, PaymentMethod, ShippingMethod
from apps.checkout.errors import CatalogLoadError
from apps.checkout.gateway import OrderSubmissionGateway
from apps.checkout.machine import CheckoutStateMachine
from apps.checkout.models import DiscountModel, ShippingZoneModel
from apps.checkout.pricing import to_money
from apps.checkout.repository import DjangoCatalog, OrderRepository


@pytest.mark.django_db
def test_catalog_normalizes_discount_rows(catalog):
    DiscountModel.objects.create(
        product_id=str(catalog["cap"].id),
        discount_percentage=" 12.5 ",
        start_date=datetime(2024, 1, 1, tzinfo=timezone.utc),
        end_date=datetime(2024, 1, 31, tzinfo=timezone.utc),
    )
    DiscountModel.objects.create(
        product_id="98",
        discount_percentage="1e400",
        start_date=datetime(2024, 1, 1, tzinfo=timezone.utc),
        end_date=datetime(2024, 1, 31, tzinfo=timezone.utc),
    )
    DiscountModel.objects.create(
        product_id="99",
        discount_percentage="n/a",
        start_date=datetime(2024, 1, 1, tzinfo=timezone.utc),
        end_date=datetime(2024, 1, 31, tzinfo=timezone.utc),
    )
    discounts = DjangoCatalog().get_discounts()
    assert [d.percentage for d in discounts[:2]] == [10.0, 12.5]
    assert math.isnan(discounts[2].percentage)
    assert math.isnan(discounts[3].percentage)
    assert all(isinstance(d.product_id, str) for d in discounts)


@pytest.mark.django_db
def test_catalog_rejects_negative_zone_cost(catalog):
    ShippingZoneModel.objects.create(name="Bad", cost="-5.00", position=2)
    with pytest.raises(CatalogLoadError):
        DjangoCatalog().get_shipping_zones()


@pytest.mark.django_db
def test_catalog_get_product(catalog):
    c = DjangoCatalog()
    assert c.get_product(str(catalog["mug"].id)).price == 50.0
    assert c.get_product("not-a-number") is None
    assert c.get_product("999999") is None


@pytest.mark.django_db
def test_submit_then_read_back_keeps_totals(catalog):
    c = DjangoCatalog()
    store = OrderRepository()
    now = datetime.now(timezone.utc)
    lines = [
        CartLine(product_id=str(catalog["mug"].id), title="Mug", unit_price=50, quantity=2),
        CartLine(product_id=str(catalog["cap"].id), title="Cap", unit_price=30, quantity=1),
    ]
    m = CheckoutStateMachine(
        lines,
        c.get_shipping_zones(),
        c.get_discounts(),
        OrderSubmissionGateway(store, LoggingNotifier()),
        clock=lambda: now,
    )
    m.set_payment_method(PaymentMethod.CARD)
    m.set_shipping_method(ShippingMethod.ENTER_NEW_ADDRESS)
    m.set_shipping_zone(str(catalog["zone"].id))
    m.set_contact_details(name="Mona", phone="0100", address="12 Nile St", notes="ring twice")

    order = store.get(m.submit())
    assert order.draft.subtotal == float(to_money(m.subtotal)) == 120.0
    assert order.draft.shipping_cost == 25.0
    assert order.grand_total == 145.0
    assert order.draft.contact.address == "12 Nile St"
    assert order.draft.payment_method is PaymentMethod.CARD
    assert [ln.unit_discounted for ln in order.draft.lines] == [45.0, 30.0]
    assert abs(order.created_at - now) < timedelta(seconds=1)


@pytest.mark.django_db
def test_get_missing_order_returns_none():
    assert OrderRepository().get("00000000-0000-0000-0000-000000000000") is None
