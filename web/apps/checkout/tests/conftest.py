from datetime import timedelta

import pytest
from django.utils import timezone

from apps.checkout.models import DiscountModel, ProductModel, ShippingZoneModel


@pytest.fixture
def catalog(db):
    """Two products, two zones and a 10% discount on the mug active now."""
    now = timezone.now()
    mug = ProductModel.objects.create(title="Mug", price="50.00", category="kitchen")
    cap = ProductModel.objects.create(title="Cap", price="30.00", category="clothes")
    zone = ShippingZoneModel.objects.create(name="Cairo", cost="25.00", position=0)
    ShippingZoneModel.objects.create(name="Giza", cost="40.00", position=1)
    DiscountModel.objects.create(
        product_id=str(mug.id),
        discount_percentage="10",
        start_date=now - timedelta(days=1),
        end_date=now + timedelta(days=1),
    )
    return {"mug": mug, "cap": cap, "zone": zone}


@pytest.fixture
def checkout_payload(catalog):
    def make(**overrides):
        payload = {
            "items": [
                {"product_id": catalog["mug"].id, "title": "Mug", "price": 50, "quantity": 2},
                {"product_id": catalog["cap"].id, "title": "Cap", "price": 30, "quantity": 1},
            ],
            "payment_method": "cash_on_delivery",
            "shipping_method": "use_saved_address",
            "shipping_zone_id": catalog["zone"].id,
            "contact": {"name": "Mona", "phone": "+20 100 000 0000"},
        }
        payload.update(overrides)
        return payload

    return make
