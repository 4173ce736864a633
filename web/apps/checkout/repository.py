"""Repository layer for the catalog and for orders.

These classes implement ``CatalogPort`` and ``OrderStorePort`` on top of
the Django ORM, so the checkout core is not coupled to ORM details. The
catalog normalizes rows through the pydantic record schemas before they
reach the core.
"""

import logging
from typing import List, Optional

from django.db import DatabaseError, transaction
from pydantic import ValidationError as PydanticValidationError

from .domain import (
    CheckoutDraft,
    ContactDetails,
    Discount,
    LinePricing,
    CartLine,
    Order,
    OrderStatus,
    PaymentMethod,
    Product,
    ShippingMethod,
    ShippingZone,
)
from .errors import CatalogLoadError
from .models import DiscountModel, OrderLineModel, OrderModel, ProductModel, ShippingZoneModel
from .pricing import to_money
from .schemas import DiscountRecord, ShippingZoneRecord

logger = logging.getLogger(__name__)


class DjangoCatalog:
    """Catalog backed by the products, discounts and shipping_zones tables.

    Database errors, and rows that fail normalization, are reported as
    ``CatalogLoadError`` so callers can show a retryable loading state.
    """

    def get_products(self) -> List[Product]:
        try:
            return [self._product(p) for p in ProductModel.objects.all()]
        except DatabaseError as e:
            logger.exception("Failed to load products")
            raise CatalogLoadError() from e

    def get_product(self, product_id: str) -> Optional[Product]:
        if not str(product_id).isdigit():
            return None
        try:
            row = ProductModel.objects.filter(pk=product_id).first()
        except DatabaseError as e:
            raise CatalogLoadError() from e
        return self._product(row) if row else None

    def get_shipping_zones(self) -> List[ShippingZone]:
        try:
            rows = list(ShippingZoneModel.objects.all())
        except DatabaseError as e:
            logger.exception("Failed to load shipping zones")
            raise CatalogLoadError() from e
        try:
            return [
                ShippingZoneRecord(id=z.id, name=z.name, cost=float(z.cost)).to_domain()
                for z in rows
            ]
        except PydanticValidationError as e:
            logger.exception("Invalid shipping zone row")
            raise CatalogLoadError() from e

    def get_discounts(self) -> List[Discount]:
        try:
            rows = list(DiscountModel.objects.all())
        except DatabaseError as e:
            logger.exception("Failed to load discounts")
            raise CatalogLoadError() from e
        try:
            return [
                DiscountRecord(
                    id=d.id,
                    product_id=d.product_id,
                    discount_percentage=d.discount_percentage,
                    start_date=d.start_date,
                    end_date=d.end_date,
                    created_at=d.created_at,
                ).to_domain()
                for d in rows
            ]
        except PydanticValidationError as e:
            logger.exception("Invalid discount row")
            raise CatalogLoadError() from e

    @staticmethod
    def _product(row: ProductModel) -> Product:
        return Product(
            id=str(row.id),
            title=row.title,
            price=float(row.price),
            category=row.category,
            image=row.image,
        )


class OrderRepository:
    """Repository that persists ``Order`` domain objects using the Django ORM.

    The order row and its lines are written in one transaction. Amounts
    are rounded to cents here, at the storage boundary.
    """

    @transaction.atomic
    def save(self, order: Order) -> str:
        """Persist a new order and its lines.

        Args:
            order: Domain ``Order`` to persist.

        Returns:
            str: The persisted order id (the client-generated UUID).
        """
        draft = order.draft
        obj = OrderModel.objects.create(
            id=order.id,
            order_number=order.order_number,
            status=order.status.value,
            user_id=order.user_id,
            user_email=draft.contact.email,
            payment_method=draft.payment_method.value,
            shipping_method=draft.shipping_method.value,
            shipping_zone_id=draft.shipping_zone.id,
            shipping_zone_name=draft.shipping_zone.name,
            customer_name=draft.contact.name,
            shipping_phone=draft.contact.phone,
            shipping_address=draft.contact.address,
            notes=draft.contact.notes,
            subtotal=to_money(draft.subtotal),
            shipping_cost=to_money(draft.shipping_cost),
            total=to_money(draft.grand_total),
            currency=order.currency,
            created_at=order.created_at,
        )
        OrderLineModel.objects.bulk_create(
            [
                OrderLineModel(
                    order=obj,
                    product_id=p.line.product_id,
                    title=p.line.title,
                    unit_price=to_money(p.line.unit_price),
                    discounted_unit_price=to_money(p.unit_discounted),
                    quantity=p.line.quantity,
                    discount_id=p.applied_discount.id if p.applied_discount else None,
                )
                for p in draft.lines
            ]
        )
        return str(obj.id)

    def get(self, order_id: str) -> Optional[Order]:
        """Load an order with its lines, or None if it does not exist.

        Amounts come back rounded to cents, as stored.
        """
        obj = OrderModel.objects.prefetch_related("lines").filter(id=order_id).first()
        if obj is None:
            return None
        lines = [
            LinePricing(
                line=CartLine(
                    product_id=ln.product_id,
                    title=ln.title,
                    unit_price=float(ln.unit_price),
                    quantity=ln.quantity,
                ),
                original=float(ln.unit_price) * ln.quantity,
                discounted=float(ln.discounted_unit_price) * ln.quantity,
            )
            for ln in obj.lines.all()
        ]
        draft = CheckoutDraft(
            payment_method=PaymentMethod(obj.payment_method),
            shipping_method=ShippingMethod(obj.shipping_method),
            shipping_zone=ShippingZone(
                id=obj.shipping_zone_id, name=obj.shipping_zone_name, cost=float(obj.shipping_cost)
            ),
            contact=ContactDetails(
                name=obj.customer_name,
                phone=obj.shipping_phone,
                address=obj.shipping_address,
                notes=obj.notes,
                email=obj.user_email,
            ),
            lines=lines,
            subtotal=float(obj.subtotal),
            shipping_cost=float(obj.shipping_cost),
            grand_total=float(obj.total),
            status=OrderStatus(obj.status),
        )
        return Order(
            id=str(obj.id),
            order_number=obj.order_number,
            user_id=obj.user_id,
            draft=draft,
            created_at=obj.created_at,
            currency=obj.currency,
            status=OrderStatus(obj.status),
        )
