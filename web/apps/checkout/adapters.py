"""In-process adapters for the checkout ports.

``BackgroundNotifier`` wraps a real notifier and delivers from a worker
thread so the checkout request does not wait on it.

The stubs implement ``CatalogPort``, ``OrderStorePort`` and
``NotifierPort`` without any network or database calls. They are intended
for unit tests and local development where deterministic behavior is
useful and external services are not required.
"""

import logging
from concurrent.futures import Executor, Future
from typing import Dict, List, Optional

from .domain import (
    CatalogPort,
    Discount,
    NotifierPort,
    Order,
    OrderStorePort,
    Product,
    ShippingZone,
)

logger = logging.getLogger(__name__)


class InMemoryCatalog(CatalogPort):
    """Catalog holding fixed lists of products, zones and discounts."""

    def __init__(
        self,
        zones: Optional[List[ShippingZone]] = None,
        discounts: Optional[List[Discount]] = None,
        products: Optional[List[Product]] = None,
    ):
        self.zones = list(zones or [])
        self.discounts = list(discounts or [])
        self.products = list(products or [])

    def get_products(self) -> List[Product]:
        return list(self.products)

    def get_product(self, product_id: str) -> Optional[Product]:
        return next((p for p in self.products if str(p.id) == str(product_id)), None)

    def get_shipping_zones(self) -> List[ShippingZone]:
        return list(self.zones)

    def get_discounts(self) -> List[Discount]:
        return list(self.discounts)


class InMemoryOrderStore(OrderStorePort):
    """Order store keeping orders in a dict keyed by id."""

    def __init__(self):
        self.orders: Dict[str, Order] = {}

    def save(self, order: Order) -> str:
        self.orders[order.id] = order
        return order.id

    def get(self, order_id: str) -> Optional[Order]:
        return self.orders.get(order_id)


class LoggingNotifier(NotifierPort):
    """Notifier that only logs and records what it was asked to send."""

    def __init__(self):
        self.sent: List[tuple[str, str]] = []

    def notify(self, title: str, body: str) -> None:
        self.sent.append((title, body))
        logger.info("Admin notification: %s - %s", title, body)


class BackgroundNotifier(NotifierPort):
    """Hand notifications to an executor so callers never wait on delivery.

    Args:
        notifier: The notifier doing the actual delivery (retries included).
        executor: Bounded executor owned by the composition root.
    """

    def __init__(self, notifier: NotifierPort, executor: Executor):
        self.notifier = notifier
        self.executor = executor

    def notify(self, title: str, body: str) -> None:
        future = self.executor.submit(self.notifier.notify, title, body)
        future.add_done_callback(self._log_failure)

    @staticmethod
    def _log_failure(future: Future) -> None:
        exc = future.exception()
        if exc is not None:
            logger.warning("Background admin notification failed", exc_info=exc)
