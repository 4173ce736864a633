"""Order submission gateway.

Turns a frozen ``CheckoutDraft`` into an ``Order``, persists it through the
order store port and then notifies admins. The notification is best-effort:
once the order is saved, a failing notifier is logged and ignored, and the
order is never rolled back.
"""

import logging
from datetime import datetime, timezone
from typing import Optional

from .domain import CheckoutDraft, NotifierPort, Order, OrderStorePort
from .errors import PersistenceError
from .messages import new_order_notification

logger = logging.getLogger(__name__)


class OrderSubmissionGateway:
    """Persist orders and notify admins.

    Args:
        store: ``OrderStorePort`` used for the single order write.
        notifier: ``NotifierPort`` used for the admin notification.
        currency: Currency code stored on orders and shown in messages.
    """

    def __init__(self, store: OrderStorePort, notifier: NotifierPort, currency: str = "EGP"):
        self.store = store
        self.notifier = notifier
        self.currency = currency

    def submit_order(
        self,
        draft: CheckoutDraft,
        order_id: str,
        order_number: int,
        user_id: Optional[str] = None,
        created_at: Optional[datetime] = None,
    ) -> str:
        """Persist the order built from ``draft`` and notify admins.

        Persistence is attempted once; there is no retry.

        Args:
            draft: Frozen checkout draft.
            order_id: Client-generated order id.
            order_number: Human-facing order number.
            user_id: Customer id, None for guests.
            created_at: Submission time, defaults to now.

        Returns:
            str: The id returned by the order store.

        Raises:
            PersistenceError: If the store raised while saving.
        """
        order = Order(
            id=order_id,
            order_number=order_number,
            user_id=user_id,
            draft=draft,
            created_at=created_at or datetime.now(timezone.utc),
            currency=self.currency,
        )
        try:
            saved_id = self.store.save(order)
        except PersistenceError:
            raise
        except Exception as e:
            logger.exception("Failed to persist order %s", order_id)
            raise PersistenceError() from e

        logger.info(
            "Order persisted",
            extra={"order_id": saved_id, "order_number": order_number, "grand_total": draft.grand_total},
        )
        self._notify(order)
        return saved_id

    def _notify(self, order: Order) -> None:
        title, body = new_order_notification(order)
        try:
            self.notifier.notify(title, body)
        except Exception:
            logger.warning("Admin notification failed for order %s", order.id, exc_info=True)
