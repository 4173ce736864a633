"""Checkout state machine.

The machine collects the customer's choices (payment method, shipping
method, shipping zone, contact details) in any order and any number of
times, and gates submission on a single readiness predicate. Totals are
recomputed from the cart lines, the discount snapshot and the selected
zone every time they are read.

The discount and zone lists are snapshots taken when checkout starts; the
machine never re-reads the catalog.
"""

import logging
import threading
import uuid
from datetime import datetime, timezone
from typing import Callable, Iterable, List, Optional, Union

from .domain import (
    CartLine,
    CheckoutDraft,
    CheckoutState,
    ContactDetails,
    Discount,
    LinePricing,
    PaymentMethod,
    ShippingMethod,
    ShippingZone,
    UserSession,
)
from .errors import EmptyCartError, PersistenceError, ValidationError
from .pricing import compute_subtotal, price_lines, subtotal_of

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class CheckoutStateMachine:
    """Drives one checkout session to a submitted order.

    Args:
        lines: Cart lines with their add-to-cart price snapshots.
        zones: Shipping zones available for this session.
        discounts: Discount snapshot for this session.
        gateway: ``OrderSubmissionGateway`` used by ``submit``.
        session: Current customer; provides the user id and the default
            contact email.
        auto_select_zone: When True, choosing ``use_saved_address`` selects
            the first zone if none is selected yet.
        clock: Returns the current time; discounts are evaluated against
            it whenever totals are read.
    """

    def __init__(
        self,
        lines: Iterable[CartLine],
        zones: Iterable[ShippingZone],
        discounts: Iterable[Discount],
        gateway,
        session: Optional[UserSession] = None,
        auto_select_zone: bool = True,
        clock: Callable[[], datetime] = _utcnow,
    ):
        self.lines: List[CartLine] = list(lines)
        self.zones: List[ShippingZone] = list(zones)
        self.discounts: List[Discount] = list(discounts)
        self.gateway = gateway
        self.session = session or UserSession()
        self.auto_select_zone = auto_select_zone
        self._clock = clock

        self.payment_method: Optional[PaymentMethod] = None
        self.shipping_method: Optional[ShippingMethod] = None
        self.shipping_zone: Optional[ShippingZone] = None
        self.contact = ContactDetails(email=self.session.email)

        self._lock = threading.Lock()
        self._submitted_id: Optional[str] = None

    # ---- transitions ----
    def set_payment_method(self, method: Union[PaymentMethod, str]) -> None:
        self.payment_method = PaymentMethod(method)

    def set_shipping_method(self, method: Union[ShippingMethod, str]) -> None:
        """Set the shipping method.

        Choosing the saved address pre-selects the first zone when no zone
        has been chosen yet and auto-select is enabled.
        """
        self.shipping_method = ShippingMethod(method)
        if (
            self.shipping_method is ShippingMethod.USE_SAVED_ADDRESS
            and self.shipping_zone is None
            and self.auto_select_zone
            and self.zones
        ):
            self.shipping_zone = self.zones[0]
            logger.debug("Auto-selected shipping zone %s", self.shipping_zone.id)

    def set_shipping_zone(self, zone: Union[ShippingZone, str]) -> None:
        """Select a zone, replacing any previous choice.

        Args:
            zone: A ``ShippingZone`` or the id of one of the session zones.

        Raises:
            ValidationError: If ``zone`` is an id that matches no zone.
        """
        if isinstance(zone, ShippingZone):
            self.shipping_zone = zone
            return
        for candidate in self.zones:
            if str(candidate.id) == str(zone):
                self.shipping_zone = candidate
                return
        raise ValidationError("shipping_zone")

    def set_contact_details(
        self,
        name: str,
        phone: str,
        address: Optional[str] = None,
        notes: Optional[str] = None,
    ) -> None:
        self.contact = ContactDetails(
            name=(name or "").strip(),
            phone=(phone or "").strip(),
            address=(address or "").strip(),
            notes=(notes or "").strip(),
            email=self.contact.email,
        )

    # ---- totals ----
    def priced_lines(self) -> List[LinePricing]:
        return price_lines(self.lines, self.discounts, self._clock())

    @property
    def subtotal(self) -> float:
        return compute_subtotal(self.lines, self.discounts, self._clock())

    @property
    def shipping_cost(self) -> float:
        return self.shipping_zone.cost if self.shipping_zone else 0.0

    @property
    def grand_total(self) -> float:
        return self.subtotal + self.shipping_cost

    # ---- gating ----
    def missing_field(self) -> Optional[str]:
        """Name of the first required field still missing, or None."""
        if self.payment_method is None:
            return "payment_method"
        if self.shipping_method is None:
            return "shipping_method"
        if self.shipping_zone is None:
            return "shipping_zone"
        if not self.contact.name:
            return "name"
        if not self.contact.phone:
            return "phone"
        if (
            self.shipping_method is ShippingMethod.ENTER_NEW_ADDRESS
            and not self.contact.address
        ):
            return "address"
        return None

    def is_ready(self) -> bool:
        return self.missing_field() is None

    @property
    def state(self) -> CheckoutState:
        if self._submitted_id is not None:
            return CheckoutState.SUBMITTED
        missing = self.missing_field()
        if missing is None:
            return CheckoutState.READY
        return {
            "payment_method": CheckoutState.COLLECTING_PAYMENT,
            "shipping_method": CheckoutState.COLLECTING_SHIPPING,
            "shipping_zone": CheckoutState.COLLECTING_ZONE,
        }.get(missing, CheckoutState.COLLECTING_CONTACT)

    def snapshot(self) -> CheckoutDraft:
        """Freeze the current choices and totals into a ``CheckoutDraft``.

        Raises:
            EmptyCartError: If the cart has no lines.
            ValidationError: With the first missing field.
        """
        if not self.lines:
            raise EmptyCartError()
        missing = self.missing_field()
        if missing is not None:
            raise ValidationError(missing)

        priced = self.priced_lines()
        subtotal = subtotal_of(priced)
        shipping_cost = self.shipping_zone.cost
        return CheckoutDraft(
            payment_method=self.payment_method,
            shipping_method=self.shipping_method,
            shipping_zone=self.shipping_zone,
            contact=self.contact,
            lines=priced,
            subtotal=subtotal,
            shipping_cost=shipping_cost,
            grand_total=subtotal + shipping_cost,
        )

    # ---- submission ----
    def submit(self) -> str:
        """Validate and submit the checkout, returning the order id.

        Readiness is re-checked here even if the caller checked it before.
        A second call, concurrent or later, returns the id of the first
        successful submission instead of creating another order. A failed
        persistence attempt leaves the machine resubmittable.

        Returns:
            str: The persisted order id.

        Raises:
            EmptyCartError: If the cart is empty. Nothing is persisted.
            ValidationError: If a required field is missing.
            PersistenceError: If the order store rejected the write.
        """
        with self._lock:
            if self._submitted_id is not None:
                logger.info("Checkout already submitted as %s, ignoring", self._submitted_id)
                return self._submitted_id

            draft = self.snapshot()
            now = self._clock()
            order_id = str(uuid.uuid4())
            order_number = int(now.timestamp() * 1000)
            try:
                self._submitted_id = self.gateway.submit_order(
                    draft,
                    order_id=order_id,
                    order_number=order_number,
                    user_id=self.session.user_id,
                    created_at=now,
                )
            except PersistenceError:
                logger.warning("Order %s was not persisted; checkout can be retried", order_id)
                raise
            return self._submitted_id
