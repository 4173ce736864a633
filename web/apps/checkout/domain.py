"""Domain models and ports for checkout.

This module contains the dataclasses used as DTOs by the checkout core
(products, discounts, cart lines, shipping zones, drafts and orders), and
the protocol definitions (ports) for the collaborators the core depends on:
the catalog, the order store, the notifier and the user session.
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import List, Optional, Protocol


# ---- Enums ----
class PaymentMethod(str, Enum):
    """How the customer pays for the order."""

    CASH_ON_DELIVERY = "cash_on_delivery"
    CARD = "card"


class ShippingMethod(str, Enum):
    """Where the order is shipped to."""

    USE_SAVED_ADDRESS = "use_saved_address"
    ENTER_NEW_ADDRESS = "enter_new_address"


class OrderStatus(str, Enum):
    """Statuses an order can hold in the store.

    Checkout only ever creates PENDING orders; the other statuses are set
    later by admin or delivery staff.
    """

    PENDING = "pending"
    CONFIRMED = "confirmed"
    PROCESSING = "processing"
    SHIPPED = "shipped"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class CheckoutState(str, Enum):
    """Progress of a checkout, derived from the draft fields."""

    COLLECTING_PAYMENT = "collecting_payment"
    COLLECTING_SHIPPING = "collecting_shipping"
    COLLECTING_ZONE = "collecting_zone"
    COLLECTING_CONTACT = "collecting_contact"
    READY = "ready"
    SUBMITTED = "submitted"


# ---- Entities / DTOs ----
@dataclass(frozen=True)
class Product:
    """A catalog product, read-only to checkout."""

    id: str
    title: str
    price: float
    category: str = ""
    image: str = ""


@dataclass(frozen=True)
class Discount:
    """A promotional discount on a single product.

    Attributes:
        id: Discount identifier.
        product_id: Identifier of the discounted product, kept as a string
            so numeric and string ids compare equal.
        percentage: Discount percentage. NaN when the stored value could
            not be parsed.
        start: First instant the discount applies (inclusive).
        end: Last instant the discount applies (inclusive).
        created_at: Audit timestamp, unused by pricing.
    """

    id: str
    product_id: str
    percentage: float
    start: datetime
    end: datetime
    created_at: Optional[datetime] = None


@dataclass(frozen=True)
class CartLine:
    """A cart line item.

    ``unit_price`` is the price captured when the item was added to the
    cart and is never re-read from the catalog during checkout.
    """

    product_id: str
    title: str
    unit_price: float
    quantity: int


@dataclass(frozen=True)
class ShippingZone:
    """A delivery region with a flat shipping cost."""

    id: str
    name: str
    cost: float


@dataclass(frozen=True)
class LinePricing:
    """Pricing of one cart line.

    Attributes:
        line: The priced cart line.
        original: ``unit_price * quantity`` without discounts.
        discounted: Line total after the applied discount (equal to
            ``original`` when no discount applies).
        applied_discount: The discount used, or None.
    """

    line: CartLine
    original: float
    discounted: float
    applied_discount: Optional[Discount] = None

    @property
    def unit_discounted(self) -> float:
        return self.discounted / self.line.quantity


@dataclass(frozen=True)
class ContactDetails:
    name: str = ""
    phone: str = ""
    address: str = ""
    notes: str = ""
    email: str = ""


@dataclass(frozen=True)
class UserSession:
    """Identity of the caller.

    ``user_id`` is None for guests. Staff sessions may read every order;
    everyone else only sees their own.
    """

    user_id: Optional[str] = None
    email: str = ""
    is_staff: bool = False


@dataclass(frozen=True)
class CheckoutDraft:
    """Frozen snapshot of a checkout ready to be submitted.

    Totals are computed by the state machine at snapshot time; the draft
    itself never recomputes them.
    """

    payment_method: PaymentMethod
    shipping_method: ShippingMethod
    shipping_zone: ShippingZone
    contact: ContactDetails
    lines: List[LinePricing]
    subtotal: float
    shipping_cost: float
    grand_total: float
    status: OrderStatus = OrderStatus.PENDING


@dataclass
class Order:
    """Container for a submitted order.

    Attributes:
        id: Client-generated identifier (UUID string).
        order_number: Timestamp-derived, human-facing order number.
        user_id: Identifier of the customer, None for guests.
        draft: The checkout draft the order was built from.
        created_at: Submission time.
        currency: ISO currency code (e.g. 'EGP').
    """

    id: str
    order_number: int
    user_id: Optional[str]
    draft: CheckoutDraft
    created_at: datetime
    currency: str = "EGP"
    status: OrderStatus = field(default=OrderStatus.PENDING)

    @property
    def grand_total(self) -> float:
        return self.draft.grand_total


# ---- Ports (DIP) ----
class CatalogPort(Protocol):
    """Port describing the read-only catalog used by checkout.

    Implementations raise ``CatalogLoadError`` when the catalog cannot be
    reached.
    """

    def get_products(self) -> List[Product]:
        raise NotImplementedError()

    def get_product(self, product_id: str) -> Optional[Product]:
        raise NotImplementedError()

    def get_shipping_zones(self) -> List[ShippingZone]:
        """Return the shipping zones in display order."""
        raise NotImplementedError()

    def get_discounts(self) -> List[Discount]:
        """Return every discount record, active or not."""
        raise NotImplementedError()


class OrderStorePort(Protocol):
    """Port describing order persistence.

    ``save`` performs a single write and returns the persisted order id.
    Any exception it raises is treated as a persistence failure.
    """

    def save(self, order: Order) -> str:
        raise NotImplementedError()

    def get(self, order_id: str) -> Optional[Order]:
        raise NotImplementedError()


class NotifierPort(Protocol):
    """Port describing best-effort admin notifications."""

    def notify(self, title: str, body: str) -> None:
        raise NotImplementedError()


class SessionPort(Protocol):
    """Port exposing the current customer, read-only."""

    def current_user(self) -> UserSession:
        raise NotImplementedError()
