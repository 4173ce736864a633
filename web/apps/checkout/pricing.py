"""Discount evaluation and cart pricing.

All functions here are pure: the reference time is always passed in
explicitly and nothing is read from the catalog. Arithmetic is done in
floats; values are rounded with ``to_money`` only when they are displayed
or serialized.

When several active discounts target the same product, the first one in
iteration order wins. This is a first-match rule, not a best-discount
selection.
"""

import logging
import math
from datetime import datetime
from decimal import Decimal, ROUND_HALF_UP
from typing import Iterable, List, Optional

from .domain import CartLine, Discount, LinePricing

logger = logging.getLogger(__name__)

CENTS = Decimal("0.01")


def coerce_percentage(value) -> float:
    """Normalize a percentage given as a string or a number.

    Values outside [0, 100] are returned as-is. Unparsable or non-finite
    values (``"inf"``, ``"1e400"``) become NaN instead of raising.

    Args:
        value: Raw percentage, e.g. ``20``, ``"12.5"`` or ``" 10 "``.

    Returns:
        float: The percentage, or ``math.nan``.
    """
    if isinstance(value, bool) or value is None:
        return math.nan
    try:
        pct = float(str(value).strip())
    except ValueError:
        return math.nan
    return pct if math.isfinite(pct) else math.nan


def is_active(discount: Discount, as_of: datetime) -> bool:
    """Return True when ``as_of`` falls inside the discount window.

    Both ends of the window are inclusive.
    """
    return discount.start <= as_of <= discount.end


def find_active_discount(
    product_id, discounts: Iterable[Discount], as_of: datetime
) -> Optional[Discount]:
    """Return the first active discount for a product.

    Product ids are compared by their string form so ``42`` and ``"42"``
    match.

    Args:
        product_id: Product identifier (string or number).
        discounts: Discount records, in catalog order.
        as_of: Reference time.

    Returns:
        The first matching active discount, or None.
    """
    key = str(product_id)
    for discount in discounts:
        if str(discount.product_id) == key and is_active(discount, as_of):
            return discount
    return None


def discounted_price(original_price: float, percentage) -> float:
    """Price after applying ``percentage``. NaN when the percentage is NaN."""
    return original_price * (1 - coerce_percentage(percentage) / 100)


def discount_amount(original_price: float, percentage) -> float:
    """Amount taken off ``original_price`` by ``percentage``."""
    return original_price * (coerce_percentage(percentage) / 100)


def compute_line_total(
    line: CartLine, discounts: Iterable[Discount], as_of: datetime
) -> LinePricing:
    """Price one cart line, applying its active discount if any.

    A discount whose percentage is NaN is treated as no discount.
    """
    original = line.unit_price * line.quantity
    discount = find_active_discount(line.product_id, discounts, as_of)
    if discount is None:
        return LinePricing(line=line, original=original, discounted=original)

    unit = discounted_price(line.unit_price, discount.percentage)
    if math.isnan(unit):
        logger.warning(
            "Ignoring discount %s for product %s: unparsable percentage",
            discount.id,
            line.product_id,
        )
        return LinePricing(line=line, original=original, discounted=original)

    return LinePricing(
        line=line,
        original=original,
        discounted=unit * line.quantity,
        applied_discount=discount,
    )


def price_lines(
    lines: Iterable[CartLine], discounts: Iterable[Discount], as_of: datetime
) -> List[LinePricing]:
    discounts = list(discounts)
    return [compute_line_total(line, discounts, as_of) for line in lines]


def compute_subtotal(
    lines: Iterable[CartLine], discounts: Iterable[Discount], as_of: datetime
) -> float:
    """Sum of discounted line totals.

    The subtotal always reflects the discounts active at ``as_of``, never
    the pre-discount prices.
    """
    return subtotal_of(price_lines(lines, discounts, as_of))


def subtotal_of(priced: Iterable[LinePricing]) -> float:
    """Sum of the discounted totals of already priced lines."""
    return sum((p.discounted for p in priced), 0.0)


def to_money(value: float) -> Decimal:
    """Round a float amount to 2 decimal places (half up) for display."""
    return Decimal(repr(value)).quantize(CENTS, rounding=ROUND_HALF_UP)
