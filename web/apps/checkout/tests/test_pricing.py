"""Unit tests for discount evaluation and cart pricing.

These tests exercise the pure functions of ``apps.checkout.pricing``:
discount windows, first-match lookup, NaN percentages and subtotals.
No database access is needed.
"""
import math
from datetime import datetime, timedelta, timezone

import pytest

from apps.checkout.domain import CartLine, Discount
from apps.checkout.pricing import (
    coerce_percentage,
    compute_line_total,
    compute_subtotal,
    discount_amount,
    discounted_price,
    find_active_discount,
    is_active,
    price_lines,
    subtotal_of,
    to_money,
)


def _dt(y, m, d):
    return datetime(y, m, d, tzinfo=timezone.utc)


JAN_DISCOUNT = Discount(id="d1", product_id="42", percentage=20, start=_dt(2024, 1, 1), end=_dt(2024, 1, 31))

CART = [
    CartLine(product_id="1", title="Mug", unit_price=50, quantity=2),
    CartLine(product_id="2", title="Cap", unit_price=30, quantity=1),
]


def test_active_discount_applies_to_price():
    d = find_active_discount("42", [JAN_DISCOUNT], _dt(2024, 1, 15))
    assert d is JAN_DISCOUNT
    assert to_money(discounted_price(100.0, d.percentage)) == to_money(80.0)


def test_discount_after_window_is_not_found():
    assert find_active_discount("42", [JAN_DISCOUNT], _dt(2024, 2, 1)) is None


def test_window_is_inclusive_to_the_millisecond():
    ms = timedelta(milliseconds=1)
    assert is_active(JAN_DISCOUNT, JAN_DISCOUNT.start)
    assert is_active(JAN_DISCOUNT, JAN_DISCOUNT.end)
    assert not is_active(JAN_DISCOUNT, JAN_DISCOUNT.start - ms)
    assert not is_active(JAN_DISCOUNT, JAN_DISCOUNT.end + ms)


def test_find_active_discount_none_for_empty_or_other_product():
    now = _dt(2024, 1, 15)
    assert find_active_discount("42", [], now) is None
    assert find_active_discount("43", [JAN_DISCOUNT], now) is None


def test_numeric_product_id_matches_string_id():
    assert find_active_discount(42, [JAN_DISCOUNT], _dt(2024, 1, 15)) is JAN_DISCOUNT


def test_first_active_match_wins_over_bigger_discount():
    expired = Discount(id="old", product_id="42", percentage=90, start=_dt(2023, 1, 1), end=_dt(2023, 1, 31))
    second = Discount(id="d2", product_id="42", percentage=50, start=_dt(2024, 1, 1), end=_dt(2024, 1, 31))
    d = find_active_discount("42", [expired, JAN_DISCOUNT, second], _dt(2024, 1, 15))
    assert d.id == "d1"


@pytest.mark.parametrize("price", [0.0, 0.01, 19.99, 100.0, 12345.67])
@pytest.mark.parametrize("pct", [0, 12.5, 33, 50, 100])
def test_discounted_price_plus_amount_equals_original(price, pct):
    assert abs(discounted_price(price, pct) + discount_amount(price, pct) - price) < 1e-9


@pytest.mark.parametrize(
    "raw,expected",
    [(20, 20.0), ("12.5", 12.5), (" 10 ", 10.0), (150, 150.0)],
)
def test_coerce_percentage_accepts_strings_and_numbers(raw, expected):
    assert coerce_percentage(raw) == expected


@pytest.mark.parametrize("raw", ["abc", "", None, True, "inf", "-inf", "1e400", float("inf")])
def test_coerce_percentage_unparsable_is_nan(raw):
    assert math.isnan(coerce_percentage(raw))


def test_subtotal_without_discounts():
    assert to_money(compute_subtotal(CART, [], _dt(2024, 1, 15))) == to_money(130.0)


def test_subtotal_with_active_discount_on_one_line():
    d = Discount(id="d10", product_id="1", percentage=10, start=_dt(2024, 1, 1), end=_dt(2024, 1, 31))
    assert to_money(compute_subtotal(CART, [d], _dt(2024, 1, 15))) == to_money(120.0)


def test_nan_percentage_is_treated_as_no_discount():
    d = Discount(id="bad", product_id="1", percentage=math.nan, start=_dt(2024, 1, 1), end=_dt(2024, 1, 31))
    priced = compute_line_total(CART[0], [d], _dt(2024, 1, 15))
    assert priced.discounted == priced.original == 100.0
    assert priced.applied_discount is None
    assert compute_subtotal(CART, [d], _dt(2024, 1, 15)) == 130.0


def test_to_money_rounds_half_up():
    assert str(to_money(2.675)) == "2.68"
    assert str(to_money(0.125)) == "0.13"
    assert str(to_money(145.0)) == "145.00"


def test_subtotal_of_priced_lines_matches_compute_subtotal():
    d = Discount(id="d10", product_id="1", percentage=10, start=_dt(2024, 1, 1), end=_dt(2024, 1, 31))
    now = _dt(2024, 1, 15)
    priced = price_lines(CART, [d], now)
    assert subtotal_of(priced) == compute_subtotal(CART, [d], now) == 120.0
    assert subtotal_of([]) == 0.0
