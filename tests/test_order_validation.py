# tests/test_order_validation.py

from __future__ import annotations

import pytest

from tradelink_dms.database.repositories.products_repo import Product
from tradelink_dms.modules.sales.validation import (
    OrderCart,
    validate_company_mix,
    validate_order,
    validate_order_line,
)
from tradelink_dms.utils.errors import ValidationError


NOODLES = Product(
    product_id=1, name="Noodles Classic", company_id=1, base_rate=10.0, discounted_rate=9.5,
    secondary_available=True, secondary_qualifying_qty=24, secondary_discount_pct=2.0,
)
BISCUITS = Product(
    product_id=2, name="Biscuit Tier Pack", company_id=1, base_rate=20.0, discounted_rate=19.0,
    order_multiple=6, min_order_qty=12, secondary_available=True,
    secondary_qualifying_qty=24, secondary_discount_pct=5.0,
    additional_qualifying_qty=48, additional_secondary_discount_pct=3.0,
)
JUICE = Product(product_id=3, name="Juice 1L", company_id=2, base_rate=100.0, discounted_rate=95.0)

CATALOG = {1: NOODLES, 2: BISCUITS, 3: JUICE}


# ---------------------------------------------------------------------
# Line checks
# ---------------------------------------------------------------------

def test_line_reports_every_failed_constraint():
    v = validate_order_line(10, BISCUITS)
    assert len(v) == 2
    assert "below minimum" in v[0] and "Biscuit Tier Pack" in v[0] and "10" in v[0]
    assert "not a multiple of 6" in v[1]


def test_line_valid_and_multiple_only():
    assert validate_order_line(12, BISCUITS) == []
    v = validate_order_line(14, BISCUITS)
    assert len(v) == 1 and "not a multiple" in v[0]


def test_line_defaults_accept_any_positive_qty():
    assert validate_order_line(1, NOODLES) == []
    assert validate_order_line(37, NOODLES) == []


def test_line_negative_qty():
    v = validate_order_line(-6, BISCUITS)
    assert v and "negative" in v[0]


# ---------------------------------------------------------------------
# Order checks
# ---------------------------------------------------------------------

def test_company_mix_names_both_companies():
    v = validate_company_mix([(1, 5), (3, 2)], CATALOG)
    assert len(v) == 1
    assert "Juice 1L" in v[0] and "Noodles Classic" in v[0]


def test_validate_order_aggregates_lines_and_company():
    v = validate_order([(2, 10), (3, 1), (99, 1)], CATALOG)
    assert any("below minimum" in s for s in v)
    assert any("not a multiple" in s for s in v)
    assert any("#99" in s for s in v)
    assert any("one company" in s for s in v)


def test_empty_order_is_a_violation():
    assert validate_order([], CATALOG) == ["Order has no items."]


def test_valid_order():
    assert validate_order([(1, 24), (2, 48)], CATALOG) == []


# ---------------------------------------------------------------------
# Cart
# ---------------------------------------------------------------------

def test_cart_locks_to_first_company():
    cart = OrderCart()
    assert cart.company_id is None
    cart.add(NOODLES, 24)
    assert cart.company_id == 1

    with pytest.raises(ValidationError):
        cart.add(JUICE, 1)
    assert [ln.product.product_id for ln in cart.lines] == [1]

    cart.clear()
    assert cart.is_empty() and cart.company_id is None
    cart.add(JUICE, 1)
    assert cart.company_id == 2


def test_cart_totals_and_violations():
    cart = OrderCart()
    cart.add(NOODLES, 24)
    cart.add(BISCUITS, 24)
    assert cart.total_amount == 656.64
    assert cart.violations() == []

    cart.set_qty(2, 10)
    assert len(cart.violations()) == 2

    cart.remove(2)
    assert cart.order_lines() == [(1, 24)]
    assert cart.total_amount == 223.44


def test_cart_add_same_product_accumulates():
    cart = OrderCart()
    cart.add(NOODLES, 10)
    cart.add(NOODLES, 14)
    assert cart.order_lines() == [(1, 24)]


def test_cart_set_qty_unknown_product():
    with pytest.raises(KeyError):
        OrderCart().set_qty(1, 5)
