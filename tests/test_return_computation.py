# tests/test_return_computation.py

from __future__ import annotations

import pytest

from tradelink_dms.database.repositories.orders_repo import Invoice, OrderHeader, OrderItem
from tradelink_dms.modules.inventory.ledger import replay
from tradelink_dms.modules.returns.computation import ReturnQty, compute_return, is_damaged_reason
from tradelink_dms.utils.errors import ValidationError


# ---------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------

def _invoice(status: str = "delivered") -> Invoice:
    header = OrderHeader(
        order_id="INV20250101-0001",
        customer_id=1,
        salesperson_id=None,
        company_id=1,
        date="2025-01-01",
        total_amount=700.0,
        status=status,
    )
    items = [
        OrderItem(item_id=11, order_id=header.order_id, product_id=1, quantity=50,
                  rate=10.0, base_rate=10.0, discount_pct=0.0, total=500.0),
        OrderItem(item_id=12, order_id=header.order_id, product_id=2, quantity=20,
                  rate=10.0, base_rate=12.0, discount_pct=16.67, total=200.0),
    ]
    return Invoice(header=header, items=items)


def _single_line_invoice() -> Invoice:
    inv = _invoice()
    inv.items = inv.items[:1]
    return inv


# ---------------------------------------------------------------------
# Full returns
# ---------------------------------------------------------------------

def test_full_return_with_quality_reason_goes_to_damaged_stock():
    comp = compute_return(_single_line_invoice(), "full", "quality_issue")

    assert len(comp.return_items) == 1
    ri = comp.return_items[0]
    assert ri.qty_returned_damaged == 50
    assert ri.qty_returned_good == 0
    assert ri.line_return_amount == 500.0
    assert comp.sales_return.total_return_amount == 500.0

    assert len(comp.damage_logs) == 1
    log = comp.damage_logs[0]
    assert log.qty_pieces == 50
    assert log.source_type == "return"
    assert log.damage_reason == "quality_issue"
    assert log.source_invoice_id == "INV20250101-0001"

    assert [(m.movement_type, m.qty_delta_pieces, m.is_damaged_stock) for m in comp.movements] == [
        ("sale_return_damaged", 50, True)
    ]
    assert comp.new_status == "returned"


def test_full_return_with_plain_reason_goes_to_good_stock():
    comp = compute_return(_invoice(), "full", "customer_rejected_full")
    assert [(ri.qty_returned_good, ri.qty_returned_damaged) for ri in comp.return_items] == [(50, 0), (20, 0)]
    assert comp.damage_logs == []
    assert all(m.movement_type == "sale_return_good" and not m.is_damaged_stock for m in comp.movements)
    assert comp.sales_return.total_return_amount == 700.0


def test_full_return_takes_only_what_is_left():
    comp = compute_return(_invoice(), "full", "expiry_issue", already_returned={11: 30, 12: 20})
    assert len(comp.return_items) == 1
    assert comp.return_items[0].order_item_id == 11
    assert comp.return_items[0].qty_returned_damaged == 20


@pytest.mark.parametrize(
    "reason, damaged",
    [
        ("quality_issue", True),
        ("expiry_issue", True),
        ("damaged_in_transit", True),
        ("price_issue", False),
        ("customer_rejected_partial", False),
        ("other", False),
    ],
)
def test_damaged_reason_markers(reason, damaged):
    assert is_damaged_reason(reason) is damaged


# ---------------------------------------------------------------------
# Partial returns
# ---------------------------------------------------------------------

def test_partial_return_split():
    comp = compute_return(
        _invoice("dispatched"),
        "partial",
        "customer_rejected_partial",
        {11: ReturnQty(good=10, damaged=5), 12: {"good": 4}},
        notes="two cartons crushed",
    )
    by_item = {ri.order_item_id: ri for ri in comp.return_items}
    assert (by_item[11].qty_returned_good, by_item[11].qty_returned_damaged) == (10, 5)
    assert (by_item[12].qty_returned_good, by_item[12].qty_returned_damaged) == (4, 0)
    assert by_item[11].line_return_amount == 150.0
    assert comp.sales_return.total_return_amount == 190.0
    assert comp.sales_return.notes == "two cartons crushed"
    assert len(comp.damage_logs) == 1 and comp.damage_logs[0].qty_pieces == 5
    assert len(comp.damaged_movements) == 1
    assert comp.new_status == "partially_returned"


def test_partial_return_over_invoiced_is_rejected():
    with pytest.raises(ValidationError) as exc:
        compute_return(_invoice(), "partial", "quality_issue", {11: (30, 25)})
    assert any("exceeds invoiced quantity" in v for v in exc.value.violations)
    assert "#11" in str(exc.value)


def test_partial_return_counts_earlier_returns():
    with pytest.raises(ValidationError) as exc:
        compute_return(_invoice(), "partial", "other", {11: (21, 0)}, already_returned={11: 30})
    assert "already returned" in str(exc.value)

    comp = compute_return(_invoice(), "partial", "other", {11: (20, 0)}, already_returned={11: 30})
    assert comp.return_items[0].qty_returned_good == 20


def test_partial_return_collects_every_problem():
    with pytest.raises(ValidationError) as exc:
        compute_return(
            _invoice(),
            "partial",
            "other",
            {11: (-1, 0), 12: (15, 10), 99: (1, 0)},
        )
    v = exc.value.violations
    assert any("negative" in s for s in v)
    assert any("exceeds invoiced quantity" in s for s in v)
    assert any("#99" in s for s in v)


def test_no_items_selected():
    with pytest.raises(ValidationError) as exc:
        compute_return(_invoice(), "partial", "other", {11: (0, 0)})
    assert exc.value.violations == ["No items selected for return."]


def test_missing_quantities_default_to_zero():
    comp = compute_return(_invoice(), "partial", "other", {12: {"damaged": 2}})
    assert comp.return_items[0].qty_returned_good == 0
    assert comp.return_items[0].qty_returned_damaged == 2


# ---------------------------------------------------------------------
# Type / reason / status
# ---------------------------------------------------------------------

def test_unknown_type_and_reason():
    with pytest.raises(ValidationError) as exc:
        compute_return(_invoice(), "exchange", "bored")
    v = exc.value.violations
    assert any("return type" in s for s in v)
    assert any("return reason" in s for s in v)


@pytest.mark.parametrize("status", ["pending", "cancelled"])
def test_status_not_returnable(status):
    with pytest.raises(ValidationError) as exc:
        compute_return(_invoice(status), "full", "other")
    assert "cannot be returned" in str(exc.value)


def test_fully_returned_invoice_rejects_further_returns():
    with pytest.raises(ValidationError) as exc:
        compute_return(_invoice("returned"), "partial", "other", {11: (1, 0)})
    assert "already fully returned" in str(exc.value)


# ---------------------------------------------------------------------
# Stock effect
# ---------------------------------------------------------------------

def test_damaged_full_return_leaves_good_stock_alone():
    comp = compute_return(_single_line_invoice(), "full", "quality_issue")
    levels = replay(comp.movements)
    assert levels[1].good == 0
    assert levels[1].damaged == 50


def test_quantities_never_exceed_invoiced_per_line():
    inv = _invoice()
    comp = compute_return(inv, "partial", "other", {11: (25, 25), 12: (0, 20)})
    invoiced = {it.item_id: it.quantity for it in inv.items}
    for ri in comp.return_items:
        assert ri.qty_returned <= invoiced[ri.order_item_id]
