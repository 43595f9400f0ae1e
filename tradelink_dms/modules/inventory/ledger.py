# tradelink_dms/modules/inventory/ledger.py
"""
Stock ledger rules.

Each product has two pools, good and damaged. A movement is a signed delta
against exactly one pool:

    movement_type         pool      sign
    sale                  good      -
    sale_cancel           good      +
    sale_return_good      good      +
    sale_return_damaged   damaged   +
    damage_adjustment     good      -   (paired with)
    damage_adjustment     damaged   +

The same table is enforced by a CHECK on inventory_movements; `check_movement`
catches violations before they reach the database.
"""
from __future__ import annotations

from collections import defaultdict
from typing import Dict, Iterable, Optional, Tuple

from ...constants import (
    MOVEMENT_DAMAGE_ADJUSTMENT,
    MOVEMENT_RETURN_DAMAGED,
    MOVEMENT_RETURN_GOOD,
    MOVEMENT_SALE,
    MOVEMENT_SALE_CANCEL,
    MOVEMENT_TYPES,
)
from ...database.repositories.inventory_repo import InventoryMovement, StockLevel
from ...utils.errors import ValidationError

# movement_type -> allowed (is_damaged_stock, sign) combinations
_RULES: Dict[str, Tuple[Tuple[bool, int], ...]] = {
    MOVEMENT_SALE: ((False, -1),),
    MOVEMENT_SALE_CANCEL: ((False, +1),),
    MOVEMENT_RETURN_GOOD: ((False, +1),),
    MOVEMENT_RETURN_DAMAGED: ((True, +1),),
    MOVEMENT_DAMAGE_ADJUSTMENT: ((False, -1), (True, +1)),
}


def _positive_qty(qty) -> int:
    q = int(qty)
    if q <= 0 or q != qty:
        raise ValidationError(f"Movement quantity must be a whole number > 0 (got {qty!r}).")
    return q


def sale_movement(product_id: int, qty: int, invoice_id: str) -> InventoryMovement:
    return InventoryMovement(
        movement_id=None,
        product_id=int(product_id),
        movement_type=MOVEMENT_SALE,
        qty_delta_pieces=-_positive_qty(qty),
        is_damaged_stock=False,
        related_invoice_id=invoice_id,
    )


def sale_cancel_movement(product_id: int, qty: int, invoice_id: str) -> InventoryMovement:
    return InventoryMovement(
        movement_id=None,
        product_id=int(product_id),
        movement_type=MOVEMENT_SALE_CANCEL,
        qty_delta_pieces=_positive_qty(qty),
        is_damaged_stock=False,
        related_invoice_id=invoice_id,
    )


def return_good_movement(
    product_id: int, qty: int, invoice_id: str, sales_return_id: Optional[str] = None
) -> InventoryMovement:
    return InventoryMovement(
        movement_id=None,
        product_id=int(product_id),
        movement_type=MOVEMENT_RETURN_GOOD,
        qty_delta_pieces=_positive_qty(qty),
        is_damaged_stock=False,
        related_invoice_id=invoice_id,
        related_sales_return_id=sales_return_id,
    )


def return_damaged_movement(
    product_id: int,
    qty: int,
    invoice_id: str,
    sales_return_id: Optional[str] = None,
    damaged_log_id: Optional[str] = None,
) -> InventoryMovement:
    return InventoryMovement(
        movement_id=None,
        product_id=int(product_id),
        movement_type=MOVEMENT_RETURN_DAMAGED,
        qty_delta_pieces=_positive_qty(qty),
        is_damaged_stock=True,
        related_invoice_id=invoice_id,
        related_sales_return_id=sales_return_id,
        related_damaged_log_id=damaged_log_id,
    )


def damage_adjustment_pair(
    product_id: int, qty: int, damaged_log_id: Optional[str] = None
) -> Tuple[InventoryMovement, InventoryMovement]:
    """(good leg, damaged leg): stock moves from good to damaged, total unchanged."""
    q = _positive_qty(qty)
    out = InventoryMovement(
        movement_id=None,
        product_id=int(product_id),
        movement_type=MOVEMENT_DAMAGE_ADJUSTMENT,
        qty_delta_pieces=-q,
        is_damaged_stock=False,
        related_damaged_log_id=damaged_log_id,
    )
    into = InventoryMovement(
        movement_id=None,
        product_id=int(product_id),
        movement_type=MOVEMENT_DAMAGE_ADJUSTMENT,
        qty_delta_pieces=q,
        is_damaged_stock=True,
        related_damaged_log_id=damaged_log_id,
    )
    return out, into


def check_movement(m: InventoryMovement) -> None:
    """Raise ValidationError unless the movement fits the pool/sign table."""
    if m.movement_type not in MOVEMENT_TYPES:
        raise ValidationError(f"Unknown movement type {m.movement_type!r}.")
    if not m.qty_delta_pieces:
        raise ValidationError(f"{m.movement_type}: quantity cannot be zero.")
    sign = 1 if m.qty_delta_pieces > 0 else -1
    if (bool(m.is_damaged_stock), sign) not in _RULES[m.movement_type]:
        pool = "damaged" if m.is_damaged_stock else "good"
        raise ValidationError(
            f"{m.movement_type} cannot move {m.qty_delta_pieces:+d} pieces in the {pool} pool."
        )


def replay(movements: Iterable[InventoryMovement]) -> Dict[int, StockLevel]:
    """
    Stock per product from a set of movements. Plain sums: order does not
    matter, and negative balances are reported as-is.
    """
    good: Dict[int, int] = defaultdict(int)
    damaged: Dict[int, int] = defaultdict(int)
    for m in movements:
        pid = int(m.product_id)
        if m.is_damaged_stock:
            damaged[pid] += int(m.qty_delta_pieces)
        else:
            good[pid] += int(m.qty_delta_pieces)
    return {
        pid: StockLevel(good=good.get(pid, 0), damaged=damaged.get(pid, 0))
        for pid in sorted(set(good) | set(damaged))
    }
