# tradelink_dms/modules/returns/computation.py
"""
Turns a return request against an invoice into the records it produces:
the SalesReturn header, one SalesReturnItem per returned line, a
DamagedGoodsLog per line with damaged pieces, and the stock movements.

Nothing is written here; `ReturnService.create_return` persists the result
in one transaction. Returnable quantity is the invoiced quantity minus what
earlier returns already took back (`already_returned`).
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, Mapping, Optional

from ...constants import (
    DAMAGED_REASON_MARKERS,
    RETURN_REASONS,
    RETURN_TYPES,
    RETURNABLE_STATUSES,
)
from ...database.repositories.damage_repo import DamagedGoodsLog
from ...database.repositories.inventory_repo import InventoryMovement
from ...database.repositories.orders_repo import Invoice
from ...database.repositories.returns_repo import SalesReturn, SalesReturnItem
from ...utils.errors import ValidationError
from ...utils.helpers import round_money
from ...utils.validators import try_parse_float
from ..inventory.ledger import return_damaged_movement, return_good_movement


@dataclass
class ReturnQty:
    good: int = 0
    damaged: int = 0


@dataclass
class ReturnComputation:
    sales_return: SalesReturn
    return_items: list[SalesReturnItem] = field(default_factory=list)
    damage_logs: list[DamagedGoodsLog] = field(default_factory=list)
    movements: list[InventoryMovement] = field(default_factory=list)
    new_status: str = "partially_returned"

    @property
    def damaged_movements(self) -> list[InventoryMovement]:
        """Same order as damage_logs (one per line with damaged pieces)."""
        return [m for m in self.movements if m.is_damaged_stock]


def is_damaged_reason(reason: str) -> bool:
    r = (reason or "").lower()
    return any(marker in r for marker in DAMAGED_REASON_MARKERS)


def _as_return_qty(value) -> ReturnQty:
    if isinstance(value, ReturnQty):
        return value
    if isinstance(value, Mapping):
        return ReturnQty(good=value.get("good", 0) or 0, damaged=value.get("damaged", 0) or 0)
    good, damaged = value
    return ReturnQty(good=good or 0, damaged=damaged or 0)


def _whole(value, label: str, violations: list[str]) -> int:
    ok, v = try_parse_float(value)
    if not ok or not float(v).is_integer():
        violations.append(f"{label} must be a whole number (got {value!r}).")
        return 0
    if v < 0:
        violations.append(f"{label} cannot be negative (got {int(v)}).")
        return 0
    return int(v)


def compute_return(
    invoice: Invoice,
    return_type: str,
    reason: str,
    lines: Optional[Mapping[int, object]] = None,
    notes: Optional[str] = None,
    already_returned: Optional[Mapping[int, int]] = None,
    created_by: Optional[str] = None,
) -> ReturnComputation:
    """
    `lines` maps invoice item_id -> ReturnQty (or {"good":..,"damaged":..} /
    (good, damaged)); only used for partial returns. A full return takes back
    everything still outstanding, all good or all damaged depending on reason.

    Every problem found is collected and raised together as a ValidationError.
    """
    lines = lines or {}
    already: Dict[int, int] = {int(k): int(v) for k, v in (already_returned or {}).items()}
    violations: list[str] = []

    if return_type not in RETURN_TYPES:
        violations.append(f"Unknown return type {return_type!r}.")
    if reason not in RETURN_REASONS:
        violations.append(f"Unknown return reason {reason!r}.")
    if invoice.status == "returned":
        violations.append(f"Invoice {invoice.order_id} is already fully returned.")
    elif invoice.status not in RETURNABLE_STATUSES:
        violations.append(f"Invoice {invoice.order_id} is {invoice.status}; it cannot be returned.")

    by_id = {int(it.item_id): it for it in invoice.items}
    requested: Dict[int, ReturnQty] = {}

    if return_type == "full":
        damaged = is_damaged_reason(reason)
        for item_id, it in by_id.items():
            remaining = max(0, int(it.quantity) - already.get(item_id, 0))
            if remaining:
                requested[item_id] = ReturnQty(good=0, damaged=remaining) if damaged else ReturnQty(good=remaining)
    elif return_type == "partial":
        for key, raw in lines.items():
            item_id = int(key)
            it = by_id.get(item_id)
            if it is None:
                violations.append(f"Line #{item_id} is not on invoice {invoice.order_id}.")
                continue
            rq = _as_return_qty(raw)
            label = f"Line #{item_id} (product {it.product_id})"
            good = _whole(rq.good, f"{label} good quantity", violations)
            dmg = _whole(rq.damaged, f"{label} damaged quantity", violations)
            remaining = int(it.quantity) - already.get(item_id, 0)
            if good + dmg > remaining:
                extra = f" ({already[item_id]} already returned)" if already.get(item_id) else ""
                violations.append(
                    f"{label}: return quantity {good + dmg} exceeds invoiced quantity "
                    f"{it.quantity}{extra}."
                )
            if good or dmg:
                requested[item_id] = ReturnQty(good=good, damaged=dmg)

    if not requested and return_type in RETURN_TYPES:
        violations.append("No items selected for return.")
    if violations:
        raise ValidationError(violations)

    header = SalesReturn(
        return_id=None,
        order_id=invoice.order_id,
        customer_id=invoice.header.customer_id,
        return_type=return_type,
        reason=reason,
        total_return_amount=0.0,
        notes=notes,
        created_by=created_by,
    )
    result = ReturnComputation(
        sales_return=header,
        new_status="returned" if return_type == "full" else "partially_returned",
    )

    total = 0.0
    for item_id in sorted(requested):
        it = by_id[item_id]
        rq = requested[item_id]
        amount = round_money((rq.good + rq.damaged) * float(it.rate))
        total += amount
        result.return_items.append(
            SalesReturnItem(
                return_item_id=None,
                return_id=None,
                order_item_id=item_id,
                product_id=it.product_id,
                qty_invoiced=int(it.quantity),
                qty_returned_good=rq.good,
                qty_returned_damaged=rq.damaged,
                rate=float(it.rate),
                line_return_amount=amount,
            )
        )
        if rq.good:
            result.movements.append(return_good_movement(it.product_id, rq.good, invoice.order_id))
        if rq.damaged:
            result.movements.append(return_damaged_movement(it.product_id, rq.damaged, invoice.order_id))
            result.damage_logs.append(
                DamagedGoodsLog(
                    log_id=None,
                    product_id=it.product_id,
                    qty_pieces=rq.damaged,
                    damage_reason=reason,
                    source_type="return",
                    source_invoice_id=invoice.order_id,
                    notes=notes,
                    created_by=created_by,
                )
            )

    header.total_return_amount = round_money(total)
    return result
