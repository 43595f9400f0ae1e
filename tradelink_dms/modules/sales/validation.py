# tradelink_dms/modules/sales/validation.py
"""
Order-entry checks.

Line checks accumulate: a line that is both below minimum and off-multiple
reports both. `validate_order` gathers everything so the caller can show the
whole list at once and reject the order in one go.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Iterable, Mapping, Optional, Sequence, Tuple

from ...database.repositories.products_repo import Product
from ...utils.errors import ValidationError
from ...utils.helpers import fmt_qty, round_money
from ...utils.validators import try_parse_float
from .pricing import compute_line_pricing

# (product_id, quantity) as typed into the order form
OrderLine = Tuple[int, int]


def validate_order_line(qty, product: Product) -> list[str]:
    violations: list[str] = []
    ok, q = try_parse_float(qty)
    if not ok:
        return [f"{product.name}: quantity {qty!r} is not a number."]
    if q < 0:
        violations.append(f"{product.name}: quantity {fmt_qty(q)} cannot be negative.")
        return violations
    if not float(q).is_integer():
        violations.append(f"{product.name}: quantity {fmt_qty(q)} must be whole pieces.")

    min_qty = int(product.min_order_qty or 1)
    multiple = int(product.order_multiple or 1)
    if q < min_qty:
        violations.append(
            f"{product.name}: quantity {fmt_qty(q)} is below minimum order quantity {min_qty}."
        )
    if q % multiple != 0:
        violations.append(
            f"{product.name}: quantity {fmt_qty(q)} is not a multiple of {multiple}."
        )
    return violations


def validate_company_mix(lines: Iterable[OrderLine], products: Mapping[int, Product]) -> list[str]:
    """One invoice, one supplier company."""
    first: Optional[Product] = None
    violations: list[str] = []
    for product_id, _qty in lines:
        p = products.get(int(product_id))
        if p is None:
            continue
        if first is None:
            first = p
        elif p.company_id != first.company_id:
            violations.append(
                f"{p.name} (company {p.company_id}) cannot be on the same order as "
                f"{first.name} (company {first.company_id}); an order takes one company only."
            )
    return violations


def validate_order(lines: Sequence[OrderLine], products: Mapping[int, Product]) -> list[str]:
    if not lines:
        return ["Order has no items."]
    violations: list[str] = []
    for product_id, qty in lines:
        p = products.get(int(product_id))
        if p is None:
            violations.append(f"Product #{product_id} does not exist.")
            continue
        violations.extend(validate_order_line(qty, p))
    violations.extend(validate_company_mix(lines, products))
    return violations


@dataclass
class CartLine:
    product: Product
    quantity: int


class OrderCart:
    """
    Order being built. The first product added locks the cart to its
    company; adding another company's product is refused until `clear()`.
    """

    def __init__(self):
        self._lines: Dict[int, CartLine] = {}

    # ---- state ----
    @property
    def company_id(self) -> Optional[int]:
        for line in self._lines.values():
            return line.product.company_id
        return None

    @property
    def lines(self) -> list[CartLine]:
        return list(self._lines.values())

    def is_empty(self) -> bool:
        return not self._lines

    # ---- edits ----
    def add(self, product: Product, qty: int) -> None:
        locked = self.company_id
        if locked is not None and product.company_id != locked:
            raise ValidationError(
                f"{product.name} belongs to another company; clear the cart to switch companies."
            )
        pid = int(product.product_id)
        if pid in self._lines:
            self._lines[pid].quantity += int(qty)
        else:
            self._lines[pid] = CartLine(product=product, quantity=int(qty))

    def set_qty(self, product_id: int, qty: int) -> None:
        line = self._lines.get(int(product_id))
        if line is None:
            raise KeyError(product_id)
        line.quantity = int(qty)

    def remove(self, product_id: int) -> None:
        self._lines.pop(int(product_id), None)

    def clear(self) -> None:
        self._lines.clear()

    # ---- checks / totals ----
    def order_lines(self) -> list[OrderLine]:
        return [(pid, line.quantity) for pid, line in self._lines.items()]

    def products(self) -> dict[int, Product]:
        return {pid: line.product for pid, line in self._lines.items()}

    def violations(self) -> list[str]:
        return validate_order(self.order_lines(), self.products())

    @property
    def total_amount(self) -> float:
        total = 0.0
        for line in self._lines.values():
            if line.quantity > 0:
                total += compute_line_pricing(line.product, line.quantity).total
        return round_money(total)
