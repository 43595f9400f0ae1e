# tradelink_dms/modules/sales/pricing.py
"""
Line pricing for an order.

rate chain:  base_rate -> discounted_rate (product discount)
                       -> tier 1 qty scheme (secondary_discount_pct)
                       -> tier 2 add-on     (additional_secondary_discount_pct)

Both tiers compare against the *same* ordered quantity; tier 2 only stacks
on a line that reached the tier-1 threshold, even when tier 1 itself
carries no percentage. Everything here is pure.
"""
from __future__ import annotations

from dataclasses import dataclass

from ...database.repositories.orders_repo import OrderItem
from ...database.repositories.products_repo import Product
from ...utils.errors import ValidationError
from ...utils.helpers import round_money, fmt_qty
from ...utils.validators import try_parse_float


@dataclass(frozen=True)
class LinePricing:
    base_rate: float
    net_rate: float
    discount_pct: float
    total: float
    scheme_text: str = ""


def _tier1_applies(product: Product, qty: int) -> bool:
    return bool(
        product.secondary_available
        and product.secondary_qualifying_qty is not None
        and qty >= product.secondary_qualifying_qty
    )


def _tier2_applies(product: Product, qty: int) -> bool:
    return bool(
        product.additional_qualifying_qty is not None
        and product.additional_secondary_discount_pct is not None
        and qty >= product.additional_qualifying_qty
    )


def compute_line_pricing(product: Product, quantity) -> LinePricing:
    ok, q = try_parse_float(quantity)
    if not ok:
        raise ValidationError(f"{product.name}: quantity {quantity!r} is not a number.")
    if q < 0:
        raise ValidationError(f"{product.name}: quantity {fmt_qty(q)} cannot be negative.")

    base_rate = float(product.base_rate)
    net_rate = float(product.discounted_rate)
    scheme_parts: list[str] = []

    if q > 0 and _tier1_applies(product, q):
        if product.secondary_discount_pct:
            pct1 = float(product.secondary_discount_pct)
            net_rate *= 1 - pct1 / 100.0
            scheme_parts.append(f"{fmt_qty(pct1)}% Qty Scheme")
        if _tier2_applies(product, q):
            pct2 = float(product.additional_secondary_discount_pct)
            net_rate *= 1 - pct2 / 100.0
            scheme_parts.append(f"{fmt_qty(pct2)}% Add.")

    net_rate = round_money(net_rate)
    discount_pct = round_money((base_rate - net_rate) / base_rate * 100.0) if base_rate > 0 else 0.0
    total = round_money(net_rate * q) if q > 0 else 0.0

    return LinePricing(
        base_rate=base_rate,
        net_rate=net_rate,
        discount_pct=discount_pct,
        total=total,
        scheme_text=" + ".join(scheme_parts),
    )


def build_order_item(product: Product, quantity) -> OrderItem:
    """Freeze the priced line as an OrderItem (ids are filled in when saved)."""
    p = compute_line_pricing(product, quantity)
    return OrderItem(
        item_id=None,
        order_id=None,
        product_id=int(product.product_id),
        quantity=int(quantity),
        rate=p.net_rate,
        base_rate=p.base_rate,
        discount_pct=p.discount_pct,
        total=p.total,
        scheme_text=p.scheme_text,
        company_id=product.company_id,
    )
