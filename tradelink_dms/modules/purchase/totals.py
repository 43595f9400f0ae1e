# tradelink_dms/modules/purchase/totals.py
"""
Purchase bill arithmetic.

    gross         = sum(qty * rate)
    discount      = gross * value / 100   (PCT)  |  value   (ABS)
    taxable_base  = max(gross - discount, 0)

    EXCLUSIVE  tax = base * pct / 100          net = base + tax + other
    INCLUSIVE  tax = base - base / (1 + pct%)  net = base + other
    NONE       tax = 0                         net = base + other

Aggregates are rounded half-up to 2 dp once, at the end.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Mapping, Optional, Sequence

from ...constants import (
    DEFAULT_UNIT,
    DISCOUNT_TYPES,
    SUGGESTED_PURCHASE_RATE_FACTOR,
    TAX_MODES,
)
from ...database.repositories.purchases_repo import BillLine, BillTotals
from ...utils.errors import ValidationError
from ...utils.helpers import round_money
from ...utils.validators import check_non_negative, non_empty


@dataclass
class BillLineDraft:
    """A bill line as entered, before amounts are worked out."""
    product_name: str
    qty: float
    rate: float
    product_id: Optional[int] = None
    company: Optional[str] = None
    unit: str = DEFAULT_UNIT


def _qty_rate(line) -> tuple[float, float]:
    if isinstance(line, Mapping):
        return float(line.get("qty", 0) or 0), float(line.get("rate", 0) or 0)
    return float(line.qty), float(line.rate)


def _raw_qty_rate(line):
    if isinstance(line, Mapping):
        return line.get("qty"), line.get("rate")
    return line.qty, line.rate


def validate_bill(
    lines: Sequence,
    discount_type: str,
    discount_value,
    tax_mode: str,
    tax_pct,
    other_charges,
) -> list[str]:
    violations: list[str] = []
    if tax_mode not in TAX_MODES:
        violations.append(f"Unknown tax mode {tax_mode!r} (expected one of {', '.join(TAX_MODES)}).")
    if discount_type not in DISCOUNT_TYPES:
        violations.append(
            f"Unknown discount type {discount_type!r} (expected one of {', '.join(DISCOUNT_TYPES)})."
        )
    check_non_negative(discount_value, "Discount", violations)
    check_non_negative(tax_pct, "Tax %", violations)
    check_non_negative(other_charges, "Other charges", violations)
    for i, line in enumerate(lines, start=1):
        qty, rate = _raw_qty_rate(line)
        check_non_negative(qty, f"Line {i} qty", violations)
        check_non_negative(rate, f"Line {i} rate", violations)
    return violations


def compute_bill_totals(
    lines: Iterable,
    discount_type: str,
    discount_value,
    tax_mode: str,
    tax_pct,
    other_charges=0.0,
) -> BillTotals:
    lines = list(lines)
    violations = validate_bill(lines, discount_type, discount_value, tax_mode, tax_pct, other_charges)
    if violations:
        raise ValidationError(violations)

    qty = 0.0
    gross = 0.0
    for line in lines:
        q, r = _qty_rate(line)
        qty += q
        gross += q * r

    value = float(discount_value)
    discount = gross * value / 100.0 if discount_type == "PCT" else value
    base = max(gross - discount, 0.0)
    pct = float(tax_pct)
    other = float(other_charges)

    if tax_mode == "EXCLUSIVE":
        tax = base * pct / 100.0
        net = base + tax + other
    elif tax_mode == "INCLUSIVE":
        tax = base - base / (1.0 + pct / 100.0)
        net = base + other
    else:
        tax = 0.0
        net = base + other

    return BillTotals(
        qty=round_money(qty, 3),
        gross=round_money(gross),
        discount=round_money(discount),
        taxable_base=round_money(base),
        tax=round_money(tax),
        other=round_money(other),
        net=round_money(net),
    )


def _apportion(total: float, weights: Sequence[float]) -> list[float]:
    """Split `total` by weight; the last share takes the rounding remainder."""
    if not weights:
        return []
    w_sum = sum(weights)
    shares: list[float] = []
    for w in weights[:-1]:
        shares.append(round_money(total * w / w_sum) if w_sum else 0.0)
    shares.append(round_money(total - sum(shares)))
    return shares


def compute_bill_lines(
    lines: Sequence[BillLineDraft],
    discount_type: str,
    discount_value,
    tax_mode: str,
    tax_pct,
    other_charges=0.0,
) -> tuple[list[BillLine], BillTotals]:
    """
    Per-line amounts with header discount/tax/other spread in proportion to
    line gross, so the lines add up exactly to the header totals.
    """
    lines = list(lines)
    totals = compute_bill_totals(lines, discount_type, discount_value, tax_mode, tax_pct, other_charges)
    for i, ln in enumerate(lines, start=1):
        if not non_empty(ln.product_name):
            raise ValidationError(f"Line {i}: product name is required.")
    if not lines:
        return [], totals

    weights = [float(ln.qty) * float(ln.rate) for ln in lines]
    gross = _apportion(totals.gross, weights)
    # a discount past gross only takes the base down to 0
    discount = _apportion(round_money(totals.gross - totals.taxable_base), weights)
    tax = _apportion(totals.tax, weights)
    other = _apportion(totals.other, weights)

    out: list[BillLine] = []
    for i, ln in enumerate(lines):
        net = gross[i] - discount[i] + other[i]
        if tax_mode == "EXCLUSIVE":
            net += tax[i]
        out.append(
            BillLine(
                line_no=i + 1,
                product_id=ln.product_id,
                product_name=ln.product_name.strip(),
                qty=float(ln.qty),
                rate=float(ln.rate),
                gross=gross[i],
                discount=discount[i],
                tax=tax[i],
                other=other[i],
                net=round_money(net),
                company=ln.company,
                unit=ln.unit or DEFAULT_UNIT,
            )
        )
    out[-1].net = round_money(totals.net - sum(ln.net for ln in out[:-1]))
    return out, totals


def suggested_purchase_rate(base_rate) -> float:
    """Default rate offered when a product is picked onto a bill."""
    return round_money(float(base_rate) * SUGGESTED_PURCHASE_RATE_FACTOR)
