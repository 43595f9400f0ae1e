# tradelink_dms/modules/purchase/service.py
from __future__ import annotations

import logging
import sqlite3
from typing import Optional, Sequence

from ...constants import DEFAULT_TAX_PCT
from ...database import transaction
from ...database.repositories.products_repo import ProductsRepo
from ...database.repositories.purchases_repo import BillHeader, PurchaseBill, PurchasesRepo
from ...utils.errors import DomainError, NotFoundError, ValidationError
from ...utils.helpers import now_iso, today_str
from ...utils.validators import non_empty
from .totals import BillLineDraft, compute_bill_lines, suggested_purchase_rate

_log = logging.getLogger(__name__)


class PurchaseService:
    """
    Saving, correcting and searching purchase bills.

    A saved bill is never edited. `correct_bill` writes a new revision that
    supersedes the old one; search shows only current revisions by default.
    """

    def __init__(self, conn: sqlite3.Connection):
        self.conn = conn
        self.repo = PurchasesRepo(conn)
        self.products = ProductsRepo(conn)

    def save_bill(
        self,
        vendor: str,
        lines: Sequence[BillLineDraft],
        *,
        tax_mode: str = "EXCLUSIVE",
        tax_pct: float = DEFAULT_TAX_PCT,
        discount_type: str = "ABS",
        discount_value: float = 0.0,
        other_charges: float = 0.0,
        date: Optional[str] = None,
        bill_no: Optional[str] = None,
        notes: Optional[str] = None,
    ) -> PurchaseBill:
        return self._save(
            vendor, lines, tax_mode, tax_pct, discount_type, discount_value, other_charges,
            date, bill_no, notes, supersedes=None,
        )

    def correct_bill(
        self,
        bill_id: str,
        lines: Sequence[BillLineDraft],
        *,
        vendor: Optional[str] = None,
        tax_mode: Optional[str] = None,
        tax_pct: Optional[float] = None,
        discount_type: Optional[str] = None,
        discount_value: Optional[float] = None,
        other_charges: Optional[float] = None,
        date: Optional[str] = None,
        bill_no: Optional[str] = None,
        notes: Optional[str] = None,
    ) -> PurchaseBill:
        """
        Record a corrected revision of `bill_id`. Header fields not passed are
        carried over from the bill being corrected.
        """
        old = self.repo.get_bill(bill_id)
        if old is None:
            raise NotFoundError(f"Purchase bill {bill_id} not found.")
        newer = self.repo.superseded_by(bill_id)
        if newer is not None:
            raise DomainError(f"Purchase bill {bill_id} was already corrected by {newer}; correct that one instead.")
        h = old.header
        return self._save(
            vendor if vendor is not None else h.vendor,
            lines,
            tax_mode if tax_mode is not None else h.tax_mode,
            tax_pct if tax_pct is not None else h.tax_pct,
            discount_type if discount_type is not None else h.discount_type,
            discount_value if discount_value is not None else h.discount_value,
            other_charges if other_charges is not None else h.other_charges,
            date or h.date,
            bill_no if bill_no is not None else h.bill_no,
            notes if notes is not None else h.notes,
            supersedes=h,
        )

    def _save(
        self,
        vendor,
        lines,
        tax_mode,
        tax_pct,
        discount_type,
        discount_value,
        other_charges,
        date,
        bill_no,
        notes,
        supersedes: Optional[BillHeader],
    ) -> PurchaseBill:
        problems: list[str] = []
        if not non_empty(vendor):
            problems.append("Vendor is required.")
        if not lines:
            problems.append("A purchase bill needs at least one line.")
        referenced = [ln.product_id for ln in lines if ln.product_id is not None]
        known = self.products.get_many(referenced)
        for pid in referenced:
            if int(pid) not in known:
                problems.append(f"Product #{pid} does not exist.")
        if problems:
            _log.warning("Purchase bill rejected: %d violation(s)", len(problems))
            raise ValidationError(problems)

        try:
            bill_lines, totals = compute_bill_lines(
                lines, discount_type, discount_value, tax_mode, tax_pct, other_charges
            )
        except ValidationError as e:
            _log.warning("Purchase bill rejected: %d violation(s)", len(e.violations))
            raise
        _log.debug("Bill totals: %s", totals)

        date = date or today_str()
        companies = sorted({ln.company.strip() for ln in lines if non_empty(ln.company)})
        header = BillHeader(
            bill_id=None,
            date=date,
            vendor=vendor.strip(),
            tax_mode=tax_mode,
            tax_pct=float(tax_pct),
            discount_type=discount_type,
            discount_value=float(discount_value),
            other_charges=float(other_charges),
            bill_no=bill_no,
            company_summary=", ".join(companies) or None,
            notes=notes,
            revision=supersedes.revision + 1 if supersedes else 1,
            supersedes_bill_id=supersedes.bill_id if supersedes else None,
            created_at=now_iso(),
        )
        with transaction(self.conn):
            header.bill_id = self.repo.new_bill_id(date)
            self.repo.insert_bill(header, bill_lines, totals)

        if supersedes:
            _log.info(
                "Purchase bill %s saved as revision %d of %s, net %.2f",
                header.bill_id, header.revision, supersedes.bill_id, totals.net,
            )
        else:
            _log.info("Purchase bill %s saved: %s, net %.2f", header.bill_id, header.vendor, totals.net)
        return PurchaseBill(header=header, lines=bill_lines, totals=totals)

    def get_bill(self, bill_id: str) -> PurchaseBill:
        bill = self.repo.get_bill(bill_id)
        if bill is None:
            raise NotFoundError(f"Purchase bill {bill_id} not found.")
        return bill

    def current_bill(self, bill_id: str) -> PurchaseBill:
        """The latest revision in `bill_id`'s correction chain."""
        self.get_bill(bill_id)
        return self.get_bill(self.repo.latest_revision(bill_id))

    def search(self, **filters) -> dict:
        return self.repo.search_bills(**filters)

    def suggested_rate(self, product_id: int) -> float:
        p = self.products.get(product_id)
        if p is None:
            raise NotFoundError(f"Product #{product_id} not found.")
        return suggested_purchase_rate(p.base_rate)
