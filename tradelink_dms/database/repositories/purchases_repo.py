from __future__ import annotations
from dataclasses import dataclass, field
import sqlite3
from typing import Iterable, Optional

from ...constants import PREFIX_PURCHASE_BILL, DEFAULT_UNIT
from .. import next_document_id


@dataclass(frozen=True)
class BillTotals:
    qty: float
    gross: float
    discount: float
    taxable_base: float
    tax: float
    other: float
    net: float


@dataclass
class BillHeader:
    bill_id: str | None
    date: str
    vendor: str
    tax_mode: str
    tax_pct: float
    discount_type: str
    discount_value: float
    other_charges: float
    bill_no: str | None = None
    company_summary: str | None = None
    notes: str | None = None
    revision: int = 1
    supersedes_bill_id: str | None = None
    created_at: str | None = None


@dataclass
class BillLine:
    line_no: int
    product_id: int | None
    product_name: str
    qty: float
    rate: float
    gross: float
    discount: float
    tax: float
    other: float
    net: float
    company: str | None = None
    unit: str = DEFAULT_UNIT


@dataclass
class PurchaseBill:
    header: BillHeader
    lines: list[BillLine] = field(default_factory=list)
    totals: BillTotals | None = None

    @property
    def bill_id(self) -> str | None:
        return self.header.bill_id


_HEADER_COLUMNS = (
    "bill_id, date, vendor, bill_no, company_summary, tax_mode, "
    "CAST(tax_pct AS REAL) AS tax_pct, discount_type, CAST(discount_value AS REAL) AS discount_value, "
    "CAST(other_charges AS REAL) AS other_charges, notes, revision, supersedes_bill_id, created_at"
)
_TOTALS_COLUMNS = (
    "CAST(total_qty AS REAL) AS qty, CAST(gross_total AS REAL) AS gross, "
    "CAST(discount_total AS REAL) AS discount, CAST(taxable_base AS REAL) AS taxable_base, "
    "CAST(tax_total AS REAL) AS tax, "
    "CAST(other_total AS REAL) AS other, CAST(net_total AS REAL) AS net"
)


class PurchasesRepo:
    """
    Purchase bills are append-only (schema triggers reject UPDATE/DELETE).
    A correction is a new bill pointing at the one it replaces via
    supersedes_bill_id; each bill can be superseded at most once.
    """

    def __init__(self, conn: sqlite3.Connection):
        conn.row_factory = sqlite3.Row
        self.conn = conn

    def new_bill_id(self, date_str: str) -> str:
        return next_document_id(self.conn, "purchase_bills", "bill_id", PREFIX_PURCHASE_BILL, date_str)

    # ---------- Query ----------
    def get_bill(self, bill_id: str) -> PurchaseBill | None:
        r = self.conn.execute(
            f"SELECT {_HEADER_COLUMNS}, {_TOTALS_COLUMNS} FROM purchase_bills WHERE bill_id=?",
            (bill_id,),
        ).fetchone()
        if not r:
            return None
        return PurchaseBill(
            header=self._to_header(r),
            lines=self.list_lines(bill_id),
            totals=self._to_totals(r),
        )

    def list_lines(self, bill_id: str) -> list[BillLine]:
        rows = self.conn.execute(
            """
            SELECT line_no, product_id, product_name,
                   CAST(qty AS REAL) AS qty, CAST(rate AS REAL) AS rate,
                   CAST(gross AS REAL) AS gross, CAST(discount AS REAL) AS discount,
                   CAST(tax AS REAL) AS tax, CAST(other AS REAL) AS other,
                   CAST(net AS REAL) AS net, company, unit
            FROM purchase_bill_lines
            WHERE bill_id = ?
            ORDER BY line_no
            """,
            (bill_id,),
        ).fetchall()
        return [BillLine(**r) for r in rows]

    def superseded_by(self, bill_id: str) -> str | None:
        r = self.conn.execute(
            "SELECT bill_id FROM purchase_bills WHERE supersedes_bill_id=?", (bill_id,)
        ).fetchone()
        return r["bill_id"] if r else None

    def latest_revision(self, bill_id: str) -> str:
        """Follow the correction chain forward and return the current bill id."""
        current = bill_id
        seen = {current}
        while True:
            nxt = self.superseded_by(current)
            if nxt is None or nxt in seen:
                return current
            seen.add(nxt)
            current = nxt

    def search_bills(
        self,
        *,
        date_from: Optional[str] = None,
        date_to: Optional[str] = None,
        vendor: Optional[str] = None,
        company: Optional[str] = None,
        tax_mode: Optional[str] = None,
        bill_id: Optional[str] = None,
        product: Optional[str] = None,
        current_only: bool = True,
        page: int = 1,
        page_size: int = 10,
    ) -> dict:
        """
        Bill summary rows for the purchase search screen.

        Returns {"total", "page", "page_size", "rows"}; each row carries
        bill_id, date, vendor, company_summary, line_count, qty, net, tax_mode.
        Superseded revisions are hidden unless current_only=False.
        """
        where: list[str] = []
        params: list = []
        if date_from:
            where.append("DATE(b.date) >= DATE(?)")
            params.append(date_from)
        if date_to:
            where.append("DATE(b.date) <= DATE(?)")
            params.append(date_to)
        if vendor:
            where.append("b.vendor = ?")
            params.append(vendor)
        if company:
            where.append("b.company_summary LIKE ?")
            params.append(f"%{company}%")
        if tax_mode:
            where.append("b.tax_mode = ?")
            params.append(tax_mode)
        if bill_id:
            where.append("LOWER(b.bill_id) LIKE ?")
            params.append(f"%{bill_id.lower()}%")
        if product:
            where.append(
                "EXISTS (SELECT 1 FROM purchase_bill_lines l "
                "WHERE l.bill_id = b.bill_id AND LOWER(l.product_name) LIKE ?)"
            )
            params.append(f"%{product.lower()}%")
        if current_only:
            where.append("NOT EXISTS (SELECT 1 FROM purchase_bills nb WHERE nb.supersedes_bill_id = b.bill_id)")

        where_sql = (" WHERE " + " AND ".join(where)) if where else ""
        total = int(self.conn.execute(
            f"SELECT COUNT(*) AS n FROM purchase_bills b{where_sql}", params
        ).fetchone()["n"])

        page = max(1, int(page))
        page_size = max(1, int(page_size))
        rows = self.conn.execute(
            f"""
            SELECT b.bill_id, b.date, b.vendor, b.company_summary, b.tax_mode,
                   CAST(b.total_qty AS REAL) AS qty, CAST(b.net_total AS REAL) AS net,
                   (SELECT COUNT(*) FROM purchase_bill_lines l WHERE l.bill_id = b.bill_id) AS line_count
            FROM purchase_bills b{where_sql}
            ORDER BY DATE(b.date) DESC, b.bill_id DESC
            LIMIT ? OFFSET ?
            """,
            (*params, page_size, (page - 1) * page_size),
        ).fetchall()
        return {
            "total": total,
            "page": page,
            "page_size": page_size,
            "rows": [dict(r) for r in rows],
        }

    def list_vendors(self) -> list[str]:
        """Vendors seen on saved bills (there is no vendor master)."""
        rows = self.conn.execute(
            "SELECT DISTINCT vendor FROM purchase_bills WHERE vendor <> '' ORDER BY vendor"
        ).fetchall()
        return [r["vendor"] for r in rows]

    # ---------- Write (no commit; caller owns the transaction) ----------
    def insert_bill(self, header: BillHeader, lines: Iterable[BillLine], totals: BillTotals) -> None:
        self.conn.execute(
            """
            INSERT INTO purchase_bills(
                bill_id, date, vendor, bill_no, company_summary, tax_mode, tax_pct,
                discount_type, discount_value, other_charges, notes, revision, supersedes_bill_id,
                total_qty, gross_total, discount_total, taxable_base, tax_total, other_total, net_total,
                created_at
            ) VALUES (?,?,?,?,?,?,?,?,?,?,?,?,?,?,?,?,?,?,?,?,?)
            """,
            (
                header.bill_id, header.date, header.vendor, header.bill_no, header.company_summary,
                header.tax_mode, header.tax_pct, header.discount_type, header.discount_value,
                header.other_charges, header.notes, header.revision, header.supersedes_bill_id,
                totals.qty, totals.gross, totals.discount, totals.taxable_base, totals.tax, totals.other, totals.net,
                header.created_at,
            ),
        )
        for ln in lines:
            self.conn.execute(
                """
                INSERT INTO purchase_bill_lines(
                    bill_id, line_no, product_id, product_name, company, unit,
                    qty, rate, gross, discount, tax, other, net
                ) VALUES (?,?,?,?,?,?,?,?,?,?,?,?,?)
                """,
                (
                    header.bill_id, ln.line_no, ln.product_id, ln.product_name, ln.company, ln.unit,
                    ln.qty, ln.rate, ln.gross, ln.discount, ln.tax, ln.other, ln.net,
                ),
            )

    @staticmethod
    def _to_header(r) -> BillHeader:
        return BillHeader(
            bill_id=r["bill_id"],
            date=r["date"],
            vendor=r["vendor"],
            tax_mode=r["tax_mode"],
            tax_pct=float(r["tax_pct"]),
            discount_type=r["discount_type"],
            discount_value=float(r["discount_value"]),
            other_charges=float(r["other_charges"]),
            bill_no=r["bill_no"],
            company_summary=r["company_summary"],
            notes=r["notes"],
            revision=int(r["revision"]),
            supersedes_bill_id=r["supersedes_bill_id"],
            created_at=r["created_at"],
        )

    @staticmethod
    def _to_totals(r) -> BillTotals:
        return BillTotals(
            qty=float(r["qty"]),
            gross=float(r["gross"]),
            discount=float(r["discount"]),
            taxable_base=float(r["taxable_base"]),
            tax=float(r["tax"]),
            other=float(r["other"]),
            net=float(r["net"]),
        )
