from __future__ import annotations
from dataclasses import dataclass
import sqlite3
from typing import Dict, Iterable

from ...constants import PREFIX_RETURN
from .. import next_document_id


@dataclass
class SalesReturn:
    return_id: str | None
    order_id: str
    customer_id: int
    return_type: str  # 'full' | 'partial'
    reason: str
    total_return_amount: float
    notes: str | None = None
    created_by: str | None = None
    created_at: str | None = None


@dataclass
class SalesReturnItem:
    return_item_id: int | None
    return_id: str | None
    order_item_id: int
    product_id: int
    qty_invoiced: int
    qty_returned_good: int
    qty_returned_damaged: int
    rate: float
    line_return_amount: float

    @property
    def qty_returned(self) -> int:
        return self.qty_returned_good + self.qty_returned_damaged


class ReturnsRepo:
    """
    Sales returns are written once per return event and never edited.
    Returned-to-date per invoice line is summed over every return record,
    so a later return is checked against what is still outstanding.
    """

    def __init__(self, conn: sqlite3.Connection):
        conn.row_factory = sqlite3.Row
        self.conn = conn

    def new_return_id(self, date_str: str) -> str:
        return next_document_id(self.conn, "sales_returns", "return_id", PREFIX_RETURN, date_str)

    # ---------- Query ----------
    def get_header(self, return_id: str) -> SalesReturn | None:
        r = self.conn.execute(
            "SELECT return_id, order_id, customer_id, return_type, reason, "
            "CAST(total_return_amount AS REAL) AS total_return_amount, notes, created_by, created_at "
            "FROM sales_returns WHERE return_id=?",
            (return_id,),
        ).fetchone()
        return SalesReturn(**r) if r else None

    def list_items(self, return_id: str) -> list[SalesReturnItem]:
        rows = self.conn.execute(
            """
            SELECT return_item_id, return_id, order_item_id, product_id, qty_invoiced,
                   qty_returned_good, qty_returned_damaged,
                   CAST(rate AS REAL) AS rate,
                   CAST(line_return_amount AS REAL) AS line_return_amount
            FROM sales_return_items
            WHERE return_id = ?
            ORDER BY return_item_id
            """,
            (return_id,),
        ).fetchall()
        return [SalesReturnItem(**r) for r in rows]

    def list_returns_for_order(self, order_id: str) -> list[SalesReturn]:
        rows = self.conn.execute(
            "SELECT return_id, order_id, customer_id, return_type, reason, "
            "CAST(total_return_amount AS REAL) AS total_return_amount, notes, created_by, created_at "
            "FROM sales_returns WHERE order_id=? ORDER BY created_at, return_id",
            (order_id,),
        ).fetchall()
        return [SalesReturn(**r) for r in rows]

    def returned_quantities(self, order_id: str) -> Dict[int, int]:
        """
        {order_item_id: good + damaged returned so far, across all returns}.
        Lines never returned are absent.
        """
        rows = self.conn.execute(
            """
            SELECT sri.order_item_id,
                   SUM(sri.qty_returned_good + sri.qty_returned_damaged) AS returned_so_far
            FROM sales_return_items sri
            JOIN sales_returns sr ON sr.return_id = sri.return_id
            WHERE sr.order_id = ?
            GROUP BY sri.order_item_id
            """,
            (order_id,),
        ).fetchall()
        return {int(r["order_item_id"]): int(r["returned_so_far"]) for r in rows}

    def returnable_quantities(self, order_id: str) -> Dict[int, int]:
        """
        Remaining returnable quantity per invoice line (clamped to >= 0).
        """
        returned = self.returned_quantities(order_id)
        rows = self.conn.execute(
            "SELECT item_id, quantity FROM order_items WHERE order_id=? ORDER BY item_id",
            (order_id,),
        ).fetchall()
        out: Dict[int, int] = {}
        for r in rows:
            item_id = int(r["item_id"])
            out[item_id] = max(0, int(r["quantity"]) - returned.get(item_id, 0))
        return out

    # ---------- Write (no commit; caller owns the transaction) ----------
    def insert_return(self, header: SalesReturn, items: Iterable[SalesReturnItem]) -> list[SalesReturnItem]:
        self.conn.execute(
            """
            INSERT INTO sales_returns(
                return_id, order_id, customer_id, return_type, reason, notes,
                total_return_amount, created_by, created_at
            ) VALUES (?,?,?,?,?,?,?,?,?)
            """,
            (
                header.return_id,
                header.order_id,
                header.customer_id,
                header.return_type,
                header.reason,
                header.notes,
                header.total_return_amount,
                header.created_by,
                header.created_at,
            ),
        )
        saved: list[SalesReturnItem] = []
        for it in items:
            it.return_id = header.return_id
            cur = self.conn.execute(
                """
                INSERT INTO sales_return_items(
                    return_id, order_item_id, product_id, qty_invoiced,
                    qty_returned_good, qty_returned_damaged, rate, line_return_amount
                ) VALUES (?,?,?,?,?,?,?,?)
                """,
                (
                    it.return_id,
                    it.order_item_id,
                    it.product_id,
                    it.qty_invoiced,
                    it.qty_returned_good,
                    it.qty_returned_damaged,
                    it.rate,
                    it.line_return_amount,
                ),
            )
            it.return_item_id = int(cur.lastrowid)
            saved.append(it)
        return saved
