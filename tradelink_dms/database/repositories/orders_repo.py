from __future__ import annotations
from dataclasses import dataclass, field
import sqlite3
from typing import Iterable

from ...constants import PREFIX_ORDER
from .. import next_document_id


@dataclass
class OrderItem:
    """
    One invoiced line. `rate` is the final net rate after every discount;
    `base_rate` and `discount_pct` are snapshots kept for the invoice print.
    """
    item_id: int | None
    order_id: str | None
    product_id: int
    quantity: int
    rate: float
    base_rate: float
    discount_pct: float
    total: float
    scheme_text: str = ""
    company_id: int | None = None


@dataclass
class OrderHeader:
    order_id: str
    customer_id: int
    salesperson_id: int | None
    company_id: int
    date: str
    total_amount: float
    status: str = "pending"
    remarks: str | None = None


@dataclass
class Invoice:
    """An order together with its items (what a return is computed against)."""
    header: OrderHeader
    items: list[OrderItem] = field(default_factory=list)

    @property
    def order_id(self) -> str:
        return self.header.order_id

    @property
    def status(self) -> str:
        return self.header.status


class OrdersRepo:
    """
    Orders double as invoices. Headers and items are written once; afterwards
    only `orders.status` moves (schema triggers reject any other update).
    """

    def __init__(self, conn: sqlite3.Connection):
        conn.row_factory = sqlite3.Row
        self.conn = conn

    # ---------------------------------------------------------------------
    # READ
    # ---------------------------------------------------------------------
    def new_order_id(self, date_str: str) -> str:
        return next_document_id(self.conn, "orders", "order_id", PREFIX_ORDER, date_str)

    def list_orders(self, status: str | None = None) -> list[OrderHeader]:
        sql = (
            "SELECT order_id, customer_id, salesperson_id, company_id, date, "
            "CAST(total_amount AS REAL) AS total_amount, status, remarks FROM orders"
        )
        params: list = []
        if status:
            sql += " WHERE status = ?"
            params.append(status)
        sql += " ORDER BY DATE(date) DESC, order_id DESC"
        return [OrderHeader(**r) for r in self.conn.execute(sql, params).fetchall()]

    def get_header(self, order_id: str) -> OrderHeader | None:
        r = self.conn.execute(
            "SELECT order_id, customer_id, salesperson_id, company_id, date, "
            "CAST(total_amount AS REAL) AS total_amount, status, remarks "
            "FROM orders WHERE order_id=?",
            (order_id,),
        ).fetchone()
        return OrderHeader(**r) if r else None

    def list_items(self, order_id: str) -> list[OrderItem]:
        sql = """
        SELECT item_id, order_id, product_id, quantity,
               CAST(rate AS REAL)         AS rate,
               CAST(base_rate AS REAL)    AS base_rate,
               CAST(discount_pct AS REAL) AS discount_pct,
               CAST(total AS REAL)        AS total,
               COALESCE(scheme_text, '')  AS scheme_text,
               company_id
        FROM order_items
        WHERE order_id = ?
        ORDER BY item_id
        """
        return [OrderItem(**r) for r in self.conn.execute(sql, (order_id,)).fetchall()]

    def get_invoice(self, order_id: str) -> Invoice | None:
        header = self.get_header(order_id)
        if header is None:
            return None
        return Invoice(header=header, items=self.list_items(order_id))

    # ---------------------------------------------------------------------
    # WRITE (no commit here; the caller owns the transaction boundary)
    # ---------------------------------------------------------------------
    def insert_order(self, header: OrderHeader, items: Iterable[OrderItem]) -> list[OrderItem]:
        """
        Insert header + items. Item ids are filled in on the passed objects
        and the same objects are returned.
        """
        self.conn.execute(
            """
            INSERT INTO orders (
                order_id, customer_id, salesperson_id, company_id,
                date, total_amount, status, remarks
            ) VALUES (?,?,?,?,?,?,?,?)
            """,
            (
                header.order_id,
                header.customer_id,
                header.salesperson_id,
                header.company_id,
                header.date,
                header.total_amount,
                header.status,
                header.remarks,
            ),
        )
        saved: list[OrderItem] = []
        for it in items:
            it.order_id = header.order_id
            cur = self.conn.execute(
                """
                INSERT INTO order_items (
                    order_id, product_id, quantity, rate, base_rate,
                    discount_pct, total, scheme_text, company_id
                ) VALUES (?,?,?,?,?,?,?,?,?)
                """,
                (
                    it.order_id,
                    it.product_id,
                    it.quantity,
                    it.rate,
                    it.base_rate,
                    it.discount_pct,
                    it.total,
                    it.scheme_text or None,
                    it.company_id if it.company_id is not None else header.company_id,
                ),
            )
            it.item_id = int(cur.lastrowid)
            saved.append(it)
        return saved

    def set_status(self, order_id: str, status: str, from_status: str | None = None) -> int:
        """
        Returns the number of rows moved. With `from_status` the update only
        applies while the order is still in that status.
        """
        sql = "UPDATE orders SET status=? WHERE order_id=?"
        params: list = [status, order_id]
        if from_status is not None:
            sql += " AND status=?"
            params.append(from_status)
        return self.conn.execute(sql, params).rowcount
