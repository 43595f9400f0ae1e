"""
Repository for the inventory movement ledger.

Conventions:
- inventory_movements is append-only (schema triggers abort UPDATE/DELETE).
- A movement touches exactly one pool: good stock (is_damaged_stock=0) or
  damaged stock (is_damaged_stock=1). The schema CHECK encodes which
  movement types may touch which pool with which sign.
- Stock levels are always SUMs over the ledger; nothing stores a balance.
"""

from __future__ import annotations

from dataclasses import dataclass
import sqlite3
from typing import Iterable, Optional, List

from ...utils.helpers import now_iso


@dataclass
class InventoryMovement:
    movement_id: int | None
    product_id: int
    movement_type: str
    qty_delta_pieces: int
    is_damaged_stock: bool
    related_invoice_id: str | None = None
    related_sales_return_id: str | None = None
    related_damaged_log_id: str | None = None
    created_at: str | None = None


@dataclass(frozen=True)
class StockLevel:
    good: int = 0
    damaged: int = 0


class InventoryRepo:
    def __init__(self, conn: sqlite3.Connection):
        self.conn = conn
        self.conn.row_factory = sqlite3.Row

    # ------------------------------------------------------------------
    # Append (no commit; the caller owns the transaction)
    # ------------------------------------------------------------------
    def append(self, movements: Iterable[InventoryMovement]) -> list[InventoryMovement]:
        out: list[InventoryMovement] = []
        for m in movements:
            if not m.created_at:
                m.created_at = now_iso()
            cur = self.conn.execute(
                """
                INSERT INTO inventory_movements(
                    product_id, movement_type, qty_delta_pieces, is_damaged_stock,
                    related_invoice_id, related_sales_return_id, related_damaged_log_id,
                    created_at
                ) VALUES (?,?,?,?,?,?,?,?)
                """,
                (
                    int(m.product_id),
                    m.movement_type,
                    int(m.qty_delta_pieces),
                    1 if m.is_damaged_stock else 0,
                    m.related_invoice_id,
                    m.related_sales_return_id,
                    m.related_damaged_log_id,
                    m.created_at,
                ),
            )
            m.movement_id = int(cur.lastrowid)
            out.append(m)
        return out

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------
    def list_movements(
        self,
        *,
        product_id: Optional[int] = None,
        invoice_id: Optional[str] = None,
        sales_return_id: Optional[str] = None,
        movement_type: Optional[str] = None,
    ) -> List[InventoryMovement]:
        """
        Movements in insertion order, optionally filtered. Only applies WHERE
        fragments when the corresponding filter is provided.
        """
        where: List[str] = []
        params: List = []
        if product_id is not None:
            where.append("product_id = ?")
            params.append(int(product_id))
        if invoice_id is not None:
            where.append("related_invoice_id = ?")
            params.append(invoice_id)
        if sales_return_id is not None:
            where.append("related_sales_return_id = ?")
            params.append(sales_return_id)
        if movement_type is not None:
            where.append("movement_type = ?")
            params.append(movement_type)

        sql = """
            SELECT movement_id, product_id, movement_type, qty_delta_pieces, is_damaged_stock,
                   related_invoice_id, related_sales_return_id, related_damaged_log_id, created_at
            FROM inventory_movements
        """
        if where:
            sql += " WHERE " + " AND ".join(where)
        sql += " ORDER BY movement_id"
        return [self._to_movement(r) for r in self.conn.execute(sql, params).fetchall()]

    def stock_level(self, product_id: int) -> StockLevel:
        row = self.conn.execute(
            """
            SELECT
              COALESCE(SUM(CASE WHEN is_damaged_stock = 0 THEN qty_delta_pieces END), 0) AS good,
              COALESCE(SUM(CASE WHEN is_damaged_stock = 1 THEN qty_delta_pieces END), 0) AS damaged
            FROM inventory_movements
            WHERE product_id = ?
            """,
            (int(product_id),),
        ).fetchone()
        return StockLevel(good=int(row["good"]), damaged=int(row["damaged"]))

    def stock_levels(self) -> dict[int, StockLevel]:
        """Every product (including ones with no movements yet) from v_stock_levels."""
        rows = self.conn.execute(
            "SELECT product_id, good_stock, damaged_stock FROM v_stock_levels ORDER BY product_id"
        ).fetchall()
        return {
            int(r["product_id"]): StockLevel(good=int(r["good_stock"]), damaged=int(r["damaged_stock"]))
            for r in rows
        }

    @staticmethod
    def _to_movement(r) -> InventoryMovement:
        return InventoryMovement(
            movement_id=int(r["movement_id"]),
            product_id=int(r["product_id"]),
            movement_type=r["movement_type"],
            qty_delta_pieces=int(r["qty_delta_pieces"]),
            is_damaged_stock=bool(r["is_damaged_stock"]),
            related_invoice_id=r["related_invoice_id"],
            related_sales_return_id=r["related_sales_return_id"],
            related_damaged_log_id=r["related_damaged_log_id"],
            created_at=r["created_at"],
        )
