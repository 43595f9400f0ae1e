from __future__ import annotations
from dataclasses import dataclass
import sqlite3
from typing import Iterable, Optional

from ...constants import PREFIX_DAMAGE
from ...utils.helpers import now_iso
from .. import next_document_id


@dataclass
class DamagedGoodsLog:
    log_id: str | None
    product_id: int
    qty_pieces: int
    damage_reason: str
    source_type: str  # 'return' | 'internal'
    source_invoice_id: str | None = None
    source_return_id: str | None = None
    notes: str | None = None
    created_by: str | None = None
    created_at: str | None = None


class DamageRepo:
    def __init__(self, conn: sqlite3.Connection):
        conn.row_factory = sqlite3.Row
        self.conn = conn

    def new_log_id(self, date_str: str) -> str:
        return next_document_id(self.conn, "damaged_goods_logs", "log_id", PREFIX_DAMAGE, date_str)

    def insert_logs(self, logs: Iterable[DamagedGoodsLog], date_str: str) -> list[DamagedGoodsLog]:
        """
        Insert logs, assigning DMG ids for the given day where missing.
        No commit; the caller owns the transaction.
        """
        out: list[DamagedGoodsLog] = []
        for log in logs:
            if not log.log_id:
                log.log_id = self.new_log_id(date_str)
            if not log.created_at:
                log.created_at = now_iso()
            self.conn.execute(
                """
                INSERT INTO damaged_goods_logs(
                    log_id, product_id, qty_pieces, damage_reason, source_type,
                    source_invoice_id, source_return_id, notes, created_by, created_at
                ) VALUES (?,?,?,?,?,?,?,?,?,?)
                """,
                (
                    log.log_id,
                    int(log.product_id),
                    int(log.qty_pieces),
                    log.damage_reason,
                    log.source_type,
                    log.source_invoice_id,
                    log.source_return_id,
                    log.notes,
                    log.created_by,
                    log.created_at,
                ),
            )
            out.append(log)
        return out

    def list_logs(
        self,
        *,
        source_type: Optional[str] = None,
        damage_reason: Optional[str] = None,
        product_id: Optional[int] = None,
    ) -> list[DamagedGoodsLog]:
        where, params = [], []
        if source_type:
            where.append("source_type = ?")
            params.append(source_type)
        if damage_reason:
            where.append("damage_reason = ?")
            params.append(damage_reason)
        if product_id is not None:
            where.append("product_id = ?")
            params.append(int(product_id))
        sql = (
            "SELECT log_id, product_id, qty_pieces, damage_reason, source_type, source_invoice_id, "
            "source_return_id, notes, created_by, created_at FROM damaged_goods_logs"
        )
        if where:
            sql += " WHERE " + " AND ".join(where)
        sql += " ORDER BY created_at DESC, log_id DESC"
        return [DamagedGoodsLog(**r) for r in self.conn.execute(sql, params).fetchall()]
