# tradelink_dms/modules/inventory/service.py
from __future__ import annotations

import logging
import sqlite3
from typing import Optional

from ...constants import DAMAGE_REASONS
from ...database import transaction
from ...database.repositories.damage_repo import DamagedGoodsLog, DamageRepo
from ...database.repositories.inventory_repo import InventoryMovement, InventoryRepo, StockLevel
from ...database.repositories.products_repo import ProductsRepo
from ...utils.errors import NotFoundError, ValidationError
from ...utils.helpers import now_iso, today_str
from ...utils.validators import is_whole_number
from .ledger import check_movement, damage_adjustment_pair, replay

_log = logging.getLogger(__name__)


class InventoryService:
    """Stock queries plus damage found in the godown (not via a return)."""

    def __init__(self, conn: sqlite3.Connection):
        self.conn = conn
        self.inventory = InventoryRepo(conn)
        self.damage = DamageRepo(conn)
        self.products = ProductsRepo(conn)

    def log_internal_damage(
        self,
        product_id: int,
        qty: int,
        reason: str,
        notes: Optional[str] = None,
        created_by: Optional[str] = None,
        date: Optional[str] = None,
    ) -> DamagedGoodsLog:
        """
        Record damaged pieces and move them from good to damaged stock
        (one log + a matched damage_adjustment pair, atomically).
        """
        violations: list[str] = []
        if not is_whole_number(qty) or float(qty) <= 0:
            violations.append(f"Damaged quantity must be a whole number > 0 (got {qty!r}).")
        if reason not in DAMAGE_REASONS:
            violations.append(f"Unknown damage reason {reason!r}.")
        if violations:
            _log.warning("Internal damage for product %s rejected: %d violation(s)", product_id, len(violations))
            raise ValidationError(violations)
        if self.products.get(product_id) is None:
            raise NotFoundError(f"Product #{product_id} not found.")

        date = date or today_str()
        log = DamagedGoodsLog(
            log_id=None,
            product_id=int(product_id),
            qty_pieces=int(float(qty)),
            damage_reason=reason,
            source_type="internal",
            notes=notes,
            created_by=created_by,
            created_at=now_iso(),
        )
        with transaction(self.conn):
            self.damage.insert_logs([log], date)
            pair = damage_adjustment_pair(log.product_id, log.qty_pieces, damaged_log_id=log.log_id)
            for m in pair:
                m.created_at = log.created_at
            self.inventory.append(pair)

        _log.info("Damage %s logged: product %s x%d (%s)", log.log_id, product_id, log.qty_pieces, reason)
        return log

    def post_movements(self, movements: list[InventoryMovement]) -> list[InventoryMovement]:
        """Append pre-built movements after checking each against the ledger rules."""
        for m in movements:
            check_movement(m)
        with transaction(self.conn):
            saved = self.inventory.append(movements)
        _log.info("Posted %d movement(s)", len(saved))
        return saved

    def stock_level(self, product_id: int) -> StockLevel:
        return self.inventory.stock_level(product_id)

    def stock_levels(self) -> dict[int, StockLevel]:
        return self.inventory.stock_levels()

    def replayed_stock(self, product_id: Optional[int] = None) -> dict[int, StockLevel]:
        """Stock rebuilt in Python from the raw movements; matches the SQL sums."""
        return replay(self.inventory.list_movements(product_id=product_id))
