# tradelink_dms/modules/returns/service.py
from __future__ import annotations

import logging
import sqlite3
from typing import Mapping, Optional

from ...database import transaction
from ...database.repositories.damage_repo import DamageRepo
from ...database.repositories.inventory_repo import InventoryRepo
from ...database.repositories.orders_repo import OrdersRepo
from ...database.repositories.returns_repo import ReturnsRepo
from ...utils.errors import NotFoundError, ValidationError
from ...utils.helpers import now_iso, today_str
from .computation import ReturnComputation, compute_return

_log = logging.getLogger(__name__)


class ReturnService:
    """
    Saves a sales return: header, items, damage logs, stock movements and the
    invoice status change, all in one transaction.
    """

    def __init__(self, conn: sqlite3.Connection):
        self.conn = conn
        self.orders = OrdersRepo(conn)
        self.returns = ReturnsRepo(conn)
        self.damage = DamageRepo(conn)
        self.inventory = InventoryRepo(conn)

    def preview_return(
        self,
        order_id: str,
        return_type: str,
        reason: str,
        lines: Optional[Mapping[int, object]] = None,
        notes: Optional[str] = None,
        created_by: Optional[str] = None,
    ) -> ReturnComputation:
        invoice = self.orders.get_invoice(order_id)
        if invoice is None:
            raise NotFoundError(f"Invoice {order_id} not found.")
        return compute_return(
            invoice,
            return_type,
            reason,
            lines,
            notes=notes,
            already_returned=self.returns.returned_quantities(order_id),
            created_by=created_by,
        )

    def create_return(
        self,
        order_id: str,
        return_type: str,
        reason: str,
        lines: Optional[Mapping[int, object]] = None,
        notes: Optional[str] = None,
        created_by: Optional[str] = None,
        date: Optional[str] = None,
    ) -> ReturnComputation:
        date = date or today_str()
        created_at = now_iso()

        # returned-to-date is read under the write lock, so a return committed
        # by another connection in the meantime is counted
        with transaction(self.conn):
            try:
                comp = self.preview_return(order_id, return_type, reason, lines, notes, created_by)
            except ValidationError as e:
                _log.warning("Return on %s rejected: %d violation(s)", order_id, len(e.violations))
                raise
            header = comp.sales_return
            header.return_id = self.returns.new_return_id(date)
            header.created_at = created_at
            self.returns.insert_return(header, comp.return_items)

            for log in comp.damage_logs:
                log.source_return_id = header.return_id
                log.created_at = created_at
            self.damage.insert_logs(comp.damage_logs, date)

            for m in comp.movements:
                m.related_sales_return_id = header.return_id
                m.created_at = created_at
            for m, log in zip(comp.damaged_movements, comp.damage_logs):
                m.related_damaged_log_id = log.log_id
            self.inventory.append(comp.movements)

            self.orders.set_status(order_id, comp.new_status)

        _log.info(
            "Return %s on %s saved: %s, %d line(s), amount %.2f, %d damaged log(s)",
            header.return_id, order_id, return_type, len(comp.return_items),
            header.total_return_amount, len(comp.damage_logs),
        )
        return comp

    def returnable_quantities(self, order_id: str) -> dict[int, int]:
        if self.orders.get_header(order_id) is None:
            raise NotFoundError(f"Invoice {order_id} not found.")
        return self.returns.returnable_quantities(order_id)
