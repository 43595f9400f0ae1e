# tradelink_dms/modules/sales/service.py
"""
Order placement and the order status machine.

Each public action is one unit of work: validation happens first, then every
write (header, items, stock movements, status) goes through a single
`transaction()` so a failure anywhere leaves nothing behind.
"""
from __future__ import annotations

import logging
import sqlite3
from typing import Iterable, Optional, Sequence

from ...constants import ORDER_STATUSES, ORDER_TRANSITIONS
from ...database import transaction
from ...database.repositories.customers_repo import CustomersRepo
from ...database.repositories.inventory_repo import InventoryRepo
from ...database.repositories.orders_repo import Invoice, OrderHeader, OrdersRepo
from ...database.repositories.products_repo import ProductsRepo
from ...utils.errors import DomainError, NotFoundError, ValidationError
from ...utils.helpers import round_money, today_str
from ..inventory.ledger import sale_cancel_movement, sale_movement
from .pricing import build_order_item
from .validation import OrderCart, OrderLine, validate_order

_log = logging.getLogger(__name__)


class OrderService:
    def __init__(self, conn: sqlite3.Connection):
        self.conn = conn
        self.orders = OrdersRepo(conn)
        self.products = ProductsRepo(conn)
        self.customers = CustomersRepo(conn)
        self.inventory = InventoryRepo(conn)

    # ------------------------------------------------------------------
    # Placement
    # ------------------------------------------------------------------
    def place_order(
        self,
        customer_id: int,
        lines: Sequence[OrderLine],
        *,
        salesperson_id: Optional[int] = None,
        date: Optional[str] = None,
        remarks: Optional[str] = None,
    ) -> Invoice:
        """
        Price, validate and save an order (status 'pending'), posting one
        `sale` movement per line. Raises ValidationError with every
        violation found; nothing is written in that case.
        """
        if self.customers.get(customer_id) is None:
            raise NotFoundError(f"Customer #{customer_id} not found.")
        if salesperson_id is not None and self.customers.get_salesperson(salesperson_id) is None:
            raise NotFoundError(f"Salesperson #{salesperson_id} not found.")

        lines = [(int(pid), qty) for pid, qty in lines]
        products = self.products.get_many(pid for pid, _ in lines)
        violations = validate_order(lines, products)
        if violations:
            _log.warning("Order for customer %s rejected: %d violation(s)", customer_id, len(violations))
            raise ValidationError(violations)

        items = [build_order_item(products[pid], qty) for pid, qty in lines]
        total = round_money(sum(it.total for it in items))
        date = date or today_str()
        company_id = products[lines[0][0]].company_id
        for it in items:
            _log.debug(
                "Priced product %s x%s @ %.2f (%s) = %.2f",
                it.product_id, it.quantity, it.rate, it.scheme_text or "no scheme", it.total,
            )

        with transaction(self.conn):
            header = OrderHeader(
                order_id=self.orders.new_order_id(date),
                customer_id=int(customer_id),
                salesperson_id=salesperson_id,
                company_id=company_id,
                date=date,
                total_amount=total,
                status="pending",
                remarks=remarks,
            )
            self.orders.insert_order(header, items)
            self.inventory.append(
                sale_movement(it.product_id, it.quantity, header.order_id) for it in items
            )

        _log.info("Order %s placed: %d line(s), total %.2f", header.order_id, len(items), total)
        return Invoice(header=header, items=items)

    def place_cart(self, customer_id: int, cart: OrderCart, **kwargs) -> Invoice:
        if cart.is_empty():
            raise ValidationError("Order has no items.")
        return self.place_order(customer_id, cart.order_lines(), **kwargs)

    def get_invoice(self, order_id: str) -> Invoice:
        inv = self.orders.get_invoice(order_id)
        if inv is None:
            raise NotFoundError(f"Invoice {order_id} not found.")
        return inv

    # ------------------------------------------------------------------
    # Status machine
    # ------------------------------------------------------------------
    def approve(self, order_id: str) -> None:
        self.change_status([order_id], "approved")

    def dispatch(self, order_id: str) -> None:
        self.change_status([order_id], "dispatched")

    def deliver(self, order_id: str) -> None:
        self.change_status([order_id], "delivered")

    def cancel(self, order_id: str) -> None:
        self.change_status([order_id], "cancelled")

    def bulk_approve(self, order_ids: Iterable[str]) -> int:
        return self.change_status(order_ids, "approved")

    def bulk_cancel(self, order_ids: Iterable[str]) -> int:
        return self.change_status(order_ids, "cancelled")

    def change_status(self, order_ids: Iterable[str], status: str) -> int:
        """
        Move every order to `status` or none of them. Cancelling puts the
        sold pieces back into good stock.

        Current statuses are read inside the write transaction, so an order
        changed by another connection meanwhile is checked as it is now.
        """
        ids = list(dict.fromkeys(order_ids))
        if not ids:
            return 0
        if status not in ORDER_STATUSES:
            raise DomainError(f"Unknown order status {status!r}.")
        if status in ("partially_returned", "returned"):
            raise DomainError("Return statuses are set by recording a sales return.")

        with transaction(self.conn):
            invoices = self._check_transitions(ids, status)
            for inv in invoices:
                if not self.orders.set_status(inv.order_id, status, from_status=inv.status):
                    raise DomainError(f"Invoice {inv.order_id} changed while updating; try again.")
                if status == "cancelled":
                    self.inventory.append(
                        sale_cancel_movement(it.product_id, it.quantity, inv.order_id)
                        for it in inv.items
                    )

        _log.info("%d order(s) moved to %s: %s", len(invoices), status, ", ".join(ids))
        return len(invoices)

    def _check_transitions(self, ids: list[str], status: str) -> list[Invoice]:
        problems: list[str] = []
        invoices: list[Invoice] = []
        for oid in ids:
            inv = self.orders.get_invoice(oid)
            if inv is None:
                problems.append(f"Invoice {oid} not found.")
                continue
            if status not in ORDER_TRANSITIONS.get(inv.status, ()):
                problems.append(f"Invoice {oid} cannot move from {inv.status} to {status}.")
                continue
            invoices.append(inv)
        if problems:
            _log.warning("Status change to %s rejected for %d order(s)", status, len(problems))
            if len(ids) == 1 and problems[0].endswith("not found."):
                raise NotFoundError(problems[0])
            raise DomainError("; ".join(problems))
        return invoices
