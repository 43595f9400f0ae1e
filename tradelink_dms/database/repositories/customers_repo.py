from __future__ import annotations
from dataclasses import dataclass
import sqlite3

from ...utils.errors import DomainError


@dataclass
class Customer:
    customer_id: int | None
    name: str
    phone: str | None
    pan_number: str | None
    route_name: str | None
    is_active: bool = True


@dataclass
class Salesperson:
    salesperson_id: int | None
    name: str
    code: str | None


class CustomersRepo:
    """Customers (shops) and the salespersons who book orders for them."""

    def __init__(self, conn: sqlite3.Connection):
        conn.row_factory = sqlite3.Row
        self.conn = conn

    # ---- Internal helpers -------------------------------------------------

    @staticmethod
    def _normalize_text(s: str | None) -> str | None:
        if s is None:
            return None
        s = s.strip()
        return s or None

    @staticmethod
    def _ensure_non_empty(value: str | None, field_label: str) -> None:
        if value is None or value.strip() == "":
            raise DomainError(f"{field_label} cannot be empty.")

    # ---- Customers --------------------------------------------------------

    def list_customers(self, active_only: bool = True) -> list[Customer]:
        sql = "SELECT customer_id, name, phone, pan_number, route_name, is_active FROM customers"
        if active_only:
            sql += " WHERE is_active = 1"
        sql += " ORDER BY customer_id DESC"
        return [self._to_customer(r) for r in self.conn.execute(sql).fetchall()]

    def get(self, customer_id: int) -> Customer | None:
        r = self.conn.execute(
            "SELECT customer_id, name, phone, pan_number, route_name, is_active "
            "FROM customers WHERE customer_id=?",
            (customer_id,),
        ).fetchone()
        return self._to_customer(r) if r else None

    def create(
        self,
        name: str,
        phone: str | None = None,
        pan_number: str | None = None,
        route_name: str | None = None,
    ) -> int:
        self._ensure_non_empty(name, "Shop name")
        with self.conn:
            cur = self.conn.execute(
                "INSERT INTO customers(name, phone, pan_number, route_name) VALUES (?,?,?,?)",
                (
                    self._normalize_text(name),
                    self._normalize_text(phone),
                    self._normalize_text(pan_number),
                    self._normalize_text(route_name),
                ),
            )
        return int(cur.lastrowid)

    # ---- Salespersons -----------------------------------------------------

    def get_salesperson(self, salesperson_id: int) -> Salesperson | None:
        r = self.conn.execute(
            "SELECT salesperson_id, name, code FROM salespersons WHERE salesperson_id=?",
            (salesperson_id,),
        ).fetchone()
        return Salesperson(**r) if r else None

    def create_salesperson(self, name: str, code: str | None = None) -> int:
        self._ensure_non_empty(name, "Salesperson name")
        with self.conn:
            cur = self.conn.execute(
                "INSERT INTO salespersons(name, code) VALUES (?, ?)",
                (self._normalize_text(name), self._normalize_text(code)),
            )
        return int(cur.lastrowid)

    @staticmethod
    def _to_customer(r) -> Customer:
        return Customer(
            customer_id=int(r["customer_id"]),
            name=r["name"],
            phone=r["phone"],
            pan_number=r["pan_number"],
            route_name=r["route_name"],
            is_active=bool(r["is_active"]),
        )
