# tradelink_dms/database/repositories/products_repo.py
from __future__ import annotations
from dataclasses import dataclass
from typing import Iterable
import sqlite3

from ...utils.errors import DomainError, ValidationError
from ...utils.validators import non_empty, is_non_negative_number


@dataclass
class Product:
    """
    Catalog row with everything the pricing engine needs.

    discounted_rate is the list price after the primary (product) discount.
    The secondary scheme is two quantity tiers; tier 2 only applies once the tier-1 threshold is met.
    """
    product_id: int | None
    name: str
    company_id: int
    base_rate: float
    discounted_rate: float
    order_multiple: int = 1
    min_order_qty: int = 1
    secondary_available: bool = False
    secondary_qualifying_qty: int | None = None
    secondary_discount_pct: float | None = None
    additional_qualifying_qty: int | None = None
    additional_secondary_discount_pct: float | None = None
    is_active: bool = True


_COLUMNS = (
    "product_id, name, company_id, base_rate, discounted_rate, order_multiple, min_order_qty, "
    "secondary_available, secondary_qualifying_qty, secondary_discount_pct, "
    "additional_qualifying_qty, additional_secondary_discount_pct, is_active"
)


class ProductsRepo:
    def __init__(self, conn: sqlite3.Connection):
        self.conn = conn
        self.conn.row_factory = sqlite3.Row

    # ---------------------------- Queries ----------------------------

    def list_products(self, company_id: int | None = None, active_only: bool = True) -> list[Product]:
        where, params = [], []
        if company_id is not None:
            where.append("company_id = ?")
            params.append(int(company_id))
        if active_only:
            where.append("is_active = 1")
        sql = f"SELECT {_COLUMNS} FROM products"
        if where:
            sql += " WHERE " + " AND ".join(where)
        sql += " ORDER BY name"
        return [self._to_product(r) for r in self.conn.execute(sql, params).fetchall()]

    def get(self, product_id: int) -> Product | None:
        r = self.conn.execute(
            f"SELECT {_COLUMNS} FROM products WHERE product_id=?",
            (product_id,),
        ).fetchone()
        return self._to_product(r) if r else None

    def get_many(self, product_ids: Iterable[int]) -> dict[int, Product]:
        """Return {product_id: Product} for the ids that exist (missing ids are simply absent)."""
        ids = sorted({int(i) for i in product_ids})
        if not ids:
            return {}
        marks = ",".join("?" for _ in ids)
        rows = self.conn.execute(
            f"SELECT {_COLUMNS} FROM products WHERE product_id IN ({marks})", ids
        ).fetchall()
        return {int(r["product_id"]): self._to_product(r) for r in rows}

    # ---------------------------- Mutations ----------------------------

    def create(self, product: Product) -> int:
        self._validate(product)
        with self.conn:
            cur = self.conn.execute(
                """
                INSERT INTO products(
                    name, company_id, base_rate, discounted_rate, order_multiple, min_order_qty,
                    secondary_available, secondary_qualifying_qty, secondary_discount_pct,
                    additional_qualifying_qty, additional_secondary_discount_pct, is_active
                ) VALUES (?,?,?,?,?,?,?,?,?,?,?,?)
                """,
                (
                    product.name.strip(),
                    product.company_id,
                    float(product.base_rate),
                    float(product.discounted_rate),
                    int(product.order_multiple or 1),
                    int(product.min_order_qty or 1),
                    1 if product.secondary_available else 0,
                    product.secondary_qualifying_qty,
                    product.secondary_discount_pct,
                    product.additional_qualifying_qty,
                    product.additional_secondary_discount_pct,
                    1 if product.is_active else 0,
                ),
            )
        product.product_id = int(cur.lastrowid)
        return product.product_id

    # ---------------------------- Helpers ----------------------------

    @staticmethod
    def _validate(p: Product) -> None:
        if not non_empty(p.name):
            raise DomainError("Product name cannot be empty.")
        problems: list[str] = []
        if not is_non_negative_number(p.base_rate):
            problems.append("Base rate must be >= 0.")
        if not is_non_negative_number(p.discounted_rate):
            problems.append("Discounted rate must be >= 0.")
        elif is_non_negative_number(p.base_rate) and float(p.discounted_rate) > float(p.base_rate):
            problems.append("Discounted rate cannot exceed base rate.")
        for label, pct in (
            ("Secondary discount %", p.secondary_discount_pct),
            ("Additional secondary discount %", p.additional_secondary_discount_pct),
        ):
            if pct is not None and not (0 <= float(pct) <= 100):
                problems.append(f"{label} must be between 0 and 100.")
        if (
            p.additional_qualifying_qty is not None
            and p.secondary_qualifying_qty is not None
            and p.additional_qualifying_qty < p.secondary_qualifying_qty
        ):
            problems.append("Additional qualifying qty cannot be below the secondary qualifying qty.")
        if problems:
            raise ValidationError(problems)

    @staticmethod
    def _to_product(r) -> Product:
        def opt_float(v):
            return None if v is None else float(v)

        def opt_int(v):
            return None if v is None else int(v)

        return Product(
            product_id=int(r["product_id"]),
            name=r["name"],
            company_id=int(r["company_id"]),
            base_rate=float(r["base_rate"]),
            discounted_rate=float(r["discounted_rate"]),
            order_multiple=int(r["order_multiple"]),
            min_order_qty=int(r["min_order_qty"]),
            secondary_available=bool(r["secondary_available"]),
            secondary_qualifying_qty=opt_int(r["secondary_qualifying_qty"]),
            secondary_discount_pct=opt_float(r["secondary_discount_pct"]),
            additional_qualifying_qty=opt_int(r["additional_qualifying_qty"]),
            additional_secondary_discount_pct=opt_float(r["additional_secondary_discount_pct"]),
            is_active=bool(r["is_active"]),
        )
