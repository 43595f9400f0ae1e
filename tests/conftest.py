# tests/conftest.py
# ---------------------------------------------------------------------
# Ground rules:
# - Every test gets its own SQLite file under tmp_path (schema applied by
#   get_connection), so service transactions really commit/roll back
# - Reference data comes from tests/seed_common.sql (idempotent)
# - conn.row_factory = sqlite3.Row, PRAGMA foreign_keys=ON
# - Provide handy ids + repo/service fixtures
# ---------------------------------------------------------------------

from __future__ import annotations

import sqlite3
from pathlib import Path

import pytest

from tradelink_dms.database import get_connection
from tradelink_dms.database.repositories import (
    DamageRepo,
    InventoryRepo,
    OrdersRepo,
    ProductsRepo,
    PurchasesRepo,
    ReturnsRepo,
)
from tradelink_dms.modules.inventory import InventoryService
from tradelink_dms.modules.purchase import PurchaseService
from tradelink_dms.modules.returns import ReturnService
from tradelink_dms.modules.sales import OrderService

# ---------- Paths ----------
SEED_SQL = Path(__file__).resolve().parent / "seed_common.sql"


# ---------- Per-test database ----------
@pytest.fixture()
def conn(tmp_path):
    """Fresh database file with schema + seed; closed after the test."""
    con = get_connection(tmp_path / "tradelink_test.db")
    con.executescript(SEED_SQL.read_text(encoding="utf-8"))
    con.commit()
    try:
        yield con
    finally:
        con.close()


@pytest.fixture()
def other_conn(conn, tmp_path):
    """A second connection to the same database file (another clerk's session)."""
    con = get_connection(tmp_path / "tradelink_test.db")
    try:
        yield con
    finally:
        con.close()


# ---------- Handy lookups ----------
@pytest.fixture()
def ids(conn: sqlite3.Connection) -> dict:
    """Common IDs used throughout the tests."""
    def one(sql: str, *p):
        r = conn.execute(sql, p).fetchone()
        return None if r is None else r[0]

    return {
        "company_foods": one("SELECT company_id FROM companies WHERE name='Himalayan Foods'"),
        "company_bev": one("SELECT company_id FROM companies WHERE name='Everest Beverages'"),
        "customer": one("SELECT customer_id FROM customers WHERE name='Shrestha Kirana Pasal'"),
        "customer_2": one("SELECT customer_id FROM customers WHERE name='Gurung General Store'"),
        "salesperson": one("SELECT salesperson_id FROM salespersons WHERE name='Ram Thapa'"),
        "noodles": one("SELECT product_id FROM products WHERE name='Noodles Classic'"),
        "biscuits": one("SELECT product_id FROM products WHERE name='Biscuit Tier Pack'"),
        "juice": one("SELECT product_id FROM products WHERE name='Juice 1L'"),
    }


# ---------- Repositories ----------
@pytest.fixture()
def products_repo(conn):
    return ProductsRepo(conn)


@pytest.fixture()
def orders_repo(conn):
    return OrdersRepo(conn)


@pytest.fixture()
def returns_repo(conn):
    return ReturnsRepo(conn)


@pytest.fixture()
def damage_repo(conn):
    return DamageRepo(conn)


@pytest.fixture()
def inventory_repo(conn):
    return InventoryRepo(conn)


@pytest.fixture()
def purchases_repo(conn):
    return PurchasesRepo(conn)


# ---------- Services ----------
@pytest.fixture()
def order_service(conn):
    return OrderService(conn)


@pytest.fixture()
def return_service(conn):
    return ReturnService(conn)


@pytest.fixture()
def inventory_service(conn):
    return InventoryService(conn)


@pytest.fixture()
def purchase_service(conn):
    return PurchaseService(conn)


@pytest.fixture()
def count_rows(conn):
    """count_rows('orders') -> int"""
    def _count(table: str) -> int:
        return int(conn.execute(f"SELECT COUNT(*) FROM {table}").fetchone()[0])
    return _count
