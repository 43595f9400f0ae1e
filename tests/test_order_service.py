# tests/test_order_service.py

from __future__ import annotations

import sqlite3

import pytest

from tradelink_dms.database.repositories import InventoryRepo, StockLevel
from tradelink_dms.modules.sales import OrderCart, OrderService
from tradelink_dms.modules.sales import service as sales_service_module
from tradelink_dms.utils.errors import DomainError, NotFoundError, PersistenceError, ValidationError


# ---------------------------------------------------------------------
# Placement
# ---------------------------------------------------------------------

def test_place_order_saves_invoice_and_sale_movements(ids, order_service, orders_repo, inventory_repo):
    inv = order_service.place_order(
        ids["customer"],
        [(ids["noodles"], 24), (ids["biscuits"], 48)],
        salesperson_id=ids["salesperson"],
        date="2025-02-10",
        remarks="route north, Monday",
    )
    assert inv.order_id == "INV20250210-0001"
    assert inv.status == "pending"
    assert inv.header.company_id == ids["company_foods"]
    assert inv.header.total_amount == 1063.92

    saved = orders_repo.get_invoice(inv.order_id)
    assert saved.header == inv.header
    assert [(it.product_id, it.quantity, it.rate, it.scheme_text) for it in saved.items] == [
        (ids["noodles"], 24, 9.31, "2% Qty Scheme"),
        (ids["biscuits"], 48, 17.51, "5% Qty Scheme + 3% Add."),
    ]

    moves = inventory_repo.list_movements(invoice_id=inv.order_id)
    assert [(m.movement_type, m.product_id, m.qty_delta_pieces) for m in moves] == [
        ("sale", ids["noodles"], -24),
        ("sale", ids["biscuits"], -48),
    ]
    assert inventory_repo.stock_level(ids["noodles"]) == StockLevel(good=-24, damaged=0)


def test_order_ids_run_per_day(ids, order_service):
    a = order_service.place_order(ids["customer"], [(ids["noodles"], 1)], date="2025-02-10")
    b = order_service.place_order(ids["customer"], [(ids["noodles"], 1)], date="2025-02-10")
    c = order_service.place_order(ids["customer"], [(ids["noodles"], 1)], date="2025-02-11")
    assert (a.order_id, b.order_id, c.order_id) == (
        "INV20250210-0001",
        "INV20250210-0002",
        "INV20250211-0001",
    )


def test_invalid_order_writes_nothing(ids, order_service, count_rows):
    with pytest.raises(ValidationError) as exc:
        order_service.place_order(ids["customer"], [(ids["biscuits"], 10), (ids["juice"], 1)])
    assert len(exc.value.violations) == 3
    assert count_rows("orders") == 0
    assert count_rows("order_items") == 0
    assert count_rows("inventory_movements") == 0


def test_unknown_customer_or_product(ids, order_service):
    with pytest.raises(NotFoundError):
        order_service.place_order(9999, [(ids["noodles"], 1)])
    with pytest.raises(NotFoundError):
        order_service.place_order(ids["customer"], [(ids["noodles"], 1)], salesperson_id=9999)
    with pytest.raises(ValidationError) as exc:
        order_service.place_order(ids["customer"], [(4242, 1)])
    assert "#4242" in str(exc.value)


def test_place_cart(ids, order_service, products_repo):
    cart = OrderCart()
    cart.add(products_repo.get(ids["noodles"]), 24)
    inv = order_service.place_cart(ids["customer"], cart, date="2025-02-10")
    assert inv.header.total_amount == cart.total_amount == 223.44

    with pytest.raises(ValidationError):
        order_service.place_cart(ids["customer"], OrderCart())


def test_failure_mid_transaction_rolls_back(ids, order_service, count_rows, monkeypatch):
    def boom(self, movements):
        list(movements)
        raise sqlite3.OperationalError("disk I/O error")

    monkeypatch.setattr(InventoryRepo, "append", boom)
    with pytest.raises(PersistenceError):
        order_service.place_order(ids["customer"], [(ids["noodles"], 24)])
    assert count_rows("orders") == 0
    assert count_rows("order_items") == 0


# ---------------------------------------------------------------------
# Status machine
# ---------------------------------------------------------------------

def test_forward_lifecycle(ids, order_service, orders_repo):
    inv = order_service.place_order(ids["customer"], [(ids["noodles"], 5)])
    order_service.approve(inv.order_id)
    order_service.dispatch(inv.order_id)
    order_service.deliver(inv.order_id)
    assert orders_repo.get_header(inv.order_id).status == "delivered"


@pytest.mark.parametrize(
    "steps, target",
    [
        ([], "dispatch"),
        ([], "deliver"),
        (["approve", "dispatch"], "cancel"),
        (["cancel"], "approve"),
    ],
)
def test_invalid_transitions(ids, order_service, steps, target):
    inv = order_service.place_order(ids["customer"], [(ids["noodles"], 5)])
    for step in steps:
        getattr(order_service, step)(inv.order_id)
    with pytest.raises(DomainError):
        getattr(order_service, target)(inv.order_id)


def test_cancel_restores_good_stock(ids, order_service, inventory_repo):
    inv = order_service.place_order(ids["customer"], [(ids["noodles"], 24), (ids["biscuits"], 12)])
    order_service.approve(inv.order_id)
    order_service.cancel(inv.order_id)

    types = [m.movement_type for m in inventory_repo.list_movements(invoice_id=inv.order_id)]
    assert types == ["sale", "sale", "sale_cancel", "sale_cancel"]
    assert inventory_repo.stock_level(ids["noodles"]) == StockLevel()
    assert inventory_repo.stock_level(ids["biscuits"]) == StockLevel()


def test_bulk_approve_is_all_or_nothing(ids, order_service, orders_repo):
    a = order_service.place_order(ids["customer"], [(ids["noodles"], 1)])
    b = order_service.place_order(ids["customer_2"], [(ids["juice"], 1)])
    c = order_service.place_order(ids["customer"], [(ids["noodles"], 2)])
    order_service.cancel(c.order_id)

    with pytest.raises(DomainError) as exc:
        order_service.bulk_approve([a.order_id, b.order_id, c.order_id])
    assert c.order_id in str(exc.value)
    assert orders_repo.get_header(a.order_id).status == "pending"

    assert order_service.bulk_approve([a.order_id, b.order_id]) == 2
    assert {h.order_id for h in orders_repo.list_orders(status="approved")} == {a.order_id, b.order_id}


def test_bulk_cancel(ids, order_service, inventory_repo):
    a = order_service.place_order(ids["customer"], [(ids["noodles"], 3)])
    b = order_service.place_order(ids["customer"], [(ids["noodles"], 4)])
    assert order_service.bulk_cancel([a.order_id, b.order_id]) == 2
    assert inventory_repo.stock_level(ids["noodles"]) == StockLevel()


def test_unknown_order(order_service):
    with pytest.raises(NotFoundError):
        order_service.approve("INV19990101-0001")
    with pytest.raises(NotFoundError):
        order_service.get_invoice("INV19990101-0001")


# ---------------------------------------------------------------------
# Saved orders are snapshots
# ---------------------------------------------------------------------

def test_order_header_and_items_are_locked(conn, ids, order_service):
    inv = order_service.place_order(ids["customer"], [(ids["noodles"], 24)])
    with pytest.raises(sqlite3.IntegrityError, match="immutable"):
        conn.execute("UPDATE orders SET total_amount=1 WHERE order_id=?", (inv.order_id,))
    conn.rollback()
    with pytest.raises(sqlite3.IntegrityError, match="immutable"):
        conn.execute("UPDATE order_items SET rate=1 WHERE order_id=?", (inv.order_id,))
    conn.rollback()
    with pytest.raises(sqlite3.IntegrityError, match="immutable"):
        conn.execute("DELETE FROM order_items WHERE order_id=?", (inv.order_id,))
    conn.rollback()


def test_return_statuses_need_a_return(ids, order_service):
    inv = order_service.place_order(ids["customer"], [(ids["noodles"], 5)])
    order_service.approve(inv.order_id)
    with pytest.raises(DomainError, match="sales return"):
        order_service.change_status([inv.order_id], "returned")
    with pytest.raises(DomainError, match="Unknown order status"):
        order_service.change_status([inv.order_id], "shipped")


# ---------------------------------------------------------------------
# Two sessions on one order
# ---------------------------------------------------------------------

def test_cancel_by_another_session_is_not_repeated(
    ids, other_conn, order_service, inventory_repo, monkeypatch
):
    inv = order_service.place_order(ids["customer"], [(ids["noodles"], 10)])
    other_clerk = OrderService(other_conn)
    real_transaction = sales_service_module.transaction
    fired = []

    def rival_commits_first(c):
        if c is other_conn and not fired:
            fired.append(True)
            order_service.cancel(inv.order_id)
        return real_transaction(c)

    monkeypatch.setattr(sales_service_module, "transaction", rival_commits_first)
    with pytest.raises(DomainError, match="cannot move from cancelled"):
        other_clerk.cancel(inv.order_id)

    assert fired
    types = [m.movement_type for m in inventory_repo.list_movements(invoice_id=inv.order_id)]
    assert types == ["sale", "sale_cancel"]
    assert inventory_repo.stock_level(ids["noodles"]) == StockLevel()


def test_set_status_guard_on_previous_status(ids, conn, order_service, orders_repo):
    inv = order_service.place_order(ids["customer"], [(ids["noodles"], 1)])
    assert orders_repo.set_status(inv.order_id, "approved", from_status="dispatched") == 0
    assert orders_repo.set_status(inv.order_id, "approved", from_status="pending") == 1
    conn.commit()
    assert orders_repo.get_header(inv.order_id).status == "approved"
