# tests/test_inventory_ledger.py

from __future__ import annotations

import random
import sqlite3

import pytest

from tradelink_dms.database.repositories.inventory_repo import InventoryMovement, StockLevel
from tradelink_dms.modules.inventory.ledger import (
    check_movement,
    damage_adjustment_pair,
    replay,
    return_damaged_movement,
    return_good_movement,
    sale_cancel_movement,
    sale_movement,
)
from tradelink_dms.utils.errors import NotFoundError, ValidationError


# ---------------------------------------------------------------------
# Pure rules
# ---------------------------------------------------------------------

def test_constructors_follow_the_pool_table():
    assert (sale_movement(1, 5, "INV1").qty_delta_pieces, sale_movement(1, 5, "INV1").is_damaged_stock) == (-5, False)
    assert sale_cancel_movement(1, 5, "INV1").qty_delta_pieces == 5
    assert return_good_movement(1, 3, "INV1").is_damaged_stock is False
    assert return_damaged_movement(1, 3, "INV1").is_damaged_stock is True

    out, into = damage_adjustment_pair(1, 4, damaged_log_id="DMG1")
    assert (out.qty_delta_pieces, out.is_damaged_stock) == (-4, False)
    assert (into.qty_delta_pieces, into.is_damaged_stock) == (4, True)
    assert out.related_damaged_log_id == into.related_damaged_log_id == "DMG1"

    for m in (
        sale_movement(1, 5, "INV1"),
        sale_cancel_movement(1, 5, "INV1"),
        return_good_movement(1, 3, "INV1"),
        return_damaged_movement(1, 3, "INV1"),
        out,
        into,
    ):
        check_movement(m)


@pytest.mark.parametrize("qty", [0, -3, 2.5])
def test_constructors_reject_bad_quantities(qty):
    with pytest.raises(ValidationError):
        sale_movement(1, qty, "INV1")


@pytest.mark.parametrize(
    "movement_type, delta, damaged",
    [
        ("sale_return_damaged", 5, False),
        ("sale_return_good", 5, True),
        ("sale", 5, False),
        ("sale", -5, True),
        ("sale_cancel", -5, False),
        ("damage_adjustment", 5, False),
        ("damage_adjustment", -5, True),
        ("sale_return_good", 0, False),
        ("transfer", 5, False),
    ],
)
def test_check_movement_rejects_rule_breakers(movement_type, delta, damaged):
    m = InventoryMovement(None, 1, movement_type, delta, damaged)
    with pytest.raises(ValidationError):
        check_movement(m)


def test_replay_sums_each_pool_separately():
    movements = [
        sale_movement(1, 24, "INV1"),
        return_good_movement(1, 4, "INV1"),
        return_damaged_movement(1, 6, "INV1"),
        *damage_adjustment_pair(1, 2),
        sale_movement(2, 10, "INV2"),
    ]
    levels = replay(movements)
    assert levels[1] == StockLevel(good=-22, damaged=8)
    assert levels[2] == StockLevel(good=-10, damaged=0)


def test_replay_is_order_independent():
    movements = [sale_movement(1, q, "INV1") for q in (1, 2, 3)] + [
        return_damaged_movement(1, 2, "INV1"),
        return_good_movement(2, 7, "INV2"),
        *damage_adjustment_pair(2, 3),
    ]
    expected = replay(movements)
    shuffled = list(movements)
    random.Random(7).shuffle(shuffled)
    assert replay(shuffled) == expected
    assert replay(reversed(movements)) == expected


def test_replay_of_nothing():
    assert replay([]) == {}


# ---------------------------------------------------------------------
# Persistence
# ---------------------------------------------------------------------

def test_ledger_is_append_only(conn, ids, inventory_repo):
    (m,) = inventory_repo.append([return_good_movement(ids["noodles"], 5, None)])
    conn.commit()

    with pytest.raises(sqlite3.IntegrityError, match="append-only"):
        conn.execute("UPDATE inventory_movements SET qty_delta_pieces=50 WHERE movement_id=?", (m.movement_id,))
    with pytest.raises(sqlite3.IntegrityError, match="append-only"):
        conn.execute("DELETE FROM inventory_movements WHERE movement_id=?", (m.movement_id,))
    conn.rollback()

    assert inventory_repo.stock_level(ids["noodles"]) == StockLevel(good=5, damaged=0)


def test_schema_rejects_damaged_return_in_good_pool(conn, ids):
    with pytest.raises(sqlite3.IntegrityError):
        conn.execute(
            "INSERT INTO inventory_movements(product_id, movement_type, qty_delta_pieces, "
            "is_damaged_stock, created_at) VALUES (?, 'sale_return_damaged', 5, 0, '2025-01-01T00:00:00')",
            (ids["noodles"],),
        )


def test_stock_levels_view_matches_replay(conn, ids, inventory_repo, inventory_service):
    inventory_repo.append([
        sale_movement(ids["noodles"], 24, None),
        return_damaged_movement(ids["noodles"], 4, None),
        return_good_movement(ids["juice"], 3, None),
    ])
    conn.commit()

    levels = inventory_service.stock_levels()
    assert levels[ids["noodles"]] == StockLevel(good=-24, damaged=4)
    assert levels[ids["juice"]] == StockLevel(good=3, damaged=0)
    assert levels[ids["biscuits"]] == StockLevel()
    for pid, lvl in inventory_service.replayed_stock().items():
        assert levels[pid] == lvl


# ---------------------------------------------------------------------
# Internal damage
# ---------------------------------------------------------------------

def test_log_internal_damage_moves_good_to_damaged(ids, inventory_service, inventory_repo, damage_repo):
    log = inventory_service.log_internal_damage(
        ids["noodles"], 5, "damaged_in_godown", notes="rat damage", date="2025-03-04"
    )
    assert log.log_id == "DMG20250304-0001"
    assert log.source_type == "internal"

    assert inventory_service.stock_level(ids["noodles"]) == StockLevel(good=-5, damaged=5)
    moves = inventory_repo.list_movements(product_id=ids["noodles"])
    assert [(m.qty_delta_pieces, m.is_damaged_stock) for m in moves] == [(-5, False), (5, True)]
    assert {m.related_damaged_log_id for m in moves} == {log.log_id}

    logs = damage_repo.list_logs(source_type="internal")
    assert [lg.log_id for lg in logs] == [log.log_id]

    second = inventory_service.log_internal_damage(ids["noodles"], 1, "expiry", date="2025-03-04")
    assert second.log_id == "DMG20250304-0002"


def test_log_internal_damage_validation(ids, inventory_service, count_rows):
    with pytest.raises(ValidationError) as exc:
        inventory_service.log_internal_damage(ids["noodles"], 0, "fell off truck")
    assert len(exc.value.violations) == 2

    with pytest.raises(NotFoundError):
        inventory_service.log_internal_damage(9999, 1, "expiry")

    assert count_rows("damaged_goods_logs") == 0
    assert count_rows("inventory_movements") == 0


def test_post_movements_checks_rules_first(ids, inventory_service, count_rows):
    bad = InventoryMovement(None, ids["noodles"], "sale_return_damaged", 5, False)
    with pytest.raises(ValidationError):
        inventory_service.post_movements([return_good_movement(ids["noodles"], 1, None), bad])
    assert count_rows("inventory_movements") == 0

    saved = inventory_service.post_movements([return_good_movement(ids["noodles"], 1, None)])
    assert saved[0].movement_id is not None
