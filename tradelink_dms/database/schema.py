from pathlib import Path
import logging
import sqlite3
import sys

from .versioning import ensure_schema_version

_log = logging.getLogger(__name__)

SQL = r"""
PRAGMA foreign_keys = ON;

/* ======================== MASTER DATA ======================== */

/* -------- companies (suppliers whose goods we distribute) -------- */
CREATE TABLE IF NOT EXISTS companies (
    company_id INTEGER PRIMARY KEY AUTOINCREMENT,
    name       TEXT UNIQUE NOT NULL,
    code       TEXT,
    is_active  INTEGER NOT NULL DEFAULT 1 CHECK (is_active IN (0,1)),
    created_at TEXT NOT NULL DEFAULT CURRENT_TIMESTAMP
);

/* -------- parties -------- */
CREATE TABLE IF NOT EXISTS customers (
    customer_id INTEGER PRIMARY KEY AUTOINCREMENT,
    name        TEXT NOT NULL,
    phone       TEXT,
    pan_number  TEXT,
    route_name  TEXT,
    is_active   INTEGER NOT NULL DEFAULT 1 CHECK (is_active IN (0,1))
);

CREATE TABLE IF NOT EXISTS salespersons (
    salesperson_id INTEGER PRIMARY KEY AUTOINCREMENT,
    name           TEXT NOT NULL,
    code           TEXT
);

/* -------- products (pricing + scheme fields) -------- */
CREATE TABLE IF NOT EXISTS products (
    product_id      INTEGER PRIMARY KEY AUTOINCREMENT,
    name            TEXT NOT NULL,
    company_id      INTEGER NOT NULL,
    base_rate       NUMERIC NOT NULL CHECK (CAST(base_rate AS REAL) >= 0),
    discounted_rate NUMERIC NOT NULL CHECK (CAST(discounted_rate AS REAL) >= 0),
    order_multiple  INTEGER NOT NULL DEFAULT 1 CHECK (order_multiple >= 1),
    min_order_qty   INTEGER NOT NULL DEFAULT 1 CHECK (min_order_qty >= 1),
    secondary_available               INTEGER NOT NULL DEFAULT 0 CHECK (secondary_available IN (0,1)),
    secondary_qualifying_qty          INTEGER,
    secondary_discount_pct            NUMERIC,
    additional_qualifying_qty         INTEGER,
    additional_secondary_discount_pct NUMERIC,
    is_active       INTEGER NOT NULL DEFAULT 1 CHECK (is_active IN (0,1)),
    CHECK (CAST(discounted_rate AS REAL) <= CAST(base_rate AS REAL)),
    FOREIGN KEY (company_id) REFERENCES companies(company_id)
);
CREATE INDEX IF NOT EXISTS idx_products_company ON products(company_id);

/* ======================== ORDERS (INVOICES) ======================== */
CREATE TABLE IF NOT EXISTS orders (
    order_id       TEXT PRIMARY KEY,
    customer_id    INTEGER NOT NULL,
    salesperson_id INTEGER,
    company_id     INTEGER NOT NULL,
    date           DATE NOT NULL,
    total_amount   NUMERIC NOT NULL CHECK (CAST(total_amount AS REAL) >= 0),
    status         TEXT NOT NULL DEFAULT 'pending'
                   CHECK (status IN ('pending','approved','dispatched','delivered',
                                     'cancelled','partially_returned','returned')),
    remarks        TEXT,
    created_at     TEXT NOT NULL DEFAULT CURRENT_TIMESTAMP,
    FOREIGN KEY (customer_id)    REFERENCES customers(customer_id),
    FOREIGN KEY (salesperson_id) REFERENCES salespersons(salesperson_id),
    FOREIGN KEY (company_id)     REFERENCES companies(company_id)
);
CREATE INDEX IF NOT EXISTS idx_orders_status ON orders(status);

CREATE TABLE IF NOT EXISTS order_items (
    item_id      INTEGER PRIMARY KEY AUTOINCREMENT,
    order_id     TEXT NOT NULL,
    product_id   INTEGER NOT NULL,
    quantity     INTEGER NOT NULL CHECK (quantity > 0),
    rate         NUMERIC NOT NULL CHECK (CAST(rate AS REAL) >= 0),
    base_rate    NUMERIC NOT NULL,
    discount_pct NUMERIC NOT NULL DEFAULT 0,
    total        NUMERIC NOT NULL,
    scheme_text  TEXT,
    company_id   INTEGER NOT NULL,
    FOREIGN KEY (order_id)   REFERENCES orders(order_id),
    FOREIGN KEY (product_id) REFERENCES products(product_id)
);
CREATE INDEX IF NOT EXISTS idx_order_items_order ON order_items(order_id);

/* ======================== RETURNS & DAMAGE ======================== */
CREATE TABLE IF NOT EXISTS sales_returns (
    return_id           TEXT PRIMARY KEY,
    order_id            TEXT NOT NULL,
    customer_id         INTEGER NOT NULL,
    return_type         TEXT NOT NULL CHECK (return_type IN ('full','partial')),
    reason              TEXT NOT NULL,
    notes               TEXT,
    total_return_amount NUMERIC NOT NULL CHECK (CAST(total_return_amount AS REAL) >= 0),
    created_by          TEXT,
    created_at          TEXT NOT NULL,
    FOREIGN KEY (order_id) REFERENCES orders(order_id)
);
CREATE INDEX IF NOT EXISTS idx_sales_returns_order ON sales_returns(order_id);

CREATE TABLE IF NOT EXISTS sales_return_items (
    return_item_id       INTEGER PRIMARY KEY AUTOINCREMENT,
    return_id            TEXT NOT NULL,
    order_item_id        INTEGER NOT NULL,
    product_id           INTEGER NOT NULL,
    qty_invoiced         INTEGER NOT NULL,
    qty_returned_good    INTEGER NOT NULL DEFAULT 0 CHECK (qty_returned_good >= 0),
    qty_returned_damaged INTEGER NOT NULL DEFAULT 0 CHECK (qty_returned_damaged >= 0),
    rate                 NUMERIC NOT NULL,
    line_return_amount   NUMERIC NOT NULL,
    CHECK (qty_returned_good + qty_returned_damaged <= qty_invoiced),
    FOREIGN KEY (return_id)     REFERENCES sales_returns(return_id),
    FOREIGN KEY (order_item_id) REFERENCES order_items(item_id)
);
CREATE INDEX IF NOT EXISTS idx_sales_return_items_item ON sales_return_items(order_item_id);

CREATE TABLE IF NOT EXISTS damaged_goods_logs (
    log_id            TEXT PRIMARY KEY,
    product_id        INTEGER NOT NULL,
    qty_pieces        INTEGER NOT NULL CHECK (qty_pieces > 0),
    damage_reason     TEXT NOT NULL,
    source_type       TEXT NOT NULL CHECK (source_type IN ('return','internal')),
    source_invoice_id TEXT,
    source_return_id  TEXT,
    notes             TEXT,
    created_by        TEXT,
    created_at        TEXT NOT NULL,
    CHECK (source_type = 'internal' OR source_return_id IS NOT NULL),
    FOREIGN KEY (product_id)        REFERENCES products(product_id),
    FOREIGN KEY (source_invoice_id) REFERENCES orders(order_id),
    FOREIGN KEY (source_return_id)  REFERENCES sales_returns(return_id)
);

/* ======================== INVENTORY LEDGER ======================== */
/*
  Two stock pools per product (good / damaged). Every row is a signed delta;
  stock levels are SUMs over this table, never stored.
*/
CREATE TABLE IF NOT EXISTS inventory_movements (
    movement_id             INTEGER PRIMARY KEY AUTOINCREMENT,
    product_id              INTEGER NOT NULL,
    movement_type           TEXT NOT NULL
                            CHECK (movement_type IN ('sale','sale_cancel','sale_return_good',
                                                     'sale_return_damaged','damage_adjustment')),
    qty_delta_pieces        INTEGER NOT NULL CHECK (qty_delta_pieces <> 0),
    is_damaged_stock        INTEGER NOT NULL CHECK (is_damaged_stock IN (0,1)),
    related_invoice_id      TEXT,
    related_sales_return_id TEXT,
    related_damaged_log_id  TEXT,
    created_at              TEXT NOT NULL,
    CHECK (
         (movement_type = 'sale'                AND is_damaged_stock = 0 AND qty_delta_pieces < 0)
      OR (movement_type = 'sale_cancel'         AND is_damaged_stock = 0 AND qty_delta_pieces > 0)
      OR (movement_type = 'sale_return_good'    AND is_damaged_stock = 0 AND qty_delta_pieces > 0)
      OR (movement_type = 'sale_return_damaged' AND is_damaged_stock = 1 AND qty_delta_pieces > 0)
      OR (movement_type = 'damage_adjustment'   AND (
              (is_damaged_stock = 0 AND qty_delta_pieces < 0)
           OR (is_damaged_stock = 1 AND qty_delta_pieces > 0)))
    ),
    FOREIGN KEY (product_id) REFERENCES products(product_id)
);
CREATE INDEX IF NOT EXISTS idx_inventory_movements_product ON inventory_movements(product_id);

DROP TRIGGER IF EXISTS trg_inventory_movements_no_update;
CREATE TRIGGER trg_inventory_movements_no_update
BEFORE UPDATE ON inventory_movements
BEGIN
  SELECT RAISE(ABORT, 'inventory_movements is append-only');
END;

DROP TRIGGER IF EXISTS trg_inventory_movements_no_delete;
CREATE TRIGGER trg_inventory_movements_no_delete
BEFORE DELETE ON inventory_movements
BEGIN
  SELECT RAISE(ABORT, 'inventory_movements is append-only');
END;

DROP VIEW IF EXISTS v_stock_levels;
CREATE VIEW v_stock_levels AS
SELECT
  p.product_id,
  p.name AS product_name,
  COALESCE(SUM(CASE WHEN m.is_damaged_stock = 0 THEN m.qty_delta_pieces END), 0) AS good_stock,
  COALESCE(SUM(CASE WHEN m.is_damaged_stock = 1 THEN m.qty_delta_pieces END), 0) AS damaged_stock
FROM products p
LEFT JOIN inventory_movements m ON m.product_id = p.product_id
GROUP BY p.product_id, p.name;

/* ======================== PURCHASE BILLS ======================== */
CREATE TABLE IF NOT EXISTS purchase_bills (
    bill_id            TEXT PRIMARY KEY,
    date               DATE NOT NULL,
    vendor             TEXT NOT NULL,
    bill_no            TEXT,
    company_summary    TEXT,
    tax_mode           TEXT NOT NULL CHECK (tax_mode IN ('EXCLUSIVE','INCLUSIVE','NONE')),
    tax_pct            NUMERIC NOT NULL DEFAULT 0 CHECK (CAST(tax_pct AS REAL) >= 0),
    discount_type      TEXT NOT NULL CHECK (discount_type IN ('ABS','PCT')),
    discount_value     NUMERIC NOT NULL DEFAULT 0 CHECK (CAST(discount_value AS REAL) >= 0),
    other_charges      NUMERIC NOT NULL DEFAULT 0 CHECK (CAST(other_charges AS REAL) >= 0),
    notes              TEXT,
    revision           INTEGER NOT NULL DEFAULT 1 CHECK (revision >= 1),
    supersedes_bill_id TEXT UNIQUE,
    total_qty          NUMERIC NOT NULL,
    gross_total        NUMERIC NOT NULL,
    discount_total     NUMERIC NOT NULL,
    taxable_base       NUMERIC NOT NULL,
    tax_total          NUMERIC NOT NULL,
    other_total        NUMERIC NOT NULL,
    net_total          NUMERIC NOT NULL,
    created_at         TEXT NOT NULL,
    FOREIGN KEY (supersedes_bill_id) REFERENCES purchase_bills(bill_id)
);
CREATE INDEX IF NOT EXISTS idx_purchase_bills_date ON purchase_bills(date);

CREATE TABLE IF NOT EXISTS purchase_bill_lines (
    bill_id      TEXT NOT NULL,
    line_no      INTEGER NOT NULL CHECK (line_no >= 1),
    product_id   INTEGER,
    product_name TEXT NOT NULL,
    company      TEXT,
    unit         TEXT NOT NULL DEFAULT 'Piece',
    qty          NUMERIC NOT NULL CHECK (CAST(qty AS REAL) >= 0),
    rate         NUMERIC NOT NULL CHECK (CAST(rate AS REAL) >= 0),
    gross        NUMERIC NOT NULL,
    discount     NUMERIC NOT NULL DEFAULT 0,
    tax          NUMERIC NOT NULL DEFAULT 0,
    other        NUMERIC NOT NULL DEFAULT 0,
    net          NUMERIC NOT NULL,
    PRIMARY KEY (bill_id, line_no),
    FOREIGN KEY (bill_id)    REFERENCES purchase_bills(bill_id),
    FOREIGN KEY (product_id) REFERENCES products(product_id)
);

/* saved bills are financial documents: corrections are new revisions */
DROP TRIGGER IF EXISTS trg_purchase_bills_no_update;
CREATE TRIGGER trg_purchase_bills_no_update
BEFORE UPDATE ON purchase_bills
BEGIN
  SELECT RAISE(ABORT, 'Saved purchase bills cannot be edited; record a correction instead');
END;

DROP TRIGGER IF EXISTS trg_purchase_bills_no_delete;
CREATE TRIGGER trg_purchase_bills_no_delete
BEFORE DELETE ON purchase_bills
BEGIN
  SELECT RAISE(ABORT, 'Saved purchase bills cannot be deleted; record a correction instead');
END;

DROP TRIGGER IF EXISTS trg_purchase_bill_lines_no_update;
CREATE TRIGGER trg_purchase_bill_lines_no_update
BEFORE UPDATE ON purchase_bill_lines
BEGIN
  SELECT RAISE(ABORT, 'Saved purchase bills cannot be edited; record a correction instead');
END;

DROP TRIGGER IF EXISTS trg_purchase_bill_lines_no_delete;
CREATE TRIGGER trg_purchase_bill_lines_no_delete
BEFORE DELETE ON purchase_bill_lines
BEGIN
  SELECT RAISE(ABORT, 'Saved purchase bills cannot be deleted; record a correction instead');
END;

/* ======================== IMMUTABLE DOCUMENT GUARDS ======================== */
/* only the status of an order moves; everything else is a snapshot */
DROP TRIGGER IF EXISTS trg_orders_header_locked;
CREATE TRIGGER trg_orders_header_locked
BEFORE UPDATE OF order_id, customer_id, salesperson_id, company_id, date, total_amount ON orders
BEGIN
  SELECT RAISE(ABORT, 'Order header is immutable once saved');
END;

DROP TRIGGER IF EXISTS trg_order_items_no_update;
CREATE TRIGGER trg_order_items_no_update
BEFORE UPDATE ON order_items
BEGIN
  SELECT RAISE(ABORT, 'Order items are immutable once saved');
END;

DROP TRIGGER IF EXISTS trg_order_items_no_delete;
CREATE TRIGGER trg_order_items_no_delete
BEFORE DELETE ON order_items
BEGIN
  SELECT RAISE(ABORT, 'Order items are immutable once saved');
END;

DROP TRIGGER IF EXISTS trg_sales_returns_no_update;
CREATE TRIGGER trg_sales_returns_no_update
BEFORE UPDATE ON sales_returns
BEGIN
  SELECT RAISE(ABORT, 'Sales returns are immutable once saved');
END;

DROP TRIGGER IF EXISTS trg_sales_return_items_no_update;
CREATE TRIGGER trg_sales_return_items_no_update
BEFORE UPDATE ON sales_return_items
BEGIN
  SELECT RAISE(ABORT, 'Sales returns are immutable once saved');
END;

DROP TRIGGER IF EXISTS trg_sales_return_items_not_over_invoiced;
CREATE TRIGGER trg_sales_return_items_not_over_invoiced
BEFORE INSERT ON sales_return_items
WHEN (
  SELECT COALESCE(SUM(qty_returned_good + qty_returned_damaged), 0)
  FROM sales_return_items WHERE order_item_id = NEW.order_item_id
) + NEW.qty_returned_good + NEW.qty_returned_damaged
  > (SELECT quantity FROM order_items WHERE item_id = NEW.order_item_id)
BEGIN
  SELECT RAISE(ABORT, 'Return exceeds the quantity left on the invoice line');
END;

/* ======================== METADATA SIDE-MAP ======================== */
/* free-form key/value attached to a typed record; never widens the typed tables */
CREATE TABLE IF NOT EXISTS record_metadata (
    record_table TEXT NOT NULL,
    record_id    TEXT NOT NULL,
    meta_key     TEXT NOT NULL,
    meta_value   TEXT,
    PRIMARY KEY (record_table, record_id, meta_key)
);
"""


def apply_schema(conn: sqlite3.Connection) -> None:
    """Apply the (idempotent) schema on an open connection."""
    conn.executescript(SQL)


def init_schema(db_path: Path | str) -> None:
    db_path = Path(db_path)
    db_path.parent.mkdir(parents=True, exist_ok=True)
    with sqlite3.connect(db_path) as conn:
        conn.execute("PRAGMA journal_mode=WAL;")
        ensure_schema_version(conn)
        apply_schema(conn)
        conn.commit()
    _log.info("Schema applied to %s", db_path)


if __name__ == "__main__":
    # python -m tradelink_dms.database.schema [db_path]
    from ..config import DB_PATH
    from ..utils.loggers import get_logger

    get_logger()
    init_schema(sys.argv[1] if len(sys.argv) > 1 else DB_PATH)
