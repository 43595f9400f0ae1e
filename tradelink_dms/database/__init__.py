# database/__init__.py
from __future__ import annotations

from contextlib import contextmanager
from pathlib import Path
import logging
import sqlite3
from typing import Iterator

from ..config import DB_PATH
from ..utils.errors import PersistenceError
from . import schema as schema_module
from .versioning import ensure_schema_version

_log = logging.getLogger(__name__)

MEMORY = ":memory:"


def get_connection(db_path: Path | str | None = None) -> sqlite3.Connection:
    """
    Returns a sqlite3.Connection with:
      - foreign_keys ON
      - WAL mode for file databases
      - row_factory = sqlite3.Row (so rows behave like dicts and tuples)
    Ensures schema & version row are applied idempotently.

    Pass ":memory:" for a throwaway database.
    """
    target = DB_PATH if db_path is None else db_path
    if str(target) != MEMORY:
        Path(target).parent.mkdir(parents=True, exist_ok=True)

    conn = sqlite3.connect(str(target))
    conn.row_factory = sqlite3.Row
    conn.execute("PRAGMA foreign_keys = ON;")
    if str(target) != MEMORY:
        conn.execute("PRAGMA journal_mode = WAL;")

    # a file from a newer release is refused before any DDL touches it
    try:
        ensure_schema_version(conn)
    except PersistenceError:
        conn.close()
        raise

    # Always apply the schema (idempotent: CREATE IF NOT EXISTS / DROP TRIGGER IF EXISTS)
    schema_module.apply_schema(conn)

    conn.commit()
    return conn


@contextmanager
def transaction(conn: sqlite3.Connection) -> Iterator[sqlite3.Connection]:
    """
    All-or-nothing unit of work.

    Starts an IMMEDIATE transaction (write lock up front), commits on success,
    rolls back on any error. When the connection is already inside a
    transaction (e.g. a test holding BEGIN/ROLLBACK) a SAVEPOINT is used
    instead so only this unit is undone.

    sqlite3 errors are re-raised as PersistenceError; domain errors pass
    through untouched.
    """
    nested = conn.in_transaction
    if nested:
        conn.execute("SAVEPOINT unit_of_work")
    else:
        conn.execute("BEGIN IMMEDIATE")
    try:
        yield conn
    except sqlite3.Error as e:
        _rollback(conn, nested)
        _log.error("Transaction rolled back: %s", e)
        raise PersistenceError(f"Could not save changes: {e}") from e
    except Exception:
        _rollback(conn, nested)
        raise
    else:
        if nested:
            conn.execute("RELEASE SAVEPOINT unit_of_work")
        else:
            conn.commit()


def _rollback(conn: sqlite3.Connection, nested: bool) -> None:
    if nested:
        conn.execute("ROLLBACK TO SAVEPOINT unit_of_work")
        conn.execute("RELEASE SAVEPOINT unit_of_work")
    else:
        conn.rollback()


def next_document_id(conn: sqlite3.Connection, table: str, column: str, prefix: str, date_str: str) -> str:
    """
    Document ids look like <prefix><yyyymmdd>-NNNN, numbered per day.
    """
    d = date_str.replace("-", "")
    head = f"{prefix}{d}-"
    row = conn.execute(
        f"SELECT MAX({column}) AS m FROM {table} WHERE {column} LIKE ?",
        (head + "%",),
    ).fetchone()
    last = int(row["m"].split("-")[-1]) if row and row["m"] else 0
    return f"{head}{last + 1:04d}"


__all__ = [
    "get_connection",
    "transaction",
    "next_document_id",
    "MEMORY",
]
