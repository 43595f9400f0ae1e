# tradelink_dms/database/versioning.py
"""
One-row table recording which schema version last opened the database file.

The DDL in schema.py is idempotent and additive, so an older file is simply
stamped with the current version after the schema is applied. A file stamped
by a newer release is refused instead of being written with an older schema.
"""
from __future__ import annotations

import logging
import sqlite3

from ..constants import SCHEMA_VERSION, TABLE_SCHEMA_VERSION
from ..utils.errors import PersistenceError

_log = logging.getLogger(__name__)


def _version_key(version: str) -> tuple[int, ...]:
    try:
        return tuple(int(part) for part in version.split("."))
    except ValueError:
        raise PersistenceError(f"Unreadable schema version {version!r} in database.") from None


def get_current_version(conn: sqlite3.Connection) -> str | None:
    row = conn.execute(
        "SELECT name FROM sqlite_master WHERE type='table' AND name=?", (TABLE_SCHEMA_VERSION,)
    ).fetchone()
    if row is None:
        return None
    row = conn.execute(f"SELECT version FROM {TABLE_SCHEMA_VERSION} WHERE id=1").fetchone()
    return row[0] if row else None


def ensure_schema_version(conn: sqlite3.Connection, version: str = SCHEMA_VERSION) -> str:
    """
    Stamp a fresh or older database with `version`; returns the version the
    file carried before (or `version` for a fresh one). No commit here.
    """
    conn.execute(
        f"""
        CREATE TABLE IF NOT EXISTS {TABLE_SCHEMA_VERSION}(
            id      INTEGER PRIMARY KEY CHECK (id=1),
            version TEXT NOT NULL
        )
        """
    )
    stored = get_current_version(conn)
    if stored is None:
        conn.execute(f"INSERT INTO {TABLE_SCHEMA_VERSION}(id, version) VALUES (1, ?)", (version,))
        _log.info("New database stamped with schema %s", version)
        return version

    if _version_key(stored) > _version_key(version):
        raise PersistenceError(
            f"Database schema {stored} is newer than this release ({version}); refusing to open it."
        )
    if stored != version:
        conn.execute(f"UPDATE {TABLE_SCHEMA_VERSION} SET version=? WHERE id=1", (version,))
        _log.warning("Database schema upgraded from %s to %s", stored, version)
    return stored
