from __future__ import annotations
import sqlite3
from typing import Dict, Optional

from ...utils.errors import DomainError
from ...utils.validators import non_empty


class MetadataRepo:
    """
    Free-form key/value pairs hung off a typed record, addressed by
    (record_table, record_id). Imported spreadsheets carry columns we do
    not model; they land here instead of widening the typed tables.
    """

    def __init__(self, conn: sqlite3.Connection):
        conn.row_factory = sqlite3.Row
        self.conn = conn

    def set(self, record_table: str, record_id, key: str, value: Optional[str]) -> None:
        """Insert or overwrite one key. No commit; the caller owns the transaction."""
        if not non_empty(record_table) or not non_empty(key):
            raise DomainError("Metadata needs a record table and a key.")
        self.conn.execute(
            """
            INSERT INTO record_metadata(record_table, record_id, meta_key, meta_value)
            VALUES (?,?,?,?)
            ON CONFLICT(record_table, record_id, meta_key) DO UPDATE SET meta_value = excluded.meta_value
            """,
            (record_table, str(record_id), key.strip(), None if value is None else str(value)),
        )

    def set_many(self, record_table: str, record_id, values: Dict[str, Optional[str]]) -> None:
        for k, v in values.items():
            self.set(record_table, record_id, k, v)

    def get(self, record_table: str, record_id, key: str) -> Optional[str]:
        r = self.conn.execute(
            "SELECT meta_value FROM record_metadata WHERE record_table=? AND record_id=? AND meta_key=?",
            (record_table, str(record_id), key),
        ).fetchone()
        return r["meta_value"] if r else None

    def get_all(self, record_table: str, record_id) -> Dict[str, Optional[str]]:
        rows = self.conn.execute(
            "SELECT meta_key, meta_value FROM record_metadata "
            "WHERE record_table=? AND record_id=? ORDER BY meta_key",
            (record_table, str(record_id)),
        ).fetchall()
        return {r["meta_key"]: r["meta_value"] for r in rows}

    def delete(self, record_table: str, record_id, key: str) -> bool:
        cur = self.conn.execute(
            "DELETE FROM record_metadata WHERE record_table=? AND record_id=? AND meta_key=?",
            (record_table, str(record_id), key),
        )
        return cur.rowcount > 0
