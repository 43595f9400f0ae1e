from __future__ import annotations
from dataclasses import dataclass
import sqlite3

from ...utils.errors import DomainError
from ...utils.validators import non_empty


@dataclass
class Company:
    company_id: int | None
    name: str
    code: str | None
    is_active: bool = True


class CompaniesRepo:
    def __init__(self, conn: sqlite3.Connection):
        conn.row_factory = sqlite3.Row
        self.conn = conn

    def list_companies(self, active_only: bool = True) -> list[Company]:
        sql = "SELECT company_id, name, code, is_active FROM companies"
        if active_only:
            sql += " WHERE is_active = 1"
        sql += " ORDER BY name"
        return [self._to_company(r) for r in self.conn.execute(sql).fetchall()]

    def get(self, company_id: int) -> Company | None:
        r = self.conn.execute(
            "SELECT company_id, name, code, is_active FROM companies WHERE company_id=?",
            (company_id,),
        ).fetchone()
        return self._to_company(r) if r else None

    def create(self, name: str, code: str | None = None) -> int:
        if not non_empty(name):
            raise DomainError("Company name cannot be empty.")
        with self.conn:
            cur = self.conn.execute(
                "INSERT INTO companies(name, code) VALUES (?, ?)",
                (name.strip(), (code or "").strip() or None),
            )
        return int(cur.lastrowid)

    @staticmethod
    def _to_company(r) -> Company:
        return Company(
            company_id=int(r["company_id"]),
            name=r["name"],
            code=r["code"],
            is_active=bool(r["is_active"]),
        )
