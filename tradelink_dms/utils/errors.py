# utils/errors.py
"""
Error taxonomy shared by repositories and services.

- DomainError: any rejection the caller can show to a user verbatim.
- ValidationError: bad input, carries *every* violation found so the caller
  can surface all problems at once.
- NotFoundError: a referenced record (invoice, product, customer...) is missing.
- PersistenceError: the store failed mid-transaction; nothing was written.
"""
from __future__ import annotations

from typing import Iterable


class DomainError(Exception):
    """Domain-level error suitable for surfacing to the user."""
    pass


class ValidationError(DomainError):
    def __init__(self, violations: Iterable[str] | str):
        if isinstance(violations, str):
            violations = [violations]
        self.violations: list[str] = list(violations)
        super().__init__("; ".join(self.violations) or "Invalid input.")


class NotFoundError(DomainError):
    pass


class PersistenceError(DomainError):
    pass
