"""Exception hierarchy for the coordinator store.

Recoverable failures derive from StoreError. CorruptRecordError is kept
outside that hierarchy because it means bytes written by this package no
longer decode, which callers are not expected to handle.
"""

from __future__ import annotations


class StoreError(Exception):
    """Base exception for all coordinator store errors."""

    pass


class BackendError(StoreError):
    """Raised when the backing database or its connection fails.

    The originating aiosqlite/sqlite3 error is chained as ``__cause__``.
    """

    pass


class DuplicateError(StoreError):
    """Raised when the exact same signature bytes are already stored."""

    def __init__(self, message: str = "Trying to insert a duplicated entry") -> None:
        super().__init__(message)


class CorruptRecordError(RuntimeError):
    """Raised when a stored value can no longer be decoded.

    Attributes:
        table: Table the undecodable value was read from.
    """

    def __init__(self, table: str, reason: str) -> None:
        self.table = table
        super().__init__(f"Corrupt record in '{table}': {reason}")
