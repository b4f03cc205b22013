"""Async SQLite persistence for vault coordination.

This package stores participant signatures and finalized spend
transactions. All operations are async using aiosqlite, and each one
opens its own connection.
"""

from __future__ import annotations

from .connection import SCHEMA_PATH, SCHEMA_VERSION, ErrorSink, atomic, open_session
from .core import CoordinatorDB

__all__ = [
    "SCHEMA_PATH",
    "SCHEMA_VERSION",
    "CoordinatorDB",
    "ErrorSink",
    "atomic",
    "open_session",
]
