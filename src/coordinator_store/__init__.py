"""Coordinator store.

Persistence layer for a multi-party vault coordinator: participant
signatures and finalized spend transactions, kept in SQLite.
"""

from __future__ import annotations

from .config import ConnectionConfig, load_config
from .database import CoordinatorDB, open_session
from .exceptions import BackendError, CorruptRecordError, DuplicateError, StoreError
from .models import OutPoint, PublicKey, Signature, Sigs, Txid
from .transaction import Transaction, TransactionDecodeError, TxIn, TxOut

__all__ = [
    # Configuration
    "ConnectionConfig",
    "load_config",
    # Database
    "CoordinatorDB",
    "open_session",
    # Errors
    "StoreError",
    "BackendError",
    "DuplicateError",
    "CorruptRecordError",
    # Domain types
    "OutPoint",
    "PublicKey",
    "Signature",
    "Sigs",
    "Txid",
    "Transaction",
    "TransactionDecodeError",
    "TxIn",
    "TxOut",
]
