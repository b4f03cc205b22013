"""Composed CoordinatorDB class.

Combines all mixin classes into the final CoordinatorDB that provides
the complete database API.
"""

from __future__ import annotations

from ..config import ConnectionConfig
from .connection import ConnectionMixin, ErrorSink
from .signatures import SignatureMixin
from .spend_txs import SpendTxMixin


class CoordinatorDB(ConnectionMixin, SignatureMixin, SpendTxMixin):
    """Async SQLite store for vault co-signing artifacts.

    Holds only the connection descriptor. Each call opens its own session,
    so one instance can be shared freely between concurrent tasks.

    Usage:
        db = CoordinatorDB(ConnectionConfig(Path("coordinator.db")))
        await db.maybe_create_db()
        await db.store_sig(txid, pubkey, signature)
        sigs = await db.fetch_sigs(txid)
    """

    def __init__(self, config: ConnectionConfig, on_error: ErrorSink | None = None) -> None:
        """Initialize with a connection descriptor.

        Args:
            config: Where and how to reach the database.
            on_error: Sink for connection shutdown errors. Defaults to logging.
        """
        super().__init__(config, on_error)
