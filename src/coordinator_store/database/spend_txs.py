"""Spend transaction storage.

Provides the SpendTxMixin, which records finalized spend transactions
together with the vault deposit outpoints they consume, and resolves a
deposit outpoint to the transaction spending it.
"""

from __future__ import annotations

import logging
import struct
from collections.abc import Iterable
from contextlib import AbstractAsyncContextManager

import aiosqlite

from ..exceptions import CorruptRecordError
from ..models import OutPoint
from ..transaction import Transaction
from .connection import atomic

logger = logging.getLogger(__name__)


def vout_to_sql(vout: int) -> int:
    """Reinterpret an unsigned 32-bit vout as the signed INT4 we store."""
    (signed,) = struct.unpack("<i", struct.pack("<I", vout))
    return int(signed)


class SpendTxMixin:
    """Mixin providing spend transaction store and fetch."""

    def _session(self) -> AbstractAsyncContextManager[aiosqlite.Connection]: ...

    async def store_spend_tx(
        self,
        outpoints: Iterable[OutPoint],
        transaction: Transaction,
    ) -> None:
        """Store a spend transaction and claim the deposits it consumes.

        In a single database transaction, inserts the spend transaction and
        points every given outpoint at it, replacing whichever spend
        transaction claimed it before. Re-storing identical bytes is a no-op;
        a different witness for an already stored txid replaces the stored
        bytes. Either all of it is committed or none of it is.

        Args:
            outpoints: Vault deposit outpoints consumed by ``transaction``.
            transaction: The finalized spend transaction.

        Raises:
            BackendError: On database failure; nothing is written.
        """
        spend_txid = transaction.txid.raw
        raw_tx = transaction.serialize()
        claimed = list(outpoints)

        async with self._session() as conn:
            async with atomic(conn):
                await conn.execute(
                    "INSERT INTO spend_txs (txid, tx) VALUES (?, ?) "
                    "ON CONFLICT (txid) DO UPDATE SET tx = excluded.tx",
                    (spend_txid, raw_tx),
                )
                await conn.executemany(
                    """
                    INSERT INTO spend_outpoints (deposit_txid, deposit_vout, spend_txid)
                    VALUES (?, ?, ?)
                    ON CONFLICT (deposit_txid, deposit_vout) DO UPDATE SET
                        spend_txid = excluded.spend_txid
                    """,
                    [(op.txid.raw, vout_to_sql(op.vout), spend_txid) for op in claimed],
                )

        logger.debug(
            "Stored spend transaction %s claiming %d outpoint(s)", transaction.txid, len(claimed)
        )

    async def fetch_spend_tx(self, outpoint: OutPoint) -> Transaction | None:
        """Get the spend transaction consuming a deposit outpoint.

        Args:
            outpoint: Vault deposit outpoint to resolve.

        Returns:
            The spend transaction, or None if no spend claims this outpoint.

        Raises:
            BackendError: On database failure.
            CorruptRecordError: If the stored transaction does not decode.
        """
        async with self._session() as conn:
            async with conn.execute(
                """
                SELECT txs.tx FROM spend_txs AS txs
                INNER JOIN spend_outpoints AS ops ON txs.txid = ops.spend_txid
                WHERE ops.deposit_txid = ? AND ops.deposit_vout = ?
                """,
                (outpoint.txid.raw, vout_to_sql(outpoint.vout)),
            ) as cursor:
                row = await cursor.fetchone()

        if row is None:
            return None

        try:
            return Transaction.deserialize(row["tx"])
        except ValueError as e:
            raise CorruptRecordError("spend_txs", str(e)) from e
