"""Participant signature storage.

Provides the SignatureMixin with duplicate-checked signature inserts and
per-transaction signature lookup.
"""

from __future__ import annotations

import logging
from contextlib import AbstractAsyncContextManager

import aiosqlite

from ..exceptions import CorruptRecordError, DuplicateError
from ..models import PublicKey, Signature, Sigs, Txid

logger = logging.getLogger(__name__)


class SignatureMixin:
    """Mixin providing signature store and fetch."""

    def _session(self) -> AbstractAsyncContextManager[aiosqlite.Connection]: ...

    async def store_sig(self, txid: Txid, pubkey: PublicKey, signature: Signature) -> None:
        """Store one participant's signature for a transaction.

        The exact signature bytes may only ever be stored once, whatever the
        txid or public key they come with.

        Args:
            txid: Transaction the signature commits to.
            pubkey: Signer's public key.
            signature: The signature itself.

        Raises:
            DuplicateError: If these signature bytes are already stored,
                including when a concurrent writer wins the race to insert.
            BackendError: On any other database failure.
        """
        sig = signature.serialize_der()

        async with self._session() as conn:
            # Make sure it's not here already
            async with conn.execute(
                "SELECT 1 FROM signatures WHERE signature = ?", (sig,)
            ) as cursor:
                if await cursor.fetchone() is not None:
                    logger.warning("Rejected duplicate signature for txid %s", txid)
                    raise DuplicateError()

            try:
                await conn.execute(
                    "INSERT INTO signatures (txid, pubkey, signature) VALUES (?, ?, ?)",
                    (txid.raw, pubkey.serialize(), sig),
                )
            except aiosqlite.IntegrityError as e:
                logger.warning("Signature for txid %s inserted concurrently", txid)
                raise DuplicateError() from e

        logger.debug("Stored signature by %s for txid %s", pubkey, txid)

    async def fetch_sigs(self, txid: Txid) -> Sigs:
        """Get all signatures stored for a transaction.

        Args:
            txid: Transaction to look up.

        Returns:
            Sigs keyed by public key. When a key signed more than once the
            last row read wins.

        Raises:
            BackendError: On database failure.
            CorruptRecordError: If a stored key or signature does not decode.
        """
        signatures: dict[PublicKey, Signature] = {}

        async with self._session() as conn:
            async with conn.execute(
                "SELECT pubkey, signature FROM signatures WHERE txid = ? ORDER BY rowid",
                (txid.raw,),
            ) as cursor:
                rows = await cursor.fetchall()

        for row in rows:
            try:
                pubkey = PublicKey.from_slice(row["pubkey"])
                signature = Signature.from_der(row["signature"])
            except ValueError as e:
                raise CorruptRecordError("signatures", str(e)) from e
            signatures[pubkey] = signature

        return Sigs(signatures)
