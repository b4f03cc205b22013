"""Bitcoin transaction consensus encoding.

Decodes and re-encodes the standard transaction serialization, including
the BIP144 segwit layout (marker and flag bytes after the version, one
witness stack per input before the lock time). Spend transactions are
stored in this canonical form and their identifier is derived from it.
"""

from __future__ import annotations

import hashlib
import io
import struct
from dataclasses import dataclass, field

from .models import TXID_SIZE, OutPoint, Txid

_SEGWIT_MARKER = 0x00
_SEGWIT_FLAG = 0x01


class TransactionDecodeError(ValueError):
    """Raised when bytes are not a valid serialized transaction."""

    pass


def sha256d(data: bytes) -> bytes:
    """Bitcoin's double SHA-256."""
    return hashlib.sha256(hashlib.sha256(data).digest()).digest()


# =========================================================================
# Primitive readers/writers
# =========================================================================


def _read_exact(stream: io.BytesIO, size: int) -> bytes:
    data = stream.read(size)
    if len(data) != size:
        msg = f"Unexpected end of data: wanted {size} bytes, got {len(data)}"
        raise TransactionDecodeError(msg)
    return data


def _read_struct(stream: io.BytesIO, fmt: str) -> int:
    (value,) = struct.unpack(fmt, _read_exact(stream, struct.calcsize(fmt)))
    return int(value)


def read_compact_size(stream: io.BytesIO) -> int:
    """Read a CompactSize integer, rejecting non-canonical encodings."""
    prefix = _read_exact(stream, 1)[0]
    if prefix < 0xFD:
        return prefix
    if prefix == 0xFD:
        value, minimum = _read_struct(stream, "<H"), 0xFD
    elif prefix == 0xFE:
        value, minimum = _read_struct(stream, "<I"), 0x10000
    else:
        value, minimum = _read_struct(stream, "<Q"), 0x100000000
    if value < minimum:
        msg = f"Non-canonical CompactSize encoding for {value}"
        raise TransactionDecodeError(msg)
    return value


def write_compact_size(value: int) -> bytes:
    if value < 0xFD:
        return bytes([value])
    if value <= 0xFFFF:
        return b"\xfd" + struct.pack("<H", value)
    if value <= 0xFFFFFFFF:
        return b"\xfe" + struct.pack("<I", value)
    return b"\xff" + struct.pack("<Q", value)


def _read_var_bytes(stream: io.BytesIO) -> bytes:
    return _read_exact(stream, read_compact_size(stream))


def _write_var_bytes(data: bytes) -> bytes:
    return write_compact_size(len(data)) + data


# =========================================================================
# Transaction structures
# =========================================================================


@dataclass(frozen=True)
class TxIn:
    """A transaction input spending ``prevout``."""

    prevout: OutPoint
    script_sig: bytes = b""
    sequence: int = 0xFFFFFFFF
    witness: tuple[bytes, ...] = ()


@dataclass(frozen=True)
class TxOut:
    """A transaction output paying ``value`` satoshis to ``script_pubkey``."""

    value: int
    script_pubkey: bytes


@dataclass(frozen=True)
class Transaction:
    """A fully serialized Bitcoin transaction."""

    version: int
    inputs: tuple[TxIn, ...] = field(default_factory=tuple)
    outputs: tuple[TxOut, ...] = field(default_factory=tuple)
    lock_time: int = 0

    @property
    def has_witness(self) -> bool:
        return any(txin.witness for txin in self.inputs)

    @property
    def txid(self) -> Txid:
        """Hash of the witness-stripped encoding, in internal byte order."""
        return Txid(sha256d(self.serialize(include_witness=False)))

    def serialize(self, include_witness: bool = True) -> bytes:
        """Encode the transaction.

        Args:
            include_witness: Emit the segwit layout when any input has a
                witness or there are no inputs. Pass False for the legacy
                encoding used for txids.

        Returns:
            The consensus-encoded transaction bytes.
        """
        # Zero inputs would read back as the segwit marker, so always extend.
        segwit = include_witness and (self.has_witness or not self.inputs)
        out = io.BytesIO()
        out.write(struct.pack("<i", self.version))
        if segwit:
            out.write(bytes([_SEGWIT_MARKER, _SEGWIT_FLAG]))

        out.write(write_compact_size(len(self.inputs)))
        for txin in self.inputs:
            out.write(txin.prevout.txid.raw)
            out.write(struct.pack("<I", txin.prevout.vout))
            out.write(_write_var_bytes(txin.script_sig))
            out.write(struct.pack("<I", txin.sequence))

        out.write(write_compact_size(len(self.outputs)))
        for txout in self.outputs:
            out.write(struct.pack("<q", txout.value))
            out.write(_write_var_bytes(txout.script_pubkey))

        if segwit:
            for txin in self.inputs:
                out.write(write_compact_size(len(txin.witness)))
                for item in txin.witness:
                    out.write(_write_var_bytes(item))

        out.write(struct.pack("<I", self.lock_time))
        return out.getvalue()

    @classmethod
    def deserialize(cls, data: bytes) -> Transaction:
        """Decode a transaction, requiring every byte to be consumed.

        Raises:
            TransactionDecodeError: If the data is truncated, has trailing
                bytes, or is otherwise malformed.
        """
        stream = io.BytesIO(data)
        version = _read_struct(stream, "<i")

        segwit = False
        n_inputs = read_compact_size(stream)
        if n_inputs == _SEGWIT_MARKER:
            flag = _read_exact(stream, 1)[0]
            if flag != _SEGWIT_FLAG:
                msg = f"Unsupported segwit flag: 0x{flag:02x}"
                raise TransactionDecodeError(msg)
            segwit = True
            n_inputs = read_compact_size(stream)

        prevouts: list[tuple[OutPoint, bytes, int]] = []
        for _ in range(n_inputs):
            prev_txid = Txid(_read_exact(stream, TXID_SIZE))
            prevout = OutPoint(prev_txid, _read_struct(stream, "<I"))
            script_sig = _read_var_bytes(stream)
            prevouts.append((prevout, script_sig, _read_struct(stream, "<I")))

        outputs = []
        for _ in range(read_compact_size(stream)):
            value = _read_struct(stream, "<q")
            outputs.append(TxOut(value, _read_var_bytes(stream)))

        witnesses: list[tuple[bytes, ...]] = [() for _ in prevouts]
        if segwit:
            for index in range(len(prevouts)):
                n_items = read_compact_size(stream)
                witnesses[index] = tuple(_read_var_bytes(stream) for _ in range(n_items))
            if prevouts and not any(witnesses):
                msg = "Segwit encoding without any witness data"
                raise TransactionDecodeError(msg)

        lock_time = _read_struct(stream, "<I")
        trailing = len(data) - stream.tell()
        if trailing:
            msg = f"{trailing} trailing bytes after transaction"
            raise TransactionDecodeError(msg)

        inputs = tuple(
            TxIn(prevout, script_sig, sequence, witness)
            for (prevout, script_sig, sequence), witness in zip(prevouts, witnesses)
        )
        return cls(version, inputs, tuple(outputs), lock_time)

    def __str__(self) -> str:
        return str(self.txid)
