"""Domain value types for vault coordination records.

Each type wraps its canonical byte encoding and validates it on
construction, so anything handed to the database layer is already
well-formed:

    Txid       32-byte transaction identifier, internal (hash) byte order
    OutPoint   (txid, vout) reference to one output of a prior transaction
    PublicKey  33-byte compressed secp256k1 point encoding
    Signature  strict DER-encoded ECDSA signature, no sighash byte
    Sigs       signatures collected for one transaction, keyed by public key
"""

from __future__ import annotations

from dataclasses import dataclass, field

TXID_SIZE = 32
COMPRESSED_PUBKEY_SIZE = 33
MAX_VOUT = 0xFFFFFFFF

# Strict DER bounds: two minimal 1-byte integers up to two 33-byte integers.
_DER_MIN_SIZE = 8
_DER_MAX_SIZE = 72


@dataclass(frozen=True, order=True)
class Txid:
    """A transaction identifier in internal byte order."""

    raw: bytes

    def __post_init__(self) -> None:
        if len(self.raw) != TXID_SIZE:
            msg = f"txid must be {TXID_SIZE} bytes, got {len(self.raw)}"
            raise ValueError(msg)

    @classmethod
    def from_hex(cls, value: str) -> Txid:
        """Parse the conventional display hex (byte-reversed)."""
        try:
            raw = bytes.fromhex(value)
        except ValueError as exc:
            msg = f"Invalid txid hex: {value!r}"
            raise ValueError(msg) from exc
        return cls(raw[::-1])

    def __bytes__(self) -> bytes:
        return self.raw

    def __str__(self) -> str:
        return self.raw[::-1].hex()


@dataclass(frozen=True, order=True)
class OutPoint:
    """A reference to output ``vout`` of transaction ``txid``."""

    txid: Txid
    vout: int

    def __post_init__(self) -> None:
        if not 0 <= self.vout <= MAX_VOUT:
            msg = f"vout out of range: {self.vout}"
            raise ValueError(msg)

    @classmethod
    def from_str(cls, value: str) -> OutPoint:
        """Parse ``<txid-hex>:<vout>``."""
        txid_hex, sep, vout = value.rpartition(":")
        if not sep or not vout.isdigit():
            msg = f"Invalid outpoint, expected '<txid>:<vout>': {value!r}"
            raise ValueError(msg)
        return cls(Txid.from_hex(txid_hex), int(vout))

    def __str__(self) -> str:
        return f"{self.txid}:{self.vout}"


@dataclass(frozen=True, order=True)
class PublicKey:
    """A compressed public key.

    Only the encoding is checked (length and parity prefix). Whether the
    x coordinate is on the curve is left to whoever produced the key.
    """

    raw: bytes

    def __post_init__(self) -> None:
        if len(self.raw) != COMPRESSED_PUBKEY_SIZE:
            msg = f"compressed public key must be {COMPRESSED_PUBKEY_SIZE} bytes, got {len(self.raw)}"
            raise ValueError(msg)
        if self.raw[0] not in (0x02, 0x03):
            msg = f"invalid compressed public key prefix: 0x{self.raw[0]:02x}"
            raise ValueError(msg)

    @classmethod
    def from_slice(cls, data: bytes) -> PublicKey:
        return cls(bytes(data))

    def serialize(self) -> bytes:
        return self.raw

    def __str__(self) -> str:
        return self.raw.hex()


def _check_der_integer(data: bytes, name: str) -> None:
    if not data:
        msg = f"DER signature has an empty {name} value"
        raise ValueError(msg)
    if data[0] & 0x80:
        msg = f"DER signature has a negative {name} value"
        raise ValueError(msg)
    if len(data) > 1 and data[0] == 0x00 and not data[1] & 0x80:
        msg = f"DER signature has a non-minimal {name} encoding"
        raise ValueError(msg)


@dataclass(frozen=True)
class Signature:
    """A DER-encoded ECDSA signature."""

    der: bytes

    def __post_init__(self) -> None:
        sig = self.der
        if not _DER_MIN_SIZE <= len(sig) <= _DER_MAX_SIZE:
            msg = f"DER signature has invalid length {len(sig)}"
            raise ValueError(msg)
        if sig[0] != 0x30 or sig[1] != len(sig) - 2:
            msg = "DER signature has an invalid sequence header"
            raise ValueError(msg)

        r_len = sig[3]
        if sig[2] != 0x02 or 5 + r_len >= len(sig):
            msg = "DER signature has an invalid R element"
            raise ValueError(msg)
        s_len = sig[5 + r_len]
        if sig[4 + r_len] != 0x02 or r_len + s_len + 6 != len(sig):
            msg = "DER signature has an invalid S element"
            raise ValueError(msg)

        _check_der_integer(sig[4 : 4 + r_len], "R")
        _check_der_integer(sig[6 + r_len :], "S")

    @classmethod
    def from_der(cls, data: bytes) -> Signature:
        return cls(bytes(data))

    def serialize_der(self) -> bytes:
        return self.der

    def __str__(self) -> str:
        return self.der.hex()


@dataclass
class Sigs:
    """Signatures gathered for a single transaction.

    Attributes:
        signatures: Mapping of signer public key to signature, iterated in
            public key order.
    """

    signatures: dict[PublicKey, Signature] = field(default_factory=dict)

    def __post_init__(self) -> None:
        self.signatures = dict(sorted(self.signatures.items()))

    def __len__(self) -> int:
        return len(self.signatures)

    def __contains__(self, pubkey: object) -> bool:
        return pubkey in self.signatures
