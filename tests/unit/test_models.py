"""Tests for coordinator domain value types.

Covers validation of txids, outpoints, compressed public keys and DER
signatures, plus ordering of the Sigs mapping.
"""

from __future__ import annotations

import pytest

from coordinator_store.models import OutPoint, PublicKey, Signature, Sigs, Txid
from tests.factories import make_pubkey, make_signature, make_txid

GENESIS_TXID = "4a5e1e4baab89f3a32518a88c31bc87f618f76673e2cc77ab2127b7afdeda33b"


class TestTxid:
    """Tests for Txid."""

    def test_from_hex_reverses_display_order(self) -> None:
        """Display hex is byte-reversed relative to the internal bytes."""
        txid = Txid.from_hex(GENESIS_TXID)
        assert txid.raw == bytes.fromhex(GENESIS_TXID)[::-1]
        assert str(txid) == GENESIS_TXID

    def test_wrong_length_rejected(self) -> None:
        """Txids must be exactly 32 bytes."""
        with pytest.raises(ValueError, match="32 bytes"):
            Txid(b"\x00" * 31)

    def test_invalid_hex_rejected(self) -> None:
        """Non-hex input raises ValueError."""
        with pytest.raises(ValueError, match="Invalid txid hex"):
            Txid.from_hex("zz" * 32)


class TestOutPoint:
    """Tests for OutPoint."""

    def test_from_str_parses_txid_and_vout(self) -> None:
        """'<txid>:<vout>' notation round-trips through str()."""
        outpoint = OutPoint.from_str(f"{GENESIS_TXID}:7")
        assert outpoint.txid == Txid.from_hex(GENESIS_TXID)
        assert outpoint.vout == 7
        assert str(outpoint) == f"{GENESIS_TXID}:7"

    def test_from_str_requires_separator(self) -> None:
        """Missing ':<vout>' is rejected."""
        with pytest.raises(ValueError, match="expected '<txid>:<vout>'"):
            OutPoint.from_str(GENESIS_TXID)

    def test_from_str_rejects_negative_vout(self) -> None:
        """Negative vouts do not parse."""
        with pytest.raises(ValueError):
            OutPoint.from_str(f"{GENESIS_TXID}:-1")

    def test_vout_upper_bound(self) -> None:
        """vout is an unsigned 32-bit integer."""
        OutPoint(make_txid(1), 0xFFFFFFFF)
        with pytest.raises(ValueError, match="vout out of range"):
            OutPoint(make_txid(1), 0x100000000)


class TestPublicKey:
    """Tests for PublicKey."""

    def test_compressed_key_accepted(self) -> None:
        """33-byte keys with an 0x02/0x03 prefix are accepted."""
        pubkey = make_pubkey(3)
        assert PublicKey.from_slice(pubkey.serialize()) == pubkey

    def test_uncompressed_key_rejected(self) -> None:
        """65-byte uncompressed keys are rejected."""
        with pytest.raises(ValueError, match="33 bytes"):
            PublicKey(b"\x04" + b"\x01" * 64)

    def test_bad_prefix_rejected(self) -> None:
        """Only even/odd compressed prefixes are valid."""
        with pytest.raises(ValueError, match="prefix"):
            PublicKey(b"\x05" + b"\x01" * 32)

    def test_keys_order_by_serialization(self) -> None:
        """Public keys sort by their serialized bytes."""
        low = PublicKey(b"\x02" + b"\x00" * 32)
        high = PublicKey(b"\x03" + b"\x00" * 32)
        assert sorted([high, low]) == [low, high]


class TestSignature:
    """Tests for DER signature validation."""

    def test_valid_signature_accepted(self) -> None:
        """A well-formed DER signature round-trips its bytes."""
        sig = make_signature(1)
        assert Signature.from_der(sig.serialize_der()) == sig

    def test_minimal_signature_accepted(self) -> None:
        """One-byte R and S values are valid DER."""
        Signature(bytes.fromhex("3006020101020101"))

    def test_padded_high_r_accepted(self) -> None:
        """A zero pad is required, and allowed, before a high-bit byte."""
        Signature(bytes.fromhex("300702020080020101"))

    @pytest.mark.parametrize(
        ("der_hex", "match"),
        [
            ("3106020101020101", "sequence header"),
            ("3007020101020101", "sequence header"),
            ("3006030101020101", "R element"),
            ("3006020101030101", "S element"),
            ("3006020181020101", "negative R"),
            ("300702020001020101", "non-minimal R"),
            ("3006020101020181", "negative S"),
            ("300602010102", "invalid length"),
        ],
    )
    def test_malformed_signatures_rejected(self, der_hex: str, match: str) -> None:
        """Structural DER violations raise ValueError."""
        with pytest.raises(ValueError, match=match):
            Signature(bytes.fromhex(der_hex))

    def test_trailing_sighash_byte_rejected(self) -> None:
        """A sighash flag appended to the DER blob breaks the length header."""
        der = make_signature(2).serialize_der()
        with pytest.raises(ValueError):
            Signature(der + b"\x01")


class TestSigs:
    """Tests for the Sigs mapping wrapper."""

    def test_iterates_in_public_key_order(self) -> None:
        """Entries are ordered by public key regardless of insertion order."""
        keys = [make_pubkey(seed) for seed in range(6)]
        sigs = Sigs({key: make_signature(i) for i, key in enumerate(reversed(keys))})
        assert list(sigs.signatures) == sorted(keys)

    def test_len_and_membership(self) -> None:
        """len() and `in` delegate to the underlying mapping."""
        sigs = Sigs({make_pubkey(1): make_signature(1)})
        assert len(sigs) == 1
        assert make_pubkey(1) in sigs
        assert make_pubkey(2) not in sigs
