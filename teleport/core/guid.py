"""
teleport/core/guid.py

TeleportGUID: the canonical record of one cross-domain transfer.

═══════════════════════════════════════════════════════════════════
CODEC CONTRACT
═══════════════════════════════════════════════════════════════════
    encoding = seven 32-byte big-endian words, in this order:
        source_domain   utf-8, right-padded
        target_domain   utf-8, right-padded
        receiver        hex identity, left-padded
        operator        hex identity, left-padded
        amount          uint128
        nonce           uint80
        timestamp       uint48
    digest   = SHA-256(encoding)

The digest is the replay-guard key AND the bytes oracles sign.
Fixed width means no two distinct field tuples share an encoding;
collision resistance beyond that is SHA-256's job.
═══════════════════════════════════════════════════════════════════
"""

import hashlib
from dataclasses import dataclass
from typing import Any, Dict

from teleport.core.exceptions import ValidationError
from teleport.core.units import (
    UINT48_MAX,
    UINT80_MAX,
    UINT128_MAX,
    WORD_SIZE,
    domain_to_bytes32,
    identity_to_bytes32,
    normalize_identity,
    require_uint,
)

ZERO_IDENTITY = "0x" + "00" * 20

GUID_ENCODED_SIZE = 7 * WORD_SIZE


@dataclass(frozen=True)
class TeleportGUID:
    """
    Immutable transfer record.

    Identities are normalized on construction (lowercase, zero-padded to
    address or key width) so that "0xAB..", "0xab.." and "0x00ab.." name
    the same GUID.
    """

    source_domain: str
    target_domain: str
    receiver:      str
    operator:      str
    amount:        int
    nonce:         int
    timestamp:     int

    def __post_init__(self) -> None:
        domain_to_bytes32(self.source_domain)
        domain_to_bytes32(self.target_domain)
        object.__setattr__(self, "receiver", normalize_identity(self.receiver))
        object.__setattr__(self, "operator", normalize_identity(self.operator))
        require_uint("amount",    self.amount,    UINT128_MAX)
        require_uint("nonce",     self.nonce,     UINT80_MAX)
        require_uint("timestamp", self.timestamp, UINT48_MAX)

    def encode(self) -> bytes:
        return encode_guid(self)

    def hash(self) -> bytes:
        return guid_hash(self)

    def hash_hex(self) -> str:
        return "0x" + guid_hash(self).hex()

    def to_dict(self) -> Dict[str, Any]:
        """JSON-safe form. Integers as decimal strings (amount exceeds 2**53)."""
        return {
            "source_domain": self.source_domain,
            "target_domain": self.target_domain,
            "receiver":      self.receiver,
            "operator":      self.operator,
            "amount":        str(self.amount),
            "nonce":         str(self.nonce),
            "timestamp":     str(self.timestamp),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "TeleportGUID":
        try:
            return cls(
                source_domain= data["source_domain"],
                target_domain= data["target_domain"],
                receiver=      data["receiver"],
                operator=      data.get("operator", ZERO_IDENTITY),
                amount=        int(data["amount"]),
                nonce=         int(data["nonce"]),
                timestamp=     int(data["timestamp"]),
            )
        except (KeyError, TypeError, ValueError) as exc:
            raise ValidationError(f"Malformed TeleportGUID: {exc}") from exc


def encode_guid(guid: TeleportGUID) -> bytes:
    """Fixed-order, fixed-width encoding of all seven fields."""
    return b"".join((
        domain_to_bytes32(guid.source_domain),
        domain_to_bytes32(guid.target_domain),
        identity_to_bytes32(guid.receiver),
        identity_to_bytes32(guid.operator),
        guid.amount.to_bytes(WORD_SIZE, "big"),
        guid.nonce.to_bytes(WORD_SIZE, "big"),
        guid.timestamp.to_bytes(WORD_SIZE, "big"),
    ))


def guid_hash(guid: TeleportGUID) -> bytes:
    """32-byte SHA-256 digest of encode_guid(guid)."""
    return hashlib.sha256(encode_guid(guid)).digest()
