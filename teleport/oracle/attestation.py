"""
teleport/oracle/attestation.py

Oracle attestations over a GUID digest.

Wire format of the concatenated-signature payload:
    N records of 96 bytes, each   public_key (32) || signature (64)
    sorted by public key so identical attestation sets encode identically
"""

from dataclasses import dataclass
from typing import Iterable, List

from teleport.core.crypto import PUBLIC_KEY_SIZE, SIGNATURE_SIZE, OracleKey
from teleport.core.exceptions import ValidationError
from teleport.core.guid import TeleportGUID, guid_hash

RECORD_SIZE = PUBLIC_KEY_SIZE + SIGNATURE_SIZE


@dataclass(frozen=True)
class Attestation:
    oracle:    str     # 0x-hex Ed25519 public key
    signature: bytes   # 64 bytes over guid_hash(guid)

    def verify(self, digest: bytes) -> bool:
        return OracleKey.verify_detached(digest, self.signature, self.oracle)


class Oracle:
    """An independent signer attesting that a teleport was initiated."""

    def __init__(self, key: OracleKey) -> None:
        self.key = key

    @property
    def identity(self) -> str:
        return self.key.identity

    def attest(self, guid: TeleportGUID) -> Attestation:
        return Attestation(oracle=self.identity, signature=self.key.sign(guid_hash(guid)))


def encode_signatures(attestations: Iterable[Attestation]) -> bytes:
    records = sorted(attestations, key=lambda a: a.oracle)
    out = bytearray()
    for a in records:
        if len(a.signature) != SIGNATURE_SIZE:
            raise ValidationError(
                "Signature must be 64 bytes",
                {"oracle": a.oracle, "length": len(a.signature)},
            )
        out += bytes.fromhex(a.oracle[2:]).rjust(PUBLIC_KEY_SIZE, b"\x00")
        out += a.signature
    return bytes(out)


def decode_signatures(blob: bytes) -> List[Attestation]:
    if len(blob) % RECORD_SIZE:
        raise ValidationError(
            "Signature payload is not a whole number of records",
            {"length": len(blob), "record_size": RECORD_SIZE},
        )
    return [
        Attestation(
            oracle=    "0x" + blob[i:i + PUBLIC_KEY_SIZE].hex(),
            signature= bytes(blob[i + PUBLIC_KEY_SIZE:i + RECORD_SIZE]),
        )
        for i in range(0, len(blob), RECORD_SIZE)
    ]


def gather_attestations(guid: TeleportGUID, oracles: Iterable[Oracle]) -> bytes:
    """Collect one attestation per oracle and encode them for request_mint."""
    return encode_signatures(oracle.attest(guid) for oracle in oracles)
