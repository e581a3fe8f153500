"""
teleport/core/crypto.py

Oracle Cryptographic Layer: Ed25519

Key contracts:
    identity            : @property → "0x" + 64-char lowercase hex public key
    sign(data)          : bytes → 64 raw signature bytes
    verify_detached(...): @staticmethod: verifies with ONLY an identity string

Ed25519 signatures do not carry a recoverable signer, so every
attestation travels as (identity, signature). The verifier checks the
signature against the claimed identity and then checks membership.
"""

from pathlib import Path

from cryptography.exceptions import InvalidSignature
from cryptography.hazmat.primitives.asymmetric.ed25519 import (
    Ed25519PrivateKey,
    Ed25519PublicKey,
)
from cryptography.hazmat.primitives.serialization import (
    Encoding,
    NoEncryption,
    PrivateFormat,
    PublicFormat,
    load_pem_private_key,
)

SIGNATURE_SIZE  = 64
PUBLIC_KEY_SIZE = 32


class OracleKey:
    """
    Ed25519 key of one oracle.

    Public surface:
        OracleKey.generate()                          → new random key
        OracleKey.from_file(path)                     → load PEM private key
        OracleKey.from_private_bytes(seed)            → load from raw 32-byte seed
        OracleKey.verify_detached(data, sig, ident)   → @staticmethod

        key.identity            (@property) → 0x-prefixed public key hex
        key.sign(data: bytes)               → 64-byte signature
        key.save(path)                      → write PEM private key
    """

    def __init__(self, private_key: Ed25519PrivateKey) -> None:
        self._private_key: Ed25519PrivateKey = private_key
        self._public_key:  Ed25519PublicKey  = private_key.public_key()
        self._identity: str = "0x" + (
            self._public_key
            .public_bytes(Encoding.Raw, PublicFormat.Raw)
            .hex()
        )

    # ── Construction ──────────────────────────────────────────

    @classmethod
    def generate(cls) -> "OracleKey":
        """Fresh random oracle key."""
        return cls(Ed25519PrivateKey.generate())

    @classmethod
    def from_file(cls, path: Path) -> "OracleKey":
        """Unencrypted PKCS8 PEM, as written by save(). ValueError for anything else."""
        path = Path(path)
        if not path.exists():
            raise FileNotFoundError(f"Key file not found: {path}")
        try:
            private_key = load_pem_private_key(path.read_bytes(), password=None)
        except ValueError as exc:
            raise ValueError(f"Failed to load Ed25519 key from {path}: {exc}") from exc
        if not isinstance(private_key, Ed25519PrivateKey):
            raise ValueError(f"Key file {path} does not contain an Ed25519 private key")
        return cls(private_key)

    @classmethod
    def from_private_bytes(cls, seed: bytes) -> "OracleKey":
        """Deterministic key from a 32-byte seed (fixtures, HSM exports)."""
        if len(seed) != 32:
            raise ValueError(f"Ed25519 seed must be 32 bytes, got {len(seed)}")
        return cls(Ed25519PrivateKey.from_private_bytes(seed))

    # ── Identity ──────────────────────────────────────────────

    @property
    def identity(self) -> str:
        """0x-prefixed lowercase hex of the raw 32-byte public key."""
        return self._identity

    # ── Signing / Verification ────────────────────────────────

    def sign(self, data: bytes) -> bytes:
        """Sign data with Ed25519. Always 64 bytes."""
        return self._private_key.sign(data)

    @staticmethod
    def verify_detached(data: bytes, signature: bytes, identity: str) -> bool:
        """
        Verify an Ed25519 signature using ONLY the signer's identity.

        Returns:
            True if valid. False for ANY failure: wrong key, malformed
            identity, wrong signature length. Never raises.
        """
        if not isinstance(identity, str) or not identity.startswith("0x"):
            return False
        if len(signature) != SIGNATURE_SIZE:
            return False
        try:
            raw_pub = bytes.fromhex(identity[2:])
        except ValueError:
            return False
        if len(raw_pub) != PUBLIC_KEY_SIZE:
            return False
        try:
            Ed25519PublicKey.from_public_bytes(raw_pub).verify(bytes(signature), data)
        except (InvalidSignature, ValueError):
            return False
        return True

    # ── Persistence ───────────────────────────────────────────

    def save(self, path: Path) -> None:
        """Write the key as unencrypted PKCS8 PEM, readable by the owner only."""
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        pem = self._private_key.private_bytes(
            encoding=             Encoding.PEM,
            format=               PrivateFormat.PKCS8,
            encryption_algorithm= NoEncryption(),
        )
        path.write_bytes(pem)
        path.chmod(0o600)

    def __repr__(self) -> str:
        return f"OracleKey(identity={self._identity[:18]}...)"
