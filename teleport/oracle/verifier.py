"""
teleport/oracle/verifier.py

AttestationVerifier: authorizes a fast mint on oracle signatures.

request_mint() MUST, in this exact order:
  1. Check the caller is the GUID receiver or operator
  2. digest = guid_hash(guid)
  3. Count distinct oracle-set members with a valid signature over digest
  4. InsufficientQuorumError if count < threshold
  5. ReplayError if digest or (source_domain, nonce) was already minted
  6. Mint through TeleportJoin
  7. Only then add digest and (source_domain, nonce) to the replay guard

Steps 3-7 run under one lock so two requests for the same GUID cannot
both pass the replay check.

Oracle set and threshold changes apply to verifications made after the
change. Already-consumed GUIDs stay consumed.
"""

import logging
import threading
from typing import Dict, FrozenSet, Iterable, List, Optional, Set, Tuple

from teleport.config import OracleConfig
from teleport.core.auth import ADMIN, AccessControl
from teleport.core.canonical import stringify_values
from teleport.core.exceptions import (
    AuthorizationError,
    InsufficientQuorumError,
    ReplayError,
    ValidationError,
)
from teleport.core.guid import TeleportGUID, guid_hash
from teleport.core.units import normalize_identity
from teleport.ledger.audit import AuditLog
from teleport.oracle.attestation import Attestation, decode_signatures
from teleport.oracle.join import MintRecord, TeleportJoin

logger = logging.getLogger(__name__)


class ReplayGuard:
    """Monotonic set of consumed GUID digests and (source_domain, nonce) pairs."""

    def __init__(self) -> None:
        self._digests: Set[bytes]            = set()
        self._nonces:  Set[Tuple[str, int]]  = set()

    def seen(self, digest: bytes, guid: TeleportGUID) -> bool:
        return digest in self._digests or (guid.source_domain, guid.nonce) in self._nonces

    def add(self, digest: bytes, guid: TeleportGUID) -> None:
        self._digests.add(digest)
        self._nonces.add((guid.source_domain, guid.nonce))

    def __len__(self) -> int:
        return len(self._digests)


class AttestationVerifier:

    def __init__(
        self,
        join:      TeleportJoin,
        access:    AccessControl,
        threshold: int = 1,
        signers:   Iterable[str] = (),
        audit:     Optional[AuditLog] = None,
    ) -> None:
        if threshold < 1:
            raise ValidationError("threshold must be at least 1", {"threshold": threshold})
        self.join      = join
        self.access    = access
        self.audit     = audit
        self.replay    = ReplayGuard()
        self.mints:    Dict[str, MintRecord] = {}
        self._lock     = threading.Lock()
        self._threshold = threshold
        self._signers: Set[str] = {normalize_identity(s) for s in signers}

    @classmethod
    def from_config(
        cls,
        join:   TeleportJoin,
        access: AccessControl,
        config: OracleConfig,
        audit:  Optional[AuditLog] = None,
    ) -> "AttestationVerifier":
        """Verifier with the oracle set and threshold of an `oracles:` config section."""
        signers = {normalize_identity(s) for s in config.signers}
        if config.threshold > len(signers):
            logger.warning(
                "Threshold %d exceeds the %d configured signer(s); no mint can pass",
                config.threshold, len(signers),
            )
        return cls(join, access, threshold=config.threshold, signers=signers, audit=audit)

    # ── Administration ────────────────────────────────────────

    @property
    def threshold(self) -> int:
        with self._lock:
            return self._threshold

    @property
    def signers(self) -> FrozenSet[str]:
        with self._lock:
            return frozenset(self._signers)

    def file_threshold(self, caller: str, threshold: int) -> None:
        self.access.require(caller, ADMIN)
        if threshold < 1:
            raise ValidationError("threshold must be at least 1", {"threshold": threshold})
        with self._lock:
            self._threshold = threshold
        logger.info("Threshold set to %d by %s", threshold, caller)
        self._record("File", {"what": "threshold", "threshold": threshold})

    def add_signers(self, caller: str, *oracles: str) -> None:
        self.access.require(caller, ADMIN)
        added = [normalize_identity(o) for o in oracles]
        with self._lock:
            self._signers.update(added)
        logger.info("Added %d oracle signer(s)", len(added))
        self._record("SignersAdded", {"signers": ",".join(added)})

    def remove_signers(self, caller: str, *oracles: str) -> None:
        self.access.require(caller, ADMIN)
        removed = [normalize_identity(o) for o in oracles]
        with self._lock:
            self._signers.difference_update(removed)
        logger.info("Removed %d oracle signer(s)", len(removed))
        self._record("SignersRemoved", {"signers": ",".join(removed)})

    def rely(self, caller: str, identity: str, role: str = ADMIN) -> None:
        self.access.rely(caller, identity, role)

    def deny(self, caller: str, identity: str, role: str = ADMIN) -> None:
        self.access.deny(caller, identity, role)

    # ── Verification ──────────────────────────────────────────

    def count_valid(self, digest: bytes, attestations: List[Attestation]) -> int:
        """Distinct current signers with a valid signature over digest."""
        with self._lock:
            signers = set(self._signers)
        return len(_valid_signers(digest, attestations, signers))

    def request_mint(
        self,
        guid:               TeleportGUID,
        signatures:         bytes,
        max_fee_percentage: int,
        operator_fee:       int,
        caller:             str,
    ) -> MintRecord:
        """
        Mint guid on the strength of its attestations.

        Args:
            guid:               the transfer record
            signatures:         concatenated (public key || signature) records
            max_fee_percentage: highest acceptable fee, basis points
            operator_fee:       tokens paid to guid.operator out of the amount
            caller:             identity submitting the request
        """
        try:
            caller_id = normalize_identity(caller)
        except ValidationError:
            caller_id = None
        if caller_id not in (guid.receiver, guid.operator):
            logger.warning("Mint request by %s rejected: not receiver nor operator", caller)
            raise AuthorizationError(
                "Caller is neither receiver nor operator",
                {"caller": caller},
            )

        digest     = guid_hash(guid)
        digest_hex = "0x" + digest.hex()
        attestations = decode_signatures(signatures)

        with self._lock:
            threshold = self._threshold
            valid = _valid_signers(digest, attestations, self._signers)
            if len(valid) < threshold:
                logger.warning(
                    "Mint %s rejected: %d of %d required signatures",
                    digest_hex[:14], len(valid), threshold,
                )
                raise InsufficientQuorumError(
                    "Not enough valid oracle signatures",
                    {"valid": len(valid), "threshold": threshold},
                )
            if self.replay.seen(digest, guid):
                logger.warning("Mint %s rejected: already minted", digest_hex[:14])
                raise ReplayError(
                    "GUID already minted",
                    {"digest": digest_hex, "nonce": guid.nonce},
                )

            record = self.join.mint(guid, digest_hex, max_fee_percentage, operator_fee)
            self.replay.add(digest, guid)
            self.mints[digest_hex] = record

        self._record("Mint", {
            "digest":       digest_hex,
            "receiver":     record.receiver,
            "amount":       record.amount,
            "fee":          record.fee,
            "operator_fee": record.operator_fee,
            "signers":      len(valid),
        })
        return record

    # ── Internal ──────────────────────────────────────────────

    def _record(self, event: str, payload: Dict[str, object]) -> None:
        if self.audit is not None:
            self.audit.emit(
                f"AttestationVerifier:{self.join.domain}",
                event,
                stringify_values(payload),
            )


def _valid_signers(
    digest:       bytes,
    attestations: List[Attestation],
    signers:      Set[str],
) -> Set[str]:
    """Distinct members of signers whose signature over digest verifies. Duplicates count once."""
    valid: Set[str] = set()
    for attestation in attestations:
        oracle = normalize_identity(attestation.oracle)
        if oracle in valid or oracle not in signers:
            continue
        if attestation.verify(digest):
            valid.add(oracle)
    return valid
