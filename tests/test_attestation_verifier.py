"""
tests/test_attestation_verifier.py

Oracle attestations, quorum and replay protection.

    CODEC      96-byte (public key || signature) records, sorted by key
    QUORUM     a mint needs >= threshold distinct valid oracle-set signatures
    REPLAY     a GUID mints at most once, whatever signatures come with it
    CALLER     only the receiver or the operator may request a mint
    FEES       fee and operator fee are bounded before anything is minted
"""

from dataclasses import replace

import pytest

from teleport.core.auth import ADMIN, AccessControl
from teleport.core.crypto import OracleKey
from teleport.core.exceptions import (
    AuthorizationError,
    FeeExceededError,
    InsufficientQuorumError,
    ReplayError,
    ValidationError,
)
from teleport.core.guid import guid_hash
from teleport.core.units import PRECISION
from teleport.oracle.attestation import (
    RECORD_SIZE,
    Attestation,
    Oracle,
    decode_signatures,
    encode_signatures,
    gather_attestations,
)
from teleport.oracle.fees import LinearFee
from teleport.oracle.join import TeleportJoin
from teleport.oracle.verifier import AttestationVerifier

from tests.conftest import ADMIN_ID, OPERATOR_ID, RECEIVER_ID, STRANGER_ID, make_guid

NOW = 1_646_234_074 + 60


@pytest.fixture
def join(ledger):
    return TeleportJoin(ledger, domain="ETH-GOE-A", clock=lambda: NOW)


@pytest.fixture
def verifier(join, oracles, audit):
    return AttestationVerifier(
        join=      join,
        access=    AccessControl({ADMIN: [ADMIN_ID]}),
        threshold= 2,
        signers=   [o.identity for o in oracles],
        audit=     audit,
    )


def _mint(verifier, guid, signatures, max_fee_bps=0, operator_fee=0, caller=RECEIVER_ID):
    return verifier.request_mint(guid, signatures, max_fee_bps, operator_fee, caller)


class TestCodec:

    def test_records_are_fixed_width(self, guid, oracles):
        blob = gather_attestations(guid, oracles)
        assert len(blob) == 3 * RECORD_SIZE == 288

    def test_encoding_is_order_independent(self, guid, oracles):
        attestations = [o.attest(guid) for o in oracles]
        assert encode_signatures(attestations) == encode_signatures(reversed(attestations))

    def test_decode_recovers_attestations(self, guid, oracles):
        attestations = [o.attest(guid) for o in oracles]
        decoded = decode_signatures(encode_signatures(attestations))
        assert sorted(a.oracle for a in decoded) == sorted(o.identity for o in oracles)
        digest = guid_hash(guid)
        assert all(a.verify(digest) for a in decoded)

    def test_truncated_payload_is_rejected(self, guid, oracles):
        blob = gather_attestations(guid, oracles)
        with pytest.raises(ValidationError):
            decode_signatures(blob[:-1])

    def test_signature_over_other_guid_does_not_verify(self, guid, oracles):
        other = make_guid(nonce=8)
        assert not oracles[0].attest(other).verify(guid_hash(guid))

    def test_short_signature_cannot_be_encoded(self, oracles):
        with pytest.raises(ValidationError):
            encode_signatures([Attestation(oracle=oracles[0].identity, signature=b"\x01" * 10)])


class TestQuorum:

    def test_two_of_three_mints(self, verifier, guid, oracles, ledger):
        record = _mint(verifier, guid, gather_attestations(guid, oracles[:2]))
        assert record.amount == guid.amount
        assert ledger.balance_of(RECEIVER_ID) == guid.amount

    def test_single_signature_is_insufficient(self, verifier, guid, oracles, ledger):
        with pytest.raises(InsufficientQuorumError):
            _mint(verifier, guid, gather_attestations(guid, oracles[:1]))
        assert ledger.balance_of(RECEIVER_ID) == 0
        assert len(verifier.replay) == 0

    def test_duplicate_signer_counts_once(self, verifier, guid, oracles):
        attestation = oracles[0].attest(guid)
        blob = encode_signatures([attestation, attestation])
        with pytest.raises(InsufficientQuorumError):
            _mint(verifier, guid, blob)

    def test_outsider_signatures_do_not_count(self, verifier, guid, oracles):
        outsider = Oracle(OracleKey.from_private_bytes(b"\x42" * 32))
        blob = gather_attestations(guid, [oracles[0], outsider])
        with pytest.raises(InsufficientQuorumError):
            _mint(verifier, guid, blob)

    def test_forged_signature_does_not_count(self, verifier, guid, oracles):
        good = oracles[0].attest(guid)
        forged = Attestation(oracle=oracles[1].identity, signature=oracles[2].attest(guid).signature)
        with pytest.raises(InsufficientQuorumError):
            _mint(verifier, guid, encode_signatures([good, forged]))

    def test_count_valid(self, verifier, guid, oracles):
        digest = guid_hash(guid)
        assert verifier.count_valid(digest, [o.attest(guid) for o in oracles]) == 3

    def test_raising_threshold_applies_to_next_request(self, verifier, guid, oracles):
        verifier.file_threshold(ADMIN_ID, 3)
        with pytest.raises(InsufficientQuorumError):
            _mint(verifier, guid, gather_attestations(guid, oracles[:2]))
        _mint(verifier, guid, gather_attestations(guid, oracles))

    def test_removed_signer_stops_counting(self, verifier, guid, oracles):
        verifier.remove_signers(ADMIN_ID, oracles[1].identity)
        with pytest.raises(InsufficientQuorumError):
            _mint(verifier, guid, gather_attestations(guid, oracles[:2]))

    def test_admin_operations_require_admin(self, verifier, oracles):
        with pytest.raises(AuthorizationError):
            verifier.file_threshold(STRANGER_ID, 1)
        with pytest.raises(AuthorizationError):
            verifier.add_signers(STRANGER_ID, oracles[0].identity)
        assert verifier.threshold == 2

    def test_threshold_must_be_positive(self, verifier):
        with pytest.raises(ValidationError):
            verifier.file_threshold(ADMIN_ID, 0)


class TestReplay:

    def test_second_mint_is_rejected(self, verifier, guid, oracles, ledger):
        _mint(verifier, guid, gather_attestations(guid, oracles[:2]))
        with pytest.raises(ReplayError):
            _mint(verifier, guid, gather_attestations(guid, oracles))
        assert ledger.balance_of(RECEIVER_ID) == guid.amount, "minted exactly once"

    def test_same_nonce_from_same_source_is_rejected(self, verifier, guid, oracles):
        _mint(verifier, guid, gather_attestations(guid, oracles[:2]))
        twin = replace(guid, amount=guid.amount + 1)
        with pytest.raises(ReplayError):
            _mint(verifier, twin, gather_attestations(twin, oracles[:2]))

    def test_same_nonce_from_other_source_mints(self, verifier, guid, oracles):
        _mint(verifier, guid, gather_attestations(guid, oracles[:2]))
        other = replace(guid, source_domain="ARB-GOE-A")
        _mint(verifier, other, gather_attestations(other, oracles[:2]))
        assert len(verifier.replay) == 2

    def test_failed_mint_does_not_consume_guid(self, verifier, guid, oracles, join):
        join.file_fees(guid.source_domain, LinearFee(100))
        blob = gather_attestations(guid, oracles[:2])
        with pytest.raises(FeeExceededError):
            _mint(verifier, guid, blob, max_fee_bps=0)
        _mint(verifier, guid, blob, max_fee_bps=100)

    def test_mint_is_audited(self, verifier, guid, oracles, audit):
        _mint(verifier, guid, gather_attestations(guid, oracles[:2]))
        (record,) = audit.records("Mint")
        assert record.payload["digest"] == guid.hash_hex()
        assert record.payload["signers"] == "2"


class TestCaller:

    def test_operator_may_request(self, verifier, guid, oracles):
        _mint(verifier, guid, gather_attestations(guid, oracles[:2]), caller=OPERATOR_ID)

    def test_stranger_may_not_request(self, verifier, guid, oracles, ledger):
        with pytest.raises(AuthorizationError):
            _mint(verifier, guid, gather_attestations(guid, oracles), caller=STRANGER_ID)
        assert ledger.balance_of(RECEIVER_ID) == 0

    def test_caller_case_is_ignored(self, verifier, guid, oracles):
        _mint(verifier, guid, gather_attestations(guid, oracles[:2]), caller="0x" + "C8" * 20)

    def test_caller_leading_zeros_are_ignored(self, verifier, guid, oracles):
        _mint(verifier, guid, gather_attestations(guid, oracles[:2]), caller="0x" + "d" + "0d" * 19)

    def test_malformed_caller_is_not_authorized(self, verifier, guid, oracles):
        with pytest.raises(AuthorizationError):
            _mint(verifier, guid, gather_attestations(guid, oracles[:2]), caller="receiver")


class TestFees:

    def test_fee_and_operator_fee_are_paid(self, verifier, guid, oracles, join, ledger):
        join.file_fees(guid.source_domain, LinearFee(10))
        record = _mint(
            verifier, guid, gather_attestations(guid, oracles[:2]),
            max_fee_bps=10, operator_fee=5 * 10 ** 18,
        )
        fee = guid.amount * 10 // 10_000
        assert record.fee == fee
        assert ledger.balance_of(OPERATOR_ID) == 5 * 10 ** 18
        assert ledger.balance_of(RECEIVER_ID) == guid.amount - fee - 5 * 10 ** 18
        assert ledger.surplus("vow") == fee * PRECISION
        assert ledger.debt() == guid.amount * PRECISION

    def test_fee_expires_after_ttl(self, ledger, guid, oracles):
        join = TeleportJoin(
            ledger, domain="ETH-GOE-A",
            fees={guid.source_domain: LinearFee(100, ttl=30)},
            clock=lambda: NOW,
        )
        verifier = AttestationVerifier(join, AccessControl(), 1, [oracles[0].identity])
        record = _mint(verifier, guid, gather_attestations(guid, oracles[:1]))
        assert record.fee == 0

    def test_operator_fee_cannot_exceed_remainder(self, verifier, guid, oracles, ledger):
        with pytest.raises(FeeExceededError):
            _mint(verifier, guid, gather_attestations(guid, oracles[:2]), operator_fee=guid.amount + 1)
        assert ledger.debt() == 0

    def test_wrong_target_domain_is_rejected(self, verifier, oracles):
        guid = make_guid(target_domain="ARB-GOE-A")
        with pytest.raises(ValidationError):
            _mint(verifier, guid, gather_attestations(guid, oracles[:2]))
