"""
tests/conftest.py

Shared fixtures for the teleport test suite.
"""

import pytest

from teleport.core.auth import ADMIN, RELAY, AccessControl
from teleport.core.crypto import OracleKey
from teleport.core.guid import TeleportGUID
from teleport.ledger.audit import AuditLog
from teleport.ledger.memory import MemoryLedger
from teleport.oracle.attestation import Oracle

ADMIN_ID    = "0x" + "aa" * 20
RELAY_ID    = "0x" + "bb" * 20
RECEIVER_ID = "0x" + "c8" * 20
OPERATOR_ID = "0x" + "0d" * 20
STRANGER_ID = "0x" + "ee" * 20


def make_guid(**overrides) -> TeleportGUID:
    """A valid GUID; any field can be overridden."""
    fields = dict(
        source_domain= "OPT-GOE-A",
        target_domain= "ETH-GOE-A",
        receiver=      RECEIVER_ID,
        operator=      OPERATOR_ID,
        amount=        100 * 10 ** 18,
        nonce=         7,
        timestamp=     1_646_234_074,
    )
    fields.update(overrides)
    return TeleportGUID(**fields)


@pytest.fixture
def guid() -> TeleportGUID:
    return make_guid()


@pytest.fixture
def ledger() -> MemoryLedger:
    return MemoryLedger()


@pytest.fixture
def audit() -> AuditLog:
    return AuditLog()


@pytest.fixture
def access() -> AccessControl:
    return AccessControl({ADMIN: [ADMIN_ID], RELAY: [RELAY_ID]})


@pytest.fixture
def oracles():
    """Three oracles with fixed seeds so identities are stable across runs."""
    return [
        Oracle(OracleKey.from_private_bytes(bytes([i + 1]) * 32))
        for i in range(3)
    ]
