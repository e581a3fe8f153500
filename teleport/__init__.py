"""
teleport/__init__.py

Teleport: cross-domain debt-ceiling accounting and oracle-attested
fast withdrawals.

    HostLedgerController    grants a remote domain its pre-mint allowance
    GuestLedgerController   tracks outstanding pre-mint, reconciles debt
    AttestationVerifier     mints on a quorum of oracle signatures
    EventSynchronizer       checkpointed block scanner driving both
"""

__version__ = "0.3.0"

from teleport.core.auth import ADMIN, RELAY, AccessControl
from teleport.core.crypto import OracleKey
from teleport.core.exceptions import (
    AuthorizationError,
    ConfigError,
    FeeExceededError,
    InsufficientEscrowError,
    InsufficientQuorumError,
    LedgerError,
    NothingToReleaseError,
    ReplayError,
    ShutdownPendingError,
    StaleChainStateError,
    SyncError,
    SyncPersistenceError,
    TeleportError,
    ValidationError,
)
from teleport.core.guid import TeleportGUID, encode_guid, guid_hash
from teleport.core.units import PRECISION
from teleport.domain.guest import GuestLedgerController
from teleport.domain.host import HostLedgerController
from teleport.oracle.verifier import AttestationVerifier
from teleport.sync.synchronizer import EventSynchronizer, SynchronizerState

__all__ = [
    # Core types
    "AccessControl",
    "OracleKey",
    "TeleportGUID",
    "encode_guid",
    "guid_hash",
    "PRECISION",
    "ADMIN",
    "RELAY",
    # Components
    "AttestationVerifier",
    "EventSynchronizer",
    "GuestLedgerController",
    "HostLedgerController",
    "SynchronizerState",
    # Errors
    "AuthorizationError",
    "ConfigError",
    "FeeExceededError",
    "InsufficientEscrowError",
    "InsufficientQuorumError",
    "LedgerError",
    "NothingToReleaseError",
    "ReplayError",
    "ShutdownPendingError",
    "StaleChainStateError",
    "SyncError",
    "SyncPersistenceError",
    "TeleportError",
    "ValidationError",
]
