"""
Teleport Oracle Path

Fast withdrawals: a quorum of oracle signatures over a GUID lets the
target domain mint before the slow cross-domain message arrives.
"""

from teleport.oracle.attestation import (
    Attestation,
    Oracle,
    decode_signatures,
    encode_signatures,
    gather_attestations,
)
from teleport.oracle.fees import LinearFee, TeleportFees
from teleport.oracle.gateway import TELEPORT_INITIALIZED, TeleportGateway
from teleport.oracle.join import MintRecord, TeleportJoin
from teleport.oracle.verifier import AttestationVerifier, ReplayGuard

__all__ = [
    "Attestation",
    "AttestationVerifier",
    "LinearFee",
    "MintRecord",
    "Oracle",
    "ReplayGuard",
    "TELEPORT_INITIALIZED",
    "TeleportFees",
    "TeleportGateway",
    "TeleportJoin",
    "decode_signatures",
    "encode_signatures",
    "gather_attestations",
]
