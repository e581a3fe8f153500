"""
Teleport Domain Controllers

Host side grants and reclaims a remote domain's pre-mint allowance;
guest side tracks what is outstanding and reconciles it against local
debt. The two talk only through cross-domain messages.
"""

from teleport.domain.bridges import GuestBridge, HostBridge, QueueGuestBridge, QueueHostBridge
from teleport.domain.guest import GuestLedgerController, PushResult
from teleport.domain.host import HostLedgerController
from teleport.domain.messaging import (
    CrossDomainMessage,
    InboundHandler,
    MessageKind,
    OutboundQueue,
    deliver,
)

__all__ = [
    "CrossDomainMessage",
    "GuestBridge",
    "GuestLedgerController",
    "HostBridge",
    "HostLedgerController",
    "InboundHandler",
    "MessageKind",
    "OutboundQueue",
    "PushResult",
    "QueueGuestBridge",
    "QueueHostBridge",
    "deliver",
]
