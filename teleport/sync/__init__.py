"""
Teleport Sync - checkpointed event scanning.
"""

from teleport.sync.chain import BlockchainClient, ChainEvent, MemoryChain
from teleport.sync.relay import CROSS_DOMAIN_MESSAGE, MessageRelaySynchronizer, publish
from teleport.sync.store import (
    SyncStatus,
    SyncStatusRepository,
    TeleportRepository,
    create_store_engine,
)
from teleport.sync.synchronizer import EventSynchronizer, SynchronizerState
from teleport.sync.teleports import TeleportInitializedSynchronizer

__all__ = [
    "BlockchainClient",
    "CROSS_DOMAIN_MESSAGE",
    "ChainEvent",
    "EventSynchronizer",
    "MemoryChain",
    "MessageRelaySynchronizer",
    "SyncStatus",
    "SyncStatusRepository",
    "SynchronizerState",
    "TeleportInitializedSynchronizer",
    "TeleportRepository",
    "create_store_engine",
    "publish",
]
