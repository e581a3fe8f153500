"""
Indexes TeleportInitialized events.

Each GUID found in a batch is merged into the teleports table in the
batch's own session, so the rows and the checkpoint commit together.
on_teleport runs after the row is staged; it is where an oracle signs
the GUID. It may be called again for the same GUID when a range is
replayed, so it must be idempotent.
"""

import logging
from typing import Any, Callable, Mapping, Optional, Union

from sqlalchemy.orm import Session

from teleport.config import SyncOptions
from teleport.core.guid import TeleportGUID
from teleport.oracle.gateway import TELEPORT_INITIALIZED
from teleport.sync.chain import BlockchainClient
from teleport.sync.store import SyncStatusRepository, TeleportRepository
from teleport.sync.synchronizer import EventSynchronizer

logger = logging.getLogger(__name__)


class TeleportInitializedSynchronizer(EventSynchronizer):

    def __init__(
        self,
        blockchain:        BlockchainClient,
        status_repository: SyncStatusRepository,
        domain_name:       str,
        starting_block:    int,
        blocks_per_batch:  int,
        options:           Optional[Union[SyncOptions, Mapping[str, Any]]] = None,
        on_teleport:       Optional[Callable[[TeleportGUID], None]] = None,
    ) -> None:
        super().__init__(
            blockchain, status_repository, domain_name,
            starting_block, blocks_per_batch, options,
        )
        self.teleports   = TeleportRepository(status_repository.engine)
        self.on_teleport = on_teleport

    def sync(self, session: Session, from_block: int, to_block: int) -> None:
        events = self.blockchain.get_logs(from_block, to_block, TELEPORT_INITIALIZED)
        for event in events:
            guid = TeleportGUID.from_dict(event.data)
            if guid.source_domain != self.domain_name:
                continue
            self.teleports.save(guid, event.block_number, session)
            if self.on_teleport is not None:
                self.on_teleport(guid)
        if events:
            logger.info("[%s] Indexed %d teleport(s)", self.sync_name, len(events))
