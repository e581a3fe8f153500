"""
Delivers cross-domain messages observed on the source chain.

The source domain publishes each outbound message as a
CrossDomainMessage event. This synchronizer reads them and hands every
message addressed to its InboundHandler's domain to that handler.
Replayed ranges are harmless: the handler skips ids it already applied.
"""

import logging
from typing import Any, Mapping, Optional, Union

from sqlalchemy.orm import Session

from teleport.config import SyncOptions
from teleport.domain.messaging import CrossDomainMessage, InboundHandler, OutboundQueue
from teleport.sync.chain import BlockchainClient, MemoryChain
from teleport.sync.store import SyncStatusRepository
from teleport.sync.synchronizer import EventSynchronizer

logger = logging.getLogger(__name__)

CROSS_DOMAIN_MESSAGE = "CrossDomainMessage"


def publish(queue: OutboundQueue, chain: MemoryChain) -> int:
    """
    Drain queue onto chain as CrossDomainMessage events. Returns the count.
    Messages not emitted when the chain raises are put back on the queue.
    """
    messages = queue.drain()
    for i, message in enumerate(messages):
        try:
            chain.emit(CROSS_DOMAIN_MESSAGE, message.to_dict())
        except Exception:
            queue.requeue(messages[i:])
            raise
    return len(messages)


class MessageRelaySynchronizer(EventSynchronizer):

    def __init__(
        self,
        blockchain:        BlockchainClient,
        status_repository: SyncStatusRepository,
        domain_name:       str,
        starting_block:    int,
        blocks_per_batch:  int,
        inbound:           InboundHandler,
        options:           Optional[Union[SyncOptions, Mapping[str, Any]]] = None,
    ) -> None:
        super().__init__(
            blockchain, status_repository, domain_name,
            starting_block, blocks_per_batch, options,
        )
        self.inbound = inbound

    def sync(self, session: Session, from_block: int, to_block: int) -> None:
        applied = 0
        for event in self.blockchain.get_logs(from_block, to_block, CROSS_DOMAIN_MESSAGE):
            message = CrossDomainMessage.from_dict(event.data)
            if message.target_domain != self.inbound.domain:
                continue
            if self.inbound.handle(message):
                applied += 1
        if applied:
            logger.info("[%s] Delivered %d message(s) to %s", self.sync_name, applied, self.inbound.domain)
