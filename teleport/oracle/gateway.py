"""
Source-side teleport initiation.

initiate_teleport() takes the sender's tokens into the gateway, stamps a
GUID with the next nonce for this domain and announces it as a
TeleportInitialized event. Oracles pick the event up (through a
TeleportInitializedSynchronizer) and sign the GUID.
"""

import logging
import threading
from typing import Callable, Dict, Optional

from teleport.core.exceptions import ValidationError
from teleport.core.guid import ZERO_IDENTITY, TeleportGUID
from teleport.core.time import unix_now
from teleport.ledger.handle import LedgerHandle

logger = logging.getLogger(__name__)

TELEPORT_INITIALIZED = "TeleportInitialized"

EventSink = Callable[[str, Dict[str, object]], None]


class TeleportGateway:

    def __init__(
        self,
        ledger:  LedgerHandle,
        domain:  str,
        emit:    EventSink,
        address: str = "teleport-gateway",
        clock:   Callable[[], int] = unix_now,
    ) -> None:
        self.ledger  = ledger
        self.domain  = domain
        self.emit    = emit
        self.address = address
        self.clock   = clock
        self.nonce   = 0
        self.batched: Dict[str, int] = {}
        self._lock   = threading.Lock()

    def initiate_teleport(
        self,
        sender:        str,
        target_domain: str,
        receiver:      str,
        amount:        int,
        operator:      Optional[str] = None,
    ) -> TeleportGUID:
        if target_domain == self.domain:
            raise ValidationError("Cannot teleport to the source domain", {"domain": target_domain})
        if amount <= 0:
            raise ValidationError("Teleport amount must be positive", {"amount": amount})

        with self._lock:
            guid = TeleportGUID(
                source_domain= self.domain,
                target_domain= target_domain,
                receiver=      receiver,
                operator=      operator or ZERO_IDENTITY,
                amount=        amount,
                nonce=         self.nonce,
                timestamp=     self.clock(),
            )
            with self.ledger.transaction():
                self.ledger.transfer(sender, self.address, amount)
                self.emit(TELEPORT_INITIALIZED, guid.to_dict())
            self.nonce += 1
            self.batched[target_domain] = self.batched.get(target_domain, 0) + amount

        logger.info(
            "[%s] Teleport #%d of %d to %s initiated", self.domain, guid.nonce, amount, target_domain,
        )
        return guid
