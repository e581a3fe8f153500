"""
teleport/domain/messaging.py

Cross-domain messaging, modelled explicitly.

A call on one domain eventually triggers a call on another, carried by
an external relayer. Nothing here assumes synchronous delivery:

    OutboundQueue   the sending side appends messages; a transport drains them
    InboundHandler  the receiving side dispatches each message at most once

message_id = canonical_hash(source, target, sequence, kind, payload), so a
relayer that re-delivers a message (crash, replayed block range) is a
no-op on the receiving side.
"""

import logging
import threading
from collections import deque
from dataclasses import dataclass, field
from typing import Any, Callable, Deque, Dict, List, Set

from teleport.core.canonical import canonical_hash, stringify_values
from teleport.core.exceptions import ValidationError

logger = logging.getLogger(__name__)


class MessageKind:
    LIFT    = "lift"
    RELEASE = "release"
    SURPLUS = "surplus"
    DEFICIT = "deficit"


_VALID_KINDS = {
    MessageKind.LIFT,
    MessageKind.RELEASE,
    MessageKind.SURPLUS,
    MessageKind.DEFICIT,
}


@dataclass(frozen=True)
class CrossDomainMessage:
    source_domain: str
    target_domain: str
    sequence:      int
    kind:          str
    payload:       Dict[str, str] = field(default_factory=dict)

    @property
    def message_id(self) -> str:
        return canonical_hash({
            "source_domain": self.source_domain,
            "target_domain": self.target_domain,
            "sequence":      self.sequence,
            "kind":          self.kind,
            "payload":       self.payload,
        })

    def to_dict(self) -> Dict[str, Any]:
        return {
            "message_id":    self.message_id,
            "source_domain": self.source_domain,
            "target_domain": self.target_domain,
            "sequence":      self.sequence,
            "kind":          self.kind,
            "payload":       dict(self.payload),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "CrossDomainMessage":
        message = cls(
            source_domain= data["source_domain"],
            target_domain= data["target_domain"],
            sequence=      int(data["sequence"]),
            kind=          data["kind"],
            payload=       dict(data.get("payload", {})),
        )
        claimed = data.get("message_id")
        if claimed is not None and claimed != message.message_id:
            raise ValidationError(
                "message_id does not match message content",
                {"claimed": claimed, "computed": message.message_id},
            )
        return message


class OutboundQueue:
    """FIFO of messages from source_domain to target_domain."""

    def __init__(self, source_domain: str, target_domain: str) -> None:
        self.source_domain = source_domain
        self.target_domain = target_domain
        self._lock:     threading.Lock            = threading.Lock()
        self._pending:  Deque[CrossDomainMessage] = deque()
        self._sequence: int = 0

    def send(self, kind: str, payload: Dict[str, Any]) -> CrossDomainMessage:
        if kind not in _VALID_KINDS:
            raise ValidationError(f"Unknown message kind: {kind!r}")
        with self._lock:
            message = CrossDomainMessage(
                source_domain= self.source_domain,
                target_domain= self.target_domain,
                sequence=      self._sequence,
                kind=          kind,
                payload=       stringify_values(payload),
            )
            self._pending.append(message)
            self._sequence += 1
        logger.debug("Queued %s message #%d to %s", kind, message.sequence, self.target_domain)
        return message

    def drain(self) -> List[CrossDomainMessage]:
        """Remove and return every pending message, oldest first."""
        with self._lock:
            messages = list(self._pending)
            self._pending.clear()
        return messages

    def requeue(self, messages: List[CrossDomainMessage]) -> None:
        """Put undelivered messages back at the head of the queue, order kept."""
        with self._lock:
            self._pending.extendleft(reversed(messages))
        if messages:
            logger.warning("Requeued %d undelivered message(s) to %s", len(messages), self.target_domain)

    def pending(self) -> List[CrossDomainMessage]:
        with self._lock:
            return list(self._pending)

    def __len__(self) -> int:
        with self._lock:
            return len(self._pending)


class InboundHandler:
    """
    Idempotent receiving end for one domain.

    A message id is remembered only after its handler returned, so a
    handler that raises leaves the message deliverable again.
    """

    def __init__(self, domain: str) -> None:
        self.domain = domain
        self._lock:      threading.RLock = threading.RLock()
        self._handlers:  Dict[str, Callable[[CrossDomainMessage], None]] = {}
        self._delivered: Set[str] = set()

    def register(self, kind: str, handler: Callable[[CrossDomainMessage], None]) -> None:
        if kind not in _VALID_KINDS:
            raise ValidationError(f"Unknown message kind: {kind!r}")
        self._handlers[kind] = handler

    def handle(self, message: CrossDomainMessage) -> bool:
        """
        Dispatch message. Returns False if it was already delivered.
        Raises ValidationError for a foreign target or unrouted kind.
        """
        if message.target_domain != self.domain:
            raise ValidationError(
                "Message addressed to another domain",
                {"target": message.target_domain, "domain": self.domain},
            )
        handler = self._handlers.get(message.kind)
        if handler is None:
            raise ValidationError(f"No handler registered for {message.kind!r}")

        message_id = message.message_id
        with self._lock:
            if message_id in self._delivered:
                logger.info("Skipping duplicate %s message %s", message.kind, message_id[:12])
                return False
            handler(message)
            self._delivered.add(message_id)
        return True

    def delivered(self, message_id: str) -> bool:
        with self._lock:
            return message_id in self._delivered


def deliver(queue: OutboundQueue, handler: InboundHandler) -> int:
    """
    Drain queue into handler. Returns the number of newly applied messages.

    If a handler raises, the failed message and everything after it go
    back to the head of the queue before the error propagates.
    """
    applied = 0
    messages = queue.drain()
    for i, message in enumerate(messages):
        try:
            if handler.handle(message):
                applied += 1
        except Exception:
            queue.requeue(messages[i:])
            raise
    return applied
