"""
teleport/sync/chain.py

Blockchain-read collaborator.

The synchronizer treats get_latest_block_number() as the single source
of truth for "now". get_logs() returns events in [from_block, to_block),
ordered by (block_number, log_index).

MemoryChain is an in-process chain for local runs and tests: every
emit() lands in its own block unless auto_mine is off.
"""

import threading
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Protocol, runtime_checkable


@dataclass(frozen=True)
class ChainEvent:
    block_number: int
    log_index:    int
    event:        str
    data:         Dict[str, Any] = field(default_factory=dict)


@runtime_checkable
class BlockchainClient(Protocol):
    def get_latest_block_number(self) -> int: ...

    def get_logs(
        self,
        from_block: int,
        to_block:   int,
        event:      Optional[str] = None,
    ) -> List[ChainEvent]: ...


class MemoryChain:

    def __init__(self, name: str = "chain", auto_mine: bool = True) -> None:
        self.name      = name
        self.auto_mine = auto_mine
        self._lock     = threading.Lock()
        # Block 0 is genesis and always empty.
        self._blocks:  List[List[ChainEvent]] = [[]]
        self._pending: List[tuple] = []

    def get_latest_block_number(self) -> int:
        with self._lock:
            return len(self._blocks) - 1

    def get_logs(
        self,
        from_block: int,
        to_block:   int,
        event:      Optional[str] = None,
    ) -> List[ChainEvent]:
        with self._lock:
            out: List[ChainEvent] = []
            for block in self._blocks[max(from_block, 0):max(to_block, 0)]:
                out.extend(e for e in block if event is None or e.event == event)
            return out

    def emit(self, event: str, data: Dict[str, Any]) -> None:
        """Record an event. Mined immediately when auto_mine is on."""
        with self._lock:
            self._pending.append((event, dict(data)))
        if self.auto_mine:
            self.mine()

    def mine(self, blocks: int = 1) -> int:
        """Seal pending events into a block, then add empty blocks. Returns the new tip."""
        with self._lock:
            for i in range(blocks):
                number = len(self._blocks)
                events = [
                    ChainEvent(block_number=number, log_index=j, event=name, data=data)
                    for j, (name, data) in enumerate(self._pending if i == 0 else [])
                ]
                if i == 0:
                    self._pending = []
                self._blocks.append(events)
            return len(self._blocks) - 1
