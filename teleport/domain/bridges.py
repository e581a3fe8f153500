"""
teleport/domain/bridges.py

Capability interfaces through which the ledger controllers reach the
other domain. One implementation per transport, selected when the
controller is constructed.

    HostBridge.lift(new_line, minted)   host → guest
    GuestBridge.release(wad)            guest → host
    GuestBridge.surplus(wad)            guest → host
    GuestBridge.deficit(wad)            guest → host

The queue-backed variants below are the in-process transport: each hook
becomes a CrossDomainMessage on an OutboundQueue.
"""

from typing import Protocol, runtime_checkable

from teleport.domain.messaging import MessageKind, OutboundQueue


@runtime_checkable
class HostBridge(Protocol):
    def lift(self, new_line: int, minted: int) -> None: ...


@runtime_checkable
class GuestBridge(Protocol):
    def release(self, wad: int) -> None: ...

    def surplus(self, wad: int) -> None: ...

    def deficit(self, wad: int) -> None: ...


class QueueHostBridge:
    def __init__(self, outbound: OutboundQueue) -> None:
        self.outbound = outbound

    def lift(self, new_line: int, minted: int) -> None:
        self.outbound.send(MessageKind.LIFT, {"new_line": new_line, "minted": minted})


class QueueGuestBridge:
    def __init__(self, outbound: OutboundQueue) -> None:
        self.outbound = outbound

    def release(self, wad: int) -> None:
        self.outbound.send(MessageKind.RELEASE, {"wad": wad})

    def surplus(self, wad: int) -> None:
        self.outbound.send(MessageKind.SURPLUS, {"wad": wad})

    def deficit(self, wad: int) -> None:
        self.outbound.send(MessageKind.DEFICIT, {"wad": wad})
