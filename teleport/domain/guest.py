"""
teleport/domain/guest.py

GuestLedgerController: remote-side bookkeeping of pre-minted supply.

    grain   tokens currently parked in the host escrow on this domain's behalf
    line    ceiling as last announced by the host, PRECISION-scaled

    lift(new_line, minted)   message from host: new ceiling, grain += minted
    release()                anyone: hand back grain above
                             min(line / P, ceil(debt / P))
    push()                   anyone: settle this controller's surplus or
                             deficit toward the host
    cage(caller)             admin: ShutdownPending, further lifts rejected

Rounding in push() is deliberately asymmetric: surplus is floored so
dust stays behind rather than over-withdrawing, deficit is ceiled so the
domain is never left under-collateralized.
"""

import logging
from dataclasses import dataclass
from typing import Optional

from teleport.core.auth import AccessControl
from teleport.core.exceptions import NothingToReleaseError
from teleport.core.units import PRECISION, UINT256_MAX, div_up, require_uint
from teleport.domain.bridges import GuestBridge
from teleport.domain.controller import LedgerController
from teleport.domain.messaging import CrossDomainMessage
from teleport.ledger.audit import AuditLog
from teleport.ledger.handle import LedgerHandle

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PushResult:
    """Outcome of push(). direction is "surplus", "deficit" or "none"."""
    direction: str
    healed:    int   # internal units
    wad:       int   # tokens forwarded or requested

    @classmethod
    def nothing(cls) -> "PushResult":
        return cls(direction="none", healed=0, wad=0)


class GuestLedgerController(LedgerController):

    _STATE_FIELDS = ("status", "line", "grain")

    def __init__(
        self,
        ledger:  LedgerHandle,
        access:  AccessControl,
        bridge:  GuestBridge,
        domain:  str,
        address: str = "domain-guest",
        audit:   Optional[AuditLog] = None,
    ) -> None:
        super().__init__(ledger, access, address, domain, audit)
        self.bridge = bridge
        self.line   = 0
        self.grain  = 0

    def limit(self) -> int:
        """min(line / P, ceil(debt / P)), in tokens."""
        return min(self.line // PRECISION, div_up(self.ledger.debt(), PRECISION))

    # ── Host-driven ───────────────────────────────────────────

    def lift(self, new_line: int, minted: int) -> None:
        """Apply a host lift. Origin is trusted to the messaging layer."""
        self._require_live()
        require_uint("new_line", new_line, UINT256_MAX)
        require_uint("minted", minted, UINT256_MAX)
        self.line   = new_line
        self.grain += minted
        logger.info("[%s] Lift line=%d grain=%d", self.domain, new_line, self.grain)
        self._record("Lift", {"line": new_line, "minted": minted, "grain": self.grain})

    def on_lift_message(self, message: CrossDomainMessage) -> None:
        self.lift(int(message.payload["new_line"]), int(message.payload["minted"]))

    # ── Permissionless ────────────────────────────────────────

    def release(self) -> int:
        """
        Release grain above the limit back to the host.
        Returns the burned amount. Raises NothingToReleaseError when
        grain <= limit; keepers should just try again later.
        """
        with self._atomic():
            limit = self.limit()
            if self.grain <= limit:
                raise NothingToReleaseError(
                    "Grain is within limit",
                    {"grain": self.grain, "limit": limit},
                )
            burned     = self.grain - limit
            self.grain = limit
            self.bridge.release(burned)

        logger.info("[%s] Release burned=%d grain=%d", self.domain, burned, self.grain)
        self._record("Release", {"burned": burned, "grain": self.grain})
        return burned

    def push(self) -> PushResult:
        """Cancel surplus against deficit and forward the remainder."""
        with self._atomic():
            surplus = self.ledger.surplus(self.address)
            deficit = self.ledger.deficit(self.address)

            if surplus > deficit:
                if deficit > 0:
                    self.ledger.heal(self.address, deficit)
                wad = (surplus - deficit) // PRECISION
                if wad > 0:
                    self.ledger.exit(self.address, self.address, wad)
                    self.bridge.surplus(wad)
                result = PushResult(direction="surplus", healed=deficit, wad=wad)
            elif surplus < deficit:
                if surplus > 0:
                    self.ledger.heal(self.address, surplus)
                wad = div_up(deficit - surplus, PRECISION)
                self.bridge.deficit(wad)
                result = PushResult(direction="deficit", healed=surplus, wad=wad)
            else:
                result = PushResult.nothing()

        if result.direction != "none":
            logger.info(
                "[%s] Push %s healed=%d wad=%d",
                self.domain, result.direction, result.healed, result.wad,
            )
            self._record("Push", {
                "direction": result.direction,
                "healed":    result.healed,
                "wad":       result.wad,
            })
        return result
