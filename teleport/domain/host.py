"""
teleport/domain/host.py

HostLedgerController: owns a remote domain's debt ceiling.

    lift(caller, ceiling)   admin. Raises the ceiling; any increase is
                            minted as debt and parked in the escrow account.
    release(caller, wad)    relay. Pulls wad back out of escrow and wipes
                            the same amount of debt.
    cage(caller)            admin. ShutdownPending: no further lifts.

Escrow balance only grows through lift and only shrinks through release.
Lowering the ceiling never claws back minted funds; the guest has to
release them.
"""

import logging
from typing import Optional

from teleport.core.auth import ADMIN, RELAY, AccessControl
from teleport.core.exceptions import InsufficientEscrowError
from teleport.core.units import PRECISION, UINT256_MAX, require_uint
from teleport.domain.bridges import HostBridge
from teleport.domain.controller import LedgerController
from teleport.domain.messaging import CrossDomainMessage
from teleport.ledger.audit import AuditLog
from teleport.ledger.handle import LedgerHandle

logger = logging.getLogger(__name__)


class HostLedgerController(LedgerController):

    _STATE_FIELDS = ("status", "line")

    def __init__(
        self,
        ledger:  LedgerHandle,
        access:  AccessControl,
        bridge:  HostBridge,
        escrow:  str,
        domain:  str,
        ilk:     str = "DOMAIN-A",
        address: str = "domain-host",
        audit:   Optional[AuditLog] = None,
    ) -> None:
        super().__init__(ledger, access, address, domain, audit)
        self.bridge = bridge
        self.escrow = escrow
        self.ilk    = ilk
        self.line   = 0

    @property
    def ceiling(self) -> int:
        """Current ceiling in token units."""
        return self.line // PRECISION

    def escrow_balance(self) -> int:
        return self.ledger.balance_of(self.escrow)

    def lift(self, caller: str, new_ceiling: int) -> int:
        """
        Set the ceiling to new_ceiling tokens. Returns the amount minted
        into escrow (0 when the ceiling did not increase).
        """
        self.access.require(caller, ADMIN)
        self._require_live()
        require_uint("ceiling", new_ceiling, UINT256_MAX // PRECISION)

        new_line = new_ceiling * PRECISION
        with self._atomic():
            minted = 0
            if new_line > self.line:
                minted = (new_line - self.line) // PRECISION
                self.ledger.adjust_debt_and_collateral(self.ilk, self.address, minted)
                self.ledger.exit(self.address, self.escrow, minted)
            self.line = new_line
            self.bridge.lift(new_line, minted)

        logger.info("[%s] Lift line=%d tokens minted=%d", self.domain, new_ceiling, minted)
        self._record("Lift", {"line": new_line, "minted": minted})
        return minted

    def release(self, caller: str, wad: int) -> None:
        """Return wad tokens from escrow to the ledger and wipe wad of debt."""
        self.access.require(caller, RELAY)
        require_uint("wad", wad, UINT256_MAX)

        with self._atomic():
            held = self.ledger.balance_of(self.escrow)
            if held < wad:
                logger.warning(
                    "[%s] Release of %d rejected: escrow holds %d", self.domain, wad, held,
                )
                raise InsufficientEscrowError(
                    "Escrow holds less than the requested release",
                    {"escrow": held, "wad": wad},
                )
            self.ledger.transfer(self.escrow, self.address, wad)
            self.ledger.join(self.address, wad)
            self.ledger.adjust_debt_and_collateral(self.ilk, self.address, -wad)

        logger.info("[%s] Release wad=%d", self.domain, wad)
        self._record("Release", {"wad": wad})

    def on_release_message(self, relay: str):
        """Inbound handler for guest release messages, acting as relay."""
        def handle(message: CrossDomainMessage) -> None:
            self.release(relay, int(message.payload["wad"]))
        return handle
