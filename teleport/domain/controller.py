"""
Shared plumbing of the host and guest ledger controllers.

Atomicity: _atomic() opens a ledger transaction and snapshots the
controller's own fields. If anything inside raises, the ledger rolls
back and the fields are restored, so no partial state is ever observable.
"""

import logging
from contextlib import contextmanager
from enum import Enum
from typing import Any, Dict, Iterator, Optional, Tuple

from teleport.core.auth import ADMIN, AccessControl
from teleport.core.canonical import stringify_values
from teleport.core.exceptions import ShutdownPendingError
from teleport.ledger.audit import AuditLog
from teleport.ledger.handle import LedgerHandle

logger = logging.getLogger(__name__)


class ControllerStatus(str, Enum):
    LIVE             = "live"
    SHUTDOWN_PENDING = "shutdown_pending"


class LedgerController:

    # Names of attributes restored when an operation fails.
    _STATE_FIELDS: Tuple[str, ...] = ("status",)

    def __init__(
        self,
        ledger:  LedgerHandle,
        access:  AccessControl,
        address: str,
        domain:  str,
        audit:   Optional[AuditLog] = None,
    ) -> None:
        self.ledger  = ledger
        self.access  = access
        self.address = address
        self.domain  = domain
        self.audit   = audit
        self.status  = ControllerStatus.LIVE

    # ── Authorization ─────────────────────────────────────────

    def rely(self, caller: str, identity: str, role: str = ADMIN) -> None:
        self.access.rely(caller, identity, role)
        self._record("Rely", {"identity": identity, "role": role})

    def deny(self, caller: str, identity: str, role: str = ADMIN) -> None:
        self.access.deny(caller, identity, role)
        self._record("Deny", {"identity": identity, "role": role})

    # ── Shutdown ──────────────────────────────────────────────

    def cage(self, caller: str) -> None:
        """
        Enter ShutdownPending. Further lifts are rejected.

        The wind-down beyond that is not defined; release/push stay
        available so outstanding balances can still be reconciled.
        """
        self.access.require(caller, ADMIN)
        if self.status is ControllerStatus.SHUTDOWN_PENDING:
            return
        self.status = ControllerStatus.SHUTDOWN_PENDING
        logger.warning("[%s] %s caged by %s", self.domain, type(self).__name__, caller)
        self._record("Cage", {"caller": caller})

    @property
    def caged(self) -> bool:
        return self.status is ControllerStatus.SHUTDOWN_PENDING

    def _require_live(self) -> None:
        if self.caged:
            raise ShutdownPendingError(
                "Controller is caged; ceiling changes are blocked",
                {"domain": self.domain},
            )

    # ── Internal ──────────────────────────────────────────────

    @contextmanager
    def _atomic(self) -> Iterator[None]:
        saved = {name: getattr(self, name) for name in self._STATE_FIELDS}
        try:
            with self.ledger.transaction():
                yield
        except BaseException:
            for name, value in saved.items():
                setattr(self, name, value)
            raise

    def _record(self, event: str, payload: Dict[str, Any]) -> None:
        if self.audit is not None:
            self.audit.emit(
                f"{type(self).__name__}:{self.domain}",
                event,
                stringify_values(payload),
            )
