"""
In-process reference ledger.

MemoryLedger satisfies LedgerHandle with dict-backed state. It is the
ledger used by tests and local runs; production wires a LedgerHandle
that talks to the real chain.

Transactions: a re-entrant lock serializes every state transition and
transaction() snapshots the full state, restoring it if the block raises.
Nested transactions restore only their own changes.
"""

import copy
import logging
import threading
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Dict, Iterator, Tuple

from teleport.core.exceptions import LedgerError
from teleport.core.units import PRECISION

logger = logging.getLogger(__name__)


@dataclass
class _LedgerState:
    internal: Dict[str, int]             = field(default_factory=dict)
    sin:      Dict[str, int]             = field(default_factory=dict)
    urns:     Dict[Tuple[str, str], int] = field(default_factory=dict)
    tokens:   Dict[str, int]             = field(default_factory=dict)
    debt:     int = 0
    vice:     int = 0
    supply:   int = 0


class MemoryLedger:
    """
    Dict-backed LedgerHandle.

    Every primitive validates before it mutates, so a failing primitive
    leaves state untouched even outside a transaction.
    """

    def __init__(self, name: str = "ledger") -> None:
        self.name   = name
        self._lock  = threading.RLock()
        self._state = _LedgerState()

    @contextmanager
    def transaction(self) -> Iterator[None]:
        with self._lock:
            snapshot = copy.deepcopy(self._state)
            try:
                yield
            except BaseException:
                self._state = snapshot
                logger.debug("[%s] transaction rolled back", self.name)
                raise

    # ── Reads ─────────────────────────────────────────────────

    def debt(self) -> int:
        with self._lock:
            return self._state.debt

    def vice(self) -> int:
        """Total unbacked debt, internal units."""
        with self._lock:
            return self._state.vice

    def surplus(self, account: str) -> int:
        with self._lock:
            return self._state.internal.get(account, 0)

    def deficit(self, account: str) -> int:
        with self._lock:
            return self._state.sin.get(account, 0)

    def balance_of(self, account: str) -> int:
        with self._lock:
            return self._state.tokens.get(account, 0)

    def total_supply(self) -> int:
        with self._lock:
            return self._state.supply

    def urn_debt(self, ilk: str, account: str) -> int:
        """Token-denominated debt drawn by account against ilk."""
        with self._lock:
            return self._state.urns.get((ilk, account), 0)

    # ── Writes ────────────────────────────────────────────────

    def adjust_debt_and_collateral(self, ilk: str, account: str, delta: int) -> None:
        with self._lock:
            s = self._state
            art = s.urns.get((ilk, account), 0)
            if delta < 0:
                if art < -delta:
                    raise LedgerError(
                        "Wipe exceeds drawn debt",
                        {"ilk": ilk, "account": account, "debt": art, "delta": delta},
                    )
                self._debit(s.internal, account, -delta * PRECISION, "internal balance")
            else:
                s.internal[account] = s.internal.get(account, 0) + delta * PRECISION
            s.urns[(ilk, account)] = art + delta
            s.debt += delta * PRECISION

    def transfer(self, src: str, dst: str, amount: int) -> None:
        self._require_non_negative(amount)
        with self._lock:
            tokens = self._state.tokens
            self._debit(tokens, src, amount, "token balance")
            tokens[dst] = tokens.get(dst, 0) + amount

    def exit(self, account: str, to: str, wad: int) -> None:
        self._require_non_negative(wad)
        with self._lock:
            s = self._state
            self._debit(s.internal, account, wad * PRECISION, "internal balance")
            s.tokens[to] = s.tokens.get(to, 0) + wad
            s.supply += wad

    def join(self, account: str, wad: int) -> None:
        self._require_non_negative(wad)
        with self._lock:
            s = self._state
            self._debit(s.tokens, account, wad, "token balance")
            s.internal[account] = s.internal.get(account, 0) + wad * PRECISION
            s.supply -= wad

    def heal(self, account: str, rad: int) -> None:
        self._require_non_negative(rad)
        with self._lock:
            s = self._state
            if s.internal.get(account, 0) < rad or s.sin.get(account, 0) < rad:
                raise LedgerError(
                    "Heal exceeds surplus or deficit",
                    {"account": account, "rad": rad},
                )
            s.internal[account] -= rad
            s.sin[account] -= rad
            s.debt -= rad
            s.vice -= rad

    def move(self, src: str, dst: str, rad: int) -> None:
        self._require_non_negative(rad)
        with self._lock:
            internal = self._state.internal
            self._debit(internal, src, rad, "internal balance")
            internal[dst] = internal.get(dst, 0) + rad

    def suck(self, debtor: str, creditor: str, rad: int) -> None:
        """Create rad of unbacked debt at debtor and matching balance at creditor."""
        self._require_non_negative(rad)
        with self._lock:
            s = self._state
            s.sin[debtor] = s.sin.get(debtor, 0) + rad
            s.internal[creditor] = s.internal.get(creditor, 0) + rad
            s.debt += rad
            s.vice += rad

    # ── Internal ──────────────────────────────────────────────

    @staticmethod
    def _require_non_negative(amount: int) -> None:
        if amount < 0:
            raise LedgerError("Amount must be non-negative", {"amount": amount})

    @staticmethod
    def _debit(book: Dict[str, int], account: str, amount: int, what: str) -> None:
        have = book.get(account, 0)
        if have < amount:
            raise LedgerError(
                f"Insufficient {what}",
                {"account": account, "have": have, "need": amount},
            )
        book[account] = have - amount
