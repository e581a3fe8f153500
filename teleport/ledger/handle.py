"""
teleport/ledger/handle.py

LedgerHandle: the contract every accounting ledger must satisfy.

Units:
    token amounts ("wad")      plain integers, external token balances
    internal amounts ("rad")   wad * PRECISION, balances inside the ledger

Controllers compose these primitives and never bypass them. All
mutating primitives are expected to be called inside transaction(),
which applies everything or nothing.
"""

from typing import ContextManager, Protocol, runtime_checkable


@runtime_checkable
class LedgerHandle(Protocol):

    def transaction(self) -> ContextManager[None]:
        """All-or-nothing scope. Exceptions inside roll every change back."""
        ...

    # ── Reads ─────────────────────────────────────────────────

    def debt(self) -> int:
        """Total system debt, internal units."""
        ...

    def surplus(self, account: str) -> int:
        """Internal token holdings of account."""
        ...

    def deficit(self, account: str) -> int:
        """Unbacked debt (negative position) of account, internal units."""
        ...

    def balance_of(self, account: str) -> int:
        """External token balance of account."""
        ...

    def total_supply(self) -> int:
        """Outstanding external token supply."""
        ...

    # ── Writes ────────────────────────────────────────────────

    def adjust_debt_and_collateral(self, ilk: str, account: str, delta: int) -> None:
        """Draw (delta > 0) or wipe (delta < 0) delta tokens of debt for account."""
        ...

    def transfer(self, src: str, dst: str, amount: int) -> None:
        """Move external tokens."""
        ...

    def exit(self, account: str, to: str, wad: int) -> None:
        """Convert wad of account's internal balance into tokens held by to."""
        ...

    def join(self, account: str, wad: int) -> None:
        """Convert wad of account's tokens back into internal balance."""
        ...

    def heal(self, account: str, rad: int) -> None:
        """Cancel rad of account's surplus against the same amount of its deficit."""
        ...

    def move(self, src: str, dst: str, rad: int) -> None:
        """Move internal balance."""
        ...
