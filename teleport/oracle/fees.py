"""
Fee policies for fast withdrawals.

A fast mint front-runs the slow cross-domain message, so the minting
domain charges for the liquidity. Once the slow path would have arrived
(guid.timestamp + ttl) the fee drops to zero.
"""

from typing import Protocol, runtime_checkable

from teleport.core.exceptions import ValidationError
from teleport.core.guid import TeleportGUID
from teleport.core.units import BPS


@runtime_checkable
class TeleportFees(Protocol):
    def get_fee(self, guid: TeleportGUID, amount: int, now: int) -> int: ...


class LinearFee:
    """fee = amount * fee_bps / 10_000, floored; zero after ttl seconds."""

    def __init__(self, fee_bps: int, ttl: int = 8 * 24 * 3600) -> None:
        if not 0 <= fee_bps <= BPS:
            raise ValidationError("fee_bps must be within [0, 10000]", {"fee_bps": fee_bps})
        if ttl < 0:
            raise ValidationError("ttl must be non-negative", {"ttl": ttl})
        self.fee_bps = fee_bps
        self.ttl     = ttl

    def get_fee(self, guid: TeleportGUID, amount: int, now: int) -> int:
        if now >= guid.timestamp + self.ttl:
            return 0
        return amount * self.fee_bps // BPS

    def __repr__(self) -> str:
        return f"LinearFee(fee_bps={self.fee_bps}, ttl={self.ttl})"
