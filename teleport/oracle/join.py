"""
teleport/oracle/join.py

TeleportJoin: mints an attested teleport on its target domain.

mint() MUST, in this order:
  1. Check the GUID targets this domain
  2. Price the fee with the source domain's fee policy
  3. Reject if fee > amount * max_fee_bps / 10_000, or the operator fee
     does not fit in what is left
  4. Draw `amount` of debt, pay receiver and operator, move the fee to vow
All ledger writes happen in one transaction.
"""

import logging
from dataclasses import dataclass
from typing import Callable, Dict, Optional

from teleport.core.exceptions import FeeExceededError, ValidationError
from teleport.core.guid import TeleportGUID
from teleport.core.time import unix_now
from teleport.core.units import BPS, PRECISION
from teleport.ledger.handle import LedgerHandle
from teleport.oracle.fees import LinearFee, TeleportFees

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class MintRecord:
    digest:       str
    receiver:     str
    operator:     str
    amount:       int
    fee:          int
    operator_fee: int

    @property
    def net_amount(self) -> int:
        return self.amount - self.fee - self.operator_fee


class TeleportJoin:

    def __init__(
        self,
        ledger:  LedgerHandle,
        domain:  str,
        ilk:     str = "TELEPORT-A",
        address: str = "teleport-join",
        vow:     str = "vow",
        fees:    Optional[Dict[str, TeleportFees]] = None,
        clock:   Callable[[], int] = unix_now,
    ) -> None:
        self.ledger  = ledger
        self.domain  = domain
        self.ilk     = ilk
        self.address = address
        self.vow     = vow
        self.fees:   Dict[str, TeleportFees] = dict(fees or {})
        self.clock   = clock
        self._default_fee = LinearFee(0)

    def file_fees(self, source_domain: str, fees: TeleportFees) -> None:
        self.fees[source_domain] = fees

    def mint(
        self,
        guid:         TeleportGUID,
        digest:       str,
        max_fee_bps:  int,
        operator_fee: int,
    ) -> MintRecord:
        if guid.target_domain != self.domain:
            raise ValidationError(
                "GUID targets another domain",
                {"target": guid.target_domain, "domain": self.domain},
            )
        if not 0 <= max_fee_bps <= BPS:
            raise ValidationError("max_fee_bps must be within [0, 10000]", {"value": max_fee_bps})
        if operator_fee < 0:
            raise ValidationError("operator_fee must be non-negative", {"value": operator_fee})

        policy = self.fees.get(guid.source_domain, self._default_fee)
        fee = policy.get_fee(guid, guid.amount, self.clock())
        if fee > guid.amount * max_fee_bps // BPS:
            raise FeeExceededError(
                "Fee exceeds the accepted maximum",
                {"fee": fee, "max_fee_bps": max_fee_bps, "amount": guid.amount},
            )
        if operator_fee > guid.amount - fee:
            raise FeeExceededError(
                "Operator fee exceeds the amount left after fees",
                {"operator_fee": operator_fee, "available": guid.amount - fee},
            )

        record = MintRecord(
            digest=       digest,
            receiver=     guid.receiver,
            operator=     guid.operator,
            amount=       guid.amount,
            fee=          fee,
            operator_fee= operator_fee,
        )
        with self.ledger.transaction():
            self.ledger.adjust_debt_and_collateral(self.ilk, self.address, guid.amount)
            self.ledger.exit(self.address, guid.receiver, record.net_amount)
            if operator_fee:
                self.ledger.exit(self.address, guid.operator, operator_fee)
            if fee:
                self.ledger.move(self.address, self.vow, fee * PRECISION)

        logger.info(
            "[%s] Minted %d to %s (fee=%d operator_fee=%d) for %s",
            self.domain, record.net_amount, guid.receiver, fee, operator_fee, digest[:14],
        )
        return record
