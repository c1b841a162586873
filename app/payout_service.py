# app/payout_service.py
"""
Partner cash-outs against the commission ledger.

Validation order: amount > 0, amount >= minimum payout, amount <= available
balance. The partner row is locked for the whole payout (PostgreSQL
SELECT ... FOR UPDATE) so two payouts of the same partner cannot both pass
the balance check.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal, InvalidOperation
from typing import List, Optional

from sqlalchemy.orm import Session

from app import settings_store
from app.conversion_service import money2
from app.errors import BelowMinimum, InsufficientBalance, InvalidAmount, PartnerNotFound
from app.ledger_service import CommissionLedger
from app.repositories import ConversionRepository, PartnerRepository, PayoutRepository
from app.timeutils import utcnow
from models.payouts import Payout, PayoutStatus

logger = logging.getLogger(__name__)


@dataclass
class PayoutResult:
    payout_id: int
    partner_id: int
    amount: Decimal
    consumed_conversion_ids: List[int] = field(default_factory=list)
    consumed_amount: Decimal = Decimal("0")
    available_after: Decimal = Decimal("0")

    def to_dict(self) -> dict:
        return {
            "payout_id": self.payout_id,
            "partner_id": self.partner_id,
            "amount": float(self.amount),
            "consumed_conversion_ids": self.consumed_conversion_ids,
            "consumed_amount": float(self.consumed_amount),
            "available_after": float(self.available_after),
        }


def parse_amount(value) -> Decimal:
    try:
        amount = Decimal(str(value))
    except (InvalidOperation, TypeError):
        raise InvalidAmount("Amount is not a number.", {"amount": value})
    if not amount.is_finite() or amount <= 0:
        raise InvalidAmount("Amount must be greater than zero.", {"amount": value})
    return money2(amount)


class PayoutProcessor:
    def __init__(self, db: Session):
        self.db = db
        self.ledger = CommissionLedger(db)
        self.partners = PartnerRepository(db)
        self.payouts = PayoutRepository(db)
        self.conversions = ConversionRepository(db)

    def request_payout(
        self,
        partner_id: int,
        amount,
        notes: Optional[str] = None,
        *,
        now: Optional[datetime] = None,
    ) -> PayoutResult:
        now = now or utcnow()

        amount = parse_amount(amount)
        if amount <= 0:
            raise InvalidAmount("Amount must be greater than zero.", {"amount": float(amount)})

        minimum = settings_store.get_minimum_payout(self.db)
        if amount < minimum:
            raise BelowMinimum(
                f"Minimum payout is {minimum}.",
                {"amount": float(amount), "minimum_payout": float(minimum)},
            )

        partner = self.partners.get_for_update(partner_id)
        if partner is None:
            raise PartnerNotFound("Partner not found.", {"partner_id": partner_id})

        available = self.ledger.available_balance(partner_id)
        if amount > available:
            self.db.rollback()
            raise InsufficientBalance(
                "Requested amount exceeds the available balance.",
                {"amount": float(amount), "available": float(available)},
            )

        try:
            payout = self.payouts.add(
                Payout(
                    partner_id=partner_id,
                    amount_due=amount,
                    status=PayoutStatus.COMPLETED,
                    notes=notes,
                    created_at=now,
                    updated_at=now,
                )
            )

            result = PayoutResult(payout_id=payout.id, partner_id=partner_id, amount=amount)

            # greedy FIFO: whole conversions while the running sum stays <= amount
            for conversion in self.conversions.available_fifo(partner_id):
                value = Decimal(str(conversion.commission_amount))
                if result.consumed_amount + value > amount:
                    break
                if self.conversions.mark_paid(conversion.id, payout.id, now):
                    result.consumed_amount += value
                    result.consumed_conversion_ids.append(conversion.id)

            self.db.commit()
        except Exception:
            logger.exception("Payout for partner %s failed, rolling back", partner_id)
            self.db.rollback()
            raise

        result.available_after = self.ledger.available_balance(partner_id)
        logger.info(
            "Payout %s: partner=%s amount=%s consumed=%s (%s conversions) available_after=%s",
            result.payout_id, partner_id, amount, result.consumed_amount,
            len(result.consumed_conversion_ids), result.available_after,
        )
        return result

    def history(self, partner_id: int) -> List[Payout]:
        if self.partners.get(partner_id) is None:
            raise PartnerNotFound("Partner not found.", {"partner_id": partner_id})
        return self.payouts.for_partner(partner_id)
