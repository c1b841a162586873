# app/ledger_service.py
"""
Commission ledger: the held -> available -> paid state machine and the
balances derived from it.

    held --release()--> available --payout()--> paid

No transition skips a state, none is reversible, and none touches the
partner's lifetime total_commission (earnings are counted once, when the
Conversion is created). Balances are computed on read, never stored.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import List, Optional

from sqlalchemy.orm import Session

from app.errors import ConversionNotFound, InvalidTransition, PartnerNotFound
from app.repositories import ConversionRepository, PartnerRepository, PayoutRepository
from app.timeutils import utcnow
from models.conversions import CommissionStatus
from models.payouts import PayoutStatus

logger = logging.getLogger(__name__)

# allowed forward moves; anything else is rejected
TRANSITIONS = {
    CommissionStatus.HELD: CommissionStatus.AVAILABLE,
    CommissionStatus.AVAILABLE: CommissionStatus.PAID,
}


def check_transition(current: CommissionStatus, target: CommissionStatus) -> None:
    if TRANSITIONS.get(current) != target:
        raise InvalidTransition(
            f"Illegal commission transition {current.value} -> {target.value}",
            {"from": current.value, "to": target.value},
        )


@dataclass
class PartnerBalance:
    partner_id: int
    total_commission: Decimal
    held: Decimal
    released: Decimal
    available: Decimal
    paid: Decimal
    pending_payouts: Decimal

    def to_dict(self) -> dict:
        return {
            "partner_id": self.partner_id,
            "total_commission": float(self.total_commission),
            "held": float(self.held),
            "released": float(self.released),
            "available": float(self.available),
            "paid": float(self.paid),
            "pending_payouts": float(self.pending_payouts),
        }


class CommissionLedger:
    def __init__(self, db: Session):
        self.db = db
        self.conversions = ConversionRepository(db)
        self.partners = PartnerRepository(db)
        self.payouts = PayoutRepository(db)

    # ---------------------------------------------------------
    # RELEASE
    # ---------------------------------------------------------
    def release(self, conversion_id: int, *, now: Optional[datetime] = None) -> bool:
        """
        held -> available once hold_until has passed.
        Returns False when a concurrent run already released it.
        """
        now = now or utcnow()
        conversion = self.conversions.get(conversion_id)
        if conversion is None:
            raise ConversionNotFound("Conversion not found.", {"conversion_id": conversion_id})

        check_transition(conversion.commission_status, CommissionStatus.AVAILABLE)
        if not conversion.commission_amount or conversion.commission_amount <= 0:
            raise InvalidTransition("Zero-value commissions are never released.", {"conversion_id": conversion_id})
        if conversion.hold_until > now:
            raise InvalidTransition(
                "Hold period not over yet.",
                {"conversion_id": conversion_id, "hold_until": conversion.hold_until.isoformat()},
            )

        moved = self.conversions.release(conversion_id, now)
        self.db.commit()
        return moved

    def force_release(self, conversion_id: int, *, now: Optional[datetime] = None) -> bool:
        """Admin override: held -> available ignoring hold_until."""
        now = now or utcnow()
        conversion = self.conversions.get(conversion_id)
        if conversion is None:
            raise ConversionNotFound("Conversion not found.", {"conversion_id": conversion_id})
        if conversion.commission_status != CommissionStatus.HELD:
            raise InvalidTransition(
                "Commission is not held.",
                {"conversion_id": conversion_id, "status": conversion.commission_status.value},
            )

        moved = self.conversions.release(conversion_id, now, ignore_hold=True)
        if not moved:
            self.db.rollback()
            raise InvalidTransition("Commission is not held.", {"conversion_id": conversion_id})
        self.db.commit()
        logger.info("Commission %s force-released", conversion_id)
        return True

    def release_due(self, *, now: Optional[datetime] = None) -> dict:
        """
        Batch release of every held, non-zero commission whose hold is over.
        Each row moves through its own conditional write, so overlapping runs
        (or a payout in between) just see fewer rows move.
        """
        now = now or utcnow()
        due = self.conversions.due_for_release(now)

        released_ids: List[int] = []
        released_amount = Decimal("0")
        for conversion in due:
            if self.conversions.release(conversion.id, now):
                released_ids.append(conversion.id)
                released_amount += Decimal(str(conversion.commission_amount))
        self.db.commit()

        logger.info("Commission release: %s due, %s released, amount=%s",
                    len(due), len(released_ids), released_amount)
        return {
            "due": len(due),
            "released": len(released_ids),
            "released_ids": released_ids,
            "released_amount": float(released_amount),
        }

    # ---------------------------------------------------------
    # BALANCES (read side)
    # ---------------------------------------------------------
    def available_balance(self, partner_id: int) -> Decimal:
        """
        Released commissions (available or already paid) minus every payout
        that is completed or still pending. A paid conversion stays counted
        on the left because its payout is counted on the right.
        """
        released = self.conversions.sum_amount(partner_id, CommissionStatus.AVAILABLE, CommissionStatus.PAID)
        completed = self.payouts.sum_amount(partner_id, PayoutStatus.COMPLETED)
        pending = self.payouts.sum_amount(partner_id, PayoutStatus.PENDING)
        return released - completed - pending

    def held_balance(self, partner_id: int) -> Decimal:
        return self.conversions.sum_amount(partner_id, CommissionStatus.HELD)

    def balance(self, partner_id: int) -> PartnerBalance:
        partner = self.partners.get(partner_id)
        if partner is None:
            raise PartnerNotFound("Partner not found.", {"partner_id": partner_id})

        return PartnerBalance(
            partner_id=partner_id,
            total_commission=Decimal(str(partner.total_commission or 0)),
            held=self.held_balance(partner_id),
            released=self.conversions.sum_amount(
                partner_id, CommissionStatus.AVAILABLE, CommissionStatus.PAID
            ),
            available=self.available_balance(partner_id),
            paid=self.payouts.sum_amount(partner_id, PayoutStatus.COMPLETED),
            pending_payouts=self.payouts.sum_amount(partner_id, PayoutStatus.PENDING),
        )

    def status_report(self, *, now: Optional[datetime] = None) -> dict:
        """Counts and sums for held, ready-for-release and available commissions."""
        now = now or utcnow()
        return {
            "held_count": self.conversions.count(CommissionStatus.HELD),
            "held_amount": float(self.conversions.sum_amount(None, CommissionStatus.HELD)),
            "ready_for_release_count": self.conversions.count(CommissionStatus.HELD, due_before=now),
            "available_count": self.conversions.count(CommissionStatus.AVAILABLE),
            "available_amount": float(self.conversions.sum_amount(None, CommissionStatus.AVAILABLE)),
            "paid_count": self.conversions.count(CommissionStatus.PAID),
            "paid_amount": float(self.conversions.sum_amount(None, CommissionStatus.PAID)),
        }
