# routers/payouts_admin.py

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from app.db import get_db
from app.deps import get_current_admin
from app.ledger_service import CommissionLedger
from app.payout_service import PayoutProcessor
from app.repositories import PartnerRepository
from schemas.ledger import PayoutOut, PayoutRequest

router = APIRouter(
    prefix="/admin/payouts",
    tags=["Admin Payouts"],
)


# ---------------------------------------------------------
# 1. BALANCES FOR EVERY PARTNER
# ---------------------------------------------------------
@router.get("/by-partner")
def payouts_by_partner(
    db: Session = Depends(get_db),
    admin=Depends(get_current_admin),
):
    """
    Per partner:
    - total_commission: lifetime earnings (never decremented)
    - held: still inside the hold period
    - available: can be paid out now
    - paid: completed payouts
    """
    ledger = CommissionLedger(db)
    results = []
    for p in PartnerRepository(db).list():
        balance = ledger.balance(p.id)
        results.append(
            {
                "partner_id": p.id,
                "partner_name": p.name,
                "referral_code": p.referral_code,
                **balance.to_dict(),
            }
        )
    return results


# ---------------------------------------------------------
# 2. ONE PARTNER: BALANCE + PAYOUT HISTORY
# ---------------------------------------------------------
@router.get("/{partner_id}")
def partner_payouts(
    partner_id: int,
    db: Session = Depends(get_db),
    admin=Depends(get_current_admin),
):
    balance = CommissionLedger(db).balance(partner_id)
    payouts = PayoutProcessor(db).history(partner_id)
    return {
        "balance": balance.to_dict(),
        "payouts": [PayoutOut.model_validate(p) for p in payouts],
    }


# ---------------------------------------------------------
# 3. CREATE PAYOUT
#    amount > 0, >= minimum payout, <= available balance
# ---------------------------------------------------------
@router.post("/", status_code=status.HTTP_201_CREATED)
def create_payout(
    payload: PayoutRequest,
    db: Session = Depends(get_db),
    admin=Depends(get_current_admin),
):
    result = PayoutProcessor(db).request_payout(payload.partner_id, payload.amount, payload.notes)
    return {"message": "Payout recorded.", **result.to_dict()}
