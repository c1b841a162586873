# routers/partner_portal.py

from typing import List

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from app.db import get_db
from app.deps import get_current_partner
from app.ledger_service import CommissionLedger
from app.repositories import ConversionRepository, PayoutRepository
from models.partners import Partner
from schemas.ledger import ConversionOut, PayoutOut

router = APIRouter(prefix="/partner", tags=["Partner Portal"])


@router.get("/me")
def partner_me(
    current_partner: Partner = Depends(get_current_partner),
):
    return {
        "id": current_partner.id,
        "name": current_partner.name,
        "email": current_partner.email,
        "referral_code": current_partner.referral_code,
        "custom_tracking_link": current_partner.custom_tracking_link,
        "commission_rate": float(current_partner.commission_rate or 0),
        "is_active": current_partner.is_active,
        "created_at": current_partner.created_at,
    }


@router.get("/summary")
def partner_summary(
    current_partner: Partner = Depends(get_current_partner),
    db: Session = Depends(get_db),
):
    """
    - total_commission: lifetime earnings, counted once per sale
    - held: waiting for the hold period
    - available: can be requested now
    - paid / pending_payouts: payouts by status
    """
    balance = CommissionLedger(db).balance(current_partner.id)
    return {
        **balance.to_dict(),
        "total_clicks": current_partner.total_clicks,
        "total_leads": current_partner.total_leads,
        "total_bookings": current_partner.total_bookings,
        "total_sales": current_partner.total_sales,
        "commission_rate": float(current_partner.commission_rate or 0),
    }


@router.get("/conversions", response_model=List[ConversionOut])
def partner_conversions(
    current_partner: Partner = Depends(get_current_partner),
    db: Session = Depends(get_db),
):
    return ConversionRepository(db).for_partner(current_partner.id)


@router.get("/payouts", response_model=List[PayoutOut])
def partner_payouts(
    current_partner: Partner = Depends(get_current_partner),
    db: Session = Depends(get_db),
):
    return PayoutRepository(db).for_partner(current_partner.id)
