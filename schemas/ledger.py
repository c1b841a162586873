# schemas/ledger.py

from pydantic import BaseModel
from decimal import Decimal
from typing import Optional
from datetime import datetime

from models.conversions import CommissionStatus, ConversionType
from models.payouts import PayoutStatus


class PayoutRequest(BaseModel):
    partner_id: int
    # validated by the payout processor (InvalidAmount), not here
    amount: Decimal
    notes: Optional[str] = None


class ConversionOut(BaseModel):
    id: int
    partner_id: int
    referral_code: str
    appointment_id: Optional[int] = None
    lead_id: Optional[int] = None
    conversion_type: ConversionType
    sale_value: Decimal
    commission_amount: Decimal
    commission_status: CommissionStatus
    hold_until: datetime
    released_at: Optional[datetime] = None
    paid_at: Optional[datetime] = None
    payout_id: Optional[int] = None
    created_at: datetime | None = None

    class Config:
        from_attributes = True


class PayoutOut(BaseModel):
    id: int
    partner_id: int
    amount_due: Decimal
    status: PayoutStatus
    notes: Optional[str] = None
    created_at: datetime | None = None

    class Config:
        from_attributes = True
