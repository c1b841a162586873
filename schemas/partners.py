# schemas/partners.py

from pydantic import BaseModel, EmailStr, Field
from decimal import Decimal
from typing import Optional
from datetime import datetime


class PartnerCreate(BaseModel):
    name: str
    email: EmailStr
    referral_code: str
    # fraction of the sale value (0.10 = 10%)
    commission_rate: Decimal = Field(ge=0, le=1)
    is_approved: bool = True


class PartnerUpdate(BaseModel):
    name: Optional[str] = None
    commission_rate: Optional[Decimal] = Field(default=None, ge=0, le=1)
    is_active: Optional[bool] = None
    is_approved: Optional[bool] = None


class TrackingLinkUpdate(BaseModel):
    custom_tracking_link: str = Field(min_length=3, max_length=200)


class PartnerOut(BaseModel):
    id: int
    name: str
    email: EmailStr
    referral_code: str
    custom_tracking_link: Optional[str] = None
    commission_rate: Decimal
    total_commission: Decimal
    total_clicks: int
    total_leads: int
    total_bookings: int
    total_sales: int
    is_active: bool
    is_approved: bool
    created_at: datetime | None = None

    class Config:
        from_attributes = True


class ClickTrackRequest(BaseModel):
    code: str
    utm_source: Optional[str] = None
    utm_medium: Optional[str] = None
    utm_campaign: Optional[str] = None
