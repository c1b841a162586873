# schemas/agents.py

from pydantic import BaseModel, EmailStr, Field
from decimal import Decimal
from datetime import datetime


class AgentCreate(BaseModel):
    name: str
    email: EmailStr
    password: str = Field(min_length=8)
    commission_rate: Decimal = Field(default=Decimal("0"), ge=0, le=1)
    is_approved: bool = False


class AgentOut(BaseModel):
    id: int
    name: str
    email: EmailStr
    is_active: bool
    is_approved: bool
    commission_rate: Decimal
    total_calls: int
    total_conversions: int
    total_revenue: Decimal
    conversion_rate: Decimal
    created_at: datetime | None = None

    class Config:
        from_attributes = True
