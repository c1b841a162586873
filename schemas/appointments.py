# schemas/appointments.py

from pydantic import BaseModel
from decimal import Decimal
from typing import Optional
from datetime import datetime

from models.appointments import AppointmentStatus, CallOutcome


class OutcomeRequest(BaseModel):
    # plain string: an unknown value is rejected by the recorder as an unsupported outcome
    outcome: str
    sale_value: Optional[Decimal] = None
    notes: Optional[str] = None
    recording_link: Optional[str] = None


class ManualAssignRequest(BaseModel):
    agent_id: int


class AppointmentOut(BaseModel):
    id: int
    provider_event_id: Optional[str] = None
    customer_name: str
    customer_email: str
    customer_phone: Optional[str] = None
    scheduled_at: datetime
    duration_minutes: Optional[int] = None
    status: AppointmentStatus
    agent_id: Optional[int] = None
    outcome: Optional[CallOutcome] = None
    sale_value: Optional[Decimal] = None
    agent_commission: Optional[Decimal] = None
    notes: Optional[str] = None
    recording_link: Optional[str] = None
    partner_code: Optional[str] = None
    utm_source: Optional[str] = None
    utm_medium: Optional[str] = None
    utm_campaign: Optional[str] = None
    created_at: datetime | None = None

    class Config:
        from_attributes = True
