# schemas/scheduling_webhook.py
"""
Scheduling-provider webhook payloads as a tagged union on `event`.

Only the fields the service reads are declared; everything else the
provider sends is ignored. Optional fields degrade to None.
"""

from datetime import datetime
from typing import Annotated, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter


class _Lenient(BaseModel):
    model_config = ConfigDict(extra="ignore")


class ProviderEvent(_Lenient):
    uuid: str
    start_time: datetime
    end_time: Optional[datetime] = None


class Invitee(_Lenient):
    name: Optional[str] = None
    email: str
    phone_number: Optional[str] = None


class QuestionAnswer(_Lenient):
    question: Optional[str] = None
    answer: Optional[str] = None


class Tracking(_Lenient):
    utm_source: Optional[str] = None
    utm_medium: Optional[str] = None
    utm_campaign: Optional[str] = None


class OldInvitee(_Lenient):
    event: Optional[ProviderEvent] = None


class InviteePayload(_Lenient):
    event: ProviderEvent
    invitee: Invitee
    questions_and_answers: List[QuestionAnswer] = Field(default_factory=list)
    tracking: Optional[Tracking] = None
    old_invitee: Optional[OldInvitee] = None


class InviteeCreated(_Lenient):
    event: Literal["invitee.created"]
    payload: InviteePayload


class InviteeCanceled(_Lenient):
    event: Literal["invitee.canceled"]
    payload: InviteePayload


class InviteeRescheduled(_Lenient):
    event: Literal["invitee.rescheduled"]
    payload: InviteePayload


SchedulingEvent = Annotated[
    Union[InviteeCreated, InviteeCanceled, InviteeRescheduled],
    Field(discriminator="event"),
]

scheduling_event_adapter = TypeAdapter(SchedulingEvent)


class BookingTrackRequest(BaseModel):
    """Manual booking tracker (no provider event)."""

    customer_name: str
    customer_email: str
    customer_phone: Optional[str] = None
    scheduled_at: datetime
    duration_minutes: Optional[int] = None
    partner_code: Optional[str] = None
    utm_source: Optional[str] = None
    utm_medium: Optional[str] = None
    utm_campaign: Optional[str] = None
