# app/scheduling_webhook.py
"""
Dispatch of scheduling-provider events to the booking service.

Never raises: the provider gets {"ok": true} whatever happens here, so a
failure is logged and reported in the response body instead of causing
provider-side retries.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Optional

from pydantic import ValidationError
from sqlalchemy.orm import Session

from app.booking_service import BookingDetails, BookingService, duration_minutes, extract_from_answers
from schemas.scheduling_webhook import (
    InviteeCanceled,
    InviteeCreated,
    InviteeRescheduled,
    scheduling_event_adapter,
)

logger = logging.getLogger(__name__)


def parse_event(body: Any):
    """Tagged-union parse; None for unknown event types or malformed payloads."""
    try:
        return scheduling_event_adapter.validate_python(body)
    except ValidationError as e:
        event_type = body.get("event") if isinstance(body, dict) else None
        logger.warning("Scheduling webhook ignored (event=%s): %s", event_type, e.errors()[:3])
        return None


def _on_created(db: Session, event: InviteeCreated) -> Dict[str, Any]:
    payload = event.payload
    extracted = extract_from_answers(payload.questions_and_answers)
    tracking = payload.tracking

    details = BookingDetails(
        customer_name=payload.invitee.name or "Unknown",
        customer_email=payload.invitee.email,
        customer_phone=payload.invitee.phone_number,
        scheduled_at=payload.event.start_time,
        duration_minutes=duration_minutes(payload.event.start_time, payload.event.end_time),
        provider_event_id=payload.event.uuid,
        partner_code=extracted.partner_code,
        utm_source=extracted.utm_source or (tracking.utm_source if tracking else None),
        utm_medium=extracted.utm_medium or (tracking.utm_medium if tracking else None),
        utm_campaign=extracted.utm_campaign or (tracking.utm_campaign if tracking else None),
    )
    appointment = BookingService(db).create_booking(details)
    return {"appointment_id": appointment.id, "agent_id": appointment.agent_id}


def _on_canceled(db: Session, event: InviteeCanceled) -> Dict[str, Any]:
    payload = event.payload
    appointment = BookingService(db).cancel(
        payload.event.uuid,
        cancelled_by=payload.invitee.name or payload.invitee.email,
    )
    return {"appointment_id": appointment.id if appointment else None}


def _on_rescheduled(db: Session, event: InviteeRescheduled) -> Dict[str, Any]:
    payload = event.payload
    previous_start = None
    if payload.old_invitee and payload.old_invitee.event:
        previous_start = payload.old_invitee.event.start_time
    appointment = BookingService(db).reschedule(
        payload.event.uuid,
        payload.event.start_time,
        payload.event.end_time,
        previous_start=previous_start,
    )
    return {"appointment_id": appointment.id if appointment else None}


HANDLERS = {
    InviteeCreated: _on_created,
    InviteeCanceled: _on_canceled,
    InviteeRescheduled: _on_rescheduled,
}


def handle_webhook(db: Session, body: Any) -> Dict[str, Any]:
    event = parse_event(body)
    if event is None:
        return {"ok": True, "ignored": True}

    handler = HANDLERS[type(event)]
    try:
        result: Optional[Dict[str, Any]] = handler(db, event)
    except Exception:
        db.rollback()
        logger.exception("Scheduling webhook %s failed for provider event %s",
                         event.event, event.payload.event.uuid)
        return {"ok": True, "event": event.event, "processed": False}

    return {"ok": True, "event": event.event, "processed": True, **(result or {})}
