# app/booking_service.py
"""
Appointments coming from the scheduling provider (webhook) or from the
manual booking tracker.

Creating a booking: Appointment row, then a zero-value booking Conversion
for an active partner, then closer assignment. Cancel and reschedule match
the appointment by the provider's event id.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Iterable, Optional

from sqlalchemy.orm import Session

from app.assignment_service import CloserAssignmentScheduler
from app.conversion_service import ConversionRecorder
from app.errors import InvalidInput
from app.identity_resolver import normalize_email
from app.repositories import AppointmentRepository, PartnerRepository
from app.timeutils import to_naive_utc, utcnow
from models.appointments import Appointment, AppointmentStatus

logger = logging.getLogger(__name__)


@dataclass
class BookingDetails:
    customer_name: str
    customer_email: str
    scheduled_at: datetime
    customer_phone: Optional[str] = None
    duration_minutes: Optional[int] = None
    provider_event_id: Optional[str] = None
    partner_code: Optional[str] = None
    utm_source: Optional[str] = None
    utm_medium: Optional[str] = None
    utm_campaign: Optional[str] = None


@dataclass
class QAExtract:
    partner_code: Optional[str] = None
    utm_source: Optional[str] = None
    utm_medium: Optional[str] = None
    utm_campaign: Optional[str] = None


def _clean(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    v = str(value).strip()
    return v or None


def extract_from_answers(questions_and_answers: Iterable) -> QAExtract:
    """
    Affiliate code and UTM values from free-form Q&A, by substring match on
    the question text. The first matching rule for a question wins.
    """
    out = QAExtract()
    for qa in questions_and_answers or []:
        question = (getattr(qa, "question", None) or "").lower()
        answer = _clean(getattr(qa, "answer", None))
        if answer is None:
            continue
        if "affiliate" in question or "referral" in question:
            out.partner_code = out.partner_code or answer
        elif "utm_source" in question or "source" in question:
            out.utm_source = out.utm_source or answer
        elif "utm_medium" in question or "medium" in question:
            out.utm_medium = out.utm_medium or answer
        elif "utm_campaign" in question or "campaign" in question:
            out.utm_campaign = out.utm_campaign or answer
    return out


def duration_minutes(start: Optional[datetime], end: Optional[datetime]) -> Optional[int]:
    if start is None or end is None:
        return None
    return round((end - start).total_seconds() / 60)


class BookingService:
    def __init__(self, db: Session):
        self.db = db
        self.appointments = AppointmentRepository(db)
        self.partners = PartnerRepository(db)

    def create_booking(self, details: BookingDetails, *, now: Optional[datetime] = None) -> Appointment:
        now = now or utcnow()

        email = normalize_email(details.customer_email)
        if not email:
            raise InvalidInput("Customer email is required.")

        if details.provider_event_id:
            existing = self.appointments.get_by_provider_event(details.provider_event_id)
            if existing is not None:
                logger.info("Provider event %s already recorded as appointment %s",
                            details.provider_event_id, existing.id)
                return existing

        appointment = self.appointments.add(
            Appointment(
                provider_event_id=details.provider_event_id,
                customer_name=_clean(details.customer_name) or "Unknown",
                customer_email=email,
                customer_phone=_clean(details.customer_phone),
                scheduled_at=to_naive_utc(details.scheduled_at),
                duration_minutes=details.duration_minutes,
                status=AppointmentStatus.SCHEDULED,
                partner_code=_clean(details.partner_code),
                utm_source=_clean(details.utm_source),
                utm_medium=_clean(details.utm_medium),
                utm_campaign=_clean(details.utm_campaign),
                created_at=now,
                updated_at=now,
            )
        )

        partner = self.partners.get_active_by_code(appointment.partner_code)
        if partner is not None:
            ConversionRecorder(self.db).record_booking_conversion(appointment, partner, now=now)
        elif appointment.partner_code:
            logger.info("Booking %s: partner code %s not active, booking not attributed",
                        appointment.id, appointment.partner_code)

        self.db.commit()
        logger.info("Appointment %s created for %s at %s", appointment.id, email, appointment.scheduled_at)

        CloserAssignmentScheduler(self.db).assign(appointment.id)
        self.db.refresh(appointment)
        return appointment

    def cancel(self, provider_event_id: str, cancelled_by: Optional[str] = None) -> Optional[Appointment]:
        appointment = self.appointments.get_by_provider_event(provider_event_id)
        if appointment is None:
            logger.warning("Cancel for unknown provider event %s", provider_event_id)
            return None

        moved = self.appointments.set_status(
            appointment.id,
            AppointmentStatus.CANCELLED,
            notes=f"Cancelled by {cancelled_by or 'invitee'}",
            updated_at=utcnow(),
        )
        self.db.commit()
        if not moved:
            logger.info("Appointment %s already completed, cancel ignored", appointment.id)
        self.db.refresh(appointment)
        return appointment

    def reschedule(
        self,
        provider_event_id: str,
        start_time: datetime,
        end_time: Optional[datetime] = None,
        previous_start: Optional[datetime] = None,
    ) -> Optional[Appointment]:
        appointment = self.appointments.get_by_provider_event(provider_event_id)
        if appointment is None:
            logger.warning("Reschedule for unknown provider event %s", provider_event_id)
            return None

        previous = previous_start.isoformat() if previous_start else "unknown"
        moved = self.appointments.set_status(
            appointment.id,
            AppointmentStatus.RESCHEDULED,
            scheduled_at=to_naive_utc(start_time),
            duration_minutes=duration_minutes(start_time, end_time),
            notes=f"Rescheduled from {previous}",
            updated_at=utcnow(),
            final=(AppointmentStatus.COMPLETED, AppointmentStatus.CANCELLED),
        )
        self.db.commit()
        if not moved:
            logger.info("Appointment %s already %s, reschedule ignored", appointment.id, appointment.status.value)
        self.db.refresh(appointment)
        return appointment
