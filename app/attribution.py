# app/attribution.py
"""
Links leads to appointments by email and decides which partner code an
appointment is attributed to.

Only exact (trimmed, case-insensitive) email equality is used for money.
"Similar" emails are reported by the diagnostics and never applied.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import List, Optional

from sqlalchemy.orm import Session

from app.errors import IntegrityAnomaly
from app.identity_resolver import normalize_email, resolve_identity
from app.repositories import AppointmentRepository, LeadRepository
from models.appointments import Appointment
from models.leads import Lead

logger = logging.getLogger(__name__)


def emails_match(a: Optional[str], b: Optional[str]) -> bool:
    na, nb = normalize_email(a), normalize_email(b)
    return na is not None and na == nb


def _split(email: str):
    local, _, domain = email.rpartition("@")
    return local, domain


def emails_similar(a: Optional[str], b: Optional[str]) -> bool:
    """
    Same domain and same local part once a "+tag" suffix is stripped.
    Diagnostics only.
    """
    na, nb = normalize_email(a), normalize_email(b)
    if not na or not nb or "@" not in na or "@" not in nb:
        return False
    la, da = _split(na)
    lb, db_ = _split(nb)
    if da != db_:
        return False
    return la.split("+", 1)[0] == lb.split("+", 1)[0]


@dataclass
class AttributionResult:
    partner_code: Optional[str]
    source: Optional[str]  # "appointment" | "lead" | None
    lead_id: Optional[int] = None
    anomaly: Optional[dict] = None


def find_lead_for_email(db: Session, email: Optional[str]) -> Optional[Lead]:
    """Most recent completed lead whose resolved email equals `email`."""
    normalized = normalize_email(email)
    if not normalized:
        return None
    for lead in LeadRepository(db).completed_with_answer_value(normalized):
        if resolve_identity(lead.answers).email == normalized:
            return lead
    return None


def resolve_partner_code(
    db: Session,
    appointment: Appointment,
    *,
    strict: bool = False,
) -> AttributionResult:
    """
    The code stored on the appointment wins; otherwise the code of the lead
    matched by exact email. Two different non-null codes are an anomaly: it
    is logged and returned, and raised only when `strict` is set.
    """
    lead = find_lead_for_email(db, appointment.customer_email)
    appointment_code = appointment.partner_code or None
    lead_code = (lead.partner_code or None) if lead else None

    anomaly = None
    if appointment_code and lead_code and appointment_code != lead_code:
        anomaly = {
            "appointment_id": appointment.id,
            "lead_id": lead.id,
            "appointment_code": appointment_code,
            "lead_code": lead_code,
        }
        logger.error(
            "Attribution mismatch on appointment %s: appointment code %s, lead %s code %s",
            appointment.id, appointment_code, lead.id, lead_code,
        )
        if strict:
            raise IntegrityAnomaly("Partner code mismatch between appointment and lead.", anomaly)

    if appointment_code:
        return AttributionResult(appointment_code, "appointment", lead.id if lead else None, anomaly)
    if lead_code:
        return AttributionResult(lead_code, "lead", lead.id, anomaly)
    return AttributionResult(None, None, lead.id if lead else None, anomaly)


# ---------------------------------------------------------
# Diagnostics (read-only)
# ---------------------------------------------------------
@dataclass
class AppointmentDiagnostic:
    appointment_id: int
    customer_email: str
    appointment_code: Optional[str]
    matched_lead_id: Optional[int] = None
    lead_code: Optional[str] = None
    fuzzy_candidates: List[dict] = field(default_factory=list)
    anomaly: Optional[dict] = None


def attribution_diagnostics(db: Session, limit: int = 200) -> List[AppointmentDiagnostic]:
    """
    Per recent appointment: the exact-match lead, leads whose email is only
    similar (for manual confirmation) and code mismatches. Never writes.
    """
    leads = LeadRepository(db).completed()
    lead_emails = []
    for lead in leads:
        email = resolve_identity(lead.answers).email
        if email:
            lead_emails.append((lead, email))

    out: List[AppointmentDiagnostic] = []
    for appt in AppointmentRepository(db).recent(limit):
        diag = AppointmentDiagnostic(
            appointment_id=appt.id,
            customer_email=appt.customer_email,
            appointment_code=appt.partner_code,
        )

        # leads come most recent first: first exact match is the one used
        for lead, email in lead_emails:
            if diag.matched_lead_id is None and emails_match(email, appt.customer_email):
                diag.matched_lead_id = lead.id
                diag.lead_code = lead.partner_code
            elif not emails_match(email, appt.customer_email) and emails_similar(email, appt.customer_email):
                diag.fuzzy_candidates.append(
                    {"lead_id": lead.id, "email": email, "partner_code": lead.partner_code}
                )

        if appt.partner_code and diag.lead_code and appt.partner_code != diag.lead_code:
            diag.anomaly = {
                "appointment_id": appt.id,
                "lead_id": diag.matched_lead_id,
                "appointment_code": appt.partner_code,
                "lead_code": diag.lead_code,
            }

        out.append(diag)

    return out
