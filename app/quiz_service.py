# app/quiz_service.py
"""
Quiz sessions (leads): start, answer, complete.

On completion an actionable lead (name and email both resolved) carrying an
active partner code earns that partner a zero-value lead Conversion and one
more total_leads. A session completes once; a repeated completion is a no-op.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import List, Optional

from sqlalchemy import select
from sqlalchemy.orm import Session

from app.conversion_service import ConversionRecorder
from app.errors import InvalidInput, InvalidTransition, LeadNotFound
from app.identity_resolver import dedupe_by_email, resolve_identity
from app.repositories import LeadRepository, PartnerRepository
from app.timeutils import utcnow
from models.leads import Lead, LeadAnswer, LeadStatus, QuizQuestion

logger = logging.getLogger(__name__)


def list_questions(db: Session, quiz_type: str) -> List[QuizQuestion]:
    return list(
        db.execute(
            select(QuizQuestion)
            .where(QuizQuestion.quiz_type == quiz_type, QuizQuestion.active.is_(True))
            .order_by(QuizQuestion.order.asc(), QuizQuestion.id.asc())
        ).scalars()
    )


class QuizService:
    def __init__(self, db: Session):
        self.db = db
        self.leads = LeadRepository(db)
        self.partners = PartnerRepository(db)

    def start(self, quiz_type: str, partner_code: Optional[str] = None, *, now: Optional[datetime] = None) -> Lead:
        now = now or utcnow()
        quiz_type = (quiz_type or "").strip()
        if not quiz_type:
            raise InvalidInput("quiz_type is required.")

        code = (partner_code or "").strip() or None
        if code and self.partners.get_active_by_code(code) is None:
            logger.info("Quiz started with unknown partner code %s, not attributed", code)
            code = None

        lead = self.leads.add(
            Lead(
                quiz_type=quiz_type,
                status=LeadStatus.IN_PROGRESS,
                partner_code=code,
                started_at=now,
                created_at=now,
            )
        )
        self.db.commit()
        return lead

    def save_answer(
        self,
        lead_id: int,
        question_id: int,
        value: Optional[str],
        dwell_ms: Optional[int] = None,
    ) -> LeadAnswer:
        lead = self.leads.get(lead_id)
        if lead is None:
            raise LeadNotFound("Lead not found.", {"lead_id": lead_id})
        if lead.status != LeadStatus.IN_PROGRESS:
            raise InvalidTransition("Quiz session already completed.", {"lead_id": lead_id})
        if self.leads.get_question(question_id) is None:
            raise InvalidInput("Unknown question.", {"question_id": question_id})

        answer = self.leads.upsert_answer(lead_id, question_id, value, dwell_ms)
        self.db.commit()
        return answer

    def complete(self, lead_id: int, *, now: Optional[datetime] = None) -> Lead:
        now = now or utcnow()
        lead = self.leads.get(lead_id)
        if lead is None:
            raise LeadNotFound("Lead not found.", {"lead_id": lead_id})

        started = lead.started_at or now
        duration_ms = max(int((now - started).total_seconds() * 1000), 0)

        if not self.leads.mark_completed(lead_id, now, duration_ms):
            # already completed: nothing else to do
            return lead

        identity = resolve_identity(lead.answers)
        partner = self.partners.get_active_by_code(lead.partner_code)
        if identity.is_actionable and partner is not None:
            ConversionRecorder(self.db).record_lead_conversion(lead, partner, now=now)
            logger.info("Lead %s attributed to partner %s", lead_id, partner.referral_code)

        self.db.commit()
        self.db.refresh(lead)
        return lead

    def crm_leads(self, partner_code: Optional[str] = None) -> List[Lead]:
        """Actionable completed leads, one per email, most recent first."""
        return dedupe_by_email(self.leads.completed(partner_code))
