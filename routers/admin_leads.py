# routers/admin_leads.py

from typing import List, Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from app.db import get_db
from app.deps import get_current_admin
from app.errors import LeadNotFound
from app.identity_resolver import resolve_identity
from app.quiz_service import QuizService
from app.repositories import LeadRepository
from models.leads import Lead, QuizQuestion
from schemas.quiz import CrmLeadOut, QuestionCreate, QuestionOut

router = APIRouter(
    prefix="/admin",
    tags=["Admin Leads"],
)


def _answers(lead: Lead) -> List[dict]:
    return [
        {
            "question_id": a.question_id,
            "prompt": a.question.prompt if a.question else None,
            "value": a.value,
        }
        for a in lead.answers
    ]


def _crm_row(lead: Lead) -> CrmLeadOut:
    identity = resolve_identity(lead.answers)
    return CrmLeadOut(
        id=lead.id,
        name=identity.name,
        email=identity.email,
        quiz_type=lead.quiz_type,
        partner_code=lead.partner_code,
        completed_at=lead.completed_at,
        answers=_answers(lead),
    )


# ---------------------------------------------------------
# 1. CRM: actionable leads, one per email
# ---------------------------------------------------------
@router.get("/leads", response_model=List[CrmLeadOut])
def crm_leads(
    partner_code: Optional[str] = Query(default=None),
    db: Session = Depends(get_db),
    admin=Depends(get_current_admin),
):
    return [_crm_row(lead) for lead in QuizService(db).crm_leads(partner_code)]


@router.get("/leads/{lead_id}")
def lead_detail(
    lead_id: int,
    db: Session = Depends(get_db),
    admin=Depends(get_current_admin),
):
    lead = LeadRepository(db).get(lead_id)
    if lead is None:
        raise LeadNotFound("Lead not found.", {"lead_id": lead_id})

    identity = resolve_identity(lead.answers)
    return {
        "id": lead.id,
        "quiz_type": lead.quiz_type,
        "status": lead.status.value,
        "partner_code": lead.partner_code,
        "started_at": lead.started_at,
        "completed_at": lead.completed_at,
        "duration_ms": lead.duration_ms,
        "name": identity.name,
        "email": identity.email,
        "is_actionable": identity.is_actionable,
        "answers": _answers(lead),
    }


# ---------------------------------------------------------
# 2. QUIZ QUESTIONS
# ---------------------------------------------------------
@router.post("/quiz/questions", response_model=QuestionOut, status_code=status.HTTP_201_CREATED)
def create_question(
    payload: QuestionCreate,
    db: Session = Depends(get_db),
    admin=Depends(get_current_admin),
):
    question = QuizQuestion(
        quiz_type=payload.quiz_type,
        prompt=payload.prompt,
        type=payload.type,
        order=payload.order,
        active=True,
    )
    db.add(question)
    db.commit()
    db.refresh(question)
    return question
