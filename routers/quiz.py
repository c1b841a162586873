# routers/quiz.py

from typing import List

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from app.db import get_db
from app.identity_resolver import resolve_identity
from app.quiz_service import QuizService, list_questions
from schemas.quiz import AnswerRequest, LeadOut, QuestionOut, QuizStartRequest

router = APIRouter(prefix="/quiz", tags=["Quiz"])


@router.get("/{quiz_type}/questions", response_model=List[QuestionOut])
def quiz_questions(quiz_type: str, db: Session = Depends(get_db)):
    return list_questions(db, quiz_type)


@router.post("/start", response_model=LeadOut, status_code=status.HTTP_201_CREATED)
def quiz_start(payload: QuizStartRequest, db: Session = Depends(get_db)):
    return QuizService(db).start(payload.quiz_type, payload.partner_code)


@router.post("/{lead_id}/answers")
def quiz_answer(lead_id: int, payload: AnswerRequest, db: Session = Depends(get_db)):
    # client retries land on the same (lead, question) row
    answer = QuizService(db).save_answer(lead_id, payload.question_id, payload.value, payload.dwell_ms)
    return {"ok": True, "answer_id": answer.id}


@router.post("/{lead_id}/complete")
def quiz_complete(lead_id: int, db: Session = Depends(get_db)):
    lead = QuizService(db).complete(lead_id)
    identity = resolve_identity(lead.answers)
    return {
        "ok": True,
        "lead": LeadOut.model_validate(lead),
        "is_actionable": identity.is_actionable,
    }
