# schemas/quiz.py

from pydantic import BaseModel, Field
from typing import List, Optional
from datetime import datetime

from models.leads import LeadStatus


class QuizStartRequest(BaseModel):
    quiz_type: str
    partner_code: Optional[str] = None


class AnswerRequest(BaseModel):
    question_id: int
    value: Optional[str] = None
    dwell_ms: Optional[int] = Field(default=None, ge=0)


class QuestionOut(BaseModel):
    id: int
    quiz_type: str
    prompt: str
    type: str
    order: int

    class Config:
        from_attributes = True


class QuestionCreate(BaseModel):
    quiz_type: str
    prompt: str
    type: str = "single"
    order: int = 0


class LeadOut(BaseModel):
    id: int
    quiz_type: str
    status: LeadStatus
    partner_code: Optional[str] = None
    started_at: datetime
    completed_at: Optional[datetime] = None
    duration_ms: Optional[int] = None

    class Config:
        from_attributes = True


class CrmLeadOut(BaseModel):
    id: int
    name: str
    email: str
    quiz_type: str
    partner_code: Optional[str] = None
    completed_at: Optional[datetime] = None
    answers: List[dict] = []
