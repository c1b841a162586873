from sqlalchemy import (
    Column,
    Integer,
    String,
    Text,
    DateTime,
    Boolean,
    Enum,
    ForeignKey,
    UniqueConstraint,
)
from sqlalchemy.orm import relationship
import enum

from app.timeutils import utcnow
from models import Base


class LeadStatus(str, enum.Enum):
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"


class QuizQuestion(Base):
    __tablename__ = "quiz_questions"

    id = Column(Integer, primary_key=True, index=True)

    quiz_type = Column(String(100), nullable=False, index=True)
    prompt = Column(String(1000), nullable=False)
    # e.g. "single", "multiple", "text", "email"
    type = Column(String(50), nullable=False, default="single")
    order = Column(Integer, nullable=False, default=0)
    active = Column(Boolean, nullable=False, default=True)


class Lead(Base):
    """Quiz session. Name and email are resolved from the answers on read."""

    __tablename__ = "leads"

    id = Column(Integer, primary_key=True, index=True)

    quiz_type = Column(String(100), nullable=False, index=True)

    status = Column(
        Enum(LeadStatus, name="lead_status", values_callable=lambda e: [m.value for m in e]),
        nullable=False,
        default=LeadStatus.IN_PROGRESS,
        index=True,
    )

    partner_code = Column(String(100), nullable=True, index=True)

    started_at = Column(DateTime, nullable=False, default=utcnow)
    completed_at = Column(DateTime, nullable=True)
    duration_ms = Column(Integer, nullable=True)

    created_at = Column(DateTime, nullable=False, default=utcnow)

    answers = relationship(
        "LeadAnswer",
        back_populates="lead",
        order_by="LeadAnswer.id",
        cascade="all, delete-orphan",
    )


class LeadAnswer(Base):
    __tablename__ = "lead_answers"
    __table_args__ = (
        UniqueConstraint("lead_id", "question_id", name="uq_lead_answers_lead_question"),
    )

    id = Column(Integer, primary_key=True, index=True)

    lead_id = Column(Integer, ForeignKey("leads.id", ondelete="CASCADE"), nullable=False, index=True)
    question_id = Column(Integer, ForeignKey("quiz_questions.id"), nullable=False)

    value = Column(Text, nullable=True)
    dwell_ms = Column(Integer, nullable=True)

    created_at = Column(DateTime, nullable=False, default=utcnow)
    updated_at = Column(DateTime, nullable=False, default=utcnow, onupdate=utcnow)

    lead = relationship("Lead", back_populates="answers")
    question = relationship("QuizQuestion", lazy="joined")
