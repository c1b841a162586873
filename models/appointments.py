from sqlalchemy import Column, Integer, String, Numeric, DateTime, Enum, ForeignKey, Text
import enum

from app.timeutils import utcnow
from models import Base


class AppointmentStatus(str, enum.Enum):
    SCHEDULED = "scheduled"
    CONFIRMED = "confirmed"
    RESCHEDULED = "rescheduled"
    CANCELLED = "cancelled"
    COMPLETED = "completed"


class CallOutcome(str, enum.Enum):
    CONVERTED = "converted"
    NOT_INTERESTED = "not_interested"
    NEEDS_FOLLOW_UP = "needs_follow_up"
    WRONG_NUMBER = "wrong_number"
    NO_ANSWER = "no_answer"
    CALLBACK_REQUESTED = "callback_requested"
    RESCHEDULED = "rescheduled"


class Appointment(Base):
    __tablename__ = "appointments"

    id = Column(Integer, primary_key=True, index=True)

    # Scheduling provider event id (null for manually tracked bookings)
    provider_event_id = Column(String(255), nullable=True, unique=True)

    customer_name = Column(String(255), nullable=False)
    # Stored lower-cased and trimmed
    customer_email = Column(String(255), nullable=False, index=True)
    customer_phone = Column(String(50), nullable=True)

    scheduled_at = Column(DateTime, nullable=False)
    duration_minutes = Column(Integer, nullable=True)

    status = Column(
        Enum(AppointmentStatus, name="appointment_status", values_callable=lambda e: [m.value for m in e]),
        nullable=False,
        default=AppointmentStatus.SCHEDULED,
        index=True,
    )

    # Null until the assignment scheduler runs
    agent_id = Column(Integer, ForeignKey("agents.id"), nullable=True, index=True)

    outcome = Column(
        Enum(CallOutcome, name="call_outcome", values_callable=lambda e: [m.value for m in e]),
        nullable=True,
    )
    sale_value = Column(Numeric(12, 2), nullable=True)
    agent_commission = Column(Numeric(12, 2), nullable=True)
    notes = Column(Text, nullable=True)
    recording_link = Column(String(500), nullable=True)

    partner_code = Column(String(100), nullable=True, index=True)
    utm_source = Column(String(255), nullable=True)
    utm_medium = Column(String(255), nullable=True)
    utm_campaign = Column(String(255), nullable=True)

    created_at = Column(DateTime, nullable=False, default=utcnow)
    updated_at = Column(DateTime, nullable=False, default=utcnow, onupdate=utcnow)
