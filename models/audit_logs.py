from sqlalchemy import Column, Integer, String, DateTime, ForeignKey, JSON

from app.timeutils import utcnow
from models import Base


class AgentAuditLog(Base):
    """Append-only: rows are inserted, never updated or deleted."""

    __tablename__ = "agent_audit_logs"

    id = Column(Integer, primary_key=True, index=True)

    agent_id = Column(Integer, ForeignKey("agents.id"), nullable=True, index=True)
    appointment_id = Column(Integer, ForeignKey("appointments.id"), nullable=True, index=True)

    action = Column(String(100), nullable=False)
    details = Column(JSON, nullable=False, default=dict)

    ip_address = Column(String(100), nullable=True)
    user_agent = Column(String(500), nullable=True)

    created_at = Column(DateTime, nullable=False, default=utcnow)
