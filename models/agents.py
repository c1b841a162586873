from sqlalchemy import Column, Integer, String, Numeric, DateTime, Boolean, text

from app.timeutils import utcnow
from models import Base


class Agent(Base):
    """Closer: conducts scheduled calls and marks their outcome."""

    __tablename__ = "agents"

    id = Column(Integer, primary_key=True, index=True)

    name = Column(String(150), nullable=False)
    email = Column(String(255), nullable=False, unique=True, index=True)
    hashed_password = Column(String, nullable=False)

    is_active = Column(Boolean, nullable=False, default=True)
    is_approved = Column(Boolean, nullable=False, default=False)

    # Fraction of the sale value (0.05 = 5%)
    commission_rate = Column(Numeric(5, 4), nullable=False, default=0)

    total_calls = Column(Integer, nullable=False, default=0, server_default=text("0"))
    total_conversions = Column(Integer, nullable=False, default=0, server_default=text("0"))
    total_revenue = Column(Numeric(12, 2), nullable=False, default=0, server_default=text("0"))
    conversion_rate = Column(Numeric(6, 4), nullable=False, default=0, server_default=text("0"))

    created_at = Column(DateTime, nullable=False, default=utcnow)
