from sqlalchemy import Column, Integer, Numeric, DateTime, Enum, ForeignKey, String
import enum

from app.timeutils import utcnow
from models import Base


class PayoutStatus(str, enum.Enum):
    PENDING = "pending"
    COMPLETED = "completed"


class Payout(Base):
    """
    Cash-out actually made to the partner.
    Created only after checking the available balance covers amount_due.
    """
    __tablename__ = "payouts"

    id = Column(Integer, primary_key=True, index=True)

    partner_id = Column(Integer, ForeignKey("partners.id"), nullable=False, index=True)

    amount_due = Column(Numeric(12, 2), nullable=False)

    status = Column(
        Enum(PayoutStatus, name="payout_status", values_callable=lambda e: [m.value for m in e]),
        nullable=False,
        default=PayoutStatus.PENDING,
    )

    notes = Column(String(500), nullable=True)

    created_at = Column(DateTime, nullable=False, default=utcnow)
    updated_at = Column(DateTime, nullable=False, default=utcnow, onupdate=utcnow)
