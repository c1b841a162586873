from sqlalchemy import Column, Integer, String, Numeric, DateTime, Enum, ForeignKey, Index, UniqueConstraint
import enum

from app.timeutils import utcnow
from models import Base


class ConversionType(str, enum.Enum):
    LEAD = "lead"
    BOOKING = "booking"
    SALE = "sale"


class CommissionStatus(str, enum.Enum):
    HELD = "held"
    AVAILABLE = "available"
    PAID = "paid"


class Conversion(Base):
    """
    Commission owed to a partner for a lead, booking or sale.
    Immutable after insert, except for the held -> available -> paid transitions
    (and released_at), which only the commission ledger performs.
    """
    __tablename__ = "conversions"
    __table_args__ = (
        Index("ix_conversions_status_hold_until", "commission_status", "hold_until"),
        Index("ix_conversions_partner_status", "partner_id", "commission_status"),
        # one sale (and one booking) conversion per appointment
        UniqueConstraint("appointment_id", "conversion_type", name="uq_conversions_appointment_type"),
    )

    id = Column(Integer, primary_key=True, index=True)

    partner_id = Column(Integer, ForeignKey("partners.id"), nullable=False)
    referral_code = Column(String(100), nullable=False)

    appointment_id = Column(Integer, ForeignKey("appointments.id"), nullable=True, index=True)
    lead_id = Column(Integer, ForeignKey("leads.id"), nullable=True)

    conversion_type = Column(
        Enum(ConversionType, name="conversion_type", values_callable=lambda e: [m.value for m in e]),
        nullable=False,
    )

    sale_value = Column(Numeric(12, 2), nullable=False, default=0)
    commission_amount = Column(Numeric(12, 2), nullable=False, default=0)

    commission_status = Column(
        Enum(CommissionStatus, name="commission_status", values_callable=lambda e: [m.value for m in e]),
        nullable=False,
        default=CommissionStatus.HELD,
    )
    hold_until = Column(DateTime, nullable=False)
    released_at = Column(DateTime, nullable=True)
    paid_at = Column(DateTime, nullable=True)
    payout_id = Column(Integer, ForeignKey("payouts.id"), nullable=True)

    created_at = Column(DateTime, nullable=False, default=utcnow)
