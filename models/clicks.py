from sqlalchemy import Column, Integer, String, DateTime, ForeignKey, Index

from app.timeutils import utcnow
from models import Base


class PartnerClick(Base):
    __tablename__ = "partner_clicks"
    __table_args__ = (
        # cooldown lookup: same partner + same browser, most recent first
        Index("ix_partner_clicks_partner_ua_created", "partner_id", "user_agent", "created_at"),
    )

    id = Column(Integer, primary_key=True, index=True)

    partner_id = Column(Integer, ForeignKey("partners.id"), nullable=False)
    referral_code = Column(String(100), nullable=False)

    ip_address = Column(String(100), nullable=True)
    user_agent = Column(String(500), nullable=False, default="unknown")

    utm_source = Column(String(255), nullable=True)
    utm_medium = Column(String(255), nullable=True)
    utm_campaign = Column(String(255), nullable=True)

    created_at = Column(DateTime, nullable=False, default=utcnow)
