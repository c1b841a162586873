from sqlalchemy import Column, String, DateTime

from app.timeutils import utcnow
from models import Base


class AppSetting(Base):
    """Tenant-wide key/value settings (e.g. commission_hold_days, minimum_payout)."""

    __tablename__ = "app_settings"

    key = Column(String(100), primary_key=True)
    value = Column(String(255), nullable=False)

    updated_at = Column(DateTime, nullable=False, default=utcnow, onupdate=utcnow)
