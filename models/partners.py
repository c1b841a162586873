from sqlalchemy import Column, Integer, String, Numeric, DateTime, Boolean, text

from app.timeutils import utcnow
from models import Base


class Partner(Base):
    __tablename__ = "partners"

    id = Column(Integer, primary_key=True, index=True)

    name = Column(String(150), nullable=False)
    email = Column(String(255), nullable=False, unique=True)

    # Referral code (e.g. JANE-10). Superseded for good once custom_tracking_link is set.
    referral_code = Column(String(100), nullable=False, unique=True)
    custom_tracking_link = Column(String(200), nullable=True, unique=True)

    # Fraction of the sale value (0.10 = 10%)
    commission_rate = Column(Numeric(5, 4), nullable=False, default=0)

    # Lifetime earnings. Incremented once, when a sale Conversion is created.
    total_commission = Column(Numeric(12, 2), nullable=False, default=0, server_default=text("0"))

    total_clicks = Column(Integer, nullable=False, default=0, server_default=text("0"))
    total_leads = Column(Integer, nullable=False, default=0, server_default=text("0"))
    total_bookings = Column(Integer, nullable=False, default=0, server_default=text("0"))
    total_sales = Column(Integer, nullable=False, default=0, server_default=text("0"))

    is_active = Column(Boolean, nullable=False, default=True)
    is_approved = Column(Boolean, nullable=False, default=False)

    created_at = Column(DateTime, nullable=False, default=utcnow)
