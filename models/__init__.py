from sqlalchemy.orm import declarative_base

Base = declarative_base()

# --------------------------------------------------
# Partners (affiliates) & tracking
# --------------------------------------------------
from .partners import Partner  # noqa: F401
from .clicks import PartnerClick  # noqa: F401

# --------------------------------------------------
# Agents (closers) & appointments
# --------------------------------------------------
from .agents import Agent  # noqa: F401
from .appointments import Appointment, AppointmentStatus, CallOutcome  # noqa: F401
from .audit_logs import AgentAuditLog  # noqa: F401

# --------------------------------------------------
# Quiz sessions (leads)
# --------------------------------------------------
from .leads import Lead, LeadAnswer, LeadStatus, QuizQuestion  # noqa: F401

# --------------------------------------------------
# Commission ledger & payouts
# --------------------------------------------------
from .conversions import Conversion, ConversionType, CommissionStatus  # noqa: F401
from .payouts import Payout, PayoutStatus  # noqa: F401

# --------------------------------------------------
# Admin & settings
# --------------------------------------------------
from .admin import Admin  # noqa: F401
from .app_settings import AppSetting  # noqa: F401
