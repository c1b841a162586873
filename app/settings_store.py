# app/settings_store.py
"""
Read side of the tenant-wide settings table.

Values are stored as strings; this module only coerces the type and falls
back to the env default when a row is missing or unparseable.
"""

from decimal import Decimal, InvalidOperation
import logging

from sqlalchemy.orm import Session

from app.config import settings
from app.timeutils import utcnow
from models.app_settings import AppSetting

logger = logging.getLogger(__name__)

COMMISSION_HOLD_DAYS = "commission_hold_days"
MINIMUM_PAYOUT = "minimum_payout"

KNOWN_KEYS = (COMMISSION_HOLD_DAYS, MINIMUM_PAYOUT)


def _raw(db: Session, key: str) -> str | None:
    row = db.get(AppSetting, key)
    return row.value if row else None


def get_commission_hold_days(db: Session) -> int:
    raw = _raw(db, COMMISSION_HOLD_DAYS)
    if raw is None:
        return settings.commission_hold_days
    try:
        return int(str(raw).strip())
    except ValueError:
        logger.warning("Invalid %s=%r, using default %s", COMMISSION_HOLD_DAYS, raw, settings.commission_hold_days)
        return settings.commission_hold_days


def get_minimum_payout(db: Session) -> Decimal:
    raw = _raw(db, MINIMUM_PAYOUT)
    default = Decimal(str(settings.minimum_payout))
    if raw is None:
        return default
    try:
        return Decimal(str(raw).strip())
    except InvalidOperation:
        logger.warning("Invalid %s=%r, using default %s", MINIMUM_PAYOUT, raw, default)
        return default


def all_settings(db: Session) -> dict:
    return {
        COMMISSION_HOLD_DAYS: get_commission_hold_days(db),
        MINIMUM_PAYOUT: float(get_minimum_payout(db)),
    }


def put_setting(db: Session, key: str, value: str) -> None:
    """Upsert one setting. Caller commits."""
    row = db.get(AppSetting, key)
    if row is None:
        db.add(AppSetting(key=key, value=value, updated_at=utcnow()))
    else:
        row.value = value
