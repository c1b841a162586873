# app/click_service.py
"""
Tracking clicks with a per-browser cooldown.

Same partner + same user agent inside the cooldown window (default 1 hour)
counts once. The check-then-insert is best effort: two simultaneous hits
may both count, which is acceptable for this metric.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Optional

from sqlalchemy.orm import Session

from app.config import settings
from app.errors import PartnerLinkGone, PartnerNotFound
from app.repositories import ClickRepository, PartnerRepository
from app.timeutils import utcnow
from models.clicks import PartnerClick
from models.partners import Partner

logger = logging.getLogger(__name__)

UNKNOWN_USER_AGENT = "unknown"


@dataclass
class ClickResult:
    partner_id: int
    referral_code: str
    counted: bool
    click_id: Optional[int] = None

    def to_dict(self) -> dict:
        return {
            "partner_id": self.partner_id,
            "referral_code": self.referral_code,
            "counted": self.counted,
            "click_id": self.click_id,
        }


class ClickDeduplicator:
    def __init__(self, db: Session, cooldown: Optional[timedelta] = None):
        self.db = db
        self.partners = PartnerRepository(db)
        self.clicks = ClickRepository(db)
        self.cooldown = cooldown or timedelta(minutes=settings.click_cooldown_minutes)

    def resolve_partner(self, code: str) -> Partner:
        """
        `code` is a custom tracking link or a referral code.
        A referral code superseded by a custom link is gone for good (410).
        """
        code = (code or "").strip()
        partner = self.partners.get_by_custom_link(code) if code else None
        if partner is not None:
            if not partner.is_active:
                raise PartnerNotFound("Partner not found.", {"code": code})
            return partner

        partner = self.partners.get_by_code(code) if code else None
        if partner is None or not partner.is_active:
            raise PartnerNotFound("Partner not found.", {"code": code})

        if partner.custom_tracking_link:
            raise PartnerLinkGone(
                "This referral link has been replaced.",
                {"referral_code": code, "custom_tracking_link": partner.custom_tracking_link},
            )
        return partner

    def track(
        self,
        code: str,
        *,
        user_agent: Optional[str] = None,
        ip_address: Optional[str] = None,
        utm_source: Optional[str] = None,
        utm_medium: Optional[str] = None,
        utm_campaign: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> ClickResult:
        now = now or utcnow()
        partner = self.resolve_partner(code)
        ua = (user_agent or "").strip() or UNKNOWN_USER_AGENT

        recent = self.clicks.recent_from_browser(partner.id, ua, now - self.cooldown)
        if recent is not None:
            logger.info("Duplicate click for partner %s within cooldown, not counted", partner.id)
            return ClickResult(partner.id, partner.referral_code, counted=False, click_id=recent.id)

        click = self.clicks.add(
            PartnerClick(
                partner_id=partner.id,
                referral_code=partner.referral_code,
                ip_address=ip_address,
                user_agent=ua,
                utm_source=utm_source,
                utm_medium=utm_medium,
                utm_campaign=utm_campaign,
                created_at=now,
            )
        )
        self.db.commit()
        result = ClickResult(partner.id, partner.referral_code, counted=True, click_id=click.id)

        # the click is tracked even if the counter cannot be bumped
        try:
            self.partners.increment_clicks(partner.id)
            self.db.commit()
        except Exception:
            self.db.rollback()
            logger.warning("Click %s recorded but total_clicks increment failed for partner %s",
                           result.click_id, result.partner_id, exc_info=True)

        return result
