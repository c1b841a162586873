from datetime import timedelta

import pytest

from app.click_service import ClickDeduplicator
from app.errors import PartnerLinkGone, PartnerNotFound
from models.clicks import PartnerClick
from models.partners import Partner

UA = "Mozilla/5.0 (X11; Linux x86_64)"


def clicks_and_counter(db, partner):
    db.expire_all()
    return db.query(PartnerClick).count(), db.get(Partner, partner.id).total_clicks


def test_same_browser_within_cooldown_counts_once(db, make_partner, now):
    partner = make_partner(code="CLICKY")
    dedup = ClickDeduplicator(db)

    first = dedup.track("CLICKY", user_agent=UA, now=now)
    second = dedup.track("CLICKY", user_agent=UA, now=now + timedelta(minutes=10))

    assert first.counted and not second.counted
    assert second.click_id == first.click_id
    assert clicks_and_counter(db, partner) == (1, 1)


def test_same_browser_after_cooldown_counts_again(db, make_partner, now):
    partner = make_partner(code="CLICKY")
    dedup = ClickDeduplicator(db)

    dedup.track("CLICKY", user_agent=UA, now=now)
    later = dedup.track("CLICKY", user_agent=UA, now=now + timedelta(hours=2))

    assert later.counted
    assert clicks_and_counter(db, partner) == (2, 2)


def test_different_browsers_count_separately(db, make_partner, now):
    partner = make_partner(code="CLICKY")
    dedup = ClickDeduplicator(db)

    dedup.track("CLICKY", user_agent=UA, now=now)
    dedup.track("CLICKY", user_agent="curl/8.0", now=now)
    dedup.track("CLICKY", user_agent=None, now=now)
    dedup.track("CLICKY", user_agent="  ", now=now)

    assert clicks_and_counter(db, partner) == (3, 3)
    assert db.query(PartnerClick).filter(PartnerClick.user_agent == "unknown").count() == 1


def test_custom_link_replaces_referral_code(db, make_partner, now):
    partner = make_partner(code="OLDCODE", custom_tracking_link="summer-promo")
    dedup = ClickDeduplicator(db)

    with pytest.raises(PartnerLinkGone) as exc:
        dedup.track("OLDCODE", user_agent=UA, now=now)
    assert exc.value.status_code == 410

    result = dedup.track("summer-promo", user_agent=UA, now=now)
    assert result.counted
    assert result.referral_code == "OLDCODE"
    assert clicks_and_counter(db, partner) == (1, 1)


@pytest.mark.parametrize("code", ["NOPE", "", None])
def test_unknown_code(db, code):
    with pytest.raises(PartnerNotFound):
        ClickDeduplicator(db).track(code, user_agent=UA)


def test_inactive_partner_not_tracked(db, make_partner):
    make_partner(code="SLEEPY", is_active=False)

    with pytest.raises(PartnerNotFound):
        ClickDeduplicator(db).track("SLEEPY", user_agent=UA)
    assert db.query(PartnerClick).count() == 0


def test_counter_failure_keeps_the_click(db, make_partner, now, monkeypatch):
    partner = make_partner(code="CLICKY")
    dedup = ClickDeduplicator(db)

    def boom(partner_id):
        raise RuntimeError("counter unavailable")

    monkeypatch.setattr(dedup.partners, "increment_clicks", boom)

    result = dedup.track("CLICKY", user_agent=UA, utm_source="newsletter", now=now)

    assert result.counted
    assert clicks_and_counter(db, partner) == (1, 0)
    assert db.get(PartnerClick, result.click_id).utm_source == "newsletter"


def test_custom_cooldown(db, make_partner, now):
    partner = make_partner(code="CLICKY")
    dedup = ClickDeduplicator(db, cooldown=timedelta(minutes=5))

    dedup.track("CLICKY", user_agent=UA, now=now)
    dedup.track("CLICKY", user_agent=UA, now=now + timedelta(minutes=6))

    assert clicks_and_counter(db, partner) == (2, 2)
