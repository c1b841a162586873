from datetime import timedelta
from decimal import Decimal

import pytest

from app import settings_store
from app.ledger_service import CommissionLedger
from app.payout_service import PayoutProcessor
from app.repositories import ConversionRepository
from models.conversions import Conversion, CommissionStatus


@pytest.fixture
def no_minimum(db):
    settings_store.put_setting(db, settings_store.MINIMUM_PAYOUT, "0")
    db.commit()


def status_of(db, conversion_id):
    db.expire_all()
    return db.get(Conversion, conversion_id).commission_status


@pytest.mark.parametrize("status", [CommissionStatus.AVAILABLE, CommissionStatus.PAID])
def test_release_only_moves_held_rows(db, make_partner, make_conversion, now, status):
    partner = make_partner()
    conversion = make_conversion(partner, status=status, hold_until=now - timedelta(days=1))
    repo = ConversionRepository(db)

    assert repo.release(conversion.id, now) is False
    assert repo.release(conversion.id, now, ignore_hold=True) is False
    db.commit()
    assert status_of(db, conversion.id) == status


@pytest.mark.parametrize("status", [CommissionStatus.HELD, CommissionStatus.PAID])
def test_mark_paid_only_moves_available_rows(db, make_partner, make_conversion, now, status):
    partner = make_partner()
    conversion = make_conversion(partner, status=status, hold_until=now - timedelta(days=1))
    repo = ConversionRepository(db)

    assert repo.mark_paid(conversion.id, 1, now) is False
    db.commit()
    assert status_of(db, conversion.id) == status
    assert db.get(Conversion, conversion.id).payout_id is None


def test_second_writer_loses(db, make_partner, make_conversion, now):
    partner = make_partner()
    conversion = make_conversion(partner, hold_until=now - timedelta(minutes=1))
    repo = ConversionRepository(db)

    assert repo.release(conversion.id, now) is True
    assert repo.release(conversion.id, now) is False
    db.commit()
    assert status_of(db, conversion.id) == CommissionStatus.AVAILABLE


def test_stale_release_run_after_payout_changes_nothing(db, make_partner, make_conversion, now, no_minimum,
                                                       monkeypatch):
    partner = make_partner()
    first = make_conversion(partner, amount="60.00", created_at=now - timedelta(days=31),
                            hold_until=now - timedelta(days=1))
    second = make_conversion(partner, amount="40.00", created_at=now - timedelta(days=30),
                             hold_until=now - timedelta(minutes=1))

    slow = CommissionLedger(db)
    stale = slow.conversions.due_for_release(now)
    assert [c.id for c in stale] == [first.id, second.id]

    # another run releases both and the partner cashes out the first one
    CommissionLedger(db).release_due(now=now)
    payout = PayoutProcessor(db).request_payout(partner.id, "60", now=now)
    assert payout.consumed_conversion_ids == [first.id]

    monkeypatch.setattr(slow.conversions, "due_for_release", lambda _now: stale)
    result = slow.release_due(now=now)

    assert result["due"] == 2
    assert result["released"] == 0
    assert status_of(db, first.id) == CommissionStatus.PAID
    assert status_of(db, second.id) == CommissionStatus.AVAILABLE

    ledger = CommissionLedger(db)
    assert ledger.available_balance(partner.id) == Decimal("40.00")
    assert ledger.available_balance(partner.id) >= 0


def test_release_interleaved_with_payouts_never_goes_negative(db, make_partner, make_conversion, now, no_minimum):
    partner = make_partner()
    for i in range(4):
        make_conversion(partner, amount="25.00", created_at=now - timedelta(days=31, minutes=-i),
                        hold_until=now - timedelta(minutes=i + 1))
    ledger = CommissionLedger(db)
    processor = PayoutProcessor(db)

    for _ in range(2):
        ledger.release_due(now=now)
        processor.request_payout(partner.id, "50", now=now)
        assert ledger.available_balance(partner.id) >= 0

    assert ledger.release_due(now=now)["released"] == 0
    assert ledger.available_balance(partner.id) == 0
    db.expire_all()
    assert all(c.commission_status == CommissionStatus.PAID for c in db.query(Conversion))
