from datetime import timedelta
from decimal import Decimal

import pytest

from app.errors import ConversionNotFound, InvalidTransition, PartnerNotFound
from app.ledger_service import CommissionLedger, check_transition
from models.conversions import Conversion, CommissionStatus, ConversionType
from models.partners import Partner


def status_of(db, conversion):
    db.expire_all()
    return db.get(Conversion, conversion.id).commission_status


def test_release_after_hold_period(db, make_partner, make_conversion, now):
    partner = make_partner()
    conversion = make_conversion(partner, hold_until=now - timedelta(minutes=1))

    assert CommissionLedger(db).release(conversion.id, now=now) is True
    assert status_of(db, conversion) == CommissionStatus.AVAILABLE

    # second release of the same row is an illegal transition
    with pytest.raises(InvalidTransition):
        CommissionLedger(db).release(conversion.id, now=now)


def test_release_before_hold_ends_is_rejected(db, make_partner, make_conversion, now):
    partner = make_partner()
    conversion = make_conversion(partner, hold_until=now + timedelta(days=1))

    with pytest.raises(InvalidTransition):
        CommissionLedger(db).release(conversion.id, now=now)
    assert status_of(db, conversion) == CommissionStatus.HELD


def test_release_unknown_conversion(db):
    with pytest.raises(ConversionNotFound):
        CommissionLedger(db).release(999)


def test_release_due_is_idempotent(db, make_partner, make_conversion, now):
    partner = make_partner()
    due_a = make_conversion(partner, amount="40.00", hold_until=now - timedelta(days=1))
    due_b = make_conversion(partner, amount="60.00", hold_until=now)
    not_due = make_conversion(partner, hold_until=now + timedelta(days=3))
    make_conversion(partner, amount="0", hold_until=now - timedelta(days=1), conversion_type=ConversionType.LEAD)

    ledger = CommissionLedger(db)
    first = ledger.release_due(now=now)
    second = ledger.release_due(now=now)

    assert first["released"] == 2
    assert sorted(first["released_ids"]) == sorted([due_a.id, due_b.id])
    assert first["released_amount"] == 100.0
    assert second["released"] == 0
    assert status_of(db, not_due) == CommissionStatus.HELD


def test_release_does_not_touch_lifetime_commission(db, make_partner, make_conversion, now):
    partner = make_partner(total_commission=Decimal("100.00"))
    make_conversion(partner, hold_until=now - timedelta(days=1))

    CommissionLedger(db).release_due(now=now)

    db.expire_all()
    assert db.get(Partner, partner.id).total_commission == Decimal("100.00")


@pytest.mark.parametrize(
    "current,target",
    [
        (CommissionStatus.PAID, CommissionStatus.AVAILABLE),
        (CommissionStatus.AVAILABLE, CommissionStatus.HELD),
        (CommissionStatus.HELD, CommissionStatus.PAID),
        (CommissionStatus.PAID, CommissionStatus.HELD),
    ],
)
def test_illegal_transitions(current, target):
    with pytest.raises(InvalidTransition):
        check_transition(current, target)


def test_legal_transitions():
    check_transition(CommissionStatus.HELD, CommissionStatus.AVAILABLE)
    check_transition(CommissionStatus.AVAILABLE, CommissionStatus.PAID)


def test_zero_value_commission_never_released(db, make_partner, make_conversion, now):
    partner = make_partner()
    lead = make_conversion(partner, amount="0", hold_until=now - timedelta(days=1),
                           conversion_type=ConversionType.LEAD)

    with pytest.raises(InvalidTransition):
        CommissionLedger(db).release(lead.id, now=now)
    with pytest.raises(InvalidTransition):
        CommissionLedger(db).force_release(lead.id, now=now)


def test_force_release_ignores_hold(db, make_partner, make_conversion, now):
    partner = make_partner()
    conversion = make_conversion(partner, hold_until=now + timedelta(days=20))

    assert CommissionLedger(db).force_release(conversion.id, now=now) is True
    assert status_of(db, conversion) == CommissionStatus.AVAILABLE

    with pytest.raises(InvalidTransition):
        CommissionLedger(db).force_release(conversion.id, now=now)


def test_balance(db, make_partner, make_conversion, now):
    partner = make_partner(total_commission=Decimal("175.00"))
    make_conversion(partner, amount="100.00", status=CommissionStatus.HELD)
    make_conversion(partner, amount="50.00", status=CommissionStatus.AVAILABLE)
    make_conversion(partner, amount="25.00", status=CommissionStatus.AVAILABLE)

    balance = CommissionLedger(db).balance(partner.id)

    assert balance.held == Decimal("100.00")
    assert balance.available == Decimal("75.00")
    assert balance.paid == Decimal("0")
    assert balance.to_dict()["total_commission"] == 175.0

    with pytest.raises(PartnerNotFound):
        CommissionLedger(db).balance(999)


def test_status_report(db, make_partner, make_conversion, now):
    partner = make_partner()
    make_conversion(partner, amount="10.00", hold_until=now - timedelta(hours=1))
    make_conversion(partner, amount="20.00", hold_until=now + timedelta(days=1))
    make_conversion(partner, amount="30.00", status=CommissionStatus.AVAILABLE)
    make_conversion(partner, amount="0", conversion_type=ConversionType.BOOKING)

    report = CommissionLedger(db).status_report(now=now)

    assert report["held_count"] == 2
    assert report["held_amount"] == 30.0
    assert report["ready_for_release_count"] == 1
    assert report["available_count"] == 1
    assert report["available_amount"] == 30.0
    assert report["paid_count"] == 0
