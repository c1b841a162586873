import pytest

from app.attribution import (
    attribution_diagnostics,
    emails_match,
    emails_similar,
    find_lead_for_email,
    resolve_partner_code,
)
from app.errors import IntegrityAnomaly


def test_emails_match_is_trimmed_and_case_insensitive():
    assert emails_match(" Jane@Example.com", "jane@example.com ")
    assert not emails_match("jane@example.com", "jane+promo@example.com")
    assert not emails_match(None, None)


@pytest.mark.parametrize(
    "a, b, expected",
    [
        ("jane+promo@example.com", "jane@example.com", True),
        ("JANE+a@example.com", "jane+b@example.com", True),
        ("jane@example.com", "jane@example.org", False),
        ("jane@example.com", "janet@example.com", False),
        ("not-an-email", "jane@example.com", False),
    ],
)
def test_emails_similar(a, b, expected):
    assert emails_similar(a, b) is expected


def test_find_lead_prefers_most_recent(db, make_lead, now):
    from datetime import timedelta

    make_lead({"Name": "Old", "Email": "jane@example.com"}, completed_at=now - timedelta(days=2))
    recent = make_lead({"Name": "New", "Email": "Jane@Example.com"}, completed_at=now)

    assert find_lead_for_email(db, "jane@example.com").id == recent.id
    assert find_lead_for_email(db, "nobody@example.com") is None


def test_appointment_code_wins(db, make_lead, make_appointment):
    make_lead({"Name": "Jane", "Email": "jane@example.com"}, partner_code=None)
    appointment = make_appointment(email="jane@example.com", partner_code="APPT")

    result = resolve_partner_code(db, appointment)

    assert result.partner_code == "APPT"
    assert result.source == "appointment"
    assert result.anomaly is None


def test_falls_back_to_lead_code(db, make_lead, make_appointment):
    lead = make_lead({"Name": "Jane", "Email": "jane@example.com"}, partner_code="LEAD")
    appointment = make_appointment(email="jane@example.com", partner_code=None)

    result = resolve_partner_code(db, appointment)

    assert result.partner_code == "LEAD"
    assert result.source == "lead"
    assert result.lead_id == lead.id


def test_fuzzy_email_never_attributes(db, make_lead, make_appointment):
    make_lead({"Name": "Jane", "Email": "jane+quiz@example.com"}, partner_code="LEAD")
    appointment = make_appointment(email="jane@example.com", partner_code=None)

    result = resolve_partner_code(db, appointment)

    assert result.partner_code is None


def test_mismatch_is_reported_not_resolved(db, make_lead, make_appointment):
    make_lead({"Name": "Jane", "Email": "jane@example.com"}, partner_code="LEAD")
    appointment = make_appointment(email="jane@example.com", partner_code="APPT")

    result = resolve_partner_code(db, appointment)
    assert result.partner_code == "APPT"
    assert result.anomaly == {
        "appointment_id": appointment.id,
        "lead_id": result.lead_id,
        "appointment_code": "APPT",
        "lead_code": "LEAD",
    }

    with pytest.raises(IntegrityAnomaly):
        resolve_partner_code(db, appointment, strict=True)


def test_diagnostics_surface_fuzzy_and_mismatch(db, make_lead, make_appointment):
    exact = make_lead({"Name": "Jane", "Email": "jane@example.com"}, partner_code="LEAD")
    fuzzy = make_lead({"Name": "Jane", "Email": "jane+x@example.com"}, partner_code="OTHER")
    appointment = make_appointment(email="jane@example.com", partner_code="APPT")

    [diag] = attribution_diagnostics(db)

    assert diag.appointment_id == appointment.id
    assert diag.matched_lead_id == exact.id
    assert [c["lead_id"] for c in diag.fuzzy_candidates] == [fuzzy.id]
    assert diag.anomaly["lead_code"] == "LEAD"
    # read only
    db.refresh(appointment)
    assert appointment.partner_code == "APPT"
