from datetime import timedelta

from app.security import create_access_token
from models.appointments import AppointmentStatus
from models.conversions import CommissionStatus


def partner_headers(partner):
    return {"Authorization": f"Bearer {create_access_token({'sub': str(partner.id)})}"}


def test_health(client):
    assert client.get("/health").json() == {"ok": True}


def test_click_endpoint_and_gone_referral_code(client, make_partner):
    make_partner(code="PLAIN")
    make_partner(code="OLD", custom_tracking_link="new-link")

    ok = client.post("/track/click", json={"code": "PLAIN"}, headers={"User-Agent": "pytest-browser"})
    assert ok.status_code == 200
    assert ok.json()["counted"] is True

    again = client.post("/track/click", json={"code": "PLAIN"}, headers={"User-Agent": "pytest-browser"})
    assert again.json()["counted"] is False

    gone = client.post("/track/click", json={"code": "OLD"})
    assert gone.status_code == 410
    body = gone.json()
    assert body["error"] == "partner_link_gone"
    assert body["details"]["custom_tracking_link"] == "new-link"

    missing = client.post("/track/click", json={"code": "NOPE"})
    assert missing.status_code == 404
    assert missing.json()["error"] == "partner_not_found"


def test_outcome_endpoint(client, make_partner, make_agent, make_appointment, agent_headers):
    make_partner(code="JANE", rate="0.10")
    agent = make_agent()
    appointment = make_appointment(partner_code="JANE", agent=agent, status=AppointmentStatus.CONFIRMED)

    response = client.put(
        f"/agent/appointments/{appointment.id}/outcome",
        json={"outcome": "converted", "sale_value": "1000", "notes": "paid in full"},
        headers=agent_headers(agent),
    )

    assert response.status_code == 200
    body = response.json()
    assert body["partner_commission"] == 100.0
    assert body["conversion_id"] is not None

    timeline = client.get(f"/agent/appointments/{appointment.id}/activities", headers=agent_headers(agent))
    assert [e["action"] for e in timeline.json()] == ["outcome_marked"]

    listed = client.get("/agent/appointments/", headers=agent_headers(agent))
    assert [a["id"] for a in listed.json()] == [appointment.id]


def test_outcome_endpoint_errors(client, make_agent, make_appointment, agent_headers):
    owner = make_agent()
    other = make_agent()
    appointment = make_appointment(agent=owner, status=AppointmentStatus.CONFIRMED)
    url = f"/agent/appointments/{appointment.id}/outcome"

    assert client.put(url, json={"outcome": "converted", "sale_value": "10"}).status_code == 401

    foreign = client.put(url, json={"outcome": "converted", "sale_value": "10"}, headers=agent_headers(other))
    assert foreign.status_code == 404
    assert foreign.json()["error"] == "appointment_not_found"

    bad = client.put(url, json={"outcome": "cancelled"}, headers=agent_headers(owner))
    assert bad.status_code == 400
    assert bad.json()["error"] == "unsupported_outcome"

    no_sale = client.put(url, json={"outcome": "converted"}, headers=agent_headers(owner))
    assert no_sale.status_code == 400
    assert no_sale.json()["error"] == "invalid_amount"


def test_unapproved_agent_token_rejected(client, make_agent, agent_headers):
    pending = make_agent(is_approved=False)

    assert client.get("/agent/appointments/", headers=agent_headers(pending)).status_code == 401


def test_admin_payout_flow(client, admin_headers, make_partner, make_conversion, now):
    partner = make_partner()
    make_conversion(partner, amount="80.00", status=CommissionStatus.AVAILABLE)

    settings = client.put("/admin/settings/", json={"minimum_payout": 10}, headers=admin_headers)
    assert settings.json()["minimum_payout"] == 10.0

    below = client.post("/admin/payouts/", json={"partner_id": partner.id, "amount": "5"}, headers=admin_headers)
    assert below.status_code == 400
    assert below.json()["error"] == "below_minimum"

    paid = client.post("/admin/payouts/", json={"partner_id": partner.id, "amount": "80"}, headers=admin_headers)
    assert paid.status_code == 201
    assert paid.json()["available_after"] == 0.0

    too_much = client.post("/admin/payouts/", json={"partner_id": partner.id, "amount": "20"}, headers=admin_headers)
    assert too_much.status_code == 400
    assert too_much.json()["error"] == "insufficient_balance"

    detail = client.get(f"/admin/payouts/{partner.id}", headers=admin_headers).json()
    assert detail["balance"]["available"] == 0.0
    assert len(detail["payouts"]) == 1


def test_admin_requires_admin_token(client, make_agent, agent_headers):
    agent = make_agent()

    assert client.get("/admin/commissions/status").status_code in (401, 403)
    assert client.get("/admin/commissions/status", headers=agent_headers(agent)).status_code == 403


def test_admin_force_release(client, admin_headers, make_partner, make_conversion, now):
    partner = make_partner()
    conversion = make_conversion(partner, hold_until=now + timedelta(days=365))

    first = client.post(f"/admin/commissions/{conversion.id}/force-release", headers=admin_headers)
    second = client.post(f"/admin/commissions/{conversion.id}/force-release", headers=admin_headers)

    assert first.status_code == 200
    assert second.status_code == 409
    assert second.json()["error"] == "invalid_transition"


def test_partner_summary(client, make_partner, make_conversion):
    partner = make_partner(total_clicks=3)
    make_conversion(partner, amount="40.00", status=CommissionStatus.HELD)

    summary = client.get("/partner/summary", headers=partner_headers(partner)).json()

    assert summary["held"] == 40.0
    assert summary["available"] == 0.0
    assert summary["total_clicks"] == 3


def test_quiz_http_flow(client, make_partner, make_question):
    make_partner(code="QUIZ")
    name_q = make_question("Your name", order=1)
    email_q = make_question("Your email", qtype="email", order=2)

    questions = client.get("/quiz/money/questions").json()
    assert [q["id"] for q in questions] == [name_q.id, email_q.id]

    lead = client.post("/quiz/start", json={"quiz_type": "money", "partner_code": "QUIZ"})
    assert lead.status_code == 201
    lead_id = lead.json()["id"]

    client.post(f"/quiz/{lead_id}/answers", json={"question_id": name_q.id, "value": "Jane"})
    client.post(f"/quiz/{lead_id}/answers", json={"question_id": email_q.id, "value": "jane@example.com"})

    done = client.post(f"/quiz/{lead_id}/complete").json()
    assert done["is_actionable"] is True
    assert done["lead"]["status"] == "completed"
