from datetime import timedelta

import pytest

from app.errors import InvalidInput, InvalidTransition, LeadNotFound
from app.quiz_service import QuizService, list_questions
from app.repositories import LeadRepository
from models.conversions import Conversion, ConversionType
from models.leads import LeadAnswer, LeadStatus
from models.partners import Partner


@pytest.fixture
def questions(make_question):
    return {
        "name": make_question("What is your first name?", order=1),
        "email": make_question("Your email address", qtype="email", order=2),
        "goal": make_question("What is your savings goal?", qtype="single", order=3),
    }


def answer_all(service, lead, questions, name="Jane", email="jane@example.com"):
    service.save_answer(lead.id, questions["goal"].id, "Retire early")
    service.save_answer(lead.id, questions["name"].id, name)
    service.save_answer(lead.id, questions["email"].id, email)


def lead_conversions(db):
    return db.query(Conversion).filter(Conversion.conversion_type == ConversionType.LEAD).all()


def test_list_questions_in_order(db, questions, make_question):
    make_question("Other quiz", quiz_type="health")
    hidden = make_question("Retired question", order=0)
    hidden.active = False
    db.commit()

    prompts = [q.prompt for q in list_questions(db, "money")]

    assert prompts == [
        "What is your first name?",
        "Your email address",
        "What is your savings goal?",
    ]


def test_start_keeps_only_active_partner_codes(db, make_partner, now):
    make_partner(code="ACTIVE")
    make_partner(code="ASLEEP", is_active=False)
    service = QuizService(db)

    assert service.start("money", "ACTIVE", now=now).partner_code == "ACTIVE"
    assert service.start("money", "ASLEEP", now=now).partner_code is None
    assert service.start("money", "  ", now=now).partner_code is None
    with pytest.raises(InvalidInput):
        service.start("  ", now=now)


def test_duplicate_answer_converges_to_one_row(db, questions, now):
    service = QuizService(db)
    lead = service.start("money", now=now)

    service.save_answer(lead.id, questions["goal"].id, "Retire early", dwell_ms=1200)
    service.save_answer(lead.id, questions["goal"].id, "Buy a house", dwell_ms=800)

    rows = db.query(LeadAnswer).filter(LeadAnswer.lead_id == lead.id).all()
    assert len(rows) == 1
    assert rows[0].value == "Buy a house"
    assert rows[0].dwell_ms == 800


def test_concurrent_insert_falls_back_to_update(db, questions, now, monkeypatch):
    service = QuizService(db)
    lead = service.start("money", now=now)
    service.save_answer(lead.id, questions["goal"].id, "first writer")

    # simulate a second request that missed the existing row before inserting
    repo = LeadRepository(db)
    original = repo._find_answer
    calls = {"n": 0}

    def stale_then_real(lead_id, question_id):
        calls["n"] += 1
        return None if calls["n"] == 1 else original(lead_id, question_id)

    monkeypatch.setattr(repo, "_find_answer", stale_then_real)

    answer = repo.upsert_answer(lead.id, questions["goal"].id, "second writer")
    db.commit()

    assert calls["n"] == 2
    rows = db.query(LeadAnswer).filter(LeadAnswer.lead_id == lead.id).all()
    assert [r.id for r in rows] == [answer.id]
    assert rows[0].value == "second writer"


def test_answer_validation(db, questions, now):
    service = QuizService(db)
    lead = service.start("money", now=now)

    with pytest.raises(LeadNotFound):
        service.save_answer(9999, questions["goal"].id, "x")
    with pytest.raises(InvalidInput):
        service.save_answer(lead.id, 9999, "x")

    service.complete(lead.id, now=now)
    with pytest.raises(InvalidTransition):
        service.save_answer(lead.id, questions["goal"].id, "late")


def test_completion_attributes_actionable_lead_once(db, questions, make_partner, now):
    partner = make_partner(code="QUIZ")
    service = QuizService(db)
    lead = service.start("money", "QUIZ", now=now)
    answer_all(service, lead, questions)

    completed = service.complete(lead.id, now=now + timedelta(seconds=90))
    service.complete(lead.id, now=now + timedelta(minutes=5))

    assert completed.status == LeadStatus.COMPLETED
    assert completed.completed_at == now + timedelta(seconds=90)
    assert completed.duration_ms == 90_000

    [conversion] = lead_conversions(db)
    assert conversion.lead_id == lead.id
    assert conversion.partner_id == partner.id
    assert conversion.commission_amount == 0

    db.expire_all()
    assert db.get(Partner, partner.id).total_leads == 1


def test_non_actionable_lead_is_not_attributed(db, questions, make_partner, now):
    partner = make_partner(code="QUIZ")
    service = QuizService(db)
    lead = service.start("money", "QUIZ", now=now)
    service.save_answer(lead.id, questions["email"].id, "jane@example.com")

    completed = service.complete(lead.id, now=now)

    assert completed.status == LeadStatus.COMPLETED
    assert lead_conversions(db) == []
    db.expire_all()
    assert db.get(Partner, partner.id).total_leads == 0


def test_unattributed_lead_completes_without_conversion(db, questions, now):
    service = QuizService(db)
    lead = service.start("money", now=now)
    answer_all(service, lead, questions)

    service.complete(lead.id, now=now)

    assert lead_conversions(db) == []


def test_crm_leads_dedupes_by_email(db, make_lead, now):
    newest = make_lead({"Name": "Jane", "Email": "jane@example.com"}, partner_code="P1",
                       completed_at=now + timedelta(hours=1))
    make_lead({"Name": "Janet", "Email": "JANE@example.com"}, partner_code="P1", completed_at=now)
    other = make_lead({"Name": "Bob", "Email": "bob@example.com"}, partner_code="P2", completed_at=now)
    make_lead({"Email": "anon@example.com"}, partner_code="P1", completed_at=now)

    service = QuizService(db)

    assert [l.id for l in service.crm_leads()] == [newest.id, other.id]
    assert [l.id for l in service.crm_leads("P1")] == [newest.id]
