"""Pytest configuration and fixtures for the test suite."""

import os
from datetime import datetime, timedelta
from decimal import Decimal

import pytest

# Set test environment BEFORE any app import: settings are read at import time
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["SCHEDULER_ENABLED"] = "0"
os.environ["JWT_SECRET"] = "test-secret"
os.environ.setdefault("LOG_LEVEL", "WARNING")

from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from app.passwords import hash_password
from models import Base
from models.admin import Admin
from models.agents import Agent
from models.appointments import Appointment, AppointmentStatus
from models.conversions import Conversion, ConversionType, CommissionStatus
from models.leads import Lead, LeadAnswer, LeadStatus, QuizQuestion
from models.partners import Partner

# Fixed clock for hold periods and cooldown windows
NOW = datetime(2026, 1, 1, 12, 0, 0)


@pytest.fixture
def now():
    return NOW


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture
def db(engine):
    TestingSession = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    session = TestingSession()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture(scope="session")
def password_hash():
    # one bcrypt hash for the whole run
    return hash_password("secret-password")


# =============================================================================
# FACTORIES
# =============================================================================

@pytest.fixture
def make_partner(db):
    counter = {"n": 0}

    def _make(code=None, rate="0.10", is_active=True, custom_tracking_link=None, **kwargs):
        counter["n"] += 1
        code = code or f"PARTNER{counter['n']}"
        partner = Partner(
            name=kwargs.pop("name", f"Partner {code}"),
            email=kwargs.pop("email", f"{code.lower()}@partners.test"),
            referral_code=code,
            custom_tracking_link=custom_tracking_link,
            commission_rate=Decimal(str(rate)),
            is_active=is_active,
            is_approved=kwargs.pop("is_approved", True),
            created_at=NOW,
            **kwargs,
        )
        db.add(partner)
        db.commit()
        db.refresh(partner)
        return partner

    return _make


@pytest.fixture
def make_agent(db, password_hash):
    counter = {"n": 0}

    def _make(total_calls=0, is_active=True, is_approved=True, rate="0.05", **kwargs):
        counter["n"] += 1
        agent = Agent(
            name=kwargs.pop("name", f"Agent {counter['n']}"),
            email=kwargs.pop("email", f"agent{counter['n']}@closers.test"),
            hashed_password=password_hash,
            is_active=is_active,
            is_approved=is_approved,
            commission_rate=Decimal(str(rate)),
            total_calls=total_calls,
            created_at=NOW,
            **kwargs,
        )
        db.add(agent)
        db.commit()
        db.refresh(agent)
        return agent

    return _make


@pytest.fixture
def make_appointment(db):
    counter = {"n": 0}

    def _make(
        email="customer@example.com",
        partner_code=None,
        agent=None,
        status=AppointmentStatus.SCHEDULED,
        created_at=None,
        **kwargs,
    ):
        counter["n"] += 1
        appointment = Appointment(
            customer_name=kwargs.pop("customer_name", "Customer"),
            customer_email=email,
            scheduled_at=kwargs.pop("scheduled_at", NOW + timedelta(days=1)),
            status=status,
            agent_id=agent.id if agent is not None else None,
            partner_code=partner_code,
            created_at=created_at or (NOW + timedelta(seconds=counter["n"])),
            updated_at=NOW,
            **kwargs,
        )
        db.add(appointment)
        db.commit()
        db.refresh(appointment)
        return appointment

    return _make


@pytest.fixture
def make_question(db):
    def _make(prompt, qtype="text", quiz_type="money", order=0):
        question = QuizQuestion(quiz_type=quiz_type, prompt=prompt, type=qtype, order=order, active=True)
        db.add(question)
        db.commit()
        db.refresh(question)
        return question

    return _make


@pytest.fixture
def make_lead(db, make_question):
    """make_lead({"What is your name?": "Jane", "Your email": "jane@x.com"}, partner_code="JANE")"""

    def _make(answers=None, partner_code=None, completed_at=NOW, status=LeadStatus.COMPLETED, quiz_type="money"):
        lead = Lead(
            quiz_type=quiz_type,
            status=status,
            partner_code=partner_code,
            started_at=NOW - timedelta(minutes=5),
            completed_at=completed_at if status == LeadStatus.COMPLETED else None,
            created_at=NOW - timedelta(minutes=5),
        )
        db.add(lead)
        db.flush()
        for i, (prompt, value) in enumerate((answers or {}).items()):
            qtype = "email" if "email" in prompt.lower() else "text"
            question = make_question(prompt, qtype=qtype, quiz_type=quiz_type, order=i)
            db.add(LeadAnswer(lead_id=lead.id, question_id=question.id, value=value))
        db.commit()
        db.refresh(lead)
        return lead

    return _make


@pytest.fixture
def make_conversion(db):
    def _make(
        partner,
        amount="100.00",
        status=CommissionStatus.HELD,
        created_at=NOW,
        hold_until=None,
        conversion_type=ConversionType.SALE,
    ):
        conversion = Conversion(
            partner_id=partner.id,
            referral_code=partner.referral_code,
            conversion_type=conversion_type,
            sale_value=Decimal(str(amount)) * 10,
            commission_amount=Decimal(str(amount)),
            commission_status=status,
            hold_until=hold_until or (created_at + timedelta(days=30)),
            released_at=created_at if status != CommissionStatus.HELD else None,
            created_at=created_at,
        )
        db.add(conversion)
        db.commit()
        db.refresh(conversion)
        return conversion

    return _make


# =============================================================================
# HTTP
# =============================================================================

@pytest.fixture
def client(db):
    from fastapi.testclient import TestClient

    from app.db import get_db
    from app.main import app

    def _override_get_db():
        yield db

    app.dependency_overrides[get_db] = _override_get_db
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()


@pytest.fixture
def admin_headers(db, password_hash):
    from app.security import create_access_token

    admin = Admin(email="admin@funnel.test", hashed_password=password_hash, is_active=True, is_superadmin=True)
    db.add(admin)
    db.commit()
    token = create_access_token({"sub": f"admin:{admin.id}"})
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def agent_headers():
    from app.security import create_access_token

    def _headers(agent):
        token = create_access_token({"sub": f"agent:{agent.id}"})
        return {"Authorization": f"Bearer {token}"}

    return _headers
