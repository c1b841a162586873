from datetime import datetime

from app import jobs
from models.conversions import Conversion, CommissionStatus


def test_release_job_uses_its_own_session(db, make_partner, make_conversion, monkeypatch):
    partner = make_partner()
    conversion_id = make_conversion(partner, hold_until=datetime(2000, 1, 1)).id
    monkeypatch.setattr(jobs, "SessionLocal", lambda: db)

    report = jobs.release_commissions()

    assert report["released_ids"] == [conversion_id]
    assert db.get(Conversion, conversion_id).commission_status == CommissionStatus.AVAILABLE


def test_reconcile_job(db, make_agent, make_appointment, monkeypatch):
    agent_id = make_agent().id
    appointment_id = make_appointment().id
    monkeypatch.setattr(jobs, "SessionLocal", lambda: db)

    report = jobs.reconcile_unassigned()

    assert report["assigned"] == 1
    assert report["results"][0] == {
        "appointment_id": appointment_id,
        "assigned": True,
        "agent_id": agent_id,
        "reason": None,
    }


def test_job_failure_is_logged_not_raised(db, monkeypatch):
    def boom(self, **kwargs):
        raise RuntimeError("db down")

    monkeypatch.setattr(jobs, "SessionLocal", lambda: db)
    monkeypatch.setattr(jobs.CommissionLedger, "release_due", boom)

    assert jobs.release_commissions() == {}


def test_scheduler_registers_both_jobs(monkeypatch):
    started = []
    monkeypatch.setattr(jobs.scheduler, "start", lambda: started.append(True))

    jobs.start_scheduler()

    assert started == [True]
    assert {j.id for j in jobs.scheduler.get_jobs()} == {"release_commissions", "reconcile_unassigned"}
    for job_id in ("release_commissions", "reconcile_unassigned"):
        jobs.scheduler.remove_job(job_id)
