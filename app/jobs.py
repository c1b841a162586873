# app/jobs.py
"""
Background jobs (APScheduler, in-process).

- release_commissions: held -> available for every commission whose hold is over
- reconcile_unassigned: assigns appointments left without a closer

Both are idempotent, so an overlapping run in another process is harmless.
Each run uses its own session.
"""

import logging

from apscheduler.executors.pool import ThreadPoolExecutor
from apscheduler.jobstores.memory import MemoryJobStore
from apscheduler.schedulers.background import BackgroundScheduler

from app.assignment_service import CloserAssignmentScheduler
from app.config import settings
from app.db import SessionLocal
from app.ledger_service import CommissionLedger

logger = logging.getLogger(__name__)

jobstores = {
    "default": MemoryJobStore(),
}

executors = {
    "default": ThreadPoolExecutor(2),
}

job_defaults = {
    "coalesce": True,  # collapse missed runs into one
    "max_instances": 1,
    "misfire_grace_time": 300,
}

scheduler = BackgroundScheduler(
    jobstores=jobstores,
    executors=executors,
    job_defaults=job_defaults,
    timezone="UTC",
)


def release_commissions() -> dict:
    db = SessionLocal()
    try:
        return CommissionLedger(db).release_due()
    except Exception:
        logger.exception("release_commissions job failed")
        db.rollback()
        return {}
    finally:
        db.close()


def reconcile_unassigned() -> dict:
    db = SessionLocal()
    try:
        return CloserAssignmentScheduler(db).reconcile_unassigned().to_dict()
    except Exception:
        logger.exception("reconcile_unassigned job failed")
        db.rollback()
        return {}
    finally:
        db.close()


def start_scheduler() -> None:
    if scheduler.running:
        return

    scheduler.add_job(
        release_commissions,
        "interval",
        minutes=settings.release_interval_minutes,
        id="release_commissions",
        replace_existing=True,
    )
    scheduler.add_job(
        reconcile_unassigned,
        "interval",
        minutes=settings.reconcile_interval_minutes,
        id="reconcile_unassigned",
        replace_existing=True,
    )
    scheduler.start()
    logger.info(
        "Scheduler started: release every %s min, reconcile every %s min",
        settings.release_interval_minutes, settings.reconcile_interval_minutes,
    )


def shutdown_scheduler() -> None:
    if scheduler.running:
        scheduler.shutdown(wait=False)
        logger.info("Scheduler stopped")
