# app/assignment_service.py
"""
Closer assignment: least-loaded round-robin over active & approved agents.

Each assignment is one transaction: a conditional write on the appointment
(only while agent_id is still null) followed by total_calls += 1 on the
chosen agent. A lost race leaves both untouched.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import List, Optional

from sqlalchemy.orm import Session

from app.errors import AgentNotFound, AppointmentNotFound, InvalidTransition
from app.repositories import AgentRepository, AppointmentRepository, ACTIVE_UNASSIGNED_STATUSES
from models.agents import Agent

logger = logging.getLogger(__name__)


@dataclass
class AssignmentResult:
    appointment_id: int
    assigned: bool
    agent_id: Optional[int] = None
    reason: Optional[str] = None  # "no_eligible_agent" | "already_assigned"

    def to_dict(self) -> dict:
        return {
            "appointment_id": self.appointment_id,
            "assigned": self.assigned,
            "agent_id": self.agent_id,
            "reason": self.reason,
        }


@dataclass
class ReconcileReport:
    scanned: int = 0
    assigned: int = 0
    skipped: int = 0
    results: List[AssignmentResult] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "scanned": self.scanned,
            "assigned": self.assigned,
            "skipped": self.skipped,
            "results": [r.to_dict() for r in self.results],
        }


class CloserAssignmentScheduler:
    def __init__(self, db: Session):
        self.db = db
        self.agents = AgentRepository(db)
        self.appointments = AppointmentRepository(db)

    def _write_assignment(self, appointment_id: int, agent: Agent) -> AssignmentResult:
        if not self.appointments.assign_if_unassigned(appointment_id, agent.id):
            self.db.rollback()
            return AssignmentResult(appointment_id, False, reason="already_assigned")

        self.agents.increment_calls(agent.id)
        self.db.commit()

        logger.info("Appointment %s assigned to agent %s", appointment_id, agent.id)
        return AssignmentResult(appointment_id, True, agent_id=agent.id)

    def assign(self, appointment_id: int) -> AssignmentResult:
        """
        Assigns one appointment to the agent with the fewest total_calls.
        With no eligible agent the appointment stays unassigned; the
        reconciliation pass picks it up later.
        """
        appointment = self.appointments.get(appointment_id)
        if appointment is None:
            raise AppointmentNotFound("Appointment not found.", {"appointment_id": appointment_id})

        if appointment.agent_id is not None:
            return AssignmentResult(appointment_id, False, agent_id=appointment.agent_id, reason="already_assigned")

        agent = self.agents.least_loaded()
        if agent is None:
            logger.warning("No eligible agent for appointment %s, left unassigned", appointment_id)
            return AssignmentResult(appointment_id, False, reason="no_eligible_agent")

        return self._write_assignment(appointment_id, agent)

    def assign_to(self, appointment_id: int, agent_id: int) -> AssignmentResult:
        """Manual assignment to a chosen agent, same optimistic write."""
        appointment = self.appointments.get(appointment_id)
        if appointment is None:
            raise AppointmentNotFound("Appointment not found.", {"appointment_id": appointment_id})

        agent = self.agents.get(agent_id)
        if agent is None or not (agent.is_active and agent.is_approved):
            raise AgentNotFound("Agent not found or not eligible.", {"agent_id": agent_id})

        if appointment.agent_id is not None:
            raise InvalidTransition(
                "Appointment already assigned.",
                {"appointment_id": appointment_id, "agent_id": appointment.agent_id},
            )
        if appointment.status not in ACTIVE_UNASSIGNED_STATUSES:
            raise InvalidTransition(
                "Appointment is not open for assignment.",
                {"appointment_id": appointment_id, "status": appointment.status.value},
            )

        result = self._write_assignment(appointment_id, agent)
        if not result.assigned:
            raise InvalidTransition("Appointment already assigned.", {"appointment_id": appointment_id})
        return result

    def reconcile_unassigned(self) -> ReconcileReport:
        """
        Re-scans unassigned scheduled/confirmed appointments in creation order.
        Agents are re-read for every appointment so each pick sees the
        previous increment. Already-assigned appointments are never touched.
        """
        report = ReconcileReport()
        pending = [a.id for a in self.appointments.unassigned_active()]
        report.scanned = len(pending)

        for appointment_id in pending:
            agent = self.agents.least_loaded()
            if agent is None:
                logger.warning("Reconcile: no eligible agent, %s appointments left unassigned",
                               report.scanned - report.assigned)
                result = AssignmentResult(appointment_id, False, reason="no_eligible_agent")
            else:
                result = self._write_assignment(appointment_id, agent)

            report.results.append(result)
            if result.assigned:
                report.assigned += 1
            else:
                report.skipped += 1

        logger.info("Reconcile unassigned: scanned=%s assigned=%s skipped=%s",
                    report.scanned, report.assigned, report.skipped)
        return report
