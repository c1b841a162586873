# routers/agent_appointments.py

from typing import List

from fastapi import APIRouter, Depends, Request
from sqlalchemy.orm import Session

from app.conversion_service import ConversionRecorder
from app.db import get_db
from app.deps import get_current_agent
from app.repositories import AppointmentRepository, AuditLogRepository
from app.errors import AppointmentNotFound
from models.agents import Agent
from routers.tracking import client_ip
from schemas.appointments import AppointmentOut, OutcomeRequest

router = APIRouter(prefix="/agent/appointments", tags=["Agent Appointments"])


# ---------------------------------------------------------
# 1. MY APPOINTMENTS
# ---------------------------------------------------------
@router.get("/", response_model=List[AppointmentOut])
def my_appointments(
    db: Session = Depends(get_db),
    agent: Agent = Depends(get_current_agent),
):
    return AppointmentRepository(db).for_agent(agent.id)


# ---------------------------------------------------------
# 2. MARK OUTCOME
#    only the agent owning the appointment
# ---------------------------------------------------------
@router.put("/{appointment_id}/outcome")
def mark_outcome(
    appointment_id: int,
    payload: OutcomeRequest,
    request: Request,
    db: Session = Depends(get_db),
    agent: Agent = Depends(get_current_agent),
):
    result = ConversionRecorder(db).record_outcome(
        agent,
        appointment_id,
        payload.outcome,
        sale_value=payload.sale_value,
        notes=payload.notes,
        recording_link=payload.recording_link,
        ip_address=client_ip(request),
        user_agent=request.headers.get("user-agent"),
    )
    return {"ok": True, **result.to_dict()}


# ---------------------------------------------------------
# 3. ACTIVITY TIMELINE (audit log)
# ---------------------------------------------------------
@router.get("/{appointment_id}/activities")
def appointment_activities(
    appointment_id: int,
    db: Session = Depends(get_db),
    agent: Agent = Depends(get_current_agent),
):
    if AppointmentRepository(db).get_owned(appointment_id, agent.id) is None:
        raise AppointmentNotFound("Appointment not found.", {"appointment_id": appointment_id})

    return [
        {
            "id": entry.id,
            "action": entry.action,
            "details": entry.details,
            "created_at": entry.created_at.isoformat() if entry.created_at else None,
        }
        for entry in AuditLogRepository(db).for_appointment(appointment_id)
    ]
