# routers/admin_appointments.py

from typing import List, Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy import select
from sqlalchemy.orm import Session

from app.assignment_service import CloserAssignmentScheduler
from app.db import get_db
from app.deps import get_current_admin
from models.appointments import Appointment, AppointmentStatus
from schemas.appointments import AppointmentOut, ManualAssignRequest

router = APIRouter(
    prefix="/admin/appointments",
    tags=["Admin Appointments"],
)


@router.get("/", response_model=List[AppointmentOut])
def list_appointments(
    status_filter: Optional[AppointmentStatus] = Query(default=None, alias="status"),
    unassigned: bool = Query(default=False),
    db: Session = Depends(get_db),
    admin=Depends(get_current_admin),
):
    q = select(Appointment).order_by(Appointment.scheduled_at.desc())
    if status_filter is not None:
        q = q.where(Appointment.status == status_filter)
    if unassigned:
        q = q.where(Appointment.agent_id.is_(None))
    return list(db.execute(q).scalars())


@router.post("/{appointment_id}/assign")
def assign_appointment(
    appointment_id: int,
    payload: ManualAssignRequest,
    db: Session = Depends(get_db),
    admin=Depends(get_current_admin),
):
    result = CloserAssignmentScheduler(db).assign_to(appointment_id, payload.agent_id)
    return {"ok": True, **result.to_dict()}


@router.post("/reconcile")
def reconcile_unassigned(
    db: Session = Depends(get_db),
    admin=Depends(get_current_admin),
):
    return CloserAssignmentScheduler(db).reconcile_unassigned().to_dict()
