# routers/admin_commissions.py

from typing import List, Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy import select
from sqlalchemy.orm import Session

from app.db import get_db
from app.deps import get_current_admin
from app.ledger_service import CommissionLedger
from models.conversions import CommissionStatus, Conversion
from schemas.ledger import ConversionOut

router = APIRouter(
    prefix="/admin/commissions",
    tags=["Admin Commissions"],
)


# ---------------------------------------------------------
# 1. STATUS REPORT (held / ready for release / available / paid)
# ---------------------------------------------------------
@router.get("/status")
def commission_status(
    db: Session = Depends(get_db),
    admin=Depends(get_current_admin),
):
    return CommissionLedger(db).status_report()


# ---------------------------------------------------------
# 2. LIST CONVERSIONS
# ---------------------------------------------------------
@router.get("/", response_model=List[ConversionOut])
def list_conversions(
    partner_id: Optional[int] = Query(default=None),
    commission_status: Optional[CommissionStatus] = Query(default=None),
    db: Session = Depends(get_db),
    admin=Depends(get_current_admin),
):
    q = select(Conversion).order_by(Conversion.created_at.desc(), Conversion.id.desc())
    if partner_id is not None:
        q = q.where(Conversion.partner_id == partner_id)
    if commission_status is not None:
        q = q.where(Conversion.commission_status == commission_status)
    return list(db.execute(q).scalars())


# ---------------------------------------------------------
# 3. RELEASE DUE COMMISSIONS (same job the scheduler runs)
# ---------------------------------------------------------
@router.post("/release")
def release_commissions(
    db: Session = Depends(get_db),
    admin=Depends(get_current_admin),
):
    return CommissionLedger(db).release_due()


# ---------------------------------------------------------
# 4. FORCE RELEASE ONE COMMISSION (ignores the hold period)
# ---------------------------------------------------------
@router.post("/{conversion_id}/force-release")
def force_release(
    conversion_id: int,
    db: Session = Depends(get_db),
    admin=Depends(get_current_admin),
):
    CommissionLedger(db).force_release(conversion_id)
    return {"ok": True, "conversion_id": conversion_id}
