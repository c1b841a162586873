# routers/admin_attribution.py

from dataclasses import asdict

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from app.attribution import attribution_diagnostics
from app.db import get_db
from app.deps import get_current_admin

router = APIRouter(
    prefix="/admin/attribution",
    tags=["Admin Attribution"],
)


@router.get("/diagnostics")
def diagnostics(
    limit: int = Query(default=200, ge=1, le=1000),
    db: Session = Depends(get_db),
    admin=Depends(get_current_admin),
):
    """
    Read-only. Fuzzy candidates are listed for manual confirmation only;
    nothing here changes attribution.
    """
    rows = [asdict(d) for d in attribution_diagnostics(db, limit)]
    return {
        "appointments": rows,
        "anomalies": [r["anomaly"] for r in rows if r["anomaly"]],
        "with_fuzzy_candidates": sum(1 for r in rows if r["fuzzy_candidates"]),
    }
