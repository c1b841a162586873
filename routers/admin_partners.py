# routers/admin_partners.py

from typing import List, Optional
import logging

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.orm import Session

from app.db import get_db
from app.deps import get_current_admin
from app.errors import PartnerNotFound
from schemas.partners import PartnerCreate, PartnerOut, PartnerUpdate, TrackingLinkUpdate
from models.partners import Partner

router = APIRouter(
    prefix="/admin/partners",
    tags=["Admin Partners"],
)

logger = logging.getLogger(__name__)


def parse_bool(val: str | None) -> Optional[bool]:
    """
    Lenient querystring bool: true/false, 1/0, yes/no, y/n, on/off.
    None, empty or unknown -> None (no filter).
    """
    if val is None:
        return None
    s = str(val).strip().lower()
    if s == "":
        return None
    if s in ("true", "1", "yes", "y", "on"):
        return True
    if s in ("false", "0", "no", "n", "off"):
        return False
    return None


def _get_partner(db: Session, partner_id: int) -> Partner:
    partner = db.query(Partner).filter(Partner.id == partner_id).first()
    if not partner:
        raise PartnerNotFound("Partner not found.", {"partner_id": partner_id})
    return partner


# ---------------------------------------------------------
# 1. LIST (?active=true/false)
# ---------------------------------------------------------
@router.get("/", response_model=List[PartnerOut])
def admin_list_partners(
    active: Optional[str] = Query(
        default=None,
        description="Filter is_active: true/false (also 1/0, yes/no, on/off)",
    ),
    db: Session = Depends(get_db),
    admin=Depends(get_current_admin),
):
    q = db.query(Partner).order_by(Partner.created_at.desc())

    active_bool = parse_bool(active)
    if active_bool is True:
        q = q.filter(Partner.is_active.is_(True))
    elif active_bool is False:
        q = q.filter(Partner.is_active.is_(False))

    return q.all()


# ---------------------------------------------------------
# 2. DETAIL
# ---------------------------------------------------------
@router.get("/{partner_id}", response_model=PartnerOut)
def admin_get_partner_detail(
    partner_id: int,
    db: Session = Depends(get_db),
    admin=Depends(get_current_admin),
):
    return _get_partner(db, partner_id)


# ---------------------------------------------------------
# 3. CREATE
# ---------------------------------------------------------
@router.post("/", response_model=PartnerOut, status_code=status.HTTP_201_CREATED)
def admin_create_partner(
    payload: PartnerCreate,
    db: Session = Depends(get_db),
    admin=Depends(get_current_admin),
):
    if db.query(Partner).filter(Partner.email == payload.email).first():
        raise HTTPException(status_code=400, detail="Email already registered as partner.")

    referral_code = payload.referral_code.strip()
    if db.query(Partner).filter(Partner.referral_code == referral_code).first():
        raise HTTPException(status_code=400, detail="Referral code already in use.")

    partner = Partner(
        name=payload.name,
        email=payload.email,
        referral_code=referral_code,
        commission_rate=payload.commission_rate,
        is_active=True,
        is_approved=payload.is_approved,
    )
    db.add(partner)
    db.commit()
    db.refresh(partner)

    logger.info("Partner %s created (code=%s)", partner.id, partner.referral_code)
    return partner


# ---------------------------------------------------------
# 4. UPDATE (rate, flags)
#    lifetime totals are never editable here
# ---------------------------------------------------------
@router.patch("/{partner_id}", response_model=PartnerOut)
def admin_update_partner(
    partner_id: int,
    payload: PartnerUpdate,
    db: Session = Depends(get_db),
    admin=Depends(get_current_admin),
):
    partner = _get_partner(db, partner_id)
    for field, value in payload.model_dump(exclude_unset=True).items():
        if value is not None:
            setattr(partner, field, value)
    db.commit()
    db.refresh(partner)
    return partner


# ---------------------------------------------------------
# 5. CUSTOM TRACKING LINK
#    once set, the old referral code answers 410 on click tracking
# ---------------------------------------------------------
@router.put("/{partner_id}/tracking-link", response_model=PartnerOut)
def admin_set_tracking_link(
    partner_id: int,
    payload: TrackingLinkUpdate,
    db: Session = Depends(get_db),
    admin=Depends(get_current_admin),
):
    partner = _get_partner(db, partner_id)
    link = payload.custom_tracking_link.strip().strip("/")

    clash = (
        db.query(Partner)
        .filter(
            Partner.id != partner_id,
            (Partner.custom_tracking_link == link) | (Partner.referral_code == link),
        )
        .first()
    )
    if clash:
        raise HTTPException(status_code=409, detail="Tracking link already in use.")

    partner.custom_tracking_link = link
    db.commit()
    db.refresh(partner)

    logger.info("Partner %s tracking link set to %s, referral code %s superseded",
                partner.id, link, partner.referral_code)
    return partner
