# routers/tracking.py

from typing import Optional

from fastapi import APIRouter, Depends, Request, status
from sqlalchemy.orm import Session

from app.booking_service import BookingDetails, BookingService
from app.click_service import ClickDeduplicator
from app.db import get_db
from schemas.partners import ClickTrackRequest
from schemas.scheduling_webhook import BookingTrackRequest

router = APIRouter(prefix="/track", tags=["Tracking"])


def client_ip(request: Request) -> Optional[str]:
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        return forwarded.split(",")[0].strip()
    return request.client.host if request.client else None


# ---------------------------------------------------------
# 1. CLICK (referral code or custom tracking link)
#    410 when the referral code was replaced by a custom link
# ---------------------------------------------------------
@router.post("/click")
def track_click(
    payload: ClickTrackRequest,
    request: Request,
    db: Session = Depends(get_db),
):
    result = ClickDeduplicator(db).track(
        payload.code,
        user_agent=request.headers.get("user-agent"),
        ip_address=client_ip(request),
        utm_source=payload.utm_source,
        utm_medium=payload.utm_medium,
        utm_campaign=payload.utm_campaign,
    )
    return {"ok": True, **result.to_dict()}


# ---------------------------------------------------------
# 2. MANUAL BOOKING (outside the scheduling provider)
# ---------------------------------------------------------
@router.post("/booking", status_code=status.HTTP_201_CREATED)
def track_booking(
    payload: BookingTrackRequest,
    db: Session = Depends(get_db),
):
    appointment = BookingService(db).create_booking(
        BookingDetails(
            customer_name=payload.customer_name,
            customer_email=payload.customer_email,
            customer_phone=payload.customer_phone,
            scheduled_at=payload.scheduled_at,
            duration_minutes=payload.duration_minutes,
            partner_code=payload.partner_code,
            utm_source=payload.utm_source,
            utm_medium=payload.utm_medium,
            utm_campaign=payload.utm_campaign,
        )
    )
    return {
        "ok": True,
        "appointment_id": appointment.id,
        "agent_id": appointment.agent_id,
        "status": appointment.status.value,
    }
