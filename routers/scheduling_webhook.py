# routers/scheduling_webhook.py

import logging

from fastapi import APIRouter, Depends, Request
from sqlalchemy.orm import Session

from app.db import get_db
from app.scheduling_webhook import handle_webhook

router = APIRouter(prefix="/webhooks", tags=["Webhooks"])

logger = logging.getLogger(__name__)


@router.post("/scheduling")
async def scheduling_webhook(request: Request, db: Session = Depends(get_db)):
    """
    Scheduling provider events: invitee.created / invitee.canceled / invitee.rescheduled.
    Always answers ok: a failure is logged, never bounced back to the provider.
    """
    try:
        body = await request.json()
    except Exception:
        logger.warning("Scheduling webhook with unreadable body ignored")
        return {"ok": True, "ignored": True}

    return handle_webhook(db, body)
