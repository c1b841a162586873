# routers/admin_settings.py

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from app import settings_store
from app.db import get_db
from app.deps import get_current_admin
from app.errors import InvalidInput
from schemas.admin import SettingsUpdate

router = APIRouter(
    prefix="/admin/settings",
    tags=["Admin Settings"],
)


@router.get("/")
def get_settings(
    db: Session = Depends(get_db),
    admin=Depends(get_current_admin),
):
    return settings_store.all_settings(db)


@router.put("/")
def update_settings(
    payload: SettingsUpdate,
    db: Session = Depends(get_db),
    admin=Depends(get_current_admin),
):
    if payload.commission_hold_days is not None:
        if payload.commission_hold_days < 0:
            raise InvalidInput("commission_hold_days must be >= 0.")
        settings_store.put_setting(db, settings_store.COMMISSION_HOLD_DAYS, str(payload.commission_hold_days))

    if payload.minimum_payout is not None:
        if payload.minimum_payout < 0:
            raise InvalidInput("minimum_payout must be >= 0.")
        settings_store.put_setting(db, settings_store.MINIMUM_PAYOUT, str(payload.minimum_payout))

    db.commit()
    return settings_store.all_settings(db)
