# schemas/admin.py

from pydantic import BaseModel, EmailStr


class AdminLogin(BaseModel):
    email: EmailStr
    password: str


class AdminOut(BaseModel):
    id: int
    email: EmailStr
    is_active: bool
    is_superadmin: bool

    class Config:
        from_attributes = True


class SettingsUpdate(BaseModel):
    """Both optional: only the given keys are written."""

    commission_hold_days: int | None = None
    minimum_payout: float | None = None
