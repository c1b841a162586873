# routers/auth_admin.py

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from app.db import get_db
from app.passwords import verify_password
from app.security import create_access_token
from models.admin import Admin
from schemas.admin import AdminLogin, AdminOut

router = APIRouter(prefix="/admin", tags=["Admin Auth"])


# ------------------------------
# POST /admin/login
# ------------------------------
@router.post("/login")
def admin_login(payload: AdminLogin, db: Session = Depends(get_db)):
    admin = (
        db.query(Admin)
        .filter(
            Admin.email == payload.email,
            Admin.is_active == True,  # noqa: E712
        )
        .first()
    )

    if not admin or not verify_password(payload.password, admin.hashed_password):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid admin credentials.",
        )

    # admin subject: "admin:<id>"
    access_token = create_access_token({"sub": f"admin:{admin.id}"})

    return {
        "access_token": access_token,
        "token_type": "bearer",
        "admin": AdminOut.model_validate(admin),
    }
