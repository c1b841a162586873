# app/deps.py
from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer, OAuth2PasswordBearer
from sqlalchemy.orm import Session

from app.db import get_db
from app.security import decode_access_token
from models.admin import Admin
from models.agents import Agent
from models.partners import Partner

# Authorization: Bearer <token>
oauth2_scheme_partner = OAuth2PasswordBearer(tokenUrl="/partner/login")
oauth2_scheme_agent = OAuth2PasswordBearer(tokenUrl="/agent/login")
admin_bearer_scheme = HTTPBearer()


def _subject_id(subject, prefix: str):
    if not isinstance(subject, str) or not subject.startswith(prefix):
        return None
    raw = subject.split(":", 1)[1]
    return int(raw) if raw.isdigit() else None


def get_current_partner(
    db: Session = Depends(get_db),
    token: str = Depends(oauth2_scheme_partner),
) -> Partner:
    """
    Partner tokens carry the bare numeric partner id as 'sub'.
    Invalid, expired or non-numeric subject -> 401.
    """
    partner_id = decode_access_token(token)

    if partner_id is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or expired partner token.",
        )

    # 'agent:1' / 'admin:1' are not partner tokens
    if not str(partner_id).isdigit():
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Token not valid for partner access.",
        )

    partner = (
        db.query(Partner)
        .filter(Partner.id == int(partner_id), Partner.is_active == True)  # noqa: E712
        .first()
    )

    if not partner:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Partner not found or inactive.",
        )

    return partner


def get_current_agent(
    db: Session = Depends(get_db),
    token: str = Depends(oauth2_scheme_agent),
) -> Agent:
    subject = decode_access_token(token)
    if subject is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or expired agent token.",
        )

    agent_id = _subject_id(subject, "agent:")
    if agent_id is None:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Access denied: not an agent token.",
        )

    agent = (
        db.query(Agent)
        .filter(
            Agent.id == agent_id,
            Agent.is_active == True,  # noqa: E712
            Agent.is_approved == True,  # noqa: E712
        )
        .first()
    )
    if not agent:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Agent not found, inactive or not approved.",
        )

    return agent


def get_current_admin(
    credentials: HTTPAuthorizationCredentials = Depends(admin_bearer_scheme),
    db: Session = Depends(get_db),
) -> Admin:
    """Token 'sub' must be 'admin:<id>'."""
    subject = decode_access_token(credentials.credentials)
    if subject is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid admin token.",
        )

    admin_id = _subject_id(subject, "admin:")
    if admin_id is None:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Access denied: not an admin token.",
        )

    admin = db.query(Admin).filter(Admin.id == admin_id, Admin.is_active == True).first()  # noqa: E712
    if not admin:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Admin not found.",
        )

    return admin
