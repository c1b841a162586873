from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from app.db import get_db
from app.passwords import verify_password
from app.security import create_access_token
from models.agents import Agent
from schemas.auth import AgentLoginRequest, TokenResponse

router = APIRouter(prefix="/agent", tags=["Agent Auth"])


@router.post("/login", response_model=TokenResponse)
def agent_login(payload: AgentLoginRequest, db: Session = Depends(get_db)):
    agent = (
        db.query(Agent)
        .filter(
            Agent.email == payload.email,
            Agent.is_active == True,  # noqa: E712
        )
        .first()
    )

    if not agent or not verify_password(payload.password, agent.hashed_password):
        raise HTTPException(status_code=401, detail="Invalid agent credentials.")

    # an agent can log in only once approved
    if not agent.is_approved:
        raise HTTPException(status_code=403, detail="Agent account pending approval.")

    access_token = create_access_token({"sub": f"agent:{agent.id}"})

    return TokenResponse(access_token=access_token)
