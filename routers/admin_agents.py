# routers/admin_agents.py

from typing import List

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from app.db import get_db
from app.deps import get_current_admin
from app.errors import AgentNotFound
from app.passwords import hash_password
from models.agents import Agent
from schemas.agents import AgentCreate, AgentOut

router = APIRouter(
    prefix="/admin/agents",
    tags=["Admin Agents"],
)


def _get_agent(db: Session, agent_id: int) -> Agent:
    agent = db.query(Agent).filter(Agent.id == agent_id).first()
    if not agent:
        raise AgentNotFound("Agent not found.", {"agent_id": agent_id})
    return agent


@router.get("/", response_model=List[AgentOut])
def list_agents(
    db: Session = Depends(get_db),
    admin=Depends(get_current_admin),
):
    return db.query(Agent).order_by(Agent.id.asc()).all()


@router.post("/", response_model=AgentOut, status_code=status.HTTP_201_CREATED)
def create_agent(
    payload: AgentCreate,
    db: Session = Depends(get_db),
    admin=Depends(get_current_admin),
):
    if db.query(Agent).filter(Agent.email == payload.email).first():
        raise HTTPException(status_code=400, detail="Email already registered as agent.")

    agent = Agent(
        name=payload.name,
        email=payload.email,
        hashed_password=hash_password(payload.password),
        commission_rate=payload.commission_rate,
        is_active=True,
        is_approved=payload.is_approved,
    )
    db.add(agent)
    db.commit()
    db.refresh(agent)
    return agent


@router.post("/{agent_id}/approve", response_model=AgentOut)
def approve_agent(
    agent_id: int,
    db: Session = Depends(get_db),
    admin=Depends(get_current_admin),
):
    agent = _get_agent(db, agent_id)
    agent.is_approved = True
    agent.is_active = True
    db.commit()
    db.refresh(agent)
    return agent


@router.post("/{agent_id}/deactivate", response_model=AgentOut)
def deactivate_agent(
    agent_id: int,
    db: Session = Depends(get_db),
    admin=Depends(get_current_admin),
):
    # assigned appointments stay with the agent; new ones skip it
    agent = _get_agent(db, agent_id)
    agent.is_active = False
    db.commit()
    db.refresh(agent)
    return agent
