from contextlib import asynccontextmanager
import logging
import os

from fastapi import FastAPI, Request, Response
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from dotenv import load_dotenv

# ----------------------------------------------------
# LOAD .ENV (before anything reads settings)
# ----------------------------------------------------
load_dotenv(override=True)

from app.config import settings
from app.db import engine
from app.errors import FunnelError
from app.jobs import shutdown_scheduler, start_scheduler
from models import Base

# Routers
from routers import auth_admin, auth_agent, auth_partner
from routers import tracking, quiz, scheduling_webhook
from routers import agent_appointments, partner_portal
from routers import admin_partners, admin_agents, admin_appointments
from routers import admin_commissions, payouts_admin
from routers import admin_attribution, admin_leads, admin_settings

logging.basicConfig(
    level=getattr(logging, settings.log_level.upper(), logging.INFO),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


# ----------------------------------------------------
# LIFESPAN: background jobs
# ----------------------------------------------------
@asynccontextmanager
async def lifespan(app: FastAPI):
    if settings.scheduler_enabled:
        start_scheduler()
    else:
        logger.info("Scheduler disabled (SCHEDULER_ENABLED=0)")
    yield
    shutdown_scheduler()


# ----------------------------------------------------
# FASTAPI APP
# ----------------------------------------------------
app = FastAPI(
    title="Funnel Attribution Backend",
    version="1.0.0",
    lifespan=lifespan,
)

# ----------------------------------------------------
# CORS CONFIG
# ----------------------------------------------------
def split_origins(raw: str) -> list[str]:
    return [o.strip() for o in (raw or "").split(",") if o.strip()]


origins = split_origins(settings.cors_origins)

app.add_middleware(
    CORSMiddleware,
    allow_origins=origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.options("/{path:path}")
async def options_handler(path: str, request: Request):
    return Response(status_code=204)


# ----------------------------------------------------
# DOMAIN ERRORS -> JSON
# ----------------------------------------------------
@app.exception_handler(FunnelError)
async def funnel_error_handler(request: Request, exc: FunnelError):
    if exc.status_code >= 409:
        logger.warning("%s on %s %s: %s", exc.code, request.method, request.url.path, exc.message)
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": exc.message, "error": exc.code, "details": exc.details},
    )


# ----------------------------------------------------
# DB INIT (dev only)
# ----------------------------------------------------
if os.getenv("ENV", "dev") == "dev" and os.getenv("DB_AUTO_CREATE") == "1":
    Base.metadata.create_all(bind=engine)

# ----------------------------------------------------
# ROUTERS
# ----------------------------------------------------
app.include_router(auth_admin.router)
app.include_router(auth_agent.router)
app.include_router(auth_partner.router)

app.include_router(tracking.router)
app.include_router(quiz.router)
app.include_router(scheduling_webhook.router)

app.include_router(agent_appointments.router)
app.include_router(partner_portal.router)

app.include_router(admin_partners.router)
app.include_router(admin_agents.router)
app.include_router(admin_appointments.router)
app.include_router(admin_commissions.router)
app.include_router(payouts_admin.router)
app.include_router(admin_attribution.router)
app.include_router(admin_leads.router)
app.include_router(admin_settings.router)


@app.get("/")
def root():
    return {"message": "Funnel attribution backend up."}


@app.get("/health")
def health():
    return {"ok": True}
