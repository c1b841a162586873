# app/errors.py
"""
Domain errors raised by the services.

Routers do not translate these one by one: app.main registers a single
handler that turns any FunnelError into a JSON response with `status_code`.
"""

from typing import Any, Dict, Optional


class FunnelError(Exception):
    status_code = 400
    code = "error"

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        self.message = message
        self.details = details or {}
        super().__init__(self.message)


# ---------------------------------------------
# NotFound
# ---------------------------------------------
class NotFound(FunnelError):
    status_code = 404
    code = "not_found"


class AppointmentNotFound(NotFound):
    code = "appointment_not_found"


class PartnerNotFound(NotFound):
    code = "partner_not_found"


class AgentNotFound(NotFound):
    code = "agent_not_found"


class LeadNotFound(NotFound):
    code = "lead_not_found"


class ConversionNotFound(NotFound):
    code = "conversion_not_found"


# ---------------------------------------------
# Caller / input
# ---------------------------------------------
class Unauthorized(FunnelError):
    status_code = 403
    code = "unauthorized"


class InvalidInput(FunnelError):
    status_code = 400
    code = "invalid_input"


class InvalidAmount(InvalidInput):
    code = "invalid_amount"


class UnsupportedOutcome(InvalidInput):
    code = "unsupported_outcome"


# ---------------------------------------------
# Ledger
# ---------------------------------------------
class InsufficientBalance(FunnelError):
    status_code = 400
    code = "insufficient_balance"


class BelowMinimum(FunnelError):
    status_code = 400
    code = "below_minimum"


class InvalidTransition(FunnelError):
    status_code = 409
    code = "invalid_transition"


class IntegrityAnomaly(FunnelError):
    status_code = 409
    code = "integrity_anomaly"


# ---------------------------------------------
# Tracking
# ---------------------------------------------
class PartnerLinkGone(FunnelError):
    """Referral code superseded by the partner's custom tracking link."""

    status_code = 410
    code = "partner_link_gone"
