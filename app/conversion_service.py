# app/conversion_service.py
"""
Conversion recorder: turns a marked call outcome (and, for the funnel, a
completed quiz or a tracked booking) into Conversion rows.

Everything that touches money for one outcome runs in one UnitOfWork:
appointment update, agent totals, sale Conversion, partner lifetime
commission, audit entry. Either all of it is committed or none of it.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from decimal import Decimal, ROUND_HALF_UP, InvalidOperation
from typing import Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app import settings_store
from app.attribution import resolve_partner_code
from app.errors import (
    AgentNotFound,
    AppointmentNotFound,
    InvalidAmount,
    InvalidTransition,
    PartnerNotFound,
    UnsupportedOutcome,
)
from app.repositories import (
    AgentRepository,
    AppointmentRepository,
    AuditLogRepository,
    ConversionRepository,
    PartnerRepository,
)
from app.timeutils import utcnow
from app.unit_of_work import UnitOfWork
from models.agents import Agent
from models.appointments import Appointment, CallOutcome
from models.audit_logs import AgentAuditLog
from models.conversions import Conversion, ConversionType, CommissionStatus
from models.leads import Lead
from models.partners import Partner

logger = logging.getLogger(__name__)

ZERO = Decimal("0")


def money2(v: Decimal) -> Decimal:
    return v.quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)


def calc_commission(sale_value: Decimal, rate) -> Decimal:
    # rate is a fraction (0.10 = 10%)
    return money2(sale_value * Decimal(str(rate or 0)))


def parse_outcome(value) -> CallOutcome:
    if isinstance(value, CallOutcome):
        return value
    try:
        return CallOutcome(str(value).strip().lower())
    except ValueError:
        raise UnsupportedOutcome(f"Unsupported outcome: {value}", {"outcome": value})


def parse_sale_value(value) -> Optional[Decimal]:
    if value is None or value == "":
        return None
    try:
        amount = Decimal(str(value))
    except InvalidOperation:
        raise InvalidAmount("Sale value is not a number.", {"sale_value": value})
    if not amount.is_finite() or amount < 0:
        raise InvalidAmount("Sale value must be a positive amount.", {"sale_value": value})
    return money2(amount)


def hold_until_from(db: Session, now: datetime) -> datetime:
    return now + timedelta(days=settings_store.get_commission_hold_days(db))


@dataclass
class OutcomeResult:
    appointment_id: int
    outcome: CallOutcome
    previous_outcome: Optional[CallOutcome]
    sale_value: Optional[Decimal]
    agent_commission: Optional[Decimal]
    partner_commission: Optional[Decimal] = None
    conversion_id: Optional[int] = None
    partner_code: Optional[str] = None
    attribution_anomaly: Optional[dict] = None

    def to_dict(self) -> dict:
        return {
            "appointment_id": self.appointment_id,
            "outcome": self.outcome.value,
            "previous_outcome": self.previous_outcome.value if self.previous_outcome else None,
            "sale_value": float(self.sale_value) if self.sale_value is not None else None,
            "agent_commission": float(self.agent_commission) if self.agent_commission is not None else None,
            "partner_commission": float(self.partner_commission) if self.partner_commission is not None else None,
            "conversion_id": self.conversion_id,
            "partner_code": self.partner_code,
            "attribution_anomaly": self.attribution_anomaly,
        }


class ConversionRecorder:
    def __init__(self, db: Session):
        self.db = db
        self.agents = AgentRepository(db)
        self.appointments = AppointmentRepository(db)
        self.partners = PartnerRepository(db)
        self.conversions = ConversionRepository(db)
        self.audit = AuditLogRepository(db)

    # ---------------------------------------------------------
    # 1. CALL OUTCOME
    # ---------------------------------------------------------
    def record_outcome(
        self,
        agent: Agent,
        appointment_id: int,
        outcome,
        sale_value=None,
        notes: Optional[str] = None,
        recording_link: Optional[str] = None,
        *,
        now: Optional[datetime] = None,
        ip_address: Optional[str] = None,
        user_agent: Optional[str] = None,
    ) -> OutcomeResult:
        now = now or utcnow()

        # validation first: nothing is written on a rejected request
        new_outcome = parse_outcome(outcome)
        sale = parse_sale_value(sale_value)
        converted = new_outcome == CallOutcome.CONVERTED
        if converted and (sale is None or sale <= ZERO):
            raise InvalidAmount("A converted outcome needs a sale value greater than zero.",
                                {"sale_value": sale_value})

        appointment = self.appointments.get_owned(appointment_id, agent.id)
        if appointment is None:
            raise AppointmentNotFound("Appointment not found.", {"appointment_id": appointment_id})

        previous = appointment.outcome
        previous_sale = Decimal(str(appointment.sale_value)) if appointment.sale_value is not None else None
        was_converted = previous == CallOutcome.CONVERTED

        agent_commission = calc_commission(sale, agent.commission_rate) if converted else None

        result = OutcomeResult(
            appointment_id=appointment.id,
            outcome=new_outcome,
            previous_outcome=previous,
            sale_value=sale,
            agent_commission=agent_commission,
        )

        # partner side: only a first conversion of this appointment earns commission
        partner: Optional[Partner] = None
        if converted and not was_converted and self.conversions.for_appointment(appointment.id) is None:
            attribution = resolve_partner_code(self.db, appointment)
            result.partner_code = attribution.partner_code
            result.attribution_anomaly = attribution.anomaly
            partner = self.partners.get_active_by_code(attribution.partner_code)
            if partner is not None:
                result.partner_commission = calc_commission(sale, partner.commission_rate)
            elif attribution.partner_code:
                logger.warning("Appointment %s: partner code %s has no active partner, no commission",
                               appointment.id, attribution.partner_code)
        elif converted and was_converted:
            logger.info("Appointment %s already converted, commission not recalculated", appointment.id)

        # agent totals follow the change of outcome
        calls_delta = 1 if previous is None else 0
        conversions_delta = int(converted) - int(was_converted)
        revenue_delta = (sale if converted else ZERO) - (previous_sale if was_converted and previous_sale else ZERO)

        hold_until: Optional[datetime] = None
        uow = UnitOfWork(self.db)

        def update_appointment(db):
            ok = self.appointments.record_outcome(
                appointment.id,
                agent.id,
                previous,
                outcome=new_outcome,
                notes=notes or None,
                sale_value=sale,
                agent_commission=agent_commission,
                recording_link=recording_link or None,
                updated_at=now,
            )
            if not ok:
                raise InvalidTransition("Appointment outcome changed concurrently, retry.",
                                        {"appointment_id": appointment.id})

        def update_agent_totals(db):
            ok = self.agents.apply_outcome_totals(
                agent.id,
                calls=calls_delta,
                conversions=conversions_delta,
                revenue=revenue_delta,
            )
            if not ok:
                raise AgentNotFound("Agent totals could not be updated.", {"agent_id": agent.id})

        uow.add("update_appointment", update_appointment)
        uow.add("update_agent_totals", update_agent_totals)

        if partner is not None and result.partner_commission and result.partner_commission > ZERO:
            hold_until = hold_until_from(self.db, now)

            def create_conversion(db):
                conversion = self.conversions.add(
                    Conversion(
                        partner_id=partner.id,
                        referral_code=partner.referral_code,
                        appointment_id=appointment.id,
                        conversion_type=ConversionType.SALE,
                        sale_value=sale,
                        commission_amount=result.partner_commission,
                        commission_status=CommissionStatus.HELD,
                        hold_until=hold_until,
                        created_at=now,
                    )
                )
                result.conversion_id = conversion.id
                return conversion.id

            def increment_partner_commission(db):
                # the only place lifetime earnings grow
                if not self.partners.record_sale_commission(partner.id, result.partner_commission):
                    raise PartnerNotFound("Partner totals could not be updated.", {"partner_id": partner.id})

            uow.add("create_conversion", create_conversion)
            uow.add("increment_partner_commission", increment_partner_commission)

        def append_audit(db):
            self.audit.append(
                AgentAuditLog(
                    agent_id=agent.id,
                    appointment_id=appointment.id,
                    action="outcome_marked",
                    details={
                        "previous_outcome": previous.value if previous else None,
                        "new_outcome": new_outcome.value,
                        "previous_sale_value": float(previous_sale) if previous_sale is not None else None,
                        "sale_value": float(sale) if sale is not None else None,
                        "agent_commission": float(agent_commission) if agent_commission is not None else None,
                        "partner_code": result.partner_code,
                        "partner_commission": float(result.partner_commission)
                        if result.partner_commission is not None else None,
                        "conversion_id": result.conversion_id,
                        "attribution_anomaly": result.attribution_anomaly,
                        "notes": notes,
                        "recording_link": recording_link,
                    },
                    ip_address=ip_address,
                    user_agent=user_agent,
                    created_at=now,
                )
            )

        uow.add("append_audit_log", append_audit)

        try:
            uow.commit()
        except IntegrityError:
            # a concurrent marking already created this appointment's sale conversion
            raise InvalidTransition("Outcome already recorded for this appointment.",
                                    {"appointment_id": appointment.id})

        if result.conversion_id:
            logger.info(
                "Sale conversion %s: appointment=%s partner=%s commission=%s hold_until=%s",
                result.conversion_id, appointment.id, partner.referral_code,
                result.partner_commission, hold_until,
            )
        return result

    # ---------------------------------------------------------
    # 2. QUIZ COMPLETION (lead, zero value)
    # ---------------------------------------------------------
    def record_lead_conversion(self, lead: Lead, partner: Partner, *, now: Optional[datetime] = None) -> Conversion:
        """Zero-commission lead Conversion + partner total_leads += 1. Caller commits."""
        now = now or utcnow()
        conversion = self.conversions.add(
            Conversion(
                partner_id=partner.id,
                referral_code=partner.referral_code,
                lead_id=lead.id,
                conversion_type=ConversionType.LEAD,
                sale_value=ZERO,
                commission_amount=ZERO,
                commission_status=CommissionStatus.HELD,
                hold_until=hold_until_from(self.db, now),
                created_at=now,
            )
        )
        self.partners.increment_leads(partner.id)
        return conversion

    # ---------------------------------------------------------
    # 3. BOOKING (zero value)
    # ---------------------------------------------------------
    def record_booking_conversion(
        self, appointment: Appointment, partner: Partner, *, now: Optional[datetime] = None
    ) -> Optional[Conversion]:
        """Zero-commission booking Conversion + partner total_bookings += 1. Caller commits."""
        now = now or utcnow()
        if self.conversions.for_appointment(appointment.id, ConversionType.BOOKING) is not None:
            return None
        conversion = self.conversions.add(
            Conversion(
                partner_id=partner.id,
                referral_code=partner.referral_code,
                appointment_id=appointment.id,
                conversion_type=ConversionType.BOOKING,
                sale_value=ZERO,
                commission_amount=ZERO,
                commission_status=CommissionStatus.HELD,
                hold_until=hold_until_from(self.db, now),
                created_at=now,
            )
        )
        self.partners.increment_bookings(partner.id)
        return conversion
