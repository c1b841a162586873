# app/repositories.py
"""
One repository per entity, each wrapping the request/job Session.

Status transitions and counters are only reachable through conditional
UPDATE statements: they return True when the row actually moved, so a
concurrent actor that lost the race sees False instead of overwriting state.
Repositories never commit; the caller (service / unit of work) does.
"""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import List, Optional

from sqlalchemy import Float, and_, case, cast, func, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, selectinload

from models.agents import Agent
from models.appointments import Appointment, AppointmentStatus, CallOutcome
from models.audit_logs import AgentAuditLog
from models.clicks import PartnerClick
from models.conversions import Conversion, CommissionStatus, ConversionType
from models.leads import Lead, LeadAnswer, LeadStatus, QuizQuestion
from models.partners import Partner
from models.payouts import Payout, PayoutStatus


def _zero_if_none(v) -> Decimal:
    return Decimal(str(v)) if v is not None else Decimal("0")


# ---------------------------------------------------------
# PARTNERS
# ---------------------------------------------------------
class PartnerRepository:
    def __init__(self, db: Session):
        self.db = db

    def get(self, partner_id: int) -> Optional[Partner]:
        return self.db.get(Partner, partner_id)

    def get_for_update(self, partner_id: int) -> Optional[Partner]:
        # Row lock on PostgreSQL; serializes payouts of the same partner
        return self.db.execute(
            select(Partner).where(Partner.id == partner_id).with_for_update()
        ).scalar_one_or_none()

    def get_by_code(self, referral_code: str) -> Optional[Partner]:
        return self.db.execute(
            select(Partner).where(Partner.referral_code == referral_code)
        ).scalar_one_or_none()

    def get_active_by_code(self, referral_code: Optional[str]) -> Optional[Partner]:
        if not referral_code:
            return None
        return self.db.execute(
            select(Partner).where(
                Partner.referral_code == referral_code,
                Partner.is_active.is_(True),
            )
        ).scalar_one_or_none()

    def get_by_custom_link(self, link: str) -> Optional[Partner]:
        return self.db.execute(
            select(Partner).where(Partner.custom_tracking_link == link)
        ).scalar_one_or_none()

    def list(self) -> List[Partner]:
        return list(self.db.execute(select(Partner).order_by(Partner.id.asc())).scalars())

    def record_sale_commission(self, partner_id: int, amount: Decimal) -> bool:
        """
        Lifetime earnings += amount, sales += 1.
        Called only by the conversion recorder when a sale Conversion is created.
        """
        result = self.db.execute(
            update(Partner)
            .where(Partner.id == partner_id)
            .values(
                total_commission=Partner.total_commission + amount,
                total_sales=Partner.total_sales + 1,
            )
        )
        return result.rowcount == 1

    def increment_clicks(self, partner_id: int) -> bool:
        result = self.db.execute(
            update(Partner).where(Partner.id == partner_id).values(total_clicks=Partner.total_clicks + 1)
        )
        return result.rowcount == 1

    def increment_leads(self, partner_id: int) -> bool:
        result = self.db.execute(
            update(Partner).where(Partner.id == partner_id).values(total_leads=Partner.total_leads + 1)
        )
        return result.rowcount == 1

    def increment_bookings(self, partner_id: int) -> bool:
        result = self.db.execute(
            update(Partner).where(Partner.id == partner_id).values(total_bookings=Partner.total_bookings + 1)
        )
        return result.rowcount == 1


# ---------------------------------------------------------
# AGENTS
# ---------------------------------------------------------
class AgentRepository:
    def __init__(self, db: Session):
        self.db = db

    def get(self, agent_id: int) -> Optional[Agent]:
        return self.db.get(Agent, agent_id)

    def get_by_email(self, email: str) -> Optional[Agent]:
        return self.db.execute(select(Agent).where(Agent.email == email)).scalar_one_or_none()

    def eligible_pool(self) -> List[Agent]:
        """Active and approved agents, least loaded first, ties by creation order."""
        return list(
            self.db.execute(
                select(Agent)
                .where(Agent.is_active.is_(True), Agent.is_approved.is_(True))
                .order_by(Agent.total_calls.asc(), Agent.id.asc())
            ).scalars()
        )

    def least_loaded(self) -> Optional[Agent]:
        pool = self.eligible_pool()
        return pool[0] if pool else None

    def increment_calls(self, agent_id: int) -> bool:
        """One more call on the agent's plate (assignment)."""
        result = self.db.execute(
            update(Agent).where(Agent.id == agent_id).values(total_calls=Agent.total_calls + 1)
        )
        return result.rowcount == 1

    def apply_outcome_totals(
        self,
        agent_id: int,
        *,
        calls: int = 0,
        conversions: int = 0,
        revenue: Decimal = Decimal("0"),
    ) -> bool:
        """
        Adjusts lifetime totals by the given deltas, then recomputes
        conversion_rate = total_conversions / total_calls in the same statement order.
        """
        result = self.db.execute(
            update(Agent)
            .where(Agent.id == agent_id)
            .values(
                total_calls=Agent.total_calls + calls,
                total_conversions=Agent.total_conversions + conversions,
                total_revenue=Agent.total_revenue + revenue,
            )
        )
        if result.rowcount != 1:
            return False
        self.db.execute(
            update(Agent)
            .where(Agent.id == agent_id)
            .values(
                conversion_rate=case(
                    (Agent.total_calls > 0, cast(Agent.total_conversions, Float) / Agent.total_calls),
                    else_=0,
                )
            )
        )
        return True


# ---------------------------------------------------------
# LEADS (quiz sessions)
# ---------------------------------------------------------
class LeadRepository:
    def __init__(self, db: Session):
        self.db = db

    def get(self, lead_id: int) -> Optional[Lead]:
        return self.db.execute(
            select(Lead).options(selectinload(Lead.answers)).where(Lead.id == lead_id)
        ).scalar_one_or_none()

    def get_question(self, question_id: int) -> Optional[QuizQuestion]:
        return self.db.get(QuizQuestion, question_id)

    def add(self, lead: Lead) -> Lead:
        self.db.add(lead)
        self.db.flush()
        return lead

    def upsert_answer(
        self,
        lead_id: int,
        question_id: int,
        value: Optional[str],
        dwell_ms: Optional[int] = None,
    ) -> LeadAnswer:
        """
        Create-then-conflict-then-update on (lead_id, question_id).

        Two concurrent submissions may both miss the existence check; the loser
        of the insert hits the unique constraint and falls back to an update,
        so exactly one row remains, holding the latest value.
        """
        existing = self._find_answer(lead_id, question_id)
        if existing is None:
            try:
                with self.db.begin_nested():
                    answer = LeadAnswer(
                        lead_id=lead_id,
                        question_id=question_id,
                        value=value,
                        dwell_ms=dwell_ms,
                    )
                    self.db.add(answer)
                return answer
            except IntegrityError:
                existing = self._find_answer(lead_id, question_id)
                if existing is None:
                    raise

        existing.value = value
        existing.dwell_ms = dwell_ms
        self.db.flush()
        return existing

    def _find_answer(self, lead_id: int, question_id: int) -> Optional[LeadAnswer]:
        return self.db.execute(
            select(LeadAnswer).where(
                LeadAnswer.lead_id == lead_id,
                LeadAnswer.question_id == question_id,
            )
        ).scalar_one_or_none()

    def mark_completed(self, lead_id: int, completed_at: datetime, duration_ms: int) -> bool:
        result = self.db.execute(
            update(Lead)
            .where(Lead.id == lead_id, Lead.status == LeadStatus.IN_PROGRESS)
            .values(status=LeadStatus.COMPLETED, completed_at=completed_at, duration_ms=duration_ms)
        )
        return result.rowcount == 1

    def completed(self, partner_code: Optional[str] = None) -> List[Lead]:
        q = (
            select(Lead)
            .options(selectinload(Lead.answers))
            .where(Lead.status == LeadStatus.COMPLETED)
            .order_by(Lead.completed_at.desc(), Lead.id.desc())
        )
        if partner_code:
            q = q.where(Lead.partner_code == partner_code)
        return list(self.db.execute(q).scalars())

    def completed_with_answer_value(self, normalized_value: str) -> List[Lead]:
        """Completed leads holding an answer equal to the value once trimmed and lower-cased."""
        matching_ids = (
            select(LeadAnswer.lead_id)
            .where(func.lower(func.trim(LeadAnswer.value)) == normalized_value)
        )
        return list(
            self.db.execute(
                select(Lead)
                .options(selectinload(Lead.answers))
                .where(Lead.status == LeadStatus.COMPLETED, Lead.id.in_(matching_ids))
                .order_by(Lead.completed_at.desc(), Lead.id.desc())
            ).scalars()
        )


# ---------------------------------------------------------
# APPOINTMENTS
# ---------------------------------------------------------
ACTIVE_UNASSIGNED_STATUSES = (AppointmentStatus.SCHEDULED, AppointmentStatus.CONFIRMED)


class AppointmentRepository:
    def __init__(self, db: Session):
        self.db = db

    def get(self, appointment_id: int) -> Optional[Appointment]:
        return self.db.get(Appointment, appointment_id)

    def get_owned(self, appointment_id: int, agent_id: int) -> Optional[Appointment]:
        return self.db.execute(
            select(Appointment).where(
                Appointment.id == appointment_id,
                Appointment.agent_id == agent_id,
            )
        ).scalar_one_or_none()

    def get_by_provider_event(self, provider_event_id: str) -> Optional[Appointment]:
        return self.db.execute(
            select(Appointment).where(Appointment.provider_event_id == provider_event_id)
        ).scalar_one_or_none()

    def add(self, appointment: Appointment) -> Appointment:
        self.db.add(appointment)
        self.db.flush()
        return appointment

    def for_agent(self, agent_id: int) -> List[Appointment]:
        return list(
            self.db.execute(
                select(Appointment)
                .where(Appointment.agent_id == agent_id)
                .order_by(Appointment.scheduled_at.desc())
            ).scalars()
        )

    def recent(self, limit: int = 200) -> List[Appointment]:
        return list(
            self.db.execute(
                select(Appointment).order_by(Appointment.created_at.desc()).limit(limit)
            ).scalars()
        )

    def unassigned_active(self) -> List[Appointment]:
        return list(
            self.db.execute(
                select(Appointment)
                .where(
                    Appointment.agent_id.is_(None),
                    Appointment.status.in_(ACTIVE_UNASSIGNED_STATUSES),
                )
                .order_by(Appointment.created_at.asc(), Appointment.id.asc())
            ).scalars()
        )

    def record_outcome(
        self,
        appointment_id: int,
        agent_id: int,
        expected_outcome: Optional[CallOutcome],
        **values,
    ) -> bool:
        """
        Writes the outcome only if the appointment still belongs to the agent
        and still carries the outcome the caller read; a concurrent re-mark
        makes this return False.
        """
        conditions = [Appointment.id == appointment_id, Appointment.agent_id == agent_id]
        if expected_outcome is None:
            conditions.append(Appointment.outcome.is_(None))
        else:
            conditions.append(Appointment.outcome == expected_outcome)

        result = self.db.execute(
            update(Appointment)
            .where(and_(*conditions))
            .values(status=AppointmentStatus.COMPLETED, **values)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount == 1

    def set_status(
        self,
        appointment_id: int,
        status: AppointmentStatus,
        *,
        final: tuple = (AppointmentStatus.COMPLETED,),
        **values,
    ) -> bool:
        """Webhook-driven status change; appointments already in a `final` status are left alone."""
        result = self.db.execute(
            update(Appointment)
            .where(
                Appointment.id == appointment_id,
                Appointment.status.not_in(final),
            )
            .values(status=status, **values)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount == 1

    def assign_if_unassigned(self, appointment_id: int, agent_id: int) -> bool:
        """
        Optimistic assignment: only wins while agent_id is still null.
        scheduled -> confirmed; any other active status is kept.
        """
        result = self.db.execute(
            update(Appointment)
            .where(
                Appointment.id == appointment_id,
                Appointment.agent_id.is_(None),
                Appointment.status.in_(ACTIVE_UNASSIGNED_STATUSES),
            )
            .values(agent_id=agent_id)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            return False

        self.db.execute(
            update(Appointment)
            .where(
                Appointment.id == appointment_id,
                Appointment.status == AppointmentStatus.SCHEDULED,
            )
            .values(status=AppointmentStatus.CONFIRMED)
            .execution_options(synchronize_session=False)
        )
        return True


# ---------------------------------------------------------
# CONVERSIONS
# ---------------------------------------------------------
class ConversionRepository:
    def __init__(self, db: Session):
        self.db = db

    def get(self, conversion_id: int) -> Optional[Conversion]:
        return self.db.get(Conversion, conversion_id)

    def add(self, conversion: Conversion) -> Conversion:
        self.db.add(conversion)
        self.db.flush()
        return conversion

    def for_appointment(
        self, appointment_id: int, conversion_type: ConversionType = ConversionType.SALE
    ) -> Optional[Conversion]:
        return self.db.execute(
            select(Conversion).where(
                Conversion.appointment_id == appointment_id,
                Conversion.conversion_type == conversion_type,
            )
        ).scalar_one_or_none()

    def for_partner(self, partner_id: int) -> List[Conversion]:
        return list(
            self.db.execute(
                select(Conversion)
                .where(Conversion.partner_id == partner_id)
                .order_by(Conversion.created_at.desc(), Conversion.id.desc())
            ).scalars()
        )

    def due_for_release(self, now: datetime) -> List[Conversion]:
        return list(
            self.db.execute(
                select(Conversion)
                .where(
                    Conversion.commission_status == CommissionStatus.HELD,
                    Conversion.commission_amount > 0,
                    Conversion.hold_until <= now,
                )
                .order_by(Conversion.created_at.asc(), Conversion.id.asc())
            ).scalars()
        )

    def available_fifo(self, partner_id: int) -> List[Conversion]:
        return list(
            self.db.execute(
                select(Conversion)
                .where(
                    Conversion.partner_id == partner_id,
                    Conversion.commission_status == CommissionStatus.AVAILABLE,
                    Conversion.commission_amount > 0,
                )
                .order_by(Conversion.created_at.asc(), Conversion.id.asc())
            ).scalars()
        )

    def release(self, conversion_id: int, now: datetime, *, ignore_hold: bool = False) -> bool:
        """held -> available, keyed on the current status (and hold_until unless forced)."""
        conditions = [
            Conversion.id == conversion_id,
            Conversion.commission_status == CommissionStatus.HELD,
            Conversion.commission_amount > 0,
        ]
        if not ignore_hold:
            conditions.append(Conversion.hold_until <= now)
        result = self.db.execute(
            update(Conversion)
            .where(and_(*conditions))
            .values(commission_status=CommissionStatus.AVAILABLE, released_at=now)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount == 1

    def mark_paid(self, conversion_id: int, payout_id: int, now: datetime) -> bool:
        """available -> paid, keyed on the current status."""
        result = self.db.execute(
            update(Conversion)
            .where(
                Conversion.id == conversion_id,
                Conversion.commission_status == CommissionStatus.AVAILABLE,
            )
            .values(commission_status=CommissionStatus.PAID, paid_at=now, payout_id=payout_id)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount == 1

    def sum_amount(self, partner_id: Optional[int], *statuses: CommissionStatus) -> Decimal:
        q = select(func.coalesce(func.sum(Conversion.commission_amount), 0)).where(
            Conversion.commission_status.in_(statuses),
            Conversion.commission_amount > 0,
        )
        if partner_id is not None:
            q = q.where(Conversion.partner_id == partner_id)
        return _zero_if_none(self.db.execute(q).scalar())

    def count(self, *statuses: CommissionStatus, due_before: Optional[datetime] = None) -> int:
        q = select(func.count(Conversion.id)).where(
            Conversion.commission_status.in_(statuses),
            Conversion.commission_amount > 0,
        )
        if due_before is not None:
            q = q.where(Conversion.hold_until <= due_before)
        return int(self.db.execute(q).scalar() or 0)


# ---------------------------------------------------------
# PAYOUTS
# ---------------------------------------------------------
class PayoutRepository:
    def __init__(self, db: Session):
        self.db = db

    def add(self, payout: Payout) -> Payout:
        self.db.add(payout)
        self.db.flush()
        return payout

    def for_partner(self, partner_id: int) -> List[Payout]:
        return list(
            self.db.execute(
                select(Payout)
                .where(Payout.partner_id == partner_id)
                .order_by(Payout.created_at.desc(), Payout.id.desc())
            ).scalars()
        )

    def sum_amount(self, partner_id: int, status: PayoutStatus) -> Decimal:
        return _zero_if_none(
            self.db.execute(
                select(func.coalesce(func.sum(Payout.amount_due), 0)).where(
                    Payout.partner_id == partner_id,
                    Payout.status == status,
                )
            ).scalar()
        )


# ---------------------------------------------------------
# CLICKS
# ---------------------------------------------------------
class ClickRepository:
    def __init__(self, db: Session):
        self.db = db

    def recent_from_browser(self, partner_id: int, user_agent: str, since: datetime) -> Optional[PartnerClick]:
        return self.db.execute(
            select(PartnerClick)
            .where(
                PartnerClick.partner_id == partner_id,
                PartnerClick.user_agent == user_agent,
                PartnerClick.created_at >= since,
            )
            .order_by(PartnerClick.created_at.desc())
            .limit(1)
        ).scalar_one_or_none()

    def add(self, click: PartnerClick) -> PartnerClick:
        self.db.add(click)
        self.db.flush()
        return click

    def count_for_partner(self, partner_id: int) -> int:
        return int(
            self.db.execute(
                select(func.count(PartnerClick.id)).where(PartnerClick.partner_id == partner_id)
            ).scalar()
            or 0
        )


# ---------------------------------------------------------
# AUDIT LOG
# ---------------------------------------------------------
class AuditLogRepository:
    def __init__(self, db: Session):
        self.db = db

    def append(self, entry: AgentAuditLog) -> AgentAuditLog:
        self.db.add(entry)
        self.db.flush()
        return entry

    def for_appointment(self, appointment_id: int) -> List[AgentAuditLog]:
        return list(
            self.db.execute(
                select(AgentAuditLog)
                .where(AgentAuditLog.appointment_id == appointment_id)
                .order_by(AgentAuditLog.created_at.asc(), AgentAuditLog.id.asc())
            ).scalars()
        )
