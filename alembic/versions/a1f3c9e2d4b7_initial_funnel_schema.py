"""initial funnel schema

Revision ID: a1f3c9e2d4b7
Revises:
Create Date: 2026-10-19 09:00:00.000000
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = "a1f3c9e2d4b7"
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


APPOINTMENT_STATUS = sa.Enum(
    "scheduled", "confirmed", "rescheduled", "cancelled", "completed", name="appointment_status"
)
CALL_OUTCOME = sa.Enum(
    "converted", "not_interested", "needs_follow_up", "wrong_number",
    "no_answer", "callback_requested", "rescheduled",
    name="call_outcome",
)
LEAD_STATUS = sa.Enum("in_progress", "completed", name="lead_status")
CONVERSION_TYPE = sa.Enum("lead", "booking", "sale", name="conversion_type")
COMMISSION_STATUS = sa.Enum("held", "available", "paid", name="commission_status")
PAYOUT_STATUS = sa.Enum("pending", "completed", name="payout_status")


def upgrade() -> None:
    op.create_table(
        "partners",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("name", sa.String(150), nullable=False),
        sa.Column("email", sa.String(255), nullable=False, unique=True),
        sa.Column("referral_code", sa.String(100), nullable=False, unique=True),
        sa.Column("custom_tracking_link", sa.String(200), nullable=True, unique=True),
        sa.Column("commission_rate", sa.Numeric(5, 4), nullable=False),
        sa.Column("total_commission", sa.Numeric(12, 2), nullable=False, server_default=sa.text("0")),
        sa.Column("total_clicks", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("total_leads", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("total_bookings", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("total_sales", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("is_active", sa.Boolean(), nullable=False),
        sa.Column("is_approved", sa.Boolean(), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=False),
    )
    op.create_index("ix_partners_id", "partners", ["id"])

    op.create_table(
        "agents",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("name", sa.String(150), nullable=False),
        sa.Column("email", sa.String(255), nullable=False),
        sa.Column("hashed_password", sa.String(), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False),
        sa.Column("is_approved", sa.Boolean(), nullable=False),
        sa.Column("commission_rate", sa.Numeric(5, 4), nullable=False),
        sa.Column("total_calls", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("total_conversions", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("total_revenue", sa.Numeric(12, 2), nullable=False, server_default=sa.text("0")),
        sa.Column("conversion_rate", sa.Numeric(6, 4), nullable=False, server_default=sa.text("0")),
        sa.Column("created_at", sa.DateTime(), nullable=False),
    )
    op.create_index("ix_agents_id", "agents", ["id"])
    op.create_index("ix_agents_email", "agents", ["email"], unique=True)

    op.create_table(
        "admins",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("email", sa.String(), nullable=False),
        sa.Column("hashed_password", sa.String(), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False),
        sa.Column("is_superadmin", sa.Boolean(), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=False),
    )
    op.create_index("ix_admins_id", "admins", ["id"])
    op.create_index("ix_admins_email", "admins", ["email"], unique=True)

    op.create_table(
        "app_settings",
        sa.Column("key", sa.String(100), primary_key=True),
        sa.Column("value", sa.String(255), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
    )

    op.create_table(
        "quiz_questions",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("quiz_type", sa.String(100), nullable=False),
        sa.Column("prompt", sa.String(1000), nullable=False),
        sa.Column("type", sa.String(50), nullable=False),
        sa.Column("order", sa.Integer(), nullable=False),
        sa.Column("active", sa.Boolean(), nullable=False),
    )
    op.create_index("ix_quiz_questions_id", "quiz_questions", ["id"])
    op.create_index("ix_quiz_questions_quiz_type", "quiz_questions", ["quiz_type"])

    op.create_table(
        "leads",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("quiz_type", sa.String(100), nullable=False),
        sa.Column("status", LEAD_STATUS, nullable=False),
        sa.Column("partner_code", sa.String(100), nullable=True),
        sa.Column("started_at", sa.DateTime(), nullable=False),
        sa.Column("completed_at", sa.DateTime(), nullable=True),
        sa.Column("duration_ms", sa.Integer(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
    )
    op.create_index("ix_leads_id", "leads", ["id"])
    op.create_index("ix_leads_quiz_type", "leads", ["quiz_type"])
    op.create_index("ix_leads_status", "leads", ["status"])
    op.create_index("ix_leads_partner_code", "leads", ["partner_code"])

    op.create_table(
        "lead_answers",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("lead_id", sa.Integer(), sa.ForeignKey("leads.id", ondelete="CASCADE"), nullable=False),
        sa.Column("question_id", sa.Integer(), sa.ForeignKey("quiz_questions.id"), nullable=False),
        sa.Column("value", sa.Text(), nullable=True),
        sa.Column("dwell_ms", sa.Integer(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
        sa.UniqueConstraint("lead_id", "question_id", name="uq_lead_answers_lead_question"),
    )
    op.create_index("ix_lead_answers_id", "lead_answers", ["id"])
    op.create_index("ix_lead_answers_lead_id", "lead_answers", ["lead_id"])

    op.create_table(
        "appointments",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("provider_event_id", sa.String(255), nullable=True, unique=True),
        sa.Column("customer_name", sa.String(255), nullable=False),
        sa.Column("customer_email", sa.String(255), nullable=False),
        sa.Column("customer_phone", sa.String(50), nullable=True),
        sa.Column("scheduled_at", sa.DateTime(), nullable=False),
        sa.Column("duration_minutes", sa.Integer(), nullable=True),
        sa.Column("status", APPOINTMENT_STATUS, nullable=False),
        sa.Column("agent_id", sa.Integer(), sa.ForeignKey("agents.id"), nullable=True),
        sa.Column("outcome", CALL_OUTCOME, nullable=True),
        sa.Column("sale_value", sa.Numeric(12, 2), nullable=True),
        sa.Column("agent_commission", sa.Numeric(12, 2), nullable=True),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("recording_link", sa.String(500), nullable=True),
        sa.Column("partner_code", sa.String(100), nullable=True),
        sa.Column("utm_source", sa.String(255), nullable=True),
        sa.Column("utm_medium", sa.String(255), nullable=True),
        sa.Column("utm_campaign", sa.String(255), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
    )
    op.create_index("ix_appointments_id", "appointments", ["id"])
    op.create_index("ix_appointments_customer_email", "appointments", ["customer_email"])
    op.create_index("ix_appointments_status", "appointments", ["status"])
    op.create_index("ix_appointments_agent_id", "appointments", ["agent_id"])
    op.create_index("ix_appointments_partner_code", "appointments", ["partner_code"])

    op.create_table(
        "agent_audit_logs",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("agent_id", sa.Integer(), sa.ForeignKey("agents.id"), nullable=True),
        sa.Column("appointment_id", sa.Integer(), sa.ForeignKey("appointments.id"), nullable=True),
        sa.Column("action", sa.String(100), nullable=False),
        sa.Column("details", sa.JSON(), nullable=False),
        sa.Column("ip_address", sa.String(100), nullable=True),
        sa.Column("user_agent", sa.String(500), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
    )
    op.create_index("ix_agent_audit_logs_id", "agent_audit_logs", ["id"])
    op.create_index("ix_agent_audit_logs_agent_id", "agent_audit_logs", ["agent_id"])
    op.create_index("ix_agent_audit_logs_appointment_id", "agent_audit_logs", ["appointment_id"])

    op.create_table(
        "partner_clicks",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("partner_id", sa.Integer(), sa.ForeignKey("partners.id"), nullable=False),
        sa.Column("referral_code", sa.String(100), nullable=False),
        sa.Column("ip_address", sa.String(100), nullable=True),
        sa.Column("user_agent", sa.String(500), nullable=False),
        sa.Column("utm_source", sa.String(255), nullable=True),
        sa.Column("utm_medium", sa.String(255), nullable=True),
        sa.Column("utm_campaign", sa.String(255), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
    )
    op.create_index("ix_partner_clicks_id", "partner_clicks", ["id"])
    op.create_index(
        "ix_partner_clicks_partner_ua_created", "partner_clicks", ["partner_id", "user_agent", "created_at"]
    )

    op.create_table(
        "payouts",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("partner_id", sa.Integer(), sa.ForeignKey("partners.id"), nullable=False),
        sa.Column("amount_due", sa.Numeric(12, 2), nullable=False),
        sa.Column("status", PAYOUT_STATUS, nullable=False),
        sa.Column("notes", sa.String(500), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
    )
    op.create_index("ix_payouts_id", "payouts", ["id"])
    op.create_index("ix_payouts_partner_id", "payouts", ["partner_id"])

    op.create_table(
        "conversions",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("partner_id", sa.Integer(), sa.ForeignKey("partners.id"), nullable=False),
        sa.Column("referral_code", sa.String(100), nullable=False),
        sa.Column("appointment_id", sa.Integer(), sa.ForeignKey("appointments.id"), nullable=True),
        sa.Column("lead_id", sa.Integer(), sa.ForeignKey("leads.id"), nullable=True),
        sa.Column("conversion_type", CONVERSION_TYPE, nullable=False),
        sa.Column("sale_value", sa.Numeric(12, 2), nullable=False),
        sa.Column("commission_amount", sa.Numeric(12, 2), nullable=False),
        sa.Column("commission_status", COMMISSION_STATUS, nullable=False),
        sa.Column("hold_until", sa.DateTime(), nullable=False),
        sa.Column("released_at", sa.DateTime(), nullable=True),
        sa.Column("paid_at", sa.DateTime(), nullable=True),
        sa.Column("payout_id", sa.Integer(), sa.ForeignKey("payouts.id"), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.UniqueConstraint("appointment_id", "conversion_type", name="uq_conversions_appointment_type"),
    )
    op.create_index("ix_conversions_id", "conversions", ["id"])
    op.create_index("ix_conversions_appointment_id", "conversions", ["appointment_id"])
    op.create_index("ix_conversions_status_hold_until", "conversions", ["commission_status", "hold_until"])
    op.create_index("ix_conversions_partner_status", "conversions", ["partner_id", "commission_status"])


def downgrade() -> None:
    op.drop_table("conversions")
    op.drop_table("payouts")
    op.drop_table("partner_clicks")
    op.drop_table("agent_audit_logs")
    op.drop_table("appointments")
    op.drop_table("lead_answers")
    op.drop_table("leads")
    op.drop_table("quiz_questions")
    op.drop_table("app_settings")
    op.drop_table("admins")
    op.drop_table("agents")
    op.drop_table("partners")

    bind = op.get_bind()
    for enum_type in (
        COMMISSION_STATUS, CONVERSION_TYPE, PAYOUT_STATUS,
        CALL_OUTCOME, APPOINTMENT_STATUS, LEAD_STATUS,
    ):
        enum_type.drop(bind, checkfirst=True)
