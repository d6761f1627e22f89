"""initial schema

Revision ID: 0001_initial
Revises:
Create Date: 2026-10-19
"""

from __future__ import annotations

from alembic import op
import sqlalchemy as sa


revision = "0001_initial"
down_revision = None
branch_labels = None
depends_on = None


FACILITY_STATUS = ("pending", "active", "closed", "matured", "defaulted")
COVENANT_TYPE = ("ltv_ratio", "minimum_nav", "diversification", "interest_coverage", "liquidity")
THRESHOLD_OPERATOR = ("less_than", "less_than_equal", "greater_than", "greater_than_equal")
COVENANT_STATUS = ("compliant", "warning", "breach")
CHECK_FREQUENCY = ("monthly", "quarterly", "annual")
MEASUREMENT_SOURCE = ("ltv_from_facility", "nav_from_fund_admin", "manual")
CASH_FLOW_STATUS = ("scheduled", "paid", "overdue", "partial", "waived")
NOTIFICATION_TYPE = ("covenant_breach", "covenant_warning", "covenant_status_change")
NOTIFICATION_PRIORITY = ("low", "normal", "high", "urgent")


def _audit_columns() -> list[sa.Column]:
    return [
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("created_by", sa.String(length=128), nullable=True),
        sa.Column("updated_by", sa.String(length=128), nullable=True),
    ]


def upgrade() -> None:
    # --- Core
    op.create_table(
        "users",
        sa.Column("id", sa.Uuid(), primary_key=True, nullable=False),
        sa.Column("external_id", sa.String(length=200), nullable=True),
        sa.Column("email", sa.String(length=320), nullable=True),
        sa.Column("display_name", sa.String(length=200), nullable=True),
        sa.Column("role", sa.String(length=32), nullable=False, server_default="gp"),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        *_audit_columns(),
    )
    op.create_index("ix_users_id", "users", ["id"])
    op.create_index("ix_users_external_id", "users", ["external_id"], unique=True)
    op.create_index("ix_users_email", "users", ["email"], unique=True)
    op.create_index("ix_users_role", "users", ["role"])

    op.create_table(
        "user_sessions",
        sa.Column("id", sa.Uuid(), primary_key=True, nullable=False),
        sa.Column("user_id", sa.Uuid(), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        sa.Column("token_hash", sa.String(length=128), nullable=False, unique=True),
        sa.Column("expires_at", sa.DateTime(timezone=True), nullable=False),
        *_audit_columns(),
    )
    op.create_index("ix_user_sessions_id", "user_sessions", ["id"])
    op.create_index("ix_user_sessions_user_id", "user_sessions", ["user_id"])
    op.create_index("ix_user_sessions_expires_at", "user_sessions", ["expires_at"])

    op.create_table(
        "audit_events",
        sa.Column("id", sa.Uuid(), primary_key=True, nullable=False),
        sa.Column("actor_id", sa.String(length=200), nullable=False),
        sa.Column("actor_roles", sa.JSON(), nullable=False),
        sa.Column("action", sa.String(length=200), nullable=False),
        sa.Column("entity_type", sa.String(length=100), nullable=False),
        sa.Column("entity_id", sa.String(length=200), nullable=False),
        sa.Column("before", sa.JSON(), nullable=True),
        sa.Column("after", sa.JSON(), nullable=True),
        sa.Column("request_id", sa.String(length=64), nullable=False),
        *_audit_columns(),
    )
    op.create_index("ix_audit_events_id", "audit_events", ["id"])
    op.create_index("ix_audit_events_actor_id", "audit_events", ["actor_id"])
    op.create_index("ix_audit_events_action", "audit_events", ["action"])
    op.create_index("ix_audit_events_entity_type", "audit_events", ["entity_type"])
    op.create_index("ix_audit_events_entity_id", "audit_events", ["entity_id"])
    op.create_index("ix_audit_events_request_id", "audit_events", ["request_id"])
    op.create_index("ix_audit_events_entity", "audit_events", ["entity_type", "entity_id"])

    # --- Facilities
    op.create_table(
        "facilities",
        sa.Column("id", sa.Uuid(), primary_key=True, nullable=False),
        sa.Column("fund_name", sa.String(length=255), nullable=False),
        sa.Column("gp_name", sa.String(length=255), nullable=True),
        sa.Column("gp_user_id", sa.Uuid(), sa.ForeignKey("users.id", ondelete="SET NULL"), nullable=True),
        sa.Column("principal_amount", sa.Float(), nullable=False),
        sa.Column("outstanding_balance", sa.Float(), nullable=False, server_default="0"),
        sa.Column("interest_rate", sa.Float(), nullable=False, server_default="0"),
        sa.Column("ltv_ratio", sa.Float(), nullable=True),
        sa.Column("current_nav", sa.Float(), nullable=True),
        sa.Column("sector", sa.String(length=120), nullable=True),
        sa.Column("vintage_year", sa.Integer(), nullable=True),
        sa.Column("maturity_date", sa.Date(), nullable=True),
        sa.Column(
            "status",
            sa.Enum(*FACILITY_STATUS, name="facility_status_enum"),
            nullable=False,
            server_default="pending",
        ),
        *_audit_columns(),
    )
    op.create_index("ix_facilities_id", "facilities", ["id"])
    op.create_index("ix_facilities_fund_name", "facilities", ["fund_name"])
    op.create_index("ix_facilities_gp_user_id", "facilities", ["gp_user_id"])
    op.create_index("ix_facilities_sector", "facilities", ["sector"])
    op.create_index("ix_facilities_maturity_date", "facilities", ["maturity_date"])
    op.create_index("ix_facilities_status", "facilities", ["status"])

    op.create_table(
        "covenants",
        sa.Column("id", sa.Uuid(), primary_key=True, nullable=False),
        sa.Column("facility_id", sa.Uuid(), sa.ForeignKey("facilities.id", ondelete="CASCADE"), nullable=False),
        sa.Column("covenant_type", sa.Enum(*COVENANT_TYPE, name="covenant_type_enum"), nullable=False),
        sa.Column(
            "threshold_operator", sa.Enum(*THRESHOLD_OPERATOR, name="threshold_operator_enum"), nullable=False
        ),
        sa.Column("threshold_value", sa.Float(), nullable=False),
        sa.Column("warning_band_pct", sa.Float(), nullable=True),
        sa.Column("measurement_source", sa.Enum(*MEASUREMENT_SOURCE, name="measurement_source_enum"), nullable=True),
        sa.Column("current_value", sa.Float(), nullable=True),
        sa.Column(
            "status",
            sa.Enum(*COVENANT_STATUS, name="covenant_status_enum"),
            nullable=False,
            server_default="compliant",
        ),
        sa.Column(
            "check_frequency",
            sa.Enum(*CHECK_FREQUENCY, name="check_frequency_enum"),
            nullable=False,
            server_default="quarterly",
        ),
        sa.Column("last_checked", sa.DateTime(timezone=True), nullable=True),
        sa.Column("next_check_date", sa.DateTime(timezone=True), nullable=True),
        sa.Column("breach_notified", sa.Boolean(), nullable=False, server_default=sa.false()),
        *_audit_columns(),
    )
    op.create_index("ix_covenants_id", "covenants", ["id"])
    op.create_index("ix_covenants_facility_id", "covenants", ["facility_id"])
    op.create_index("ix_covenants_covenant_type", "covenants", ["covenant_type"])
    op.create_index("ix_covenants_status", "covenants", ["status"])
    op.create_index("ix_covenants_next_check", "covenants", ["next_check_date"])

    op.create_table(
        "cash_flows",
        sa.Column("id", sa.Uuid(), primary_key=True, nullable=False),
        sa.Column("facility_id", sa.Uuid(), sa.ForeignKey("facilities.id", ondelete="CASCADE"), nullable=False),
        sa.Column("due_date", sa.Date(), nullable=False),
        sa.Column("principal_due", sa.Float(), nullable=False, server_default="0"),
        sa.Column("interest_due", sa.Float(), nullable=False, server_default="0"),
        sa.Column("total_due", sa.Float(), nullable=False, server_default="0"),
        sa.Column("paid_amount", sa.Float(), nullable=False, server_default="0"),
        sa.Column("paid_date", sa.Date(), nullable=True),
        sa.Column(
            "status",
            sa.Enum(*CASH_FLOW_STATUS, name="cash_flow_status_enum"),
            nullable=False,
            server_default="scheduled",
        ),
        *_audit_columns(),
    )
    op.create_index("ix_cash_flows_id", "cash_flows", ["id"])
    op.create_index("ix_cash_flows_facility_id", "cash_flows", ["facility_id"])
    op.create_index("ix_cash_flows_due_date", "cash_flows", ["due_date"])
    op.create_index("ix_cash_flows_status", "cash_flows", ["status"])

    # --- Notifications
    op.create_table(
        "notifications",
        sa.Column("id", sa.Uuid(), primary_key=True, nullable=False),
        sa.Column("user_id", sa.Uuid(), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        sa.Column("type", sa.Enum(*NOTIFICATION_TYPE, name="notification_type_enum"), nullable=False),
        sa.Column("title", sa.String(length=255), nullable=False),
        sa.Column("message", sa.Text(), nullable=False),
        sa.Column("related_entity_type", sa.String(length=64), nullable=True),
        sa.Column("related_entity_id", sa.String(length=200), nullable=True),
        sa.Column("action_url", sa.String(length=500), nullable=True),
        sa.Column(
            "priority",
            sa.Enum(*NOTIFICATION_PRIORITY, name="notification_priority_enum"),
            nullable=False,
            server_default="normal",
        ),
        sa.Column("is_read", sa.Boolean(), nullable=False, server_default=sa.false()),
        *_audit_columns(),
    )
    op.create_index("ix_notifications_id", "notifications", ["id"])
    op.create_index("ix_notifications_user_id", "notifications", ["user_id"])
    op.create_index("ix_notifications_related_entity_id", "notifications", ["related_entity_id"])
    op.create_index("ix_notifications_user_read", "notifications", ["user_id", "is_read"])


def downgrade() -> None:
    op.drop_table("notifications")
    op.drop_table("cash_flows")
    op.drop_table("covenants")
    op.drop_table("facilities")
    op.drop_table("audit_events")
    op.drop_table("user_sessions")
    op.drop_table("users")

    bind = op.get_bind()
    for name in (
        "notification_priority_enum",
        "notification_type_enum",
        "cash_flow_status_enum",
        "check_frequency_enum",
        "covenant_status_enum",
        "measurement_source_enum",
        "threshold_operator_enum",
        "covenant_type_enum",
        "facility_status_enum",
    ):
        sa.Enum(name=name).drop(bind, checkfirst=True)
