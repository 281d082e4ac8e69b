"""init customers, service requests, invoice counters, otp, reservations
Revision ID: 0001_init
Revises:
Create Date: 2026-10-19
"""

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

revision = "0001_init"
down_revision = None
branch_labels = None
depends_on = None

ACTIVE_REQUEST_WHERE = "status IN ('open', 'scheduled', 'in_progress') AND related_invoice_code IS NULL"
ACTIVE_SLOT_WHERE = "status IN ('pending', 'confirmed')"


def _timestamps():
    return [
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
    ]


def upgrade():
    op.create_table(
        "customers",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        *_timestamps(),
        sa.Column("full_name", sa.String(length=200), nullable=False),
        sa.Column("phone", sa.String(length=30), nullable=False),
        sa.Column("address", sa.Text(), nullable=False),
        sa.Column("alt_phone", sa.String(length=30), nullable=True),
        sa.Column("birthdate", sa.Date(), nullable=True),
        sa.Column("city", sa.String(length=100), nullable=False, server_default="Isfahan"),
        sa.Column("discount_percent", sa.Integer(), nullable=True),
        sa.Column("joined_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.CheckConstraint(
            "discount_percent IS NULL OR (discount_percent >= 0 AND discount_percent <= 100)",
            name="ck_customers_discount_percent",
        ),
    )
    op.create_index("ix_customers_phone", "customers", ["phone"], unique=True)

    op.create_table(
        "service_requests",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        *_timestamps(),
        sa.Column("customer_id", postgresql.UUID(as_uuid=True), sa.ForeignKey("customers.id"), nullable=False),
        sa.Column("invoice_code", sa.String(length=16), nullable=False),
        sa.Column("phone", sa.String(length=30), nullable=False),
        sa.Column("full_name", sa.String(length=200), nullable=False),
        sa.Column("address", sa.Text(), nullable=False),
        sa.Column("alt_phone", sa.String(length=30), nullable=True),
        sa.Column("city", sa.String(length=100), nullable=True),
        sa.Column("source_path", sa.String(length=20), nullable=False, server_default="web_form"),
        sa.Column("issue_type", sa.String(length=20), nullable=False),
        sa.Column("status", sa.String(length=20), nullable=False, server_default="open"),
        sa.Column("is_follow_up", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        sa.Column("related_invoice_code", sa.String(length=16), nullable=True),
        sa.Column("scheduled_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("result_note", sa.Text(), nullable=True),
    )
    op.create_index("ix_service_requests_invoice_code", "service_requests", ["invoice_code"], unique=True)
    op.create_index("ix_service_requests_customer_id", "service_requests", ["customer_id"])
    op.create_index("ix_service_requests_phone", "service_requests", ["phone"])
    op.create_index("ix_service_requests_status", "service_requests", ["status"])
    op.create_index("ix_service_requests_related_invoice_code", "service_requests", ["related_invoice_code"])
    op.create_index(
        "uq_service_requests_active_phone",
        "service_requests",
        ["phone"],
        unique=True,
        postgresql_where=sa.text(ACTIVE_REQUEST_WHERE),
        sqlite_where=sa.text(ACTIVE_REQUEST_WHERE),
    )

    op.create_table(
        "service_request_status_history",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        *_timestamps(),
        sa.Column(
            "request_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("service_requests.id"),
            nullable=False,
        ),
        sa.Column("from_status", sa.String(length=20), nullable=True),
        sa.Column("to_status", sa.String(length=20), nullable=False),
        sa.Column("changed_by", sa.String(length=64), nullable=True),
        sa.Column("comment", sa.String(length=400), nullable=True),
    )
    op.create_index(
        "ix_service_request_status_history_request_id",
        "service_request_status_history",
        ["request_id"],
    )

    op.create_table(
        "invoice_counters",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        *_timestamps(),
        sa.Column("ym_key", sa.String(length=8), nullable=False),
        sa.Column("seq", sa.Integer(), nullable=False, server_default="0"),
    )
    op.create_index("ix_invoice_counters_ym_key", "invoice_counters", ["ym_key"], unique=True)

    op.create_table(
        "otp_sessions",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        *_timestamps(),
        sa.Column("purpose", sa.String(length=30), nullable=False),
        sa.Column("phone", sa.String(length=30), nullable=False),
        sa.Column("code_hash", sa.String(length=255), nullable=False),
        sa.Column("attempts", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("expires_at", sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index("ix_otp_sessions_phone_purpose", "otp_sessions", ["phone", "purpose"])

    op.create_table(
        "reservations",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        *_timestamps(),
        sa.Column("customer_id", postgresql.UUID(as_uuid=True), sa.ForeignKey("customers.id"), nullable=False),
        sa.Column("service_type", sa.String(length=50), nullable=False),
        sa.Column("details", sa.Text(), nullable=True),
        sa.Column("date", sa.String(length=10), nullable=False),
        sa.Column("time_window", sa.String(length=5), nullable=False),
        sa.Column("source", sa.String(length=10), nullable=False, server_default="self"),
        sa.Column("status", sa.String(length=20), nullable=False, server_default="pending"),
        sa.Column("timezone", sa.String(length=40), nullable=False, server_default="Asia/Tehran"),
        sa.Column("technician_note", sa.Text(), nullable=True),
    )
    op.create_index("ix_reservations_customer_id", "reservations", ["customer_id"])
    op.create_index("ix_reservations_date", "reservations", ["date"])
    op.create_index("ix_reservations_status", "reservations", ["status"])
    op.create_index(
        "uq_reservations_active_slot_per_day",
        "reservations",
        ["date", "time_window"],
        unique=True,
        postgresql_where=sa.text(ACTIVE_SLOT_WHERE),
        sqlite_where=sa.text(ACTIVE_SLOT_WHERE),
    )


def downgrade():
    op.drop_index("uq_reservations_active_slot_per_day", table_name="reservations")
    op.drop_index("ix_reservations_status", table_name="reservations")
    op.drop_index("ix_reservations_date", table_name="reservations")
    op.drop_index("ix_reservations_customer_id", table_name="reservations")
    op.drop_table("reservations")
    op.drop_index("ix_otp_sessions_phone_purpose", table_name="otp_sessions")
    op.drop_table("otp_sessions")
    op.drop_index("ix_invoice_counters_ym_key", table_name="invoice_counters")
    op.drop_table("invoice_counters")
    op.drop_index("ix_service_request_status_history_request_id", table_name="service_request_status_history")
    op.drop_table("service_request_status_history")
    op.drop_index("uq_service_requests_active_phone", table_name="service_requests")
    op.drop_index("ix_service_requests_related_invoice_code", table_name="service_requests")
    op.drop_index("ix_service_requests_status", table_name="service_requests")
    op.drop_index("ix_service_requests_phone", table_name="service_requests")
    op.drop_index("ix_service_requests_customer_id", table_name="service_requests")
    op.drop_index("ix_service_requests_invoice_code", table_name="service_requests")
    op.drop_table("service_requests")
    op.drop_index("ix_customers_phone", table_name="customers")
    op.drop_table("customers")
