"""Create floor-plan ledger tables.

Revision ID: 7a3c1e9d2b40
Revises:
Create Date: 2026-10-19 09:00:00.000000
"""

from __future__ import annotations

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = "7a3c1e9d2b40"
down_revision = None
branch_labels = None
depends_on = None


def _enum(name: str, *values: str) -> sa.Enum:
    return sa.Enum(*values, name=name, native_enum=False)


def upgrade() -> None:
    op.create_table(
        "dealerships",
        sa.Column("id", sa.String(length=36), primary_key=True),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("principal_contact", sa.String(length=255), nullable=False),
        sa.Column("location", sa.String(length=255), nullable=False),
        sa.Column(
            "status",
            _enum("dealership_status_enum", "ONBOARDING", "ACTIVE", "SUSPENDED", "INACTIVE"),
            nullable=False,
        ),
        sa.Column("agreement_date", sa.Date(), nullable=True),
        sa.Column("credit_line_id", sa.String(length=36), nullable=True, unique=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index("ix_dealerships_id", "dealerships", ["id"])
    op.create_index("ix_dealerships_status", "dealerships", ["status"])

    op.create_table(
        "credit_lines",
        sa.Column("id", sa.String(length=36), primary_key=True),
        sa.Column(
            "dealership_id",
            sa.String(length=36),
            sa.ForeignKey("dealerships.id", ondelete="RESTRICT"),
            nullable=False,
        ),
        sa.Column("total_limit_minor", sa.BigInteger(), nullable=False),
        sa.Column("available_credit_minor", sa.BigInteger(), nullable=False),
        sa.Column("interest_rate", sa.Numeric(6, 3), nullable=False),
        sa.Column("interest_accrued_minor", sa.BigInteger(), nullable=False),
        sa.Column("last_interest_calculation_date", sa.Date(), nullable=True),
        sa.Column(
            "status",
            _enum("credit_line_status_enum", "ACTIVE", "SUSPENDED", "UNDER_REVIEW", "INACTIVE"),
            nullable=False,
        ),
        sa.Column("opened_at", sa.DateTime(timezone=True), nullable=False),
        sa.UniqueConstraint("dealership_id", name="uq_credit_line_dealership"),
        sa.CheckConstraint(
            "available_credit_minor >= 0 AND available_credit_minor <= total_limit_minor",
            name="ck_credit_line_available_within_limit",
        ),
        sa.CheckConstraint("interest_accrued_minor >= 0", name="ck_credit_line_interest_non_negative"),
    )
    op.create_index("ix_credit_lines_id", "credit_lines", ["id"])
    op.create_index("ix_credit_lines_dealership_id", "credit_lines", ["dealership_id"])
    op.create_index("ix_credit_lines_status", "credit_lines", ["status"])

    op.create_table(
        "credit_line_entries",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column(
            "credit_line_id",
            sa.String(length=36),
            sa.ForeignKey("credit_lines.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column(
            "entry_type",
            _enum(
                "credit_line_entry_type_enum",
                "RESERVED",
                "RELEASED",
                "INTEREST_ACCRUED",
                "INTEREST_SETTLED",
            ),
            nullable=False,
        ),
        sa.Column("amount_minor", sa.BigInteger(), nullable=False),
        sa.Column("vin", sa.String(length=17), nullable=True),
        sa.Column("accrual_date", sa.Date(), nullable=True),
        sa.Column("balance_after_minor", sa.BigInteger(), nullable=False),
        sa.Column("actor", sa.String(length=128), nullable=True),
        sa.Column("occurred_at", sa.DateTime(timezone=True), nullable=False),
        sa.UniqueConstraint("credit_line_id", "entry_type", "accrual_date", name="uq_credit_line_entry_accrual"),
        sa.CheckConstraint("amount_minor >= 0", name="ck_credit_line_entry_amount_non_negative"),
    )
    op.create_index("ix_credit_line_entries_id", "credit_line_entries", ["id"])
    op.create_index("ix_credit_line_entries_credit_line_id", "credit_line_entries", ["credit_line_id"])
    op.create_index("ix_credit_line_entries_entry_type", "credit_line_entries", ["entry_type"])
    op.create_index("ix_credit_line_entries_vin", "credit_line_entries", ["vin"])
    op.create_index("ix_credit_line_entries_line_time", "credit_line_entries", ["credit_line_id", "occurred_at"])

    op.create_table(
        "inventory_units",
        sa.Column("vin", sa.String(length=17), primary_key=True),
        sa.Column(
            "dealership_id",
            sa.String(length=36),
            sa.ForeignKey("dealerships.id", ondelete="RESTRICT"),
            nullable=False,
        ),
        sa.Column(
            "credit_line_id",
            sa.String(length=36),
            sa.ForeignKey("credit_lines.id", ondelete="RESTRICT"),
            nullable=False,
        ),
        sa.Column("oem_invoice_number", sa.String(length=64), nullable=False),
        sa.Column("make", sa.String(length=64), nullable=False),
        sa.Column("model", sa.String(length=64), nullable=False),
        sa.Column("year", sa.Integer(), nullable=False),
        sa.Column("financed_amount_minor", sa.BigInteger(), nullable=False),
        sa.Column("funding_date", sa.DateTime(timezone=True), nullable=False),
        sa.Column(
            "status",
            _enum(
                "inventory_unit_status_enum",
                "PENDING_FUNDING",
                "IN_STOCK",
                "SOLD_PENDING_PAYMENT",
                "REPAID",
                "AUDIT_MISSING",
            ),
            nullable=False,
        ),
        sa.Column(
            "hypothecation_status",
            _enum("hypothecation_status_enum", "PENDING", "COMPLETED", "NOC_ISSUED"),
            nullable=False,
        ),
        sa.Column("sold_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("repayment_date", sa.DateTime(timezone=True), nullable=True),
        sa.Column("repayment_amount_minor", sa.BigInteger(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.CheckConstraint("financed_amount_minor > 0", name="ck_inventory_unit_financed_positive"),
    )
    op.create_index("ix_inventory_units_dealership_id", "inventory_units", ["dealership_id"])
    op.create_index("ix_inventory_units_status", "inventory_units", ["status"])
    op.create_index("ix_inventory_units_dealership_status", "inventory_units", ["dealership_id", "status"])
    op.create_index("ix_inventory_units_credit_line", "inventory_units", ["credit_line_id"])

    op.create_table(
        "audits",
        sa.Column("id", sa.String(length=36), primary_key=True),
        sa.Column(
            "dealership_id",
            sa.String(length=36),
            sa.ForeignKey("dealerships.id", ondelete="RESTRICT"),
            nullable=False,
        ),
        sa.Column("audit_date", sa.Date(), nullable=False),
        sa.Column("auditor_name", sa.String(length=255), nullable=False),
        sa.Column(
            "status",
            _enum("audit_status_enum", "SCHEDULED", "IN_PROGRESS", "COMPLETED", "CANCELLED"),
            nullable=False,
        ),
        sa.Column("completed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index("ix_audits_id", "audits", ["id"])
    op.create_index("ix_audits_dealership_id", "audits", ["dealership_id"])
    op.create_index("ix_audits_status", "audits", ["status"])
    op.create_index("ix_audits_dealership_date", "audits", ["dealership_id", "audit_date"])

    op.create_table(
        "audited_vehicles",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column(
            "audit_id",
            sa.String(length=36),
            sa.ForeignKey("audits.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("vin", sa.String(length=17), nullable=False),
        sa.Column(
            "verification_status",
            _enum("verification_status_enum", "VERIFIED", "MISSING", "SOLD_UNREPORTED"),
            nullable=False,
        ),
        sa.Column("notes", sa.Text(), nullable=True),
    )
    op.create_index("ix_audited_vehicles_id", "audited_vehicles", ["id"])
    op.create_index("ix_audited_vehicles_audit", "audited_vehicles", ["audit_id"])
    op.create_index("ix_audited_vehicles_vin", "audited_vehicles", ["vin"])

    op.create_table(
        "activity_events",
        sa.Column("id", sa.String(length=36), primary_key=True),
        sa.Column("entity_type", sa.String(length=64), nullable=False),
        sa.Column("entity_id", sa.String(length=64), nullable=False),
        sa.Column("action", sa.String(length=64), nullable=False),
        sa.Column("actor", sa.String(length=128), nullable=True),
        sa.Column("occurred_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("before", sa.JSON(), nullable=True),
        sa.Column("after", sa.JSON(), nullable=True),
        sa.Column("correlation_id", sa.String(length=64), nullable=True),
        sa.Column("metadata", sa.JSON(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index("ix_activity_events_id", "activity_events", ["id"])
    op.create_index("ix_activity_events_entity_type", "activity_events", ["entity_type"])
    op.create_index("ix_activity_events_entity_id", "activity_events", ["entity_id"])
    op.create_index("ix_activity_events_entity", "activity_events", ["entity_type", "entity_id"])
    op.create_index("ix_activity_events_action", "activity_events", ["action"])
    op.create_index("ix_activity_events_actor", "activity_events", ["actor"])
    op.create_index("ix_activity_events_correlation_id", "activity_events", ["correlation_id"])
    op.create_index("ix_activity_events_occurred_at", "activity_events", ["occurred_at"])
    op.create_index("ix_activity_events_time_desc", "activity_events", [sa.text("occurred_at DESC")])


def downgrade() -> None:
    op.drop_table("activity_events")
    op.drop_table("audited_vehicles")
    op.drop_table("audits")
    op.drop_table("inventory_units")
    op.drop_table("credit_line_entries")
    op.drop_table("credit_lines")
    op.drop_table("dealerships")
