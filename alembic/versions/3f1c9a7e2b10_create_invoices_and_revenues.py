"""create invoices and revenues tables

Revision ID: 3f1c9a7e2b10
Revises:
Create Date: 2026-10-19 09:00:00.000000

"""
from __future__ import annotations

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql


# revision identifiers, used by Alembic.
revision = "3f1c9a7e2b10"
down_revision = None
branch_labels = None
depends_on = None


def _money(name: str, nullable: bool = True, **kwargs) -> sa.Column:
    return sa.Column(name, sa.Numeric(14, 2), nullable=nullable, **kwargs)


def upgrade() -> None:
    op.create_table(
        "invoices",
        sa.Column("id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("user_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("invoice_number", sa.String(length=50), nullable=True),
        sa.Column("invoice_date", sa.Date(), nullable=True),
        sa.Column("status", sa.String(length=20), nullable=True, server_default="Unpaid"),
        sa.Column("client_name", sa.String(length=255), nullable=True),
        sa.Column("client_country", sa.String(length=100), nullable=True),
        _money("sub_total"),
        _money("base_amount"),
        _money("cgst"),
        _money("sgst"),
        _money("igst"),
        _money("gst_amount"),
        sa.Column("gst_percentage", sa.Numeric(5, 2), nullable=True),
        sa.Column("tds_percentage", sa.Numeric(5, 2), nullable=True),
        _money("tds_amount"),
        _money("remittance_charges"),
        _money("grand_total"),
        _money("invoice_total"),
        _money("receivable_amount"),
        sa.Column("invoice_currency", sa.String(length=3), nullable=True, server_default="INR"),
        sa.Column("exchange_rate", sa.Numeric(12, 6), nullable=True),
        _money("inr_equivalent"),
        _money("received_amount"),
        _money("paid_amount"),
        sa.Column("service_description", sa.String(length=500), nullable=True),
        sa.Column("service_type", sa.String(length=100), nullable=True),
        sa.Column("engagement_type", sa.String(length=20), nullable=True),
        sa.Column("period_month", sa.String(length=20), nullable=True),
        sa.Column("period_year", sa.Integer(), nullable=True),
        sa.Column("revenue_id", postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("CURRENT_TIMESTAMP")),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.text("CURRENT_TIMESTAMP")),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_invoices_user_id"), "invoices", ["user_id"], unique=False)
    op.create_index(op.f("ix_invoices_status"), "invoices", ["status"], unique=False)
    op.create_index(op.f("ix_invoices_revenue_id"), "invoices", ["revenue_id"], unique=False)

    op.create_table(
        "revenues",
        sa.Column("id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("user_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("client_name", sa.String(length=255), nullable=False),
        sa.Column("country", sa.String(length=20), nullable=False),
        sa.Column("service", sa.String(length=50), nullable=False),
        sa.Column("engagement_type", sa.String(length=20), nullable=False),
        sa.Column("invoice_number", sa.String(length=50), nullable=True),
        sa.Column("invoice_date", sa.Date(), nullable=True),
        _money("invoice_amount", nullable=False, server_default="0"),
        sa.Column("gst_percentage", sa.Numeric(5, 2), nullable=True, server_default="0"),
        _money("gst_amount", server_default="0"),
        sa.Column("tds_percentage", sa.Numeric(5, 2), nullable=True, server_default="0"),
        _money("tds_amount", server_default="0"),
        _money("remittance_charges", server_default="0"),
        _money("received_amount", server_default="0"),
        _money("due_amount", server_default="0"),
        sa.Column("month", sa.String(length=3), nullable=False),
        sa.Column("year", sa.Integer(), nullable=False),
        sa.Column("invoice_generated", sa.Boolean(), nullable=True, server_default=sa.false()),
        sa.Column("invoice_id", postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column("department_name", sa.String(length=100), nullable=False, server_default=""),
        sa.Column("is_department_split", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("split_ratio", sa.Numeric(6, 4), nullable=False, server_default="0"),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("CURRENT_TIMESTAMP")),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.text("CURRENT_TIMESTAMP")),
        sa.CheckConstraint("split_ratio >= 0 AND split_ratio <= 1", name="ck_revenues_split_ratio"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_revenues_user_id"), "revenues", ["user_id"], unique=False)
    op.create_index(op.f("ix_revenues_invoice_id"), "revenues", ["invoice_id"], unique=False)
    op.create_index(op.f("ix_revenues_is_department_split"), "revenues", ["is_department_split"], unique=False)
    op.create_index("ix_revenues_year_month", "revenues", ["year", "month"], unique=False)
    op.create_index(
        "uq_revenues_invoice_aggregate",
        "revenues",
        ["invoice_id", "user_id"],
        unique=True,
        postgresql_where=sa.text("is_department_split = false"),
    )
    op.create_index(
        "uq_revenues_invoice_department",
        "revenues",
        ["invoice_id", "department_name", "user_id"],
        unique=True,
        postgresql_where=sa.text("is_department_split = true"),
    )


def downgrade() -> None:
    op.drop_index("uq_revenues_invoice_department", table_name="revenues")
    op.drop_index("uq_revenues_invoice_aggregate", table_name="revenues")
    op.drop_index("ix_revenues_year_month", table_name="revenues")
    op.drop_index(op.f("ix_revenues_is_department_split"), table_name="revenues")
    op.drop_index(op.f("ix_revenues_invoice_id"), table_name="revenues")
    op.drop_index(op.f("ix_revenues_user_id"), table_name="revenues")
    op.drop_table("revenues")
    op.drop_index(op.f("ix_invoices_revenue_id"), table_name="invoices")
    op.drop_index(op.f("ix_invoices_status"), table_name="invoices")
    op.drop_index(op.f("ix_invoices_user_id"), table_name="invoices")
    op.drop_table("invoices")
