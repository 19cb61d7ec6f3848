import uuid

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Column,
    Date,
    DateTime,
    Index,
    Integer,
    Numeric,
    String,
    event,
    text,
)
from sqlalchemy.dialects.postgresql import UUID

from revenue_sync.domain.models.money import round_money, to_decimal
from revenue_sync.infrastructure.db.base import Base


class Invoice(Base):
    """Billed engagement. Owned by the invoicing CRUD layer; read-only here except revenue_id."""
    __tablename__ = "invoices"
    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    user_id = Column(UUID(as_uuid=True), nullable=False, index=True)
    invoice_number = Column(String(50), default="")
    invoice_date = Column(Date)
    status = Column(String(20), default="Unpaid", index=True)

    client_name = Column(String(255))
    client_country = Column(String(100))

    # Amounts in invoice currency
    sub_total = Column(Numeric(14, 2))
    base_amount = Column(Numeric(14, 2))
    cgst = Column(Numeric(14, 2))
    sgst = Column(Numeric(14, 2))
    igst = Column(Numeric(14, 2))
    gst_amount = Column(Numeric(14, 2))
    gst_percentage = Column(Numeric(5, 2))
    tds_percentage = Column(Numeric(5, 2))
    tds_amount = Column(Numeric(14, 2))
    remittance_charges = Column(Numeric(14, 2))
    grand_total = Column(Numeric(14, 2))
    invoice_total = Column(Numeric(14, 2))
    receivable_amount = Column(Numeric(14, 2))

    # Currency metadata
    invoice_currency = Column(String(3), default="INR")
    exchange_rate = Column(Numeric(12, 6))
    inr_equivalent = Column(Numeric(14, 2))

    received_amount = Column(Numeric(14, 2))
    paid_amount = Column(Numeric(14, 2))

    service_description = Column(String(500))
    service_type = Column(String(100))
    engagement_type = Column(String(20))
    period_month = Column(String(20))
    period_year = Column(Integer)

    revenue_id = Column(UUID(as_uuid=True), nullable=True, index=True)

    created_at = Column(DateTime(timezone=True), server_default=text("CURRENT_TIMESTAMP"))
    updated_at = Column(
        DateTime(timezone=True),
        server_default=text("CURRENT_TIMESTAMP"),
        onupdate=text("CURRENT_TIMESTAMP"),
    )


class Revenue(Base):
    """Base-currency ledger row derived from an invoice, optionally per department."""
    __tablename__ = "revenues"
    __table_args__ = (
        CheckConstraint("split_ratio >= 0 AND split_ratio <= 1", name="ck_revenues_split_ratio"),
        # One aggregate row per (invoice, tenant)
        Index(
            "uq_revenues_invoice_aggregate",
            "invoice_id",
            "user_id",
            unique=True,
            postgresql_where=text("is_department_split = false"),
        ),
        # One split row per (invoice, department, tenant)
        Index(
            "uq_revenues_invoice_department",
            "invoice_id",
            "department_name",
            "user_id",
            unique=True,
            postgresql_where=text("is_department_split = true"),
        ),
        Index("ix_revenues_year_month", "year", "month"),
    )

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    user_id = Column(UUID(as_uuid=True), nullable=False, index=True)

    client_name = Column(String(255), nullable=False)
    country = Column(String(20), nullable=False)
    service = Column(String(50), nullable=False, default="Other Services")
    engagement_type = Column(String(20), nullable=False, default="One Time")

    invoice_number = Column(String(50), default="")
    invoice_date = Column(Date)

    invoice_amount = Column(Numeric(14, 2), nullable=False, default=0)
    gst_percentage = Column(Numeric(5, 2), default=0)
    gst_amount = Column(Numeric(14, 2), default=0)
    tds_percentage = Column(Numeric(5, 2), default=0)
    tds_amount = Column(Numeric(14, 2), default=0)
    remittance_charges = Column(Numeric(14, 2), default=0)
    received_amount = Column(Numeric(14, 2), default=0)
    due_amount = Column(Numeric(14, 2), default=0)

    month = Column(String(3), nullable=False)
    year = Column(Integer, nullable=False)

    invoice_generated = Column(Boolean, default=False)
    invoice_id = Column(UUID(as_uuid=True), nullable=True, index=True)

    department_name = Column(String(100), nullable=False, default="")
    is_department_split = Column(Boolean, nullable=False, default=False, index=True)
    split_ratio = Column(Numeric(6, 4), nullable=False, default=0)

    created_at = Column(DateTime(timezone=True), server_default=text("CURRENT_TIMESTAMP"))
    updated_at = Column(
        DateTime(timezone=True),
        server_default=text("CURRENT_TIMESTAMP"),
        onupdate=text("CURRENT_TIMESTAMP"),
    )

    def refresh_due_amount(self) -> None:
        """due = (base + GST - TDS - remittance) - received."""
        total = (
            to_decimal(self.invoice_amount)
            + to_decimal(self.gst_amount)
            - to_decimal(self.tds_amount)
            - to_decimal(self.remittance_charges)
        )
        self.due_amount = round_money(total - to_decimal(self.received_amount))


@event.listens_for(Revenue, "before_insert")
@event.listens_for(Revenue, "before_update")
def _recompute_due_amount(mapper, connection, target: Revenue) -> None:
    target.refresh_due_amount()
