# revenue_sync/api/v1/schemas/revenue.py
"""Pydantic schemas for the revenue reconciliation endpoints."""

from __future__ import annotations

from datetime import date
from decimal import Decimal
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from revenue_sync.domain.models.revenue import PaymentSplit, SweepSummary


class DepartmentSplitIn(BaseModel):
    """One department's share of a collected payment, in INR."""
    department_name: str = Field(..., min_length=1, max_length=100)
    amount: Decimal = Field(..., gt=0)

    def to_domain(self) -> PaymentSplit:
        return PaymentSplit(department_name=self.department_name, amount=self.amount)


class DepartmentSplitRequest(BaseModel):
    splits: list[DepartmentSplitIn] = Field(..., min_length=1)
    payment_amount: Decimal | None = Field(
        None, gt=0, description="Payment the splits must add up to (INR), if known"
    )


class RevenueResponse(BaseModel):
    """Single revenue ledger row."""
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    client_name: str
    country: str
    service: str
    engagement_type: str
    invoice_number: str | None = ""
    invoice_date: date | None = None
    invoice_amount: Decimal = Decimal("0")
    gst_percentage: Decimal | None = None
    gst_amount: Decimal = Decimal("0")
    tds_percentage: Decimal | None = None
    tds_amount: Decimal = Decimal("0")
    remittance_charges: Decimal = Decimal("0")
    received_amount: Decimal = Decimal("0")
    due_amount: Decimal = Decimal("0")
    month: str
    year: int
    invoice_id: UUID | None = None
    department_name: str = ""
    is_department_split: bool = False
    split_ratio: Decimal = Decimal("0")


class SweepSummaryResponse(BaseModel):
    total: int = 0
    reconciled: int = 0
    skipped: int = 0
    failed: list[str] = []
    stopped: bool = False

    @classmethod
    def from_summary(cls, summary: SweepSummary) -> "SweepSummaryResponse":
        return cls(
            total=summary.total,
            reconciled=summary.reconciled,
            skipped=summary.skipped,
            failed=list(summary.failed),
            stopped=summary.stopped,
        )
