# revenue_sync/domain/models/revenue.py
"""Enumerations and value objects shared by the revenue reconciliation services."""

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal
from enum import Enum


class InvoiceStatus(str, Enum):
    UNPAID = "Unpaid"
    PARTIAL = "Partial"
    PAID = "Paid"
    CANCEL = "Cancel"
    VOID = "Void"


# Statuses that mean money has (at least partly) been collected
COLLECTIBLE_STATUSES: tuple[str, ...] = (InvoiceStatus.PAID.value, InvoiceStatus.PARTIAL.value)

# Order matters: the first entry that matches wins
VALID_SERVICES: tuple[str, ...] = (
    "Website Design",
    "B2B Sales Consulting",
    "Outbound Lead Generation",
    "Social Media Marketing",
    "SEO",
    "TeleCalling",
    "Other Services",
)
DEFAULT_SERVICE = "Other Services"

VALID_COUNTRIES: tuple[str, ...] = ("India", "USA", "Canada", "Australia")
DEFAULT_COUNTRY = "India"

ENGAGEMENT_ONE_TIME = "One Time"
ENGAGEMENT_RECURRING = "Recurring"

MONTHS: tuple[str, ...] = (
    "Jan", "Feb", "Mar", "Apr", "May", "Jun",
    "Jul", "Aug", "Sep", "Oct", "Nov", "Dec",
)


@dataclass(frozen=True)
class PaymentSplit:
    """Portion of a collected payment attributed to one department (base currency)."""
    department_name: str
    amount: Decimal


@dataclass
class SweepSummary:
    """Outcome of one reconciliation sweep over a tenant's outstanding invoices."""
    total: int = 0
    reconciled: int = 0
    skipped: int = 0
    failed: list[str] = field(default_factory=list)
    stopped: bool = False
