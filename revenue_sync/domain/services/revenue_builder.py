# revenue_sync/domain/services/revenue_builder.py
"""
Revenue Record Builder.

Maps one invoice to the column values of one (unsaved) Revenue row, with
every monetary figure expressed in the base currency and rounded to paise.
"""

from __future__ import annotations

import logging
from datetime import date, datetime
from decimal import Decimal
from typing import Any
from uuid import UUID

from revenue_sync.domain.exceptions import RevenueValidationError
from revenue_sync.domain.models.money import ZERO, round_money, to_decimal
from revenue_sync.domain.models.revenue import (
    DEFAULT_COUNTRY,
    DEFAULT_SERVICE,
    ENGAGEMENT_ONE_TIME,
    ENGAGEMENT_RECURRING,
    MONTHS,
    VALID_COUNTRIES,
    VALID_SERVICES,
)
from revenue_sync.domain.services.currency_normalizer import (
    conversion_factor,
    resolve_received_amount,
)

logger = logging.getLogger("revenue_builder")


# ---------------------------------------------------------------------------
# Field mappers
# ---------------------------------------------------------------------------

def map_service_to_enum(raw: str | None) -> str:
    """Closest service enum entry by case-insensitive containment, either direction."""
    text = (raw or "").strip()
    if not text:
        return DEFAULT_SERVICE

    lower = text.lower()
    for service in VALID_SERVICES:
        candidate = service.lower()
        if candidate in lower or lower in candidate:
            return service
    return DEFAULT_SERVICE


def normalize_country(raw: str | None) -> str:
    text = (raw or "").strip().lower()
    for country in VALID_COUNTRIES:
        if country.lower() == text:
            return country
    return DEFAULT_COUNTRY


def _normalize_month(raw: Any) -> str | None:
    """Accept 'Mar', 'March', 'mar' or 3; anything else is None."""
    if raw is None:
        return None
    if isinstance(raw, int):
        return MONTHS[raw - 1] if 1 <= raw <= 12 else None

    text = str(raw).strip()
    if text.isdigit():
        return _normalize_month(int(text))
    short = text[:3].title()
    return short if short in MONTHS else None


def _as_date(value: Any) -> date:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    return date.today()


def month_year_for(invoice: Any) -> tuple[str, int, date]:
    """Service period when the invoice has one, else the invoice date."""
    invoice_date = _as_date(getattr(invoice, "invoice_date", None))

    raw_month = getattr(invoice, "period_month", None)
    month = _normalize_month(raw_month)
    if month is None:
        if raw_month:
            logger.debug("Unrecognised service period month %r, using invoice date", raw_month)
        month = MONTHS[invoice_date.month - 1]

    year = getattr(invoice, "period_year", None)
    try:
        year = int(year) if year else invoice_date.year
    except (TypeError, ValueError):
        year = invoice_date.year

    return month, year, invoice_date


def _total_gst(invoice: Any) -> Decimal:
    split_gst = (
        to_decimal(getattr(invoice, "cgst", None))
        + to_decimal(getattr(invoice, "sgst", None))
        + to_decimal(getattr(invoice, "igst", None))
    )
    if split_gst:
        return split_gst
    return to_decimal(getattr(invoice, "gst_amount", None))


def _amount_components(invoice: Any) -> tuple[Decimal, Decimal, Decimal, Decimal]:
    """(base, GST, TDS, remittance) in invoice currency."""
    base_amount = to_decimal(getattr(invoice, "base_amount", None)) or to_decimal(
        getattr(invoice, "sub_total", None)
    )
    return (
        base_amount,
        _total_gst(invoice),
        to_decimal(getattr(invoice, "tds_amount", None)),
        to_decimal(getattr(invoice, "remittance_charges", None)),
    )


def collectible_base_amount(invoice: Any) -> Decimal:
    """(base + GST - TDS - remittance) converted to base currency, rounded."""
    base_amount, gst, tds, remittance = _amount_components(invoice)
    return round_money((base_amount + gst - tds - remittance) * conversion_factor(invoice))


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------

def build_revenue_data(invoice: Any, tenant_id: UUID) -> dict[str, Any]:
    """
    Column values for the invoice-level Revenue row.

    Raises RevenueValidationError if the invoice has no client name.
    ``due_amount`` is a placeholder; the Revenue model derives it on write.
    """
    client_name = (getattr(invoice, "client_name", None) or "").strip()
    if not client_name:
        raise RevenueValidationError(
            "Cannot sync revenue: invoice client name is missing"
        )

    month, year, invoice_date = month_year_for(invoice)

    service_text = (
        getattr(invoice, "service_description", None)
        or getattr(invoice, "service_type", None)
    )
    engagement = getattr(invoice, "engagement_type", None)
    engagement_type = ENGAGEMENT_RECURRING if engagement == ENGAGEMENT_RECURRING else ENGAGEMENT_ONE_TIME

    base_amount, gst, tds, remittance = _amount_components(invoice)

    # Revenue total = base + GST - TDS - remittance
    receivable = base_amount + gst - tds - remittance

    factor = conversion_factor(invoice)
    receivable_base = receivable * factor
    received_base = resolve_received_amount(invoice, receivable_base, factor)

    return {
        "client_name": client_name,
        "country": normalize_country(getattr(invoice, "client_country", None)),
        "service": map_service_to_enum(service_text),
        "engagement_type": engagement_type,
        "invoice_number": getattr(invoice, "invoice_number", None) or "",
        "invoice_date": invoice_date,
        "invoice_amount": round_money(base_amount * factor),
        "gst_percentage": to_decimal(getattr(invoice, "gst_percentage", None)),
        "gst_amount": round_money(gst * factor),
        "tds_percentage": to_decimal(getattr(invoice, "tds_percentage", None)),
        "tds_amount": round_money(tds * factor),
        "remittance_charges": round_money(remittance * factor),
        # Collections so far, for Partial and Paid alike
        "received_amount": round_money(received_base),
        "due_amount": ZERO,
        "month": month,
        "year": year,
        "invoice_generated": True,
        "invoice_id": getattr(invoice, "id", None),
        "department_name": "",
        "is_department_split": False,
        "split_ratio": ZERO,
        "user_id": tenant_id,
    }
