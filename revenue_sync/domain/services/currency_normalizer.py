# revenue_sync/domain/services/currency_normalizer.py
"""
Conversion of invoice-currency amounts into the base currency (INR).

Every foreign invoice gets one multiplicative factor F so that
``amount_in_base = amount_in_invoice_currency * F``. Preference order:

1. implied rate ``inr_equivalent / receivable`` from the stored pair,
2. the invoice's own exchange rate (unless it is the placeholder 1),
3. the static default-rate table from settings.
"""

from __future__ import annotations

import logging
from decimal import Decimal
from typing import Any

from revenue_sync.core.config import settings
from revenue_sync.domain.models.money import ZERO, to_decimal

logger = logging.getLogger("currency_normalizer")

ONE = Decimal("1")


def invoice_currency(invoice: Any) -> str:
    currency = (getattr(invoice, "invoice_currency", None) or "").strip().upper()
    return currency or settings.BASE_CURRENCY


def is_base_currency(invoice: Any) -> bool:
    return invoice_currency(invoice) == settings.BASE_CURRENCY


def receivable_in_invoice_currency(invoice: Any) -> Decimal:
    """Receivable as billed, in the invoice's own currency."""
    for attr in ("receivable_amount", "grand_total", "invoice_total"):
        value = to_decimal(getattr(invoice, attr, None))
        if value:
            return value
    return ZERO


def raw_received_amount(invoice: Any) -> Decimal:
    """received_amount, falling back to paid_amount, exactly as stored."""
    received = getattr(invoice, "received_amount", None)
    if received is None:
        received = getattr(invoice, "paid_amount", None)
    return to_decimal(received)


def nominal_exchange_rate(invoice: Any) -> Decimal:
    """Stored rate unless missing or the trivial default 1, else the default table."""
    rate = to_decimal(getattr(invoice, "exchange_rate", None))
    if rate and rate != ONE:
        return rate

    currency = invoice_currency(invoice)
    default = settings.DEFAULT_EXCHANGE_RATES.get(currency)
    if default is None:
        logger.warning(
            "No default exchange rate for %s, using fallback %s",
            currency, settings.FALLBACK_EXCHANGE_RATE,
        )
        return to_decimal(settings.FALLBACK_EXCHANGE_RATE)
    return to_decimal(default)


def conversion_factor(invoice: Any) -> Decimal:
    """Multiplicative factor converting invoice-currency amounts to base currency."""
    if is_base_currency(invoice):
        return ONE

    nominal = nominal_exchange_rate(invoice)
    receivable = receivable_in_invoice_currency(invoice)
    inr_equivalent = to_decimal(getattr(invoice, "inr_equivalent", None))

    if inr_equivalent <= ZERO and receivable > ZERO and nominal > ZERO:
        # Legacy invoices were saved without inr_equivalent
        inr_equivalent = receivable * nominal

    if receivable > ZERO and inr_equivalent > ZERO:
        return inr_equivalent / receivable

    return nominal or ONE


def resolve_received_amount(
    invoice: Any,
    receivable_base: Decimal,
    factor: Decimal,
) -> Decimal:
    """
    Base-currency portion of the invoice's recorded collections.

    Payment flows store received_amount in INR, but older foreign-currency
    invoices may still hold it in invoice currency. A value at or below the
    invoice-currency receivable (plus the tolerance band) is treated as
    invoice currency and converted; anything larger is taken as INR already.
    """
    received = raw_received_amount(invoice)
    if received <= ZERO:
        return ZERO

    if not is_base_currency(invoice):
        receivable_fc = receivable_in_invoice_currency(invoice)
        tolerance = to_decimal(settings.RECEIVED_AMOUNT_TOLERANCE)
        if receivable_fc > ZERO and received <= receivable_fc * tolerance:
            return received * (factor or ONE)

    if receivable_base > ZERO:
        return min(receivable_base, received)
    return received
