# revenue_sync/domain/services/department_split.py
"""
Department Split Allocator.

When a collected payment is split across departments, each department gets
its own Revenue row carrying a proportional share of the invoice figures.
The invoice-level row is never touched here.

Each scaled figure is rounded on its own, so department rows may not add up
to the invoice row to the paisa; drift is bounded by one paisa per field per
split.
"""

from __future__ import annotations

import asyncio
import logging
from decimal import Decimal
from typing import Any, Iterable
from uuid import UUID

from revenue_sync.core.config import settings
from revenue_sync.domain.exceptions import SplitAllocationError, SplitValidationError
from revenue_sync.domain.models.money import CENT, ZERO, round_money, round_ratio, to_decimal
from revenue_sync.domain.models.revenue import PaymentSplit
from revenue_sync.domain.services.currency_normalizer import raw_received_amount
from revenue_sync.domain.services.revenue_builder import (
    build_revenue_data,
    collectible_base_amount,
)
from revenue_sync.infrastructure.db.repositories.revenue_repository import RevenueRepository

logger = logging.getLogger("department_split")

# Figures scaled by the split ratio
SCALED_FIELDS = ("invoice_amount", "gst_amount", "tds_amount", "remittance_charges")


def _default_session_factory():
    from revenue_sync.core.db import AsyncSessionLocal
    return AsyncSessionLocal


# ---------------------------------------------------------------------------
# Caller-side validation
# ---------------------------------------------------------------------------

def validate_splits(
    invoice: Any,
    splits: Iterable[PaymentSplit],
    *,
    expected_total: Decimal | None = None,
) -> Decimal:
    """
    Reject split sets the payment handler must not pass on to the allocator.

    Returns the rounded split total. ``expected_total`` is the payment amount
    the splits must add up to (within a paisa), when the caller knows it.
    """
    splits = list(splits)
    if not splits:
        raise SplitValidationError("At least one department split is required")

    seen: set[str] = set()
    for split in splits:
        name = (split.department_name or "").strip()
        if not name or to_decimal(split.amount) <= ZERO:
            raise SplitValidationError(
                "All department splits must have a department name and an amount greater than 0"
            )
        key = name.lower()
        if key in seen:
            raise SplitValidationError(f"Department '{name}' appears more than once")
        seen.add(key)

    total = round_money(sum((to_decimal(s.amount) for s in splits), ZERO))
    if total <= ZERO:
        raise SplitValidationError("Department split total cannot be zero")

    if expected_total is not None:
        expected = round_money(expected_total)
        if abs(total - expected) > CENT:
            raise SplitValidationError(
                f"Department split total {total} does not match payment amount {expected}"
            )

    collectible = collectible_base_amount(invoice)
    if total > collectible + CENT:
        raise SplitValidationError(
            f"Department split total {total} exceeds collectible amount {collectible}"
        )

    received = raw_received_amount(invoice)
    if total > received + CENT:
        raise SplitValidationError(
            f"Department split total {total} exceeds received amount {round_money(received)}"
        )

    return total


# ---------------------------------------------------------------------------
# Allocation
# ---------------------------------------------------------------------------

def _department_row(base: dict[str, Any], split: PaymentSplit, name: str, ratio: Decimal) -> dict[str, Any]:
    data = dict(base)
    for field_name in SCALED_FIELDS:
        data[field_name] = round_money(to_decimal(base[field_name]) * ratio)
    data.update(
        department_name=name,
        received_amount=round_money(split.amount),
        is_department_split=True,
        split_ratio=round_ratio(ratio),
    )
    return data


async def allocate_splits(
    invoice: Any,
    splits: Iterable[PaymentSplit],
    tenant_id: UUID,
    *,
    session_factory=None,
) -> list:
    """
    Create or update one Revenue row per department split.

    Upserts run concurrently (each on its own session); all of them are
    awaited, and any failures are raised together as SplitAllocationError.
    Splits without a department name, or on an invoice with nothing received,
    are skipped with a warning.
    """
    splits = list(splits)
    if not splits:
        return []

    base = build_revenue_data(invoice, tenant_id)
    total_received = raw_received_amount(invoice)

    prepared: list[tuple[str, dict[str, Any]]] = []
    for split in splits:
        name = (split.department_name or "").strip()
        if not name:
            logger.warning("Department name missing for split %r, skipping", split)
            continue
        if total_received <= ZERO:
            logger.warning(
                "Invoice %s has no received amount, skipping split for %s",
                base["invoice_number"] or invoice.id, name,
            )
            continue

        ratio = to_decimal(split.amount) / total_received
        prepared.append((name, _department_row(base, split, name, ratio)))

    if not prepared:
        return []

    factory = session_factory or _default_session_factory()
    semaphore = asyncio.Semaphore(settings.SPLIT_UPSERT_CONCURRENCY)

    async def _upsert(name: str, data: dict[str, Any]):
        async with semaphore:
            async with factory() as session:
                repo = RevenueRepository(session)
                existing = await repo.get_department_split(invoice.id, name, tenant_id)
                if existing is not None:
                    return await repo.update(existing, data)
                return await repo.create(data)

    results = await asyncio.gather(
        *(_upsert(name, data) for name, data in prepared),
        return_exceptions=True,
    )

    revenues = []
    failures: list[tuple[str, BaseException]] = []
    for (name, _), result in zip(prepared, results):
        if isinstance(result, BaseException):
            logger.error(
                "Department revenue upsert failed for invoice %s, department %s: %s",
                base["invoice_number"] or invoice.id, name, result,
            )
            failures.append((name, result))
        else:
            revenues.append(result)

    if failures:
        raise SplitAllocationError(failures, revenues)

    logger.info(
        "Synced %d department-wise revenue entries for invoice %s",
        len(revenues), base["invoice_number"] or invoice.id,
    )
    return revenues
