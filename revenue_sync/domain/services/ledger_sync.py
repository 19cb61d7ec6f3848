# revenue_sync/domain/services/ledger_sync.py
"""
Ledger Upsert Engine and Reconciliation Sweep.

Keeps exactly one invoice-level Revenue row per (invoice, tenant) in step
with the invoice, and links the invoice back to it. The back-link write runs
as a separate task on its own session so a slow or failing invoice update
never fails the reconciliation itself.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any
from uuid import UUID

from revenue_sync.domain.models.revenue import COLLECTIBLE_STATUSES, SweepSummary
from revenue_sync.domain.services.currency_normalizer import raw_received_amount
from revenue_sync.domain.services.revenue_builder import build_revenue_data
from revenue_sync.infrastructure.db.repositories.invoice_repository import InvoiceRepository
from revenue_sync.infrastructure.db.repositories.revenue_repository import RevenueRepository

logger = logging.getLogger("ledger_sync")

# Strong references so in-flight back-link tasks are not garbage collected
_pending_backlinks: set[asyncio.Task] = set()


def _default_session_factory():
    from revenue_sync.core.db import AsyncSessionLocal
    return AsyncSessionLocal


def is_collectible(invoice: Any) -> bool:
    """Paid or Partial, or anything with money already received."""
    if getattr(invoice, "status", None) in COLLECTIBLE_STATUSES:
        return True
    return raw_received_amount(invoice) > 0


def _same_id(left: Any, right: Any) -> bool:
    if left is None or right is None:
        return False
    return str(left) == str(right)


# ---------------------------------------------------------------------------
# Back-link task
# ---------------------------------------------------------------------------

async def _write_backlink(
    invoice_id: UUID,
    tenant_id: UUID,
    revenue_id: UUID,
    session_factory,
) -> None:
    try:
        async with session_factory() as session:
            linked = await InvoiceRepository(session).set_revenue_id(
                invoice_id, tenant_id, revenue_id
            )
    except Exception:
        logger.exception("Revenue back-link failed for invoice %s", invoice_id)
        return

    if linked:
        logger.debug("Invoice %s linked to revenue %s", invoice_id, revenue_id)
    else:
        logger.warning(
            "Revenue back-link skipped: invoice %s not found for tenant %s",
            invoice_id, tenant_id,
        )


def _on_backlink_done(task: asyncio.Task) -> None:
    _pending_backlinks.discard(task)
    if task.cancelled():
        logger.warning("Revenue back-link task %s was cancelled", task.get_name())


def schedule_invoice_backlink(
    invoice_id: UUID,
    tenant_id: UUID,
    revenue_id: UUID,
    session_factory=None,
) -> asyncio.Task:
    """Spawn the invoice.revenue_id update; errors go to the log only."""
    factory = session_factory or _default_session_factory()
    task = asyncio.create_task(
        _write_backlink(invoice_id, tenant_id, revenue_id, factory),
        name=f"revenue-backlink-{invoice_id}",
    )
    _pending_backlinks.add(task)
    task.add_done_callback(_on_backlink_done)
    return task


def pending_backlinks() -> int:
    return len(_pending_backlinks)


async def drain_backlinks() -> None:
    """Wait for every scheduled back-link write to finish."""
    while _pending_backlinks:
        await asyncio.gather(*list(_pending_backlinks), return_exceptions=True)


# ---------------------------------------------------------------------------
# Ledger upsert
# ---------------------------------------------------------------------------

async def reconcile_one(
    invoice: Any,
    tenant_id: UUID,
    db: Any,
    *,
    session_factory=None,
    backlinks: list[asyncio.Task] | None = None,
):
    """
    Create or update the invoice-level Revenue row for one invoice.

    Returns the Revenue row, or None when the invoice is not collectible yet.
    Raises RevenueValidationError (before any write) for invoices without a
    client name. A back-link task scheduled here is appended to ``backlinks``
    when given.
    """
    if invoice is None or getattr(invoice, "id", None) is None:
        return None
    if not is_collectible(invoice):
        return None

    data = build_revenue_data(invoice, tenant_id)
    repo = RevenueRepository(db)

    # Prefer the back-link, fall back to the business key
    revenue = None
    linked_id = getattr(invoice, "revenue_id", None)
    if linked_id:
        revenue = await repo.get_by_id(linked_id, tenant_id)
        # A stale link may point at a split row or at another invoice's row
        if revenue is not None and (
            revenue.is_department_split or not _same_id(revenue.invoice_id, invoice.id)
        ):
            revenue = None
    if revenue is None:
        revenue = await repo.get_for_invoice(invoice.id, tenant_id)

    if revenue is not None:
        revenue = await repo.update(revenue, data)
    else:
        revenue = await repo.create(data)
        logger.info(
            "Revenue %s created for invoice %s",
            revenue.id, data["invoice_number"] or invoice.id,
        )

    if not _same_id(linked_id, revenue.id):
        task = schedule_invoice_backlink(invoice.id, tenant_id, revenue.id, session_factory)
        if backlinks is not None:
            backlinks.append(task)

    return revenue


# ---------------------------------------------------------------------------
# Sweep
# ---------------------------------------------------------------------------

async def sweep(
    tenant_id: UUID,
    db: Any,
    *,
    session_factory=None,
    stop_event: asyncio.Event | None = None,
) -> SweepSummary:
    """
    Reconcile every Paid/Partial invoice of a tenant that has no revenue link.

    Invoices are processed one at a time; a failure is logged and the sweep
    moves on. ``stop_event`` is checked between invoices.
    """
    inv_repo = InvoiceRepository(db)
    candidates = await inv_repo.list_unreconciled(tenant_id)
    invoice_ids = [inv.id for inv in candidates]

    summary = SweepSummary(total=len(invoice_ids))
    backlinks: list[asyncio.Task] = []

    for invoice_id in invoice_ids:
        if stop_event is not None and stop_event.is_set():
            summary.stopped = True
            logger.info("Revenue sweep for tenant %s stopped early", tenant_id)
            break

        label = str(invoice_id)
        try:
            # Reload each time: a rollback after a failed invoice expires loaded rows
            invoice = await inv_repo.get_by_id(invoice_id, tenant_id)
            if invoice is None:
                summary.skipped += 1
                continue
            label = invoice.invoice_number or label

            revenue = await reconcile_one(
                invoice, tenant_id, db, session_factory=session_factory, backlinks=backlinks
            )
        except Exception as exc:
            await db.rollback()
            summary.failed.append(label)
            logger.error("Revenue sync failed for invoice %s: %s", label, exc)
            continue

        if revenue is None:
            summary.skipped += 1
        else:
            summary.reconciled += 1

    # Wait only for back-links scheduled by this sweep
    if backlinks:
        await asyncio.gather(*backlinks, return_exceptions=True)

    logger.info(
        "Revenue sweep done: tenant=%s, total=%d, reconciled=%d, skipped=%d, failed=%d",
        tenant_id, summary.total, summary.reconciled, summary.skipped, len(summary.failed),
    )
    return summary


async def sweep_all_tenants(
    db: Any,
    *,
    session_factory=None,
    stop_event: asyncio.Event | None = None,
) -> dict[UUID, SweepSummary]:
    """Sweep each tenant with outstanding invoices, one tenant after another."""
    tenants = await InvoiceRepository(db).list_tenants_with_unreconciled()
    results: dict[UUID, SweepSummary] = {}
    for tenant_id in tenants:
        if stop_event is not None and stop_event.is_set():
            break
        results[tenant_id] = await sweep(
            tenant_id, db, session_factory=session_factory, stop_event=stop_event
        )
    return results
