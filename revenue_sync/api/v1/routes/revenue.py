# revenue_sync/api/v1/routes/revenue.py
"""Revenue ledger API: listing, on-demand reconciliation and department splits."""

from __future__ import annotations

import logging
import uuid

from fastapi import APIRouter, Depends, HTTPException, Query, status
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncSession

from revenue_sync.api.v1.deps import get_current_tenant
from revenue_sync.api.v1.envelope import error, ok, paginated, split_failures
from revenue_sync.api.v1.schemas.revenue import (
    DepartmentSplitRequest,
    RevenueResponse,
    SweepSummaryResponse,
)
from revenue_sync.core.db import get_db
from revenue_sync.domain.exceptions import (
    RevenueValidationError,
    SplitAllocationError,
    SplitValidationError,
)
from revenue_sync.domain.models.revenue import MONTHS
from revenue_sync.infrastructure.db.repositories import InvoiceRepository, RevenueRepository

logger = logging.getLogger("api.v1.revenue")

router = APIRouter(prefix="/revenue", tags=["Revenue"])


async def _load_invoice(invoice_id: uuid.UUID, tenant_id: uuid.UUID, db: AsyncSession):
    invoice = await InvoiceRepository(db).get_by_id(invoice_id, tenant_id)
    if invoice is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Invoice not found")
    return invoice


@router.get("/")
async def list_revenue(
    month: str | None = Query(None, description="Jan..Dec"),
    year: int | None = Query(None, ge=2000, le=2100),
    department: str | None = Query(None),
    split: bool | None = Query(None, description="Only department split rows (true) or only invoice rows (false)"),
    limit: int = Query(20, ge=1, le=100),
    offset: int = Query(0, ge=0),
    tenant_id: uuid.UUID = Depends(get_current_tenant),
    db: AsyncSession = Depends(get_db),
):
    """List revenue rows, after making sure collected invoices have shown up."""
    from revenue_sync.domain.services.ledger_sync import sweep

    if month and month not in MONTHS:
        raise HTTPException(status_code=422, detail="Invalid month")

    try:
        await sweep(tenant_id, db)
    except Exception:
        # Listing still works on whatever is already in the ledger
        logger.exception("Revenue sweep before listing failed for tenant %s", tenant_id)

    rows, total = await RevenueRepository(db).list_for_user(
        tenant_id,
        month=month,
        year=year,
        department=department,
        is_department_split=split,
        limit=limit,
        offset=offset,
    )
    items = [RevenueResponse.model_validate(r) for r in rows]
    return paginated(items, total, limit, offset)


@router.post("/sync")
async def sync_revenue(
    background: bool = Query(False, description="Queue the sweep on the worker instead of running it now"),
    tenant_id: uuid.UUID = Depends(get_current_tenant),
    db: AsyncSession = Depends(get_db),
):
    """Reconcile every Paid/Partial invoice that has no revenue row yet."""
    if background:
        from revenue_sync.infrastructure.queue.sweep_queue import enqueue_tenant_sweep
        job_id = await enqueue_tenant_sweep(tenant_id)
        message = "Revenue sync queued" if job_id else "Revenue sync already queued"
        return ok(data={"job_id": job_id}, message=message)

    from revenue_sync.domain.services.ledger_sync import sweep
    summary = await sweep(tenant_id, db)
    return ok(
        data=SweepSummaryResponse.from_summary(summary),
        message=f"Reconciled {summary.reconciled} of {summary.total} invoice(s)",
    )


@router.post("/invoices/{invoice_id}/reconcile")
async def reconcile_invoice(
    invoice_id: uuid.UUID,
    tenant_id: uuid.UUID = Depends(get_current_tenant),
    db: AsyncSession = Depends(get_db),
):
    """Create or refresh the revenue row of one invoice."""
    from revenue_sync.domain.services.ledger_sync import reconcile_one

    invoice = await _load_invoice(invoice_id, tenant_id, db)
    try:
        revenue = await reconcile_one(invoice, tenant_id, db)
    except RevenueValidationError as exc:
        raise HTTPException(status_code=422, detail=str(exc))

    if revenue is None:
        return ok(data=None, message="Invoice has no collections yet; nothing to do")
    return ok(data=RevenueResponse.model_validate(revenue), message="Revenue synced")


@router.post("/invoices/{invoice_id}/splits")
async def split_invoice_revenue(
    invoice_id: uuid.UUID,
    body: DepartmentSplitRequest,
    tenant_id: uuid.UUID = Depends(get_current_tenant),
    db: AsyncSession = Depends(get_db),
):
    """Record department-wise revenue for a payment split across departments."""
    from revenue_sync.domain.services.department_split import allocate_splits, validate_splits
    from revenue_sync.domain.services.ledger_sync import reconcile_one

    invoice = await _load_invoice(invoice_id, tenant_id, db)
    splits = [s.to_domain() for s in body.splits]

    try:
        validate_splits(invoice, splits, expected_total=body.payment_amount)
        await reconcile_one(invoice, tenant_id, db)
        revenues = await allocate_splits(invoice, splits, tenant_id)
    except (RevenueValidationError, SplitValidationError) as exc:
        raise HTTPException(status_code=422, detail=str(exc))
    except SplitAllocationError as exc:
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content=error(str(exc), errors=split_failures(exc)),
        )

    items = [RevenueResponse.model_validate(r) for r in revenues]
    return ok(data=items, message=f"Synced {len(items)} department revenue row(s)")
