# revenue_sync/infrastructure/queue/sweep_jobs.py

import uuid

from loguru import logger

from revenue_sync.core.db import AsyncSessionLocal
from revenue_sync.domain.services.ledger_sync import sweep, sweep_all_tenants


async def sweep_tenant_job(ctx: dict, tenant_id: str) -> dict:
    """
    Arq job: reconcile all outstanding invoices of one tenant.
    This is executed by the Arq worker, NOT by FastAPI directly.
    """
    logger.info("Arq job sweep_tenant_job: tenant={}", tenant_id)

    async with AsyncSessionLocal() as db:
        summary = await sweep(uuid.UUID(tenant_id), db, session_factory=AsyncSessionLocal)

    return {
        "total": summary.total,
        "reconciled": summary.reconciled,
        "skipped": summary.skipped,
        "failed": summary.failed,
    }


async def sweep_all_tenants_job(ctx: dict) -> int:
    """Arq cron job: sweep every tenant that has collectible invoices without revenue."""
    async with AsyncSessionLocal() as db:
        results = await sweep_all_tenants(db, session_factory=AsyncSessionLocal)

    failed = sum(len(s.failed) for s in results.values())
    if failed:
        logger.warning("Scheduled revenue sweep: {} tenant(s), {} failed invoice(s)", len(results), failed)
    else:
        logger.info("Scheduled revenue sweep: {} tenant(s) swept", len(results))
    return len(results)
