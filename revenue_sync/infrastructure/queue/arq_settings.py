# revenue_sync/infrastructure/queue/arq_settings.py

from arq import cron, func
from arq.connections import RedisSettings
from loguru import logger

from revenue_sync.core.config import settings
from revenue_sync.core.logging_config import setup_logging
from revenue_sync.domain.services.ledger_sync import drain_backlinks
from revenue_sync.infrastructure.queue.sweep_jobs import sweep_all_tenants_job, sweep_tenant_job


class WorkerSettings:
    """
    Used by:
        arq revenue_sync.infrastructure.queue.arq_settings.WorkerSettings
    """

    # Redis connection
    redis_settings = RedisSettings.from_dsn(settings.REDIS_URL)

    # Jobs this worker can execute
    # keep_result=0 so the deduplicating job id frees up as soon as a sweep ends
    functions = [func(sweep_tenant_job, keep_result=0)]

    # Hourly safety net for invoices whose reconciliation trigger was missed
    cron_jobs = (
        [cron(sweep_all_tenants_job, minute={settings.SWEEP_CRON_MINUTE}, unique=True)]
        if settings.SWEEP_ENABLED
        else []
    )

    # Each sweep is sequential; two tenants at a time
    max_jobs = 2
    allow_abort_jobs = True

    @staticmethod
    async def on_startup(ctx):
        """
        Called once when the worker starts.
        """
        setup_logging()
        logger.info("ARQ worker starting up, Redis DSN={}", settings.REDIS_URL)

    @staticmethod
    async def on_shutdown(ctx):
        """
        Called once when the worker is shutting down.
        """
        await drain_backlinks()
        logger.info("ARQ worker shutting down")
