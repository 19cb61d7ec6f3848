# revenue_sync/infrastructure/queue/sweep_queue.py

import uuid

from arq.connections import ArqRedis, RedisSettings, create_pool
from loguru import logger

from revenue_sync.core.config import settings

_redis_pool: ArqRedis | None = None


async def get_redis_pool() -> ArqRedis:
    """
    Creates (once) and returns an Arq Redis pool.
    """
    global _redis_pool
    if _redis_pool is None:
        logger.info("Creating ARQ Redis pool: {}", settings.REDIS_URL)
        _redis_pool = await create_pool(RedisSettings.from_dsn(settings.REDIS_URL))
        logger.success("ARQ Redis pool ready")

    return _redis_pool


async def enqueue_tenant_sweep(tenant_id: uuid.UUID) -> str | None:
    """
    Enqueue a background revenue sweep for one tenant.
    Returns the job id, or None if an identical job is already queued.
    """
    redis = await get_redis_pool()

    job = await redis.enqueue_job(
        "sweep_tenant_job",  # ← job name in WorkerSettings.functions
        str(tenant_id),
        _job_id=f"revenue-sweep-{tenant_id}",
    )
    if job is None:
        logger.info("ARQ → revenue sweep for {} already queued", tenant_id)
        return None

    logger.info("ARQ → Enqueued revenue sweep for {}", tenant_id)
    return job.job_id
