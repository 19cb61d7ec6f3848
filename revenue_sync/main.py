from contextlib import asynccontextmanager

from fastapi import FastAPI

from revenue_sync.api.v1 import v1_router
from revenue_sync.core.config import settings
from revenue_sync.core.logging_config import setup_logging
from revenue_sync.domain.services.ledger_sync import drain_backlinks


@asynccontextmanager
async def lifespan(app: FastAPI):
    setup_logging()
    yield
    # Let in-flight invoice back-links land before the loop goes away
    await drain_backlinks()


app = FastAPI(title=settings.APP_NAME, debug=settings.DEBUG, lifespan=lifespan)

app.include_router(v1_router)


@app.get("/health")
async def health():
    return {"status": "ok", "service": settings.APP_NAME}
