"""
Predictor League Engine API Server

FastAPI server for fixture reads, prediction submission, leaderboards and
operator pipeline triggers. The fixture sync and match results pipelines
also run on intervals inside this process.

Usage:
    uvicorn main:app --host 0.0.0.0 --port 8001

Environment Variables:
    DATABASE_URL - PostgreSQL (or sqlite:///...) connection URL
    FOOTBALL_DATA_API_KEY - football-data.org API token
    PIPELINE_API_TOKEN - Bearer token for the /v1/pipelines endpoints
    SCHEDULER_ENABLED - Set to false to run the API without background jobs
"""

from contextlib import asynccontextmanager
from datetime import datetime

import pytz
from fastapi import FastAPI

from core.correlation_middleware import CorrelationMiddleware
from core.logging import setup_logging, get_logger
from core.middleware import setup_middleware
from core.scheduler import get_scheduler
from core.settings import settings
from db.base import close_db, init_db
from api.v1 import fixtures, leagues, pipelines


@asynccontextmanager
async def lifespan(app: FastAPI):
    setup_logging(
        log_level=settings.log_level,
        json_format=settings.log_format == "json",
        service_name=settings.service_name,
    )
    log = get_logger()
    log.info("api_starting", service=settings.service_name)

    init_db()
    log.info("database_initialized")

    scheduler = get_scheduler()
    if settings.scheduler_enabled:
        scheduler.start()

    yield

    scheduler.stop()
    close_db()
    log.info("api_stopped")


app = FastAPI(
    title="Predictor League Engine",
    description="Football prediction leagues: fixtures, predictions, scoring and leaderboards",
    version="1.0.0",
    lifespan=lifespan,
)

# Middlewares (order matters: last added = outermost)
app.add_middleware(CorrelationMiddleware)
setup_middleware(app, cors_origins=settings.cors_origins)

app.include_router(fixtures.router, prefix="/v1")
app.include_router(leagues.router, prefix="/v1")
app.include_router(pipelines.router, prefix="/v1")


@app.get("/health")
async def health_check():
    """Health check endpoint (no auth required)."""
    return {"status": "healthy", "timestamp": datetime.now(pytz.utc).isoformat()}


@app.get("/ping")
async def ping():
    return {"message": "Pong!"}


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host="0.0.0.0", port=8001)
