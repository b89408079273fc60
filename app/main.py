from fastapi import FastAPI, Request
from contextlib import asynccontextmanager
import structlog
import time

from app.core.config import settings
from app.core.database import get_counter_database
from app.core.logging import setup_logging
from app.api import events, stats

setup_logging(log_level=settings.log_level, log_format=settings.log_format)

logger = structlog.get_logger()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Lifecycle events"""
    logger.info(
        "application_startup",
        app_name=settings.app_name,
        ingestion_mode=settings.ingestion_mode
    )
    yield
    # The counter database is only built on first use
    if get_counter_database.cache_info().currsize:
        await get_counter_database().close()
    logger.info("application_shutdown")


app = FastAPI(
    title=settings.app_name,
    debug=settings.debug,
    lifespan=lifespan
)


# Middleware for logging requests
@app.middleware("http")
async def log_requests(request: Request, call_next):
    start_time = time.time()

    response = await call_next(request)

    duration = time.time() - start_time
    logger.info(
        "request_completed",
        method=request.method,
        path=request.url.path,
        status_code=response.status_code,
        duration_ms=round(duration * 1000, 2)
    )

    return response


# Include routers
app.include_router(events.router)
app.include_router(stats.router)


@app.get("/health")
async def health_check():
    """Health check endpoint"""
    return {"status": "healthy", "app": settings.app_name, "mode": settings.ingestion_mode}


@app.get("/")
async def root():
    """Root endpoint"""
    return {
        "message": "Event Ingestion API",
        "endpoints": {
            "health": "/health",
            "events": "/events",
            "event_counts": "/stats/event-counts",
            "docs": "/docs"
        }
    }
