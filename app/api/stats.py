# GET /stats/*

from fastapi import APIRouter, Depends, HTTPException, Query
from typing import List
from app.core.database import CounterDatabase, get_counter_database
from app.services.counters import EventCounterService
from app.schemas.analytics import EventCountResponse
import structlog

logger = structlog.get_logger()
router = APIRouter(prefix="/stats", tags=["analytics"])


@router.get("/event-counts", response_model=List[EventCountResponse])
async def get_event_counts(
        limit: int = Query(default=10, ge=1, le=100, description="Number of event types"),
        database: CounterDatabase = Depends(get_counter_database)
):
    """
    Get event types with the most ingested events.

    - **limit**: Number of event types to return (max 100)
    """
    try:
        engine = await database.connect()
        service = EventCounterService(engine)
        result = await service.top_counts(limit)

        logger.info("event_counts_query_executed", limit=limit)
        return result

    except Exception as e:
        logger.error("event_counts_query_failed", error_type=type(e).__name__, error=str(e))
        raise HTTPException(status_code=500, detail="Failed to fetch event counts")
