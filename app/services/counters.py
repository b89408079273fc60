import json
from typing import Any, Dict, List
from sqlalchemy import select
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.ext.asyncio import AsyncEngine
from app.models.event_count import EventCount
import structlog

logger = structlog.get_logger()


def counter_key(event_type: Any) -> str | None:
    """Text form of an event type for the VARCHAR key (None stays None)"""
    if event_type is None or isinstance(event_type, str):
        return event_type
    if isinstance(event_type, bool):
        return "true" if event_type else "false"
    if isinstance(event_type, (dict, list)):
        return json.dumps(event_type, separators=(",", ":"), default=str)
    return str(event_type)


def build_increment_statement(event_type: Any):
    """
    INSERT ... ON CONFLICT DO UPDATE for one event type

    The increment happens inside the database, so concurrent requests for
    the same event type never lose an update.
    """
    stmt = pg_insert(EventCount).values(event_type=counter_key(event_type), count=1)
    return stmt.on_conflict_do_update(
        index_elements=[EventCount.event_type],
        set_={"count": EventCount.count + 1}
    )


class EventCounterService:
    """Per-event-type counters"""

    def __init__(self, engine: AsyncEngine):
        self.engine = engine

    async def increment(self, event_type: Any) -> None:
        async with self.engine.begin() as conn:
            await conn.execute(build_increment_statement(event_type))

        logger.info("event_count_incremented", event_type=event_type)

    async def top_counts(self, limit: int = 10) -> List[Dict[str, Any]]:
        """Counters ordered by count, highest first"""
        stmt = (
            select(EventCount.event_type, EventCount.count)
            .order_by(EventCount.count.desc(), EventCount.event_type)
            .limit(limit)
        )

        async with self.engine.connect() as conn:
            result = await conn.execute(stmt)
            rows = result.fetchall()

        return [
            {
                "event_type": row[0],
                "count": row[1]
            }
            for row in rows
        ]
