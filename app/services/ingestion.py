import asyncio
from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime, timezone
from functools import lru_cache
from typing import Any, Dict, Optional
from uuid import uuid4
from app.core.aws import get_client, get_resource
from app.core.config import settings
from app.core.database import CounterDatabase, get_counter_database
from app.core.exceptions import MalformedEventError
from app.schemas.event import (
    ErrorResponse,
    IncomingEvent,
    IngestResponse,
    InvalidEventResponse,
    NormalizedEventRecord,
    parse_event_body,
)
from app.services.counters import EventCounterService
from app.services.storage import EventRecordStore, RawEventStore, raw_event_key
import structlog
from structlog.typing import FilteringBoundLogger


@dataclass(frozen=True)
class IngestResult:
    """HTTP status and JSON body for one processed request"""

    status_code: int
    body: Dict[str, Any]


def new_event_identity() -> tuple[str, str]:
    """Random event id and the receipt time as ISO-8601 UTC (millisecond precision)"""
    event_id = str(uuid4())
    received_at = datetime.now(timezone.utc).isoformat(timespec="milliseconds")
    return event_id, received_at.replace("+00:00", "Z")


class IngestionStrategy(ABC):
    """
    Turns a raw request body into stored event data

    Subclasses decide what happens when a backend write fails. Malformed
    bodies are rejected with 400 before anything is written, whatever the
    strategy.
    """

    mode: str

    def __init__(
            self,
            raw_store: RawEventStore,
            record_store: EventRecordStore,
            logger: Optional[FilteringBoundLogger] = None
    ):
        self.raw_store = raw_store
        self.record_store = record_store
        self.logger = logger if logger is not None else structlog.get_logger()

    @abstractmethod
    async def process(self, raw_body: str | bytes | None) -> IngestResult:
        ...

    def _parse(self, raw_body: str | bytes | None) -> tuple[str, IncomingEvent]:
        try:
            text = raw_body.decode("utf-8") if isinstance(raw_body, bytes) else raw_body
        except UnicodeDecodeError as e:
            raise MalformedEventError() from e

        return text, parse_event_body(text)

    def _invalid(self, error: MalformedEventError) -> IngestResult:
        cause = error.__cause__ or error
        self.logger.warning("event_body_invalid", error_type=type(cause).__name__, error=str(cause))
        return IngestResult(status_code=400, body=InvalidEventResponse().model_dump())

    @staticmethod
    def _accepted(event_id: str) -> IngestResult:
        return IngestResult(
            status_code=200,
            body=IngestResponse(event_id=event_id).model_dump(by_alias=True)
        )

    async def _save_raw(self, event_id: str, received_at: str, body: str) -> None:
        key = raw_event_key(received_at, event_id)
        try:
            await asyncio.to_thread(self.raw_store.put, key, body)
        except Exception as e:
            self.logger.error(
                "raw_event_save_failed",
                event_id=event_id,
                key=key,
                error_type=type(e).__name__,
                error=str(e)
            )
            raise

        self.logger.info("raw_event_saved", event_id=event_id, key=key)

    async def _save_record(self, event_id: str, received_at: str, event: IncomingEvent) -> None:
        record = NormalizedEventRecord(
            event_id=event_id,
            received_at=received_at,
            event_type=event.event_type,
            url=event.url
        )
        try:
            await asyncio.to_thread(self.record_store.put, record.to_item())
        except Exception as e:
            self.logger.error(
                "event_record_save_failed",
                event_id=event_id,
                error_type=type(e).__name__,
                error=str(e)
            )
            raise

        self.logger.info("event_record_saved", event_id=event_id, event_type=event.event_type)


class BestEffortIngestion(IngestionStrategy):
    """
    Fire-and-forget side writes

    The raw copy and the normalized record are written independently; a
    failed write is logged and otherwise ignored. Any parsed request gets
    a 200. The counter database is not used.
    """

    mode = "best_effort"

    async def process(self, raw_body: str | bytes | None) -> IngestResult:
        try:
            text, event = self._parse(raw_body)
        except MalformedEventError as e:
            return self._invalid(e)

        event_id, received_at = new_event_identity()
        self.logger.info("event_received", event_id=event_id, event_type=event.event_type)

        # Failures were logged by the writers
        await asyncio.gather(
            self._save_raw(event_id, received_at, text),
            self._save_record(event_id, received_at, event),
            return_exceptions=True
        )

        return self._accepted(event_id)


class StrictIngestion(IngestionStrategy):
    """
    All-or-nothing writes

    Connects the counter database first, then issues the raw write, the
    record write and the counter upsert together. If any of them fails the
    request fails with 500 and the error's class name and message; writes
    that already went through are not rolled back.
    """

    mode = "strict"

    def __init__(
            self,
            raw_store: RawEventStore,
            record_store: EventRecordStore,
            database: CounterDatabase,
            logger: Optional[FilteringBoundLogger] = None
    ):
        super().__init__(raw_store, record_store, logger=logger)
        self.database = database

    async def process(self, raw_body: str | bytes | None) -> IngestResult:
        try:
            text, event = self._parse(raw_body)
        except MalformedEventError as e:
            return self._invalid(e)

        try:
            engine = await self.database.connect()

            event_id, received_at = new_event_identity()
            self.logger.info("event_received", event_id=event_id, event_type=event.event_type)

            counters = EventCounterService(engine)
            results = await asyncio.gather(
                self._save_raw(event_id, received_at, text),
                self._save_record(event_id, received_at, event),
                counters.increment(event.event_type),
                return_exceptions=True
            )

            # Every write has finished; report the first failure in issue order
            failures = [r for r in results if isinstance(r, BaseException)]
            if failures:
                raise failures[0]

        except Exception as e:
            self.logger.error(
                "ingestion_failed",
                error_type=type(e).__name__,
                error=str(e),
                exc_info=True
            )
            return IngestResult(
                status_code=500,
                body=ErrorResponse(
                    error_name=type(e).__name__,
                    error_message=str(e)
                ).model_dump(by_alias=True)
            )

        self.logger.info("event_ingested", event_id=event_id)
        return self._accepted(event_id)


def build_ingestion_strategy(
        mode: str,
        raw_store: RawEventStore,
        record_store: EventRecordStore,
        database: CounterDatabase | None = None,
        logger: Optional[FilteringBoundLogger] = None
) -> IngestionStrategy:
    """Pick the strategy for this deployment"""
    if mode == BestEffortIngestion.mode:
        return BestEffortIngestion(raw_store, record_store, logger=logger)
    if mode == StrictIngestion.mode:
        if database is None:
            raise ValueError("strict ingestion requires a counter database")
        return StrictIngestion(raw_store, record_store, database, logger=logger)
    raise ValueError(f"Unknown ingestion mode: {mode}")


@lru_cache
def get_ingestion_strategy() -> IngestionStrategy:
    """Dependency for the configured ingestion strategy"""
    return build_ingestion_strategy(
        settings.ingestion_mode,
        raw_store=RawEventStore(get_client("s3"), settings.s3_bucket_name),
        record_store=EventRecordStore(get_resource("dynamodb"), settings.ddb_table_name),
        database=get_counter_database() if settings.ingestion_mode == StrictIngestion.mode else None
    )
