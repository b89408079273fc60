# DB connections

import asyncio
from functools import lru_cache
from sqlalchemy.engine import URL
from sqlalchemy.ext.asyncio import AsyncEngine, create_async_engine
from sqlalchemy.schema import CreateTable
from app.core.aws import get_client
from app.core.config import settings
from app.models.event_count import EventCount
from app.services.secrets import SecretStore
import structlog

logger = structlog.get_logger()


class CounterDatabase:
    """
    Lazily-connected handle to the counter database

    The engine is built on first use from credentials held in the secret
    store and reused for the lifetime of the process. A failed connect
    leaves the handle empty so the next caller starts over.
    """

    def __init__(
            self,
            secret_store: SecretStore,
            secret_id: str | None,
            host: str | None,
            database: str | None,
            port: int = 5432,
            connect_timeout: int = 5,
            sslmode: str = "require",
            echo: bool = False,
            engine_factory=create_async_engine
    ):
        self.secret_store = secret_store
        self.secret_id = secret_id
        self.host = host
        self.database = database
        self.port = port
        self.connect_timeout = connect_timeout
        self.sslmode = sslmode
        self.echo = echo
        self._engine_factory = engine_factory
        self._engine: AsyncEngine | None = None
        self._lock = asyncio.Lock()

    @property
    def is_connected(self) -> bool:
        return self._engine is not None

    @property
    def engine(self) -> AsyncEngine:
        if self._engine is None:
            raise RuntimeError("Counter database not initialized. Call connect() first.")
        return self._engine

    async def connect(self) -> AsyncEngine:
        """Connect and make sure the counter table exists (no-op when connected)"""
        if self._engine is not None:
            return self._engine

        async with self._lock:
            if self._engine is not None:
                return self._engine

            logger.info("database_init_started", host=self.host, database=self.database)

            credentials = await asyncio.to_thread(
                self.secret_store.get_database_credentials, self.secret_id
            )
            url = URL.create(
                "postgresql+psycopg",
                username=credentials.username,
                password=credentials.password,
                host=self.host,
                port=self.port,
                database=self.database
            )
            engine = self._engine_factory(
                url,
                echo=self.echo,
                pool_pre_ping=True,
                connect_args={
                    "connect_timeout": self.connect_timeout,
                    "sslmode": self.sslmode
                }
            )

            try:
                async with engine.begin() as conn:
                    await conn.execute(CreateTable(EventCount.__table__, if_not_exists=True))
            except Exception as e:
                logger.error("database_init_failed", error_type=type(e).__name__, error=str(e))
                await engine.dispose()
                raise

            self._engine = engine
            logger.info("database_connected", table=EventCount.__tablename__)
            return engine

    async def close(self) -> None:
        if self._engine is not None:
            await self._engine.dispose()
            self._engine = None


@lru_cache
def get_counter_database() -> CounterDatabase:
    """Dependency for the process-wide counter database handle"""
    return CounterDatabase(
        secret_store=SecretStore(get_client("secretsmanager")),
        secret_id=settings.rds_secret_arn,
        host=settings.rds_db_hostname,
        database=settings.rds_db_name,
        port=settings.rds_db_port,
        connect_timeout=settings.db_connect_timeout,
        sslmode=settings.db_sslmode,
        echo=settings.debug
    )
