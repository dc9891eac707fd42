"""Database session management for the Closetlog application.

This module handles all aspects of database connection management including:
- Async SQLAlchemy session management
- Connection pooling configuration
- Transaction handling
- Slow query logging and metrics
- SQLite foreign key and SAVEPOINT support for local runs and tests

The implementation uses SQLAlchemy 2.0 async patterns. The manager is built
lazily and handed to request handlers through the ``get_session`` dependency,
so nothing holds a module-level connection.
"""

from contextlib import asynccontextmanager
from functools import lru_cache, wraps
from typing import AsyncGenerator, Optional
from sqlalchemy.ext.asyncio import (
    create_async_engine,
    AsyncSession,
    AsyncEngine,
    async_sessionmaker
)
from sqlalchemy import event, text
import time
from opentelemetry import trace
from opentelemetry.trace import Status, StatusCode

from app.core.config import get_settings, DatabaseSettings
from app.core.logging import get_logger
from app.models.database import Base

# Initialize components
logger = get_logger(__name__)
tracer = trace.get_tracer(__name__)

class DatabaseMetrics:
    """Track database performance metrics."""

    def __init__(self, slow_query_threshold: float = 1.0):
        self.query_count = 0
        self.slow_queries = 0
        self.error_count = 0

        # seconds
        self.slow_query_threshold = slow_query_threshold

    def record_query(self, duration: float):
        """Record query execution metrics."""
        self.query_count += 1
        if duration > self.slow_query_threshold:
            self.slow_queries += 1

    def record_error(self):
        """Record database error."""
        self.error_count += 1

def configure_sqlite(engine: AsyncEngine):
    """Enable foreign keys and driver-level BEGIN so SAVEPOINTs behave."""
    @event.listens_for(engine.sync_engine, "connect")
    def on_connect(dbapi_connection, connection_record):
        # let SQLAlchemy emit BEGIN itself
        dbapi_connection.isolation_level = None
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    @event.listens_for(engine.sync_engine, "begin")
    def on_begin(conn):
        conn.exec_driver_sql("BEGIN")

class SessionManager:
    """Manage database sessions and connections."""

    def __init__(self, db_settings: Optional[DatabaseSettings] = None, engine: Optional[AsyncEngine] = None):
        """Initialize session manager with configuration."""
        self.db_settings = db_settings or get_settings().DB
        self.engine = engine or self._create_engine()
        self.session_factory = self._create_session_factory()
        self.metrics = DatabaseMetrics(self.db_settings.DB_SLOW_QUERY_SECONDS)

        if self.engine.dialect.name == "sqlite":
            configure_sqlite(self.engine)
        self._setup_engine_events()

    def _create_engine(self) -> AsyncEngine:
        """Create SQLAlchemy engine with proper configuration."""
        if self.db_settings.is_sqlite:
            return create_async_engine(
                self.db_settings.DATABASE_URL,
                echo=self.db_settings.SQL_ECHO
            )
        return create_async_engine(
            self.db_settings.DATABASE_URL,
            echo=self.db_settings.SQL_ECHO,
            pool_size=self.db_settings.DB_POOL_SIZE,
            max_overflow=self.db_settings.DB_MAX_OVERFLOW,
            pool_timeout=self.db_settings.DB_POOL_TIMEOUT,
            pool_recycle=self.db_settings.DB_POOL_RECYCLE,
            pool_pre_ping=True,
            connect_args={
                "command_timeout": 60,
                "server_settings": {"application_name": "closetlog"}
            }
        )

    def _create_session_factory(self) -> async_sessionmaker:
        """Create session factory with proper configuration."""
        return async_sessionmaker(
            bind=self.engine,
            class_=AsyncSession,
            expire_on_commit=False,
            autoflush=False
        )

    def _setup_engine_events(self):
        """Set up SQLAlchemy engine event listeners."""
        @event.listens_for(self.engine.sync_engine, 'before_cursor_execute')
        def before_cursor_execute(conn, cursor, statement, parameters, context, executemany):
            conn.info.setdefault('query_start_time', []).append(time.time())

        @event.listens_for(self.engine.sync_engine, 'after_cursor_execute')
        def after_cursor_execute(conn, cursor, statement, parameters, context, executemany):
            start_time = conn.info['query_start_time'].pop()
            duration = time.time() - start_time
            self.metrics.record_query(duration)

            if duration > self.metrics.slow_query_threshold:
                logger.warning(
                    "Slow query detected",
                    duration=duration,
                    statement=statement
                )

    async def create_all(self):
        """Create every table known to the model metadata."""
        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)

    async def drop_all(self):
        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.drop_all)

    @asynccontextmanager
    async def session(self) -> AsyncGenerator[AsyncSession, None]:
        """Get database session with automatic cleanup."""
        session: AsyncSession = self.session_factory()
        try:
            yield session
        except Exception as e:
            self.metrics.record_error()
            logger.error("Session error", error=e)
            await session.rollback()
            raise
        finally:
            await session.close()

    @asynccontextmanager
    async def transaction(self) -> AsyncGenerator[AsyncSession, None]:
        """Get database session with transaction management."""
        async with self.session() as session:
            async with session.begin():
                yield session

    def get_metrics(self) -> dict:
        """Get current database metrics."""
        return {
            "query_count": self.metrics.query_count,
            "slow_queries": self.metrics.slow_queries,
            "error_count": self.metrics.error_count
        }

    async def healthcheck(self) -> bool:
        """Perform database health check."""
        try:
            async with self.session() as session:
                await session.execute(text("SELECT 1"))
            return True
        except Exception as e:
            logger.error("Database health check failed", error=e)
            return False

    async def dispose(self):
        await self.engine.dispose()

@lru_cache()
def get_session_manager() -> SessionManager:
    """Get the process-wide session manager, built on first use."""
    return SessionManager()

async def init_db():
    """Create tables when running against a fresh local database."""
    await get_session_manager().create_all()

# Dependency for FastAPI
async def get_session() -> AsyncGenerator[AsyncSession, None]:
    """FastAPI dependency for database sessions."""
    async with get_session_manager().session() as session:
        yield session

def with_tracing(func):
    """Decorator for database operation tracing."""
    @wraps(func)
    async def wrapper(*args, **kwargs):
        with tracer.start_as_current_span(
            f"db_{func.__name__}",
            kind=trace.SpanKind.CLIENT
        ) as span:
            try:
                result = await func(*args, **kwargs)
                span.set_status(Status(StatusCode.OK))
                return result
            except Exception as e:
                span.set_status(
                    Status(StatusCode.ERROR, str(e))
                )
                raise
    return wrapper
