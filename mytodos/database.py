"""Database engine construction and schema initialization."""
import logging
import time
from typing import Optional

from sqlalchemy import event
from sqlalchemy.engine import Engine
from sqlalchemy.pool import StaticPool
from sqlmodel import SQLModel, create_engine

from mytodos.config import Settings, settings as default_settings

logger = logging.getLogger(__name__)


def create_db_engine(
    database_url: str,
    echo: bool = False,
    slow_query_ms: Optional[int] = None,
) -> Engine:
    """
    Build the engine (and its connection pool) for a database URL.

    SQLite engines get foreign-key enforcement switched on so that
    `ON DELETE CASCADE` behaves as it does on PostgreSQL. An in-memory
    SQLite URL shares a single connection across threads.
    """
    kwargs = {"echo": echo}
    is_sqlite = database_url.startswith("sqlite")

    if is_sqlite:
        kwargs["connect_args"] = {"check_same_thread": False}
        if database_url in ("sqlite://", "sqlite:///:memory:"):
            kwargs["poolclass"] = StaticPool
    else:
        kwargs["pool_pre_ping"] = True
        kwargs["pool_size"] = 20

    engine = create_engine(database_url, **kwargs)

    if is_sqlite:
        @event.listens_for(engine, "connect")
        def _enable_foreign_keys(dbapi_connection, connection_record):
            cursor = dbapi_connection.cursor()
            cursor.execute("PRAGMA foreign_keys=ON")
            cursor.close()

    if slow_query_ms:
        _log_slow_queries(engine, slow_query_ms)

    return engine


def _log_slow_queries(engine: Engine, threshold_ms: int) -> None:
    """Warn about statements slower than `threshold_ms`."""

    @event.listens_for(engine, "before_cursor_execute")
    def _start_timer(conn, cursor, statement, parameters, context, executemany):
        conn.info.setdefault("query_start_time", []).append(time.perf_counter())

    @event.listens_for(engine, "after_cursor_execute")
    def _stop_timer(conn, cursor, statement, parameters, context, executemany):
        started = conn.info["query_start_time"].pop()
        duration_ms = (time.perf_counter() - started) * 1000
        if duration_ms > threshold_ms:
            logger.warning(
                f"Slow query ({duration_ms:.0f}ms, rows={cursor.rowcount}): {statement}"
            )


def init_db(engine: Engine) -> None:
    """Create all tables that do not exist yet."""
    # Register table metadata before create_all
    from mytodos.models import AiHistory, Todo, User  # noqa: F401

    SQLModel.metadata.create_all(engine)
    logger.info("Database tables created/verified")


def engine_from_settings(config: Optional[Settings] = None) -> Engine:
    config = config or default_settings
    return create_db_engine(
        config.DATABASE_URL,
        echo=config.DATABASE_ECHO,
        slow_query_ms=config.SLOW_QUERY_MS,
    )
