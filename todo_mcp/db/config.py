"""Database configuration for the Todo MCP server."""
from typing import Callable, Generator, Optional, TypeVar
import asyncio
import logging

from sqlmodel import create_engine, Session
from sqlalchemy import event
from sqlalchemy.engine import Engine

from todo_mcp.config import get_settings

logger = logging.getLogger(__name__)

T = TypeVar("T")

_engine: Optional[Engine] = None


def create_db_engine(database_url: str, connect_timeout: int = 10, **kwargs) -> Engine:
    """Create a SQLModel engine for the given URL."""
    if database_url.startswith("sqlite"):
        logger.info(f"[DB CONFIG] Using SQLite database: {database_url}")
        connect_args = {"check_same_thread": False}
        engine = create_engine(database_url, echo=False, connect_args=connect_args, **kwargs)

        @event.listens_for(engine, "connect")
        def set_sqlite_pragma(dbapi_connection, connection_record):
            cursor = dbapi_connection.cursor()
            cursor.execute("PRAGMA foreign_keys=ON")
            cursor.close()

        return engine

    logger.info("[DB CONFIG] Using PostgreSQL database")
    # Bounded connect so a dead backend fails the command instead of hanging it
    connect_args = {"connect_timeout": connect_timeout}
    return create_engine(
        database_url,
        echo=False,
        pool_pre_ping=True,
        connect_args=connect_args,
        **kwargs,
    )


def get_engine() -> Engine:
    """Get the process-wide engine, creating it on first use."""
    global _engine
    if _engine is None:
        settings = get_settings()
        _engine = create_db_engine(settings.database_url, settings.db_connect_timeout)
    return _engine


def get_session() -> Generator[Session, None, None]:
    """Dependency for getting database sessions."""
    with Session(get_engine()) as session:
        yield session


async def run_in_session(engine: Engine, work: Callable[[Session], T]) -> T:
    """Run ``work(session)`` in a worker thread with a fresh session."""
    def _run() -> T:
        with Session(engine) as session:
            return work(session)

    return await asyncio.to_thread(_run)
