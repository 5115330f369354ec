import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator

from sqlalchemy import event
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import declarative_base

from app.core.config import settings
from app.core.exceptions import AppException, ErrorCode

logger = logging.getLogger(__name__)


def get_database_url():
    db_url = settings.DATABASE_URL
    if "postgresql" in db_url and "sslmode" not in db_url and settings.ENVIRONMENT != "development":
        return f"{db_url}?sslmode=require"
    return db_url


def use_immediate_transactions(engine: AsyncEngine) -> None:
    """
    SQLite only: take the write lock when a transaction begins.
    pysqlite defers BEGIN until the first DML, so two units of work could both read
    before either writes; BEGIN IMMEDIATE makes them serialize instead.
    """

    @event.listens_for(engine.sync_engine, "connect")
    def _disable_pysqlite_begin(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None

    @event.listens_for(engine.sync_engine, "begin")
    def _begin_immediate(conn):
        conn.exec_driver_sql("BEGIN IMMEDIATE")


def build_engine(url: str, **kwargs) -> AsyncEngine:
    new_engine = create_async_engine(url, echo=settings.SQL_ECHO, **kwargs)
    if url.startswith("sqlite"):
        use_immediate_transactions(new_engine)
    return new_engine


DATABASE_URL = get_database_url()
engine = build_engine(DATABASE_URL)
async_session_maker = async_sessionmaker(engine, expire_on_commit=False, class_=AsyncSession)
Base = declarative_base()


@asynccontextmanager
async def unit_of_work(session: AsyncSession) -> AsyncIterator[AsyncSession]:
    """
    All-or-nothing block over one session: commit when the body finishes,
    roll back on any exception. Storage failures are logged and surfaced as internal errors.
    """
    try:
        yield session
        await session.commit()
    except SQLAlchemyError as e:
        await session.rollback()
        logger.exception("Unit of work aborted by storage error: %s", e)
        AppException().raise_500("Internal server error", code=ErrorCode.internal_error)
    except BaseException:
        await session.rollback()
        raise
