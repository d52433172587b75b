"""Async SQLModel database setup."""

from __future__ import annotations

import logging
from collections.abc import AsyncGenerator
from pathlib import Path

import sqlalchemy
from alembic import command
from alembic.config import Config
from alembic.migration import MigrationContext
from alembic.script import ScriptDirectory
from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, create_async_engine
from sqlalchemy.orm import sessionmaker

from tasksync.config import settings
from tasksync.db_models import (  # noqa: F401 - register tables
    ChangeLogEntry,
    LedgerEntry,
    Location,
    Task,
    TaskAction,
    TaskActionResponse,
    TaskResponse,
    User,
)

logger = logging.getLogger("tasksync.database")

_engine = None
_session_factory = None

# Absolute path to the migrations directory (sibling of tasksync/ package)
_MIGRATIONS_DIR = Path(__file__).resolve().parent.parent / "migrations"
BASELINE_REVISION = "001"

# Connection execution option asking for BEGIN IMMEDIATE
_WRITE_LOCK = "tasksync_write_lock"


def create_engine(url: str) -> AsyncEngine:
    """Build the async engine.

    SQLite transactions start deferred, so readers never wait on writers
    (WAL). Sessions opened through ``begin_write`` start with
    BEGIN IMMEDIATE instead: the write lock is taken before their first
    read, so a read-check-write unit cannot act on a stale snapshot.
    """
    connect_args = {}
    if "sqlite" in url:
        connect_args["check_same_thread"] = False
        connect_args["timeout"] = settings.sqlite_busy_timeout_seconds
    engine = create_async_engine(url, echo=False, connect_args=connect_args, pool_pre_ping=True)

    if "sqlite" in url:

        @event.listens_for(engine.sync_engine, "connect")
        def _on_connect(dbapi_connection, connection_record):
            # Let SQLAlchemy emit BEGIN itself instead of the driver
            dbapi_connection.isolation_level = None
            cursor = dbapi_connection.cursor()
            cursor.execute("PRAGMA journal_mode=WAL")
            cursor.execute("PRAGMA foreign_keys=ON")
            cursor.execute(f"PRAGMA busy_timeout={settings.sqlite_busy_timeout_seconds * 1000}")
            cursor.close()

        @event.listens_for(engine.sync_engine, "begin")
        def _on_begin(conn):
            if conn.get_execution_options().get(_WRITE_LOCK):
                conn.exec_driver_sql("BEGIN IMMEDIATE")
            else:
                conn.exec_driver_sql("BEGIN")

    return engine


async def begin_write(session: AsyncSession) -> None:
    """Start a write transaction on ``session``.

    A read transaction the session already holds (the auth lookup, for
    one) is committed first; it has no pending changes. On SQLite the new
    transaction holds the database write lock until commit or rollback.
    """
    if session.in_transaction():
        await session.commit()
    await session.connection(execution_options={_WRITE_LOCK: True})


def create_session_factory(engine: AsyncEngine) -> sessionmaker:
    return sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)  # type: ignore[call-overload]


async def init_db(url: str = "sqlite+aiosqlite:///tasksync.db") -> None:
    global _engine, _session_factory
    _engine = create_engine(url)
    _session_factory = create_session_factory(_engine)

    async with _engine.begin() as conn:
        await _run_alembic_upgrade(conn)


def _alembic_config(sync_conn) -> Config:
    cfg = Config()
    cfg.set_main_option("script_location", str(_MIGRATIONS_DIR))
    # migrations/env.py picks this up instead of building its own engine
    cfg.attributes["connection"] = sync_conn
    return cfg


def _upgrade(sync_conn) -> None:
    """Bring the schema to head.

    A database without ``alembic_version`` but with a ``tasks`` table was
    built by ``create_all``; it is stamped at the baseline first so the
    initial migration does not try to recreate its tables.
    """
    cfg = _alembic_config(sync_conn)
    tables = set(sqlalchemy.inspect(sync_conn).get_table_names())
    head = ScriptDirectory.from_config(cfg).get_current_head()

    if "alembic_version" not in tables:
        if "tasks" in tables:
            logger.info("Untracked schema found, stamping baseline %s", BASELINE_REVISION)
            command.stamp(cfg, BASELINE_REVISION)
        else:
            logger.info("Empty database, creating schema")
    else:
        current = MigrationContext.configure(sync_conn).get_current_revision()
        if current == head:
            logger.debug("Schema is at head (%s)", head)
            return
        logger.info("Migrating schema from %s to %s", current or "(none)", head)

    command.upgrade(cfg, "head")


async def _run_alembic_upgrade(conn) -> None:
    # Alembic's command API is synchronous
    await conn.run_sync(_upgrade)


async def close_db() -> None:
    global _engine, _session_factory
    if _engine:
        await _engine.dispose()
    _engine = None
    _session_factory = None


async def get_db_session() -> AsyncGenerator[AsyncSession, None]:
    assert _session_factory is not None, "Database not initialised, call init_db() first"
    async with _session_factory() as session:
        yield session


def get_session_factory() -> sessionmaker:
    assert _session_factory is not None
    return _session_factory
