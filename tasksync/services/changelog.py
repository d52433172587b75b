"""Append-only change log of task lifecycle transitions."""

from __future__ import annotations

import logging
from datetime import UTC, datetime, timedelta

from sqlalchemy import func
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from tasksync.db_models import ChangeLogEntry, ChangeStatus

logger = logging.getLogger("tasksync.changelog")


_EPOCH = datetime(1970, 1, 1, tzinfo=UTC)
_ONE_MS = timedelta(milliseconds=1)


def to_millis(dt: datetime) -> int:
    # SQLite drops tzinfo; stored values are always UTC
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=UTC)
    return (dt - _EPOCH) // _ONE_MS


def from_millis(ms: int) -> datetime:
    return _EPOCH + ms * _ONE_MS


def _next_timestamp(latest: datetime | None) -> datetime:
    """Current time at millisecond precision, strictly after ``latest``."""
    now = datetime.now(UTC)
    now = now.replace(microsecond=now.microsecond - now.microsecond % 1000)
    if latest is not None:
        if latest.tzinfo is None:
            latest = latest.replace(tzinfo=UTC)
        if now <= latest:
            now = latest + _ONE_MS
    return now


async def append(session: AsyncSession, task_id: str, status: ChangeStatus) -> ChangeLogEntry:
    """Add an entry to the log. Does not commit.

    Timestamps are unique and increasing, so a client that syncs from the
    last timestamp it saw can never skip an entry sharing that millisecond.
    """
    result = await session.execute(select(func.max(ChangeLogEntry.created_at)))
    entry = ChangeLogEntry(
        task_id=task_id,
        status=status,
        created_at=_next_timestamp(result.scalar_one_or_none()),
    )
    session.add(entry)
    await session.flush()
    logger.debug("Change log: task %s %s at %s", task_id, status.value, entry.created_at)
    return entry


async def entries_since(session: AsyncSession, since: int) -> list[ChangeLogEntry]:
    """Entries created strictly after ``since`` (unix millis), oldest first."""
    result = await session.execute(
        select(ChangeLogEntry)
        .where(ChangeLogEntry.created_at > from_millis(since))
        .order_by(ChangeLogEntry.created_at.asc(), ChangeLogEntry.id.asc())
    )
    return list(result.scalars().all())
