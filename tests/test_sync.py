"""Test the change log and the sync queries built on it."""

from __future__ import annotations

import asyncio
from datetime import UTC, datetime

import pytest
from sqlalchemy import text

from tasksync.database import begin_write
from tasksync.db_models import ChangeStatus
from tasksync.services.changelog import append, entries_since, from_millis, to_millis
from tasksync.services.sync import sync


async def _log(factory, *changes: tuple[str, ChangeStatus]) -> None:
    async with factory() as session:
        for task_id, status in changes:
            await append(session, task_id, status)
        await session.commit()


def test_millis_conversion_is_exact():
    dt = datetime(2026, 3, 1, 12, 30, 15, 123000, tzinfo=UTC)
    assert from_millis(to_millis(dt)) == dt
    # Naive values read back from SQLite are UTC
    assert to_millis(dt.replace(tzinfo=None)) == to_millis(dt)


@pytest.mark.asyncio
async def test_entries_get_strictly_increasing_timestamps(db):
    await _log(db, *[(f"tk_{i}", ChangeStatus.created) for i in range(20)])

    async with db() as session:
        entries = await entries_since(session, 0)

    stamps = [to_millis(e.created_at) for e in entries]
    assert len(stamps) == 20
    assert stamps == sorted(stamps)
    assert len(set(stamps)) == 20
    assert [e.task_id for e in entries] == [f"tk_{i}" for i in range(20)]


@pytest.mark.asyncio
async def test_entries_since_is_strict(db):
    await _log(db, ("tk_a", ChangeStatus.created), ("tk_b", ChangeStatus.created))

    async with db() as session:
        first, second = await entries_since(session, 0)
        after_first = await entries_since(session, to_millis(first.created_at))
        after_second = await entries_since(session, to_millis(second.created_at))

    assert [e.task_id for e in after_first] == ["tk_b"]
    assert after_second == []


@pytest.mark.asyncio
async def test_sync_on_empty_log_keeps_since(db):
    async with db() as session:
        assert await sync(session, 0) == {"last_updated": 0, "changes": []}
        assert await sync(session, 1234) == {"last_updated": 1234, "changes": []}


@pytest.mark.asyncio
async def test_sync_returns_changes_in_order(db):
    await _log(
        db,
        ("tk_a", ChangeStatus.created),
        ("tk_a", ChangeStatus.updated),
        ("tk_b", ChangeStatus.created),
        ("tk_a", ChangeStatus.deleted),
    )

    async with db() as session:
        result = await sync(session, 0)
        entries = await entries_since(session, 0)

    assert result["changes"] == [
        {"task_id": "tk_a", "status": "CREATED"},
        {"task_id": "tk_a", "status": "UPDATED"},
        {"task_id": "tk_b", "status": "CREATED"},
        {"task_id": "tk_a", "status": "DELETED"},
    ]
    assert result["last_updated"] == to_millis(entries[-1].created_at)


@pytest.mark.asyncio
async def test_sync_is_idempotent(db):
    await _log(db, ("tk_a", ChangeStatus.created))

    async with db() as session:
        first = await sync(session, 0)
        again = await sync(session, 0)
        caught_up = await sync(session, first["last_updated"])
        caught_up_again = await sync(session, first["last_updated"])

    assert first == again
    assert caught_up == {"last_updated": first["last_updated"], "changes": []}
    assert caught_up_again == caught_up


@pytest.mark.asyncio
async def test_sync_picks_up_only_new_changes(db):
    await _log(db, ("tk_a", ChangeStatus.created))
    async with db() as session:
        first = await sync(session, 0)

    await _log(db, ("tk_b", ChangeStatus.created))
    async with db() as session:
        second = await sync(session, first["last_updated"])

    assert second["changes"] == [{"task_id": "tk_b", "status": "CREATED"}]
    assert second["last_updated"] > first["last_updated"]


@pytest.mark.asyncio
async def test_sync_does_not_wait_for_open_transactions(db):
    await _log(db, ("tk_a", ChangeStatus.created))

    async with db() as idle, db() as writer, db() as reader:
        # A read transaction left open elsewhere
        await idle.execute(text("SELECT 1"))
        # A write transaction holding the write lock, not yet committed
        await begin_write(writer)
        await append(writer, "tk_pending", ChangeStatus.created)

        result = await asyncio.wait_for(sync(reader, 0), timeout=2)
        assert [c["task_id"] for c in result["changes"]] == ["tk_a"]

        await writer.rollback()
        await idle.rollback()


@pytest.mark.asyncio
async def test_open_read_transaction_does_not_block_writers(db):
    async with db() as reader, db() as writer:
        await sync(reader, 0)
        assert reader.in_transaction()

        await asyncio.wait_for(begin_write(writer), timeout=2)
        await append(writer, "tk_a", ChangeStatus.created)
        await asyncio.wait_for(writer.commit(), timeout=2)

    async with db() as session:
        assert (await sync(session, 0))["changes"] == [{"task_id": "tk_a", "status": "CREATED"}]
