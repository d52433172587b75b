"""Quota gate: reserve one answer slot on a task."""

from __future__ import annotations

import logging

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from tasksync.db_models import Task
from tasksync.errors import NotFound, TaskExhausted

logger = logging.getLogger("tasksync.quota")


async def try_reserve_slot(session: AsyncSession, task_id: str) -> None:
    """Atomically decrement ``answers_left`` if a slot is still free.

    The check and the decrement are one conditional UPDATE, so two callers
    racing for the last slot can never both win and the counter never goes
    below zero. The decrement belongs to the caller's transaction: if that
    transaction rolls back, the slot is released with it.
    """
    result = await session.execute(
        text(
            "UPDATE tasks SET answers_left = answers_left - 1 "
            "WHERE id = :id AND answers_left > 0"
        ),
        {"id": task_id},
    )
    if result.rowcount == 1:
        logger.debug("Reserved answer slot on task %s", task_id)
        return

    # Lost the race, or the task is gone
    if await session.get(Task, task_id, populate_existing=True) is None:
        raise NotFound("Task not found")
    raise TaskExhausted()
