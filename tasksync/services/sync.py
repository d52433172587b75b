"""Incremental sync for clients that were offline."""

from __future__ import annotations

from sqlalchemy.ext.asyncio import AsyncSession

from tasksync.services.changelog import entries_since, to_millis


async def sync(session: AsyncSession, since: int = 0) -> dict:
    """Changes logged strictly after ``since`` (unix millis).

    ``last_updated`` is the timestamp of the last change returned, or
    ``since`` itself when nothing changed, so a client can always pass it
    back unchanged on its next poll.
    """
    entries = await entries_since(session, since)
    last_updated = to_millis(entries[-1].created_at) if entries else since
    return {
        "last_updated": last_updated,
        "changes": [{"task_id": e.task_id, "status": e.status.value} for e in entries],
    }
