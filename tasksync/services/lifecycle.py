"""Task lifecycle: create, respond and delete as single logical units.

A task is Active while ``answers_left > 0``, Exhausted at zero (still
readable, no new responses) and Deleted once removed; deleted ids keep
appearing in the change log so offline clients learn about the removal.
"""

from __future__ import annotations

import contextlib
import logging
from collections.abc import AsyncIterator
from datetime import UTC, datetime, timedelta

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from tasksync.database import begin_write
from tasksync.db_models import ChangeStatus, Task, User
from tasksync.errors import (
    Forbidden,
    NotFound,
    StorageFailure,
    TaskExhausted,
    TaskNotAccepting,
    ValidationError,
)
from tasksync.notifications import BROADCAST, notifier
from tasksync.services import changelog, ledger, quota
from tasksync.services import tasks as store

logger = logging.getLogger("tasksync.lifecycle")


@contextlib.asynccontextmanager
async def _transaction(session: AsyncSession) -> AsyncIterator[None]:
    """One write unit: commit on success, roll back on any error.

    Database errors, including failing to take the write lock, become
    StorageFailure.
    """
    try:
        await begin_write(session)
        yield
        await session.commit()
    except SQLAlchemyError as e:
        await session.rollback()
        logger.error("Transaction failed: %s", e)
        raise StorageFailure() from e
    except Exception:
        await session.rollback()
        raise


async def _append_after_commit(session: AsyncSession, task_id: str, status: ChangeStatus) -> None:
    """Log a change for a mutation that is already committed.

    A failure here leaves sync stale for this task but does not undo the
    mutation; it is recorded and not retried.
    """
    try:
        await begin_write(session)
        await changelog.append(session, task_id, status)
        await session.commit()
    except SQLAlchemyError:
        await session.rollback()
        logger.exception("Change log append failed for task %s (%s)", task_id, status.value)


def _utc(dt: datetime) -> datetime:
    return dt if dt.tzinfo else dt.replace(tzinfo=UTC)


def _check_accepting(found: store.TaskForResponse) -> None:
    """Reject responses to expired tasks or inside the refresh window."""
    task = found.task
    now = datetime.now(UTC)
    if task.expires_at and _utc(task.expires_at) <= now:
        raise TaskNotAccepting("Task has expired")
    if task.refresh_rate and found.responses:
        next_allowed = _utc(found.responses[0].created_at) + timedelta(seconds=task.refresh_rate)
        if now < next_allowed:
            raise TaskNotAccepting(
                f"Task is not accepting responses until {next_allowed.isoformat()}"
            )


async def create_task(session: AsyncSession, owner_id: str, **fields) -> dict:
    """Create a task aggregate, log CREATED, then announce it to everyone."""
    async with _transaction(session):
        if await session.get(User, owner_id) is None:
            raise NotFound("User not found")
        task, actions = await store.create_task(session, owner_id, **fields)
    logger.info("Created task %s (%d answers at %s)", task.id, task.answers_left, task.cost)

    await _append_after_commit(session, task.id, ChangeStatus.created)
    notifier.send({"name": task.name}, BROADCAST)

    return {"task_id": task.id, "actions": [store.serialize_action(a) for a in actions]}


async def respond_to_task(
    session: AsyncSession, task_id: str, user_id: str, answers: dict[str, str]
) -> dict:
    """Accept one response: reserve a slot, pay the responder, record it.

    The slot decrement, the transfer and the response rows are committed
    in one transaction together with the UPDATED change log entry, so
    either all of them exist or none do, and a syncing client can never
    see the entry before the response it announces.
    """
    async with _transaction(session):
        found = await store.find_task_for_response(session, task_id)
        if found is None:
            raise NotFound("Task not found")
        task = found.task

        # Fast path; the reservation below is what actually guards the slot
        if task.answers_left == 0:
            raise TaskExhausted()
        _check_accepting(found)

        if await session.get(User, user_id) is None:
            raise NotFound("User not found")
        action_ids = {a.id for a in await store.get_actions(session, task_id)}
        unknown = sorted(set(answers) - action_ids)
        if unknown:
            raise ValidationError(f"Unknown task actions: {', '.join(unknown)}")

        await quota.try_reserve_slot(session, task_id)
        await ledger.transfer(session, task.owner_id, user_id, task.cost, task_id=task_id)
        response = await store.create_response(session, task_id, user_id, answers)
        await changelog.append(session, task_id, ChangeStatus.updated)
        # Read under the write lock: later payouts cannot be included yet
        owner_balance = await ledger.get_balance(session, task.owner_id)
        balance = await ledger.get_balance(session, user_id)

    logger.info("User %s responded to task %s (response %s)", user_id, task_id, response.id)
    notifier.send({"balance": owner_balance, "id": task_id}, found.owner.notification_address)

    return {"balance": balance, "response_id": response.id}


async def delete_task(session: AsyncSession, task_id: str, requester_id: str | None = None) -> None:
    """Delete a task and log DELETED. Deleting a missing task is a no-op."""
    async with _transaction(session):
        task = await session.get(Task, task_id)
        if task is None:
            logger.debug("Delete of unknown task %s ignored", task_id)
            return
        if requester_id is not None and task.owner_id != requester_id:
            raise Forbidden("Only the task owner can delete it")
        await store.delete_task(session, task_id)
    logger.info("Deleted task %s", task_id)

    await _append_after_commit(session, task_id, ChangeStatus.deleted)
