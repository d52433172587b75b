"""Task store: task aggregates (location, actions, responses)."""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from datetime import datetime

from sqlalchemy import delete
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from tasksync.db_models import (
    Location,
    Task,
    TaskAction,
    TaskActionResponse,
    TaskResponse,
    User,
)
from tasksync.errors import NotFound, ValidationError
from tasksync.ids import action_id as make_action_id
from tasksync.ids import action_response_id as make_action_response_id
from tasksync.ids import location_id as make_location_id
from tasksync.ids import response_id as make_response_id
from tasksync.ids import task_id as make_task_id

logger = logging.getLogger("tasksync.tasks")


@dataclass
class TaskForResponse:
    task: Task
    owner: User
    responses: list[TaskResponse]  # newest first


def _iso(dt: datetime | None) -> str | None:
    return dt.isoformat() if dt else None


def _number(value, message: str) -> float:
    if isinstance(value, bool):
        raise ValidationError(message)
    try:
        number = float(value)
    except (TypeError, ValueError):
        raise ValidationError(message) from None
    if not math.isfinite(number):
        raise ValidationError(message)
    return number


def _non_negative_int(value, message: str) -> int:
    if isinstance(value, bool) or not isinstance(value, int) or value < 0:
        raise ValidationError(message)
    return value


# ---------------------------------------------------------------------------
# Serialization
# ---------------------------------------------------------------------------


def serialize_action(action: TaskAction) -> dict:
    return {
        "id": action.id,
        "task_id": action.task_id,
        "description": action.description,
        "type": action.type,
    }


def serialize_task(
    task: Task,
    location: Location | None,
    actions: list[TaskAction],
    responses: list[TaskResponse],
) -> dict:
    return {
        "id": task.id,
        "owner_id": task.owner_id,
        "name": task.name,
        "cost": task.cost,
        "expires_at": _iso(task.expires_at),
        "refresh_rate": task.refresh_rate,
        "answers_left": task.answers_left,
        "created_at": _iso(task.created_at),
        "location": {
            "name": location.name,
            "lat": location.lat,
            "lng": location.lng,
            "radius": location.radius,
        }
        if location
        else None,
        "actions": [serialize_action(a) for a in actions],
        "responses": [
            {"id": r.id, "user_id": r.user_id, "created_at": _iso(r.created_at)}
            for r in responses
        ],
    }


def serialize_response(
    response: TaskResponse, user: User | None, answers: list[TaskActionResponse]
) -> dict:
    return {
        "id": response.id,
        "task_id": response.task_id,
        "user": {"id": user.id, "name": user.name} if user else None,
        "created_at": _iso(response.created_at),
        "answers": [
            {"id": a.id, "task_action_id": a.task_action_id, "response": a.response}
            for a in answers
        ],
    }


# ---------------------------------------------------------------------------
# Writes
# ---------------------------------------------------------------------------


async def create_task(
    session: AsyncSession,
    owner_id: str,
    name: str,
    cost,
    answers_left: int,
    location_name: str,
    lat,
    lng,
    radius=0.0,
    expires_at: datetime | None = None,
    refresh_rate: int = 0,
    actions: list[dict] | None = None,
) -> tuple[Task, list[TaskAction]]:
    """Add a task with its location and actions to the session.

    All input is validated before anything is added, so a rejected task
    leaves the session untouched. Does not commit.
    """
    cost_value = _number(cost, "Cost must be a number (in dollars).")
    if cost_value <= 0:
        raise ValidationError("Cost must be a positive number (in dollars).")
    lat_value = _number(lat, "Lat and Lng must both be numbers.")
    lng_value = _number(lng, "Lat and Lng must both be numbers.")
    radius_value = _number(radius, "Radius must be a number.")
    answers_left = _non_negative_int(answers_left, "answers_left must be a non-negative integer.")
    refresh_rate = _non_negative_int(refresh_rate, "refresh_rate must be a non-negative integer.")
    for spec in actions or []:
        if not spec.get("description") or not spec.get("type"):
            raise ValidationError("Every task action needs a description and a type.")

    tid = make_task_id()
    task = Task(
        id=tid,
        owner_id=owner_id,
        name=name,
        cost=cost_value,
        expires_at=expires_at,
        refresh_rate=refresh_rate,
        answers_left=answers_left,
    )
    session.add(task)
    # Flush so the task row exists for the FKs below
    await session.flush()

    session.add(
        Location(
            id=make_location_id(),
            task_id=tid,
            name=location_name,
            lat=lat_value,
            lng=lng_value,
            radius=radius_value,
        )
    )
    created_actions = []
    for position, spec in enumerate(actions or []):
        action = TaskAction(
            id=make_action_id(),
            task_id=tid,
            position=position,
            description=spec["description"],
            type=spec["type"],
        )
        session.add(action)
        created_actions.append(action)
    await session.flush()
    return task, created_actions


async def create_response(
    session: AsyncSession, task_id: str, user_id: str, answers: dict[str, str]
) -> TaskResponse:
    """Add one response and its per-action answers. Does not commit."""
    response = TaskResponse(id=make_response_id(), task_id=task_id, user_id=user_id)
    session.add(response)
    await session.flush()

    for action_id, answer in answers.items():
        session.add(
            TaskActionResponse(
                id=make_action_response_id(),
                task_response_id=response.id,
                task_action_id=action_id,
                user_id=user_id,
                response=answer,
            )
        )
    await session.flush()
    return response


async def delete_task(session: AsyncSession, task_id: str) -> bool:
    """Remove a task and everything it owns. Returns False if it did not exist.

    Location, actions, responses and per-action answers all go with the
    task. Change log and ledger rows only reference the task id and stay.
    """
    task = await session.get(Task, task_id)
    if task is None:
        return False

    response_ids = select(TaskResponse.id).where(TaskResponse.task_id == task_id)
    await session.execute(
        delete(TaskActionResponse).where(TaskActionResponse.task_response_id.in_(response_ids))
    )
    await session.execute(delete(TaskResponse).where(TaskResponse.task_id == task_id))
    await session.execute(delete(TaskAction).where(TaskAction.task_id == task_id))
    await session.execute(delete(Location).where(Location.task_id == task_id))
    await session.delete(task)
    await session.flush()
    return True


# ---------------------------------------------------------------------------
# Reads
# ---------------------------------------------------------------------------


async def get_actions(session: AsyncSession, task_id: str) -> list[TaskAction]:
    result = await session.execute(
        select(TaskAction).where(TaskAction.task_id == task_id).order_by(TaskAction.position)
    )
    return list(result.scalars().all())


async def find_tasks(session: AsyncSession, ids: list[str]) -> list[dict]:
    """Full aggregates for the requested ids. Unknown ids are skipped."""
    if not ids:
        return []

    result = await session.execute(
        select(Task).where(Task.id.in_(ids)).order_by(Task.created_at.asc())
    )
    tasks = list(result.scalars().all())
    if not tasks:
        return []
    found_ids = [t.id for t in tasks]

    loc_result = await session.execute(select(Location).where(Location.task_id.in_(found_ids)))
    locations = {loc.task_id: loc for loc in loc_result.scalars().all()}

    action_result = await session.execute(
        select(TaskAction)
        .where(TaskAction.task_id.in_(found_ids))
        .order_by(TaskAction.task_id, TaskAction.position)
    )
    actions: dict[str, list[TaskAction]] = {}
    for action in action_result.scalars().all():
        actions.setdefault(action.task_id, []).append(action)

    response_result = await session.execute(
        select(TaskResponse)
        .where(TaskResponse.task_id.in_(found_ids))
        .order_by(TaskResponse.created_at.asc())
    )
    responses: dict[str, list[TaskResponse]] = {}
    for response in response_result.scalars().all():
        responses.setdefault(response.task_id, []).append(response)

    return [
        serialize_task(t, locations.get(t.id), actions.get(t.id, []), responses.get(t.id, []))
        for t in tasks
    ]


async def find_task_for_response(session: AsyncSession, task_id: str) -> TaskForResponse | None:
    """Task with its owner and its responses, newest first."""
    task = await session.get(Task, task_id, populate_existing=True)
    if task is None:
        return None
    owner = await session.get(User, task.owner_id)
    if owner is None:
        return None

    result = await session.execute(
        select(TaskResponse)
        .where(TaskResponse.task_id == task_id)
        .order_by(TaskResponse.created_at.desc())
    )
    return TaskForResponse(task=task, owner=owner, responses=list(result.scalars().all()))


async def find_responses(session: AsyncSession, task_id: str) -> list[dict]:
    """Response aggregates (responder and per-action answers), oldest first."""
    if await session.get(Task, task_id) is None:
        raise NotFound("Task not found")

    result = await session.execute(
        select(TaskResponse)
        .where(TaskResponse.task_id == task_id)
        .order_by(TaskResponse.created_at.asc())
    )
    responses = list(result.scalars().all())
    if not responses:
        return []

    user_ids = list({r.user_id for r in responses})
    user_result = await session.execute(select(User).where(User.id.in_(user_ids)))
    users = {u.id: u for u in user_result.scalars().all()}

    positions = {a.id: a.position for a in await get_actions(session, task_id)}
    answer_result = await session.execute(
        select(TaskActionResponse).where(
            TaskActionResponse.task_response_id.in_([r.id for r in responses])
        )
    )
    answers: dict[str, list[TaskActionResponse]] = {}
    for answer in answer_result.scalars().all():
        answers.setdefault(answer.task_response_id, []).append(answer)
    for group in answers.values():
        group.sort(key=lambda a: positions.get(a.task_action_id, 0))

    return [serialize_response(r, users.get(r.user_id), answers.get(r.id, [])) for r in responses]
