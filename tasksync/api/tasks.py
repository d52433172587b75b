"""Task lifecycle and sync routes."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query, Request

from tasksync.api.helpers import read_body
from tasksync.auth import AuthUser
from tasksync.config import settings
from tasksync.content import render_response
from tasksync.database import get_db_session
from tasksync.db_models import User
from tasksync.models import (
    ErrorResponse,
    RespondRequest,
    RespondResponse,
    ResponsesResponse,
    SyncResponse,
    TaskCreateRequest,
    TaskCreateResponse,
    TasksResponse,
)
from tasksync.rate_limit import limiter
from tasksync.services.lifecycle import create_task, delete_task, respond_to_task
from tasksync.services.sync import sync
from tasksync.services.tasks import find_responses, find_tasks

router = APIRouter()

# Latest instant a datetime can hold, in unix millis
MAX_SINCE = 253_402_300_799_999


@router.post(
    "/v1/tasks",
    response_model=TaskCreateResponse,
    status_code=201,
    responses={400: {"model": ErrorResponse}, 401: {"model": ErrorResponse}},
)
@limiter.limit(settings.rate_limit_create)
async def add_task(request: Request, user: User = AuthUser, session=Depends(get_db_session)):
    """Post a task with its location and actions."""
    req = await read_body(request, TaskCreateRequest)
    created = await create_task(
        session,
        user.id,
        name=req.name,
        cost=req.cost,
        answers_left=req.answers_left,
        location_name=req.location_name,
        lat=req.lat,
        lng=req.lng,
        radius=req.radius,
        expires_at=req.expires_at,
        refresh_rate=req.refresh_rate,
        actions=[a.model_dump() for a in req.actions],
    )
    return render_response(
        request, created, status_code=201, headers={"X-Task-Id": created["task_id"]}
    )


@router.get("/v1/tasks", response_model=TasksResponse, responses={401: {"model": ErrorResponse}})
@limiter.limit(settings.rate_limit_read)
async def fetch_tasks(
    request: Request,
    user: User = AuthUser,
    session=Depends(get_db_session),
    ids: str | None = None,
):
    """Full task details for a comma-separated list of ids."""
    id_list = [i.strip() for i in ids.split(",") if i.strip()] if ids else []
    tasks = await find_tasks(session, id_list)
    return render_response(request, {"tasks": tasks})


@router.get(
    "/v1/tasks/sync",
    response_model=SyncResponse,
    responses={401: {"model": ErrorResponse}},
)
@limiter.limit(settings.rate_limit_read)
async def sync_tasks(
    request: Request,
    user: User = AuthUser,
    session=Depends(get_db_session),
    since: int = Query(0, ge=0, le=MAX_SINCE, description="Unix millis of the last sync"),
):
    """Task changes since the given time, for clients catching up."""
    return render_response(request, await sync(session, since))


@router.delete("/v1/tasks/{task_id}", responses={403: {"model": ErrorResponse}})
@limiter.limit(settings.rate_limit_create)
async def remove_task(
    request: Request, task_id: str, user: User = AuthUser, session=Depends(get_db_session)
):
    """Delete a task you own. Deleting an unknown task succeeds."""
    await delete_task(session, task_id, requester_id=user.id)
    return render_response(request, {"task_id": task_id, "deleted": True})


@router.post(
    "/v1/tasks/{task_id}/respond",
    response_model=RespondResponse,
    responses={
        400: {"model": ErrorResponse},
        404: {"model": ErrorResponse},
        409: {"model": ErrorResponse},
    },
)
@limiter.limit(settings.rate_limit_respond)
async def respond(
    request: Request, task_id: str, user: User = AuthUser, session=Depends(get_db_session)
):
    """Answer a task and get paid its cost."""
    req = await read_body(request, RespondRequest)
    result = await respond_to_task(session, task_id, user.id, req.answers)
    return render_response(request, result)


@router.get(
    "/v1/tasks/{task_id}/responses",
    response_model=ResponsesResponse,
    responses={404: {"model": ErrorResponse}},
)
@limiter.limit(settings.rate_limit_read)
async def list_responses(
    request: Request, task_id: str, user: User = AuthUser, session=Depends(get_db_session)
):
    responses = await find_responses(session, task_id)
    return render_response(request, {"responses": responses})
