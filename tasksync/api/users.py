"""User registration, profile and balance routes."""

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
    LedgerResponse,
    RegisterRequest,
    RegisterResponse,
    UserResponse,
    UserUpdateRequest,
)
from tasksync.rate_limit import limiter
from tasksync.services.ledger import get_balance, get_ledger
from tasksync.services.users import register, update_notification_address, user_profile

router = APIRouter()


@router.post(
    "/v1/register",
    response_model=RegisterResponse,
    status_code=201,
    responses={400: {"model": ErrorResponse}},
)
@limiter.limit(settings.rate_limit_register)
async def register_user(request: Request, session=Depends(get_db_session)):
    """Register a new user. Returns the API key, which cannot be recovered."""
    req = await read_body(request, RegisterRequest)
    result = await register(session, req.name, notification_address=req.notification_address)
    return render_response(request, RegisterResponse(**result), status_code=201)


@router.get("/v1/me", response_model=UserResponse, responses={401: {"model": ErrorResponse}})
@limiter.limit(settings.rate_limit_read)
async def me(request: Request, user: User = AuthUser):
    return render_response(request, user_profile(user))


@router.patch("/v1/me", response_model=UserResponse, responses={401: {"model": ErrorResponse}})
@limiter.limit(settings.rate_limit_read)
async def update_me(request: Request, user: User = AuthUser, session=Depends(get_db_session)):
    """Change the push token notifications are sent to."""
    req = await read_body(request, UserUpdateRequest)
    profile = await update_notification_address(session, user, req.notification_address)
    return render_response(request, profile)


@router.get(
    "/v1/me/ledger",
    response_model=LedgerResponse,
    responses={401: {"model": ErrorResponse}},
)
@limiter.limit(settings.rate_limit_read)
async def my_ledger(
    request: Request,
    user: User = AuthUser,
    session=Depends(get_db_session),
    offset: int = Query(0, ge=0),
    limit: int = Query(settings.default_ledger_limit, ge=1, le=100),
):
    """Current balance and the payments that led to it."""
    ledger, total = await get_ledger(session, user.id, offset=offset, limit=limit)
    balance = await get_balance(session, user.id)
    return render_response(request, {"balance": balance, "total": total, "ledger": ledger})
