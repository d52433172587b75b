"""User registration and profile service."""

from __future__ import annotations

from sqlalchemy.ext.asyncio import AsyncSession

from tasksync.auth import hash_key, key_fingerprint
from tasksync.config import settings
from tasksync.database import begin_write
from tasksync.db_models import User
from tasksync.ids import api_key, user_id
from tasksync.services.ledger import record_entry


async def register(
    session: AsyncSession,
    name: str,
    notification_address: str | None = None,
) -> dict:
    """Register a new user. Returns user_id and the raw API key."""
    uid = user_id()
    key = api_key()
    key_hash = hash_key(key)

    await begin_write(session)

    user = User(
        id=uid,
        name=name,
        key_hash=key_hash,
        key_fingerprint=key_fingerprint(key),
        balance=settings.initial_balance,
        notification_address=notification_address,
    )
    session.add(user)
    await session.flush()

    if settings.initial_balance:
        await record_entry(session, uid, settings.initial_balance, "signup")

    await session.commit()

    return {"user_id": uid, "api_key": key, "balance": settings.initial_balance}


def user_profile(user: User) -> dict:
    return {
        "user_id": user.id,
        "name": user.name,
        "balance": user.balance,
        "notification_address": user.notification_address,
        "created_at": user.created_at.isoformat() if user.created_at else None,
    }


async def update_notification_address(
    session: AsyncSession, user: User, notification_address: str | None
) -> dict:
    await begin_write(session)
    user.notification_address = notification_address
    session.add(user)
    await session.commit()
    await session.refresh(user)
    return user_profile(user)
