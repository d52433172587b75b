"""API key authentication.

Keys are stored only as bcrypt hashes. Because bcrypt salts every hash,
a short sha256 fingerprint of the key is stored next to it and used to
find the candidate row before the (slow) bcrypt check.
"""

from __future__ import annotations

import hashlib
import logging

import bcrypt
from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from tasksync.database import get_db_session
from tasksync.db_models import User
from tasksync.errors import Unauthorized

logger = logging.getLogger("tasksync.auth")

BEARER = "Bearer "


def hash_key(key: str) -> str:
    return bcrypt.hashpw(key.encode(), bcrypt.gensalt()).decode()


def verify_key(key: str, key_hash: str) -> bool:
    return bcrypt.checkpw(key.encode(), key_hash.encode())


def key_fingerprint(key: str) -> str:
    return hashlib.sha256(key.encode()).hexdigest()[:16]


def _bearer_key(request: Request) -> str:
    header = request.headers.get("Authorization", "")
    if not header.startswith(BEARER) or not header[len(BEARER) :].strip():
        raise Unauthorized("Missing or invalid Authorization header")
    return header[len(BEARER) :].strip()


async def authenticate(session: AsyncSession, raw_key: str) -> User | None:
    """The user owning ``raw_key``, or None."""
    result = await session.execute(
        select(User).where(User.key_fingerprint == key_fingerprint(raw_key))
    )
    user = result.scalar_one_or_none()
    if user is None or not user.key_hash or not verify_key(raw_key, user.key_hash):
        return None
    return user


async def get_current_user(
    request: Request,
    session: AsyncSession = Depends(get_db_session),
) -> User:
    user = await authenticate(session, _bearer_key(request))
    if user is None:
        logger.debug("Rejected API key from %s", request.client.host if request.client else "?")
        raise Unauthorized("Invalid API key")
    return user


AuthUser = Depends(get_current_user)
