"""Test fixtures backed by a throwaway SQLite file per test."""

from __future__ import annotations

import os

# Must be set before tasksync builds its limiter
os.environ.setdefault("TASKSYNC_RATE_LIMIT_ENABLED", "false")

import pytest  # noqa: E402
from httpx import ASGITransport, AsyncClient  # noqa: E402
from sqlmodel import SQLModel  # noqa: E402

from tasksync.database import create_engine, create_session_factory, get_db_session  # noqa: E402
from tasksync.db_models import Task, User  # noqa: E402
from tasksync.main import app  # noqa: E402
from tasksync.rate_limit import limiter  # noqa: E402
from tasksync.services import lifecycle  # noqa: E402


@pytest.fixture
async def db(tmp_path):
    # A file, not :memory:, so concurrent sessions get their own connections
    engine = create_engine(f"sqlite+aiosqlite:///{tmp_path / 'tasksync.db'}")
    async with engine.begin() as conn:
        await conn.run_sync(SQLModel.metadata.create_all)

    factory = create_session_factory(engine)

    async def override_get_db_session():
        async with factory() as session:
            yield session

    app.dependency_overrides[get_db_session] = override_get_db_session
    limiter.enabled = False

    yield factory

    app.dependency_overrides.clear()
    await engine.dispose()


@pytest.fixture
async def client(db):
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


@pytest.fixture
def pushes(monkeypatch):
    """Record notifications instead of delivering them."""
    sent: list[tuple[dict, str | None]] = []
    monkeypatch.setattr(
        lifecycle.notifier, "send", lambda payload, destination: sent.append((payload, destination))
    )
    return sent


async def register_user(client: AsyncClient, name: str = "test-user", **extra) -> dict:
    """Helper: register a user, return {"user_id", "api_key", "balance"}."""
    resp = await client.post(
        "/v1/register",
        json={"name": name, **extra},
        headers={"Accept": "application/json"},
    )
    assert resp.status_code == 201
    return resp.json()


def auth_header(api_key: str) -> dict:
    return {"Authorization": f"Bearer {api_key}", "Accept": "application/json"}


def task_body(**overrides) -> dict:
    body = {
        "name": "Is the bike shed open?",
        "cost": 5,
        "answers_left": 2,
        "location_name": "Bike shed",
        "lat": 52.37,
        "lng": 4.89,
        "radius": 100,
        "actions": [
            {"description": "Is it open?", "type": "yes_no"},
            {"description": "How many bikes?", "type": "number"},
        ],
    }
    body.update(overrides)
    return body


async def post_task(client: AsyncClient, api_key: str, **overrides) -> dict:
    """Helper: create a task over HTTP, return the 201 body."""
    resp = await client.post("/v1/tasks", json=task_body(**overrides), headers=auth_header(api_key))
    assert resp.status_code == 201, resp.text
    return resp.json()


async def make_user(factory, name: str, balance: float = 0.0, address: str | None = None) -> str:
    """Insert a user row directly, bypassing key generation."""
    async with factory() as session:
        user = User(
            id=f"us_{name}",
            name=name,
            key_hash="",
            key_fingerprint=f"fp-{name}",
            balance=balance,
            notification_address=address,
        )
        session.add(user)
        await session.commit()
        return user.id


async def balance_of(factory, user_id: str) -> float:
    async with factory() as session:
        user = await session.get(User, user_id)
        return user.balance


async def make_task(factory, owner_id: str, **overrides) -> str:
    """Create a task through the lifecycle service, return its id."""
    fields = {
        "name": "Count the queue",
        "cost": 5,
        "answers_left": 2,
        "location_name": "Post office",
        "lat": 52.0,
        "lng": 5.0,
        "actions": [{"description": "How long is the queue?", "type": "number"}],
    }
    fields.update(overrides)
    async with factory() as session:
        created = await lifecycle.create_task(session, owner_id, **fields)
    return created["task_id"]


async def answers_left(factory, task_id: str) -> int:
    async with factory() as session:
        task = await session.get(Task, task_id)
        return task.answers_left
