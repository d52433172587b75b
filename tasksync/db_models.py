"""SQLModel table definitions for TaskSync."""

from __future__ import annotations

import enum
from datetime import UTC, datetime

from sqlalchemy import Index
from sqlmodel import Field, SQLModel


class ChangeStatus(str, enum.Enum):
    created = "CREATED"
    updated = "UPDATED"
    deleted = "DELETED"


def _utcnow() -> datetime:
    return datetime.now(UTC)


class User(SQLModel, table=True):
    __tablename__ = "users"

    id: str = Field(primary_key=True)
    name: str
    key_hash: str
    key_fingerprint: str = Field(index=True)
    balance: float = Field(default=0.0)  # may go negative, no overdraft check
    notification_address: str | None = None
    created_at: datetime = Field(default_factory=_utcnow)


class Task(SQLModel, table=True):
    __tablename__ = "tasks"

    id: str = Field(primary_key=True)
    owner_id: str = Field(foreign_key="users.id", index=True)
    name: str
    cost: float
    expires_at: datetime | None = Field(default=None, index=True)
    refresh_rate: int = Field(default=0)  # seconds between accepted responses
    answers_left: int = Field(default=0)
    created_at: datetime = Field(default_factory=_utcnow, index=True)


class Location(SQLModel, table=True):
    __tablename__ = "locations"

    id: str = Field(primary_key=True)
    task_id: str = Field(foreign_key="tasks.id", unique=True, index=True)
    name: str
    lat: float
    lng: float
    radius: float = Field(default=0.0)


class TaskAction(SQLModel, table=True):
    __tablename__ = "task_actions"
    __table_args__ = (Index("ix_task_actions_task_position", "task_id", "position"),)

    id: str = Field(primary_key=True)
    task_id: str = Field(foreign_key="tasks.id", index=True)
    position: int = Field(default=0)
    description: str
    type: str


class TaskResponse(SQLModel, table=True):
    __tablename__ = "task_responses"
    __table_args__ = (Index("ix_task_responses_task_created", "task_id", "created_at"),)

    id: str = Field(primary_key=True)
    task_id: str = Field(foreign_key="tasks.id", index=True)
    user_id: str = Field(foreign_key="users.id", index=True)
    created_at: datetime = Field(default_factory=_utcnow)


class TaskActionResponse(SQLModel, table=True):
    __tablename__ = "task_action_responses"

    id: str = Field(primary_key=True)
    task_response_id: str = Field(foreign_key="task_responses.id", index=True)
    task_action_id: str = Field(foreign_key="task_actions.id", index=True)
    user_id: str = Field(foreign_key="users.id", index=True)
    response: str


class ChangeLogEntry(SQLModel, table=True):
    __tablename__ = "change_log"
    __table_args__ = (Index("ix_change_log_created_id", "created_at", "id"),)

    id: int | None = Field(default=None, primary_key=True)
    task_id: str  # no foreign key: entries outlive the task
    status: ChangeStatus
    created_at: datetime = Field(default_factory=_utcnow)


class LedgerEntry(SQLModel, table=True):
    __tablename__ = "ledger_entries"
    __table_args__ = (Index("ix_ledger_entries_user_created", "user_id", "created_at"),)

    id: str = Field(primary_key=True)
    user_id: str = Field(foreign_key="users.id", index=True)
    amount: float
    reason: str
    task_id: str | None = None  # kept after the task is deleted
    created_at: datetime = Field(default_factory=_utcnow)
