"""Pydantic models for request/response schemas."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, Field


class ErrorResponse(BaseModel):
    error: str


class RegisterRequest(BaseModel):
    name: str = Field(min_length=1, max_length=200, description="Display name")
    notification_address: str | None = Field(
        default=None, max_length=4096, description="Push token for this user's device"
    )


class RegisterResponse(BaseModel):
    user_id: str
    api_key: str
    balance: float
    message: str = "Welcome to TaskSync! SAVE YOUR API KEY, it cannot be recovered."


class UserResponse(BaseModel):
    user_id: str
    name: str
    balance: float
    notification_address: str | None = None
    created_at: str | None = None


class UserUpdateRequest(BaseModel):
    notification_address: str | None = Field(default=None, max_length=4096)


class LedgerResponse(BaseModel):
    balance: float = Field(description="Current balance, may be negative")
    total: int = Field(description="Total ledger entries")
    ledger: list[dict] = Field(description="Recent ledger entries, newest first")


class TaskActionSpec(BaseModel):
    description: str = Field(..., min_length=1, max_length=5000)
    type: str = Field(..., min_length=1, max_length=100, description="Prompt kind")


class TaskCreateRequest(BaseModel):
    # Numbers stay loosely typed here; the task store rejects non-numeric values
    name: str = Field(..., min_length=1, max_length=500)
    cost: float | str = Field(..., description="Paid per accepted response (in dollars)")
    answers_left: int = Field(..., ge=0, le=1_000_000, description="Funded answer slots")
    location_name: str = Field(..., max_length=500)
    lat: float | str
    lng: float | str
    radius: float | str = 0.0
    expires_at: datetime | None = None
    refresh_rate: int = Field(default=0, ge=0, description="Seconds between responses")
    actions: list[TaskActionSpec] = Field(default_factory=list, max_length=100)


class TaskActionItem(BaseModel):
    id: str
    task_id: str
    description: str
    type: str


class TaskCreateResponse(BaseModel):
    task_id: str
    actions: list[TaskActionItem]


class TasksResponse(BaseModel):
    tasks: list[dict]


class RespondRequest(BaseModel):
    answers: dict[str, str] = Field(
        default_factory=dict, description="Answer per task action id"
    )


class RespondResponse(BaseModel):
    balance: float = Field(description="Responder's balance after payment")
    response_id: str


class ResponsesResponse(BaseModel):
    responses: list[dict]


class ChangeItem(BaseModel):
    task_id: str
    status: str


class SyncResponse(BaseModel):
    last_updated: int = Field(description="Unix millis of the last change returned")
    changes: list[ChangeItem]
