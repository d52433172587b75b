"""Shared request parsing for the API routes."""

from __future__ import annotations

from typing import TypeVar

from fastapi import Request
from pydantic import BaseModel

from tasksync.content import parse_body
from tasksync.errors import ValidationError

M = TypeVar("M", bound=BaseModel)


async def read_body(request: Request, model: type[M]) -> M:
    """Parse and validate the body, or raise a 400."""
    try:
        body = await parse_body(request)
        return model(**body)
    # Covers both malformed JSON and pydantic validation errors
    except ValueError:
        raise ValidationError("Invalid request body") from None
