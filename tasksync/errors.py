"""Domain errors raised by the services.

Each one is an HTTPException so the app-wide handler renders it as
``{"error": detail}`` with the matching status code.
"""

from __future__ import annotations

from fastapi import HTTPException


class ValidationError(HTTPException):
    """Malformed or missing input, rejected before any mutation."""

    def __init__(self, detail: str = "Invalid request") -> None:
        super().__init__(status_code=400, detail=detail)


class Unauthorized(HTTPException):
    def __init__(self, detail: str = "Authentication required") -> None:
        super().__init__(status_code=401, detail=detail)


class Forbidden(HTTPException):
    def __init__(self, detail: str = "Not allowed") -> None:
        super().__init__(status_code=403, detail=detail)


class NotFound(HTTPException):
    def __init__(self, detail: str = "Not found") -> None:
        super().__init__(status_code=404, detail=detail)


class TaskExhausted(HTTPException):
    """The task has no answer slots left."""

    def __init__(self, detail: str = "Task is already completed") -> None:
        super().__init__(status_code=409, detail=detail)


class TaskNotAccepting(HTTPException):
    """The task is expired or still inside its refresh window."""

    def __init__(self, detail: str = "Task is not accepting responses") -> None:
        super().__init__(status_code=409, detail=detail)


class StorageFailure(HTTPException):
    """Persistence unavailable or the transaction could not commit."""

    def __init__(self, detail: str = "Storage unavailable, try again") -> None:
        super().__init__(status_code=503, detail=detail)
