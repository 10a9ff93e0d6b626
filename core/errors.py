"""
core/errors.py -- Error taxonomy for the Pharmabolt API.

Route handlers and dependencies raise these; api/main.py owns the single
exception handler that turns them into HTTP responses. Handlers never build
error responses themselves.

Each class pins its HTTP status. message is shown to the client verbatim,
details is optional structured context (never a traceback).
"""

from __future__ import annotations

from typing import Any


class ApiError(Exception):
    """Base class for every error that maps to a client-visible response."""

    status_code: int = 500

    def __init__(self, message: str, details: Any = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details


class InvalidInput(ApiError):
    """Malformed id, empty update body, or a payload that fails validation."""

    status_code = 400


class Conflict(ApiError):
    """Duplicate drug name or user email."""

    status_code = 400


class InvalidCredentials(ApiError):
    """Login failure. Same message whether the email or the password was wrong."""

    status_code = 400

    def __init__(self) -> None:
        super().__init__("Invalid Credentials")


class Unauthenticated(ApiError):
    status_code = 401


class Forbidden(ApiError):
    status_code = 403


class NotFound(ApiError):
    status_code = 404


class Internal(ApiError):
    status_code = 500
