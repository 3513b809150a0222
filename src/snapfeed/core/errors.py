"""Domain errors raised by the service layer.

Each error carries the HTTP status the API layer renders it with, so
services never import FastAPI.
"""

from __future__ import annotations


class SnapfeedError(RuntimeError):
    """Base exception for all domain failures."""

    status_code: int = 500

    def __init__(self, message: str, *, status_code: int | None = None) -> None:
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code


class NotFoundError(SnapfeedError):
    """Raised when a referenced entity does not exist."""

    status_code = 404


class InvalidInputError(SnapfeedError):
    """Raised for malformed or missing request fields."""

    status_code = 400


class ForbiddenError(SnapfeedError):
    """Raised when the caller is authenticated but not allowed to act."""

    status_code = 403


class UnauthenticatedError(SnapfeedError):
    """Raised when no valid session backs the request."""

    status_code = 401


class AlreadyExistsError(SnapfeedError):
    """Raised when a well-formed request repeats a one-time action."""

    status_code = 400


class InvalidOperationError(SnapfeedError):
    """Raised when policy rejects a well-formed request (e.g. self-follow)."""

    status_code = 400


class RateLimitedError(SnapfeedError):
    """Raised when the caller must wait before repeating an action."""

    status_code = 429


class ExternalServiceError(SnapfeedError):
    """Raised when the cross-post gateway fails.

    The status follows the upstream cause: 429 for upstream rate limits,
    401 for revoked credentials, 503 when the gateway is not configured,
    502 otherwise.
    """

    status_code = 502


class InternalError(SnapfeedError):
    """Raised for unexpected storage failures."""

    status_code = 500


__all__ = [
    "SnapfeedError",
    "NotFoundError",
    "InvalidInputError",
    "ForbiddenError",
    "UnauthenticatedError",
    "AlreadyExistsError",
    "InvalidOperationError",
    "RateLimitedError",
    "ExternalServiceError",
    "InternalError",
]
