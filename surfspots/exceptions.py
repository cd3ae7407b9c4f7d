"""
Exception classes for the surf spots backend.

Each exception carries the HTTP status it maps to; a single handler in
``main`` renders them as ``{"detail": message}``.
"""
from typing import Optional, Any


class SurfSpotsError(Exception):
    """Base exception for all application errors."""

    status_code: int = 500

    def __init__(self, message: str, details: Optional[dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def to_dict(self) -> dict[str, Any]:
        body: dict[str, Any] = {"detail": self.message}
        if self.details:
            body["details"] = self.details
        return body


class ValidationError(SurfSpotsError):
    """Malformed or missing input."""

    status_code = 400


class ConflictError(SurfSpotsError):
    """Unique value already taken (username, email)."""

    status_code = 400


class AuthenticationError(SurfSpotsError):
    """No session, or the session token does not resolve."""

    status_code = 403


class AuthorizationError(SurfSpotsError):
    """Valid session, but the caller does not own the resource."""

    status_code = 403


class NotFoundError(SurfSpotsError):
    status_code = 404


class UpstreamError(SurfSpotsError):
    """Error communicating with an external HTTP service."""

    status_code = 502

    def __init__(
        self,
        message: str,
        service: str,
        details: Optional[dict[str, Any]] = None,
    ):
        super().__init__(message, details)
        self.service = service


class SessionStoreError(SurfSpotsError):
    """Internal session store failure, e.g. a token collision."""

    status_code = 500
