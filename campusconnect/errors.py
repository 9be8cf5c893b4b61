"""Error taxonomy shared by the portal service and the HTTP layer."""
from __future__ import annotations

from typing import Dict, Optional


class PortalError(Exception):
    """Base class for failures that map onto an HTTP status code."""

    status_code = 500
    headers: Optional[Dict[str, str]] = None

    def __init__(self, message: str, headers: Optional[Dict[str, str]] = None) -> None:
        super().__init__(message)
        self.message = message
        if headers is not None:
            self.headers = headers


class ValidationError(PortalError):
    status_code = 400


class AuthenticationError(PortalError):
    status_code = 401


class ForbiddenError(PortalError):
    status_code = 403


class NotFoundError(PortalError):
    status_code = 404


class StorageError(PortalError):
    """Raised when the record store could not persist a change."""

    status_code = 500


__all__ = [
    "PortalError",
    "ValidationError",
    "AuthenticationError",
    "ForbiddenError",
    "NotFoundError",
    "StorageError",
]
