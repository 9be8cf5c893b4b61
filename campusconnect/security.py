"""Password hashing and admin token checks."""
from __future__ import annotations

import secrets
from typing import Iterable, List, Optional

from fastapi import Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from passlib.context import CryptContext

from .errors import AuthenticationError, ForbiddenError

_pwd_context = CryptContext(schemes=["pbkdf2_sha256"], deprecated="auto")


def hash_password(password: str) -> str:
    if not password:
        raise ValueError("Password must not be empty")
    return _pwd_context.hash(password)


def verify_password(password: str, hashed: Optional[str]) -> bool:
    if not hashed:
        return False
    try:
        return _pwd_context.verify(password, hashed)
    except ValueError:
        return False


def verify_legacy_password(password: str, stored: Optional[str]) -> bool:
    """Compare against a plaintext password left over from older data files."""
    if not stored:
        return False
    return secrets.compare_digest(password.encode("utf-8"), str(stored).encode("utf-8"))


class AdminTokenAuth:
    """Bearer token check for the admin routes.

    With no tokens configured every caller is let through.
    """

    def __init__(self, tokens: Iterable[str]):
        self._tokens: List[str] = [token.strip() for token in tokens if token.strip()]
        self._bearer = HTTPBearer(auto_error=False)

    @property
    def enabled(self) -> bool:
        return bool(self._tokens)

    async def __call__(self, request: Request) -> None:
        if not self._tokens:
            return None

        credentials: HTTPAuthorizationCredentials | None = await self._bearer(request)  # type: ignore[assignment]
        if credentials is None or credentials.scheme.lower() != "bearer":
            raise AuthenticationError("Missing bearer token", headers={"WWW-Authenticate": "Bearer"})

        provided = credentials.credentials
        for token in self._tokens:
            if secrets.compare_digest(provided.encode("utf-8"), token.encode("utf-8")):
                return None

        raise ForbiddenError("Invalid admin token")


__all__ = ["AdminTokenAuth", "hash_password", "verify_password", "verify_legacy_password"]
