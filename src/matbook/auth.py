from __future__ import annotations

import secrets
from typing import Protocol

from fastapi import HTTPException, Request

from matbook.config import Settings


class AuthProvider(Protocol):
    def require_admin(self, request: Request) -> None: ...


class NoAuthProvider:
    def require_admin(self, request: Request) -> None:
        return None


class TokenAuthProvider:
    """Admin pages require `Authorization: Bearer <ADMIN_TOKEN>`."""

    def __init__(self, token: str) -> None:
        if not token:
            raise ValueError("ADMIN_TOKEN must be set when AUTH_MODE=token")
        self._token = token

    def require_admin(self, request: Request) -> None:
        header = request.headers.get("Authorization", "")
        scheme, _, credentials = header.partition(" ")
        if scheme.lower() != "bearer" or not secrets.compare_digest(
            credentials.strip(), self._token
        ):
            raise HTTPException(
                status_code=401,
                detail="Authentication required",
                headers={"WWW-Authenticate": "Bearer"},
            )


def get_auth_provider(settings: Settings) -> AuthProvider:
    if settings.auth_mode == "token":
        return TokenAuthProvider(settings.admin_token)
    return NoAuthProvider()


def admin_guard(request: Request) -> None:
    request.app.state.auth_provider.require_admin(request)
