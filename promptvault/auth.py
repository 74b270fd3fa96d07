"""
Bearer-token authentication for callers of the gateway.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass
from typing import Optional

from fastapi import Depends, Header
from sqlalchemy.orm import Session

from promptvault.deps import get_db
from promptvault.errors import AuthError, unauthorized
from promptvault.models import User
from promptvault.services.jwt_auth_service import TokenError, verify_token


@dataclass
class AuthenticatedUser:
    id: uuid.UUID
    username: str


def _extract_bearer(authorization: Optional[str]) -> str:
    if not authorization:
        raise AuthError("Missing authorization")
    scheme, _, token = authorization.partition(" ")
    token = token.strip()
    if scheme.lower() != "bearer" or not token:
        raise AuthError("Invalid Authorization header, expected 'Bearer <token>'")
    return token


def resolve_caller(authorization: Optional[str], session: Session) -> AuthenticatedUser:
    """
    Turn an Authorization header into a known, active user.

    Raises:
        AuthError: Missing header, bad token, unknown or disabled user.
    """
    token = _extract_bearer(authorization)
    try:
        payload = verify_token(token, token_type="access")
    except TokenError:
        raise AuthError("Unauthorized")

    try:
        user_id = uuid.UUID(str(payload.get("sub")))
    except ValueError:
        raise AuthError("Unauthorized")

    user = session.get(User, user_id)
    if user is None or not user.is_active:
        raise AuthError("Unauthorized")

    return AuthenticatedUser(id=user.id, username=user.username)


async def require_user(
    authorization: Optional[str] = Header(None),
    db: Session = Depends(get_db),
) -> AuthenticatedUser:
    """
    FastAPI dependency for the management endpoints.
    """
    try:
        return resolve_caller(authorization, db)
    except AuthError as exc:
        raise unauthorized(exc.message)


__all__ = ["AuthenticatedUser", "require_user", "resolve_caller"]
