"""
Access-token issuing and verification.
"""

import datetime
from typing import Any, Dict, Optional

from jose import JWTError, jwt

from promptvault.settings import settings


class TokenError(Exception):
    """Token could not be decoded or has the wrong type."""


def create_access_token(
    data: Dict[str, Any], expires_delta: Optional[datetime.timedelta] = None
) -> str:
    """
    Create a signed access token.

    Args:
        data: Claims to embed; `sub` should be the user id.
        expires_delta: Custom lifetime, defaults to ACCESS_TOKEN_EXPIRE_MINUTES.

    Returns:
        The encoded JWT.
    """
    to_encode = data.copy()
    if expires_delta is None:
        expires_delta = datetime.timedelta(minutes=settings.access_token_expire_minutes)
    expire = datetime.datetime.now(datetime.timezone.utc) + expires_delta

    to_encode.update({"exp": expire, "type": "access"})
    return jwt.encode(to_encode, settings.secret_key, algorithm=settings.jwt_algorithm)


def verify_token(token: str, token_type: str = "access") -> Dict[str, Any]:
    """
    Decode and validate a token.

    Raises:
        TokenError: On a bad signature, expiry, or a type mismatch.
    """
    try:
        payload = jwt.decode(token, settings.secret_key, algorithms=[settings.jwt_algorithm])
    except JWTError as exc:
        raise TokenError(str(exc)) from exc

    if payload.get("type") != token_type:
        raise TokenError(f"expected a {token_type} token")
    return payload


__all__ = ["TokenError", "create_access_token", "verify_token"]
