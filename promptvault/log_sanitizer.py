from __future__ import annotations

from collections.abc import Mapping
from typing import Any

REDACTED = "***REDACTED***"


_SENSITIVE_HEADER_NAMES = {
    "authorization",
    "proxy-authorization",
    "x-api-key",
    "api-key",
    "x-auth-token",
    "x-access-token",
    "cookie",
    "set-cookie",
}

_SENSITIVE_HEADER_TOKENS = ("key", "token", "secret", "auth", "cookie", "session")

_SENSITIVE_FIELD_TOKENS = ("password", "secret", "key", "token", "auth")


def sanitize_headers_for_log(
    headers: Mapping[str, str], *, mask_token: str = REDACTED
) -> dict[str, str]:
    """
    Return a copy of the headers that is safe to log.

    Well-known credential headers and any header whose name contains
    key/token/secret/auth/cookie/session are masked; the rest are kept
    verbatim to help debugging.
    """
    sanitized: dict[str, str] = {}
    for name, value in headers.items():
        lower_name = name.lower()
        if lower_name in _SENSITIVE_HEADER_NAMES or any(
            token in lower_name for token in _SENSITIVE_HEADER_TOKENS
        ):
            sanitized[name] = mask_token
            continue
        sanitized[name] = value
    return sanitized


def sanitize_payload_for_log(payload: Any, *, mask_token: str = REDACTED) -> Any:
    """
    Recursively mask mapping values whose key looks like a credential.

    Lists and nested mappings are walked; the input is never mutated.
    """
    if isinstance(payload, Mapping):
        result: dict[Any, Any] = {}
        for key, value in payload.items():
            lowered = str(key).lower()
            if any(token in lowered for token in _SENSITIVE_FIELD_TOKENS) and not isinstance(
                value, (Mapping, list, tuple)
            ):
                result[key] = mask_token
            else:
                result[key] = sanitize_payload_for_log(value, mask_token=mask_token)
        return result
    if isinstance(payload, (list, tuple)):
        return [sanitize_payload_for_log(item, mask_token=mask_token) for item in payload]
    return payload


__all__ = ["REDACTED", "sanitize_headers_for_log", "sanitize_payload_for_log"]
