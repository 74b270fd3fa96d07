from __future__ import annotations

from enum import Enum
from typing import Any, Dict, Literal, Optional

from pydantic import BaseModel, Field


class ProviderId(str, Enum):
    OPENAI = "openai"
    GEMINI = "gemini"
    ANTHROPIC = "anthropic"
    OPENROUTER = "openrouter"


class KeyRole(str, Enum):
    """Which active-key slot a stored provider key is used for."""

    GEN = "gen"
    IMPROVE = "improve"
    VISION = "vision"


class ProxyRequest(BaseModel):
    """
    Body accepted by the AI proxy.

    `endpoint` is appended verbatim to the provider's base URL.
    """

    provider: ProviderId
    endpoint: str = Field(..., min_length=1, max_length=500)
    method: Literal["GET", "POST", "PUT", "DELETE"] = "POST"
    body: Optional[Dict[str, Any]] = None
    role: KeyRole = Field(
        KeyRole.GEN, description="Active-key role used to pick the caller's stored key"
    )


__all__ = ["KeyRole", "ProviderId", "ProxyRequest"]
