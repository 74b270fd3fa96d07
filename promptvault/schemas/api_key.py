from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field, field_validator

from .model import CatalogProvider
from .proxy import KeyRole


class ModelDefaults(BaseModel):
    gen: str | None = None
    improve: str | None = None
    vision: str | None = None


class ActiveRoles(BaseModel):
    gen: bool = False
    improve: bool = False
    vision: bool = False


class APIKeySaveRequest(BaseModel):
    provider: CatalogProvider
    api_key: str = Field(..., alias="apiKey")
    model_defaults: ModelDefaults | None = Field(default=None, alias="modelDefaults")

    model_config = ConfigDict(populate_by_name=True, protected_namespaces=())

    @field_validator("api_key")
    @classmethod
    def _check_length(cls, value: str) -> str:
        trimmed = value.strip()
        if len(trimmed) < 8:
            raise ValueError("API key too short")
        if len(trimmed) > 500:
            raise ValueError("API key too long")
        return trimmed


class APIKeyActivateRequest(BaseModel):
    role: KeyRole = KeyRole.GEN


class APIKeyResponse(BaseModel):
    """Public view of a stored key; never carries the ciphertext."""

    model_config = ConfigDict(populate_by_name=True, protected_namespaces=())

    provider: str
    key_hint: str = Field(..., alias="keyHint")
    model_defaults: ModelDefaults = Field(..., alias="modelDefaults")
    active_roles: ActiveRoles = Field(..., alias="activeRoles")
    updated_at: datetime | None = Field(None, alias="updatedAt")


class APIKeyListResponse(BaseModel):
    keys: list[APIKeyResponse] = Field(default_factory=list)


class APIKeySaveResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    success: bool = True
    hint: str
    active_roles: ActiveRoles = Field(..., alias="activeRoles")


__all__ = [
    "APIKeyActivateRequest",
    "APIKeyListResponse",
    "APIKeyResponse",
    "APIKeySaveRequest",
    "APIKeySaveResponse",
    "ActiveRoles",
    "ModelDefaults",
]
