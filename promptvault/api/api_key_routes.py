"""
Stored provider API keys of the calling user.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from promptvault.auth import AuthenticatedUser, require_user
from promptvault.deps import get_db
from promptvault.models import APIKeyRecord
from promptvault.schemas import (
    APIKeyActivateRequest,
    APIKeyListResponse,
    APIKeyResponse,
    APIKeySaveRequest,
    APIKeySaveResponse,
    ActiveRoles,
    CatalogProvider,
    ModelDefaults,
)
from promptvault.services.api_key_service import delete_key, list_keys, save_key, set_active

router = APIRouter(tags=["api-keys"], prefix="/api-keys")


def _to_response(record: APIKeyRecord) -> APIKeyResponse:
    return APIKeyResponse(
        provider=record.provider,
        key_hint=record.key_hint,
        model_defaults=ModelDefaults(**record.model_defaults),
        active_roles=ActiveRoles(**record.active_roles),
        updated_at=record.updated_at,
    )


@router.get("", response_model=APIKeyListResponse)
def list_api_keys_endpoint(
    db: Session = Depends(get_db),
    current_user: AuthenticatedUser = Depends(require_user),
) -> APIKeyListResponse:
    return APIKeyListResponse(keys=[_to_response(r) for r in list_keys(db, current_user.id)])


@router.post("", response_model=APIKeySaveResponse, status_code=status.HTTP_200_OK)
def save_api_key_endpoint(
    payload: APIKeySaveRequest,
    db: Session = Depends(get_db),
    current_user: AuthenticatedUser = Depends(require_user),
) -> APIKeySaveResponse:
    """
    Encrypt and store (or replace) the caller's key for a provider.
    """
    record = save_key(
        db,
        current_user.id,
        payload.provider.value,
        payload.api_key,
        model_defaults=payload.model_defaults.model_dump() if payload.model_defaults else None,
    )
    return APIKeySaveResponse(hint=record.key_hint, active_roles=ActiveRoles(**record.active_roles))


@router.post("/{provider}/activate", response_model=APIKeyResponse)
def activate_api_key_endpoint(
    provider: CatalogProvider,
    payload: APIKeyActivateRequest | None = None,
    db: Session = Depends(get_db),
    current_user: AuthenticatedUser = Depends(require_user),
) -> APIKeyResponse:
    role = payload.role if payload else APIKeyActivateRequest().role
    record = set_active(db, current_user.id, provider.value, role.value)
    return _to_response(record)


@router.delete("/{provider}")
def delete_api_key_endpoint(
    provider: CatalogProvider,
    db: Session = Depends(get_db),
    current_user: AuthenticatedUser = Depends(require_user),
) -> dict:
    delete_key(db, current_user.id, provider.value)
    return {"success": True}
