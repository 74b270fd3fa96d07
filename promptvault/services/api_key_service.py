"""
Management of users' stored provider API keys.

Keys are encrypted with the credential vault before they touch the
database. Each record carries one active flag per role (gen / improve /
vision); this module keeps at most one record per user active for a role.
"""

from __future__ import annotations

import uuid
from typing import List, Optional

from sqlalchemy import Uuid, select
from sqlalchemy.orm import Session

from promptvault.errors import NotFoundError, ValidationError
from promptvault.logging_config import logger
from promptvault.models import ROLES, APIKeyRecord
from promptvault.query import Neq, apply_provider_filter, bind_positional
from promptvault.settings import settings
from promptvault.vault import CredentialVault, DecryptionFailure, mask_key

MIN_KEY_LENGTH = 8
MAX_KEY_LENGTH = 500


def _vault(secret: Optional[str]) -> CredentialVault:
    return CredentialVault(secret if secret is not None else settings.vault_secret)


def _check_role(role: str) -> str:
    role = getattr(role, "value", role)
    if role not in ROLES:
        raise ValidationError(f"Unknown role: {role}")
    return role


def _get_record(session: Session, user_id: uuid.UUID, provider: str) -> Optional[APIKeyRecord]:
    stmt = select(APIKeyRecord).where(
        APIKeyRecord.user_id == user_id,
        APIKeyRecord.provider == provider,
    )
    return session.execute(stmt).scalars().first()


def list_keys(session: Session, user_id: uuid.UUID) -> List[APIKeyRecord]:
    """
    All keys of a user, ordered by provider.
    """
    stmt = (
        select(APIKeyRecord)
        .where(APIKeyRecord.user_id == user_id)
        .order_by(APIKeyRecord.provider)
    )
    return list(session.execute(stmt).scalars().all())


def save_key(
    session: Session,
    user_id: uuid.UUID,
    provider: str,
    api_key: str,
    *,
    secret: Optional[str] = None,
    model_defaults: Optional[dict[str, Optional[str]]] = None,
) -> APIKeyRecord:
    """
    Encrypt and upsert a user's key for `provider`.

    For every role that none of the user's keys is active for yet, the
    saved key becomes the active one.

    Raises:
        ValidationError: If the trimmed key is shorter than 8 or longer than 500 chars.
    """
    trimmed = api_key.strip()
    if len(trimmed) < MIN_KEY_LENGTH:
        raise ValidationError("API key too short")
    if len(trimmed) > MAX_KEY_LENGTH:
        raise ValidationError("API key too long")

    record = _get_record(session, user_id, provider)
    if record is None:
        record = APIKeyRecord(user_id=user_id, provider=provider)
        session.add(record)

    record.encrypted_key = _vault(secret).encrypt(trimmed)
    record.key_hint = mask_key(trimmed)
    for role, model in (model_defaults or {}).items():
        if role in ROLES and model is not None:
            setattr(record, f"model_{role}", model)

    others = [r for r in list_keys(session, user_id) if r is not record]
    for role in ROLES:
        if not any(r.is_active_for(role) for r in others) and not record.is_active_for(role):
            setattr(record, f"is_active_{role}", True)

    session.commit()
    session.refresh(record)
    logger.info(
        "Saved API key for user=%s provider=%s hint=%s active=%s",
        user_id,
        provider,
        record.key_hint,
        record.active_roles,
    )
    return record


def set_active(
    session: Session, user_id: uuid.UUID, provider: str, role: str = "gen"
) -> APIKeyRecord:
    """
    Make `provider` the user's only active key for `role`.

    Raises:
        NotFoundError: If the user has no key for `provider`.
    """
    role = _check_role(role)
    record = _get_record(session, user_id, provider)
    if record is None:
        raise NotFoundError("Provider key not configured")

    query = f"UPDATE user_api_keys SET is_active_{role} = $1"
    params: list = [False]
    query, params = apply_provider_filter(query, params, Neq(provider))
    params.append(user_id)
    query += f" AND user_id = ${len(params)}"

    stmt, binds = bind_positional(query, params, types={len(params): Uuid(as_uuid=True)})
    session.execute(stmt, binds)
    session.expire_all()

    setattr(record, f"is_active_{role}", True)
    session.commit()
    session.refresh(record)
    logger.info("Activated provider=%s for role=%s (user=%s)", provider, role, user_id)
    return record


def delete_key(session: Session, user_id: uuid.UUID, provider: str) -> None:
    """
    Delete a user's key. Roles it was active for move to the first
    remaining key in provider order.

    Raises:
        NotFoundError: If the user has no key for `provider`.
    """
    record = _get_record(session, user_id, provider)
    if record is None:
        raise NotFoundError("Provider key not configured")

    held_roles = [role for role in ROLES if record.is_active_for(role)]
    session.delete(record)
    session.flush()

    if held_roles:
        remaining = list_keys(session, user_id)
        if remaining:
            heir = remaining[0]
            for role in held_roles:
                setattr(heir, f"is_active_{role}", True)
            logger.info(
                "Promoted provider=%s for roles=%s after deleting %s (user=%s)",
                heir.provider,
                held_roles,
                provider,
                user_id,
            )

    session.commit()
    logger.info("Deleted API key for user=%s provider=%s", user_id, provider)


def get_active_key(
    session: Session, user_id: uuid.UUID, provider: str, role: str = "gen"
) -> Optional[APIKeyRecord]:
    role = _check_role(role)
    stmt = select(APIKeyRecord).where(
        APIKeyRecord.user_id == user_id,
        APIKeyRecord.provider == provider,
        getattr(APIKeyRecord, f"is_active_{role}").is_(True),
    )
    return session.execute(stmt).scalars().first()


def load_provider_credentials(
    session: Session, secret: Optional[str] = None
) -> list[tuple[str, str]]:
    """
    Decrypted (provider, api_key) pairs for every stored key.

    Rows that fail to decrypt are skipped with a warning.
    """
    vault = _vault(secret)
    stmt = select(APIKeyRecord).order_by(APIKeyRecord.provider, APIKeyRecord.updated_at.desc())
    pairs: list[tuple[str, str]] = []
    for record in session.execute(stmt).scalars():
        try:
            pairs.append((record.provider, vault.decrypt(record.encrypted_key)))
        except DecryptionFailure:
            logger.warning(
                "Skipping undecryptable key for provider=%s hint=%s",
                record.provider,
                record.key_hint,
            )
    return pairs


__all__ = [
    "MAX_KEY_LENGTH",
    "MIN_KEY_LENGTH",
    "delete_key",
    "get_active_key",
    "list_keys",
    "load_provider_credentials",
    "save_key",
    "set_active",
]
