from __future__ import annotations

from sqlalchemy import Boolean, Column, ForeignKey, String, Text, UniqueConstraint, Uuid, text
from sqlalchemy.orm import Mapped, relationship

from promptvault.vault import split_blob

from .base import Base, TimestampMixin, UUIDPrimaryKeyMixin

ROLES = ("gen", "improve", "vision")


class APIKeyRecord(UUIDPrimaryKeyMixin, TimestampMixin, Base):
    """
    A user's encrypted key for one AI provider.

    `encrypted_key` holds the vault blob; `ciphertext`, `iv` and `auth_tag`
    are read-only views of its parts. At most one record per user should
    have a given `is_active_<role>` flag set; the key service enforces it.
    """

    __tablename__ = "user_api_keys"
    __table_args__ = (
        UniqueConstraint("user_id", "provider", name="uq_user_api_keys_user_provider"),
    )

    user_id = Column(
        Uuid(as_uuid=True),
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    provider: Mapped[str] = Column(String(32), nullable=False)
    encrypted_key: Mapped[str] = Column(Text, nullable=False)
    key_hint: Mapped[str] = Column(String(32), nullable=False)

    model_gen: Mapped[str | None] = Column(String(255), nullable=True)
    model_improve: Mapped[str | None] = Column(String(255), nullable=True)
    model_vision: Mapped[str | None] = Column(String(255), nullable=True)

    is_active_gen: Mapped[bool] = Column(
        Boolean, nullable=False, default=False, server_default=text("FALSE")
    )
    is_active_improve: Mapped[bool] = Column(
        Boolean, nullable=False, default=False, server_default=text("FALSE")
    )
    is_active_vision: Mapped[bool] = Column(
        Boolean, nullable=False, default=False, server_default=text("FALSE")
    )

    user: Mapped["User"] = relationship("User", back_populates="api_keys")

    @property
    def iv(self) -> bytes:
        return split_blob(self.encrypted_key)[0]

    @property
    def ciphertext(self) -> bytes:
        return split_blob(self.encrypted_key)[1]

    @property
    def auth_tag(self) -> bytes:
        return split_blob(self.encrypted_key)[2]

    @property
    def model_defaults(self) -> dict[str, str | None]:
        return {role: getattr(self, f"model_{role}") for role in ROLES}

    @property
    def active_roles(self) -> dict[str, bool]:
        return {role: bool(getattr(self, f"is_active_{role}")) for role in ROLES}

    def is_active_for(self, role: str) -> bool:
        return bool(getattr(self, f"is_active_{role}"))


__all__ = ["APIKeyRecord", "ROLES"]
