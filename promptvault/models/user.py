from __future__ import annotations

from sqlalchemy import Boolean, Column, String, text
from sqlalchemy.orm import Mapped, relationship

from .base import Base, TimestampMixin, UUIDPrimaryKeyMixin


class User(UUIDPrimaryKeyMixin, TimestampMixin, Base):
    """Owner of stored provider keys."""

    __tablename__ = "users"

    username: Mapped[str] = Column(String(64), unique=True, nullable=False, index=True)
    is_active: Mapped[bool] = Column(
        Boolean, server_default=text("TRUE"), default=True, nullable=False
    )

    api_keys: Mapped[list["APIKeyRecord"]] = relationship(
        "APIKeyRecord",
        back_populates="user",
        cascade="all, delete-orphan",
    )


__all__ = ["User"]
