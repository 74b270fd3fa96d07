from __future__ import annotations

from sqlalchemy import Boolean, Column, String, text
from sqlalchemy.orm import Mapped

from .base import Base, TimestampMixin, UUIDPrimaryKeyMixin


class LocalEndpoint(UUIDPrimaryKeyMixin, TimestampMixin, Base):
    """Self-hosted, OpenAI-compatible endpoint (Ollama, LM Studio, ...)."""

    __tablename__ = "user_local_endpoints"

    name: Mapped[str] = Column(String(255), nullable=False)
    provider: Mapped[str] = Column(String(32), nullable=False, index=True)
    endpoint_url: Mapped[str] = Column(String(512), nullable=False)
    model_name: Mapped[str | None] = Column(String(255), nullable=True)
    is_active: Mapped[bool] = Column(
        Boolean, nullable=False, default=True, server_default=text("TRUE")
    )


__all__ = ["LocalEndpoint"]
