from __future__ import annotations

import datetime as dt
from typing import Any, Iterable

import httpx
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from promptvault.deps import get_db, get_http_client
from promptvault.models import Base, User
from promptvault.schemas.model import Capability, CostTier, NormalizedModel
from promptvault.services.jwt_auth_service import create_access_token

FIXED_TIME = dt.datetime(2024, 1, 1, tzinfo=dt.timezone.utc)


def make_session_factory() -> sessionmaker[Session]:
    engine = create_engine(
        "sqlite+pysqlite:///:memory:",
        future=True,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    return sessionmaker(
        bind=engine,
        autoflush=False,
        autocommit=False,
        future=True,
        expire_on_commit=False,
    )


def install_inmemory_db(app) -> sessionmaker[Session]:
    """
    Attach an in-memory SQLite database to the FastAPI app.
    """
    SessionLocal = make_session_factory()

    def override_get_db():
        db = SessionLocal()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db] = override_get_db
    return SessionLocal


def install_upstream(app, handler) -> None:
    """Route the proxy's outgoing HTTP calls to `handler`."""

    async def override_get_http_client():
        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
            yield client

    app.dependency_overrides[get_http_client] = override_get_http_client


def seed_user(session: Session, *, username: str = "alice", is_active: bool = True) -> User:
    user = User(username=username, is_active=is_active)
    session.add(user)
    session.commit()
    session.refresh(user)
    session.expunge(user)
    return user


def jwt_auth_headers(user_id: Any) -> dict[str, str]:
    access_token = create_access_token({"sub": str(user_id)})
    return {"Authorization": f"Bearer {access_token}"}


def make_model(
    original_id: str,
    *,
    provider: str = "test",
    capabilities: Iterable[str] = ("text",),
    cost_tier: str = "unknown",
    is_available: bool = True,
) -> NormalizedModel:
    return NormalizedModel(
        id=f"{provider}:{original_id}",
        original_id=original_id,
        provider=provider,
        name=original_id,
        capabilities=[Capability(c) for c in capabilities],
        cost_tier=CostTier(cost_tier),
        is_available=is_available,
        fetched_at=FIXED_TIME,
    )
