from collections.abc import AsyncIterator, Iterator

import httpx
from fastapi import Request
from sqlalchemy.orm import Session

from .db import get_db_session
from .provider.registry import ProviderModelRegistry
from .settings import settings


def get_db() -> Iterator[Session]:
    """
    Provide a synchronous SQLAlchemy session.
    """
    yield from get_db_session()


async def get_http_client() -> AsyncIterator[httpx.AsyncClient]:
    """
    Short-lived AsyncClient for upstream HTTP calls.
    """
    async with httpx.AsyncClient(timeout=settings.upstream_timeout) as client:
        yield client


def get_model_registry(request: Request) -> ProviderModelRegistry:
    """
    The process-wide registry attached in `create_app`.
    """
    return request.app.state.model_registry
