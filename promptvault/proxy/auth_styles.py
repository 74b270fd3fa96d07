"""
How each upstream provider expects its API key, and where it lives.

Adding a provider is a new `PROVIDER_ROUTES` entry; the dispatcher has no
per-provider branches.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Union

from promptvault.schemas.proxy import ProviderId


@dataclass(frozen=True)
class BearerAuth:
    def headers(self, api_key: str) -> dict[str, str]:
        return {"Authorization": f"Bearer {api_key}"}

    def params(self, api_key: str) -> dict[str, str]:
        return {}


@dataclass(frozen=True)
class HeaderAuth:
    """Key in a dedicated header, plus fixed extra headers (e.g. an API version)."""

    header: str
    extra: dict[str, str] = field(default_factory=dict)

    def headers(self, api_key: str) -> dict[str, str]:
        return {self.header: api_key, **self.extra}

    def params(self, api_key: str) -> dict[str, str]:
        return {}


@dataclass(frozen=True)
class QueryParamAuth:
    param: str = "key"

    def headers(self, api_key: str) -> dict[str, str]:
        return {}

    def params(self, api_key: str) -> dict[str, str]:
        return {self.param: api_key}


AuthStyle = Union[BearerAuth, HeaderAuth, QueryParamAuth]


@dataclass(frozen=True)
class ProviderRoute:
    base_url: str
    auth: AuthStyle

    def url_for(self, endpoint: str) -> str:
        return f"{self.base_url}{endpoint}"


PROVIDER_ROUTES: dict[ProviderId, ProviderRoute] = {
    ProviderId.OPENAI: ProviderRoute("https://api.openai.com/v1", BearerAuth()),
    ProviderId.ANTHROPIC: ProviderRoute(
        "https://api.anthropic.com/v1",
        HeaderAuth("x-api-key", {"anthropic-version": "2023-06-01"}),
    ),
    ProviderId.GEMINI: ProviderRoute(
        "https://generativelanguage.googleapis.com/v1", QueryParamAuth("key")
    ),
    ProviderId.OPENROUTER: ProviderRoute("https://openrouter.ai/api/v1", BearerAuth()),
}


def resolve_route(provider: ProviderId | str) -> ProviderRoute:
    """Raises ValueError for an unknown provider id."""
    return PROVIDER_ROUTES[ProviderId(provider)]


__all__ = [
    "AuthStyle",
    "BearerAuth",
    "HeaderAuth",
    "PROVIDER_ROUTES",
    "ProviderRoute",
    "QueryParamAuth",
    "resolve_route",
]
