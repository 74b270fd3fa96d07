import pytest

from promptvault.proxy.auth_styles import (
    PROVIDER_ROUTES,
    BearerAuth,
    HeaderAuth,
    QueryParamAuth,
    resolve_route,
)
from promptvault.schemas.proxy import ProviderId


def test_every_provider_has_a_route():
    assert set(PROVIDER_ROUTES) == set(ProviderId)


def test_bearer_auth():
    auth = BearerAuth()
    assert auth.headers("sk-1") == {"Authorization": "Bearer sk-1"}
    assert auth.params("sk-1") == {}


def test_header_auth_includes_extra_headers():
    auth = HeaderAuth("x-api-key", {"anthropic-version": "2023-06-01"})
    assert auth.headers("k") == {"x-api-key": "k", "anthropic-version": "2023-06-01"}
    assert auth.params("k") == {}


def test_query_param_auth():
    auth = QueryParamAuth()
    assert auth.headers("k") == {}
    assert auth.params("k") == {"key": "k"}


@pytest.mark.parametrize(
    "provider, url",
    [
        ("openai", "https://api.openai.com/v1/chat/completions"),
        ("anthropic", "https://api.anthropic.com/v1/chat/completions"),
        ("gemini", "https://generativelanguage.googleapis.com/v1/chat/completions"),
        ("openrouter", "https://openrouter.ai/api/v1/chat/completions"),
    ],
)
def test_url_for_appends_endpoint_verbatim(provider, url):
    assert resolve_route(provider).url_for("/chat/completions") == url


def test_resolve_route_rejects_unknown_provider():
    with pytest.raises(ValueError):
        resolve_route("mistral")
