import json
import threading
from typing import List

import httpx
import pytest

from promptvault.errors import (
    AuthError,
    InternalError,
    NotFoundError,
    UpstreamError,
    UpstreamUnavailableError,
    ValidationError,
)
from promptvault.proxy.dispatcher import ProxyDispatcher
from promptvault.services import api_key_service
from tests.utils import jwt_auth_headers, make_session_factory, seed_user

SECRET = "proxy-test-secret"


class Upstream:
    """Records every outgoing request and answers with a fixed response."""

    def __init__(self, response: httpx.Response | None = None, exc: Exception | None = None):
        self.response = response or httpx.Response(200, json={"ok": True})
        self.exc = exc
        self.requests: List[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.exc is not None:
            raise self.exc
        return self.response


@pytest.fixture()
def session():
    SessionLocal = make_session_factory()
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


@pytest.fixture()
def user(session):
    return seed_user(session)


@pytest.fixture()
def auth(user):
    return jwt_auth_headers(user.id)["Authorization"]


def _dispatcher(session, upstream: Upstream, secret: str = SECRET) -> ProxyDispatcher:
    client = httpx.AsyncClient(transport=httpx.MockTransport(upstream))
    return ProxyDispatcher(session, client, secret=secret)


def _payload(**overrides):
    payload = {
        "provider": "openai",
        "endpoint": "/chat/completions",
        "method": "POST",
        "body": {"model": "gpt-4o", "messages": [{"role": "user", "content": "hi"}]},
    }
    payload.update(overrides)
    return payload


@pytest.mark.asyncio
async def test_forwards_with_bearer_key_and_passes_body_through(session, user, auth):
    api_key_service.save_key(session, user.id, "openai", "sk-openai-123456", secret=SECRET)
    upstream = Upstream(httpx.Response(200, json={"id": "chatcmpl-1", "choices": []}))

    result = await _dispatcher(session, upstream).dispatch(_payload(), auth)

    assert result.status_code == 200
    assert result.body == {"id": "chatcmpl-1", "choices": []}
    (sent,) = upstream.requests
    assert str(sent.url) == "https://api.openai.com/v1/chat/completions"
    assert sent.method == "POST"
    assert sent.headers["authorization"] == "Bearer sk-openai-123456"
    assert sent.headers["content-type"] == "application/json"
    assert json.loads(sent.content)["model"] == "gpt-4o"


@pytest.mark.asyncio
async def test_anthropic_uses_api_key_header(session, user, auth):
    api_key_service.save_key(session, user.id, "anthropic", "sk-ant-abcdefgh", secret=SECRET)
    upstream = Upstream()

    await _dispatcher(session, upstream).dispatch(
        _payload(provider="anthropic", endpoint="/messages"), auth
    )

    (sent,) = upstream.requests
    assert sent.headers["x-api-key"] == "sk-ant-abcdefgh"
    assert sent.headers["anthropic-version"] == "2023-06-01"
    assert "authorization" not in sent.headers


@pytest.mark.asyncio
async def test_gemini_puts_key_in_query(session, user, auth):
    api_key_service.save_key(session, user.id, "gemini", "AIza-gemini-key", secret=SECRET)
    upstream = Upstream()

    await _dispatcher(session, upstream).dispatch(
        _payload(provider="gemini", endpoint="/models/gemini-pro:generateContent"), auth
    )

    (sent,) = upstream.requests
    assert sent.url.path == "/v1/models/gemini-pro:generateContent"
    assert sent.url.params["key"] == "AIza-gemini-key"
    assert "authorization" not in sent.headers


@pytest.mark.asyncio
async def test_unknown_provider_is_rejected_before_anything_else(session):
    upstream = Upstream()

    with pytest.raises(ValidationError) as excinfo:
        await _dispatcher(session, upstream).dispatch(_payload(provider="mistral"), None)

    assert excinfo.value.status_code == 400
    assert "provider" in excinfo.value.message
    assert upstream.requests == []


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "payload",
    [
        {"endpoint": "/chat/completions"},
        {"provider": "openai"},
        {"provider": "openai", "endpoint": ""},
        {"provider": "openai", "endpoint": "/x", "method": "PATCH"},
        ["not", "an", "object"],
    ],
)
async def test_malformed_requests_are_rejected(session, payload):
    with pytest.raises(ValidationError):
        await _dispatcher(session, Upstream()).dispatch(payload, None)


@pytest.mark.asyncio
@pytest.mark.parametrize("authorization", [None, "", "Basic abc", "Bearer not-a-jwt"])
async def test_missing_or_bad_auth_never_reaches_upstream(session, user, authorization):
    api_key_service.save_key(session, user.id, "openai", "sk-openai-123456", secret=SECRET)
    upstream = Upstream()

    with pytest.raises(AuthError) as excinfo:
        await _dispatcher(session, upstream).dispatch(_payload(), authorization)

    assert excinfo.value.status_code == 401
    assert upstream.requests == []


@pytest.mark.asyncio
async def test_no_active_key_is_404(session, user, auth):
    upstream = Upstream()

    with pytest.raises(NotFoundError) as excinfo:
        await _dispatcher(session, upstream).dispatch(_payload(), auth)

    assert excinfo.value.message == "No active API key configured for openai"
    assert upstream.requests == []


@pytest.mark.asyncio
async def test_key_is_looked_up_for_the_requested_role(session, user, auth):
    api_key_service.save_key(session, user.id, "openai", "sk-openai-123456", secret=SECRET)
    api_key_service.save_key(session, user.id, "anthropic", "sk-ant-abcdefgh", secret=SECRET)
    api_key_service.set_active(session, user.id, "anthropic", "vision")

    with pytest.raises(NotFoundError):
        await _dispatcher(session, Upstream()).dispatch(_payload(role="vision"), auth)


@pytest.mark.asyncio
async def test_other_users_keys_are_not_used(session, user, auth):
    other = seed_user(session, username="bob")
    api_key_service.save_key(session, other.id, "openai", "sk-bob-12345678", secret=SECRET)

    with pytest.raises(NotFoundError):
        await _dispatcher(session, Upstream()).dispatch(_payload(), auth)


@pytest.mark.asyncio
async def test_undecryptable_key_is_generic_500(session, user, auth):
    api_key_service.save_key(session, user.id, "openai", "sk-openai-123456", secret=SECRET)
    upstream = Upstream()

    with pytest.raises(InternalError) as excinfo:
        await _dispatcher(session, upstream, secret="another-secret").dispatch(_payload(), auth)

    assert excinfo.value.status_code == 500
    assert excinfo.value.to_payload() == {"error": "Internal server error"}
    assert upstream.requests == []


@pytest.mark.asyncio
async def test_upstream_error_status_and_body_are_relayed(session, user, auth):
    api_key_service.save_key(session, user.id, "openai", "sk-openai-123456", secret=SECRET)
    error_body = {"error": {"message": "Rate limit reached", "type": "rate_limit"}}
    upstream = Upstream(httpx.Response(429, json=error_body))

    with pytest.raises(UpstreamError) as excinfo:
        await _dispatcher(session, upstream).dispatch(_payload(), auth)

    assert excinfo.value.status_code == 429
    assert excinfo.value.to_payload() == {"error": "API request failed", "details": error_body}


@pytest.mark.asyncio
async def test_non_json_upstream_body_is_returned_as_text(session, user, auth):
    api_key_service.save_key(session, user.id, "openai", "sk-openai-123456", secret=SECRET)
    upstream = Upstream(httpx.Response(502, text="<html>bad gateway</html>"))

    with pytest.raises(UpstreamError) as excinfo:
        await _dispatcher(session, upstream).dispatch(_payload(), auth)

    assert excinfo.value.details == "<html>bad gateway</html>"


@pytest.mark.asyncio
async def test_empty_upstream_body(session, user, auth):
    api_key_service.save_key(session, user.id, "openai", "sk-openai-123456", secret=SECRET)
    upstream = Upstream(httpx.Response(204))

    result = await _dispatcher(session, upstream).dispatch(
        _payload(method="DELETE", endpoint="/files/file-1", body=None), auth
    )

    assert result.status_code == 204
    assert result.body is None


@pytest.mark.asyncio
async def test_transport_failure_is_502(session, user, auth):
    api_key_service.save_key(session, user.id, "openai", "sk-openai-123456", secret=SECRET)
    upstream = Upstream(exc=httpx.ConnectError("connection refused"))

    with pytest.raises(UpstreamUnavailableError) as excinfo:
        await _dispatcher(session, upstream).dispatch(_payload(), auth)

    assert excinfo.value.status_code == 502
    assert "sk-openai" not in excinfo.value.message


@pytest.mark.asyncio
async def test_key_is_decrypted_off_the_event_loop(session, user, auth):
    api_key_service.save_key(session, user.id, "openai", "sk-openai-123456", secret=SECRET)
    dispatcher = _dispatcher(session, Upstream())
    decrypt = dispatcher.vault.decrypt
    threads = []

    def recording_decrypt(blob):
        threads.append(threading.get_ident())
        return decrypt(blob)

    dispatcher.vault.decrypt = recording_decrypt
    await dispatcher.dispatch(_payload(), auth)

    assert threads and threads[0] != threading.get_ident()
