import httpx
import pytest
from fastapi.testclient import TestClient

from promptvault.routes import create_app
from promptvault.services import api_key_service
from promptvault.settings import settings
from tests.utils import install_inmemory_db, install_upstream, jwt_auth_headers, seed_user


class Upstream:
    def __init__(self, response=None, exc=None):
        self.response = response or httpx.Response(200, json={"choices": [{"text": "hi"}]})
        self.exc = exc
        self.requests = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.exc is not None:
            raise self.exc
        return self.response


@pytest.fixture()
def upstream():
    return Upstream()


@pytest.fixture()
def app(upstream):
    app = create_app()
    app.state.SessionLocal = install_inmemory_db(app)
    install_upstream(app, upstream)
    return app


@pytest.fixture()
def client(app):
    return TestClient(app)


@pytest.fixture()
def user(app):
    with app.state.SessionLocal() as session:
        user = seed_user(session)
        api_key_service.save_key(
            session, user.id, "openai", "sk-openai-123456", secret=settings.vault_secret
        )
    return user


def _body(**overrides):
    body = {"provider": "openai", "endpoint": "/chat/completions", "body": {"model": "gpt-4o"}}
    body.update(overrides)
    return body


def test_successful_proxy_call(client, user, upstream):
    resp = client.post("/ai-proxy", json=_body(), headers=jwt_auth_headers(user.id))

    assert resp.status_code == 200
    assert resp.json() == {"choices": [{"text": "hi"}]}
    assert upstream.requests[0].headers["authorization"] == "Bearer sk-openai-123456"


def test_missing_auth_is_401(client, user, upstream):
    resp = client.post("/ai-proxy", json=_body())

    assert resp.status_code == 401
    assert resp.json() == {"error": "Missing authorization"}
    assert upstream.requests == []


def test_unknown_provider_is_400(client, user):
    resp = client.post("/ai-proxy", json=_body(provider="mistral"), headers=jwt_auth_headers(user.id))

    assert resp.status_code == 400
    assert "provider" in resp.json()["error"]


def test_non_json_body_is_400(client, user):
    resp = client.post(
        "/ai-proxy",
        content=b"not json",
        headers={**jwt_auth_headers(user.id), "Content-Type": "application/json"},
    )

    assert resp.status_code == 400
    assert resp.json() == {"error": "Request body must be a JSON object"}


def test_no_key_for_provider_is_404(client, user):
    resp = client.post(
        "/ai-proxy", json=_body(provider="anthropic"), headers=jwt_auth_headers(user.id)
    )

    assert resp.status_code == 404
    assert resp.json() == {"error": "No active API key configured for anthropic"}


def test_upstream_error_is_relayed(client, user, upstream):
    upstream.response = httpx.Response(401, json={"error": {"message": "Incorrect API key"}})

    resp = client.post("/ai-proxy", json=_body(), headers=jwt_auth_headers(user.id))

    assert resp.status_code == 401
    assert resp.json() == {
        "error": "API request failed",
        "details": {"error": {"message": "Incorrect API key"}},
    }


def test_unreachable_upstream_is_502(client, user, upstream):
    upstream.exc = httpx.ReadTimeout("timed out")

    resp = client.post("/ai-proxy", json=_body(), headers=jwt_auth_headers(user.id))

    assert resp.status_code == 502
    assert resp.json() == {"error": "Upstream provider unreachable"}


def test_no_content_upstream(client, user, upstream):
    upstream.response = httpx.Response(204)

    resp = client.post(
        "/ai-proxy",
        json=_body(method="DELETE", endpoint="/files/file-1", body=None),
        headers=jwt_auth_headers(user.id),
    )

    assert resp.status_code == 204
    assert resp.content == b""
