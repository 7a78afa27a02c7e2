"""Tests for the local login web server."""
from urllib.parse import parse_qs, urlparse

import httpx
import pytest
from fastapi.testclient import TestClient
from sqlmodel import Session

from todo_mcp.auth.oauth import OAuthSessionEstablisher
from todo_mcp.auth.token_store import HandshakeRegistry
from todo_mcp.main import app
from todo_mcp.routers.auth import HANDSHAKE_COOKIE, get_establisher_factory, get_registry
from todo_mcp.services.user_service import UserService

from .fakes import make_token


@pytest.fixture
def token_response():
    return {
        "access_token": "access-1",
        "id_token": make_token("kp_alice", email="alice@example.com", given_name="Alice"),
    }


@pytest.fixture
def registry():
    return HandshakeRegistry()


@pytest.fixture
def client(settings, engine, token_response, registry):
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json=token_response)

    def factory(context):
        http_client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
        return OAuthSessionEstablisher(settings, context, engine, http_client=http_client)

    app.dependency_overrides[get_registry] = lambda: registry
    app.dependency_overrides[get_establisher_factory] = lambda: factory
    yield TestClient(app)
    app.dependency_overrides.clear()


def start_login(client):
    response = client.get("/login", follow_redirects=False)
    state = parse_qs(urlparse(response.headers["location"]).query)["state"][0]
    return response, state


def test_health(client):
    assert client.get("/health").json()["status"] == "healthy"


def test_home_before_login(client):
    assert client.get("/").json() == {"authenticated": False, "login_url": "/login"}


def test_login_redirects_to_identity_provider(client, settings):
    response, state = start_login(client)

    assert response.status_code == 302
    assert response.headers["location"].startswith(f"{settings.issuer_url}/oauth2/auth")
    assert client.cookies.get(HANDSHAKE_COOKIE) == state


def test_full_login_flow(client, engine):
    _, state = start_login(client)

    callback = client.get("/callback", params={"code": "code-1", "state": state})
    home = client.get("/")

    assert callback.status_code == 200
    body = callback.json()
    assert body["authenticated"] is True
    assert body["user"] == {"name": "Alice", "email": "alice@example.com"}
    assert body["access_token"] == "access-1"
    assert home.json()["id_token"] == body["id_token"]

    with Session(engine) as session:
        assert UserService(session).get("kp_alice").name == "Alice"


def test_callback_without_code_is_400(client):
    _, state = start_login(client)

    response = client.get("/callback", params={"state": state})

    assert response.status_code == 400
    assert response.json()["detail"] == "No authorization code received"


def test_callback_for_unknown_handshake_is_400(client):
    response = client.get("/callback", params={"code": "code-1", "state": "never-issued"})

    assert response.status_code == 400


def test_callback_without_access_token_is_400(client, token_response):
    token_response.clear()
    token_response["error"] = "invalid_grant"
    _, state = start_login(client)

    response = client.get("/callback", params={"code": "code-1", "state": state})

    assert response.status_code == 400
    assert "no access token" in response.json()["detail"]


def test_logout_forgets_handshake(client, registry):
    _, state = start_login(client)
    client.get("/callback", params={"code": "code-1", "state": state})

    response = client.get("/logout", follow_redirects=False)

    assert response.status_code == 302
    assert len(registry) == 0
    client.cookies.clear()
    assert client.get("/").json()["authenticated"] is False
