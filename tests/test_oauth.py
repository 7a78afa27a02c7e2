"""Tests for the OAuth authorization-code handshake."""
from urllib.parse import parse_qs, urlparse

import httpx
import pytest

from todo_mcp.auth.oauth import HandshakePhase, OAuthSessionEstablisher
from todo_mcp.auth.token_store import HandshakeContext
from todo_mcp.mcp.base_tool import InvalidStateError, MissingCodeError, TokenExchangeFailedError
from todo_mcp.services.user_service import UserService

from .fakes import make_token


def token_endpoint(body, status_code=200, seen=None):
    def handler(request: httpx.Request) -> httpx.Response:
        if seen is not None:
            seen.append(request)
        return httpx.Response(status_code, json=body)
    return httpx.AsyncClient(transport=httpx.MockTransport(handler))


def id_token(**claims):
    claims.setdefault("email", "alice@example.com")
    claims.setdefault("given_name", "Alice")
    return make_token("kp_alice", **claims)


def test_initiate_login_builds_authorization_url(settings, engine):
    context = HandshakeContext()
    establisher = OAuthSessionEstablisher(settings, context, engine)

    url = establisher.initiate_login()

    parsed = urlparse(url)
    query = parse_qs(parsed.query)
    assert url.startswith(f"{settings.issuer_url}/oauth2/auth?")
    assert query["response_type"] == ["code"]
    assert query["client_id"] == ["client-123"]
    assert query["redirect_uri"] == [settings.redirect_url]
    assert query["state"] == [context.get("state")]
    assert query["nonce"] == [context.get("nonce")]
    assert establisher.phase == HandshakePhase.AWAITING_CALLBACK


def test_new_handshake_awaits_redirect(settings, engine):
    establisher = OAuthSessionEstablisher(settings, HandshakeContext(), engine)

    assert establisher.phase == HandshakePhase.AWAITING_REDIRECT
    assert establisher.session is None


@pytest.mark.asyncio
async def test_callback_exchanges_code_and_creates_user(settings, engine, session):
    seen = []
    client = token_endpoint({"access_token": "access-1", "id_token": id_token()}, seen=seen)
    establisher = OAuthSessionEstablisher(settings, HandshakeContext(), engine, http_client=client)
    establisher.initiate_login()
    state = establisher.context.get("state")

    established = await establisher.handle_callback("code-1", state)

    assert established.user_id == "kp_alice"
    assert established.name == "Alice"
    assert established.access_token == "access-1"
    assert establisher.phase == HandshakePhase.ESTABLISHED
    assert establisher.context.get("state") is None

    form = parse_qs(seen[0].content.decode())
    assert str(seen[0].url) == f"{settings.issuer_url}/oauth2/token"
    assert form["grant_type"] == ["authorization_code"]
    assert form["code"] == ["code-1"]
    assert form["client_secret"] == ["client-secret"]

    user = UserService(session).get("kp_alice")
    assert user.email == "alice@example.com"
    assert user.free_todos_used == 0


@pytest.mark.asyncio
async def test_callback_refreshes_existing_user(settings, engine, session):
    UserService(session).get_or_create("kp_alice", name="Old", email="old@example.com")
    client = token_endpoint({"access_token": "a", "id_token": id_token(given_name="New", email="new@example.com")})
    establisher = OAuthSessionEstablisher(settings, HandshakeContext(), engine, http_client=client)

    await establisher.handle_callback("code-1")

    user = UserService(session).get("kp_alice")
    session.refresh(user)
    assert user.name == "New"
    assert user.email == "new@example.com"


@pytest.mark.asyncio
async def test_callback_without_code_fails(settings, engine):
    establisher = OAuthSessionEstablisher(settings, HandshakeContext(), engine)

    with pytest.raises(MissingCodeError):
        await establisher.handle_callback(None)


@pytest.mark.asyncio
async def test_callback_without_access_token_fails(settings, engine):
    client = token_endpoint({"error": "invalid_grant"}, status_code=400)
    establisher = OAuthSessionEstablisher(settings, HandshakeContext(), engine, http_client=client)

    with pytest.raises(TokenExchangeFailedError):
        await establisher.handle_callback("bad-code")

    assert establisher.phase == HandshakePhase.AWAITING_REDIRECT


@pytest.mark.asyncio
async def test_callback_with_wrong_state_fails(settings, engine):
    establisher = OAuthSessionEstablisher(settings, HandshakeContext(), engine)
    establisher.initiate_login()

    with pytest.raises(InvalidStateError):
        await establisher.handle_callback("code-1", "forged-state")


@pytest.mark.asyncio
async def test_logout_clears_handshake(settings, engine):
    client = token_endpoint({"access_token": "a", "id_token": id_token()})
    establisher = OAuthSessionEstablisher(settings, HandshakeContext(), engine, http_client=client)
    await establisher.handle_callback("code-1")

    establisher.logout()

    assert establisher.session is None
    assert establisher.phase == HandshakePhase.AWAITING_REDIRECT
