"""Tests for bearer token verification."""
import httpx
import pytest

from todo_mcp.auth.verifier import PLACEHOLDER_EMAIL, TokenVerifier
from todo_mcp.mcp.base_tool import InvalidTokenError

from .fakes import ISSUER, make_token


@pytest.fixture
def verifier():
    return TokenVerifier(ISSUER)


def test_valid_token_yields_identity(verifier):
    token = make_token("kp_alice", email="alice@example.com", given_name="Alice")

    identity = verifier.verify(token)

    assert identity.user_id == "kp_alice"
    assert identity.email == "alice@example.com"
    assert identity.name == "Alice"


def test_missing_email_uses_placeholder(verifier):
    identity = verifier.verify(make_token("kp_bob"))

    assert identity.email == PLACEHOLDER_EMAIL


@pytest.mark.parametrize("issuer", [
    "https://evil.example.com",
    ISSUER + "/",
    "",
])
def test_issuer_mismatch_is_rejected(verifier, issuer):
    with pytest.raises(InvalidTokenError) as exc_info:
        verifier.verify(make_token("kp_alice", iss=issuer))

    assert "issuer" in exc_info.value.message


def test_missing_subject_is_rejected(verifier):
    with pytest.raises(InvalidTokenError):
        verifier.verify(make_token(sub=None))


@pytest.mark.parametrize("token", ["", None, "abc", "not.a.jwt", "a.b"])
def test_malformed_tokens_are_rejected(verifier, token):
    with pytest.raises(InvalidTokenError):
        verifier.verify(token)


def test_signature_check_fails_closed_without_keys():
    def jwks_down(request: httpx.Request) -> httpx.Response:
        return httpx.Response(503)

    client = httpx.Client(transport=httpx.MockTransport(jwks_down))
    verifier = TokenVerifier(ISSUER, verify_signature=True, http_client=client)

    with pytest.raises(InvalidTokenError) as exc_info:
        verifier.verify(make_token("kp_alice"))

    assert "signing keys" in exc_info.value.message


def test_signature_check_rejects_token_not_signed_by_issuer_keys():
    jwks = {"keys": [{
        "kty": "RSA",
        "kid": "test",
        "use": "sig",
        "alg": "RS256",
        "n": "sXchDaQebHnPiGvyDOAT4saGEUetSyo9MKLOoWFsueri23bOdgWp4Dy1WlUzewbgBHod5pcM9H95GQRV3JDXboIRROSBigeC5yjU1hGzHHyXss8UDprecbAYxknTcQkhslANGRUZmdTOQ5qTRsLAt6BTYuyvVRdhS8exSZEy_c4gs_7svlJJQ4H9_NxsiIoLwAEk7-Q3UXERGYw_75IDrGA84-lA_-Ct4eTlXHBIY2EaV7t7LjJaynVJCpkv4LKjTTAumiGUIuQhrNhZLuF_RJLqHpM2kgWFLU7-VTdL1VbC2tejvcI2BlMkEpk1BzBZI0KQB0GaDWFLN-aEAw3vRw",
        "e": "AQAB",
    }]}
    client = httpx.Client(transport=httpx.MockTransport(lambda request: httpx.Response(200, json=jwks)))
    verifier = TokenVerifier(ISSUER, verify_signature=True, http_client=client)

    with pytest.raises(InvalidTokenError) as exc_info:
        verifier.verify(make_token("kp_alice"))

    assert "signature" in exc_info.value.message
