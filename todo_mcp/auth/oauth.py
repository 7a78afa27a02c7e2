"""
OAuth Session Establisher

Drives the authorization-code flow against the identity provider:

    AWAITING_REDIRECT --initiate_login--> AWAITING_CALLBACK --handle_callback--> ESTABLISHED

All handshake state lives in the HandshakeContext handed to the establisher,
so concurrent handshakes never share slots. The resulting tokens are shown to
the operator, who stores one of them with the ``save_token`` command.
"""
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Optional
from urllib.parse import urlencode
import logging
import secrets

import httpx
from jose import jwt, JWTError
from sqlalchemy.engine import Engine

from todo_mcp.auth.token_store import HandshakeContext
from todo_mcp.auth.verifier import PLACEHOLDER_EMAIL
from todo_mcp.config import Settings
from todo_mcp.db.config import run_in_session
from todo_mcp.mcp.base_tool import (
    InvalidStateError,
    MissingCodeError,
    TokenExchangeFailedError,
)
from todo_mcp.services.user_service import UserService

logger = logging.getLogger(__name__)

SCOPES = "openid profile email"


class HandshakePhase(str, Enum):
    AWAITING_REDIRECT = "awaiting_redirect"
    AWAITING_CALLBACK = "awaiting_callback"
    ESTABLISHED = "established"


@dataclass
class EstablishedSession:
    """Outcome of a completed handshake."""
    user_id: str
    name: str
    email: str
    access_token: str
    id_token: Optional[str]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "user_id": self.user_id,
            "name": self.name,
            "email": self.email,
            "access_token": self.access_token,
            "id_token": self.id_token,
        }


class OAuthSessionEstablisher:
    """Authorization-code exchange for one handshake."""

    def __init__(
        self,
        settings: Settings,
        context: HandshakeContext,
        engine: Engine,
        http_client: Optional[httpx.AsyncClient] = None,
    ):
        self.settings = settings
        self.context = context
        self.engine = engine
        self._http_client = http_client

    @property
    def phase(self) -> HandshakePhase:
        return self.context.get("phase") or HandshakePhase.AWAITING_REDIRECT

    @property
    def session(self) -> Optional[EstablishedSession]:
        return self.context.get("session")

    def initiate_login(self) -> str:
        """Build the authorization URL and wait for the callback."""
        state = secrets.token_urlsafe(24)
        nonce = secrets.token_urlsafe(24)
        self.context.put("state", state)
        self.context.put("nonce", nonce)
        self.context.put("phase", HandshakePhase.AWAITING_CALLBACK)

        params = {
            "response_type": "code",
            "client_id": self.settings.client_id,
            "redirect_uri": self.settings.redirect_url,
            "scope": SCOPES,
            "state": state,
            "nonce": nonce,
        }
        return f"{self.settings.authorization_endpoint}?{urlencode(params)}"

    async def handle_callback(self, code: Optional[str], state: Optional[str] = None) -> EstablishedSession:
        """
        Complete the handshake.

        Args:
            code: Authorization code from the callback request
            state: Echoed state parameter, checked when present

        Raises:
            MissingCodeError: No authorization code in the callback
            InvalidStateError: State does not match the initiated login
            TokenExchangeFailedError: Token endpoint gave no access token
        """
        if not code:
            raise MissingCodeError("No authorization code received")

        expected_state = self.context.get("state")
        if state is not None and expected_state is not None and state != expected_state:
            raise InvalidStateError("OAuth state mismatch")

        token_data = await self._exchange_code(code)
        access_token = token_data.get("access_token")
        if not access_token:
            logger.warning("No access token received from token endpoint")
            raise TokenExchangeFailedError(
                "Authentication failed - no access token received",
                details={"error": token_data.get("error")} if token_data.get("error") else None
            )

        id_token = token_data.get("id_token")
        claims = self._decode_id_token(id_token or access_token)
        user_id = claims.get("sub")
        if not user_id:
            raise TokenExchangeFailedError("Authentication failed - identity token has no subject")

        name = claims.get("given_name") or claims.get("name") or "User"
        email = claims.get("email") or PLACEHOLDER_EMAIL

        def upsert_user(session) -> None:
            UserService(session).upsert(user_id, name, email)

        await run_in_session(self.engine, upsert_user)
        logger.info(f"User {user_id} authenticated as {email}")

        established = EstablishedSession(
            user_id=user_id,
            name=name,
            email=email,
            access_token=access_token,
            id_token=id_token,
        )
        self.context.remove("state")
        self.context.remove("nonce")
        self.context.put("session", established)
        self.context.put("phase", HandshakePhase.ESTABLISHED)
        return established

    def logout(self) -> None:
        """Forget everything about this handshake."""
        self.context.clear()

    async def _exchange_code(self, code: str) -> Dict[str, Any]:
        form = {
            "grant_type": "authorization_code",
            "client_id": self.settings.client_id,
            "client_secret": self.settings.client_secret,
            "code": code,
            "redirect_uri": self.settings.redirect_url,
        }
        client = self._http_client or httpx.AsyncClient(timeout=15.0)
        try:
            response = await client.post(self.settings.token_endpoint, data=form)
            data = response.json()
        except httpx.HTTPError as e:
            logger.error(f"Token exchange request failed: {e}")
            raise TokenExchangeFailedError("Token exchange request failed", details={"error": str(e)})
        except ValueError:
            raise TokenExchangeFailedError("Token endpoint returned a non-JSON response")
        finally:
            if self._http_client is None:
                await client.aclose()

        if not isinstance(data, dict):
            raise TokenExchangeFailedError("Token endpoint returned an unexpected response")
        return data

    @staticmethod
    def _decode_id_token(token: str) -> Dict[str, Any]:
        # Decode-only, the token came straight from the token endpoint
        try:
            claims = jwt.get_unverified_claims(token)
        except JWTError as e:
            raise TokenExchangeFailedError("Could not decode identity token", details={"error": str(e)})
        return claims if isinstance(claims, dict) else {}
