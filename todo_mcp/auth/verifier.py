"""Bearer token verification for MCP commands."""
from typing import Any, Dict, Optional
import logging

import httpx
from jose import jwt, JWTError
from pydantic import BaseModel

from todo_mcp.mcp.base_tool import InvalidTokenError

logger = logging.getLogger(__name__)

PLACEHOLDER_EMAIL = "user@example.com"


class Identity(BaseModel):
    """Caller identity extracted from a bearer token."""
    user_id: str
    email: str = PLACEHOLDER_EMAIL
    name: Optional[str] = None


class TokenVerifier:
    """
    Establish caller identity from an identity-provider token.

    By default the token is only decoded: the claims must be well formed,
    carry a subject, and name the configured issuer. This is a structural
    check, not cryptographic authentication. With ``verify_signature`` the
    token is additionally checked against the issuer's published JWKS.
    """

    def __init__(
        self,
        issuer_url: str,
        verify_signature: bool = False,
        jwks_url: Optional[str] = None,
        http_client: Optional[httpx.Client] = None,
    ):
        self.issuer_url = issuer_url
        self.verify_signature = verify_signature
        self.jwks_url = jwks_url or f"{issuer_url.rstrip('/')}/.well-known/jwks"
        self._http_client = http_client
        self._jwks: Optional[Dict[str, Any]] = None

    def decode_claims(self, token: str) -> Dict[str, Any]:
        """Decode claims without checking the signature."""
        try:
            claims = jwt.get_unverified_claims(token)
        except JWTError as e:
            raise InvalidTokenError("Invalid token: malformed claims", details={"reason": str(e)})
        if not isinstance(claims, dict):
            raise InvalidTokenError("Invalid token: malformed claims")
        return claims

    def verify(self, token: Optional[str]) -> Identity:
        """
        Validate a bearer token and return the caller identity.

        Raises:
            InvalidTokenError: If the token is malformed, has no subject, has
                the wrong issuer, or (when enabled) fails signature checks
        """
        if not token or not isinstance(token, str):
            raise InvalidTokenError("Invalid token: empty")

        claims = self.decode_claims(token.strip())

        subject = claims.get("sub")
        if not subject or not isinstance(subject, str):
            raise InvalidTokenError("Invalid token: missing user ID")

        if claims.get("iss") != self.issuer_url:
            logger.warning(f"Rejected token with issuer {claims.get('iss')!r}")
            raise InvalidTokenError("Invalid token: unexpected issuer")

        if self.verify_signature:
            self._verify_signature(token.strip())

        return Identity(
            user_id=subject,
            email=claims.get("email") or PLACEHOLDER_EMAIL,
            name=claims.get("given_name") or claims.get("name"),
        )

    def _verify_signature(self, token: str) -> None:
        try:
            jwt.decode(
                token,
                self._get_jwks(),
                algorithms=["RS256"],
                issuer=self.issuer_url,
                options={"verify_aud": False, "verify_at_hash": False},
            )
        except JWTError as e:
            raise InvalidTokenError("Invalid token: signature verification failed", details={"reason": str(e)})

    def _get_jwks(self) -> Dict[str, Any]:
        if self._jwks is None:
            try:
                client = self._http_client or httpx.Client(timeout=10.0)
                try:
                    response = client.get(self.jwks_url)
                    response.raise_for_status()
                    self._jwks = response.json()
                finally:
                    if self._http_client is None:
                        client.close()
            except (httpx.HTTPError, ValueError) as e:
                logger.error(f"Failed to fetch JWKS from {self.jwks_url}: {e}")
                raise InvalidTokenError("Invalid token: signing keys unavailable")
        return self._jwks
