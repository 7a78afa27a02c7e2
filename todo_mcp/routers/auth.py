"""OAuth login router: the locally-run web side of the authorization-code flow."""
from typing import Optional
import logging

from fastapi import APIRouter, Cookie, Depends, HTTPException, Request, status
from fastapi.responses import RedirectResponse

from todo_mcp.auth.oauth import HandshakePhase, OAuthSessionEstablisher
from todo_mcp.auth.token_store import HandshakeContext, HandshakeRegistry
from todo_mcp.config import Settings, get_settings
from todo_mcp.db.config import get_engine
from todo_mcp.mcp.base_tool import (
    InvalidStateError,
    MCPToolError,
    MissingCodeError,
    TokenExchangeFailedError,
)

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Authentication"])

HANDSHAKE_COOKIE = "todo_mcp_handshake"

# Handshakes of this web process, keyed by OAuth state
handshakes = HandshakeRegistry()


def get_registry() -> HandshakeRegistry:
    """Dependency for the handshake registry."""
    return handshakes


def get_establisher_factory(settings: Settings = Depends(get_settings)):
    """Dependency producing an establisher bound to one handshake context."""
    def factory(context: HandshakeContext) -> OAuthSessionEstablisher:
        return OAuthSessionEstablisher(settings, context, get_engine())
    return factory


@router.get("/")
async def home(
    handshake_id: Optional[str] = Cookie(default=None, alias=HANDSHAKE_COOKIE),
    registry: HandshakeRegistry = Depends(get_registry),
):
    """Show who is logged in, with the tokens to hand to save_token."""
    context = registry.get(handshake_id)
    session = context.get("session") if context else None
    if session is None:
        return {"authenticated": False, "login_url": "/login"}

    return {
        "authenticated": True,
        "user": {"name": session.name, "email": session.email},
        "access_token": session.access_token,
        "id_token": session.id_token,
        "next_step": "Call the save_token command with the id_token to use it with the MCP server.",
    }


@router.get("/login")
async def login(
    registry: HandshakeRegistry = Depends(get_registry),
    establisher_factory=Depends(get_establisher_factory),
):
    """Start a handshake and redirect to the identity provider."""
    context = HandshakeContext()
    try:
        login_url = establisher_factory(context).initiate_login()
    except Exception as e:
        logger.error(f"Login error: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Login failed"
        )

    state = context.get("state")
    registry.register(state, context)

    response = RedirectResponse(login_url, status_code=status.HTTP_302_FOUND)
    response.set_cookie(HANDSHAKE_COOKIE, state, httponly=True, samesite="lax", max_age=int(registry.ttl))
    return response


@router.get("/callback")
async def callback(
    request: Request,
    code: Optional[str] = None,
    state: Optional[str] = None,
    handshake_id: Optional[str] = Cookie(default=None, alias=HANDSHAKE_COOKIE),
    registry: HandshakeRegistry = Depends(get_registry),
    establisher_factory=Depends(get_establisher_factory),
):
    """Exchange the authorization code and record the user."""
    logger.info(f"Callback URL: {request.url.path}")

    key = state or handshake_id
    context = registry.get(key)
    if context is None:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Unknown or expired login attempt"
        )

    establisher = establisher_factory(context)
    try:
        established = await establisher.handle_callback(code, state)
    except MissingCodeError:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="No authorization code received")
    except (InvalidStateError, TokenExchangeFailedError) as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=e.message)
    except MCPToolError as e:
        logger.error(f"Callback error: {e.code} {e.message}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Authentication failed: {e.message}"
        )

    return {
        "authenticated": establisher.phase == HandshakePhase.ESTABLISHED,
        "user": {"name": established.name, "email": established.email},
        "access_token": established.access_token,
        "id_token": established.id_token,
        "next_step": "Call the save_token command with the id_token to use it with the MCP server.",
    }


@router.get("/logout")
async def logout(
    handshake_id: Optional[str] = Cookie(default=None, alias=HANDSHAKE_COOKIE),
    registry: HandshakeRegistry = Depends(get_registry),
):
    """Forget this browser's handshake."""
    registry.discard(handshake_id)
    response = RedirectResponse("/", status_code=status.HTTP_302_FOUND)
    response.delete_cookie(HANDSHAKE_COOKIE)
    return response
