"""
Session MCP Tools

login, save_token and logout manage the locally stored bearer token. They
never require a token themselves.
"""

from typing import Any, Dict, Optional
import asyncio

from todo_mcp.mcp.base_tool import (
    BaseMCPTool,
    InvalidTokenError,
    ToolContext,
    ValidationError,
    create_success_response,
)


class LoginTool(BaseMCPTool):
    """Explain how to obtain a token, or report the current login."""
    name = "login"

    async def execute(self, identity=None, **kwargs) -> Dict[str, Any]:
        self.log_tool_invocation(None, kwargs)
        login_url = f"{self.settings.auth_server_url}/login"

        stored = self.context.token_store.get_stored_token()
        if stored:
            try:
                current = await asyncio.to_thread(self.context.verifier.verify, stored)
            except InvalidTokenError:
                current = None
            if current is not None:
                return create_success_response(
                    message=f"Already logged in as {current.email}. Call logout to switch accounts.",
                    logged_in=True,
                    user_id=current.user_id,
                    email=current.email,
                )

        return create_success_response(
            message="Open the login page in your browser to sign in.",
            logged_in=False,
            login_url=login_url,
            instructions=[
                f"1. Open {login_url} and sign in with your account",
                "2. Copy the ID token shown after login",
                "3. Call save_token with that token",
            ],
        )


class SaveTokenTool(BaseMCPTool):
    """Persist a bearer token for later commands."""
    name = "save_token"

    async def execute(self, identity=None, token: Optional[str] = None, **kwargs) -> Dict[str, Any]:
        self.log_tool_invocation(None, {"token": token})

        if not token or not isinstance(token, str) or not token.strip():
            raise ValidationError("Token cannot be empty", details={"field": "token"})

        await asyncio.to_thread(self.context.token_store.save_token, token.strip())
        return create_success_response(
            message="Token saved. Todo commands will now use it automatically.",
        )


class LogoutTool(BaseMCPTool):
    """Forget the stored bearer token."""
    name = "logout"

    async def execute(self, identity=None, **kwargs) -> Dict[str, Any]:
        self.log_tool_invocation(None, kwargs)
        await asyncio.to_thread(self.context.token_store.clear_token)
        return create_success_response(message="Logged out. The stored token was removed.")


def register_login_tool(mcp_server, context: ToolContext):
    """Register login tool with MCP server"""
    from todo_mcp.mcp.server import MCPTool

    mcp_server.register_tool(MCPTool(
        name="login",
        description="Get instructions for logging in and obtaining an authentication token",
        parameters={"type": "object", "properties": {}},
        handler=lambda **kwargs: LoginTool(context).execute(**kwargs)
    ))


def register_save_token_tool(mcp_server, context: ToolContext):
    """Register save_token tool with MCP server"""
    from todo_mcp.mcp.server import MCPTool

    mcp_server.register_tool(MCPTool(
        name="save_token",
        description="Save an authentication token so later commands can use it",
        parameters={
            "type": "object",
            "properties": {
                "token": {"type": "string", "description": "ID token copied from the login page"}
            },
            "required": ["token"]
        },
        handler=lambda **kwargs: SaveTokenTool(context).execute(**kwargs)
    ))


def register_logout_tool(mcp_server, context: ToolContext):
    """Register logout tool with MCP server"""
    from todo_mcp.mcp.server import MCPTool

    mcp_server.register_tool(MCPTool(
        name="logout",
        description="Log out and remove the stored authentication token",
        parameters={"type": "object", "properties": {}},
        handler=lambda **kwargs: LogoutTool(context).execute(**kwargs)
    ))
