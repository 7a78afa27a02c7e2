"""
MCP Server Implementation

Command dispatcher for the todo tools. Every call goes through
``MCPServer.call_tool`` which:

1. resolves the bearer token (argument, else the stored token),
2. verifies it and refreshes the caller's user record,
3. applies the entitlement gate to gated commands,
4. runs the tool under a bounded timeout,
5. turns every outcome, including unexpected failures, into a text payload.
"""

from typing import Any, Awaitable, Callable, Dict, List, Optional
from dataclasses import dataclass
import asyncio
import json
import logging
import re

from sqlalchemy.engine import Engine

from todo_mcp.auth.token_store import TokenStore
from todo_mcp.auth.verifier import TokenVerifier
from todo_mcp.config import Settings, get_settings
from todo_mcp.db.config import get_engine, run_in_session
from todo_mcp.mcp.base_tool import (
    EntitlementDeniedError,
    InvalidTokenError,
    MCPToolError,
    MissingArgumentError,
    StoreError,
    ToolContext,
    ValidationError,
    create_error_response,
)
from todo_mcp.mcp.tools import register_all_tools
from todo_mcp.services.entitlement_service import EntitlementService
from todo_mcp.services.user_service import UserService
from todo_mcp.utils.logger import get_logger, redact

logger = logging.getLogger(__name__)

AUTH_TOKEN_ARG = "authToken"


@dataclass
class MCPTool:
    """MCP Tool definition"""
    name: str
    description: str
    parameters: Dict[str, Any]
    handler: Callable[..., Awaitable[Any]]
    auth_required: bool = False
    entitlement_required: bool = False

    @property
    def required(self) -> List[str]:
        return list(self.parameters.get("required", []))


def to_snake_case(name: str) -> str:
    return re.sub(r"(?<!^)(?=[A-Z])", "_", name).lower()


JSON_TYPES = {
    "string": (str,),
    "boolean": (bool,),
    "integer": (int,),
    "number": (int, float),
    "object": (dict,),
    "array": (list,),
}


def check_argument_types(tool: MCPTool, arguments: Dict[str, Any]) -> None:
    """
    Check supplied arguments against the JSON types a tool declares.

    ``None`` counts as absent. Booleans are not accepted as numbers.

    Raises:
        ValidationError: On the first argument whose value has the wrong type
    """
    properties = tool.parameters.get("properties", {})
    for key, value in arguments.items():
        declared = properties.get(key, {}).get("type")
        if value is None or declared is None:
            continue

        names = declared if isinstance(declared, list) else [declared]
        accepted = tuple(t for n in names for t in JSON_TYPES.get(n, ()))
        if isinstance(value, bool) and "boolean" not in names:
            accepted = ()
        if not isinstance(value, accepted):
            raise ValidationError(
                f"{key} must be of type {' or '.join(names)}",
                details={"field": key, "expected": names, "received": type(value).__name__}
            )


def text_content(result: Any) -> Dict[str, Any]:
    """Wrap a payload in the command protocol's response shape."""
    text = result if isinstance(result, str) else json.dumps(result, indent=2, default=str)
    return {"content": [{"type": "text", "text": text}]}


class MCPServer:
    """
    MCP Server for Todo Management

    Holds the registered tools and dispatches calls to them. Only one command
    is processed at a time per process; callers await ``call_tool``.
    """

    def __init__(self, context: ToolContext):
        self.tools: Dict[str, MCPTool] = {}
        self.name = "todo-mcp-server"
        self.version = "1.0.0"
        self.context = context
        self.audit = get_logger("todo-mcp.audit")
        logger.info(f"Initializing MCP Server: {self.name}")

    @property
    def settings(self):
        return self.context.settings

    def register_tool(self, tool: MCPTool):
        """Register a tool with the MCP server"""
        if tool.name in self.tools:
            logger.warning(f"Tool {tool.name} already registered, overwriting")

        self.tools[tool.name] = tool
        logger.debug(f"Registered MCP tool: {tool.name}")

    def get_tool(self, name: str) -> MCPTool:
        """Get a registered tool by name"""
        if name not in self.tools:
            raise ValueError(f"Tool {name} not found. Available tools: {list(self.tools.keys())}")
        return self.tools[name]

    def list_tools(self) -> List[str]:
        """List all registered tool names"""
        return list(self.tools.keys())

    def get_tool_schemas(self) -> List[Dict[str, Any]]:
        """Get input schemas for all registered tools"""
        return [
            {
                "name": tool.name,
                "description": tool.description,
                "inputSchema": tool.parameters,
            }
            for tool in self.tools.values()
        ]

    async def call_tool(self, name: str, arguments: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        """
        Handle one command.

        Args:
            name: Tool name
            arguments: Tool arguments as sent by the caller

        Returns:
            ``{"content": [{"type": "text", "text": ...}]}``. Never raises.
        """
        params: Dict[str, Any] = {}
        try:
            if not isinstance(name, str):
                raise ValidationError("Tool name must be a string", details={"field": "name"})
            if arguments is not None and not isinstance(arguments, dict):
                raise ValidationError("Tool arguments must be an object", details={"field": "arguments"})
            params = dict(arguments or {})

            tool = self.tools.get(name)
            if tool is None:
                logger.warning(f"Unknown tool requested: {name}")
                return text_content(f'Error: Unknown tool "{name}"')

            result = await self.invoke_tool(tool, params)
        except EntitlementDeniedError as e:
            result = self.upgrade_required_response(e.message)
        except MCPToolError as e:
            logger.info(f"Tool {name} failed: {e.code} {e.message}")
            result = create_error_response(e)
        except Exception:
            logger.exception(f"Error handling tool call {name}")
            self.audit.exception("tool_call", tool=str(name), outcome="INTERNAL_ERROR")
            return text_content({"success": False, "error": "Internal server error"})

        if isinstance(result, dict) and not result.get("success", True):
            self.audit.warning("tool_call", tool=str(name), params=redact(params), outcome=result.get("code", "ERROR"))
        else:
            self.audit.info("tool_call", tool=name, params=redact(params), outcome="OK")
        return text_content(result)

    async def invoke_tool(self, tool: MCPTool, arguments: Dict[str, Any]) -> Any:
        """
        Run the dispatch pipeline for a tool.

        Raises:
            MCPToolError: Any expected failure, converted by ``call_tool``
        """
        missing = [p for p in tool.required if arguments.get(p) is None]
        if missing:
            raise MissingArgumentError(
                f"Missing required arguments: {', '.join(missing)}",
                details={"missing_arguments": missing}
            )
        check_argument_types(tool, arguments)

        kwargs = {to_snake_case(k): v for k, v in arguments.items() if k != AUTH_TOKEN_ARG}

        identity = None
        if tool.auth_required:
            token = arguments.get(AUTH_TOKEN_ARG) or self.context.token_store.get_stored_token()
            if not token:
                return self.no_token_response()

            try:
                identity = await self._bounded(asyncio.to_thread(self.context.verifier.verify, token))
            except InvalidTokenError as e:
                return {
                    "success": False,
                    "error": "Invalid authentication token",
                    "code": e.code,
                    "details": {"reason": e.message},
                }

            await self._bounded(self._refresh_user(identity))

            if tool.entitlement_required:
                decision = await self._bounded(self._check_entitlement(identity.user_id))
                if not decision.allowed:
                    return self.upgrade_required_response(decision.reason)

        logger.info(f"Invoking MCP tool: {tool.name} for user: {identity.user_id if identity else None}")
        return await self._bounded(tool.handler(identity=identity, **kwargs))

    async def _bounded(self, awaitable: Awaitable[Any]) -> Any:
        try:
            return await asyncio.wait_for(awaitable, timeout=self.settings.command_timeout)
        except asyncio.TimeoutError:
            raise StoreError(
                "The data store did not respond in time",
                details={"timeout_seconds": self.settings.command_timeout}
            )

    async def _refresh_user(self, identity) -> None:
        def refresh(session) -> None:
            UserService(session).upsert(identity.user_id, identity.name, identity.email)

        await run_in_session(self.context.engine, refresh)

    async def _check_entitlement(self, user_id: str):
        def check(session):
            return EntitlementService.from_settings(session, self.settings).can_create_task(user_id)

        return await run_in_session(self.context.engine, check)

    def no_token_response(self) -> Dict[str, Any]:
        login_url = f"{self.settings.auth_server_url}/login"
        return {
            "success": False,
            "error": "No authentication token found",
            "code": "AUTH_REQUIRED",
            "message": "You need to log in before managing todos.",
            "login_url": login_url,
            "instructions": [
                f"1. Open {login_url} in your browser and sign in",
                "2. Copy the ID token shown after login",
                "3. Call save_token with that token",
                "4. Retry this command (or pass the token as authToken)",
            ],
        }

    def upgrade_required_response(self, reason: Optional[str]) -> Dict[str, Any]:
        return {
            "success": False,
            "error": "Free plan limit reached",
            "code": EntitlementDeniedError.code,
            "message": reason,
            "upgrade_url": self.settings.upgrade_url,
            "action": "Call upgrade_subscription for upgrade options",
        }


def build_mcp_server(
    settings: Optional[Settings] = None,
    engine: Optional[Engine] = None,
    token_store: Optional[TokenStore] = None,
    verifier: Optional[TokenVerifier] = None,
) -> MCPServer:
    """Create a server with every todo tool registered."""
    settings = settings or get_settings()
    context = ToolContext(
        settings=settings,
        engine=engine or get_engine(),
        token_store=token_store or TokenStore(settings.token_file),
        verifier=verifier or TokenVerifier(
            settings.issuer_url,
            verify_signature=settings.verify_token_signature,
            jwks_url=settings.jwks_url,
        ),
    )
    server = MCPServer(context)
    register_all_tools(server, context)
    logger.info(f"MCP Server initialized with tools: {server.list_tools()}")
    return server
