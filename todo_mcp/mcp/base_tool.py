"""
MCP Base Tool Interface

Provides base functionality for all todo MCP tools:
- Error taxonomy shared by the dispatcher, services and auth layer
- Standardized success / error payloads
- Store access from async handlers
- Audit logging
"""

from typing import Any, Callable, Dict, Optional, TypeVar
from abc import ABC, abstractmethod
from dataclasses import dataclass
import logging

from sqlalchemy.engine import Engine

from todo_mcp.config import Settings
from todo_mcp.db.config import run_in_session
from todo_mcp.utils.logger import redact

logger = logging.getLogger(__name__)

T = TypeVar("T")


class MCPToolError(Exception):
    """Base exception for MCP tool errors"""
    code = "TOOL_ERROR"

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None, code: Optional[str] = None):
        self.code = code or self.code
        self.message = message
        self.details = details or {}
        super().__init__(self.message)


class MissingArgumentError(MCPToolError):
    code = "MISSING_ARGUMENT"


class InvalidTokenError(MCPToolError):
    code = "INVALID_TOKEN"


class NotFoundError(MCPToolError):
    """Raised for both absent and foreign records so existence never leaks."""
    code = "NOT_FOUND"


class EntitlementDeniedError(MCPToolError):
    code = "UPGRADE_REQUIRED"


class TokenExchangeFailedError(MCPToolError):
    code = "TOKEN_EXCHANGE_FAILED"


class MissingCodeError(MCPToolError):
    code = "MISSING_CODE"


class InvalidStateError(MCPToolError):
    code = "INVALID_STATE"


class ValidationError(MCPToolError):
    code = "VALIDATION_ERROR"


class StoreError(MCPToolError):
    code = "STORE_ERROR"


@dataclass
class ToolContext:
    """Collaborators shared by every tool invocation."""
    settings: Settings
    engine: Engine
    token_store: Any
    verifier: Any


class BaseMCPTool(ABC):
    """
    Base class for all MCP tools

    Provides common functionality:
    - Store access in a worker thread
    - Argument coercion
    - Audit logging
    """

    name = "tool"

    def __init__(self, context: ToolContext):
        self.context = context
        self.settings = context.settings

    async def in_session(self, work: Callable[[Any], T]) -> T:
        """Run ``work(session)`` against the store without blocking the loop."""
        return await run_in_session(self.context.engine, work)

    def log_tool_invocation(self, user_id: Optional[str], params: Dict[str, Any]) -> None:
        """
        Log MCP tool invocation for audit trail

        Args:
            user_id: User making the request (None for session commands)
            params: Tool parameters, credentials are redacted
        """
        logger.info(
            f"MCP Tool Invocation: {self.name} | User: {user_id} | Params: {redact(params)}"
        )

    @staticmethod
    def coerce_todo_id(value: Any) -> int:
        """Accept an int or a string of digits as a todo id."""
        if isinstance(value, int) and not isinstance(value, bool):
            return value
        if isinstance(value, str) and value.strip().isdecimal():
            return int(value.strip())
        raise ValidationError(
            "todoId must be an integer",
            details={"field": "todoId", "value": value}
        )

    @abstractmethod
    async def execute(self, identity=None, **kwargs) -> Dict[str, Any]:
        """
        Execute the tool logic

        Args:
            identity: Verified caller identity, None for session commands
            **kwargs: Tool-specific parameters (snake_case)

        Returns:
            Payload dictionary, or a plain string message
        """


def create_error_response(error: MCPToolError) -> Dict[str, Any]:
    """
    Create a standardized error response

    Args:
        error: The MCPToolError to convert

    Returns:
        Standardized error response dictionary
    """
    response: Dict[str, Any] = {
        "success": False,
        "error": error.message,
        "code": error.code,
    }
    if error.details:
        response["details"] = error.details
    return response


def create_success_response(message: Optional[str] = None, **fields: Any) -> Dict[str, Any]:
    """
    Create a standardized success response

    Args:
        message: Optional success message
        **fields: Payload fields, merged at the top level

    Returns:
        Standardized success response dictionary
    """
    response: Dict[str, Any] = {"success": True}
    response.update(fields)

    if message:
        response["message"] = message

    return response
