"""
Create Todo MCP Tool

Creates a new todo for the authenticated user. The dispatcher runs the
entitlement gate before this tool; the insert itself consumes one unit of the
free-tier quota in the same transaction.
"""

from typing import Any, Dict, Optional

from todo_mcp.mcp.base_tool import BaseMCPTool, ToolContext, create_success_response
from todo_mcp.services.entitlement_service import EntitlementService
from todo_mcp.services.todo_service import TodoService


class CreateTodoTool(BaseMCPTool):
    """MCP Tool for creating todos"""
    name = "create_todo"

    async def execute(
        self,
        identity,
        title: str = None,
        description: Optional[str] = None,
        completed: bool = False,
        **kwargs
    ) -> Dict[str, Any]:
        """
        Create a todo

        Args:
            identity: Verified caller
            title: Todo title (required, non-empty)
            description: Optional description
            completed: Initial completion flag

        Returns:
            The new todo id and record
        """
        self.log_tool_invocation(identity.user_id, {"title": title})

        def create(session) -> Dict[str, Any]:
            entitlements = EntitlementService.from_settings(session, self.settings)
            todo = TodoService(session, entitlements).create(
                identity.user_id,
                title,
                description=description,
                completed=False if completed is None else completed,
            )
            return todo.to_payload()

        todo = await self.in_session(create)

        return create_success_response(
            message=f"Todo '{todo['title']}' created successfully",
            todo_id=todo["id"],
            todo=todo,
        )


def register_create_todo_tool(mcp_server, context: ToolContext):
    """Register create_todo tool with MCP server"""
    from todo_mcp.mcp.server import MCPTool

    mcp_server.register_tool(MCPTool(
        name="create_todo",
        description="Create a new todo for the authenticated user",
        parameters={
            "type": "object",
            "properties": {
                "authToken": {"type": "string", "description": "Authentication token (optional if saved)"},
                "title": {"type": "string", "description": "Todo title"},
                "description": {"type": "string", "description": "Todo description (optional)"},
                "completed": {"type": "boolean", "default": False, "description": "Completion status"}
            },
            "required": ["title"]
        },
        handler=lambda **kwargs: CreateTodoTool(context).execute(**kwargs),
        auth_required=True,
        entitlement_required=True,
    ))
