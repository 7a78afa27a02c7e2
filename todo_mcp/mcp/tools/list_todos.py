"""
List Todos MCP Tool

Retrieves all todos of the authenticated user, newest first.
"""

from typing import Any, Dict

from todo_mcp.mcp.base_tool import BaseMCPTool, ToolContext, create_success_response
from todo_mcp.services.todo_service import TodoService


class ListTodosTool(BaseMCPTool):
    """MCP Tool for listing the caller's todos"""
    name = "list_todos"

    async def execute(self, identity, **kwargs) -> Dict[str, Any]:
        """
        List all todos for the caller

        Args:
            identity: Verified caller

        Returns:
            Todos (newest first) and their count
        """
        self.log_tool_invocation(identity.user_id, kwargs)

        todos = await self.in_session(
            lambda session: [todo.to_payload() for todo in TodoService(session).list(identity.user_id)]
        )

        return create_success_response(
            message=self._generate_message(len(todos)),
            todos=todos,
            count=len(todos),
        )

    @staticmethod
    def _generate_message(count: int) -> str:
        if count == 0:
            return "You have no todos yet."
        return f"You have {count} todo{'s' if count != 1 else ''}."


def register_list_todos_tool(mcp_server, context: ToolContext):
    """Register list_todos tool with MCP server"""
    from todo_mcp.mcp.server import MCPTool

    mcp_server.register_tool(MCPTool(
        name="list_todos",
        description="List all todos for the authenticated user",
        parameters={
            "type": "object",
            "properties": {
                "authToken": {"type": "string", "description": "Authentication token (optional if saved)"}
            }
        },
        handler=lambda **kwargs: ListTodosTool(context).execute(**kwargs),
        auth_required=True,
    ))
