"""
Delete Todo MCP Tool

Permanently deletes one of the caller's todos.
"""

from typing import Any, Dict

from todo_mcp.mcp.base_tool import BaseMCPTool, ToolContext, create_success_response
from todo_mcp.services.todo_service import TodoService


class DeleteTodoTool(BaseMCPTool):
    """MCP Tool for deleting todos"""
    name = "delete_todo"

    async def execute(self, identity, todo_id=None, **kwargs) -> Dict[str, Any]:
        self.log_tool_invocation(identity.user_id, {"todo_id": todo_id})
        todo_id = self.coerce_todo_id(todo_id)

        removed = await self.in_session(
            lambda session: TodoService(session).delete(identity.user_id, todo_id)
        )

        return create_success_response(
            message=f"Todo {todo_id} '{removed['title']}' deleted",
            todo_id=todo_id,
            title=removed["title"],
        )


def register_delete_todo_tool(mcp_server, context: ToolContext):
    """Register delete_todo tool with MCP server"""
    from todo_mcp.mcp.server import MCPTool

    mcp_server.register_tool(MCPTool(
        name="delete_todo",
        description="Permanently delete a todo",
        parameters={
            "type": "object",
            "properties": {
                "authToken": {"type": "string", "description": "Authentication token (optional if saved)"},
                "todoId": {"type": ["integer", "string"], "description": "Todo ID to delete"}
            },
            "required": ["todoId"]
        },
        handler=lambda **kwargs: DeleteTodoTool(context).execute(**kwargs),
        auth_required=True,
    ))
