"""
Update Todo MCP Tool

Patches an existing todo. Only the fields present in the call change.
"""

from typing import Any, Dict

from todo_mcp.mcp.base_tool import BaseMCPTool, ToolContext, create_success_response
from todo_mcp.services.todo_service import TodoService

UPDATABLE_FIELDS = ("title", "description", "completed")


class UpdateTodoTool(BaseMCPTool):
    """MCP Tool for updating todos"""
    name = "update_todo"

    async def execute(self, identity, todo_id=None, **kwargs) -> Dict[str, Any]:
        """
        Update an existing todo

        Args:
            identity: Verified caller
            todo_id: ID of the todo to update
            **kwargs: Any of title, description, completed

        Returns:
            The updated todo
        """
        self.log_tool_invocation(identity.user_id, {"todo_id": todo_id})
        todo_id = self.coerce_todo_id(todo_id)

        # Absent or null fields keep their current value
        fields = {name: kwargs[name] for name in UPDATABLE_FIELDS if kwargs.get(name) is not None}

        todo = await self.in_session(
            lambda session: TodoService(session).update(identity.user_id, todo_id, **fields).to_payload()
        )

        return create_success_response(
            message=f"Todo {todo_id} updated successfully",
            todo=todo,
        )


def register_update_todo_tool(mcp_server, context: ToolContext):
    """Register update_todo tool with MCP server"""
    from todo_mcp.mcp.server import MCPTool

    mcp_server.register_tool(MCPTool(
        name="update_todo",
        description="Update an existing todo; omitted fields keep their values",
        parameters={
            "type": "object",
            "properties": {
                "authToken": {"type": "string", "description": "Authentication token (optional if saved)"},
                "todoId": {"type": ["integer", "string"], "description": "Todo ID to update"},
                "title": {"type": "string", "description": "New title (optional)"},
                "description": {"type": "string", "description": "New description (optional)"},
                "completed": {"type": "boolean", "description": "New completion status (optional)"}
            },
            "required": ["todoId"]
        },
        handler=lambda **kwargs: UpdateTodoTool(context).execute(**kwargs),
        auth_required=True,
    ))
