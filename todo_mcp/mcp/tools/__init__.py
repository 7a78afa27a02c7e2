"""MCP tool implementations and registration."""
from todo_mcp.mcp.tools.hello import register_hello_tool
from todo_mcp.mcp.tools.session import register_login_tool, register_save_token_tool, register_logout_tool
from todo_mcp.mcp.tools.list_todos import register_list_todos_tool
from todo_mcp.mcp.tools.create_todo import register_create_todo_tool
from todo_mcp.mcp.tools.update_todo import register_update_todo_tool
from todo_mcp.mcp.tools.delete_todo import register_delete_todo_tool
from todo_mcp.mcp.tools.subscription import (
    register_get_subscription_status_tool,
    register_upgrade_subscription_tool,
)


def register_all_tools(mcp_server, context) -> None:
    """Register every command with the server."""
    register_hello_tool(mcp_server, context)
    register_login_tool(mcp_server, context)
    register_save_token_tool(mcp_server, context)
    register_list_todos_tool(mcp_server, context)
    register_create_todo_tool(mcp_server, context)
    register_update_todo_tool(mcp_server, context)
    register_delete_todo_tool(mcp_server, context)
    register_logout_tool(mcp_server, context)
    register_get_subscription_status_tool(mcp_server, context)
    register_upgrade_subscription_tool(mcp_server, context)
