"""Hello MCP Tool: liveness check that needs no authentication."""

from todo_mcp.mcp.base_tool import BaseMCPTool, ToolContext


class HelloTool(BaseMCPTool):
    name = "hello"

    async def execute(self, identity=None, **kwargs) -> str:
        return "Hello! Welcome to the Todo MCP Server!"


def register_hello_tool(mcp_server, context: ToolContext):
    """Register hello tool with MCP server"""
    from todo_mcp.mcp.server import MCPTool

    mcp_server.register_tool(MCPTool(
        name="hello",
        description="Say hello to the MCP server",
        parameters={"type": "object", "properties": {}},
        handler=lambda **kwargs: HelloTool(context).execute(**kwargs)
    ))
