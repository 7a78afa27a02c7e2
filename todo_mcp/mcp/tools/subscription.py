"""
Subscription MCP Tools

Report plan and usage, and point free users at the billing portal. No
payment is processed here.
"""

from typing import Any, Dict

from todo_mcp.mcp.base_tool import BaseMCPTool, ToolContext, create_success_response
from todo_mcp.services.entitlement_service import EntitlementService


class GetSubscriptionStatusTool(BaseMCPTool):
    name = "get_subscription_status"

    async def execute(self, identity, **kwargs) -> Dict[str, Any]:
        self.log_tool_invocation(identity.user_id, kwargs)
        status = await self.in_session(
            lambda session: EntitlementService.from_settings(session, self.settings).get_status(identity.user_id)
        )

        if status["unlimited"]:
            message = f"You are on the {status['plan']} plan with unlimited todos."
        else:
            message = (
                f"You are on the free plan: {status['free_todos_used']} of "
                f"{status['free_todo_limit']} free todos used."
            )
        return create_success_response(message=message, subscription=status)


class UpgradeSubscriptionTool(BaseMCPTool):
    name = "upgrade_subscription"

    async def execute(self, identity, **kwargs) -> Dict[str, Any]:
        self.log_tool_invocation(identity.user_id, kwargs)
        status = await self.in_session(
            lambda session: EntitlementService.from_settings(session, self.settings).get_status(identity.user_id)
        )

        if status["unlimited"]:
            return create_success_response(
                message="Your subscription is already active.",
                subscription_status=status["subscription_status"],
                plan=status["plan"],
                billing_url=self.settings.upgrade_url,
            )

        return create_success_response(
            message="Open the billing portal to upgrade to unlimited todos.",
            subscription_status=status["subscription_status"],
            plan=status["plan"],
            upgrade_url=self.settings.upgrade_url,
        )


def register_get_subscription_status_tool(mcp_server, context: ToolContext):
    """Register get_subscription_status tool with MCP server"""
    from todo_mcp.mcp.server import MCPTool

    mcp_server.register_tool(MCPTool(
        name="get_subscription_status",
        description="Show the user's plan and free-tier usage",
        parameters={
            "type": "object",
            "properties": {
                "authToken": {"type": "string", "description": "Authentication token"}
            },
            "required": ["authToken"]
        },
        handler=lambda **kwargs: GetSubscriptionStatusTool(context).execute(**kwargs),
        auth_required=True,
    ))


def register_upgrade_subscription_tool(mcp_server, context: ToolContext):
    """Register upgrade_subscription tool with MCP server"""
    from todo_mcp.mcp.server import MCPTool

    mcp_server.register_tool(MCPTool(
        name="upgrade_subscription",
        description="Get the link to upgrade to an unlimited plan",
        parameters={
            "type": "object",
            "properties": {
                "authToken": {"type": "string", "description": "Authentication token"}
            },
            "required": ["authToken"]
        },
        handler=lambda **kwargs: UpgradeSubscriptionTool(context).execute(**kwargs),
        auth_required=True,
    ))
