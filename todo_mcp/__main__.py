"""
Command-line entry points.

    python -m todo_mcp serve             # commands over stdin/stdout, one JSON object per line
    python -m todo_mcp auth-server       # local login page for obtaining tokens
    python -m todo_mcp init-db           # create tables
    python -m todo_mcp set-subscription <user_id> <free|active|cancelled>
"""
import argparse
import asyncio
import json
import logging
import sys

from sqlmodel import Session

from todo_mcp.config import get_settings
from todo_mcp.db.config import get_engine
from todo_mcp.db.init import init_db
from todo_mcp.mcp.server import MCPServer, build_mcp_server, text_content
from todo_mcp.models.user import SUBSCRIPTION_STATUSES
from todo_mcp.services.user_service import UserService
from todo_mcp.utils.logger import configure_logging

logger = logging.getLogger("todo_mcp")


async def handle_line(server: MCPServer, line: str) -> dict:
    """Handle one request line: ``{"name", "arguments"}`` or ``{"method": "tools/list"}``."""
    try:
        request = json.loads(line)
    except json.JSONDecodeError:
        return text_content({"success": False, "error": "Invalid JSON request"})

    if not isinstance(request, dict):
        return text_content({"success": False, "error": "Request must be an object"})

    if request.get("method") == "tools/list":
        return {"tools": server.get_tool_schemas()}

    return await server.call_tool(request.get("name", ""), request.get("arguments"))


async def serve_stdio(server: MCPServer) -> None:
    """Process requests one at a time until stdin closes."""
    logger.info("Todo MCP server running on stdio")
    while True:
        line = await asyncio.to_thread(sys.stdin.readline)
        if not line:
            break
        if not line.strip():
            continue
        try:
            response = await handle_line(server, line)
        except Exception:
            logger.exception("Unhandled error processing request")
            response = text_content({"success": False, "error": "Internal server error"})
        sys.stdout.write(json.dumps(response) + "\n")
        sys.stdout.flush()


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(prog="todo-mcp", description="Todo MCP server")
    subparsers = parser.add_subparsers(dest="command")

    subparsers.add_parser("serve", help="Serve commands over stdio (default)")
    auth_parser = subparsers.add_parser("auth-server", help="Run the local login web server")
    auth_parser.add_argument("--host", default="127.0.0.1")
    auth_parser.add_argument("--port", type=int, default=3000)
    subparsers.add_parser("init-db", help="Create database tables")
    sub_parser = subparsers.add_parser("set-subscription", help="Change a user's subscription status")
    sub_parser.add_argument("user_id")
    sub_parser.add_argument("status", choices=SUBSCRIPTION_STATUSES)
    sub_parser.add_argument("--plan", default=None)

    args = parser.parse_args(argv)
    settings = get_settings()
    configure_logging(settings.log_level)

    if args.command == "auth-server":
        import uvicorn
        uvicorn.run("todo_mcp.main:app", host=args.host, port=args.port)
        return 0

    if args.command == "init-db":
        init_db()
        print("Database tables created successfully.", file=sys.stderr)
        return 0

    if args.command == "set-subscription":
        with Session(get_engine()) as session:
            user = UserService(session).set_subscription(args.user_id, args.status, args.plan)
            print(f"{user.user_id}: {user.subscription_status} ({user.plan})", file=sys.stderr)
        return 0

    try:
        init_db()
    except Exception as e:
        logger.warning(f"Database initialization failed: {e}. Todo commands may fail.")

    try:
        asyncio.run(serve_stdio(build_mcp_server(settings)))
    except KeyboardInterrupt:
        pass
    return 0


if __name__ == "__main__":
    sys.exit(main())
