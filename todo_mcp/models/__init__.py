"""Database models."""
from todo_mcp.models.user import User
from todo_mcp.models.todo import Todo

__all__ = ["User", "Todo"]
