"""Todo model for SQLModel."""
from sqlmodel import SQLModel, Field
from datetime import datetime
from typing import Any, Dict, Optional

from todo_mcp.models.base import timestamp_type, utc_now


class Todo(SQLModel, table=True):
    """A single todo item owned by one user."""

    __tablename__ = "todos"

    id: Optional[int] = Field(default=None, primary_key=True)
    # Ownership is enforced by filtering, not by a foreign key
    user_id: str = Field(index=True, max_length=255)
    title: str = Field(min_length=1)
    description: Optional[str] = Field(default=None)
    completed: bool = Field(default=False)
    created_at: datetime = Field(default_factory=utc_now, sa_type=timestamp_type(), index=True)
    updated_at: datetime = Field(default_factory=utc_now, sa_type=timestamp_type())

    def to_payload(self) -> Dict[str, Any]:
        """Serialize for command responses."""
        return {
            "id": self.id,
            "user_id": self.user_id,
            "title": self.title,
            "description": self.description,
            "completed": self.completed,
            "created_at": self.created_at.isoformat(),
            "updated_at": self.updated_at.isoformat(),
        }
