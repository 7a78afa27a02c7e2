"""User model for SQLModel."""
from sqlmodel import SQLModel, Field
from sqlalchemy import CheckConstraint
from datetime import datetime
from typing import Optional

from todo_mcp.models.base import timestamp_type, utc_now

SUBSCRIPTION_STATUSES = ("free", "active", "cancelled")


class User(SQLModel, table=True):
    """Account record keyed by the identity provider's subject id."""

    __tablename__ = "users"
    __table_args__ = (
        CheckConstraint(
            "subscription_status IN ('free', 'active', 'cancelled')",
            name="ck_users_subscription_status",
        ),
    )

    id: Optional[int] = Field(default=None, primary_key=True)
    user_id: str = Field(unique=True, index=True, max_length=255)
    name: Optional[str] = Field(default=None, max_length=255)
    email: Optional[str] = Field(default=None, max_length=255)
    subscription_status: str = Field(default="free", max_length=20)
    plan: str = Field(default="free", max_length=50)
    free_todos_used: int = Field(default=0)
    total_todos_created: int = Field(default=0)
    created_at: datetime = Field(default_factory=utc_now, sa_type=timestamp_type())
    updated_at: datetime = Field(default_factory=utc_now, sa_type=timestamp_type())

    @property
    def is_active_subscriber(self) -> bool:
        return self.subscription_status == "active"
