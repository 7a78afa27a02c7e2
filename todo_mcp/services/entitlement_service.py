"""
Entitlement Service

Free-tier quota for todo creation. Free (and cancelled) accounts may create
up to ``limit`` todos; active subscribers are unlimited.
"""
from dataclasses import dataclass
from typing import Any, Dict, Optional
import logging

from sqlmodel import Session
from sqlalchemy import case, or_, update

from todo_mcp.config import Settings
from todo_mcp.models.base import utc_now
from todo_mcp.models.user import User
from todo_mcp.services.user_service import UserService

logger = logging.getLogger(__name__)


@dataclass
class EntitlementDecision:
    allowed: bool
    reason: Optional[str] = None


class EntitlementService:
    """Decides whether a user may create another todo."""

    def __init__(self, session: Session, limit: int, upgrade_url: str):
        self.session = session
        self.limit = limit
        self.upgrade_url = upgrade_url
        self.users = UserService(session)

    @classmethod
    def from_settings(cls, session: Session, settings: Settings) -> "EntitlementService":
        return cls(session, limit=settings.free_todo_limit, upgrade_url=settings.upgrade_url)

    def denial_reason(self) -> str:
        plural = "todo" if self.limit == 1 else "todos"
        return (
            f"Free plan limit reached: you can create {self.limit} {plural} on the free plan. "
            f"Upgrade to create unlimited todos: {self.upgrade_url}"
        )

    def can_create_task(self, user_id: str) -> EntitlementDecision:
        """
        Check the quota without consuming it.

        Args:
            user_id: Identity-provider subject

        Returns:
            EntitlementDecision with a reason naming the limit and the
            upgrade destination when denied
        """
        user = self.users.get_or_create(user_id)

        if user.is_active_subscriber:
            return EntitlementDecision(allowed=True)

        if user.free_todos_used < self.limit:
            return EntitlementDecision(allowed=True)

        logger.info(f"Entitlement denied for {user_id}: {user.free_todos_used}/{self.limit} used")
        return EntitlementDecision(allowed=False, reason=self.denial_reason())

    def consume(self, user_id: str) -> bool:
        """
        Record one todo creation if the quota still allows it.

        Runs as a single conditional UPDATE in the caller's transaction, so
        the check and the increment cannot interleave with another writer.
        The caller commits. Returns False when nothing was updated.
        """
        is_active = User.subscription_status == "active"
        statement = (
            update(User)
            .where(User.user_id == user_id)
            .where(or_(is_active, User.free_todos_used < self.limit))
            .values(
                free_todos_used=case((is_active, User.free_todos_used), else_=User.free_todos_used + 1),
                total_todos_created=User.total_todos_created + 1,
                updated_at=utc_now(),
            )
        )
        result = self.session.connection().execute(statement)
        return result.rowcount == 1

    def get_status(self, user_id: str) -> Dict[str, Any]:
        """Plan and usage summary for a user."""
        user = self.users.get_or_create(user_id)
        unlimited = user.is_active_subscriber
        return {
            "user_id": user.user_id,
            "name": user.name,
            "email": user.email,
            "subscription_status": user.subscription_status,
            "plan": user.plan,
            "free_todos_used": user.free_todos_used,
            "total_todos_created": user.total_todos_created,
            "free_todo_limit": self.limit,
            "remaining_free_todos": None if unlimited else max(self.limit - user.free_todos_used, 0),
            "unlimited": unlimited,
        }
