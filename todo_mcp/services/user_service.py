"""User service: lazy account creation, profile refresh and plan changes."""
from typing import Optional
import logging

from sqlmodel import Session, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from todo_mcp.mcp.base_tool import StoreError, ValidationError
from todo_mcp.models.base import utc_now
from todo_mcp.models.user import User, SUBSCRIPTION_STATUSES

logger = logging.getLogger(__name__)


class UserService:
    """Service class for user records keyed by identity-provider subject."""

    def __init__(self, session: Session):
        self.session = session

    def get(self, user_id: str) -> Optional[User]:
        statement = select(User).where(User.user_id == user_id)
        return self.session.exec(statement).first()

    def get_or_create(self, user_id: str, name: Optional[str] = None, email: Optional[str] = None) -> User:
        """Return the user, creating a free-tier record with zero usage if absent."""
        user = self.get(user_id)
        if user:
            return user

        user = User(user_id=user_id, name=name, email=email)
        try:
            self.session.add(user)
            self.session.commit()
        except IntegrityError:
            # Another process created the same subject first
            self.session.rollback()
            existing = self.get(user_id)
            if existing is None:
                raise StoreError("Failed to create user", details={"user_id": user_id})
            return existing
        except SQLAlchemyError as e:
            self.session.rollback()
            raise StoreError("Failed to create user", details={"error": str(e)})

        self.session.refresh(user)
        logger.info(f"Created user record for {user_id}")
        return user

    def upsert(self, user_id: str, name: Optional[str], email: Optional[str]) -> User:
        """Insert the user if absent, else refresh name and email."""
        user = self.get(user_id)
        if user is None:
            return self.get_or_create(user_id, name=name, email=email)

        changed = False
        if name and user.name != name:
            user.name = name
            changed = True
        if email and user.email != email:
            user.email = email
            changed = True

        if changed:
            user.updated_at = utc_now()
            try:
                self.session.add(user)
                self.session.commit()
                self.session.refresh(user)
            except SQLAlchemyError as e:
                self.session.rollback()
                raise StoreError("Failed to update user", details={"error": str(e)})
        return user

    def set_subscription(self, user_id: str, status: str, plan: Optional[str] = None) -> User:
        """Change a user's subscription status (billing callbacks, operators)."""
        if status not in SUBSCRIPTION_STATUSES:
            raise ValidationError(
                f"Subscription status must be one of: {', '.join(SUBSCRIPTION_STATUSES)}",
                details={"field": "subscription_status", "value": status}
            )

        user = self.get_or_create(user_id)
        user.subscription_status = status
        if plan is not None:
            user.plan = plan
        elif status == "active" and user.plan == "free":
            user.plan = "pro"
        user.updated_at = utc_now()
        try:
            self.session.add(user)
            self.session.commit()
            self.session.refresh(user)
        except SQLAlchemyError as e:
            self.session.rollback()
            raise StoreError("Failed to update subscription", details={"error": str(e)})
        return user
