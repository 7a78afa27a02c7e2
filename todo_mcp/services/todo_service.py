"""Todo service: per-user CRUD with ownership checks."""
from sqlmodel import Session, select
from sqlalchemy.exc import SQLAlchemyError
from typing import Any, Dict, List, Optional
import logging

from todo_mcp.mcp.base_tool import EntitlementDeniedError, NotFoundError, StoreError, ValidationError
from todo_mcp.models.base import utc_now
from todo_mcp.models.todo import Todo
from todo_mcp.services.entitlement_service import EntitlementService

logger = logging.getLogger(__name__)

UNSET = object()


class TodoService:
    """Service class for todo CRUD operations scoped to a single owner."""

    def __init__(self, session: Session, entitlements: Optional[EntitlementService] = None):
        self.session = session
        self.entitlements = entitlements

    @staticmethod
    def _clean_title(title) -> str:
        if not title or not isinstance(title, str) or not title.strip():
            raise ValidationError("Todo title cannot be empty", details={"field": "title"})
        return title.strip()

    @staticmethod
    def _check_description(description) -> Optional[str]:
        if description is not None and not isinstance(description, str):
            raise ValidationError("Todo description must be a string", details={"field": "description"})
        return description

    @staticmethod
    def _check_completed(completed) -> bool:
        if not isinstance(completed, bool):
            raise ValidationError("completed must be true or false", details={"field": "completed"})
        return completed

    def list(self, user_id: str) -> List[Todo]:
        """All todos of a user, newest first."""
        statement = (
            select(Todo)
            .where(Todo.user_id == user_id)
            .order_by(Todo.created_at.desc(), Todo.id.desc())
        )
        try:
            return list(self.session.exec(statement).all())
        except SQLAlchemyError as e:
            raise StoreError("Failed to retrieve todos", details={"error": str(e)})

    def get_by_id(self, todo_id: int, user_id: str) -> Optional[Todo]:
        """Get a specific todo by ID, ensuring user ownership."""
        statement = (
            select(Todo)
            .where(Todo.id == todo_id)
            .where(Todo.user_id == user_id)
        )
        try:
            return self.session.exec(statement).first()
        except SQLAlchemyError as e:
            raise StoreError("Failed to retrieve todo", details={"error": str(e)})

    def _get_owned(self, todo_id: int, user_id: str) -> Todo:
        todo = self.get_by_id(todo_id, user_id)
        if not todo:
            # Same answer for missing and foreign todos
            raise NotFoundError(
                f"Todo {todo_id} not found or access denied",
                details={"todo_id": todo_id}
            )
        return todo

    def create(
        self,
        user_id: str,
        title: str,
        description: Optional[str] = None,
        completed: bool = False,
    ) -> Todo:
        """
        Create a todo and count it against the owner's quota.

        The insert and the usage increment are committed together; if the
        quota was exhausted since the entitlement check nothing is written.
        """
        title = self._clean_title(title)
        description = self._check_description(description)
        completed = self._check_completed(completed)
        now = utc_now()
        todo = Todo(
            user_id=user_id,
            title=title,
            description=description,
            completed=completed,
            created_at=now,
            updated_at=now,
        )

        try:
            self.session.add(todo)
            if self.entitlements is not None and not self.entitlements.consume(user_id):
                self.session.rollback()
                raise EntitlementDeniedError(
                    self.entitlements.denial_reason(),
                    details={"upgrade_url": self.entitlements.upgrade_url}
                )
            self.session.commit()
        except SQLAlchemyError as e:
            self.session.rollback()
            raise StoreError("Failed to create todo", details={"error": str(e)})

        self.session.refresh(todo)
        logger.info(f"Created todo {todo.id} for user {user_id}")
        return todo

    def update(
        self,
        user_id: str,
        todo_id: int,
        title=UNSET,
        description=UNSET,
        completed=UNSET,
    ) -> Todo:
        """Patch a todo: fields left UNSET keep their current value."""
        todo = self._get_owned(todo_id, user_id)

        if title is not UNSET:
            todo.title = self._clean_title(title)
        if description is not UNSET:
            todo.description = self._check_description(description)
        if completed is not UNSET:
            todo.completed = self._check_completed(completed)

        todo.updated_at = utc_now()
        try:
            self.session.add(todo)
            self.session.commit()
        except SQLAlchemyError as e:
            self.session.rollback()
            raise StoreError("Failed to update todo", details={"error": str(e)})

        self.session.refresh(todo)
        return todo

    def delete(self, user_id: str, todo_id: int) -> Dict[str, Any]:
        """Delete a todo, ensuring user ownership. Returns the removed fields."""
        todo = self._get_owned(todo_id, user_id)
        removed = todo.to_payload()

        try:
            self.session.delete(todo)
            self.session.commit()
        except SQLAlchemyError as e:
            self.session.rollback()
            raise StoreError("Failed to delete todo", details={"error": str(e)})

        logger.info(f"Deleted todo {todo_id} for user {user_id}")
        return removed
