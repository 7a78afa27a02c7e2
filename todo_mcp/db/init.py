"""Initialize database tables."""
import logging
from typing import Optional

from sqlmodel import SQLModel
from sqlalchemy.engine import Engine

from todo_mcp.models.user import User  # noqa: F401
from todo_mcp.models.todo import Todo  # noqa: F401
from todo_mcp.db.config import get_engine

logger = logging.getLogger(__name__)


def init_db(engine: Optional[Engine] = None) -> None:
    """Create the users and todos tables and their indexes if missing."""
    engine = engine or get_engine()
    logger.info("[DB INIT] Creating all tables...")
    SQLModel.metadata.create_all(engine)
    logger.info("[DB INIT] Tables created successfully.")


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO)
    init_db()
    print("Database tables created successfully.")
