"""
Pytest configuration and fixtures for testing
"""
import pytest
from sqlalchemy.pool import StaticPool
from sqlmodel import Session, SQLModel

from todo_mcp.auth.token_store import TokenStore
from todo_mcp.config import Settings
from todo_mcp.db.config import create_db_engine
from todo_mcp.mcp.server import build_mcp_server
from todo_mcp.models import Todo, User  # noqa: F401

from .fakes import ISSUER


@pytest.fixture
def engine():
    """
    Isolated in-memory SQLite database per test.

    StaticPool keeps a single connection so worker threads see the same data.
    """
    engine = create_db_engine("sqlite://", poolclass=StaticPool)
    SQLModel.metadata.create_all(engine)
    yield engine
    SQLModel.metadata.drop_all(engine)
    engine.dispose()


@pytest.fixture
def session(engine):
    with Session(engine) as session:
        yield session


@pytest.fixture
def settings(tmp_path):
    return Settings(
        database_url="sqlite://",
        issuer_url=ISSUER,
        client_id="client-123",
        client_secret="client-secret",
        redirect_url="http://localhost:3000/callback",
        auth_server_url="http://localhost:3000",
        upgrade_url="https://billing.example.com/portal",
        token_file=str(tmp_path / "token"),
        free_todo_limit=1,
        command_timeout=5.0,
    )


@pytest.fixture
def token_store(settings):
    return TokenStore(settings.token_file)


@pytest.fixture
def server(settings, engine, token_store):
    return build_mcp_server(settings, engine=engine, token_store=token_store)
