"""Configuration for the Todo MCP server."""
from dataclasses import dataclass
from pathlib import Path
from functools import lru_cache
import os

from dotenv import load_dotenv

# Load environment variables from a local .env file if present
load_dotenv()

DEFAULT_DATABASE_URL = "sqlite:///./todo_mcp.db"
DEFAULT_TOKEN_FILE = str(Path.home() / ".todo-mcp" / "token")

# Canonical free-tier ceiling (number of todos a free user may create)
DEFAULT_FREE_TODO_LIMIT = 5


def _env_bool(name: str, default: bool = False) -> bool:
    value = os.environ.get(name)
    if value is None:
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


@dataclass
class Settings:
    """Runtime settings, read from the environment."""
    database_url: str = DEFAULT_DATABASE_URL
    issuer_url: str = "https://example.kinde.com"
    client_id: str = ""
    client_secret: str = ""
    redirect_url: str = "http://localhost:3000/callback"
    auth_server_url: str = "http://localhost:3000"
    upgrade_url: str = "https://example.kinde.com/portal"
    token_file: str = DEFAULT_TOKEN_FILE
    free_todo_limit: int = DEFAULT_FREE_TODO_LIMIT
    command_timeout: float = 30.0
    db_connect_timeout: int = 10
    verify_token_signature: bool = False
    log_level: str = "INFO"

    @classmethod
    def from_env(cls) -> "Settings":
        issuer_url = os.environ.get("KINDE_ISSUER_URL", cls.issuer_url).rstrip("/")
        return cls(
            database_url=os.environ.get("DATABASE_URL", DEFAULT_DATABASE_URL),
            issuer_url=issuer_url,
            client_id=os.environ.get("KINDE_CLIENT_ID", ""),
            client_secret=os.environ.get("KINDE_CLIENT_SECRET", ""),
            redirect_url=os.environ.get("KINDE_REDIRECT_URL", cls.redirect_url),
            auth_server_url=os.environ.get("AUTH_SERVER_URL", cls.auth_server_url),
            upgrade_url=os.environ.get("UPGRADE_URL", f"{issuer_url}/portal"),
            token_file=os.environ.get("TOKEN_FILE", DEFAULT_TOKEN_FILE),
            free_todo_limit=int(os.environ.get("FREE_TODO_LIMIT", DEFAULT_FREE_TODO_LIMIT)),
            command_timeout=float(os.environ.get("COMMAND_TIMEOUT_SECONDS", 30)),
            db_connect_timeout=int(os.environ.get("DB_CONNECT_TIMEOUT", 10)),
            verify_token_signature=_env_bool("VERIFY_TOKEN_SIGNATURE"),
            log_level=os.environ.get("LOG_LEVEL", "INFO").upper(),
        )

    @property
    def authorization_endpoint(self) -> str:
        return f"{self.issuer_url}/oauth2/auth"

    @property
    def token_endpoint(self) -> str:
        return f"{self.issuer_url}/oauth2/token"

    @property
    def jwks_url(self) -> str:
        return f"{self.issuer_url}/.well-known/jwks"


@lru_cache()
def get_settings() -> Settings:
    """Get the process-wide settings instance."""
    return Settings.from_env()
