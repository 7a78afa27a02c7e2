"""FastAPI application for the OAuth login callback."""
import logging

from fastapi import FastAPI

from todo_mcp.config import get_settings
from todo_mcp.db.init import init_db
from todo_mcp.routers import auth
from todo_mcp.utils.logger import configure_logging

logger = logging.getLogger(__name__)

# Create FastAPI application
app = FastAPI(
    title="Todo MCP Auth Server",
    description="Local login page that obtains identity tokens for the Todo MCP server",
    version="1.0.0",
)


@app.on_event("startup")
async def startup_event():
    """Initialize logging and the database on startup."""
    configure_logging(get_settings().log_level)
    try:
        init_db()
        logger.info("[SUCCESS] Database tables initialized successfully.")
    except Exception as e:
        logger.warning(f"[WARNING] Database initialization failed: {str(e)}")
        logger.warning("[WARNING] Login will work but users cannot be recorded.")


@app.get("/health")
async def health_check():
    """Health check endpoint."""
    return {"status": "healthy", "version": "1.0.0"}


app.include_router(auth.router)


if __name__ == "__main__":
    import uvicorn
    uvicorn.run("todo_mcp.main:app", host="127.0.0.1", port=3000)
