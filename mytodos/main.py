"""FastAPI application entry point for the todo API."""
import logging
import sys
import time
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy.engine import Engine

from mytodos import __version__
from mytodos.api.auth import router as auth_router
from mytodos.api.routes.ai import router as ai_router
from mytodos.api.routes.todos import router as todos_router
from mytodos.config import Settings, get_settings
from mytodos.core.errors import register_exception_handlers
from mytodos.database import engine_from_settings, init_db

logger = logging.getLogger(__name__)


def configure_logging(level: str) -> None:
    logging.basicConfig(
        level=level.upper(),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        handlers=[logging.StreamHandler(sys.stdout)],
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Create tables on startup, release the connection pool on shutdown."""
    init_db(app.state.engine)
    logger.info(f"Application started (env={app.state.settings.ENVIRONMENT})")

    yield

    app.state.engine.dispose()
    logger.info("Application shutdown complete")


def create_app(settings: Optional[Settings] = None, engine: Optional[Engine] = None) -> FastAPI:
    """
    Build the application.

    Args:
        settings: Configuration, defaults to the environment
        engine: Database engine, defaults to one built from `settings`

    The engine is created once here and shared by all requests through
    `app.state`; handlers receive sessions via the `get_db` dependency.
    """
    settings = settings or get_settings()
    configure_logging(settings.LOG_LEVEL)

    app = FastAPI(
        title="MyTodos API",
        description="Personal todo list with AI suggestions",
        version=__version__,
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.state.engine = engine or engine_from_settings(settings)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=False,
        allow_methods=["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"],
        allow_headers=["Origin", "Content-Type", "Accept", "Authorization"],
    )

    @app.middleware("http")
    async def log_requests(request: Request, call_next):
        started = time.perf_counter()
        response = await call_next(request)
        duration_ms = (time.perf_counter() - started) * 1000
        logger.info(
            f"{request.method} {request.url.path} {response.status_code} {duration_ms:.1f}ms"
        )
        return response

    register_exception_handlers(app, expose_details=not settings.is_production)

    @app.get("/health")
    def health_check():
        """Health check endpoint."""
        return {"status": "ok"}

    @app.get("/api/status")
    def api_status():
        return {
            "status": "online",
            "time": datetime.now(timezone.utc).isoformat(),
            "version": __version__,
            "env": settings.ENVIRONMENT,
        }

    app.include_router(auth_router)
    app.include_router(todos_router)
    app.include_router(ai_router)

    return app


def run() -> None:
    """Serve the application with uvicorn."""
    import uvicorn

    settings = get_settings()
    uvicorn.run(
        "mytodos.main:create_app",
        factory=True,
        host=settings.HOST,
        port=settings.PORT,
        log_level=settings.LOG_LEVEL.lower(),
    )
