"""
Rorie Chat - Main Application Entry Point

Session-scoped chat proxy: browser -> quota + memory -> OpenRouter -> stream.
"""

from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from rorie import __version__
from rorie.core.config import get_settings
from rorie.core.logger import logger, setup_logger


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler for startup/shutdown events."""
    # Startup
    settings = get_settings()
    setup_logger(level=settings.LOG_LEVEL)
    logger.info(
        f"Starting Rorie Chat (model={settings.OPENROUTER_MODEL}, "
        f"limit={settings.SESSION_MESSAGE_LIMIT})..."
    )

    from rorie.infrastructure.local.database import dispose_engine, init_db

    await init_db()

    yield

    # Shutdown
    logger.info("Shutting down Rorie Chat...")
    await dispose_engine()


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    settings = get_settings()

    app = FastAPI(
        title="Rorie Chat",
        description="Session-scoped chat proxy with per-session message quota",
        version=__version__,
        lifespan=lifespan,
        docs_url="/docs" if settings.DEBUG else None,
        redoc_url="/redoc" if settings.DEBUG else None,
    )

    # CORS middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.ALLOWED_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Include routers
    from rorie.api import chat

    app.include_router(chat.router, prefix="/api/chat", tags=["chat"])

    @app.get("/health")
    async def health_check():
        """Health check endpoint."""
        return {
            "status": "healthy",
            "version": __version__,
        }

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    settings = get_settings()
    uvicorn.run(
        "main:app",
        host=settings.HOST,
        port=settings.PORT,
        reload=settings.DEBUG,
    )
