"""TaskFlow API - FastAPI backend for Kanban boards"""

import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from . import __version__
from .config import Settings, get_settings
from .routes import (
    analytics, boards, cards, checklists, comments, links, lists, webhooks, websocket
)
from .services.broadcast import create_broadcaster
from .services.database import Database
from .services.notifier import Notifier

logger = logging.getLogger(__name__)


def configure_logging(settings: Settings):
    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    )


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    """Build the application; services live on ``app.state`` for its lifetime"""
    settings = settings or get_settings()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger.info(f"Starting {settings.app_name}...")
        app.state.db.initialize()
        await app.state.broadcaster.connect()
        yield
        logger.info(f"Shutting down {settings.app_name}...")
        await app.state.broadcaster.disconnect()
        app.state.db.close()

    app = FastAPI(
        title=settings.app_name,
        description="Kanban boards with workload analytics and live reordering",
        version=__version__,
        lifespan=lifespan
    )

    db = Database(None if settings.database_in_memory else settings.database_path)
    app.state.settings = settings
    app.state.db = db
    app.state.broadcaster = create_broadcaster(settings)
    app.state.notifier = Notifier(db, settings)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.allowed_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception):
        logger.error(f"Unhandled exception: {exc}", exc_info=True)
        return JSONResponse(
            status_code=500,
            content={"detail": "Internal server error"}
        )

    app.include_router(boards.router, prefix="/boards", tags=["boards"])
    app.include_router(lists.router, prefix="/lists", tags=["lists"])
    app.include_router(cards.router, prefix="/cards", tags=["cards"])
    app.include_router(checklists.router, tags=["checklists"])
    app.include_router(comments.router, tags=["comments"])
    app.include_router(links.router, tags=["links"])
    app.include_router(webhooks.router, prefix="/webhooks", tags=["webhooks"])
    app.include_router(analytics.router, tags=["analytics"])
    app.include_router(websocket.router, tags=["websocket"])

    @app.get("/health", tags=["health"])
    async def health():
        return {"status": "healthy", "version": __version__}

    return app


def _build_default_app() -> FastAPI:
    settings = get_settings()
    configure_logging(settings)
    return create_app(settings)


app = _build_default_app()
