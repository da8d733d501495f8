"""
VideoTube: FastAPI application factory.
"""
from __future__ import annotations

from contextlib import asynccontextmanager
from typing import Optional

import structlog
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.staticfiles import StaticFiles

from .config import Settings, get_settings
from .database import Database
from .errors import install_exception_handlers
from .logging_utils import configure_logging
from .media import LocalMediaStore
from .routers import comments, healthcheck, likes, playlists, subscriptions, tweets, users, videos

logger = structlog.get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    settings: Settings = app.state.settings
    logger.info("Starting VideoTube", version=settings.app_version)
    app.state.database.create_all()
    yield
    app.state.database.dispose()
    logger.info("Shutting down VideoTube")


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    settings = settings or get_settings()
    configure_logging(settings)

    app = FastAPI(title=settings.app_name, version=settings.app_version, lifespan=lifespan)
    app.state.settings = settings
    app.state.database = Database(settings.database_url, echo=settings.debug)
    app.state.media_store = LocalMediaStore(settings.media_root, settings.media_url_path)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    install_exception_handlers(app)

    for module in (healthcheck, users, videos, comments, tweets, likes, playlists, subscriptions):
        app.include_router(module.router, prefix=settings.api_prefix)

    app.mount(settings.media_url_path, StaticFiles(directory=str(settings.media_root)), name="media")
    return app


def run() -> None:
    import uvicorn

    uvicorn.run("videotube.main:create_app", factory=True, host="0.0.0.0", port=8000)


if __name__ == "__main__":
    run()
