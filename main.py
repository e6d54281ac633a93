import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from notification_engine.application import NotificationEngine
from notification_engine.config import get_settings
from notification_engine.infrastructure.database import (
    SessionLocal,
    engine as database_engine,
    initialize_database,
)
from notification_engine.interfaces.api import register_routes


def configure_logging(level: str) -> None:
    logging.basicConfig(
        level=level.upper(),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )


def create_app(notification_engine: NotificationEngine | None = None) -> FastAPI:
    """Create and configure the FastAPI application.

    When no engine is given, one is built on the configured database and the
    tables are created at startup.
    """

    settings = notification_engine.settings if notification_engine else get_settings()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        configure_logging(settings.log_level)
        engine = notification_engine
        if engine is None:
            initialize_database()
            engine = NotificationEngine(SessionLocal, settings=settings)
        app.state.engine = engine
        await engine.start()
        try:
            yield
        finally:
            await engine.stop()
            if notification_engine is None:
                database_engine.dispose()

    app = FastAPI(title=settings.app_name, lifespan=lifespan)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=[origin.strip() for origin in settings.frontend_url.split(",")],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    register_routes(app)
    return app


app = create_app()
