from __future__ import annotations

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from tasktrail.api.activities import router as activities_router
from tasktrail.api.errors import register_exception_handlers
from tasktrail.api.health import router as health_router
from tasktrail.api.references import router as references_router
from tasktrail.api.tasks import router as tasks_router
from tasktrail.core.config import get_settings
from tasktrail.core.logging import TraceContextMiddleware, configure_logging, get_logger
from tasktrail.db.bootstrap import initialize_database
from tasktrail.db.engine import dispose_engine, get_engine
from tasktrail.notifications import NotificationDispatcher, create_notification_sender

logger = get_logger("tasktrail.main")


def create_app() -> FastAPI:
    settings = get_settings()
    configure_logging(settings)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        if settings.db_auto_init:
            initialize_database(
                database_url=settings.database_url,
                seed=settings.db_auto_seed,
            )
        get_engine()
        dispatcher = NotificationDispatcher(
            create_notification_sender(settings),
            max_workers=settings.notification_workers,
        )
        app.state.notification_dispatcher = dispatcher
        logger.info(
            "app.started",
            env=settings.app_env,
            notification_transport=settings.notification_transport,
        )
        try:
            yield
        finally:
            app.state.notification_dispatcher = None
            dispatcher.shutdown(wait=True)
            dispose_engine()

    app = FastAPI(
        title=settings.app_name,
        debug=settings.debug,
        lifespan=lifespan,
    )

    register_exception_handlers(app)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_allow_origins,
        allow_credentials=settings.cors_allow_credentials,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_middleware(TraceContextMiddleware)
    app.include_router(health_router)
    app.include_router(tasks_router, prefix="/api/v1")
    app.include_router(activities_router, prefix="/api/v1")
    app.include_router(references_router, prefix="/api/v1")
    return app


app = create_app()
