"""FastAPI application entry point for visitrack."""

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI

from visitrack.api.errors import register_error_handlers
from visitrack.api.middleware.logging_middleware import LoggingMiddleware
from visitrack.api.routes.metrics import router as metrics_router
from visitrack.api.routes.visits import router as visits_router
from visitrack.bootstrap.container import get_container


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    container = get_container()
    await container.start()
    try:
        yield
    finally:
        await container.stop()


def create_app(run_lifespan: bool = True) -> FastAPI:
    """Build the app. Tests pass run_lifespan=False to manage the container."""
    app = FastAPI(
        title="visitrack",
        description="Visitor lifecycle and notification service",
        version="0.1.0",
        lifespan=lifespan if run_lifespan else None,
    )
    app.add_middleware(LoggingMiddleware)
    register_error_handlers(app)
    app.include_router(visits_router)
    app.include_router(metrics_router)
    return app


app = create_app()
