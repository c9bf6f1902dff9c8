from contextlib import asynccontextmanager

from fastapi import FastAPI

from instruments.api.v1 import router as api_router
from instruments.core.config import settings
from instruments.core.logging_config import get_logger
from instruments.metrics.instance import configure_from_settings, get_registry

logger = get_logger("instruments.app")


@asynccontextmanager
async def lifespan(_: FastAPI):
    # Startup
    configure_from_settings()
    logger.info(f"{settings.PROJECT_NAME} {settings.VERSION} started")

    yield

    # Shutdown - stops every meter tick and closes the StatsD socket
    get_registry().shutdown()


def create_app() -> FastAPI:
    app = FastAPI(
        title=settings.PROJECT_NAME,
        description="In-process metrics with StatsD forwarding",
        version=settings.VERSION,
        lifespan=lifespan,
    )
    app.include_router(api_router)
    return app


app = create_app()
