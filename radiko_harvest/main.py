from contextlib import asynccontextmanager
import logging

from fastapi import FastAPI
import uvicorn

from radiko_harvest.config import settings, setup_logging
from radiko_harvest.database import close_db, init_db
from radiko_harvest.dependencies import get_service_locator
from radiko_harvest.services.artifact_store import ArtifactStore, create_artifact_store
from radiko_harvest.services.scheduler_service import harvest_scheduler

from radiko_harvest.routers import main_router, reject_non_get


setup_logging()
logger = logging.getLogger(__name__)

@asynccontextmanager
async def lifespan(app: FastAPI):
    """Lifespan context manager for startup and shutdown events"""
    logger.info("Starting radiko harvest service...")

    try:
        if settings.storage_backend == "sqlite":
            logger.info("Initializing artifact database...")
            await init_db()

        store = create_artifact_store(settings.storage_backend, storage_root=settings.storage_root)
        get_service_locator().register_singleton(ArtifactStore, store)
        logger.info("Artifact store ready (%s backend)", settings.storage_backend)

        if settings.harvest_schedule_enabled:
            logger.info("Starting scheduler...")
            harvest_scheduler.start()
        else:
            logger.info("Scheduled harvest disabled")

        logger.info("Radiko harvest service started successfully")
    except Exception as e:
        logger.error(f"Failed to start radiko harvest service: {e}", exc_info=True)
        raise

    yield

    logger.info("Shutting down radiko harvest service...")

    try:
        harvest_scheduler.shutdown()
    except Exception as e:
        logger.error(f"Error during scheduler shutdown: {e}", exc_info=True)

    await close_db()
    logger.info("Radiko harvest service stopped")


def create_app() -> FastAPI:
    """Read-only artifact server; the catch-all route is the only route"""
    application = FastAPI(
        title="Radiko Harvest",
        version="0.1.0",
        lifespan=lifespan,
        docs_url=None,
        redoc_url=None,
        openapi_url=None,
    )
    application.middleware("http")(reject_non_get)
    application.include_router(main_router)
    return application


app = create_app()


def serve() -> None:
    """Run the read server with uvicorn (`radiko-harvest-serve`)"""
    uvicorn.run(
        "radiko_harvest.main:app",
        host=settings.server_host,
        port=settings.server_port,
        log_level=settings.log_level.lower(),
    )
