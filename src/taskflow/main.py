"""Taskflow main application."""

import logging
from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from taskflow.api import router
from taskflow.api.deps import validate_auth_config
from taskflow.config import settings
from taskflow.services import build_services

# Configure logging
logging.basicConfig(
    level=getattr(logging, settings.log_level.upper()),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger("taskflow")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager."""
    logger.info("Starting Taskflow server...")
    logger.info(f"Environment: {settings.env.value}")
    logger.info(
        f"Backends: storage={settings.storage_backend.value} queue={settings.queue_backend.value} "
        f"cache={settings.cache_backend.value} realtime={settings.realtime_backend.value}"
    )

    # Fail fast on insecure auth configuration
    validate_auth_config()

    services = build_services(settings)
    await services.start()
    app.state.services = services
    logger.info("Event bus, queue workers and lease sweep started")

    yield

    logger.info("Shutting down Taskflow server...")
    await services.stop()
    app.state.services = None
    logger.info("Shutdown complete")


app = FastAPI(
    title="Taskflow",
    description="Event-driven automation engine for a multi-tenant task tracker",
    version="0.1.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_allowed_origins,
    allow_credentials=settings.cors_allow_credentials,
    allow_methods=settings.cors_allowed_methods,
    allow_headers=settings.cors_allowed_headers,
)

app.include_router(router)


def main():
    """Entry point for the application."""
    uvicorn.run(
        "taskflow.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.debug,
        log_level=settings.log_level.lower(),
    )


if __name__ == "__main__":
    main()
