"""FastAPI application factory for the forwarder."""

import logging
from typing import Optional

import structlog
from fastapi import FastAPI

from .config import Settings, settings as default_settings
from .routers import create_forward_router, health_router
from .services import Forwarder


def configure_logging(settings: Settings, debug: bool = False) -> None:
    """Set up structured logging."""
    debug = debug or settings.debug
    level = "DEBUG" if debug else settings.log_level
    structlog.configure(
        processors=[
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.dev.ConsoleRenderer()
            if debug
            else structlog.processors.JSONRenderer(),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(
            getattr(logging, level.upper())
        ),
        logger_factory=structlog.WriteLoggerFactory(),
        cache_logger_on_first_use=True,
    )


def create_app(
    settings: Optional[Settings] = None, forwarder: Optional[Forwarder] = None
) -> FastAPI:
    """Create and configure the FastAPI application."""
    settings = settings or default_settings
    configure_logging(settings)

    app = FastAPI(
        title="Forwarder",
        description="Transparent HTTP forwarding gateway",
        version="0.1.0",
        docs_url="/docs" if settings.debug else None,
        redoc_url="/redoc" if settings.debug else None,
        openapi_url="/openapi.json" if settings.debug else None,
    )
    app.state.forwarder = forwarder or Forwarder(settings)

    # Health first: a root mount would otherwise swallow it
    app.include_router(health_router)
    app.include_router(create_forward_router(settings.mount_path))

    return app


# Create the app instance
app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "forwarder.app:app",
        host=default_settings.api_host,
        port=default_settings.api_port,
        reload=default_settings.debug,
        log_level=default_settings.log_level.lower(),
    )
