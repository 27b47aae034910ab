"""
Main Application Entry Point.

This module builds the FastAPI application, configures middleware (CORS),
exception handlers and all API routers. The platform container is created
from settings at startup unless one is injected.
"""

from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from appweaver_ai import __version__
from appweaver_ai.core.logging_config import get_logger, setup_logging

from .api.v1 import automations, chat, health
from .core import constant
from .core.config import Settings, get_settings
from .exception_handlers import setup_exception_handlers
from .services.container import PlatformContainer

logger = get_logger(__name__)


def create_app(container: Optional[PlatformContainer] = None, settings: Optional[Settings] = None) -> FastAPI:
    """
    Build the application.

    Args:
        container: Pre-built platform container. When given it is attached
            immediately and the lifespan neither creates nor closes it.
        settings: Settings used for logging, CORS and container creation.
    """
    settings = settings or get_settings()
    owns_container = container is None

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Create, start and finally close the platform container."""
        setup_logging(log_level=settings.log_level, log_format=settings.log_format)
        logger.info("Starting up AppWeaver-AI Server...")
        if owns_container:
            app.state.container = PlatformContainer.from_settings(settings)
        await app.state.container.start()
        logger.info("Platform container started")

        yield

        logger.info("Shutting down AppWeaver-AI Server...")
        if owns_container:
            await app.state.container.close()

    app = FastAPI(
        title=constant.PROJECT_NAME,
        description="""
    AppWeaver-AI Server API

    Conversational app builder: an agent shapes each App's data model through tools,
    and user automations react to record changes inside a sandbox.
    """,
        version=__version__,
        openapi_url=f"{constant.API_V1_STR}/openapi.json",
        docs_url=f"{constant.API_V1_STR}/docs",
        redoc_url=f"{constant.API_V1_STR}/redoc",
        lifespan=lifespan,
    )
    if container is not None:
        app.state.container = container

    cors = settings.cors
    app.add_middleware(
        CORSMiddleware,
        allow_origins=cors.origins,
        allow_credentials=cors.allow_credentials,
        allow_methods=cors.allow_methods,
        allow_headers=cors.allow_headers,
    )
    setup_exception_handlers(app)

    app.include_router(health.router, tags=["health"])
    app.include_router(chat.router, prefix=f"{constant.API_V1_STR}/apps", tags=["chat"])
    app.include_router(automations.router, prefix=f"{constant.API_V1_STR}/apps", tags=["automations"])
    return app


app = create_app()
