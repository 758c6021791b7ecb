import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI

from hostpanel.config import Settings, get_settings
from hostpanel.exception_handlers import register_exception_handlers
from hostpanel.middleware.logging import StructuredLoggingMiddleware, setup_structured_logging
from hostpanel.routes import pages, plugins
from hostpanel.services import create_service_locator

logger = logging.getLogger(__name__)


def create_app(settings: Settings | None = None, configure_logging: bool = True) -> FastAPI:
    """Create the FastAPI application and its service locator."""
    settings = settings or get_settings()
    if configure_logging:
        setup_structured_logging(settings.log_level, json_format=settings.log_json)

    services = create_service_locator(settings)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        logger.info("Starting up %s (%s)", settings.app_name, settings.environment)
        plugin_manager = services.get("PluginManager")
        plugin_manager.load_plugins()
        yield
        logger.info("Shutting down %s", settings.app_name)
        plugin_manager.unload_plugins()

    app = FastAPI(
        title=settings.app_name,
        description="Hosting control panel",
        debug=settings.debug,
        version=settings.app_version,
        lifespan=lifespan,
    )
    app.state.services = services

    app.add_middleware(StructuredLoggingMiddleware)
    register_exception_handlers(app)

    app.include_router(pages.router)
    app.include_router(plugins.router, prefix="/api/v1/plugins")

    @app.get("/health", tags=["Root"])
    async def health() -> dict[str, str]:
        return {"status": "ok"}

    return app
