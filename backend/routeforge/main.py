"""RouteForge API — FastAPI application factory.

Invariants:
    - Routes reach FastAPI only through FastAPIServer (auto, declarative, manual, built-in)
    - Registration order at startup: built-in (API info, health), auto, declarative, manual
    - A missing api_path skips auto routes with a warning; a missing routes_path
      is handled by the declarative registrar
    - Global error handlers map RouteForgeError → envelope JSON responses
    - CORS configured from settings (not hardcoded)
    - A caller-supplied ResponseOrchestrator (e.g. with sanitization rules) is shared
      by every registrar; otherwise one is built from settings

Design Decisions:
    - Lifespan over @app.on_event: FastAPI recommended pattern, cleaner cleanup
    - Factory (create_app) over a settings-bound module global: tests build apps
      against temporary route trees
"""

import logging
import os
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from routeforge.api.error_handlers import register_error_handlers
from routeforge.api.server import FastAPIServer
from routeforge.config import Settings, get_settings
from routeforge.core.protocols import ModuleLoader
from routeforge.infrastructure.database import init_db
from routeforge.infrastructure.module_loader import FileModuleLoader
from routeforge.infrastructure.observability import (
    get_structured_logger, setup_logging,
)
from routeforge.pipeline.response_orchestrator import (
    ResponseOrchestrator, SanitizationRules,
)
from routeforge.pipeline.responses import ResponseBuilder
from routeforge.services.api_routes import register_api_routes
from routeforge.services.auto_routes import AutoRouteDiscovery
from routeforge.services.declarative_routes import register_declarative_routes
from routeforge.services.health_routes import register_health_routes
from routeforge.services.manual_registry import register_all_manual_routes

logger = logging.getLogger(__name__)


def build_orchestrator(
    settings: Settings, sanitization: SanitizationRules | None = None,
) -> ResponseOrchestrator:
    return ResponseOrchestrator(sanitization=sanitization, builder=ResponseBuilder(
        include_request_id=settings.include_request_id,
        include_timestamp=settings.include_timestamp,
        log_responses=settings.log_responses,
        environment=settings.environment,
    ))


async def register_application_routes(
    app: FastAPI,
    settings: Settings,
    db=None,
    loader: ModuleLoader | None = None,
    orchestrator: ResponseOrchestrator | None = None,
) -> FastAPIServer:
    """Register every route source onto app through one FastAPIServer."""
    loader = loader or FileModuleLoader()
    log = get_structured_logger("routeforge.routes")
    orchestrator = orchestrator or build_orchestrator(settings)
    server = FastAPIServer(app, orchestrator=orchestrator)

    await register_api_routes(server, settings.app_name, settings.app_version)
    await register_health_routes(server, db.probe if db is not None else None)

    if settings.auto_routes_enabled:
        if os.path.isdir(settings.api_path):
            await AutoRouteDiscovery(
                settings.api_path,
                default_method=settings.default_method,
                loader=loader,
                log=log,
                db=db,
                orchestrator=orchestrator,
                chunk_size=settings.discovery_chunk_size,
                extensions=settings.discovery_extensions,
            ).register_routes(server)
        else:
            logger.warning(f"API directory not found, skipping auto routes: {settings.api_path}")

    if settings.declarative_routes_enabled:
        await register_declarative_routes(
            server,
            settings.routes_path,
            loader=loader,
            db=db,
            controllers_path=settings.controllers_path,
            orchestrator=orchestrator,
            log=log,
        )

    await register_all_manual_routes(server, settings.manual_routes_max_concurrency)
    return server


def create_app(
    settings: Settings | None = None,
    loader: ModuleLoader | None = None,
    orchestrator: ResponseOrchestrator | None = None,
) -> FastAPI:
    settings = settings or get_settings()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Startup/shutdown lifecycle."""
        setup_logging(settings.log_level, settings.log_format)
        db = None
        if settings.database_url:
            db = init_db(
                settings.database_url,
                pool_size=settings.database_pool_size,
                max_overflow=settings.database_max_overflow,
            )
        app.state.db = db
        app.state.server = await register_application_routes(
            app, settings, db, loader, orchestrator,
        )
        logger.info(f"{settings.app_name} started with {len(app.state.server.routes)} routes")
        yield
        if db is not None:
            await db.dispose()
        logger.info(f"{settings.app_name} shutting down")

    app = FastAPI(
        title=settings.app_name, version=settings.app_version, lifespan=lifespan,
    )

    # CORS — configured from settings, not hardcoded
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    register_error_handlers(app)
    return app


app = create_app()
