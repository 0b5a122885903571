"""Declarative Module Registrar — registers routes listed in each module's config file.

Invariants:
    - Each sub-directory of routes_path is a module; its config is tried as config.pyc,
      then config.py; modules without a loadable config are skipped with a warning
    - A missing routes_path is a warning, not an error: nothing registers
    - Modules load concurrently; each module's routes register concurrently
    - Controller "{controllers_root}/{module}/{controller}" tried as .pyc, then .py;
      none loadable → ControllerNotFoundError listing every attempted path
    - Each route attempt counts 0 or 1; one failure never aborts its siblings
    - Chain per route: validation (if configured), authorization (if configured), controller

Design Decisions:
    - Route entries validated one by one (RouteConfig) so one malformed entry only
      fails its own registration
"""

import asyncio
import os
from typing import Any, Mapping

from routeforge.core.errors import ControllerNotFoundError, ModuleLoadError
from routeforge.core.naming import derive_controllers_root
from routeforge.core.protocols import LoggerLike, ModuleLoader, RouteDefinition, ServerLike
from routeforge.core.records import RouteDescriptor
from routeforge.infrastructure.module_loader import FileModuleLoader
from routeforge.infrastructure.observability import get_structured_logger
from routeforge.pipeline.authorization import (
    AuthorizationConfig, create_authorization_middleware,
)
from routeforge.pipeline.response_orchestrator import (
    ResponseOrchestrator, default_response_orchestrator,
)
from routeforge.pipeline.validation import create_validation_middleware
from routeforge.schemas.route_config import RouteConfig
from routeforge.services.controller_discovery import resolve_handler
from routeforge.services.controller_invocation import create_controller_step

CONFIG_MODULE = "config"
# Compiled variant first, then source
LOAD_EXTENSIONS = (".pyc", ".py")


def resolve_module_routes(module: Any) -> Mapping[str, Any] | None:
    """Find the routes mapping a config module exposes, else None."""
    config = getattr(module, "config", None)
    if isinstance(config, Mapping):
        routes = config.get("routes")
    else:
        routes = getattr(config, "routes", None)
    if routes is None:
        routes = getattr(module, "routes", None)
    return routes if isinstance(routes, Mapping) else None


def _as_authorization_config(value: Any) -> AuthorizationConfig:
    if isinstance(value, AuthorizationConfig):
        return value
    if isinstance(value, Mapping):
        return AuthorizationConfig(**value)
    raise TypeError(f"Unsupported authorization config: {type(value).__name__}")


class DeclarativeRouteRegistrar:
    def __init__(
        self,
        server: ServerLike,
        routes_path: str,
        loader: ModuleLoader | None = None,
        db: Any = None,
        controllers_path: str | None = None,
        orchestrator: ResponseOrchestrator | None = None,
        log: LoggerLike | None = None,
    ):
        self.server = server
        self.routes_path = routes_path
        self.loader = loader or FileModuleLoader()
        self.db = db
        self.controllers_root = derive_controllers_root(routes_path, controllers_path)
        self.orchestrator = orchestrator or default_response_orchestrator
        self.log = log or get_structured_logger(__name__)
        self.descriptors: list[RouteDescriptor] = []

    async def register_declarative_routes(self) -> int:
        modules = await self.discover_modules()
        counts = await asyncio.gather(
            *(self.register_module(name, routes) for name, routes in modules),
        )
        total = sum(counts)
        self.log.info({"count": total}, f"Registered {total} declarative routes")
        return total

    # ─── Module discovery ───────────────────────────────────────

    async def discover_modules(self) -> list[tuple[str, Mapping[str, Any]]]:
        self.log.debug({"routesPath": self.routes_path}, "Discovering declarative modules")
        try:
            names = self.loader.list_directories(self.routes_path)
        except OSError as e:
            self.log.warn(
                {"routesPath": self.routes_path, "error": str(e)},
                f"Routes directory not found: {self.routes_path}",
            )
            return []

        found = await asyncio.gather(*(self._load_module_config(name) for name in names))
        return [entry for entry in found if entry is not None]

    async def _load_module_config(self, name: str) -> tuple[str, Mapping[str, Any]] | None:
        for ext in LOAD_EXTENSIONS:
            path = os.path.join(self.routes_path, name, f"{CONFIG_MODULE}{ext}")
            if not self.loader.exists(path):
                continue
            try:
                module = await self.loader.load(path)
            except ModuleLoadError as e:
                self.log.debug({"path": path, "error": str(e)}, "Config load failed")
                continue
            routes = resolve_module_routes(module)
            if routes is not None:
                return name, routes

        self.log.warn({"module": name}, f"No config found for module {name}")
        return None

    # ─── Route registration ─────────────────────────────────────

    async def register_module(self, module_name: str, routes: Mapping[str, Any]) -> int:
        results = await asyncio.gather(
            *(
                self._try_register_route(module_name, route_name, raw)
                for route_name, raw in routes.items()
            ),
        )
        return sum(results)

    async def _try_register_route(self, module_name: str, route_name: str, raw: Any) -> int:
        try:
            await self.register_route(module_name, route_name, raw)
            return 1
        except Exception as e:
            self.log.error(
                {"module": module_name, "route": route_name, "error": str(e)},
                f"Failed to register route {module_name}/{route_name}: {e}",
            )
        return 0

    async def load_controller(self, module_name: str, controller: str) -> Any:
        attempted = []
        for ext in LOAD_EXTENSIONS:
            path = os.path.join(self.controllers_root, module_name, f"{controller}{ext}")
            attempted.append(path)
            if not self.loader.exists(path):
                continue
            try:
                module = await self.loader.load(path)
            except ModuleLoadError as e:
                self.log.debug({"path": path, "error": str(e)}, "Controller load failed")
                continue
            handler = resolve_handler(module, allow_default_callable=True)
            if handler is not None:
                return handler
        raise ControllerNotFoundError(attempted)

    async def register_route(self, module_name: str, route_name: str, raw: Any) -> None:
        config = raw if isinstance(raw, RouteConfig) else RouteConfig.model_validate(raw)
        handler = await self.load_controller(module_name, config.controller)
        route_path = f"/{module_name}/{route_name}"

        middlewares = []
        if config.validation:
            middlewares.append(create_validation_middleware(
                config.validation, orchestrator=self.orchestrator,
            ))
        if config.authorization:
            middlewares.append(create_authorization_middleware(
                _as_authorization_config(config.authorization),
                orchestrator=self.orchestrator,
            ))

        self.server.register(RouteDefinition(
            method=config.method,
            path=route_path,
            handler=create_controller_step(
                handler, config.method, db=self.db,
                paginated=config.paginated, orchestrator=self.orchestrator,
            ),
            middlewares=tuple(middlewares),
        ))
        self.descriptors.append(RouteDescriptor(
            path=route_path,
            method=config.method,
            handler_ref=handler,
            validation_schemas=dict(config.validation or {}),
            authorization_config=config.authorization,
            paginated=config.paginated,
        ))
        self.log.info(
            {"method": config.method.value, "path": route_path},
            f"{config.method.value} {route_path} -> {module_name}/{config.controller}",
        )


async def register_declarative_routes(
    server: ServerLike,
    routes_path: str,
    loader: ModuleLoader | None = None,
    db: Any = None,
    controllers_path: str | None = None,
    orchestrator: ResponseOrchestrator | None = None,
    log: LoggerLike | None = None,
) -> int:
    registrar = DeclarativeRouteRegistrar(
        server, routes_path, loader=loader, db=db,
        controllers_path=controllers_path, orchestrator=orchestrator, log=log,
    )
    return await registrar.register_declarative_routes()
