"""Auto Route Assembler — joins discovered controllers with their schemas into routes.

Invariants:
    - Controller and schema discovery run concurrently over the same api root
    - Both discoveries accept .py and .pyc files, so a compiled sibling of a
      controller is reported as a duplicate route rather than silently shadowed
    - Schemas attached by probing "{m}/{n}", "{m}/{n}-body", "-params", "-query", "-headers";
      a later probe of the same validation kind replaces an earlier one
    - Method inferred from the controller name prefix, else default_method
    - Validation step added only when at least one schema is attached
    - One route failing to register is logged; the rest still register,
      and "Registered x/y routes" is logged at the end
"""

import asyncio
from typing import Any

from routeforge.core.domain_types import HttpMethod, ValidationKind
from routeforge.core.naming import MODULE_EXTENSIONS, infer_http_method, schema_probe_keys
from routeforge.core.protocols import LoggerLike, ModuleLoader, RouteDefinition, ServerLike
from routeforge.core.records import ControllerRecord, RouteDescriptor, SchemaRecord
from routeforge.infrastructure.module_loader import FileModuleLoader
from routeforge.infrastructure.observability import get_structured_logger
from routeforge.pipeline.response_orchestrator import (
    ResponseOrchestrator, default_response_orchestrator,
)
from routeforge.pipeline.validation import create_validation_middleware
from routeforge.services.controller_discovery import ControllerDiscovery
from routeforge.services.controller_invocation import create_controller_step
from routeforge.services.discovery_scan import DEFAULT_CHUNK_SIZE
from routeforge.services.schema_discovery import SchemaDiscovery


def match_schemas(
    controller: ControllerRecord, schemas: dict[str, SchemaRecord],
) -> list[SchemaRecord]:
    return [
        schemas[key]
        for key in schema_probe_keys(controller.module_name, controller.name)
        if key in schemas
    ]


class AutoRouteDiscovery:
    def __init__(
        self,
        api_path: str,
        default_method: HttpMethod | str = HttpMethod.GET,
        loader: ModuleLoader | None = None,
        log: LoggerLike | None = None,
        db: Any = None,
        orchestrator: ResponseOrchestrator | None = None,
        chunk_size: int = DEFAULT_CHUNK_SIZE,
        extensions: tuple[str, ...] = MODULE_EXTENSIONS,
    ):
        self.api_path = api_path
        self.default_method = default_method
        self.log = log or get_structured_logger(__name__)
        self.db = db
        self.orchestrator = orchestrator or default_response_orchestrator
        loader = loader or FileModuleLoader()
        self.controller_discovery = ControllerDiscovery(
            api_path, loader=loader, log=self.log, chunk_size=chunk_size,
            extensions=extensions,
        )
        self.schema_discovery = SchemaDiscovery(
            api_path, loader=loader, log=self.log, chunk_size=chunk_size,
            extensions=extensions,
        )
        self._routes: dict[str, RouteDescriptor] = {}

    async def discover_routes(self) -> dict[str, RouteDescriptor]:
        self.log.debug({}, "Starting auto route discovery")
        try:
            controllers, schemas = await asyncio.gather(
                self.controller_discovery.discover_controllers(),
                self.schema_discovery.discover_schemas(),
            )
        except Exception as e:
            self.log.error({"error": str(e)}, "Auto route discovery failed")
            raise

        self._routes = {}
        for route_path, controller in controllers.items():
            self._routes[route_path] = self._build_descriptor(
                controller, match_schemas(controller, schemas),
            )

        self.log.debug(
            {
                "totalRoutes": len(self._routes),
                "duplicateRoutes": self.controller_discovery.get_duplicate_routes(),
            },
            "Auto route discovery completed",
        )
        return self._routes

    def _build_descriptor(
        self, controller: ControllerRecord, schemas: list[SchemaRecord],
    ) -> RouteDescriptor:
        validation: dict[ValidationKind, Any] = {}
        for record in schemas:
            validation[record.validation_kind] = record.schema
        return RouteDescriptor(
            path=controller.route_path,
            method=infer_http_method(controller.name, self.default_method),
            handler_ref=controller.handler,
            validation_schemas=validation,
            source_file=controller.file_path,
            schema_files=tuple(record.file_path for record in schemas),
        )

    async def register_routes(self, server: ServerLike) -> int:
        """Discover, then register every route; returns how many registered."""
        self.log.debug({}, "Starting route registration")
        routes = await self.discover_routes()

        results = await asyncio.gather(
            *(self._register_single(server, route) for route in routes.values()),
        )
        registered = sum(results)
        self.log.info(
            {"count": registered}, f"Registered {registered}/{len(routes)} routes",
        )
        return registered

    async def _register_single(self, server: ServerLike, route: RouteDescriptor) -> int:
        try:
            middlewares = []
            if route.validation_schemas:
                middlewares.append(create_validation_middleware(
                    route.validation_schemas, orchestrator=self.orchestrator,
                ))
            server.register(RouteDefinition(
                method=route.method,
                path=route.path,
                handler=create_controller_step(
                    route.handler_ref, route.method, db=self.db,
                    orchestrator=self.orchestrator,
                ),
                middlewares=tuple(middlewares),
            ))
        except Exception as e:
            self.log.error(
                {"error": str(e), "route": route.path}, "Failed to register route",
            )
            return 0

        self.log.debug(
            {
                "method": route.method.value,
                "path": route.path,
                "controller": route.source_file,
                "schemas": list(route.schema_files),
            },
            f"Registered route: {route.method.value} {route.path}",
        )
        return 1

    def get_route(self, path: str) -> RouteDescriptor | None:
        return self._routes.get(path)

    def get_all_routes(self) -> list[RouteDescriptor]:
        return list(self._routes.values())
