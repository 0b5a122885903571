"""Routing Records — immutable records flowing from discovery to registration.

Invariants:
    - ControllerRecord / SchemaRecord are created by discovery and never mutated
    - RouteDescriptor.method is fixed at construction (frozen dataclass)
    - ManualRouteEntry.priority defaults to 0
    - RequestContext is built fresh per request and never persisted

Design Decisions:
    - frozen dataclasses over dicts: the "never mutated after registration" rule
      is enforced by the type, not by convention
"""

from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Mapping

from routeforge.core.domain_types import (
    HttpMethod, RouteId, RoutePath, SchemaKey, ValidationKind,
)


ControllerHandler = Callable[[dict, "RequestContext"], Any]


@dataclass(frozen=True)
class ControllerRecord:
    """One discovered controller: {api}/{module}/controllers/{name}-controller.py."""
    name: str
    module_name: str
    file_path: str
    route_path: RoutePath
    handler: ControllerHandler


@dataclass(frozen=True)
class SchemaRecord:
    """One discovered schema: {api}/{module}/schemas/{name}-schema.py."""
    name: str
    module_name: str
    file_path: str
    validation_kind: ValidationKind
    schema: Any

    @property
    def key(self) -> SchemaKey:
        return SchemaKey(f"{self.module_name}/{self.name}")


@dataclass(frozen=True)
class DiscoveryFailure:
    file: str
    error: str


@dataclass(frozen=True)
class RouteDescriptor:
    """Fully resolved route, consumed once at registration time."""
    path: RoutePath
    method: HttpMethod
    handler_ref: ControllerHandler
    validation_schemas: Mapping[ValidationKind, Any] = field(default_factory=dict)
    authorization_config: Any = None
    middleware_ids: tuple[str, ...] | None = None
    paginated: bool = False
    source_file: str | None = None
    schema_files: tuple[str, ...] = ()


@dataclass(frozen=True)
class ManualRouteEntry:
    """Imperative registration callback held by the manual route registry."""
    id: RouteId
    register: Callable[[Any], Awaitable[None]]
    priority: int = 0


@dataclass
class RequestContext:
    """Narrow context handed to controllers: db handle, logger, principal."""
    log: Any
    db: Any = None
    user: Any = None
