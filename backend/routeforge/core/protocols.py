"""Boundary Protocols — contracts between the routing core and its collaborators.

Invariants:
    - Core NEVER imports a web framework, importlib or a database driver
    - Server, module loading, logging, error reporting and schemas reached only through these types
    - Implementations provided by the shell (infrastructure/, api/) via dependency injection

Design Decisions:
    - Protocol over ABC: structural subtyping, test fakes need no inheritance
    - RouteDefinition is the single unit handed to ServerLike.register
"""

from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Protocol

from routeforge.core.domain_types import HttpMethod


RouteStep = Callable[[Any, Any], Awaitable[None]]


@dataclass(frozen=True)
class RouteDefinition:
    """What the server capability receives: method, path, middleware chain, handler."""
    method: HttpMethod
    path: str
    handler: RouteStep
    middlewares: tuple[RouteStep, ...] = field(default_factory=tuple)


class ServerLike(Protocol):
    """Underlying web server: the only operation the core needs."""
    def register(self, route: RouteDefinition) -> None: ...


class LoggerLike(Protocol):
    """Logger capability: structured data first, optional message second."""
    def debug(self, data: Any, message: str | None = None) -> None: ...
    def info(self, data: Any, message: str | None = None) -> None: ...
    def warn(self, data: Any, message: str | None = None) -> None: ...
    def error(self, data: Any, message: str | None = None) -> None: ...


class ErrorReporter(Protocol):
    """Crash-reporting sink: breadcrumbs and exception capture."""
    def add_breadcrumb(
        self, message: str, level: str = "info", data: dict | None = None,
    ) -> None: ...
    def capture_exception(
        self, exc: BaseException, tags: dict | None = None,
        extra: dict | None = None,
    ) -> None: ...


class ModuleLoader(Protocol):
    """File enumeration + dynamic import, injected into discovery and registrars.

    load() returns the module object (attributes read with getattr) or raises
    ModuleLoadError. list_files()/list_directories() raise OSError when root is unreadable.
    """
    def list_files(self, root: str, suffixes: tuple[str, ...]) -> list[str]: ...
    def list_directories(self, root: str) -> list[str]: ...
    def exists(self, path: str) -> bool: ...
    async def load(self, path: str) -> Any: ...


class SchemaLike(Protocol):
    """Schema capability: parse returns the typed value or raises SchemaValidationError."""
    def parse(self, value: Any) -> Any: ...

