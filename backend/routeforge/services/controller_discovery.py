"""Controller Discovery — scans {api}/{module}/controllers/{name}-controller.py into a catalog.

Invariants:
    - Catalog key is "/{module}/{name}"; malformed paths never enter the catalog
    - A file is accepted only when its module exposes a callable `handle`
      (directly or on a `default` object)
    - Duplicate route paths: first discovered wins, warning names every colliding file
      (on disk a duplicate is a .py file beside its .pyc when both extensions are scanned)
    - Per-file load errors are collected, never raised; an unreadable root is fatal

Design Decisions:
    - Loader injected (ModuleLoader protocol): tests swap the filesystem for a fake
"""

from typing import Any

from routeforge.core.naming import (
    CONTROLLER_SUFFIX, controller_route_path, parse_controller_path,
)
from routeforge.core.protocols import LoggerLike, ModuleLoader
from routeforge.core.records import ControllerRecord, DiscoveryFailure
from routeforge.infrastructure.module_loader import FileModuleLoader
from routeforge.infrastructure.observability import get_structured_logger
from routeforge.services.discovery_scan import (
    DEFAULT_CHUNK_SIZE, list_candidates, log_scan_summary, scan_files,
)


def resolve_handler(module: Any, allow_default_callable: bool = False) -> Any:
    """Return the module's callable `handle` (or default.handle), else None.

    Declarative controllers may also export the handler itself as `default`.
    """
    handle = getattr(module, "handle", None)
    if callable(handle):
        return handle
    default = getattr(module, "default", None)
    handle = getattr(default, "handle", None)
    if callable(handle):
        return handle
    if allow_default_callable and callable(default):
        return default
    return None


class ControllerDiscovery:
    def __init__(
        self,
        api_path: str,
        loader: ModuleLoader | None = None,
        log: LoggerLike | None = None,
        chunk_size: int = DEFAULT_CHUNK_SIZE,
        extensions: tuple[str, ...] = (".py",),
    ):
        self.api_path = api_path
        self.loader = loader or FileModuleLoader()
        self.log = log or get_structured_logger(__name__)
        self.chunk_size = chunk_size
        self.extensions = extensions
        self._controllers: dict[str, ControllerRecord] = {}
        self._duplicates: list[str] = []
        self.failures: list[DiscoveryFailure] = []

    async def discover_controllers(self) -> dict[str, ControllerRecord]:
        suffixes = tuple(f"{CONTROLLER_SUFFIX}{ext}" for ext in self.extensions)
        files = list_candidates(self.loader, self.api_path, suffixes, self.log, "controller")
        scan = await scan_files(files, self._process_file, self.chunk_size)
        self.failures = scan.failures
        self._build_catalog(scan.records)
        log_scan_summary(
            self.log, "controller", scan, duplicateRoutes=len(self._duplicates),
        )
        return self._controllers

    async def _process_file(self, file_path: str) -> ControllerRecord | None:
        parsed = parse_controller_path(self.api_path, file_path, self.extensions)
        if parsed is None:
            self.log.debug({"filePath": file_path}, "Could not extract controller metadata")
            return None
        module_name, name = parsed

        module = await self.loader.load(file_path)
        handler = resolve_handler(module)
        if handler is None:
            self.log.warn(
                {"filePath": file_path},
                "Controller file does not export 'handle' function",
            )
            return None

        return ControllerRecord(
            name=name,
            module_name=module_name,
            file_path=file_path,
            route_path=controller_route_path(module_name, name),
            handler=handler,
        )

    def _build_catalog(self, records: list[ControllerRecord]) -> None:
        grouped: dict[str, list[ControllerRecord]] = {}
        for record in records:
            grouped.setdefault(record.route_path, []).append(record)

        self._controllers = {}
        self._duplicates = []
        for route_path, group in grouped.items():
            if len(group) > 1:
                self._duplicates.append(route_path)
                self.log.warn(
                    {"routePath": route_path, "controllers": [r.file_path for r in group]},
                    "Duplicate route detected - using first controller found",
                )
            self._controllers[route_path] = group[0]

    def get_controller(self, route_path: str) -> ControllerRecord | None:
        return self._controllers.get(route_path)

    def get_all_controllers(self) -> list[ControllerRecord]:
        return list(self._controllers.values())

    def get_duplicate_routes(self) -> list[str]:
        return list(self._duplicates)
