"""Schema Discovery — scans {api}/{module}/schemas/{name}-schema.py into a catalog.

Invariants:
    - Catalog key is "{module}/{name}"; validation kind inferred from the name
    - A file is accepted only when its module exposes `schema` (or `default`)
    - Duplicate keys: first discovered wins with a warning, same as controllers
"""

from typing import Any

from routeforge.core.naming import (
    SCHEMA_SUFFIX, infer_validation_kind, parse_schema_path, schema_key,
)
from routeforge.core.protocols import LoggerLike, ModuleLoader
from routeforge.core.records import DiscoveryFailure, SchemaRecord
from routeforge.infrastructure.module_loader import FileModuleLoader
from routeforge.infrastructure.observability import get_structured_logger
from routeforge.services.discovery_scan import (
    DEFAULT_CHUNK_SIZE, list_candidates, log_scan_summary, scan_files,
)

_MISSING = object()


def resolve_schema(module: Any) -> Any:
    schema = getattr(module, "schema", _MISSING)
    if schema is _MISSING or schema is None:
        schema = getattr(module, "default", None)
    return schema


class SchemaDiscovery:
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
        self._schemas: dict[str, SchemaRecord] = {}
        self.failures: list[DiscoveryFailure] = []

    async def discover_schemas(self) -> dict[str, SchemaRecord]:
        suffixes = tuple(f"{SCHEMA_SUFFIX}{ext}" for ext in self.extensions)
        files = list_candidates(self.loader, self.api_path, suffixes, self.log, "schema")
        scan = await scan_files(files, self._process_file, self.chunk_size)
        self.failures = scan.failures

        self._schemas = {}
        for record in scan.records:
            existing = self._schemas.get(record.key)
            if existing is not None:
                self.log.warn(
                    {"schemaKey": record.key, "schemas": [existing.file_path, record.file_path]},
                    "Duplicate schema detected - using first schema found",
                )
                continue
            self._schemas[record.key] = record

        log_scan_summary(self.log, "schema", scan)
        return self._schemas

    async def _process_file(self, file_path: str) -> SchemaRecord | None:
        parsed = parse_schema_path(self.api_path, file_path, self.extensions)
        if parsed is None:
            self.log.debug({"filePath": file_path}, "Could not extract schema metadata")
            return None
        module_name, name = parsed

        module = await self.loader.load(file_path)
        schema = resolve_schema(module)
        if schema is None:
            self.log.warn({"filePath": file_path}, "Schema file does not export a schema")
            return None

        return SchemaRecord(
            name=name,
            module_name=module_name,
            file_path=file_path,
            validation_kind=infer_validation_kind(name),
            schema=schema,
        )

    def get_schema(self, module_name: str, name: str) -> SchemaRecord | None:
        return self._schemas.get(schema_key(module_name, name))

    def get_schemas_by_module(self, module_name: str) -> list[SchemaRecord]:
        return [s for s in self._schemas.values() if s.module_name == module_name]

    def get_all_schemas(self) -> dict[str, SchemaRecord]:
        return dict(self._schemas)
