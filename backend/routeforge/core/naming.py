"""Naming Conventions — pure parsing of discovery paths and HTTP method inference.

Invariants:
    - Only paths shaped {module}/{folder}/{name}-{suffix}{ext} relative to the root parse;
      anything else returns None (skipped, never an error)
    - Catalog keys: controllers "/{module}/{name}", schemas "{module}/{name}"
    - Method inference is a case-insensitive prefix match with a caller-supplied default
    - GET/DELETE input merges params + query; other methods also merge the body

Design Decisions:
    - Prefix table over if-chains: adding a verb prefix is one tuple entry
"""

import re
from pathlib import PurePosixPath
from typing import Any, Mapping

from routeforge.core.domain_types import (
    BODYLESS_METHODS, HttpMethod, RoutePath, SchemaKey, ValidationKind,
)


CONTROLLERS_FOLDER = "controllers"
SCHEMAS_FOLDER = "schemas"
CONTROLLER_SUFFIX = "-controller"
SCHEMA_SUFFIX = "-schema"
# Source files and their compiled siblings both count as convention files
MODULE_EXTENSIONS = (".py", ".pyc")

_TRAILING_ROUTES = re.compile(r"([/\\])routes$")

# Checked in order; first matching prefix wins
_METHOD_PREFIXES: tuple[tuple[tuple[str, ...], HttpMethod], ...] = (
    (("create", "add"), HttpMethod.POST),
    (("update", "edit"), HttpMethod.PUT),
    (("delete", "remove"), HttpMethod.DELETE),
    (("get", "list", "find"), HttpMethod.GET),
)

_SCHEMA_PROBE_SUFFIXES = ("", "-body", "-params", "-query", "-headers")


def _to_posix(path: str) -> str:
    return path.replace("\\", "/")


def parse_convention_path(
    root: str, file_path: str, folder: str, suffix: str,
    extensions: tuple[str, ...],
) -> tuple[str, str] | None:
    """Return (module_name, name) for a convention-shaped path, else None."""
    try:
        relative = PurePosixPath(_to_posix(file_path)).relative_to(
            PurePosixPath(_to_posix(root)),
        )
    except ValueError:
        return None

    parts = relative.parts
    if len(parts) != 3:
        return None
    module_name, folder_name, file_name = parts
    if not module_name or folder_name != folder:
        return None

    stem = _strip_extension(file_name, extensions)
    if stem is None or not stem.endswith(suffix):
        return None
    name = stem[: -len(suffix)]
    if not name:
        return None
    return module_name, name


def _strip_extension(file_name: str, extensions: tuple[str, ...]) -> str | None:
    for ext in extensions:
        if file_name.endswith(ext):
            return file_name[: -len(ext)]
    return None


def parse_controller_path(
    root: str, file_path: str, extensions: tuple[str, ...] = (".py",),
) -> tuple[str, str] | None:
    return parse_convention_path(
        root, file_path, CONTROLLERS_FOLDER, CONTROLLER_SUFFIX, extensions,
    )


def parse_schema_path(
    root: str, file_path: str, extensions: tuple[str, ...] = (".py",),
) -> tuple[str, str] | None:
    return parse_convention_path(
        root, file_path, SCHEMAS_FOLDER, SCHEMA_SUFFIX, extensions,
    )


def controller_route_path(module_name: str, name: str) -> RoutePath:
    return RoutePath(f"/{module_name}/{name}")


def schema_key(module_name: str, name: str) -> SchemaKey:
    return SchemaKey(f"{module_name}/{name}")


def infer_validation_kind(schema_name: str) -> ValidationKind:
    """Classify a schema by substrings of its name; body when nothing matches."""
    if "param" in schema_name:
        return ValidationKind.PARAMS
    if "query" in schema_name:
        return ValidationKind.QUERY
    if "header" in schema_name:
        return ValidationKind.HEADERS
    return ValidationKind.BODY


def infer_http_method(
    controller_name: str, default: HttpMethod | str = HttpMethod.GET,
) -> HttpMethod:
    name = controller_name.lower()
    for prefixes, method in _METHOD_PREFIXES:
        if name.startswith(prefixes):
            return method
    return HttpMethod(str(getattr(default, "value", default)).upper())


def schema_probe_keys(module_name: str, controller_name: str) -> list[SchemaKey]:
    """Conventional schema keys probed for one controller, in probe order."""
    return [
        schema_key(module_name, f"{controller_name}{suffix}")
        for suffix in _SCHEMA_PROBE_SUFFIXES
    ]


def derive_controllers_root(routes_root: str, override: str | None = None) -> str:
    """Replace the trailing 'routes' segment with 'controllers' unless overridden."""
    if override:
        return override
    return _TRAILING_ROUTES.sub(r"\1controllers", routes_root.rstrip("/\\"))


def extract_input(
    method: HttpMethod | str,
    params: Mapping[str, Any] | None,
    query: Mapping[str, Any] | None,
    body: Any = None,
) -> dict[str, Any]:
    """Merge request sections into one controller input dict."""
    merged: dict[str, Any] = {**(params or {}), **(query or {})}
    if HttpMethod(str(getattr(method, "value", method)).upper()) in BODYLESS_METHODS:
        return merged
    if isinstance(body, Mapping):
        merged.update(body)
    return merged
