"""Filesystem Module Loader — enumerates convention files and imports them by path.

Invariants:
    - list_files() is recursive and sorted (deterministic "first found" order)
    - list_files()/list_directories() raise OSError when the root is not a readable directory
    - load() imports a fresh module on every call and raises ModuleLoadError on any failure
    - .pyc paths load through the sourceless loader, everything else as source

Design Decisions:
    - Imports run in a worker thread: every file load is a suspension point for the event loop
    - Synthetic module names keyed by absolute path, registered in sys.modules during exec
      so dataclasses/pydantic in the loaded file can resolve their own module
"""

import asyncio
import hashlib
import importlib.machinery
import importlib.util
import logging
import os
import sys
from pathlib import Path
from types import ModuleType

from routeforge.core.errors import ModuleLoadError

logger = logging.getLogger(__name__)

_MODULE_PREFIX = "routeforge_loaded"


def _module_name_for(path: Path) -> str:
    digest = hashlib.sha1(str(path).encode("utf-8")).hexdigest()[:12]
    stem = "".join(c if c.isalnum() else "_" for c in path.stem)
    return f"{_MODULE_PREFIX}.{stem}_{digest}"


class FileModuleLoader:
    """ModuleLoader backed by the local filesystem and importlib."""

    def list_files(self, root: str, suffixes: tuple[str, ...]) -> list[str]:
        base = Path(root)
        if not base.is_dir():
            raise NotADirectoryError(f"Not a directory: {root}")
        found = []
        for dirpath, _dirnames, filenames in os.walk(base, onerror=_raise):
            for filename in filenames:
                if filename.endswith(suffixes):
                    found.append(str(Path(dirpath) / filename))
        return sorted(found)

    def list_directories(self, root: str) -> list[str]:
        base = Path(root)
        if not base.is_dir():
            raise NotADirectoryError(f"Not a directory: {root}")
        return sorted(
            entry.name for entry in base.iterdir()
            if entry.is_dir() and not entry.name.startswith(("_", "."))
        )

    def exists(self, path: str) -> bool:
        return Path(path).is_file()

    async def load(self, path: str) -> ModuleType:
        return await asyncio.to_thread(self._load_sync, path)

    def _load_sync(self, path: str) -> ModuleType:
        resolved = Path(path).resolve()
        if not resolved.is_file():
            raise ModuleLoadError(str(path), "file does not exist")

        name = _module_name_for(resolved)
        if resolved.suffix == ".pyc":
            loader = importlib.machinery.SourcelessFileLoader(name, str(resolved))
            spec = importlib.util.spec_from_loader(name, loader)
        else:
            spec = importlib.util.spec_from_file_location(name, resolved)
        if spec is None or spec.loader is None:
            raise ModuleLoadError(str(path), "no import spec for file")

        module = importlib.util.module_from_spec(spec)
        module.__file__ = str(resolved)
        sys.modules[name] = module
        try:
            spec.loader.exec_module(module)
        except Exception as e:
            sys.modules.pop(name, None)
            logger.debug(f"Import failed for {resolved}: {e}", exc_info=True)
            raise ModuleLoadError(str(path), f"{type(e).__name__}: {e}") from e
        return module


def _raise(error: OSError) -> None:
    raise error
