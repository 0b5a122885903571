"""Root conftest — shared fakes for the loader, server and logger capabilities.

Invariants:
    - FakeModuleLoader lists files in insertion order (the "directory listing order")
    - RecordingServer stores every RouteDefinition it receives
    - run_route drives a RouteDefinition the way the FastAPI binding does
"""

import os
from types import SimpleNamespace
from unittest.mock import MagicMock

import pytest

from routeforge.core.errors import ModuleLoadError
from routeforge.pipeline.request import PipelineRequest, Reply

# Keep settings-driven code away from a developer's real database
os.environ.setdefault("DATABASE_URL", "")


class FakeModuleLoader:
    """In-memory ModuleLoader: path -> module namespace, or an Exception to raise on load."""

    def __init__(self, modules=None, directories=None, unreadable=False):
        self.modules = dict(modules or {})
        self.directories = dict(directories or {})
        self.unreadable = unreadable
        self.loaded: list[str] = []

    def list_files(self, root, suffixes):
        if self.unreadable:
            raise PermissionError(f"Permission denied: {root}")
        return [
            path for path in self.modules
            if path.startswith(root.rstrip("/") + "/") and path.endswith(suffixes)
        ]

    def list_directories(self, root):
        if root not in self.directories:
            raise FileNotFoundError(f"No such directory: {root}")
        return list(self.directories[root])

    def exists(self, path):
        return path in self.modules

    async def load(self, path):
        self.loaded.append(path)
        value = self.modules[path]
        if isinstance(value, Exception):
            raise ModuleLoadError(path, str(value))
        return value


class RecordingServer:
    def __init__(self):
        self.routes = []

    def register(self, route):
        self.routes.append(route)

    def find(self, method, path):
        for route in self.routes:
            if route.method == method and route.path == path:
                return route
        return None


def module(**attrs):
    return SimpleNamespace(**attrs)


async def _run_route(route, request: PipelineRequest) -> Reply:
    reply = Reply()
    for middleware in route.middlewares:
        await middleware(request, reply)
        if reply.halted:
            return reply
    await route.handler(request, reply)
    return reply


@pytest.fixture
def fake_loader_cls():
    return FakeModuleLoader


@pytest.fixture
def make_module():
    return module


@pytest.fixture
def server():
    return RecordingServer()


@pytest.fixture
def log():
    """Logger capability double: every level is a MagicMock."""
    return MagicMock(spec=["debug", "info", "warn", "error"])


@pytest.fixture
def reporter():
    return MagicMock(spec=["add_breadcrumb", "capture_exception"])


@pytest.fixture
def run_route():
    return _run_route


@pytest.fixture
def make_request(log):
    def _make(method="GET", path="/", **kwargs):
        kwargs.setdefault("log", log)
        return PipelineRequest(method=method, path=path, **kwargs)
    return _make
