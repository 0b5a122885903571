"""Manual Route Registry — priority-ordered imperative registration callbacks.

Invariants:
    - add_route is synchronous; a duplicate id raises DuplicateRouteIdError and leaves
      the registry unchanged
    - A missing or None priority is stored as 0
    - register_all processes priority tiers strictly highest-first; tier n resolves
      completely before tier n-1 starts
    - Within a tier: batches of min(len(tier), max_concurrency) gathered together,
      each batch resolving before the next; a single-entry tier is awaited directly
    - Any callback failure fails register_all; earlier callbacks are not rolled back
    - State: EMPTY → POPULATED → REGISTERING → REGISTERED | FAILED; clear() → EMPTY

Design Decisions:
    - Constructible registry plus one lazily created process-wide default
      (get_manual_route_registry); tests build private instances
"""

import asyncio
import dataclasses
import inspect
import os
import time
from itertools import groupby
from typing import Any, Mapping

from routeforge.core.domain_types import RegistryState
from routeforge.core.errors import DuplicateRouteIdError
from routeforge.core.protocols import LoggerLike
from routeforge.core.records import ManualRouteEntry
from routeforge.infrastructure.observability import get_structured_logger


class ManualRouteRegistry:
    def __init__(
        self,
        max_concurrency: int | None = None,
        enable_profiling: bool = False,
        log: LoggerLike | None = None,
    ):
        self.max_concurrency = max(1, max_concurrency or os.cpu_count() or 1)
        self.enable_profiling = enable_profiling
        self.log = log or get_structured_logger(__name__)
        self._routes: list[ManualRouteEntry] = []
        self._ids: set[str] = set()
        self.state = RegistryState.EMPTY

    def add_route(self, route: ManualRouteEntry | Mapping[str, Any]) -> None:
        entry = route if isinstance(route, ManualRouteEntry) else ManualRouteEntry(**route)
        if entry.priority is None:
            entry = dataclasses.replace(entry, priority=0)
        if entry.id in self._ids:
            raise DuplicateRouteIdError(entry.id)
        self._routes.append(entry)
        self._ids.add(entry.id)
        if self.state != RegistryState.REGISTERING:
            self.state = RegistryState.POPULATED

    def add_routes(self, routes: list[ManualRouteEntry | Mapping[str, Any]]) -> None:
        for route in routes:
            self.add_route(route)

    @property
    def route_count(self) -> int:
        return len(self._routes)

    def has_route(self, route_id: str) -> bool:
        return route_id in self._ids

    def route_ids(self) -> list[str]:
        """Ids in priority order (highest first)."""
        return [entry.id for entry in self._sorted()]

    def clear(self) -> None:
        self._routes = []
        self._ids.clear()
        self.state = RegistryState.EMPTY

    def _sorted(self) -> list[ManualRouteEntry]:
        # sorted() is stable: same-priority entries keep insertion order
        return sorted(self._routes, key=lambda entry: entry.priority, reverse=True)

    def priority_tiers(self) -> list[list[ManualRouteEntry]]:
        return [
            list(tier)
            for _priority, tier in groupby(self._sorted(), key=lambda entry: entry.priority)
        ]

    async def register_all(self, server: Any) -> None:
        if not self._routes:
            return

        started = time.perf_counter()
        self.state = RegistryState.REGISTERING
        try:
            for tier in self.priority_tiers():
                await self._register_tier(server, tier)
        except Exception:
            self.state = RegistryState.FAILED
            raise
        self.state = RegistryState.REGISTERED

        if self.enable_profiling:
            elapsed = round((time.perf_counter() - started) * 1000, 2)
            self.log.info(
                {"durationMs": elapsed, "count": len(self._routes)},
                f"Manual routes registered in {elapsed}ms",
            )

    async def _register_tier(self, server: Any, tier: list[ManualRouteEntry]) -> None:
        if len(tier) == 1:
            await _call_register(tier[0], server)
            return
        batch_size = min(len(tier), self.max_concurrency)
        for start in range(0, len(tier), batch_size):
            batch = tier[start:start + batch_size]
            await asyncio.gather(*(_call_register(entry, server) for entry in batch))


async def _call_register(entry: ManualRouteEntry, server: Any) -> None:
    result = entry.register(server)
    if inspect.isawaitable(result):
        await result


# ─── Process-wide default registry ──────────────────────────────

_global_registry: ManualRouteRegistry | None = None


def get_manual_route_registry(
    max_concurrency: int | None = None, enable_profiling: bool = False,
) -> ManualRouteRegistry:
    """Return the shared registry, creating it on first use (later options ignored)."""
    global _global_registry
    if _global_registry is None:
        _global_registry = ManualRouteRegistry(max_concurrency, enable_profiling)
    return _global_registry


def add_manual_route(route: ManualRouteEntry | Mapping[str, Any]) -> None:
    get_manual_route_registry().add_route(route)


def add_manual_routes(routes: list[ManualRouteEntry | Mapping[str, Any]]) -> None:
    get_manual_route_registry().add_routes(routes)


async def register_all_manual_routes(
    server: Any, max_concurrency: int | None = None, enable_profiling: bool = False,
) -> None:
    registry = get_manual_route_registry(max_concurrency, enable_profiling)
    await registry.register_all(server)


def clear_global_registry() -> None:
    global _global_registry
    if _global_registry is not None:
        _global_registry.clear()
    _global_registry = None
