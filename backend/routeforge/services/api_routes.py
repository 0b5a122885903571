"""API Info & Route List — the root info endpoint and concurrent registrator fan-out."""

import asyncio
from typing import Any, Awaitable, Callable

from routeforge.core.domain_types import HttpMethod
from routeforge.core.protocols import RouteDefinition, ServerLike
from routeforge.pipeline.request import PipelineRequest, Reply
from routeforge.schemas.envelope import SuccessEnvelope, now_ms

RouteRegistrator = Callable[[Any], Awaitable[None]]


async def register_api_routes(server: ServerLike, name: str, version: str) -> None:
    """GET / → {message: name, version}."""

    async def api_info(request: PipelineRequest, reply: Reply) -> None:
        envelope = SuccessEnvelope(
            data={"message": name, "version": version}, timestamp=now_ms(),
        )
        reply.send(200, envelope.to_wire())

    server.register(RouteDefinition(HttpMethod.GET, "/", api_info))


async def register_routes(server: Any, registrators: list[RouteRegistrator]) -> None:
    """Run independent registration callbacks concurrently."""
    await asyncio.gather(*(register(server) for register in registrators))
