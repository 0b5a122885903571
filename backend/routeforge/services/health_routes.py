"""Health Routes — liveness and optional database probe, registered through the server capability.

Invariants:
    - GET /health always answers 200 with {status: "healthy", timestamp} while the process is up
    - GET /health/database registered only when a checker is supplied;
      status is "healthy" when connected, "unhealthy" otherwise
"""

from typing import Any, Awaitable, Callable

from routeforge.core.domain_types import HttpMethod
from routeforge.core.protocols import RouteDefinition, ServerLike
from routeforge.pipeline.request import PipelineRequest, Reply
from routeforge.schemas.envelope import SuccessEnvelope, now_ms

DatabaseChecker = Callable[[], Awaitable[dict[str, Any]]]


def _send(reply: Reply, data: dict[str, Any]) -> None:
    envelope = SuccessEnvelope(data=data, timestamp=now_ms())
    reply.send(200, envelope.to_wire())


async def register_health_routes(
    server: ServerLike, check_database: DatabaseChecker | None = None,
) -> None:
    async def health(request: PipelineRequest, reply: Reply) -> None:
        _send(reply, {"status": "healthy", "timestamp": now_ms()})

    server.register(RouteDefinition(HttpMethod.GET, "/health", health))

    if check_database is None:
        return

    async def database_health(request: PipelineRequest, reply: Reply) -> None:
        database = await check_database()
        _send(reply, {
            "status": "healthy" if database.get("connected") else "unhealthy",
            "timestamp": now_ms(),
            "database": database,
        })

    server.register(RouteDefinition(HttpMethod.GET, "/health/database", database_health))
