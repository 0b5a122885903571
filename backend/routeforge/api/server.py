"""FastAPI Server Binding — implements ServerLike.register on top of a FastAPI app.

Invariants:
    - One endpoint per RouteDefinition; (method, path) pairs are unique per server
    - Middlewares run in order until one sends or halts the reply; the handler runs only
      when none did
    - Every response carries the x-request-id header
    - A body that is not valid JSON → 400 BAD_REQUEST envelope; the chain never runs
    - A chain that ends without sending → 500 NO_RESPONSE envelope

Design Decisions:
    - Endpoint takes the raw Starlette Request: the pipeline validates, not FastAPI
    - include_in_schema=False: generated API docs are out of scope
"""

import json
import time
import uuid
from typing import Any

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse

from routeforge.core.domain_types import BODYLESS_METHODS, HttpMethod
from routeforge.core.errors import RouteRegistrationError
from routeforge.core.protocols import LoggerLike, RouteDefinition
from routeforge.infrastructure.observability import get_structured_logger
from routeforge.pipeline.request import PipelineRequest, Reply
from routeforge.pipeline.response_orchestrator import (
    ResponseOrchestrator, default_response_orchestrator,
)
from routeforge.pipeline.responses import ErrorData

REQUEST_ID_HEADER = "x-request-id"


class InvalidJSONBody(ValueError):
    pass


async def _read_body(request: Request) -> Any:
    raw = await request.body()
    if not raw:
        return None
    try:
        return json.loads(raw)
    except ValueError as e:
        raise InvalidJSONBody(str(e)) from e


class FastAPIServer:
    """Server capability over FastAPI: the registrars' only view of the web framework."""

    def __init__(
        self,
        app: FastAPI,
        orchestrator: ResponseOrchestrator | None = None,
        log: LoggerLike | None = None,
    ):
        self.app = app
        self.orchestrator = orchestrator or default_response_orchestrator
        self.log = log or get_structured_logger(__name__)
        self.routes: list[tuple[str, str]] = []

    def register(self, route: RouteDefinition) -> None:
        method = HttpMethod(route.method).value
        key = (method, route.path)
        if key in self.routes:
            raise RouteRegistrationError(method, route.path, "route already registered")
        self.app.add_api_route(
            route.path,
            self._endpoint(route),
            methods=[method],
            include_in_schema=False,
        )
        self.routes.append(key)

    def has_route(self, method: str, path: str) -> bool:
        return (method.upper(), path) in self.routes

    def _endpoint(self, route: RouteDefinition):
        async def endpoint(request: Request) -> JSONResponse:
            started = time.perf_counter()
            pipeline_request = self._build_request(request)
            reply = Reply()
            self.log.info(
                {
                    "requestId": pipeline_request.id,
                    "method": pipeline_request.method,
                    "url": str(request.url.path),
                    "ip": pipeline_request.ip,
                    "userAgent": pipeline_request.headers.get("user-agent"),
                },
                "Incoming request",
            )

            body_ok = True
            if HttpMethod(pipeline_request.method) not in BODYLESS_METHODS:
                try:
                    pipeline_request.body = await _read_body(request)
                except InvalidJSONBody as e:
                    body_ok = False
                    self.orchestrator.send_bad_request(
                        reply, pipeline_request, "Invalid JSON body",
                        details={"reason": str(e)},
                    )

            if body_ok:
                await self._run_chain(route, pipeline_request, reply)

            response = JSONResponse(
                status_code=reply.status_code,
                content=jsonable_encoder(reply.payload),
                headers={**reply.headers, REQUEST_ID_HEADER: pipeline_request.id},
            )
            self.log.info(
                {
                    "requestId": pipeline_request.id,
                    "method": pipeline_request.method,
                    "url": str(request.url.path),
                    "statusCode": reply.status_code,
                    "responseTime": round((time.perf_counter() - started) * 1000, 2),
                },
                "Request completed",
            )
            return response

        return endpoint

    def _build_request(self, request: Request) -> PipelineRequest:
        return PipelineRequest(
            method=request.method.upper(),
            path=request.url.path,
            params=dict(request.path_params),
            query=dict(request.query_params),
            headers=dict(request.headers),
            ip=request.client.host if request.client else None,
            id=request.headers.get(REQUEST_ID_HEADER) or uuid.uuid4().hex[:13],
            log=self.log,
        )

    async def _run_chain(
        self, route: RouteDefinition, request: PipelineRequest, reply: Reply,
    ) -> None:
        for middleware in route.middlewares:
            await middleware(request, reply)
            if reply.halted:
                break
        else:
            await route.handler(request, reply)

        if not reply.sent:
            self.log.error(
                {"method": request.method, "url": request.path},
                "Route finished without sending a response",
            )
            self.orchestrator.send_error(reply, request, ErrorData(
                "NO_RESPONSE", "Route finished without sending a response",
                status_code=500,
            ))
