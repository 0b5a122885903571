"""Controller Invocation — the request-time boundary between the pipeline and a controller.

Invariants:
    - Input merges params + query for GET/DELETE, params + query + body otherwise
    - RequestContext built fresh per request: db handle, request logger, principal
    - Paginated routes unwrap {data, meta}; data falls back to the whole result
    - Any controller exception → 500 CONTROLLER_ERROR envelope, message preserved;
      the exception never crosses this boundary
"""

import inspect
from typing import Any, Mapping

from routeforge.core.domain_types import HttpMethod
from routeforge.core.naming import extract_input
from routeforge.core.protocols import RouteStep
from routeforge.core.records import ControllerHandler, RequestContext
from routeforge.infrastructure.observability import get_structured_logger
from routeforge.pipeline.request import PipelineRequest, Reply
from routeforge.pipeline.response_orchestrator import (
    ResponseOrchestrator, default_response_orchestrator,
)
from routeforge.pipeline.responses import ErrorData

_fallback_log = get_structured_logger(__name__)


def _unwrap_paginated(result: Any) -> tuple[Any, Any]:
    if isinstance(result, Mapping):
        data = result.get("data")
        return (result if data is None else data), result.get("meta")
    data = getattr(result, "data", None)
    return (result if data is None else data), getattr(result, "meta", None)


def create_controller_step(
    handler: ControllerHandler,
    method: HttpMethod,
    db: Any = None,
    paginated: bool = False,
    orchestrator: ResponseOrchestrator | None = None,
) -> RouteStep:
    responder = orchestrator or default_response_orchestrator

    async def invoke(request: PipelineRequest, reply: Reply) -> None:
        log = request.log or _fallback_log
        try:
            context = RequestContext(log=log, db=db, user=request.user)
            input_data = extract_input(method, request.params, request.query, request.body)

            result = handler(input_data, context)
            if inspect.isawaitable(result):
                result = await result

            if paginated:
                data, meta = _unwrap_paginated(result)
                await responder.send_paginated(reply, request, data, meta)
            else:
                await responder.send_success(reply, request, result)
        except Exception as e:
            log.error(
                {"error": {"name": type(e).__name__, "message": str(e)}},
                "Controller execution failed",
            )
            responder.send_error(reply, request, ErrorData(
                "CONTROLLER_ERROR", str(e) or "Internal server error",
                status_code=500,
            ))

    return invoke
