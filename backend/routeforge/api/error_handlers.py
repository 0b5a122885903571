"""Error Handlers — global exception handlers for anything that escapes the pipeline.

Invariants:
    - RouteForgeError → its own failure envelope (category, severity) and http_status
    - RequestValidationError → 400 VALIDATION_ERROR with details.validationErrors
    - Exception (catch-all) → 500 INTERNAL_ERROR, never leaks internal details
    - Validation and catch-all bodies are built by the pipeline's ResponseBuilder,
      so they carry the same requestId/timestamp fields as in-pipeline errors

Design Decisions:
    - Three-layer handler: domain (RouteForgeError), validation (Pydantic), catch-all (Exception)
    - Handlers log through stdlib logging only: the builder's own response logging and
      error reporting stay off so one failure is logged once
"""

import logging
import uuid

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from routeforge.api.server import REQUEST_ID_HEADER
from routeforge.core.errors import RouteForgeError
from routeforge.pipeline.request import PipelineRequest
from routeforge.pipeline.responses import ErrorData, ResponseBuilder

logger = logging.getLogger(__name__)

_builder = ResponseBuilder(log_responses=False, report_errors=False)


def register_error_handlers(app: FastAPI) -> None:
    """Register all global error handlers on the FastAPI app."""
    _register_domain_error_handler(app)
    _register_validation_error_handler(app)
    _register_generic_error_handler(app)


def _pipeline_request(request: Request) -> PipelineRequest:
    return PipelineRequest(
        method=request.method.upper(),
        path=request.url.path,
        id=request.headers.get(REQUEST_ID_HEADER) or uuid.uuid4().hex[:13],
    )


def _envelope_response(request: Request, error: ErrorData) -> JSONResponse:
    pipeline_request = _pipeline_request(request)
    envelope = _builder.build_error(pipeline_request, error)
    return JSONResponse(
        status_code=error.status_code,
        content=envelope.to_wire(),
        headers={REQUEST_ID_HEADER: pipeline_request.id},
    )


def _register_domain_error_handler(app: FastAPI) -> None:

    @app.exception_handler(RouteForgeError)
    async def routeforge_error_handler(request: Request, exc: RouteForgeError):
        logger.error(
            f"RouteForgeError: {exc.message}",
            extra={"error_code": exc.code, "path": request.url.path},
        )
        return JSONResponse(
            status_code=exc.http_status, content=exc.to_response(),
        )


def _register_validation_error_handler(app: FastAPI) -> None:

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(
        request: Request, exc: RequestValidationError,
    ):
        logger.warning(f"Request validation failed on {request.url.path}: {exc.errors()}")
        return _envelope_response(request, ErrorData(
            "VALIDATION_ERROR", "Invalid request data",
            details={"validationErrors": [
                {
                    "field": ".".join(str(loc) for loc in e["loc"]),
                    "message": e["msg"],
                    "type": e["type"],
                }
                for e in exc.errors()
            ]},
            status_code=status.HTTP_400_BAD_REQUEST,
        ))


def _register_generic_error_handler(app: FastAPI) -> None:

    @app.exception_handler(Exception)
    async def generic_error_handler(request: Request, exc: Exception):
        """Catch-all — never leaks internal details."""
        logger.error(
            f"Unhandled exception on {request.url.path}: {exc}",
            exc_info=True,
        )
        return _envelope_response(request, ErrorData(
            "INTERNAL_ERROR", "An unexpected error occurred",
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        ))
