"""Validation Middleware — parses each request section against its schema.

Invariants:
    - Sections (body, query, params, headers) validated independently; absent (None)
      sections are skipped
    - All failing sections collected into one ValidationErrorSet before responding
    - Non-empty set: 400 VALIDATION_ERROR with details.validationErrors, or the
      on_validation_error hook owns the response; downstream never runs
    - Any non-validation exception: 500 VALIDATION_INTERNAL_ERROR, unless a hook
      already sent the reply, which then stands
    - Parsed values stored on request.validated[kind]

Design Decisions:
    - Schemas adapted once at middleware construction: unsupported schema objects fail
      route registration instead of every request
"""

import inspect
from dataclasses import dataclass, field
from typing import Any, Callable, Mapping

from routeforge.core.domain_types import ValidationKind
from routeforge.core.errors import SchemaValidationError
from routeforge.pipeline.request import PipelineRequest, Reply
from routeforge.pipeline.response_orchestrator import (
    ResponseOrchestrator, default_response_orchestrator,
)
from routeforge.pipeline.responses import ErrorData
from routeforge.pipeline.schema_adapter import as_schema

ValidationErrorSet = dict[str, list[str]]

# Section evaluation order
_SECTION_ORDER = (
    ValidationKind.BODY, ValidationKind.QUERY,
    ValidationKind.PARAMS, ValidationKind.HEADERS,
)


@dataclass
class ValidationOptions:
    custom_error_messages: dict[str, str] = field(default_factory=dict)
    on_validation_error: Callable[[ValidationErrorSet, PipelineRequest, Reply], Any] | None = None


def create_validation_middleware(
    schemas: Mapping[ValidationKind | str, Any],
    options: ValidationOptions | None = None,
    orchestrator: ResponseOrchestrator | None = None,
):
    opts = options or ValidationOptions()
    responder = orchestrator or default_response_orchestrator
    adapted = {
        ValidationKind(kind): as_schema(schema)
        for kind, schema in schemas.items() if schema is not None
    }
    ordered = [(kind, adapted[kind]) for kind in _SECTION_ORDER if kind in adapted]

    async def validation(request: PipelineRequest, reply: Reply) -> None:
        errors: ValidationErrorSet = {}
        try:
            for kind, schema in ordered:
                value = request.section(kind)
                if value is None:
                    continue
                try:
                    result = schema.parse(value)
                    if inspect.isawaitable(result):
                        result = await result
                    request.validated[kind] = result
                except SchemaValidationError as e:
                    errors[kind.value] = e.messages

            if not errors:
                return

            if opts.on_validation_error is not None:
                outcome = opts.on_validation_error(errors, request, reply)
                if inspect.isawaitable(outcome):
                    await outcome
                reply.halt()
                return

            responder.send_error(reply, request, ErrorData(
                "VALIDATION_ERROR",
                opts.custom_error_messages.get("validation", "Validation failed"),
                details={"validationErrors": errors},
                status_code=400,
            ))
        except Exception as e:
            if reply.sent:
                # A hook already answered before raising
                reply.halt()
                return
            responder.send_error(reply, request, ErrorData(
                "VALIDATION_INTERNAL_ERROR", "Internal validation error",
                details={"originalError": e}, status_code=500,
            ))

    return validation


def validate(
    schemas: Mapping[ValidationKind | str, Any],
    options: ValidationOptions | None = None,
):
    return create_validation_middleware(schemas, options)
