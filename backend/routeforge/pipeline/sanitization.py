"""Sanitization Middleware — applies DataSanitizer rules to outbound data per request.

Invariants:
    - Rules resolved per request from a SanitizationContext (role, path, method)
    - Any exception while resolving rules or sanitizing is logged, reported, handed to
      on_error, and the ORIGINAL data is returned; the request never fails here
    - Response-level rule order: global, then route-specific, then role-based

Design Decisions:
    - DataSanitizer (core/masking.py) stays pure and lets transformer errors propagate;
      this wrapper owns the graceful fallback
"""

from typing import Any, Awaitable, Callable

from routeforge.core.masking import (
    DataSanitizer, SanitizationConfig, SanitizationContext, SanitizationRule,
)
from routeforge.core.protocols import ErrorReporter
from routeforge.infrastructure.observability import (
    get_error_reporter, get_structured_logger,
)
from routeforge.pipeline.request import PipelineRequest

_fallback_log = get_structured_logger(__name__)

SanitizeStep = Callable[[PipelineRequest, Any], Awaitable[Any]]


def build_sanitization_context(request: PipelineRequest) -> SanitizationContext:
    role = getattr(request.user, "role", None)
    if role is None and isinstance(request.user, dict):
        role = request.user.get("role")
    return SanitizationContext(
        user_role=str(role) if role is not None else None,
        request_path=request.path,
        method=request.method,
        custom_context={"headers": request.headers, "ip": request.ip},
    )


def create_sanitization_middleware(
    get_rules: Callable[[SanitizationContext], list[SanitizationRule]],
    apply_to_nested: bool = True,
    preserve_array_structure: bool = True,
    on_error: Callable[[Exception, PipelineRequest], None] | None = None,
    reporter: ErrorReporter | None = None,
) -> SanitizeStep:
    """Build an async (request, data) -> sanitized data step."""
    error_reporter = reporter or get_error_reporter()

    async def sanitize(request: PipelineRequest, data: Any) -> Any:
        try:
            context = build_sanitization_context(request)
            config = SanitizationConfig(
                rules=get_rules(context),
                apply_to_nested=apply_to_nested,
                preserve_array_structure=preserve_array_structure,
            )
            return DataSanitizer(config, context).sanitize(data)
        except Exception as e:
            (request.log or _fallback_log).error(
                {
                    "method": request.method,
                    "url": request.path,
                    "error": {"name": type(e).__name__, "message": str(e)},
                },
                "Data sanitization error",
            )
            error_reporter.capture_exception(
                e,
                tags={"component": "sanitization-middleware"},
                extra={
                    "method": request.method,
                    "url": request.path,
                    "ip": request.ip,
                },
            )
            if on_error is not None:
                on_error(e, request)
            return data

    return sanitize


def create_response_sanitization_middleware(
    global_rules: list[SanitizationRule] | None = None,
    route_specific_rules: dict[str, list[SanitizationRule]] | None = None,
    role_based_rules: dict[str, list[SanitizationRule]] | None = None,
    reporter: ErrorReporter | None = None,
) -> SanitizeStep:
    def get_rules(context: SanitizationContext) -> list[SanitizationRule]:
        rules = list(global_rules or [])
        if route_specific_rules and context.request_path:
            rules.extend(route_specific_rules.get(context.request_path, []))
        if role_based_rules and context.user_role:
            rules.extend(role_based_rules.get(context.user_role, []))
        return rules

    return create_sanitization_middleware(get_rules, reporter=reporter)
