"""Authorization Middleware — resolves the principal, then checks role, permissions and custom rule.

Invariants:
    - No principal (None) → 401 UNAUTHORIZED, or on_unauthorized owns the response
    - Role outside config.roles, any missing required permission, or a custom validator
      returning authorized=False → 403 FORBIDDEN, or on_forbidden owns the response
    - A custom validator's own error wins over the configured forbidden error
    - Success attaches the principal to request.user and continues the chain
    - Any exception → reported, 500 AUTHORIZATION_ERROR; never propagates.
      A reply a hook sent before raising is kept

Design Decisions:
    - get_user_from_request may be sync or async: both awaited through inspect.isawaitable
"""

import inspect
from dataclasses import dataclass, field
from typing import Any, Callable

from routeforge.core.protocols import ErrorReporter
from routeforge.infrastructure.observability import (
    get_error_reporter, get_structured_logger,
)
from routeforge.pipeline.request import PipelineRequest, Reply
from routeforge.pipeline.response_orchestrator import (
    ResponseOrchestrator, default_response_orchestrator,
)
from routeforge.pipeline.responses import ErrorData

_fallback_log = get_structured_logger(__name__)


@dataclass
class AuthorizedUser:
    id: str | int
    role: str
    permissions: list[str] | None = None
    metadata: dict[str, Any] = field(default_factory=dict)


@dataclass
class AuthorizationError:
    code: str
    message: str
    user_message: str | None = None
    details: dict[str, Any] | None = None


@dataclass
class AuthorizationResult:
    authorized: bool
    error: AuthorizationError | None = None


@dataclass
class AuthorizationContext:
    method: str
    path: str
    headers: dict[str, str]
    ip: str | None = None
    params: dict[str, Any] | None = None
    query: dict[str, Any] | None = None


DEFAULT_UNAUTHORIZED = AuthorizationError(
    "UNAUTHORIZED", "Authentication required",
    "Please log in to access this resource",
)
DEFAULT_FORBIDDEN = AuthorizationError(
    "FORBIDDEN", "Insufficient permissions",
    "You don't have permission to access this resource",
)

UserAccessor = Callable[[PipelineRequest], Any]
FailureHook = Callable[[PipelineRequest, Reply, AuthorizationError], Any]


@dataclass
class AuthorizationConfig:
    roles: list[str]
    get_user_from_request: UserAccessor
    permissions: list[str] | None = None
    on_unauthorized: FailureHook | None = None
    on_forbidden: FailureHook | None = None
    unauthorized_error: AuthorizationError | None = None
    forbidden_error: AuthorizationError | None = None
    custom_validator: Callable[[AuthorizedUser, AuthorizationContext], AuthorizationResult] | None = None


async def _maybe_await(value: Any) -> Any:
    if inspect.isawaitable(value):
        return await value
    return value


def _has_permissions(user: AuthorizedUser, required: list[str] | None) -> bool:
    if not required:
        return True
    granted = set(user.permissions or ())
    return all(perm in granted for perm in required)


def create_authorization_middleware(
    config: AuthorizationConfig,
    orchestrator: ResponseOrchestrator | None = None,
    reporter: ErrorReporter | None = None,
):
    responder = orchestrator or default_response_orchestrator
    error_reporter = reporter or get_error_reporter()

    async def authorization(request: PipelineRequest, reply: Reply) -> None:
        log = request.log or _fallback_log
        request_info = {
            "method": request.method,
            "url": request.path,
            "ip": request.ip,
        }
        try:
            context = AuthorizationContext(
                method=request.method, path=request.path,
                headers=request.headers, ip=request.ip,
                params=request.params, query=request.query,
            )
            user = await _maybe_await(config.get_user_from_request(request))

            if user is None:
                log.error(
                    {**request_info, "userAgent": request.headers.get("user-agent")},
                    "Unauthorized access attempt - no user found",
                )
                error_reporter.add_breadcrumb(
                    "Unauthorized access attempt", level="warning", data=request_info,
                )
                failure = config.unauthorized_error or DEFAULT_UNAUTHORIZED
                if config.on_unauthorized is not None:
                    await _maybe_await(config.on_unauthorized(request, reply, failure))
                    reply.halt()
                    return
                responder.send_error(reply, request, ErrorData(
                    "UNAUTHORIZED", failure.message, failure.user_message,
                    status_code=401,
                ))
                return

            custom_result = None
            if config.custom_validator is not None:
                custom_result = config.custom_validator(user, context)

            authorized = (
                user.role in config.roles
                and _has_permissions(user, config.permissions)
                and not (custom_result is not None and custom_result.authorized is False)
            )

            if not authorized:
                log.error(
                    {
                        **request_info,
                        "userRole": user.role,
                        "userPermissions": user.permissions,
                        "requiredRoles": config.roles,
                        "requiredPermissions": config.permissions,
                        "userId": user.id,
                        "customValidationFailed": (
                            custom_result is not None and not custom_result.authorized
                        ),
                    },
                    "Forbidden access attempt - insufficient permissions",
                )
                error_reporter.add_breadcrumb(
                    "Forbidden access attempt", level="warning",
                    data={**request_info, "userRole": user.role, "userId": user.id},
                )
                failure = (
                    (custom_result.error if custom_result is not None else None)
                    or config.forbidden_error or DEFAULT_FORBIDDEN
                )
                if config.on_forbidden is not None:
                    await _maybe_await(config.on_forbidden(request, reply, failure))
                    reply.halt()
                    return
                responder.send_error(reply, request, ErrorData(
                    "FORBIDDEN", failure.message, failure.user_message,
                    status_code=403,
                ))
                return

            request.user = user
            log.info(
                {**request_info, "userRole": user.role, "userId": user.id},
                "Authorization successful",
            )
        except Exception as e:
            log.error(
                {**request_info, "error": {"name": type(e).__name__, "message": str(e)}},
                "Authorization middleware error",
            )
            error_reporter.capture_exception(
                e, tags={"component": "authorization-middleware"}, extra=request_info,
            )
            if reply.sent:
                reply.halt()
                return
            responder.send_error(reply, request, ErrorData(
                "AUTHORIZATION_ERROR", "Authorization check failed",
                details={"originalError": e}, status_code=500,
            ))

    return authorization


def authorize(
    roles: list[str],
    get_user_from_request: UserAccessor,
    permissions: list[str] | None = None,
    unauthorized_message: tuple[str, str | None] | None = None,
    forbidden_message: tuple[str, str | None] | None = None,
    custom_validator: Callable[[AuthorizedUser, AuthorizationContext], AuthorizationResult] | None = None,
    on_unauthorized: FailureHook | None = None,
    on_forbidden: FailureHook | None = None,
):
    """Shortcut: build an AuthorizationConfig from keyword options and wrap it."""
    config = AuthorizationConfig(
        roles=roles,
        get_user_from_request=get_user_from_request,
        permissions=permissions,
        on_unauthorized=on_unauthorized,
        on_forbidden=on_forbidden,
        custom_validator=custom_validator,
    )
    if unauthorized_message:
        config.unauthorized_error = AuthorizationError(
            "UNAUTHORIZED", unauthorized_message[0], unauthorized_message[1],
        )
    if forbidden_message:
        config.forbidden_error = AuthorizationError(
            "FORBIDDEN", forbidden_message[0], forbidden_message[1],
        )
    return create_authorization_middleware(config)
