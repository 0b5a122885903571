"""Response Builder — turns data or structured errors into envelopes on the Reply.

Invariants:
    - Success defaults to 200; errors use the explicit status, else error.status_code, else 500
    - Error responses < 500 logged at warn, >= 500 at error
    - >= 500 responses add an error-reporter breadcrumb; an exception found in
      details["originalError"] is also captured
    - details["originalError"] never reaches the wire; stack traces only in development

Design Decisions:
    - ErrorData dataclass mirrors the failure envelope's error object plus its HTTP status
"""

import traceback
from dataclasses import dataclass
from typing import Any

from routeforge.core.protocols import ErrorReporter, LoggerLike
from routeforge.infrastructure.observability import (
    get_error_reporter, get_structured_logger,
)
from routeforge.pipeline.request import PipelineRequest, Reply
from routeforge.schemas.envelope import (
    ErrorBody, ErrorEnvelope, SuccessEnvelope, now_ms,
)

_fallback_log = get_structured_logger(__name__)


@dataclass
class ErrorData:
    code: str
    message: str
    user_message: str | None = None
    details: dict[str, Any] | None = None
    status_code: int = 500


class ResponseBuilder:
    """Builds success/error envelopes and sends them through a Reply."""

    def __init__(
        self,
        include_request_id: bool = True,
        include_timestamp: bool = True,
        log_responses: bool = True,
        report_errors: bool = True,
        reporter: ErrorReporter | None = None,
        environment: str = "production",
    ):
        self.include_request_id = include_request_id
        self.include_timestamp = include_timestamp
        self.log_responses = log_responses
        self.report_errors = report_errors
        self.reporter = reporter or get_error_reporter()
        self.environment = environment

    def _common(self, request: PipelineRequest) -> dict[str, Any]:
        fields: dict[str, Any] = {}
        if self.include_timestamp:
            fields["timestamp"] = now_ms()
        if self.include_request_id and request.id:
            fields["request_id"] = request.id
        return fields

    @staticmethod
    def _log(request: PipelineRequest) -> LoggerLike:
        return request.log or _fallback_log

    # ─── Success ────────────────────────────────────────────────

    def build_success(
        self, request: PipelineRequest, data: Any, meta: Any = None,
    ) -> SuccessEnvelope:
        fields = self._common(request)
        if meta is not None:
            fields["meta"] = meta
        return SuccessEnvelope(success=True, data=data, **fields)

    def success(
        self, reply: Reply, request: PipelineRequest, data: Any,
        meta: Any = None, status_code: int = 200,
    ) -> None:
        envelope = self.build_success(request, data, meta)
        if self.log_responses:
            self._log(request).info(
                {
                    "method": request.method,
                    "url": request.path,
                    "statusCode": status_code,
                    "responseDataType": type(data).__name__,
                    "hasMetadata": meta is not None,
                    "requestId": request.id,
                },
                "Successful response sent",
            )
        reply.send(status_code, envelope.to_wire())

    def paginated(
        self, reply: Reply, request: PipelineRequest, data: list,
        meta: Any, status_code: int = 200,
    ) -> None:
        self.success(reply, request, data, meta=meta, status_code=status_code)

    # ─── Errors ─────────────────────────────────────────────────

    def build_error(
        self, request: PipelineRequest, error: ErrorData,
    ) -> ErrorEnvelope:
        body: dict[str, Any] = {"code": error.code, "message": error.message}
        if error.user_message is not None:
            body["user_message"] = error.user_message
        wire_details = {
            k: v for k, v in (error.details or {}).items()
            if k != "originalError" and v is not None
        }
        if wire_details:
            body["details"] = wire_details
        return ErrorEnvelope(
            success=False, error=ErrorBody(**body), **self._common(request),
        )

    def error(
        self, reply: Reply, request: PipelineRequest, error: ErrorData,
        status_code: int | None = None,
    ) -> None:
        final_status = status_code or error.status_code or 500
        envelope = self.build_error(request, error)

        if self.log_responses:
            log_data = {
                "method": request.method,
                "url": request.path,
                "statusCode": final_status,
                "errorCode": error.code,
                "errorMessage": error.message,
                "userMessage": error.user_message,
                "requestId": request.id,
            }
            if final_status >= 500:
                self._log(request).error(log_data, "Error response sent")
            else:
                self._log(request).warn(log_data, "Error response sent")

        if self.report_errors and final_status >= 500:
            self.reporter.add_breadcrumb(
                "Server error response", level="error",
                data={
                    "method": request.method,
                    "url": request.path,
                    "statusCode": final_status,
                    "errorCode": error.code,
                    "errorMessage": error.message,
                    "requestId": request.id,
                },
            )
            original = (error.details or {}).get("originalError")
            if isinstance(original, BaseException):
                self.reporter.capture_exception(original)

        reply.send(final_status, envelope.to_wire())

    def unauthorized(
        self, reply: Reply, request: PipelineRequest,
        message: str | None = None, user_message: str | None = None,
    ) -> None:
        self.error(reply, request, ErrorData(
            "UNAUTHORIZED", message or "Authentication required",
            user_message or "Please log in to access this resource",
            status_code=401,
        ))

    def forbidden(
        self, reply: Reply, request: PipelineRequest,
        message: str | None = None, user_message: str | None = None,
    ) -> None:
        self.error(reply, request, ErrorData(
            "FORBIDDEN", message or "Insufficient permissions",
            user_message or "You don't have permission to access this resource",
            status_code=403,
        ))

    def not_found(
        self, reply: Reply, request: PipelineRequest,
        message: str | None = None, user_message: str | None = None,
    ) -> None:
        self.error(reply, request, ErrorData(
            "NOT_FOUND", message or "Resource not found",
            user_message or "The requested resource was not found",
            status_code=404,
        ))

    def bad_request(
        self, reply: Reply, request: PipelineRequest,
        message: str | None = None, user_message: str | None = None,
        details: dict | None = None,
    ) -> None:
        self.error(reply, request, ErrorData(
            "BAD_REQUEST", message or "Invalid request",
            user_message or "Please check your request and try again",
            details, status_code=400,
        ))

    def validation_error(
        self, reply: Reply, request: PipelineRequest,
        validation_errors: dict[str, list[str]], user_message: str | None = None,
    ) -> None:
        self.error(reply, request, ErrorData(
            "VALIDATION_ERROR", "Request validation failed",
            user_message or "Please correct the errors and try again",
            {"validationErrors": validation_errors}, status_code=422,
        ))

    def internal_error(
        self, reply: Reply, request: PipelineRequest, exc: BaseException,
        user_message: str | None = None,
    ) -> None:
        stack = None
        if self.environment == "development":
            stack = "".join(traceback.format_exception(exc))
        self.error(reply, request, ErrorData(
            "INTERNAL_ERROR", str(exc),
            user_message or "An unexpected error occurred. Please try again later",
            {"originalError": exc, "stack": stack}, status_code=500,
        ))
