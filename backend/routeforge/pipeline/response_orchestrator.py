"""Response Orchestrator — sanitize-then-envelope for success, straight envelope for errors.

Invariants:
    - Success and paginated data pass through sanitization when configured,
      unless skip_sanitization is set
    - Errors are never sanitized
    - default_response_orchestrator has no sanitization rules

Design Decisions:
    - Orchestrator composes ResponseBuilder + sanitization step; registrars only talk to it
"""

from dataclasses import dataclass, field
from typing import Any

from routeforge.core.masking import SanitizationRule
from routeforge.core.protocols import ErrorReporter
from routeforge.pipeline.request import PipelineRequest, Reply
from routeforge.pipeline.responses import ErrorData, ResponseBuilder
from routeforge.pipeline.sanitization import (
    SanitizeStep, create_response_sanitization_middleware,
)


@dataclass
class SanitizationRules:
    global_rules: list[SanitizationRule] = field(default_factory=list)
    route_specific_rules: dict[str, list[SanitizationRule]] = field(default_factory=dict)
    role_based_rules: dict[str, list[SanitizationRule]] = field(default_factory=dict)


class ResponseOrchestrator:
    def __init__(
        self,
        sanitization: SanitizationRules | None = None,
        builder: ResponseBuilder | None = None,
        reporter: ErrorReporter | None = None,
    ):
        self.builder = builder or ResponseBuilder(reporter=reporter)
        self._sanitize: SanitizeStep | None = None
        if sanitization is not None:
            self._sanitize = create_response_sanitization_middleware(
                sanitization.global_rules,
                sanitization.route_specific_rules,
                sanitization.role_based_rules,
                reporter=reporter,
            )

    async def _prepare(
        self, request: PipelineRequest, data: Any, skip_sanitization: bool,
    ) -> Any:
        if self._sanitize is None or skip_sanitization:
            return data
        return await self._sanitize(request, data)

    async def send_success(
        self, reply: Reply, request: PipelineRequest, data: Any,
        status_code: int = 200, meta: Any = None,
        skip_sanitization: bool = False,
    ) -> None:
        data = await self._prepare(request, data, skip_sanitization)
        self.builder.success(reply, request, data, meta=meta, status_code=status_code)

    async def send_paginated(
        self, reply: Reply, request: PipelineRequest, data: list, meta: Any,
        status_code: int = 200, skip_sanitization: bool = False,
    ) -> None:
        data = await self._prepare(request, data, skip_sanitization)
        self.builder.paginated(reply, request, data, meta, status_code=status_code)

    def send_error(
        self, reply: Reply, request: PipelineRequest, error: ErrorData,
        status_code: int | None = None,
    ) -> None:
        self.builder.error(reply, request, error, status_code)

    def send_unauthorized(self, reply, request, message=None, user_message=None) -> None:
        self.builder.unauthorized(reply, request, message, user_message)

    def send_forbidden(self, reply, request, message=None, user_message=None) -> None:
        self.builder.forbidden(reply, request, message, user_message)

    def send_not_found(self, reply, request, message=None, user_message=None) -> None:
        self.builder.not_found(reply, request, message, user_message)

    def send_bad_request(
        self, reply, request, message=None, user_message=None, details=None,
    ) -> None:
        self.builder.bad_request(reply, request, message, user_message, details)

    def send_validation_error(
        self, reply, request, validation_errors, user_message=None,
    ) -> None:
        self.builder.validation_error(reply, request, validation_errors, user_message)

    def send_internal_error(self, reply, request, exc, user_message=None) -> None:
        self.builder.internal_error(reply, request, exc, user_message)


default_response_orchestrator = ResponseOrchestrator()
