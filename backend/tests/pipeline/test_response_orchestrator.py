"""Response Builder & Orchestrator — tests for envelopes, logging levels and reporting.

Tests cover:
    - success() → parse_envelope recovers data unchanged; requestId and timestamp present
    - error(..., 404) → {success: false, error: {code, message}} with status 404
    - < 500 logged at warn; >= 500 at error with breadcrumb and exception capture
    - originalError never reaches the wire; stack only in development
    - Helper responses (unauthorized, not_found, validation_error 422)
    - Orchestrator sanitizes success data unless skipped, never errors
    - Paginated responses carry meta
"""

import pytest

from routeforge.core.domain_types import SanitizeAction
from routeforge.core.masking import SanitizationRule
from routeforge.pipeline.request import Reply, ReplyAlreadySentError
from routeforge.pipeline.response_orchestrator import (
    ResponseOrchestrator, SanitizationRules,
)
from routeforge.pipeline.responses import ErrorData, ResponseBuilder
from routeforge.schemas.envelope import PaginationMeta, parse_envelope


@pytest.fixture
def builder(reporter):
    return ResponseBuilder(reporter=reporter)


def test_success_round_trip(builder, make_request):
    request = make_request("GET", "/users/list", id="req-1")
    reply = Reply()
    data = {"users": [{"id": 1}], "total": 1}

    builder.success(reply, request, data)

    assert reply.status_code == 200
    assert reply.payload["requestId"] == "req-1"
    assert isinstance(reply.payload["timestamp"], int)
    assert parse_envelope(reply.payload).data == data


def test_error_with_explicit_status(builder, make_request, log):
    reply = Reply()

    builder.error(reply, make_request(), ErrorData("X", "m"), 404)

    assert reply.status_code == 404
    assert reply.payload["success"] is False
    assert reply.payload["error"] == {"code": "X", "message": "m"}
    assert log.warn.call_args.args[1] == "Error response sent"
    log.error.assert_not_called()


def test_server_error_reports(builder, make_request, log, reporter):
    reply = Reply()
    cause = RuntimeError("db down")

    builder.error(reply, make_request(), ErrorData(
        "CONTROLLER_ERROR", "db down", details={"originalError": cause}, status_code=503,
    ))

    assert reply.status_code == 503
    assert "details" not in reply.payload["error"]
    assert log.error.call_args.args[1] == "Error response sent"
    reporter.add_breadcrumb.assert_called_once()
    reporter.capture_exception.assert_called_once_with(cause)


def test_optional_fields_can_be_disabled(make_request):
    builder = ResponseBuilder(include_request_id=False, include_timestamp=False, log_responses=False)
    reply = Reply()

    builder.success(reply, make_request(), [1, 2])

    assert reply.payload == {"success": True, "data": [1, 2]}


def test_reply_sends_once(builder, make_request):
    reply = Reply()
    builder.success(reply, make_request(), 1)
    with pytest.raises(ReplyAlreadySentError):
        builder.success(reply, make_request(), 2)


def test_helpers(builder, make_request):
    unauthorized, not_found, invalid = Reply(), Reply(), Reply()

    builder.unauthorized(unauthorized, make_request())
    builder.not_found(not_found, make_request(), user_message="No such user")
    builder.validation_error(invalid, make_request(), {"body": ["email: required"]})

    assert unauthorized.status_code == 401
    assert not_found.payload["error"]["userMessage"] == "No such user"
    assert invalid.status_code == 422
    assert invalid.payload["error"]["details"] == {"validationErrors": {"body": ["email: required"]}}


def test_internal_error_stack_only_in_development(make_request, reporter):
    exc = ValueError("boom")
    prod, dev = Reply(), Reply()

    ResponseBuilder(reporter=reporter).internal_error(prod, make_request(), exc)
    ResponseBuilder(reporter=reporter, environment="development").internal_error(
        dev, make_request(), exc,
    )

    assert "details" not in prod.payload["error"]
    assert "ValueError: boom" in dev.payload["error"]["details"]["stack"]


@pytest.mark.asyncio
async def test_orchestrator_sanitizes_success(make_request, reporter):
    orchestrator = ResponseOrchestrator(
        sanitization=SanitizationRules(
            global_rules=[SanitizationRule("password", SanitizeAction.EXCLUDE)],
        ),
        reporter=reporter,
    )
    sanitized, raw = Reply(), Reply()

    await orchestrator.send_success(sanitized, make_request(), {"id": 1, "password": "x"})
    await orchestrator.send_success(
        raw, make_request(), {"id": 1, "password": "x"}, skip_sanitization=True,
    )

    assert sanitized.payload["data"] == {"id": 1}
    assert raw.payload["data"] == {"id": 1, "password": "x"}


@pytest.mark.asyncio
async def test_orchestrator_paginated_meta(make_request):
    orchestrator = ResponseOrchestrator()
    reply = Reply()
    meta = PaginationMeta.build(page=1, limit=2, total=3)

    await orchestrator.send_paginated(reply, make_request(), [{"id": 1}, {"id": 2}], meta)

    assert reply.payload["meta"]["totalPages"] == 2
    assert reply.payload["meta"]["hasNext"] is True


def test_orchestrator_errors_are_not_sanitized(make_request):
    orchestrator = ResponseOrchestrator(sanitization=SanitizationRules(
        global_rules=[SanitizationRule("message", SanitizeAction.EXCLUDE)],
    ))
    reply = Reply()

    orchestrator.send_error(reply, make_request(), ErrorData("X", "kept", status_code=400))

    assert reply.payload["error"]["message"] == "kept"


def test_orchestrator_helper_statuses(make_request, reporter):
    orchestrator = ResponseOrchestrator(reporter=reporter)
    replies = [Reply() for _ in range(5)]

    orchestrator.send_unauthorized(replies[0], make_request())
    orchestrator.send_forbidden(replies[1], make_request())
    orchestrator.send_not_found(replies[2], make_request())
    orchestrator.send_validation_error(replies[3], make_request(), {"query": ["page: bad"]})
    orchestrator.send_internal_error(replies[4], make_request(), RuntimeError("x"))

    assert [r.status_code for r in replies] == [401, 403, 404, 422, 500]
    assert replies[1].payload["error"]["code"] == "FORBIDDEN"
