"""Validation Middleware — tests for per-section schema parsing.

Tests cover:
    - Invalid body → 400 VALIDATION_ERROR with validationErrors.body; handler never runs
    - Valid body → chain proceeds, validated_body holds the parsed model
    - Absent sections are skipped; every failing section is collected
    - Custom message, custom hook (owns the response, even if it raises after sending), async parse
    - Unexpected parse exception → 500 VALIDATION_INTERNAL_ERROR
    - Unsupported schema objects rejected at construction
"""

import pytest
from unittest.mock import AsyncMock
from pydantic import BaseModel, Field, TypeAdapter

from routeforge.core.domain_types import ValidationKind
from routeforge.core.errors import SchemaValidationError
from routeforge.core.protocols import RouteDefinition
from routeforge.pipeline.request import Reply
from routeforge.pipeline.response_orchestrator import ResponseOrchestrator
from routeforge.pipeline.validation import (
    ValidationOptions, create_validation_middleware, validate,
)


class LoginBody(BaseModel):
    email: str = Field(pattern=r"^[^@\s]+@[^@\s]+\.[^@\s]+$")
    password: str = Field(min_length=1)


class PageQuery(BaseModel):
    page: int = Field(ge=1)


def _route(middleware, handler=None):
    return RouteDefinition("POST", "/auth/login", handler or AsyncMock(), (middleware,))


@pytest.fixture
def orchestrator(reporter):
    return ResponseOrchestrator(reporter=reporter)


@pytest.mark.asyncio
async def test_invalid_body_short_circuits(make_request, run_route, orchestrator):
    handler = AsyncMock()
    middleware = create_validation_middleware({"body": LoginBody}, orchestrator=orchestrator)
    request = make_request("POST", "/auth/login", body={"email": "bad", "password": ""})

    reply = await run_route(_route(middleware, handler), request)

    assert reply.status_code == 400
    error = reply.payload["error"]
    assert error["code"] == "VALIDATION_ERROR"
    assert error["message"] == "Validation failed"
    body_errors = error["details"]["validationErrors"]["body"]
    assert len(body_errors) == 2
    assert any(msg.startswith("email:") for msg in body_errors)
    handler.assert_not_awaited()


@pytest.mark.asyncio
async def test_valid_body_proceeds_with_parsed_value(make_request, run_route, orchestrator):
    handler = AsyncMock()
    middleware = create_validation_middleware({"body": LoginBody}, orchestrator=orchestrator)
    request = make_request("POST", "/auth/login", body={"email": "a@b.com", "password": "x"})

    reply = await run_route(_route(middleware, handler), request)

    assert not reply.sent
    handler.assert_awaited_once()
    assert request.validated_body == LoginBody(email="a@b.com", password="x")


@pytest.mark.asyncio
async def test_all_failing_sections_collected(make_request, orchestrator):
    middleware = create_validation_middleware(
        {ValidationKind.BODY: LoginBody, ValidationKind.QUERY: PageQuery},
        orchestrator=orchestrator,
    )
    request = make_request("POST", "/x", body={}, query={"page": "0"})
    reply = Reply()

    await middleware(request, reply)

    errors = reply.payload["error"]["details"]["validationErrors"]
    assert set(errors) == {"body", "query"}


@pytest.mark.asyncio
async def test_absent_section_is_skipped(make_request, orchestrator):
    middleware = create_validation_middleware({"body": LoginBody}, orchestrator=orchestrator)
    request = make_request("GET", "/x", body=None)
    reply = Reply()

    await middleware(request, reply)

    assert not reply.sent
    assert request.validated == {}


@pytest.mark.asyncio
async def test_type_adapter_and_custom_message(make_request, orchestrator):
    middleware = create_validation_middleware(
        {"params": TypeAdapter(dict[str, int])},
        options=ValidationOptions(custom_error_messages={"validation": "Bad input"}),
        orchestrator=orchestrator,
    )
    request = make_request("GET", "/x", params={"id": "abc"})
    reply = Reply()

    await middleware(request, reply)

    assert reply.payload["error"]["message"] == "Bad input"
    assert "params" in reply.payload["error"]["details"]["validationErrors"]


@pytest.mark.asyncio
async def test_hook_owns_the_response(make_request, run_route, orchestrator):
    seen = {}

    async def on_error(errors, request, reply):
        seen.update(errors)
        reply.send(418, {"custom": True})

    handler = AsyncMock()
    middleware = create_validation_middleware(
        {"body": LoginBody},
        options=ValidationOptions(on_validation_error=on_error),
        orchestrator=orchestrator,
    )
    request = make_request("POST", "/x", body={"email": "bad", "password": ""})

    reply = await run_route(_route(middleware, handler), request)

    assert reply.status_code == 418
    assert reply.payload == {"custom": True}
    assert "body" in seen
    handler.assert_not_awaited()


@pytest.mark.asyncio
async def test_async_parse_schema(make_request, orchestrator):
    class AsyncSchema:
        async def parse(self, value):
            if "token" not in value:
                raise SchemaValidationError(["token: required"])
            return value["token"]

    middleware = create_validation_middleware({"headers": AsyncSchema()}, orchestrator=orchestrator)

    ok_request = make_request("GET", "/x", headers={"token": "t"})
    await middleware(ok_request, Reply())
    assert ok_request.validated_headers == "t"

    bad_reply = Reply()
    await middleware(make_request("GET", "/x", headers={}), bad_reply)
    assert bad_reply.payload["error"]["details"]["validationErrors"] == {
        "headers": ["token: required"],
    }


@pytest.mark.asyncio
async def test_unexpected_parse_error_is_internal(make_request, orchestrator, reporter):
    class Broken:
        def parse(self, value):
            raise RuntimeError("schema exploded")

    middleware = create_validation_middleware({"body": Broken()}, orchestrator=orchestrator)
    reply = Reply()

    await middleware(make_request("POST", "/x", body={}), reply)

    assert reply.status_code == 500
    assert reply.payload["error"]["code"] == "VALIDATION_INTERNAL_ERROR"
    assert "details" not in reply.payload["error"]
    reporter.capture_exception.assert_called_once()


def test_unsupported_schema_rejected_at_construction():
    with pytest.raises(TypeError):
        validate({"body": 42})


@pytest.mark.asyncio
async def test_hook_reply_kept_when_hook_raises(make_request, run_route, orchestrator):
    def on_error(errors, request, reply):
        reply.send(418, {"custom": True})
        raise RuntimeError("audit sink unavailable")

    handler = AsyncMock()
    middleware = create_validation_middleware(
        {"body": LoginBody},
        options=ValidationOptions(on_validation_error=on_error),
        orchestrator=orchestrator,
    )
    request = make_request("POST", "/x", body={"email": "bad", "password": ""})

    reply = await run_route(_route(middleware, handler), request)

    assert reply.status_code == 418
    assert reply.payload == {"custom": True}
    handler.assert_not_awaited()
