"""Error Hierarchy — tests for error codes, messages and the failure envelope.

Tests cover:
    - to_response() produces the failure envelope with category/severity
    - userMessage only present when set in the context
    - Subclass messages (duplicate id, controller not found, discovery failure)
"""

from routeforge.core.errors import (
    ControllerNotFoundError, DiscoveryFailedError, DuplicateRouteIdError,
    ErrorCategory, ErrorContext, ModuleLoadError, SchemaValidationError,
)


def test_duplicate_route_id_message_and_status():
    err = DuplicateRouteIdError("users")
    assert str(err) == 'Route with id "users" already exists'
    assert err.http_status == 409
    assert err.category is ErrorCategory.CONFLICT


def test_controller_not_found_lists_attempted_paths():
    err = ControllerNotFoundError(["/c/users/login.pyc", "/c/users/login.py"])
    assert err.message == "No handler found. Tried: /c/users/login.pyc, /c/users/login.py"
    assert err.attempted_paths == ["/c/users/login.pyc", "/c/users/login.py"]


def test_to_response_is_failure_envelope():
    body = DiscoveryFailedError("/api", "permission denied").to_response()
    assert body["success"] is False
    assert body["error"]["code"] == "DISCOVERY_FAILED"
    assert body["error"]["category"] == "discovery"
    assert body["error"]["severity"] == "critical"
    assert "userMessage" not in body["error"]
    assert isinstance(body["timestamp"], int)


def test_user_message_from_context():
    err = SchemaValidationError(["email: bad"], ErrorContext(user_message="Fix the form"))
    assert err.to_response()["error"]["userMessage"] == "Fix the form"
    assert err.messages == ["email: bad"]
    assert err.http_status == 400


def test_module_load_error_records_file_path():
    err = ModuleLoadError("/api/x.py", "SyntaxError: invalid syntax")
    assert err.context.file_path == "/api/x.py"
    assert "SyntaxError" in err.message
