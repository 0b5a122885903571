"""Error Hierarchy — typed, categorized exceptions for discovery, registration and requests.

Invariants:
    - Every error has a code (str), category (ErrorCategory), severity (ErrorSeverity)
    - Request errors (400-level) are recoverable; registration/infrastructure errors are critical
    - to_response() produces the failure envelope ({"success": false, "error": {...}})
    - No internal details leaked in user-facing messages

Design Decisions:
    - Single hierarchy with RouteForgeError base: FastAPI global handler catches all
    - ErrorContext as dataclass: rich observability without coupling to logging framework
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any
from datetime import datetime, timezone


class ErrorSeverity(str, Enum):
    """Error severity for observability and client handling."""
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


class ErrorCategory(str, Enum):
    """High-level error categories for routing and handling."""
    VALIDATION = "validation"
    AUTHORIZATION = "authorization"
    DISCOVERY = "discovery"
    REGISTRATION = "registration"
    RESOURCE_NOT_FOUND = "resource_not_found"
    CONFLICT = "conflict"
    DATABASE = "database"
    INTERNAL = "internal"


@dataclass
class ErrorContext:
    """Rich context for error observability and debugging."""
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    route_path: str | None = None
    file_path: str | None = None
    user_message: str | None = None
    debug_info: dict[str, Any] | None = None


class RouteForgeError(Exception):
    """Base exception for all RouteForge errors."""

    def __init__(
        self,
        message: str,
        code: str,
        category: ErrorCategory,
        severity: ErrorSeverity = ErrorSeverity.ERROR,
        context: ErrorContext | None = None,
        http_status: int = 500,
    ):
        super().__init__(message)
        self.message = message
        self.code = code
        self.category = category
        self.severity = severity
        self.context = context or ErrorContext()
        self.http_status = http_status

    def to_response(self) -> dict:
        """Convert to the failure envelope."""
        error: dict[str, Any] = {
            "code": self.code,
            "message": self.message,
            "category": self.category.value,
            "severity": self.severity.value,
        }
        if self.context.user_message:
            error["userMessage"] = self.context.user_message
        return {
            "success": False,
            "error": error,
            "timestamp": int(self.context.timestamp.timestamp() * 1000),
        }


# ─── Request Errors (400-level) ─────────────────────────────────

class SchemaValidationError(RouteForgeError):
    """A schema rejected a value. Carries the ordered list of messages."""
    def __init__(self, messages: list[str], context: ErrorContext | None = None):
        super().__init__(
            "; ".join(messages) or "Invalid value",
            "VALIDATION_ERROR", ErrorCategory.VALIDATION,
            ErrorSeverity.ERROR, context, 400,
        )
        self.messages = list(messages)


class DuplicateRouteIdError(RouteForgeError):
    """Manual registry already holds an entry with this id."""
    def __init__(self, route_id: str, context: ErrorContext | None = None):
        super().__init__(
            f'Route with id "{route_id}" already exists',
            "DUPLICATE_ROUTE_ID", ErrorCategory.CONFLICT,
            ErrorSeverity.ERROR, context, 409,
        )
        self.route_id = route_id


# ─── Discovery / Registration Errors (500-level) ────────────────

class DiscoveryFailedError(RouteForgeError):
    """Discovery root could not be listed. Fatal to that discovery pass."""
    def __init__(self, root: str, reason: str, context: ErrorContext | None = None):
        super().__init__(
            f"Discovery failed for '{root}': {reason}",
            "DISCOVERY_FAILED", ErrorCategory.DISCOVERY,
            ErrorSeverity.CRITICAL, context, 500,
        )
        self.root = root


class ModuleLoadError(RouteForgeError):
    """A discovered file could not be imported."""
    def __init__(self, file_path: str, reason: str, context: ErrorContext | None = None):
        ctx = context or ErrorContext()
        ctx.file_path = file_path
        super().__init__(
            f"Failed to load module '{file_path}': {reason}",
            "MODULE_LOAD_FAILED", ErrorCategory.DISCOVERY,
            ErrorSeverity.ERROR, ctx, 500,
        )
        self.file_path = file_path


class ControllerNotFoundError(RouteForgeError):
    """No loadable handler at any candidate controller path."""
    def __init__(self, attempted_paths: list[str], context: ErrorContext | None = None):
        super().__init__(
            f"No handler found. Tried: {', '.join(attempted_paths)}",
            "CONTROLLER_NOT_FOUND", ErrorCategory.REGISTRATION,
            ErrorSeverity.ERROR, context, 500,
        )
        self.attempted_paths = list(attempted_paths)


class RouteRegistrationError(RouteForgeError):
    """Route could not be handed to the server capability."""
    def __init__(self, method: str, path: str, reason: str, context: ErrorContext | None = None):
        ctx = context or ErrorContext()
        ctx.route_path = path
        super().__init__(
            f"Failed to register {method} {path}: {reason}",
            "ROUTE_REGISTRATION_FAILED", ErrorCategory.REGISTRATION,
            ErrorSeverity.CRITICAL, ctx, 500,
        )
