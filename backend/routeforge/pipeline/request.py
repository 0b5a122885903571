"""Pipeline Request/Reply — framework-neutral per-request state shared by the middleware chain.

Invariants:
    - A PipelineRequest is built fresh per request by the server binding
    - validated values live in `validated`, keyed by ValidationKind
    - Reply.send() may be called once; later sends raise (chain already terminated)
    - A chain stops at the first middleware that sends or halts the reply

Design Decisions:
    - Plain classes over Starlette types: middlewares are testable without an ASGI app
"""

import uuid
from dataclasses import dataclass, field
from typing import Any

from routeforge.core.domain_types import ValidationKind


@dataclass
class PipelineRequest:
    method: str
    path: str
    params: dict[str, Any] = field(default_factory=dict)
    query: dict[str, Any] = field(default_factory=dict)
    body: Any = None
    headers: dict[str, str] = field(default_factory=dict)
    ip: str | None = None
    id: str = field(default_factory=lambda: uuid.uuid4().hex[:13])
    log: Any = None
    user: Any = None
    validated: dict[ValidationKind, Any] = field(default_factory=dict)

    @property
    def validated_body(self) -> Any:
        return self.validated.get(ValidationKind.BODY)

    @property
    def validated_query(self) -> Any:
        return self.validated.get(ValidationKind.QUERY)

    @property
    def validated_params(self) -> Any:
        return self.validated.get(ValidationKind.PARAMS)

    @property
    def validated_headers(self) -> Any:
        return self.validated.get(ValidationKind.HEADERS)

    def section(self, kind: ValidationKind) -> Any:
        return getattr(self, kind.value)


class ReplyAlreadySentError(RuntimeError):
    pass


class Reply:
    """Collects the single response a chain produces."""

    def __init__(self):
        self.status_code: int = 200
        self.payload: Any = None
        self.headers: dict[str, str] = {}
        self.sent = False
        self.halted = False

    def send(self, status_code: int, payload: Any) -> None:
        if self.sent:
            raise ReplyAlreadySentError("Reply already sent")
        self.status_code = status_code
        self.payload = payload
        self.sent = True
        self.halted = True

    def halt(self) -> None:
        """Stop the chain without sending (a hook took over the response)."""
        self.halted = True

    def header(self, name: str, value: str) -> None:
        self.headers[name] = value
