"""Schema Adapter — binds pydantic models to the parse-or-raise schema capability.

Invariants:
    - Objects already exposing parse() are used as-is
    - BaseModel subclasses and TypeAdapters are wrapped; their ValidationError becomes
      SchemaValidationError with one "<loc>: <msg>" message per pydantic error
    - Anything else is rejected at adaptation time (TypeError), never at request time
"""

from typing import Any

from pydantic import BaseModel, TypeAdapter, ValidationError

from routeforge.core.errors import SchemaValidationError
from routeforge.core.protocols import SchemaLike


def format_pydantic_errors(exc: ValidationError) -> list[str]:
    messages = []
    for err in exc.errors():
        loc = ".".join(str(part) for part in err.get("loc", ()))
        messages.append(f"{loc}: {err['msg']}" if loc else err["msg"])
    return messages


class PydanticSchema:
    """parse() over a pydantic model class or TypeAdapter."""

    def __init__(self, target: type[BaseModel] | TypeAdapter):
        self.target = target
        if isinstance(target, TypeAdapter):
            self._validate = target.validate_python
        else:
            self._validate = target.model_validate

    def parse(self, value: Any) -> Any:
        try:
            return self._validate(value)
        except ValidationError as e:
            raise SchemaValidationError(format_pydantic_errors(e)) from e

    def __repr__(self) -> str:
        return f"PydanticSchema({self.target!r})"


def as_schema(obj: Any) -> SchemaLike:
    if isinstance(obj, type) and issubclass(obj, BaseModel):
        return PydanticSchema(obj)
    if isinstance(obj, TypeAdapter):
        return PydanticSchema(obj)
    if callable(getattr(obj, "parse", None)):
        return obj
    raise TypeError(f"Unsupported schema object: {obj!r}")
