"""Declarative Route Config Schemas — validated shape of each module's config file.

Invariants:
    - config = {"routes": {route_name: {method, controller, validation?, authorization?, paginated?}}}
    - method normalized to upper case and restricted to HttpMethod
    - validation keys restricted to body/query/params/headers
"""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

from routeforge.core.domain_types import HttpMethod, ValidationKind


class RouteConfig(BaseModel):
    """One declarative route inside a module config."""
    model_config = ConfigDict(arbitrary_types_allowed=True, frozen=True)

    method: HttpMethod
    controller: str = Field(min_length=1)
    validation: dict[ValidationKind, Any] | None = None
    authorization: Any = None
    paginated: bool = False

    @field_validator("method", mode="before")
    @classmethod
    def upper_method(cls, v: Any) -> Any:
        return v.upper() if isinstance(v, str) else v


class ModuleConfig(BaseModel):
    model_config = ConfigDict(arbitrary_types_allowed=True)

    routes: dict[str, RouteConfig]
