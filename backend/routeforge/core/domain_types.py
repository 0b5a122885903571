"""Domain Types — enums and identity types shared by discovery, registration and the pipeline.

Invariants:
    - All valid states encoded as Enums — no raw string matching
    - HttpMethod values are the upper-case wire verbs
    - MaskType values match the mask names used in sanitization rules

Design Decisions:
    - str Enums: serialize to JSON and compare equal to plain strings
"""

from enum import Enum
from typing import NewType


# ─── Identity Types ──────────────────────────────────────────────

RoutePath = NewType("RoutePath", str)       # "/{module}/{name}"
SchemaKey = NewType("SchemaKey", str)       # "{module}/{name}"
RouteId = NewType("RouteId", str)           # manual registry entry id


# ─── Enums ───────────────────────────────────────────────────────

class HttpMethod(str, Enum):
    GET = "GET"
    POST = "POST"
    PUT = "PUT"
    PATCH = "PATCH"
    DELETE = "DELETE"


class ValidationKind(str, Enum):
    """Request section a schema validates."""
    BODY = "body"
    PARAMS = "params"
    QUERY = "query"
    HEADERS = "headers"


class SanitizeAction(str, Enum):
    EXCLUDE = "exclude"
    MASK = "mask"
    TRANSFORM = "transform"


class MaskType(str, Enum):
    """Document formats with a built-in masking pattern."""
    CPF = "cpf"
    CNPJ = "cnpj"
    RG = "rg"
    CNH = "cnh"
    PIS = "pis"
    PHONE_LANDLINE = "phone-landline"
    PHONE_MOBILE = "phone-mobile"
    CEP = "cep"
    EMAIL = "email"
    BIRTH_DATE = "birth-date"
    STATE_REGISTRATION = "state-registration"
    MUNICIPAL_REGISTRATION = "municipal-registration"
    SUS_CARD = "sus-card"
    VEHICLE_PLATE = "vehicle-plate"
    VEHICLE_CHASSIS = "vehicle-chassis"
    CTPS = "ctps"
    CREDIT_CARD = "credit-card"
    CUSTOM = "custom"


class RegistryState(str, Enum):
    """Manual route registry lifecycle."""
    EMPTY = "empty"
    POPULATED = "populated"
    REGISTERING = "registering"
    REGISTERED = "registered"
    FAILED = "failed"


# Methods whose request input excludes the body
BODYLESS_METHODS = frozenset({HttpMethod.GET, HttpMethod.DELETE})
