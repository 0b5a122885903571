"""PII Masking & Data Sanitization — rule-driven masking engine for outbound response data.

Invariants:
    - One (pattern, replacement) table entry per MaskType; each substitutes its first match only
    - CUSTOM applies the caller's pattern globally, "***" when pattern or replacement is missing
    - The first rule whose field matches a key wins; unmatched keys pass through unchanged
    - None values are never masked, excluded or transformed
    - Nested mappings recurse only with apply_to_nested; lists only with preserve_array_structure
    - Transformer exceptions propagate to the caller of sanitize()

Design Decisions:
    - Mask formats are table data, not branches: adding a document format is one dict entry
    - DataSanitizer is pure: the middleware wrapper owns error reporting and fallback
"""

import re
from dataclasses import dataclass, field
from typing import Any, Callable, Mapping

from routeforge.core.domain_types import MaskType, SanitizeAction


FALLBACK_MASK = "***"

MASK_PATTERNS: dict[MaskType, tuple[re.Pattern[str], str]] = {
    MaskType.CPF: (re.compile(r"(\d{3})(\d{3})(\d{3})(\d{2})"), r"***.***.***-\4"),
    MaskType.CNPJ: (re.compile(r"(\d{2})(\d{3})(\d{3})(\d{4})(\d{2})"), r"**.***.***/\4-\5"),
    MaskType.RG: (re.compile(r"(\d{2})(\d{3})(\d{3})(\d{1})"), r"**.***.***-\4"),
    MaskType.CNH: (re.compile(r"(\d{7})(\d{4})"), r"*******\2"),
    MaskType.PIS: (re.compile(r"(\d{3})(\d{5})(\d{2})(\d{1})"), r"***.*****.**-\4"),
    MaskType.PHONE_LANDLINE: (re.compile(r"(\(\d{2}\)) (\d{4})(\d{4})"), r"\1 ****-\3"),
    MaskType.PHONE_MOBILE: (re.compile(r"(\(\d{2}\)) (\d{1})(\d{4})(\d{4})"), r"\1 \2****-\4"),
    MaskType.CEP: (re.compile(r"(\d{3})(\d{2})(\d{3})"), r"\1**-***"),
    MaskType.EMAIL: (re.compile(r"(.{1})(.*)(@.*)"), r"\1***\3"),
    MaskType.BIRTH_DATE: (re.compile(r"(\d{2})/(\d{2})/(\d{4})"), r"**/**/\3"),
    MaskType.STATE_REGISTRATION: (re.compile(r"(\d{3})(\d{3})(\d{3})(\d{3})"), r"***.***.***.\4"),
    MaskType.MUNICIPAL_REGISTRATION: (re.compile(r"(\d{4})(\d{3})"), r"****\2"),
    MaskType.SUS_CARD: (re.compile(r"(\d{3}) (\d{4}) (\d{4}) (\d{4})"), r"*** **** **** \4"),
    MaskType.VEHICLE_PLATE: (re.compile(r"([A-Z]{3})(\w{4})"), r"***\2"),
    MaskType.VEHICLE_CHASSIS: (re.compile(r"(.{13})(\d{4})"), r"*************\2"),
    MaskType.CTPS: (re.compile(r"(\d{6})(\d{1}) (\d{3})(\d{1})"), r"******\2 \3-\4"),
    MaskType.CREDIT_CARD: (re.compile(r"(\d{4})(\d{4})(\d{4})(\d{4})"), r"****-****-****-\4"),
}


@dataclass(frozen=True)
class MaskConfig:
    type: MaskType
    pattern: str | None = None
    replacement: str | None = None


@dataclass(frozen=True)
class SanitizationRule:
    field: str
    action: SanitizeAction
    mask: MaskConfig | None = None
    transformer: Callable[[Any], Any] | None = None


@dataclass
class SanitizationConfig:
    rules: list[SanitizationRule] = field(default_factory=list)
    apply_to_nested: bool = False
    preserve_array_structure: bool = False


@dataclass
class SanitizationContext:
    """Request facts used to pick rules (role, path, method)."""
    user_role: str | None = None
    request_path: str | None = None
    method: str | None = None
    custom_context: dict[str, Any] = field(default_factory=dict)


def apply_mask(value: str, mask: MaskConfig) -> str:
    """Mask one string value according to its mask type."""
    mask_type = MaskType(mask.type)
    if mask_type is MaskType.CUSTOM:
        if mask.pattern and mask.replacement is not None:
            return re.sub(mask.pattern, mask.replacement, value)
        return FALLBACK_MASK
    entry = MASK_PATTERNS.get(mask_type)
    if entry is None:
        return FALLBACK_MASK
    pattern, replacement = entry
    return pattern.sub(replacement, value, count=1)


_EXCLUDED = object()


class DataSanitizer:
    """Applies sanitization rules to dicts, lists of dicts, and nested structures."""

    def __init__(
        self, config: SanitizationConfig,
        context: SanitizationContext | None = None,
    ):
        self.config = config
        self.context = context or SanitizationContext()

    def sanitize(self, data: Any) -> Any:
        if isinstance(data, Mapping):
            return self._sanitize_mapping(data)
        if isinstance(data, list):
            if self.config.preserve_array_structure:
                return self._sanitize_list(data)
            return data
        return data

    def _find_rule(self, key: str) -> SanitizationRule | None:
        for rule in self.config.rules:
            if rule.field == key:
                return rule
        return None

    def _sanitize_list(self, items: list) -> list:
        return [
            self._sanitize_mapping(item) if isinstance(item, Mapping) else item
            for item in items
        ]

    def _sanitize_mapping(self, obj: Mapping[str, Any]) -> dict[str, Any]:
        result: dict[str, Any] = {}
        for key, value in obj.items():
            rule = self._find_rule(key)
            if rule is not None:
                sanitized = self._sanitize_value(value, rule)
                if sanitized is not _EXCLUDED:
                    result[key] = sanitized
            elif self.config.apply_to_nested and isinstance(value, Mapping):
                result[key] = self._sanitize_mapping(value)
            elif self.config.preserve_array_structure and isinstance(value, list):
                result[key] = self._sanitize_list(value)
            else:
                result[key] = value
        return result

    def _sanitize_value(self, value: Any, rule: SanitizationRule) -> Any:
        if value is None:
            return value
        action = SanitizeAction(rule.action)
        if action is SanitizeAction.EXCLUDE:
            return _EXCLUDED
        if action is SanitizeAction.MASK:
            if isinstance(value, str) and rule.mask is not None:
                return apply_mask(value, rule.mask)
            return FALLBACK_MASK
        if rule.transformer is not None:
            return rule.transformer(value)
        return value
