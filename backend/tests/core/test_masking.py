"""PII Masking — tests for the mask table and DataSanitizer.

Tests cover:
    - Built-in masks (cpf, email, credit-card, phone) replace the first match only
    - Non-matching values and None pass through unchanged
    - exclude / transform actions; first matching rule wins
    - Nested mappings and lists only with the matching flags
    - Custom mask with and without a complete pattern
    - Transformer exceptions propagate
"""

import pytest

from routeforge.core.domain_types import MaskType, SanitizeAction
from routeforge.core.masking import (
    DataSanitizer, MaskConfig, SanitizationConfig, SanitizationRule, apply_mask,
)


def _mask_rule(field, mask_type, **kw):
    return SanitizationRule(field, SanitizeAction.MASK, mask=MaskConfig(mask_type, **kw))


def _sanitize(data, *rules, nested=False, arrays=False):
    config = SanitizationConfig(
        rules=list(rules), apply_to_nested=nested, preserve_array_structure=arrays,
    )
    return DataSanitizer(config).sanitize(data)


# ─── apply_mask ─────────────────────────────────────────────────

def test_cpf_mask_keeps_check_digits():
    assert apply_mask("12345678901", MaskConfig(MaskType.CPF)) == "***.***.***-01"


def test_cpf_mask_leaves_short_value_unchanged():
    assert apply_mask("123", MaskConfig(MaskType.CPF)) == "123"


def test_email_mask_keeps_first_char_and_domain():
    assert apply_mask("user@example.com", MaskConfig(MaskType.EMAIL)) == "u***@example.com"
    assert apply_mask("invalid-email", MaskConfig(MaskType.EMAIL)) == "invalid-email"


def test_credit_card_mask():
    masked = apply_mask("4111111111111234", MaskConfig(MaskType.CREDIT_CARD))
    assert masked == "****-****-****-1234"


def test_phone_mobile_mask():
    masked = apply_mask("(11) 987654321", MaskConfig(MaskType.PHONE_MOBILE))
    assert masked == "(11) 9****-4321"


def test_mask_substitutes_first_match_only():
    value = "12345678901 and 10987654321"
    assert apply_mask(value, MaskConfig(MaskType.CPF)) == "***.***.***-01 and 10987654321"


def test_custom_mask_replaces_globally():
    mask = MaskConfig(MaskType.CUSTOM, pattern=r"\d", replacement="#")
    assert apply_mask("a1b2c3", mask) == "a#b#c#"


def test_incomplete_custom_mask_falls_back():
    assert apply_mask("secret", MaskConfig(MaskType.CUSTOM, pattern=r"\d")) == "***"


# ─── DataSanitizer ──────────────────────────────────────────────

def test_sanitizer_masks_cpf_field():
    result = _sanitize({"cpf": "12345678901", "name": "Ana"}, _mask_rule("cpf", MaskType.CPF))
    assert result == {"cpf": "***.***.***-01", "name": "Ana"}


def test_sanitizer_keeps_none_values():
    assert _sanitize({"cpf": None}, _mask_rule("cpf", MaskType.CPF)) == {"cpf": None}


def test_mask_on_non_string_uses_fallback():
    assert _sanitize({"cpf": 12345678901}, _mask_rule("cpf", MaskType.CPF)) == {"cpf": "***"}


def test_exclude_drops_field():
    rule = SanitizationRule("password", SanitizeAction.EXCLUDE)
    assert _sanitize({"id": 1, "password": "x"}, rule) == {"id": 1}


def test_transform_applies_function():
    rule = SanitizationRule("name", SanitizeAction.TRANSFORM, transformer=str.upper)
    assert _sanitize({"name": "ana"}, rule) == {"name": "ANA"}


def test_first_matching_rule_wins():
    first = SanitizationRule("email", SanitizeAction.EXCLUDE)
    second = _mask_rule("email", MaskType.EMAIL)
    assert _sanitize({"email": "user@example.com"}, first, second) == {}


def test_nested_objects_only_with_flag():
    data = {"user": {"password": "x", "id": 1}}
    rule = SanitizationRule("password", SanitizeAction.EXCLUDE)
    assert _sanitize(data, rule) == data
    assert _sanitize(data, rule, nested=True) == {"user": {"id": 1}}


def test_arrays_only_with_flag():
    data = [{"password": "x"}, {"password": "y"}, "plain"]
    rule = SanitizationRule("password", SanitizeAction.EXCLUDE)
    assert _sanitize(data, rule) == data
    assert _sanitize(data, rule, arrays=True) == [{}, {}, "plain"]


def test_transformer_error_propagates():
    def boom(_value):
        raise ValueError("bad transform")

    rule = SanitizationRule("name", SanitizeAction.TRANSFORM, transformer=boom)
    with pytest.raises(ValueError, match="bad transform"):
        _sanitize({"name": "ana"}, rule)


def test_scalar_data_passes_through():
    assert _sanitize("text", SanitizationRule("x", SanitizeAction.EXCLUDE)) == "text"
