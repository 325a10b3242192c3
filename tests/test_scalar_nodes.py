from datetime import datetime, timedelta, timezone

import pytest

from valet import Bool, Float, Int, String, Time, validate


def errors_of(data, schema):
    result = validate(data, schema)
    return result.errors if result else {}


# =============================================================================
# Presence
# =============================================================================

def test_required_missing_and_null_are_the_same():
    schema = {"name": String().required()}
    assert errors_of({}, schema) == {"name": ["name is required"]}
    assert errors_of({"name": None}, schema) == {"name": ["name is required"]}


def test_empty_string_counts_as_absent():
    assert errors_of({"name": ""}, {"name": String().required()}) == {"name": ["name is required"]}
    assert errors_of({"name": ""}, {"name": String().min(3)}) == {}


def test_trimmed_blank_string_is_absent():
    assert errors_of({"name": "   "}, {"name": String().trim().required()}) == {"name": ["name is required"]}


def test_optional_field_skips_rules_when_absent():
    assert errors_of({}, {"age": Int().min(18)}) == {}


def test_nullable_accepts_null():
    assert errors_of({"age": None}, {"age": Int().required().nullable()}) == {}


def test_required_if_uses_root_data():
    schema = {
        "kind": String(),
        "vat": String().required_if(lambda data: data.get("kind") == "company"),
    }
    assert errors_of({"kind": "company"}, schema) == {"vat": ["vat is required"]}
    assert errors_of({"kind": "person"}, schema) == {}


def test_required_unless():
    schema = {"phone": String().required_unless(lambda data: "email" in data)}
    assert errors_of({"email": "a@b.co"}, schema) == {}
    assert errors_of({}, schema) == {"phone": ["phone is required"]}


def test_default_is_evaluated_but_never_written_back():
    data = {}
    assert errors_of(data, {"n": Int().default(5).min(10)}) == {"n": ["n must be at least 10"]}
    assert data == {}


def test_custom_required_message():
    assert errors_of({}, {"name": String().required("Tell us your name")}) == {"name": ["Tell us your name"]}


# =============================================================================
# String
# =============================================================================

def test_string_type_error():
    assert errors_of({"name": 5}, {"name": String()}) == {"name": ["name must be a string"]}


def test_every_failing_rule_is_reported_in_order():
    schema = {"email": String().min(10).email()}
    assert errors_of({"email": "bad"}, schema) == {
        "email": ["email must be at least 10 characters", "email must be a valid email"],
    }


def test_length_rules():
    schema = {"code": String().min(3).max(5)}
    assert errors_of({"code": "ab"}, schema) == {"code": ["code must be at least 3 characters"]}
    assert errors_of({"code": "abcdef"}, schema) == {"code": ["code must be at most 5 characters"]}
    assert errors_of({"pin": "123"}, {"pin": String().length(4)}) == {"pin": ["pin must be exactly 4 characters"]}


@pytest.mark.parametrize("node, good, bad, message", [
    (String().uuid(), "123e4567-e89b-12d3-a456-426614174000", "123", "id must be a valid UUID"),
    (String().ipv4(), "10.0.0.1", "::1", "id must be a valid IPv4 address"),
    (String().json(), '{"a": 1}', "{a:", "id must be valid JSON"),
    (String().hex_color(), "#fff", "fff", "id must be a valid hex color"),
    (String().alpha_dash(), "snake_case-ok", "no spaces", "id must contain only letters, numbers, dashes, and underscores"),
    (String().digits(4), "0042", "42", "id must be exactly 4 digits"),
    (String().ascii(), "plain", "naïve", "id must contain only ASCII characters"),
])
def test_format_rules(node, good, bad, message):
    assert errors_of({"id": good}, {"id": node}) == {}
    assert errors_of({"id": bad}, {"id": node}) == {"id": [message]}


def test_url_scheme_restriction():
    schema = {"site": String().url("https")}
    assert errors_of({"site": "https://example.com"}, schema) == {}
    assert errors_of({"site": "http://example.com"}, schema) == {"site": ["site must be an HTTPS URL"]}
    assert errors_of({"site": "example"}, schema) == {"site": ["site must be a valid URL"]}


def test_affix_and_membership_rules():
    assert errors_of({"sku": "X-1"}, {"sku": String().starts_with("SKU-")}) == {"sku": ["sku must start with SKU-"]}
    assert errors_of({"f": "tmp_x"}, {"f": String().doesnt_start_with("tmp_", "bak_")}) == {
        "f": ["f must not start with tmp_"],
    }
    assert errors_of({"role": "root"}, {"role": String().in_("user", "admin")}) == {
        "role": ["role must be one of: user, admin"],
    }
    assert errors_of({"role": "root"}, {"role": String().not_in("root")}) == {
        "role": ["role must not be one of: root"],
    }


def test_transforms_apply_before_rules():
    assert errors_of({"code": "  ab  "}, {"code": String().trim().uppercase().in_("AB")}) == {}


def test_message_override_by_rule_name():
    schema = {"name": String().message("min", lambda m: f"{m.field} needs {m.param}+ chars").min(3)}
    assert errors_of({"name": "ab"}, schema) == {"name": ["name needs 3+ chars"]}


def test_builder_message_argument_wins():
    schema = {"name": String().message("min", "override").min(3, "inline")}
    assert errors_of({"name": "ab"}, schema) == {"name": ["inline"]}


def test_same_as_is_silent_when_other_field_missing():
    schema = {"password": String(), "confirm": String().same_as("password")}
    assert errors_of({"password": "a", "confirm": "b"}, schema) == {"confirm": ["confirm must match password"]}
    assert errors_of({"confirm": "b"}, schema) == {}


def test_custom_rule_protocol():
    def not_reserved(value, lookup):
        if value == "admin":
            return "that name is reserved"
        if value == "root":
            raise ValueError("root is not allowed")
        return value != "nobody"

    schema = {"user": String().custom(not_reserved)}
    assert errors_of({"user": "ada"}, schema) == {}
    assert errors_of({"user": "admin"}, schema) == {"user": ["that name is reserved"]}
    assert errors_of({"user": "root"}, schema) == {"user": ["root is not allowed"]}
    assert errors_of({"user": "nobody"}, schema) == {"user": ["user is invalid"]}


def test_invalid_regex_fails_at_build_time():
    import re

    with pytest.raises(re.error):
        String().regex("([bad")


# =============================================================================
# Numbers
# =============================================================================

def test_int_rejects_fractional_values():
    assert errors_of({"age": 1.5}, {"age": Int()}) == {"age": ["age must be an integer"]}
    assert errors_of({"age": 2.0}, {"age": Int()}) == {}


def test_booleans_are_not_numbers():
    assert errors_of({"age": True}, {"age": Int()}) == {"age": ["age must be a number"]}
    assert errors_of({"price": "9.99"}, {"price": Float()}) == {"price": ["price must be a number"]}


def test_numeric_bounds_and_sign():
    assert errors_of({"age": 17}, {"age": Int().min(18)}) == {"age": ["age must be at least 18"]}
    assert errors_of({"pct": 101}, {"pct": Float().between(0, 100)}) == {"pct": ["pct must be at most 100"]}
    assert errors_of({"n": 0}, {"n": Int().positive()}) == {"n": ["n must be positive"]}
    assert errors_of({"n": 1}, {"n": Int().negative()}) == {"n": ["n must be negative"]}


def test_multiple_of_tolerates_float_error():
    assert errors_of({"x": 0.3}, {"x": Float().multiple_of(0.1)}) == {}
    assert errors_of({"x": 0.35}, {"x": Float().step(0.1)}) == {"x": ["x must be a multiple of 0.1"]}


def test_non_finite_floats_fail_numeric_rules_instead_of_raising():
    inf, nan = float("inf"), float("nan")
    assert errors_of({"qty": inf}, {"qty": Float().multiple_of(0.5)}) == {"qty": ["qty must be a multiple of 0.5"]}
    assert errors_of({"qty": nan}, {"qty": Float().step(0.5)}) == {"qty": ["qty must be a multiple of 0.5"]}
    assert errors_of({"qty": nan}, {"qty": Float().min(0)}) == {"qty": ["qty must be at least 0"]}
    assert errors_of({"qty": nan}, {"qty": Float().max(10)}) == {"qty": ["qty must be at most 10"]}
    assert errors_of({"qty": nan}, {"qty": Float().positive()}) == {"qty": ["qty must be positive"]}
    assert errors_of({"qty": inf}, {"qty": Float().max(10)}) == {"qty": ["qty must be at most 10"]}


def test_multiple_of_large_integers():
    assert errors_of({"n": 10**400}, {"n": Int().multiple_of(5)}) == {}
    assert errors_of({"n": 10**400 + 1}, {"n": Int().multiple_of(5)}) == {"n": ["n must be a multiple of 5"]}


def test_multiple_of_zero_is_rejected_at_build_time():
    with pytest.raises(ValueError):
        Float().multiple_of(0)


def test_digit_counts():
    assert errors_of({"n": 1234}, {"n": Int().max_digits(3)}) == {"n": ["n must have at most 3 digits"]}
    assert errors_of({"n": -12}, {"n": Int().min_digits(3)}) == {"n": ["n must have at least 3 digits"]}


def test_coerced_numeric_strings():
    assert errors_of({"price": "0.5"}, {"price": Float().coerce().min(1)}) == {"price": ["price must be at least 1"]}
    assert errors_of({"qty": "3"}, {"qty": Int().coerce().max(5)}) == {}


def test_cross_field_comparison_is_lenient():
    schema = {"min_price": Float(), "max_price": Float().greater_than("min_price")}
    assert errors_of({"min_price": 10, "max_price": 5}, schema) == {
        "max_price": ["max_price must be greater than min_price"],
    }
    assert errors_of({"max_price": 5}, schema) == {}
    assert errors_of({"min_price": "ten", "max_price": 5}, {"max_price": Float().greater_than("min_price")}) == {}


def test_number_membership_uses_generic_message():
    assert errors_of({"n": 4}, {"n": Int().in_(1, 2, 3)}) == {"n": ["n must be one of the allowed values"]}


# =============================================================================
# Bool
# =============================================================================

def test_bool_requires_real_booleans_unless_coerced():
    assert errors_of({"flag": "yes"}, {"flag": Bool()}) == {"flag": ["flag must be a boolean"]}
    assert errors_of({"flag": "yes"}, {"flag": Bool().coerce()}) == {}
    assert errors_of({"flag": "maybe"}, {"flag": Bool().coerce()}) == {"flag": ["flag must be a boolean"]}


def test_bool_true_and_false():
    assert errors_of({"terms": False}, {"terms": Bool().true()}) == {"terms": ["terms must be true"]}
    assert errors_of({"spam": True}, {"spam": Bool().false()}) == {"spam": ["spam must be false"]}


# =============================================================================
# Time
# =============================================================================

def test_time_bounds():
    schema = {"when": Time().after(datetime(2024, 1, 1))}
    assert errors_of({"when": "2024-06-01T10:00:00Z"}, schema) == {}
    [message] = errors_of({"when": "2023-06-01T00:00:00"}, schema)["when"]
    assert message.startswith("when must be after")


def test_time_accepts_datetime_objects():
    schema = {"when": Time().before(datetime(2024, 1, 1, tzinfo=timezone.utc))}
    assert errors_of({"when": datetime(2023, 1, 1)}, schema) == {}


def test_time_format_errors():
    assert errors_of({"when": "not a date"}, {"when": Time()}) == {"when": ["when must be a valid time format"]}
    assert errors_of({"when": "2024-02-30"}, {"when": Time().format("%Y-%m-%d")}) == {
        "when": ["when must be a valid time format"],
    }
    assert errors_of({"when": 42}, {"when": Time()}) == {"when": ["when must be a time value"]}


def test_time_after_field():
    schema = {
        "start": Time().format("%Y-%m-%d"),
        "end": Time().format("%Y-%m-%d").after_field("start"),
    }
    assert errors_of({"start": "2024-01-10", "end": "2024-01-05"}, schema) == {"end": ["end must be after start"]}
    assert errors_of({"start": "2024-01-01", "end": "2024-01-05"}, schema) == {}
    assert errors_of({"end": "2024-01-05"}, schema) == {}


def test_time_between():
    schema = {"when": Time().format("%Y-%m-%d").between(datetime(2024, 1, 1), datetime(2024, 12, 31))}
    assert errors_of({"when": "2024-05-05"}, schema) == {}
    [message] = errors_of({"when": "2025-01-01"}, schema)["when"]
    assert message.startswith("when must be between")


def test_time_relative_to_now():
    past, future = "2000-01-01T00:00:00Z", "2999-01-01T00:00:00Z"
    assert errors_of({"when": future}, {"when": Time().after_now()}) == {}
    [message] = errors_of({"when": past}, {"when": Time().after_now()})["when"]
    assert message.startswith("when must be after")
    assert errors_of({"when": past}, {"when": Time().before_now()}) == {}
    assert errors_of({"when": future}, {"when": Time().before_now("must be in the past")}) == {
        "when": ["must be in the past"],
    }


def test_time_zone_applies_to_naive_values():
    plus_two = timezone(timedelta(hours=2))
    cutoff = datetime(2024, 1, 1, 12, tzinfo=timezone.utc)
    schema_utc = {"when": Time().format("%Y-%m-%d %H:%M").after(cutoff)}
    schema_local = {"when": Time().format("%Y-%m-%d %H:%M").timezone(plus_two).after(cutoff)}

    assert errors_of({"when": "2024-01-01 13:00"}, schema_utc) == {}
    [message] = errors_of({"when": "2024-01-01 13:00"}, schema_local)["when"]
    assert message.startswith("when must be after")
    assert errors_of({"when": "2024-01-01T13:00:00+00:00"}, {"when": Time().timezone(plus_two).after(cutoff)}) == {}
