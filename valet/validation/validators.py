"""Leaf Rule Catalogue

Stateless atomic rules evaluated by the scalar nodes. Each rule checks an
already type-checked value and reports at most one failure with a default
message built from the field name. Nodes run their rules in the order they
were configured and keep going after a failure, so every violated rule at a
path is reported.

Features:
- Frozen dataclass rules, safe to share between schemas and threads
- Compiled patterns served from the process-wide pattern cache
- Cross-field comparisons that stay silent when the other field is absent
- Epsilon-tolerant multiple-of
"""
from __future__ import annotations

import base64
import binascii
import ipaddress
import json
import math
from abc import ABC, abstractmethod
from collections.abc import Callable, Collection
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any
from urllib.parse import urlparse

from valet.errors import ErrorCode

from .cache import compile_pattern
from .context import ValidationContext
from .messages import Message, describe, render
from .paths import LookupResult

EMAIL_PATTERN = r"^[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}$"
UUID_PATTERN = r"^[0-9a-fA-F]{8}-[0-9a-fA-F]{4}-[1-5][0-9a-fA-F]{3}-[89abAB][0-9a-fA-F]{3}-[0-9a-fA-F]{12}$"
ULID_PATTERN = r"^[0-7][0-9A-HJKMNP-TV-Z]{25}$"
HEX_COLOR_PATTERN = r"^#([0-9a-fA-F]{3}|[0-9a-fA-F]{6})$"
MAC_PATTERN = r"^([0-9A-Fa-f]{2}[:-]){5}[0-9A-Fa-f]{2}$"
ALPHA_PATTERN = r"^[a-zA-Z]+$"
ALPHA_NUMERIC_PATTERN = r"^[a-zA-Z0-9]+$"
ALPHA_DASH_PATTERN = r"^[a-zA-Z0-9_-]+$"

EPSILON = 1e-9


def format_number(value: int | float) -> str:
    """Render numbers without a trailing ``.0`` for whole floats."""
    if isinstance(value, float) and value.is_integer() and abs(value) < 1e15:
        return str(int(value))
    return str(value)


def is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _is_nan(value: Any) -> bool:
    return isinstance(value, float) and math.isnan(value)


@dataclass(frozen=True, slots=True)
class ValidationResult:
    """Result of a single rule check."""
    is_valid: bool
    error_message: str | None = None
    error_code: ErrorCode | None = None
    constraint: str | None = None
    param: Any = None

    @classmethod
    def valid(cls) -> ValidationResult: return _VALID

    @classmethod
    def invalid(cls, message: str, code: ErrorCode = ErrorCode.E2005_CONSTRAINT_VIOLATION, *,
                constraint: str | None = None, param: Any = None) -> ValidationResult:
        return cls(is_valid=False, error_message=message, error_code=code, constraint=constraint, param=param)

    def to_dict(self) -> dict[str, Any]:
        if self.is_valid: return {"valid": True}
        return {"valid": False, "message": self.error_message, "code": self.error_code.name if self.error_code else None,
            "constraint": self.constraint, "param": self.param}


_VALID = ValidationResult(is_valid=True)


class AtomicValidator(ABC):
    """Base class for leaf rules.

    ``constraint_name`` doubles as the key for per-rule message overrides
    (``node.message("min", "...")``).
    """

    @abstractmethod
    def validate(self, value: Any, ctx: ValidationContext) -> ValidationResult:
        """Check an already type-checked value."""

    @property
    @abstractmethod
    def constraint_name(self) -> str:
        """Rule key, e.g. ``min`` or ``email``."""

    def fail(self, ctx: ValidationContext, template: str, code: ErrorCode = ErrorCode.E2005_CONSTRAINT_VIOLATION,
             param: Any = None) -> ValidationResult:
        return ValidationResult.invalid(template.format(field=ctx.field_name, param=param), code,
            constraint=self.constraint_name, param=param)

    def with_message(self, message: Message) -> WithMessage: return WithMessage(self, message)


@dataclass(frozen=True, slots=True)
class WithMessage(AtomicValidator):
    """Replace the failure message of ``inner``."""
    inner: AtomicValidator
    message: Message

    @property
    def constraint_name(self) -> str: return self.inner.constraint_name

    def validate(self, value: Any, ctx: ValidationContext) -> ValidationResult:
        result = self.inner.validate(value, ctx)
        if result.is_valid:
            return result
        text = render(self.message, result.error_message or "", ctx, rule=self.constraint_name,
            value=value, param=result.param)
        return ValidationResult.invalid(text, result.error_code or ErrorCode.E2005_CONSTRAINT_VIOLATION,
            constraint=result.constraint, param=result.param)


# ============================================================================
# Length Validators
# ============================================================================

@dataclass(frozen=True, slots=True)
class MinLength(AtomicValidator):
    """Minimum length in characters."""
    length: int

    @property
    def constraint_name(self) -> str: return "min"

    def validate(self, value: Any, ctx: ValidationContext) -> ValidationResult:
        if len(value) < self.length:
            return self.fail(ctx, "{field} must be at least {param} characters", ErrorCode.E2003_OUT_OF_RANGE, self.length)
        return ValidationResult.valid()


@dataclass(frozen=True, slots=True)
class MaxLength(AtomicValidator):
    """Maximum length in characters."""
    length: int

    @property
    def constraint_name(self) -> str: return "max"

    def validate(self, value: Any, ctx: ValidationContext) -> ValidationResult:
        if len(value) > self.length:
            return self.fail(ctx, "{field} must be at most {param} characters", ErrorCode.E2003_OUT_OF_RANGE, self.length)
        return ValidationResult.valid()


@dataclass(frozen=True, slots=True)
class ExactLength(AtomicValidator):
    length: int

    @property
    def constraint_name(self) -> str: return "length"

    def validate(self, value: Any, ctx: ValidationContext) -> ValidationResult:
        if len(value) != self.length:
            return self.fail(ctx, "{field} must be exactly {param} characters", ErrorCode.E2003_OUT_OF_RANGE, self.length)
        return ValidationResult.valid()


# ============================================================================
# Format Validators
# ============================================================================

@dataclass(frozen=True, slots=True)
class Pattern(AtomicValidator):
    """Match (or, with ``negate``, refuse) a regular expression.

    The pattern is compiled eagerly so a bad pattern fails at schema build
    time with ``re.error``.
    """
    pattern: str
    name: str = "regex"
    template: str = "{field} format is invalid"
    negate: bool = False
    code: ErrorCode = ErrorCode.E2002_INVALID_FORMAT

    def __post_init__(self):
        compile_pattern(self.pattern)

    @property
    def constraint_name(self) -> str: return self.name

    def validate(self, value: Any, ctx: ValidationContext) -> ValidationResult:
        text = value if isinstance(value, str) else format_number(value)
        matched = compile_pattern(self.pattern).search(text) is not None
        if matched == self.negate:
            return self.fail(ctx, self.template, self.code, self.pattern)
        return ValidationResult.valid()


def email() -> Pattern:
    return Pattern(EMAIL_PATTERN, "email", "{field} must be a valid email")


def uuid() -> Pattern:
    return Pattern(UUID_PATTERN, "uuid", "{field} must be a valid UUID")


def ulid() -> Pattern:
    return Pattern(ULID_PATTERN, "ulid", "{field} must be a valid ULID")


def hex_color() -> Pattern:
    return Pattern(HEX_COLOR_PATTERN, "hex_color", "{field} must be a valid hex color")


def mac() -> Pattern:
    return Pattern(MAC_PATTERN, "mac", "{field} must be a valid MAC address")


def alpha() -> Pattern:
    return Pattern(ALPHA_PATTERN, "alpha", "{field} must contain only letters")


def alpha_numeric() -> Pattern:
    return Pattern(ALPHA_NUMERIC_PATTERN, "alpha_numeric", "{field} must contain only letters and numbers")


def alpha_dash() -> Pattern:
    return Pattern(ALPHA_DASH_PATTERN, "alpha_dash", "{field} must contain only letters, numbers, dashes, and underscores")


@dataclass(frozen=True, slots=True)
class Digits(AtomicValidator):
    """String made of exactly ``count`` decimal digits."""
    count: int

    @property
    def constraint_name(self) -> str: return "digits"

    def validate(self, value: Any, ctx: ValidationContext) -> ValidationResult:
        if not (len(value) == self.count and value.isascii() and value.isdigit()):
            return self.fail(ctx, "{field} must be exactly {param} digits", ErrorCode.E2002_INVALID_FORMAT, self.count)
        return ValidationResult.valid()


@dataclass(frozen=True, slots=True)
class URL(AtomicValidator):
    """Absolute URL, optionally restricted to ``schemes``."""
    schemes: tuple[str, ...] = ()

    @property
    def constraint_name(self) -> str: return "url"

    def validate(self, value: Any, ctx: ValidationContext) -> ValidationResult:
        try:
            parsed = urlparse(value)
        except ValueError:
            parsed = None
        if parsed is None or not parsed.scheme or not parsed.netloc:
            return self.fail(ctx, "{field} must be a valid URL", ErrorCode.E2002_INVALID_FORMAT)
        if self.schemes and parsed.scheme.lower() not in self.schemes:
            if set(self.schemes) == {"http"}:
                template = "{field} must be an HTTP URL"
            elif set(self.schemes) == {"https"}:
                template = "{field} must be an HTTPS URL"
            elif set(self.schemes) == {"http", "https"}:
                template = "{field} must be an HTTP or HTTPS URL"
            else:
                template = "{field} must use one of the schemes: {param}"
            return self.fail(ctx, template, ErrorCode.E2002_INVALID_FORMAT, describe(self.schemes))
        return ValidationResult.valid()


@dataclass(frozen=True, slots=True)
class IPAddress(AtomicValidator):
    version: int | None = None

    @property
    def constraint_name(self) -> str:
        return f"ipv{self.version}" if self.version else "ip"

    def validate(self, value: Any, ctx: ValidationContext) -> ValidationResult:
        try:
            address = ipaddress.ip_address(value)
        except ValueError:
            address = None
        if address is None or (self.version and address.version != self.version):
            label = f"IPv{self.version}" if self.version else "IP"
            return self.fail(ctx, f"{{field}} must be a valid {label} address", ErrorCode.E2002_INVALID_FORMAT)
        return ValidationResult.valid()


@dataclass(frozen=True, slots=True)
class JSONText(AtomicValidator):
    @property
    def constraint_name(self) -> str: return "json"

    def validate(self, value: Any, ctx: ValidationContext) -> ValidationResult:
        try:
            json.loads(value)
        except ValueError:
            return self.fail(ctx, "{field} must be valid JSON", ErrorCode.E2002_INVALID_FORMAT)
        return ValidationResult.valid()


@dataclass(frozen=True, slots=True)
class Base64Text(AtomicValidator):
    @property
    def constraint_name(self) -> str: return "base64"

    def validate(self, value: Any, ctx: ValidationContext) -> ValidationResult:
        try:
            base64.b64decode(value, validate=True)
        except (binascii.Error, ValueError):
            return self.fail(ctx, "{field} must be valid base64", ErrorCode.E2002_INVALID_FORMAT)
        return ValidationResult.valid()


@dataclass(frozen=True, slots=True)
class ASCIIText(AtomicValidator):
    @property
    def constraint_name(self) -> str: return "ascii"

    def validate(self, value: Any, ctx: ValidationContext) -> ValidationResult:
        if not value.isascii():
            return self.fail(ctx, "{field} must contain only ASCII characters", ErrorCode.E2002_INVALID_FORMAT)
        return ValidationResult.valid()


# ============================================================================
# Affix / Substring Validators
# ============================================================================

@dataclass(frozen=True, slots=True)
class StartsWith(AtomicValidator):
    prefixes: tuple[str, ...]
    negate: bool = False

    @property
    def constraint_name(self) -> str: return "doesnt_start_with" if self.negate else "starts_with"

    def validate(self, value: Any, ctx: ValidationContext) -> ValidationResult:
        if self.negate:
            for prefix in self.prefixes:
                if value.startswith(prefix):
                    return self.fail(ctx, "{field} must not start with {param}", param=prefix)
        elif not value.startswith(self.prefixes):
            return self.fail(ctx, "{field} must start with {param}", param=describe(self.prefixes))
        return ValidationResult.valid()


@dataclass(frozen=True, slots=True)
class EndsWith(AtomicValidator):
    suffixes: tuple[str, ...]
    negate: bool = False

    @property
    def constraint_name(self) -> str: return "doesnt_end_with" if self.negate else "ends_with"

    def validate(self, value: Any, ctx: ValidationContext) -> ValidationResult:
        if self.negate:
            for suffix in self.suffixes:
                if value.endswith(suffix):
                    return self.fail(ctx, "{field} must not end with {param}", param=suffix)
        elif not value.endswith(self.suffixes):
            return self.fail(ctx, "{field} must end with {param}", param=describe(self.suffixes))
        return ValidationResult.valid()


@dataclass(frozen=True, slots=True)
class Contains(AtomicValidator):
    """Every substring must be present; the first missing one is reported."""
    substrings: tuple[str, ...]
    name: str = "contains"

    @property
    def constraint_name(self) -> str: return self.name

    def validate(self, value: Any, ctx: ValidationContext) -> ValidationResult:
        for substring in self.substrings:
            if substring not in value:
                return self.fail(ctx, "{field} must contain {param}", param=substring)
        return ValidationResult.valid()


# ============================================================================
# Membership Validators
# ============================================================================

@dataclass(frozen=True, slots=True)
class OneOf(AtomicValidator):
    """Value must be one of ``options``."""
    options: tuple[Any, ...]
    template: str = "{field} must be one of: {param}"

    @property
    def constraint_name(self) -> str: return "in"

    def validate(self, value: Any, ctx: ValidationContext) -> ValidationResult:
        if not _member(value, self.options):
            return self.fail(ctx, self.template, param=describe(self.options))
        return ValidationResult.valid()


@dataclass(frozen=True, slots=True)
class NoneOf(AtomicValidator):
    options: tuple[Any, ...]
    template: str = "{field} must not be one of: {param}"

    @property
    def constraint_name(self) -> str: return "not_in"

    def validate(self, value: Any, ctx: ValidationContext) -> ValidationResult:
        if _member(value, self.options):
            return self.fail(ctx, self.template, param=describe(self.options))
        return ValidationResult.valid()


def _member(value: Any, options: Collection[Any]) -> bool:
    # True == 1 in Python; keep booleans and numbers apart
    return any(value == o and isinstance(value, bool) == isinstance(o, bool) for o in options)


# ============================================================================
# Numeric Validators
# ============================================================================

@dataclass(frozen=True, slots=True)
class Minimum(AtomicValidator):
    bound: int | float

    @property
    def constraint_name(self) -> str: return "min"

    def validate(self, value: Any, ctx: ValidationContext) -> ValidationResult:
        if _is_nan(value) or value < self.bound:
            return self.fail(ctx, "{field} must be at least {param}", ErrorCode.E2003_OUT_OF_RANGE, format_number(self.bound))
        return ValidationResult.valid()


@dataclass(frozen=True, slots=True)
class Maximum(AtomicValidator):
    bound: int | float

    @property
    def constraint_name(self) -> str: return "max"

    def validate(self, value: Any, ctx: ValidationContext) -> ValidationResult:
        if _is_nan(value) or value > self.bound:
            return self.fail(ctx, "{field} must be at most {param}", ErrorCode.E2003_OUT_OF_RANGE, format_number(self.bound))
        return ValidationResult.valid()


@dataclass(frozen=True, slots=True)
class Sign(AtomicValidator):
    """Strictly positive (``positive=True``) or strictly negative."""
    positive: bool = True

    @property
    def constraint_name(self) -> str: return "positive" if self.positive else "negative"

    def validate(self, value: Any, ctx: ValidationContext) -> ValidationResult:
        if _is_nan(value) or ((value <= 0) if self.positive else (value >= 0)):
            return self.fail(ctx, f"{{field}} must be {self.constraint_name}", ErrorCode.E2003_OUT_OF_RANGE)
        return ValidationResult.valid()


@dataclass(frozen=True, slots=True)
class WholeNumber(AtomicValidator):
    @property
    def constraint_name(self) -> str: return "integer"

    def validate(self, value: Any, ctx: ValidationContext) -> ValidationResult:
        if isinstance(value, float) and not value.is_integer():
            return self.fail(ctx, "{field} must be an integer", ErrorCode.E2004_INVALID_TYPE)
        return ValidationResult.valid()


@dataclass(frozen=True, slots=True)
class MultipleOf(AtomicValidator):
    """Multiple of ``step`` within a 1e-9 tolerance on the quotient. Infinity and NaN never are."""
    step: int | float

    def __post_init__(self):
        if self.step == 0:
            raise ValueError("multiple_of step must be non-zero")

    @property
    def constraint_name(self) -> str: return "multiple_of"

    def _is_multiple(self, value: Any) -> bool:
        if isinstance(value, int) and isinstance(self.step, int):
            return value % self.step == 0
        if isinstance(value, float) and not math.isfinite(value):
            return False
        try:
            quotient = value / self.step
        except OverflowError:
            return False
        if not math.isfinite(quotient):
            return False
        return math.isclose(quotient, round(quotient), rel_tol=0.0, abs_tol=EPSILON)

    def validate(self, value: Any, ctx: ValidationContext) -> ValidationResult:
        if not self._is_multiple(value):
            return self.fail(ctx, "{field} must be a multiple of {param}", param=format_number(self.step))
        return ValidationResult.valid()


@dataclass(frozen=True, slots=True)
class DigitCount(AtomicValidator):
    """Bounds on the number of digits, ignoring sign and decimal point."""
    minimum: int | None = None
    maximum: int | None = None

    @property
    def constraint_name(self) -> str: return "min_digits" if self.maximum is None else "max_digits"

    def validate(self, value: Any, ctx: ValidationContext) -> ValidationResult:
        digits = sum(ch.isdigit() for ch in format_number(value))
        if self.minimum is not None and digits < self.minimum:
            return self.fail(ctx, "{field} must have at least {param} digits", ErrorCode.E2003_OUT_OF_RANGE, self.minimum)
        if self.maximum is not None and digits > self.maximum:
            return self.fail(ctx, "{field} must have at most {param} digits", ErrorCode.E2003_OUT_OF_RANGE, self.maximum)
        return ValidationResult.valid()


# ============================================================================
# Cross-field Validators
# ============================================================================

_COMPARISONS: dict[str, tuple[Callable[[Any, Any], bool], str]] = {
    "less_than": (lambda a, b: a < b, "{field} must be less than {param}"),
    "greater_than": (lambda a, b: a > b, "{field} must be greater than {param}"),
    "less_than_or_equal": (lambda a, b: a <= b, "{field} must be less than or equal to {param}"),
    "greater_than_or_equal": (lambda a, b: a >= b, "{field} must be greater than or equal to {param}"),
}


@dataclass(frozen=True, slots=True)
class FieldComparison(AtomicValidator):
    """Compare against another numeric field of the root instance.

    Silent when the other field is absent or not a number.
    """
    other: str
    operator: str

    def __post_init__(self):
        if self.operator not in _COMPARISONS:
            raise ValueError(f"unknown comparison: {self.operator}")

    @property
    def constraint_name(self) -> str: return self.operator

    def validate(self, value: Any, ctx: ValidationContext) -> ValidationResult:
        other = ctx.lookup(self.other)
        if not other.exists() or not is_number(other.raw):
            return ValidationResult.valid()
        compare, template = _COMPARISONS[self.operator]
        if not compare(value, other.raw):
            return self.fail(ctx, template, ErrorCode.E2003_OUT_OF_RANGE, self.other)
        return ValidationResult.valid()


@dataclass(frozen=True, slots=True)
class FieldEquality(AtomicValidator):
    """Equal to (or, with ``negate``, different from) another string field."""
    other: str
    negate: bool = False

    @property
    def constraint_name(self) -> str: return "different_from" if self.negate else "same_as"

    def validate(self, value: Any, ctx: ValidationContext) -> ValidationResult:
        other = ctx.lookup(self.other)
        if not other.exists() or not isinstance(other.raw, str):
            return ValidationResult.valid()
        if (value == other.raw) == self.negate:
            template = "{field} must be different from {param}" if self.negate else "{field} must match {param}"
            return self.fail(ctx, template, param=self.other)
        return ValidationResult.valid()


# ============================================================================
# Exact Value Validators
# ============================================================================

@dataclass(frozen=True, slots=True)
class Equals(AtomicValidator):
    expected: Any
    name: str = "equals"
    template: str = "{field} must be exactly {param}"

    @property
    def constraint_name(self) -> str: return self.name

    def validate(self, value: Any, ctx: ValidationContext) -> ValidationResult:
        if not _member(value, (self.expected,)):
            return self.fail(ctx, self.template, param=self.expected)
        return ValidationResult.valid()


# ============================================================================
# Temporal Validators
# ============================================================================

@dataclass(frozen=True, slots=True)
class TimeBound(AtomicValidator):
    """Strictly after or strictly before a fixed instant."""
    bound: datetime
    after: bool = True

    @property
    def constraint_name(self) -> str: return "after" if self.after else "before"

    def validate(self, value: Any, ctx: ValidationContext) -> ValidationResult:
        if (value <= self.bound) if self.after else (value >= self.bound):
            return self.fail(ctx, f"{{field}} must be {self.constraint_name} {{param}}",
                ErrorCode.E2003_OUT_OF_RANGE, self.bound.isoformat())
        return ValidationResult.valid()


@dataclass(frozen=True, slots=True)
class TimeNowBound(AtomicValidator):
    """After or before the clock at validation time."""
    after: bool = True

    @property
    def constraint_name(self) -> str: return "after" if self.after else "before"

    def validate(self, value: Any, ctx: ValidationContext) -> ValidationResult:
        return TimeBound(datetime.now(timezone.utc), self.after).validate(value, ctx)


@dataclass(frozen=True, slots=True)
class TimeRange(AtomicValidator):
    start: datetime
    end: datetime

    @property
    def constraint_name(self) -> str: return "between"

    def validate(self, value: Any, ctx: ValidationContext) -> ValidationResult:
        if value < self.start or value > self.end:
            return ValidationResult.invalid(
                f"{ctx.field_name} must be between {self.start.isoformat()} and {self.end.isoformat()}",
                ErrorCode.E2003_OUT_OF_RANGE, constraint=self.constraint_name, param=(self.start, self.end))
        return ValidationResult.valid()


@dataclass(frozen=True, slots=True)
class TimeFieldBound(AtomicValidator):
    """After or before another time field; silent when it is absent or unparsable."""
    other: str
    parse: Callable[[Any], datetime | None]
    after: bool = True

    @property
    def constraint_name(self) -> str: return "after_field" if self.after else "before_field"

    def validate(self, value: Any, ctx: ValidationContext) -> ValidationResult:
        other = ctx.lookup(self.other)
        bound = self.parse(other.raw) if other.exists() else None
        if bound is None:
            return ValidationResult.valid()
        if (value <= bound) if self.after else (value >= bound):
            word = "after" if self.after else "before"
            return self.fail(ctx, f"{{field}} must be {word} {{param}}", ErrorCode.E2003_OUT_OF_RANGE, self.other)
        return ValidationResult.valid()


# ============================================================================
# Custom Validators
# ============================================================================

CustomFunc = Callable[[Any, Callable[[str], LookupResult]], Any]


@dataclass(frozen=True, slots=True)
class Custom(AtomicValidator):
    """User predicate ``fn(value, lookup)``.

    ``None`` or ``True`` passes. ``False`` fails with a generic message, a
    string fails with that message, and a raised ``ValueError`` fails with
    its text.
    """
    fn: CustomFunc
    name: str = "custom"

    @property
    def constraint_name(self) -> str: return self.name

    def validate(self, value: Any, ctx: ValidationContext) -> ValidationResult:
        try:
            outcome = self.fn(value, ctx.lookup)
        except ValueError as exc:
            return ValidationResult.invalid(str(exc), constraint=self.name)
        if outcome is None or outcome is True:
            return ValidationResult.valid()
        if outcome is False:
            return self.fail(ctx, "{field} is invalid")
        return ValidationResult.invalid(str(outcome), constraint=self.name)
