"""Number nodes.

Usage:
    Int().required().min(1)
    Float().between(0, 100).multiple_of(0.5)
    Int().greater_than("min_price").exists("products", "id")
"""
from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Any

from .base import SKIP, ScalarNode
from .coercion import StringToFloat
from .context import ValidationContext
from .errors import ErrorMap
from .messages import Message
from . import validators as v

Number = int | float


@dataclass(frozen=True)
class NumberNode(ScalarNode):
    """Numbers (booleans excluded). ``Int`` rejects non-whole values."""
    integer_only: bool = False
    coerce_strings: bool = False

    def coerce(self) -> NumberNode:
        """Accept numeric strings such as ``"42"``."""
        return replace(self, coerce_strings=True)

    # -------------------------------------------------------------------- bounds

    def min(self, n: Number, message: Message | None = None) -> NumberNode: return self.rule(v.Minimum(n), message)

    def max(self, n: Number, message: Message | None = None) -> NumberNode: return self.rule(v.Maximum(n), message)

    def between(self, low: Number, high: Number) -> NumberNode: return self.min(low).max(high)

    def positive(self, message: Message | None = None) -> NumberNode: return self.rule(v.Sign(True), message)

    def negative(self, message: Message | None = None) -> NumberNode: return self.rule(v.Sign(False), message)

    def integer(self, message: Message | None = None) -> NumberNode: return self.rule(v.WholeNumber(), message)

    def multiple_of(self, step: Number, message: Message | None = None) -> NumberNode:
        return self.rule(v.MultipleOf(step), message)

    step = multiple_of

    def min_digits(self, n: int, message: Message | None = None) -> NumberNode:
        return self.rule(v.DigitCount(minimum=n), message)

    def max_digits(self, n: int, message: Message | None = None) -> NumberNode:
        return self.rule(v.DigitCount(maximum=n), message)

    # --------------------------------------------------------------- membership

    def in_(self, *values: Number, message: Message | None = None) -> NumberNode:
        return self.rule(v.OneOf(values, "{field} must be one of the allowed values"), message)

    def not_in(self, *values: Number, message: Message | None = None) -> NumberNode:
        return self.rule(v.NoneOf(values, "{field} must not be one of the disallowed values"), message)

    def regex(self, pattern: str, message: Message | None = None) -> NumberNode:
        return self.rule(v.Pattern(pattern), message)

    def not_regex(self, pattern: str, message: Message | None = None) -> NumberNode:
        return self.rule(v.Pattern(pattern, name="not_regex", negate=True), message)

    # --------------------------------------------------------------- cross-field

    def less_than(self, path: str, message: Message | None = None) -> NumberNode:
        return self.rule(v.FieldComparison(path, "less_than"), message)

    def greater_than(self, path: str, message: Message | None = None) -> NumberNode:
        return self.rule(v.FieldComparison(path, "greater_than"), message)

    def less_than_or_equal(self, path: str, message: Message | None = None) -> NumberNode:
        return self.rule(v.FieldComparison(path, "less_than_or_equal"), message)

    def greater_than_or_equal(self, path: str, message: Message | None = None) -> NumberNode:
        return self.rule(v.FieldComparison(path, "greater_than_or_equal"), message)

    # ----------------------------------------------------------------- contracts

    def to_number(self, value: Any) -> Any:
        if self.coerce_strings and isinstance(value, str):
            value = StringToFloat().coerce(value).unwrap_or(value)
        if not v.is_number(value):
            return SKIP
        if self.integer_only:
            if isinstance(value, float):
                if not value.is_integer():
                    return SKIP
                return int(value)
        return value

    def prepare(self, ctx: ValidationContext, value: Any, errors: ErrorMap) -> Any:
        number = self.to_number(value)
        if number is SKIP:
            expected = "an integer" if self.integer_only and v.is_number(value) else "a number"
            self.type_error(ctx, errors, value, expected)
        return number

    def normalize(self, value: Any) -> Any:
        return self.to_number(value)


def Int() -> NumberNode:
    return NumberNode(integer_only=True)


def Float() -> NumberNode:
    return NumberNode()
