"""String node.

Usage:
    String().required().trim().min(3).max(50)
    String().email().unique("users", "email", ignore=current_email)
"""
from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, replace
from typing import Any

from .base import SKIP, ScalarNode
from .context import ValidationContext
from .errors import ErrorMap
from .messages import Message
from . import validators as v

Transform = Callable[[str], str]


@dataclass(frozen=True)
class StringNode(ScalarNode):
    """Strings, after optional transforms. An empty string counts as absent."""
    transforms: tuple[Transform, ...] = ()

    # ---------------------------------------------------------------- transforms

    def transform(self, fn: Transform) -> StringNode:
        return replace(self, transforms=(*self.transforms, fn))

    def trim(self) -> StringNode: return self.transform(str.strip)

    def lowercase(self) -> StringNode: return self.transform(str.lower)

    def uppercase(self) -> StringNode: return self.transform(str.upper)

    # -------------------------------------------------------------------- length

    def min(self, n: int, message: Message | None = None) -> StringNode: return self.rule(v.MinLength(n), message)

    def max(self, n: int, message: Message | None = None) -> StringNode: return self.rule(v.MaxLength(n), message)

    def length(self, n: int, message: Message | None = None) -> StringNode: return self.rule(v.ExactLength(n), message)

    # -------------------------------------------------------------------- format

    def email(self, message: Message | None = None) -> StringNode: return self.rule(v.email(), message)

    def url(self, *schemes: str, message: Message | None = None) -> StringNode:
        return self.rule(v.URL(tuple(s.lower() for s in schemes)), message)

    def uuid(self, message: Message | None = None) -> StringNode: return self.rule(v.uuid(), message)

    def ulid(self, message: Message | None = None) -> StringNode: return self.rule(v.ulid(), message)

    def ip(self, message: Message | None = None) -> StringNode: return self.rule(v.IPAddress(), message)

    def ipv4(self, message: Message | None = None) -> StringNode: return self.rule(v.IPAddress(4), message)

    def ipv6(self, message: Message | None = None) -> StringNode: return self.rule(v.IPAddress(6), message)

    def json(self, message: Message | None = None) -> StringNode: return self.rule(v.JSONText(), message)

    def hex_color(self, message: Message | None = None) -> StringNode: return self.rule(v.hex_color(), message)

    def base64(self, message: Message | None = None) -> StringNode: return self.rule(v.Base64Text(), message)

    def mac(self, message: Message | None = None) -> StringNode: return self.rule(v.mac(), message)

    def alpha(self, message: Message | None = None) -> StringNode: return self.rule(v.alpha(), message)

    def alpha_numeric(self, message: Message | None = None) -> StringNode: return self.rule(v.alpha_numeric(), message)

    def alpha_dash(self, message: Message | None = None) -> StringNode: return self.rule(v.alpha_dash(), message)

    def ascii(self, message: Message | None = None) -> StringNode: return self.rule(v.ASCIIText(), message)

    def digits(self, n: int, message: Message | None = None) -> StringNode: return self.rule(v.Digits(n), message)

    def regex(self, pattern: str, message: Message | None = None) -> StringNode:
        return self.rule(v.Pattern(pattern), message)

    def not_regex(self, pattern: str, message: Message | None = None) -> StringNode:
        return self.rule(v.Pattern(pattern, name="not_regex", negate=True), message)

    # -------------------------------------------------------------------- affixes

    def starts_with(self, prefix: str, message: Message | None = None) -> StringNode:
        return self.rule(v.StartsWith((prefix,)), message)

    def ends_with(self, suffix: str, message: Message | None = None) -> StringNode:
        return self.rule(v.EndsWith((suffix,)), message)

    def doesnt_start_with(self, *prefixes: str) -> StringNode:
        return self.rule(v.StartsWith(prefixes, negate=True))

    def doesnt_end_with(self, *suffixes: str) -> StringNode:
        return self.rule(v.EndsWith(suffixes, negate=True))

    def contains(self, substring: str, message: Message | None = None) -> StringNode:
        return self.rule(v.Contains((substring,)), message)

    def includes(self, *substrings: str) -> StringNode:
        return self.rule(v.Contains(substrings, name="includes"))

    # ---------------------------------------------------------------- membership

    def in_(self, *values: str, message: Message | None = None) -> StringNode:
        return self.rule(v.OneOf(values), message)

    def not_in(self, *values: str, message: Message | None = None) -> StringNode:
        return self.rule(v.NoneOf(values), message)

    # --------------------------------------------------------------- cross-field

    def same_as(self, path: str, message: Message | None = None) -> StringNode:
        return self.rule(v.FieldEquality(path), message)

    def different_from(self, path: str, message: Message | None = None) -> StringNode:
        return self.rule(v.FieldEquality(path, negate=True), message)

    # ----------------------------------------------------------------- contracts

    def apply_transforms(self, value: str) -> str:
        for fn in self.transforms:
            value = fn(value)
        return value

    def prepare(self, ctx: ValidationContext, value: Any, errors: ErrorMap) -> Any:
        if not isinstance(value, str):
            self.type_error(ctx, errors, value, "a string")
            return SKIP
        value = self.apply_transforms(value)
        if value == "":
            errors.merge(self.missing(ctx).errors)
            return SKIP
        return value

    def normalize(self, value: Any) -> Any:
        if not isinstance(value, str):
            return SKIP
        value = self.apply_transforms(value)
        return value or SKIP


def String() -> StringNode:
    return StringNode()
