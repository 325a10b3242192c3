"""Bool node."""
from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Any

from .base import SKIP, ScalarNode
from .coercion import StringToBool
from .context import ValidationContext
from .errors import ErrorMap
from .messages import Message
from . import validators as v


@dataclass(frozen=True)
class BoolNode(ScalarNode):
    coerce_strings: bool = False

    def coerce(self) -> BoolNode:
        """Accept "true"/"1"/"yes"/"on" and "false"/"0"/"no"/"off"/""."""
        return replace(self, coerce_strings=True)

    def true(self, message: Message | None = None) -> BoolNode:
        return self.rule(v.Equals(True, "true", "{field} must be true"), message)

    def false(self, message: Message | None = None) -> BoolNode:
        return self.rule(v.Equals(False, "false", "{field} must be false"), message)

    def to_bool(self, value: Any) -> Any:
        if isinstance(value, bool):
            return value
        if self.coerce_strings:
            return StringToBool().coerce(value).unwrap_or(SKIP)
        return SKIP

    def prepare(self, ctx: ValidationContext, value: Any, errors: ErrorMap) -> Any:
        result = self.to_bool(value)
        if result is SKIP:
            self.type_error(ctx, errors, value, "a boolean")
        return result

    def normalize(self, value: Any) -> Any:
        return self.to_bool(value)


def Bool() -> BoolNode:
    return BoolNode()
