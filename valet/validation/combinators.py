"""Combinator nodes: Optional, Enum, Literal, Union, Any."""
from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Any as AnyValue

from .base import RuleNode, ScalarNode
from .context import ValidationContext
from .errors import ErrorMap, Evaluation
from .validators import Equals, OneOf

if TYPE_CHECKING:
    from valet.checks.requests import CheckRequest


def _blank(value: AnyValue) -> bool:
    return value is None or value == ""


@dataclass(frozen=True)
class OptionalNode(RuleNode):
    """``None`` or ``""`` is valid; anything else goes to ``inner``."""
    inner: RuleNode | None = None

    def evaluate(self, ctx: ValidationContext, value: AnyValue) -> Evaluation:
        if _blank(value) or self.inner is None:
            return Evaluation()
        return self.inner.evaluate(ctx, value)

    def collect(self, path: str, value: AnyValue) -> list[CheckRequest]:
        if _blank(value) or self.inner is None:
            return []
        return self.inner.collect(path, value)


@dataclass(frozen=True)
class LiteralNode(ScalarNode):
    """Any present value; membership is expressed through ``rules``."""

    def prepare(self, ctx: ValidationContext, value: AnyValue, errors: ErrorMap) -> AnyValue:
        return value


@dataclass(frozen=True)
class UnionNode(RuleNode):
    """Valid when at least one option accepts the value."""
    options: tuple[RuleNode, ...] = ()

    def evaluate(self, ctx: ValidationContext, value: AnyValue) -> Evaluation:
        if value is None:
            return self.missing(ctx)

        result = Evaluation()
        matched = False
        for option in self.options:
            attempt = option.evaluate(ctx, value)
            result.deferred.extend(attempt.deferred)
            matched = matched or not attempt.errors

        if not matched:
            result.errors.add(ctx.full_path, self.render("union",
                f"{ctx.field_name} does not match any of the expected types", ctx, value))
        return result

    def collect(self, path: str, value: AnyValue) -> list[CheckRequest]:
        return [r for option in self.options for r in option.collect(path, value)]


@dataclass(frozen=True)
class AnyNode(RuleNode):
    """Accepts every value; only presence rules apply."""

    def evaluate(self, ctx: ValidationContext, value: AnyValue) -> Evaluation:
        if value is None:
            return self.missing(ctx)
        return Evaluation()


def Optional(node: RuleNode) -> OptionalNode:
    return OptionalNode(inner=node)


def Enum(*values: AnyValue) -> LiteralNode:
    return LiteralNode(rules=(OneOf(values),))


def Literal(value: AnyValue) -> LiteralNode:
    return LiteralNode(rules=(Equals(value, "literal"),))


def Union(*options: RuleNode) -> UnionNode:
    return UnionNode(options=tuple(options))


def Any() -> AnyNode:
    return AnyNode()
