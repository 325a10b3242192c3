"""Object node.

Usage:
    Object().shape({"street": String().required(), "zip": String().digits(5)}).strict()
    user.pick("name", "email")
    user.partial()
"""
from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field, replace
from typing import TYPE_CHECKING, Any

from .base import RuleNode, join
from .combinators import OptionalNode
from .context import ValidationContext
from .errors import Evaluation
from .messages import Message, render
from .validators import AtomicValidator, Custom, CustomFunc, WithMessage

if TYPE_CHECKING:
    from valet.checks.requests import CheckRequest


def evaluate_fields(
    fields: Mapping[str, RuleNode],
    ctx: ValidationContext,
    obj: Mapping[str, Any],
    *,
    strict: bool = False,
    strict_message: Message | None = None,
    abort_early: bool = False,
) -> Evaluation:
    """Walk declared fields of ``obj`` in declaration order.

    Unknown keys are reported at the object's own path when ``strict``.
    With ``abort_early`` the walk stops after the first field with errors.
    """
    result = Evaluation()
    if strict:
        for key in obj:
            if key not in fields:
                message = render(strict_message, f"unknown field: {key}", ctx, rule="strict", value=obj[key], param=key)
                result.errors.add(ctx.full_path, message)

    for name, node in fields.items():
        child = node.evaluate(ctx.child(name), obj.get(name))
        result.merge(child)
        if abort_early and child.errors:
            break
    return result


def collect_fields(fields: Mapping[str, RuleNode], path: str, obj: Any) -> list[CheckRequest]:
    if not isinstance(obj, Mapping):
        return []
    requests: list[CheckRequest] = []
    for name, node in fields.items():
        value = obj.get(name)
        if value is not None:
            requests.extend(node.collect(join(path, name), value))
    return requests


@dataclass(frozen=True)
class ObjectNode(RuleNode):
    fields: Mapping[str, RuleNode] = field(default_factory=dict)
    is_strict: bool = False
    rules: tuple[AtomicValidator, ...] = ()

    # ------------------------------------------------------------------ builders

    def shape(self, fields: Mapping[str, RuleNode]) -> ObjectNode:
        return replace(self, fields=dict(fields))

    def strict(self, message: Message | None = None) -> ObjectNode:
        node = replace(self, is_strict=True)
        return node.message("strict", message) if message is not None else node

    def passthrough(self) -> ObjectNode:
        return replace(self, is_strict=False)

    def pick(self, *names: str) -> ObjectNode:
        return replace(self, fields={n: node for n, node in self.fields.items() if n in names})

    def omit(self, *names: str) -> ObjectNode:
        return replace(self, fields={n: node for n, node in self.fields.items() if n not in names})

    def partial(self) -> ObjectNode:
        """Every field becomes optional."""
        return replace(self, fields={n: _optional(node) for n, node in self.fields.items()})

    def extend(self, fields: Mapping[str, RuleNode]) -> ObjectNode:
        return replace(self, fields={**self.fields, **fields})

    def merge(self, other: ObjectNode) -> ObjectNode:
        """Union of both shapes; ``other`` wins on field name conflicts."""
        return replace(self, fields={**self.fields, **other.fields}, is_strict=self.is_strict or other.is_strict,
            rules=(*self.rules, *other.rules))

    def custom(self, fn: CustomFunc, message: Message | None = None) -> ObjectNode:
        """``fn(obj, lookup)`` reported at the object's own path."""
        validator: AtomicValidator = Custom(fn)
        if message is not None:
            validator = WithMessage(validator, message)
        return replace(self, rules=(*self.rules, validator))

    # ----------------------------------------------------------------- contracts

    def evaluate(self, ctx: ValidationContext, value: Any) -> Evaluation:
        if value is None:
            return self.missing(ctx)

        if not isinstance(value, Mapping):
            result = Evaluation()
            self.type_error(ctx, result.errors, value, "an object")
            return result

        result = evaluate_fields(self.fields, ctx, value, strict=self.is_strict,
            strict_message=self.messages.get("strict"))

        for validator in self.rules:
            outcome = validator.validate(value, ctx)
            if outcome.is_valid:
                continue
            message = outcome.error_message or f"{ctx.field_name} is invalid"
            if not isinstance(validator, WithMessage):
                message = self.render(validator.constraint_name, message, ctx, value)
            result.errors.add(ctx.full_path, message)
        return result

    def collect(self, path: str, value: Any) -> list[CheckRequest]:
        return collect_fields(self.fields, path, value)


def _optional(node: RuleNode) -> RuleNode:
    return node if isinstance(node, OptionalNode) else OptionalNode(inner=node)


def Object(fields: Mapping[str, RuleNode] | None = None) -> ObjectNode:
    return ObjectNode(fields=dict(fields or {}))
