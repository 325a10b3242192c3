"""Rule Nodes

A rule node validates one value at one path. Every node answers two
questions about a value:

- ``evaluate(ctx, value)``: local errors plus the deferred check requests the
  value gives rise to
- ``collect(path, value)``: only the deferred requests

Collection does not depend on whether local rules passed, so a single walk
gathers every existence/uniqueness lookup the instance needs.

Nodes are frozen dataclasses. Every builder method returns a new node, so a
node attached to a shared schema is never mutated.
"""
from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Callable, Mapping
from dataclasses import dataclass, field, replace
from typing import TYPE_CHECKING, Any, TypeVar

from valet.checks.requests import CheckMode, CheckRule, Filter

from .context import ValidationContext
from .errors import ErrorMap, Evaluation
from .messages import Message, render
from .validators import AtomicValidator, Custom, CustomFunc, ValidationResult, WithMessage

if TYPE_CHECKING:
    from valet.checks.requests import CheckRequest

N = TypeVar("N", bound="RuleNode")
S = TypeVar("S", bound="ScalarNode")

Predicate = Callable[[Any], bool]


class _Unset:
    __slots__ = ()

    def __repr__(self) -> str: return "UNSET"


UNSET: Any = _Unset()
SKIP: Any = object()


def join(path: str, segment: str | int) -> str:
    return f"{path}.{segment}" if path else str(segment)


def field_of(path: str) -> str:
    """Last non-index segment of a dot path."""
    for segment in reversed(path.split(".")):
        if not segment.isdigit():
            return segment
    return path


@dataclass(frozen=True)
class RuleNode(ABC):
    """Base for every node in the validation tree."""
    is_required: bool = False
    is_nullable: bool = False
    required_when: Predicate | None = None
    required_unless_when: Predicate | None = None
    messages: Mapping[str, Message] = field(default_factory=dict)

    # ------------------------------------------------------------------ builders

    def required(self: N, message: Message | None = None) -> N:
        return replace(self, is_required=True, messages=_with_message(self.messages, "required", message))

    def required_if(self: N, predicate: Predicate) -> N:
        """Required when ``predicate(root_data)`` is true."""
        return replace(self, required_when=predicate)

    def required_unless(self: N, predicate: Predicate) -> N:
        """Required unless ``predicate(root_data)`` is true."""
        return replace(self, required_unless_when=predicate)

    def nullable(self: N) -> N:
        return replace(self, is_nullable=True)

    def message(self: N, rule: str, message: Message) -> N:
        """Override the message of ``rule`` (``"required"``, ``"type"``, ``"min"``...)."""
        return replace(self, messages=_with_message(self.messages, rule, message))

    # ----------------------------------------------------------------- contracts

    @abstractmethod
    def evaluate(self, ctx: ValidationContext, value: Any) -> Evaluation:
        """Local errors and deferred requests for ``value`` at ``ctx.path``."""

    def validate(self, ctx: ValidationContext, value: Any) -> ErrorMap:
        return self.evaluate(ctx, value).errors

    def collect(self, path: str, value: Any) -> list[CheckRequest]:
        """Deferred existence/uniqueness requests; nodes without any decline."""
        return []

    # ------------------------------------------------------------------- helpers

    def is_mandatory(self, ctx: ValidationContext) -> bool:
        if self.is_required:
            return True
        if self.required_when is not None and self.required_when(ctx.root):
            return True
        return self.required_unless_when is not None and not self.required_unless_when(ctx.root)

    def render(self, rule: str, default: str, ctx: ValidationContext, value: Any = None, param: Any = None) -> str:
        return render(self.messages.get(rule), default, ctx, rule=rule, value=value, param=param)

    def missing(self, ctx: ValidationContext) -> Evaluation:
        """Evaluation for an absent or null value."""
        result = Evaluation()
        if not self.is_nullable and self.is_mandatory(ctx):
            result.errors.add(ctx.full_path, self.render("required", f"{ctx.field_name} is required", ctx))
        return result

    def type_error(self, ctx: ValidationContext, errors: ErrorMap, value: Any, expected: str) -> None:
        errors.add(ctx.full_path, self.render("type", f"{ctx.field_name} must be {expected}", ctx, value))


def _with_message(messages: Mapping[str, Message], rule: str, message: Message | None) -> Mapping[str, Message]:
    if message is None:
        return messages
    return {**messages, rule: message}


@dataclass(frozen=True)
class ScalarNode(RuleNode):
    """Leaf node: type check, then every configured rule in order."""
    rules: tuple[AtomicValidator, ...] = ()
    checks: tuple[CheckRule, ...] = ()
    default_value: Any = UNSET

    # ------------------------------------------------------------------ builders

    def rule(self: S, validator: AtomicValidator, message: Message | None = None) -> S:
        """Append a leaf rule; a message wraps it with an override."""
        if message is not None:
            validator = WithMessage(validator, message)
        return replace(self, rules=(*self.rules, validator))

    def custom(self: S, fn: CustomFunc, message: Message | None = None) -> S:
        """``fn(value, lookup)``; see ``validators.Custom`` for the return protocol."""
        return self.rule(Custom(fn), message)

    def default(self: S, value: Any) -> S:
        """Value evaluated in place of an absent one. Never written back."""
        return replace(self, default_value=value)

    def exists(self: S, table: str, column: str, *filters: Filter, message: Message | None = None) -> S:
        rule = CheckRule(table, column, tuple(filters), CheckMode.EXISTS, message=message)
        return replace(self, checks=(*self.checks, rule))

    def unique(self: S, table: str, column: str, *filters: Filter, ignore: Any = None,
               message: Message | None = None) -> S:
        """Value must not be present, unless it equals ``ignore`` (update-in-place)."""
        rule = CheckRule(table, column, tuple(filters), CheckMode.UNIQUE, ignore, message)
        return replace(self, checks=(*self.checks, rule))

    # ----------------------------------------------------------------- contracts

    @abstractmethod
    def prepare(self, ctx: ValidationContext, value: Any, errors: ErrorMap) -> Any:
        """Type-check and normalise ``value``.

        Returns the value the rules should see, or ``SKIP`` after recording a
        type error (or when the value counts as absent).
        """

    def normalize(self, value: Any) -> Any:
        """Value submitted to external checks, or ``SKIP``."""
        return value

    def evaluate(self, ctx: ValidationContext, value: Any) -> Evaluation:
        raw = value
        if value is None:
            if self.is_nullable or self.default_value is UNSET:
                return self.missing(ctx)
            value = self.default_value

        result = Evaluation()
        prepared = self.prepare(ctx, value, result.errors)
        if prepared is SKIP:
            return result

        path = ctx.full_path
        for validator in self.rules:
            outcome = validator.validate(prepared, ctx)
            if not outcome.is_valid:
                result.errors.add(path, self._failure_message(validator, outcome, ctx, prepared))

        if raw is not None:
            result.deferred.extend(self.collect(path, raw))
        return result

    def collect(self, path: str, value: Any) -> list[CheckRequest]:
        if not self.checks or value is None:
            return []
        normalized = self.normalize(value)
        if normalized is SKIP:
            return []
        name = field_of(path)
        requests = []
        for rule in self.checks:
            if rule.message is None and rule.mode.value in self.messages:
                rule = replace(rule, message=self.messages[rule.mode.value])
            requests.append(rule.request(path, name, normalized))
        return requests

    def _failure_message(self, validator: AtomicValidator, outcome: ValidationResult,
                         ctx: ValidationContext, value: Any) -> str:
        override = self.messages.get(validator.constraint_name)
        if override is None or isinstance(validator, WithMessage):
            return outcome.error_message or f"{ctx.field_name} is invalid"
        return render(override, outcome.error_message or "", ctx, rule=validator.constraint_name,
            value=value, param=outcome.param)
