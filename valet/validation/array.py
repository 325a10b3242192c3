"""Array node.

Array-level rules run against the whole sequence before elements are
evaluated. Aggregate rules (length, ``contains``) report at the array's own
path; ``unique`` and ``doesnt_contain`` hits report at the offending element.

Usage:
    Array().of(Object().shape({"product_id": Int().exists("products", "id")})).min(1)
    Array().of(String().email()).unique().concurrent(8)
    Array().exists("tags", "name")
"""
from __future__ import annotations

from collections.abc import Mapping, Sequence
from dataclasses import dataclass, replace
from typing import TYPE_CHECKING, Any

from valet.checks.batching import value_key
from valet.checks.requests import CheckMode, CheckRule, Filter
from valet.resilience.pool import BoundedPool

from .base import RuleNode, field_of, join
from .context import ValidationContext
from .errors import ErrorMap, Evaluation
from .messages import Message, describe
from .validators import Custom, CustomFunc, format_number

if TYPE_CHECKING:
    from valet.checks.requests import CheckRequest


def _elements(noun_count: int) -> str:
    return "element" if noun_count == 1 else "elements"


@dataclass(frozen=True)
class ArrayNode(RuleNode):
    element: RuleNode | None = None
    min_items: int | None = None
    max_items: int | None = None
    exact_items: int | None = None
    is_distinct: bool = False
    required_items: tuple[Any, ...] = ()
    forbidden_items: tuple[Any, ...] = ()
    checks: tuple[CheckRule, ...] = ()
    custom_rules: tuple[Custom, ...] = ()
    workers: int = 0

    # ------------------------------------------------------------------ builders

    def of(self, element: RuleNode) -> ArrayNode:
        return replace(self, element=element)

    def min(self, n: int, message: Message | None = None) -> ArrayNode:
        return self._with(replace(self, min_items=n), "min", message)

    def max(self, n: int, message: Message | None = None) -> ArrayNode:
        return self._with(replace(self, max_items=n), "max", message)

    def length(self, n: int, message: Message | None = None) -> ArrayNode:
        return self._with(replace(self, exact_items=n), "length", message)

    def nonempty(self, message: Message | None = None) -> ArrayNode:
        return self.min(1, message)

    def unique(self, message: Message | None = None) -> ArrayNode:
        """Every element distinct; later duplicates are reported at their index."""
        return self._with(replace(self, is_distinct=True), "unique", message)

    distinct = unique

    def contains(self, *values: Any, message: Message | None = None) -> ArrayNode:
        return self._with(replace(self, required_items=(*self.required_items, *values)), "contains", message)

    def doesnt_contain(self, *values: Any, message: Message | None = None) -> ArrayNode:
        return self._with(replace(self, forbidden_items=(*self.forbidden_items, *values)), "doesnt_contain", message)

    def exists(self, table: str, column: str, *filters: Filter, message: Message | None = None) -> ArrayNode:
        """Every scalar element must be present in ``table.column``."""
        rule = CheckRule(table, column, tuple(filters), CheckMode.EXISTS, message=message)
        return replace(self, checks=(*self.checks, rule))

    def concurrent(self, workers: int) -> ArrayNode:
        """Evaluate elements on at most ``workers`` threads."""
        return replace(self, workers=workers)

    def custom(self, fn: CustomFunc, message: Message | None = None) -> ArrayNode:
        """``fn(items, lookup)`` reported at the array's own path."""
        return self._with(replace(self, custom_rules=(*self.custom_rules, Custom(fn))), "custom", message)

    def _with(self, node: ArrayNode, rule: str, message: Message | None) -> ArrayNode:
        return node.message(rule, message) if message is not None else node

    # ----------------------------------------------------------------- contracts

    def evaluate(self, ctx: ValidationContext, value: Any) -> Evaluation:
        if value is None:
            return self.missing(ctx)

        result = Evaluation()
        if not isinstance(value, (list, tuple)):
            self.type_error(ctx, result.errors, value, "an array")
            return result

        self._check_sequence(ctx, value, result.errors)
        if self.element is not None:
            element = self.element
            outcomes = BoundedPool(self.workers).map(
                lambda i, item: element.evaluate(ctx.child(i), item), value)
            for outcome in outcomes:
                result.merge(outcome)

        result.deferred.extend(self._own_requests(ctx.full_path, value))
        return result

    def collect(self, path: str, value: Any) -> list[CheckRequest]:
        if not isinstance(value, (list, tuple)):
            return []
        requests = self._own_requests(path, value)
        if self.element is not None:
            for i, item in enumerate(value):
                if item is not None:
                    requests.extend(self.element.collect(join(path, i), item))
        return requests

    def _own_requests(self, path: str, items: Sequence[Any]) -> list[CheckRequest]:
        """One request per scalar element for the array's own ``exists`` rules."""
        if not self.checks:
            return []
        name = field_of(path)
        rules = [replace(rule, message=self.messages["exists"])
                 if rule.message is None and "exists" in self.messages else rule
                 for rule in self.checks]
        return [rule.request(join(path, i), name, item)
                for i, item in enumerate(items)
                if item is not None and not isinstance(item, (Mapping, list, tuple))
                for rule in rules]
    # ------------------------------------------------------------------- helpers

    def _check_sequence(self, ctx: ValidationContext, items: Sequence[Any], errors: ErrorMap) -> None:
        path = ctx.full_path
        name = ctx.field_name
        count = len(items)

        if self.exact_items is not None and count != self.exact_items:
            errors.add(path, self.render("length",
                f"{name} must have exactly {self.exact_items} {_elements(self.exact_items)}",
                ctx, items, self.exact_items))
        if self.min_items is not None and count < self.min_items:
            errors.add(path, self.render("min",
                f"{name} must have at least {self.min_items} {_elements(self.min_items)}",
                ctx, items, self.min_items))
        if self.max_items is not None and count > self.max_items:
            errors.add(path, self.render("max",
                f"{name} must have at most {self.max_items} {_elements(self.max_items)}",
                ctx, items, self.max_items))

        if self.is_distinct:
            seen: set[Any] = set()
            for i, item in enumerate(items):
                key = value_key(item)
                if key in seen:
                    child = ctx.child(i)
                    errors.add(child.full_path, self.render("unique", f"{name}[{i}] is a duplicate",
                        child, item, i))
                seen.add(key)

        if self.required_items:
            present = {value_key(item) for item in items}
            for expected in self.required_items:
                if value_key(expected) not in present:
                    errors.add(path, self.render("contains", f"{name} must contain {_show(expected)}",
                        ctx, items, expected))

        if self.forbidden_items:
            forbidden = {value_key(item) for item in self.forbidden_items}
            for i, item in enumerate(items):
                if value_key(item) in forbidden:
                    child = ctx.child(i)
                    errors.add(child.full_path, self.render("doesnt_contain",
                        f"{name} must not contain {_show(item)}", child, item, item))

        for rule in self.custom_rules:
            outcome = rule.validate(list(items), ctx)
            if not outcome.is_valid:
                errors.add(path, self.render("custom", outcome.error_message or f"{name} is invalid",
                    ctx, items))


def _show(value: Any) -> str:
    if isinstance(value, (list, tuple)):
        return describe(value)
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return format_number(value)
    return str(value)


def Array(element: RuleNode | None = None) -> ArrayNode:
    return ArrayNode(element=element)
