"""Batching Engine

Partitions deferred requests by (mode, resource, filters), deduplicates the
values inside each partition, and maps the per-value facts returned by the
checker back onto every request that contributed a value.

One external lookup per group, not per field: ten array elements pointing at
the same product id cost a single call carrying a single value.
"""
from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from typing import Any, Hashable

from valet.validation.errors import ErrorMap

from .requests import CheckMode, CheckRequest, CheckRule, Filter


def value_key(value: Any) -> Hashable:
    """Dedup key keeping ``True`` apart from ``1``.

    Mappings compare regardless of key order, lists equal to tuples. Other
    unhashables fall back to repr.
    """
    if isinstance(value, Mapping):
        return ("mapping", frozenset((value_key(k), value_key(v)) for k, v in value.items()))
    if isinstance(value, (list, tuple)):
        return ("sequence", tuple(value_key(item) for item in value))
    tag = "bool" if isinstance(value, bool) else "value"
    try:
        hash(value)
    except TypeError:
        return (tag, "repr", repr(value))
    return (tag, value)


@dataclass(slots=True)
class CheckGroup:
    """Requests sharing one resource/filter/mode signature."""
    signature: str
    rule: CheckRule
    requests: list[CheckRequest] = field(default_factory=list)
    values: list[Any] = field(default_factory=list)
    _seen: set[Hashable] = field(default_factory=set, repr=False)

    @property
    def table(self) -> str: return self.rule.table

    @property
    def column(self) -> str: return self.rule.column

    @property
    def filters(self) -> tuple[Filter, ...]: return self.rule.filters

    @property
    def mode(self) -> CheckMode: return self.rule.mode

    @property
    def paths(self) -> tuple[str, ...]:
        return tuple(dict.fromkeys(r.path for r in self.requests))

    def add(self, request: CheckRequest) -> None:
        self.requests.append(request)
        key = value_key(request.value)
        if key not in self._seen:
            self._seen.add(key)
            self.values.append(request.value)


def batch(requests: Iterable[CheckRequest]) -> list[CheckGroup]:
    """Group requests in first-seen order."""
    groups: dict[str, CheckGroup] = {}
    for request in requests:
        signature = request.signature
        group = groups.get(signature)
        if group is None:
            group = groups[signature] = CheckGroup(signature=signature, rule=request.rule)
        group.add(request)
    return list(groups.values())


def lookup_fact(facts: Mapping[Any, bool], value: Any) -> bool:
    """Found-fact for ``value``; values the checker did not report count as not found."""
    try:
        return bool(facts.get(value, False))
    except TypeError:
        return False


def resolve(groups: Iterable[CheckGroup], facts: Mapping[str, Mapping[Any, bool]]) -> ErrorMap:
    """Fold per-group facts into path-keyed errors.

    ``facts`` maps a group signature to that group's value -> found mapping.
    Groups missing from ``facts`` (failed or never started) add nothing.
    """
    errors = ErrorMap()
    for group in groups:
        group_facts = facts.get(group.signature)
        if group_facts is None:
            continue
        for request in group.requests:
            message = request.violation(lookup_fact(group_facts, request.value))
            if message is not None:
                errors.add(request.path, message)
    return errors
