"""Deferred Check Requests

A node guarding a field with ``exists``/``unique`` does not query anything
during the walk. It emits a ``CheckRequest`` instead: the path, the value as
the node saw it, and the ``CheckRule`` describing which resource to look in.
Requests are batched and resolved after the walk.
"""
from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any

from valet.validation.messages import Message, MessageContext

OPERATORS = frozenset({"=", "!=", "<>", "<", "<=", ">", ">=", "like", "not like", "is", "is not"})


class CheckMode(str, Enum):
    EXISTS = "exists"      # value must be found
    UNIQUE = "unique"      # value must not be found


@dataclass(frozen=True, slots=True)
class Filter:
    """Extra predicate applied alongside the value lookup (``status = 'active'``)."""
    column: str
    operator: str
    value: Any

    def __post_init__(self):
        if self.operator.lower() not in OPERATORS:
            raise ValueError(f"unsupported filter operator: {self.operator!r}")

    @property
    def signature(self) -> str:
        return f"{self.column}{self.operator.lower()}{self.value!r}"


def where(column: str, operator: str, value: Any) -> Filter:
    return Filter(column, operator, value)


def where_eq(column: str, value: Any) -> Filter:
    return Filter(column, "=", value)


def where_not(column: str, value: Any) -> Filter:
    return Filter(column, "!=", value)


@dataclass(frozen=True, slots=True)
class CheckRule:
    """Existence or uniqueness rule attached to a node."""
    table: str
    column: str
    filters: tuple[Filter, ...] = ()
    mode: CheckMode = CheckMode.EXISTS
    ignore: Any = None
    message: Message | None = None

    @property
    def signature(self) -> str:
        """Grouping key: mode, resource and the filter set (order-insensitive)."""
        filters = ",".join(sorted(f.signature for f in self.filters))
        return f"{self.mode.value}|{self.table}|{self.column}|{filters}"

    def request(self, path: str, field: str, value: Any) -> CheckRequest:
        return CheckRequest(path=path, field=field, value=value, rule=self)


@dataclass(frozen=True, slots=True)
class CheckRequest:
    path: str
    field: str
    value: Any
    rule: CheckRule

    @property
    def table(self) -> str: return self.rule.table

    @property
    def column(self) -> str: return self.rule.column

    @property
    def filters(self) -> tuple[Filter, ...]: return self.rule.filters

    @property
    def mode(self) -> CheckMode: return self.rule.mode

    @property
    def ignore_value(self) -> Any: return self.rule.ignore

    @property
    def signature(self) -> str: return self.rule.signature

    def is_ignored(self) -> bool:
        ignore = self.rule.ignore
        return ignore is not None and ignore == self.value and isinstance(ignore, bool) == isinstance(self.value, bool)

    def violation(self, found: bool) -> str | None:
        """Message for this request given the lookup fact, or None when satisfied."""
        if self.mode is CheckMode.EXISTS:
            if found:
                return None
            default = f"{self.field} does not exist"
        else:
            if not found or self.is_ignored():
                return None
            default = f"{self.field} already exists"

        message = self.rule.message
        if message is None:
            return default
        if isinstance(message, str):
            return message
        return message(MessageContext(
            field=self.field,
            path=self.path,
            index=_trailing_index(self.path),
            value=self.value,
            rule=self.mode.value,
            param=f"{self.table}.{self.column}",
            data=None,
        ))


def _trailing_index(path: str) -> int | None:
    last = path.rsplit(".", 1)[-1]
    return int(last) if last.isdigit() else None
