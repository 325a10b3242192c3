"""Schema: the root rule tree.

An immutable mapping of top-level field name to rule node. Derivation methods
return new schemas, so one base schema can serve create and update variants.

Usage:
    users = Schema({"email": String().required().email().unique("users", "email")})
    create = users.extend({"password": String().required().min(8)})
    update = users.partial()
"""
from __future__ import annotations

from collections.abc import Iterator, Mapping
from typing import TYPE_CHECKING, Any

from .base import RuleNode
from .context import ValidationContext
from .errors import Evaluation
from .messages import Message
from .object import _optional, collect_fields, evaluate_fields

if TYPE_CHECKING:
    from valet.checks.requests import CheckRequest


class Schema(Mapping[str, RuleNode]):
    __slots__ = ("_fields", "_strict", "_strict_message")

    def __init__(self, fields: Mapping[str, RuleNode] | None = None, *, strict: bool = False,
                 strict_message: Message | None = None):
        self._fields: dict[str, RuleNode] = dict(fields or {})
        self._strict = strict
        self._strict_message = strict_message

    @classmethod
    def of(cls, schema: Schema | Mapping[str, RuleNode]) -> Schema:
        return schema if isinstance(schema, Schema) else cls(schema)

    # ------------------------------------------------------------------ mapping

    def __getitem__(self, name: str) -> RuleNode: return self._fields[name]

    def __iter__(self) -> Iterator[str]: return iter(self._fields)

    def __len__(self) -> int: return len(self._fields)

    def __repr__(self) -> str:
        return f"Schema({list(self._fields)!r}, strict={self._strict})"

    @property
    def is_strict(self) -> bool: return self._strict

    # --------------------------------------------------------------- derivation

    def _derive(self, fields: Mapping[str, RuleNode], strict: bool | None = None) -> Schema:
        return Schema(fields, strict=self._strict if strict is None else strict, strict_message=self._strict_message)

    def pick(self, *names: str) -> Schema:
        return self._derive({n: node for n, node in self._fields.items() if n in names})

    def omit(self, *names: str) -> Schema:
        return self._derive({n: node for n, node in self._fields.items() if n not in names})

    def partial(self) -> Schema:
        return self._derive({n: _optional(node) for n, node in self._fields.items()})

    def extend(self, fields: Mapping[str, RuleNode]) -> Schema:
        return self._derive({**self._fields, **fields})

    def merge(self, other: Schema | Mapping[str, RuleNode]) -> Schema:
        other = Schema.of(other)
        return self._derive({**self._fields, **other._fields}, self._strict or other._strict)

    def strict(self, message: Message | None = None) -> Schema:
        """Report keys the schema does not declare at the root path ``""``."""
        return Schema(self._fields, strict=True, strict_message=message)

    def passthrough(self) -> Schema:
        return Schema(self._fields)

    # ----------------------------------------------------------------- contracts

    def evaluate(self, ctx: ValidationContext, data: Mapping[str, Any], abort_early: bool = False) -> Evaluation:
        return evaluate_fields(self._fields, ctx, data, strict=self._strict,
            strict_message=self._strict_message, abort_early=abort_early)

    def collect(self, data: Mapping[str, Any]) -> list[CheckRequest]:
        return collect_fields(self._fields, "", data)
