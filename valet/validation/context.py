"""Validation Context

Carries the read-only root instance, the current path and the per-call
options down the rule tree. Contexts are immutable; ``child`` returns a new
context with its own path tuple, so concurrent branches never share path
storage.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from .paths import DataAccessor, LookupResult, join_path

if TYPE_CHECKING:
    from valet.checks.checker import ExternalChecker
    from valet.resilience.cancellation import CancellationToken


@dataclass(frozen=True, slots=True)
class ValidationOptions:
    abort_early: bool = False
    checker: ExternalChecker | None = None
    cancellation: CancellationToken | None = None


@dataclass(frozen=True, slots=True)
class ValidationContext:
    root: Any
    path: tuple[str | int, ...] = ()
    options: ValidationOptions = field(default_factory=ValidationOptions)

    @classmethod
    def for_root(cls, root: Any, options: ValidationOptions | None = None) -> ValidationContext:
        return cls(root=root, options=options or ValidationOptions())

    def child(self, segment: str | int) -> ValidationContext:
        return ValidationContext(self.root, (*self.path, segment), self.options)

    @property
    def full_path(self) -> str:
        return join_path(self.path)

    @property
    def field_name(self) -> str:
        """Last non-index segment, used in messages."""
        for segment in reversed(self.path):
            if isinstance(segment, str):
                return segment
        return ""

    @property
    def index(self) -> int | None:
        if self.path and isinstance(self.path[-1], int):
            return self.path[-1]
        return None

    @property
    def cancelled(self) -> bool:
        token = self.options.cancellation
        return token is not None and token.cancelled

    def lookup(self, path: str) -> LookupResult:
        """Resolve ``path`` against the root instance."""
        return DataAccessor(self.root).get(path)
