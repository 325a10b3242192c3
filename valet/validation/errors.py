"""Validation Outcome

Path-keyed error structure returned by the pipeline, plus the separate
infrastructure-failure signal raised when external checks could not run.

Outcome layout:
{
    "errors": {
        "orders.2.items.0.productId": ["productId does not exist"],
        "email": ["email must be a valid email address", "email already exists"]
    },
    "infrastructure": {
        "cancelled": false,
        "failures": [
            {"resource": "users", "attribute": "email", "mode": "unique",
             "paths": ["email"], "code": "E1011_CHECKER_ERROR", "message": "..."}
        ]
    }
}
"""
from __future__ import annotations

from collections.abc import Iterable, Iterator
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from valet.errors.types import AppError, ErrorCode

if TYPE_CHECKING:
    from valet.checks.requests import CheckRequest


class ErrorMap:
    """Mutable path -> [message] accumulator owned by a single writer."""

    __slots__ = ("_items",)

    def __init__(self, items: dict[str, list[str]] | None = None):
        self._items: dict[str, list[str]] = {}
        for path, messages in (items or {}).items():
            self.extend(path, messages)

    def add(self, path: str, message: str) -> None:
        self._items.setdefault(path, []).append(message)

    def extend(self, path: str, messages: Iterable[str]) -> None:
        for message in messages:
            self.add(path, message)

    def merge(self, other: ErrorMap) -> None:
        for path, messages in other.items():
            self.extend(path, messages)

    def items(self) -> Iterable[tuple[str, list[str]]]: return self._items.items()

    def get(self, path: str) -> list[str]: return list(self._items.get(path, ()))

    def to_dict(self) -> dict[str, list[str]]:
        return {path: list(messages) for path, messages in self._items.items()}

    def __bool__(self) -> bool: return bool(self._items)

    def __len__(self) -> int: return len(self._items)

    def __contains__(self, path: object) -> bool: return path in self._items

    def __iter__(self) -> Iterator[str]: return iter(self._items)

    def __eq__(self, other: object) -> bool:
        if isinstance(other, ErrorMap):
            return self._items == other._items
        if isinstance(other, dict):
            return self._items == other
        return NotImplemented

    def __repr__(self) -> str: return f"ErrorMap({self._items!r})"


@dataclass(slots=True)
class Evaluation:
    """Local errors and deferred check requests produced by one node."""
    errors: ErrorMap = field(default_factory=ErrorMap)
    deferred: list[CheckRequest] = field(default_factory=list)

    def merge(self, other: Evaluation) -> None:
        self.errors.merge(other.errors)
        self.deferred.extend(other.deferred)


# ============================================================================
# Infrastructure failure
# ============================================================================

@dataclass(frozen=True, slots=True)
class GroupFailure:
    """One check group whose external call failed, timed out or never started."""
    signature: str
    resource: str
    attribute: str
    mode: str
    paths: tuple[str, ...]
    error: AppError

    def to_dict(self) -> dict[str, Any]:
        return {"resource": self.resource, "attribute": self.attribute, "mode": self.mode,
            "paths": list(self.paths), "code": self.error.code.name, "message": self.error.message}


@dataclass(frozen=True, slots=True)
class InfrastructureFailure:
    """Signal that some inputs could not be verified against the external store."""
    failures: tuple[GroupFailure, ...] = ()
    cancelled: bool = False

    def __bool__(self) -> bool: return self.cancelled or bool(self.failures)

    @property
    def paths(self) -> tuple[str, ...]:
        seen: dict[str, None] = {}
        for failure in self.failures:
            seen.update(dict.fromkeys(failure.paths))
        return tuple(seen)

    @property
    def error_codes(self) -> set[ErrorCode]: return {f.error.code for f in self.failures}

    def to_app_error(self) -> AppError:
        """Aggregate into one AppError."""
        if len(self.failures) == 1 and not self.cancelled:
            return self.failures[0].error
        code = ErrorCode.E1014_CANCELLED if self.cancelled else ErrorCode.E1011_CHECKER_ERROR
        message = ("Validation cancelled before all existence checks completed" if self.cancelled
            else f"{len(self.failures)} existence checks failed")
        return AppError(code=code, message=message, metadata={"failure_count": len(self.failures),
            "failures": [f.to_dict() for f in self.failures], "unverified_paths": list(self.paths)})

    def to_dict(self) -> dict[str, Any]:
        return {"cancelled": self.cancelled, "failures": [f.to_dict() for f in self.failures]}


# ============================================================================
# Outcome
# ============================================================================

@dataclass
class ValidationErrors(Exception):
    """Non-empty validation outcome.

    ``errors`` holds user-input failures keyed by dot path. ``infrastructure``
    is set when some checks could not be performed; in that case ``errors``
    may be empty and the input is merely unverified, not invalid.
    """
    errors: dict[str, list[str]] = field(default_factory=dict)
    infrastructure: InfrastructureFailure | None = None

    def __post_init__(self):
        super().__init__(self.errors)

    def __str__(self) -> str:
        if not self.errors and self.infrastructure:
            return str(self.infrastructure.to_app_error())
        if len(self.errors) == 1:
            path, messages = next(iter(self.errors.items()))
            return f"{path}: {messages[0]}"
        return f"Validation failed ({len(self.errors)} fields)"

    def has_errors(self) -> bool: return bool(self.errors)

    def get(self, path: str) -> list[str]: return list(self.errors.get(path, ()))

    def first(self, path: str) -> str | None:
        messages = self.errors.get(path)
        return messages[0] if messages else None

    def all(self) -> list[str]: return [m for messages in self.errors.values() for m in messages]

    def fields(self) -> list[str]: return list(self.errors)

    def unverified_paths(self) -> tuple[str, ...]:
        return self.infrastructure.paths if self.infrastructure else ()

    def to_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = {"errors": {p: list(m) for p, m in self.errors.items()}}
        if self.infrastructure:
            result["infrastructure"] = self.infrastructure.to_dict()
        return result

    def to_app_error(self) -> AppError:
        if not self.errors and self.infrastructure:
            return self.infrastructure.to_app_error()
        metadata: dict[str, Any] = {"error_count": len(self.errors), "errors": self.to_dict()["errors"]}
        if self.infrastructure:
            metadata["infrastructure"] = self.infrastructure.to_dict()
        return AppError(code=ErrorCode.E2000_VALIDATION_GENERIC, message=str(self), metadata=metadata)

    @classmethod
    def from_map(cls, errors: ErrorMap, infrastructure: InfrastructureFailure | None = None) -> ValidationErrors | None:
        """Outcome for a finished call, or None when nothing needs reporting."""
        if not errors and not infrastructure:
            return None
        return cls(errors=errors.to_dict(), infrastructure=infrastructure or None)
