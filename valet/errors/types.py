"""Monadic Error Handling Types

Result/Either types for the infrastructure side of validation: checker calls,
storage access, dispatch. User-input failures never travel through here; they
land in the path-keyed ``ValidationErrors`` outcome instead.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import (
    TYPE_CHECKING, Callable, Generic, Iterator, NoReturn,
    TypeVar, Union, final,
)
from uuid import uuid4

if TYPE_CHECKING:
    from collections.abc import Awaitable

T = TypeVar("T")
U = TypeVar("U")
E = TypeVar("E")
F = TypeVar("F")


class ErrorCode(Enum):
    """Hierarchical error code taxonomy.

    E1xxx: External checker failures
    E2xxx: Validation errors
    E4xxx: Storage errors
    E9xxx: Internal/Unknown errors
    """
    # External checker (E1xxx)
    E1000_CHECKER_GENERIC = 1000
    E1002_TIMEOUT = 1002
    E1011_CHECKER_ERROR = 1011
    E1014_CANCELLED = 1014

    # Validation (E2xxx)
    E2000_VALIDATION_GENERIC = 2000
    E2001_REQUIRED_FIELD_MISSING = 2001
    E2002_INVALID_FORMAT = 2002
    E2003_OUT_OF_RANGE = 2003
    E2004_INVALID_TYPE = 2004
    E2005_CONSTRAINT_VIOLATION = 2005
    E2006_UNKNOWN_FIELD = 2006
    E2030_NOT_EXISTS = 2030
    E2031_ALREADY_EXISTS = 2031

    # Storage (E4xxx)
    E4000_DATABASE_GENERIC = 4000
    E4001_CONNECTION_FAILED = 4001
    E4002_QUERY_FAILED = 4002

    # Internal (E9xxx)
    E9000_INTERNAL_GENERIC = 9000
    E9001_UNEXPECTED_ERROR = 9001

    @property
    def category(self) -> str:
        """Human-readable error category."""
        code = self.value
        if 1000 <= code < 2000:
            return "checker"
        if 2000 <= code < 3000:
            return "validation"
        if 4000 <= code < 5000:
            return "database"
        return "internal"

    @property
    def is_infrastructure(self) -> bool:
        return not 2000 <= self.value < 3000


@dataclass(frozen=True, slots=True)
class ErrorContext:
    """Immutable context for error tracing."""
    correlation_id: str = field(default_factory=lambda: str(uuid4())[:8])
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    origin: str = ""

    def with_origin(self, origin: str) -> ErrorContext:
        return ErrorContext(correlation_id=self.correlation_id, timestamp=self.timestamp, origin=origin)


@dataclass(frozen=True, slots=True)
class AppError:
    """Infrastructure error with code, message, metadata and optional cause."""
    code: ErrorCode
    message: str
    context: ErrorContext = field(default_factory=ErrorContext)
    metadata: dict = field(default_factory=dict)
    cause: Exception | None = None

    @property
    def error_id(self) -> str:
        return f"{self.code.name}:{self.context.correlation_id}"

    def with_origin(self, origin: str) -> AppError:
        return AppError(self.code, self.message, self.context.with_origin(origin), self.metadata, self.cause)

    def with_metadata(self, **kwargs) -> AppError:
        """Create new error with additional metadata."""
        return AppError(self.code, self.message, self.context, {**self.metadata, **kwargs}, self.cause)

    def chain(self, cause: Exception) -> AppError:
        """Attach the exception that produced this error."""
        return AppError(self.code, self.message, self.context, self.metadata, cause)

    def to_dict(self) -> dict:
        return {
            "error": {
                "code": self.code.name,
                "code_num": self.code.value,
                "message": self.message,
                "category": self.code.category,
                "correlation_id": self.context.correlation_id,
                "timestamp": self.context.timestamp.isoformat(),
                "metadata": self.metadata,
            }
        }

    def __str__(self) -> str:
        return f"[{self.code.name}] {self.message} (correlation_id={self.context.correlation_id})"


@final
@dataclass(frozen=True, slots=True)
class Ok(Generic[T]):
    """Success variant of Result."""
    value: T

    def is_ok(self) -> bool: return True

    def is_err(self) -> bool: return False

    def unwrap(self) -> T: return self.value

    def unwrap_or(self, default: T) -> T: return self.value

    def unwrap_err(self) -> NoReturn:
        raise ValueError(f"Called unwrap_err on Ok: {self.value!r}")

    def map(self, f: Callable[[T], U]) -> Result[U, E]: return Ok(f(self.value))

    def map_err(self, f: Callable[[E], F]) -> Result[T, F]: return self  # type: ignore

    def and_then(self, f: Callable[[T], Result[U, E]]) -> Result[U, E]: return f(self.value)

    flat_map = and_then

    def match(self, ok: Callable[[T], U], err: Callable[[E], U]) -> U: return ok(self.value)

    async def map_async(self, f: Callable[[T], Awaitable[U]]) -> Result[U, E]:
        return Ok(await f(self.value))

    def __iter__(self) -> Iterator[T]:
        yield self.value


@final
@dataclass(frozen=True, slots=True)
class Err(Generic[E]):
    """Failure variant of Result."""
    error: E

    def is_ok(self) -> bool: return False

    def is_err(self) -> bool: return True

    def unwrap(self) -> NoReturn:
        raise ValueError(f"Called unwrap on Err: {self.error}")

    def unwrap_or(self, default: T) -> T: return default

    def unwrap_err(self) -> E: return self.error

    def map(self, f: Callable[[T], U]) -> Result[U, E]: return self  # type: ignore

    def map_err(self, f: Callable[[E], F]) -> Result[T, F]: return Err(f(self.error))

    def and_then(self, f: Callable[[T], Result[U, E]]) -> Result[U, E]: return self  # type: ignore

    flat_map = and_then

    def match(self, ok: Callable[[T], U], err: Callable[[E], U]) -> U: return err(self.error)

    async def map_async(self, f: Callable[[T], Awaitable[U]]) -> Result[U, E]:
        return self  # type: ignore

    def __iter__(self) -> Iterator:
        return iter([])


Result = Union[Ok[T], Err[E]]
