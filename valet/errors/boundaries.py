"""Error Boundary Mappers

Exceptions raised below a module boundary (SQLAlchemy, user callables) are
mapped to ``AppError`` at that boundary so callers only ever see one type.
"""
from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Awaitable, Callable, Generic, TypeVar

from sqlalchemy.exc import (
    DBAPIError,
    OperationalError,
    SQLAlchemyError,
)

from .types import AppError, ErrorCode, Err, Ok, Result
from .builders import (
    checker_error,
    db_connection_failed,
    internal_error,
    query_failed,
)

T = TypeVar("T")


class ErrorMapper(ABC, Generic[T]):
    """Abstract base for error mappers at module boundaries."""

    origin: str = ""

    @abstractmethod
    def map_exception(self, exc: Exception) -> AppError:
        """Map an exception raised inside the boundary."""

    def map_result(self, result: Result[T, AppError]) -> Result[T, AppError]:
        match result:
            case Ok(_):
                return result
            case Err(e):
                return Err(e if e.context.origin else e.with_origin(self.origin))


class DatabaseErrorMapper(ErrorMapper[T]):
    """Maps SQLAlchemy exceptions to storage error codes."""

    def __init__(self, origin: str = "database"):
        self.origin = origin

    def map_exception(self, exc: Exception) -> AppError:
        if isinstance(exc, OperationalError):
            return self._map_operational_error(exc)
        if isinstance(exc, DBAPIError):
            message = str(exc.orig) if exc.orig else str(exc)
            return query_failed(message, origin=self.origin).error.chain(exc)
        if isinstance(exc, SQLAlchemyError):
            return query_failed(str(exc), origin=self.origin).error.chain(exc)

        return internal_error(
            f"Database error: {exc}",
            origin=self.origin,
            cause=exc,
        ).error

    def _map_operational_error(self, exc: OperationalError) -> AppError:
        message = str(exc.orig) if exc.orig else str(exc)
        lowered = message.lower()

        if "connect" in lowered or "unable to open" in lowered:
            return db_connection_failed(message, origin=self.origin).error.chain(exc)
        return query_failed(message, origin=self.origin).error.chain(exc)


class CheckerErrorMapper(ErrorMapper[T]):
    """Maps exceptions from user-supplied checker callables."""

    def __init__(self, origin: str = "checker"):
        self.origin = origin

    def map_exception(self, exc: Exception) -> AppError:
        if isinstance(exc, SQLAlchemyError):
            return DatabaseErrorMapper(self.origin).map_exception(exc)
        return checker_error(
            f"External checker raised {type(exc).__name__}: {exc}",
            origin=self.origin,
            cause=exc,
        ).error


def map_errors(mapper: ErrorMapper[T]):
    """Decorator that turns exceptions from an async call into ``Err``.

    Usage:
        @map_errors(DatabaseErrorMapper("sql_checker"))
        async def lookup(...) -> Result[dict, AppError]:
            ...
    """
    def decorator(fn: Callable[..., Awaitable[Result[T, AppError]]]):
        async def wrapper(*args, **kwargs) -> Result[T, AppError]:
            try:
                result = await fn(*args, **kwargs)
            except Exception as e:
                return Err(mapper.map_exception(e))
            return mapper.map_result(result)
        wrapper.__name__ = fn.__name__
        wrapper.__doc__ = fn.__doc__
        return wrapper
    return decorator


def map_db_errors(origin: str = "database"):
    return map_errors(DatabaseErrorMapper(origin))

