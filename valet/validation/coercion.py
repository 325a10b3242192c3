"""Explicit Opt-in Coercion

Coercion only happens on nodes that ask for it (``Int().coerce()``,
``Bool().coerce()``) and only affects the value seen by that node; the input
instance is never rewritten.

Features:
- Type-safe coercion with Result types
- ISO-8601 parsing delegated to pydantic's datetime parser
- No silent data loss: "1.5" never becomes the integer 1
"""
from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime
from functools import lru_cache
from typing import Any, Generic, TypeVar

from pydantic import TypeAdapter
from pydantic import ValidationError as PydanticValidationError

from valet.errors import AppError, ErrorCode, Ok, Err, Result

T = TypeVar("T")
S = TypeVar("S")


class CoercionRule(ABC, Generic[S, T]):
    """Base class for coercion rules."""

    @property
    @abstractmethod
    def source_types(self) -> tuple[type, ...]:
        """Types this rule can coerce from."""

    @property
    @abstractmethod
    def target_type(self) -> type[T]:
        """Type this rule coerces to."""

    @abstractmethod
    def coerce(self, value: Any) -> Result[T, AppError]:
        """Coerce value to target type."""

    def can_coerce(self, value: Any) -> bool:
        return isinstance(value, self.source_types) and self.coerce(value).is_ok()

    def __call__(self, value: Any) -> Result[T, AppError]:
        return self.coerce(value)

    def _wrong_type(self, value: Any) -> Err[AppError]:
        return Err(AppError(
            code=ErrorCode.E2004_INVALID_TYPE,
            message=f"Cannot coerce {type(value).__name__} to {self.target_type.__name__}",
        ))


@dataclass(frozen=True, slots=True)
class StringToFloat(CoercionRule[str, float]):
    """Numeric string to float; surrounding whitespace is ignored."""

    @property
    def source_types(self) -> tuple[type, ...]: return (str,)

    @property
    def target_type(self) -> type[float]: return float

    def coerce(self, value: Any) -> Result[float, AppError]:
        if not isinstance(value, str):
            return self._wrong_type(value)
        try:
            return Ok(float(value.strip()))
        except ValueError as e:
            return Err(AppError(
                code=ErrorCode.E2002_INVALID_FORMAT,
                message=f"Cannot coerce '{value}' to float: {e}",
                metadata={"value": value, "target": "float"},
            ))


@dataclass(frozen=True, slots=True)
class StringToInt(CoercionRule[str, int]):
    """Integer string to int. Whole-valued decimals ("3.0") are accepted."""

    @property
    def source_types(self) -> tuple[type, ...]: return (str,)

    @property
    def target_type(self) -> type[int]: return int

    def coerce(self, value: Any) -> Result[int, AppError]:
        match StringToFloat().coerce(value):
            case Ok(number) if number.is_integer():
                return Ok(int(number))
            case Ok(_):
                return Err(AppError(
                    code=ErrorCode.E2002_INVALID_FORMAT,
                    message=f"Cannot coerce '{value}' to int without losing precision",
                    metadata={"value": value, "target": "int"},
                ))
            case failure:
                return failure


@dataclass(frozen=True, slots=True)
class StringToBool(CoercionRule[str, bool]):
    """Coerce string to boolean.

    Truthy: "true", "1", "yes", "on"
    Falsy: "false", "0", "no", "off", ""
    """
    true_values: frozenset[str] = frozenset({"true", "1", "yes", "on"})
    false_values: frozenset[str] = frozenset({"false", "0", "no", "off", ""})

    @property
    def source_types(self) -> tuple[type, ...]: return (str, int)

    @property
    def target_type(self) -> type[bool]: return bool

    def coerce(self, value: Any) -> Result[bool, AppError]:
        if isinstance(value, int) and not isinstance(value, bool) and value in (0, 1):
            return Ok(bool(value))
        if not isinstance(value, str):
            return self._wrong_type(value)

        lower = value.strip().lower()
        if lower in self.true_values:
            return Ok(True)
        if lower in self.false_values:
            return Ok(False)

        return Err(AppError(
            code=ErrorCode.E2002_INVALID_FORMAT,
            message=f"Cannot coerce '{value}' to bool. Valid values: {sorted(self.true_values | self.false_values)}",
        ))


@lru_cache(maxsize=1)
def _datetime_adapter() -> TypeAdapter[datetime]:
    return TypeAdapter(datetime)


@dataclass(frozen=True, slots=True)
class ISO8601ToDateTime(CoercionRule[str, datetime]):
    """ISO-8601 string to datetime, ``Z`` suffix included."""

    @property
    def source_types(self) -> tuple[type, ...]: return (str,)

    @property
    def target_type(self) -> type[datetime]: return datetime

    def coerce(self, value: Any) -> Result[datetime, AppError]:
        if not isinstance(value, str):
            return self._wrong_type(value)
        try:
            return Ok(_datetime_adapter().validate_python(value, strict=False))
        except PydanticValidationError as e:
            return Err(AppError(
                code=ErrorCode.E2002_INVALID_FORMAT,
                message=f"Cannot coerce '{value}' to datetime: {e.errors()[0]['msg']}",
                metadata={"value": value, "target": "datetime", "format": "ISO8601"},
            ))


@dataclass(frozen=True, slots=True)
class FormattedDateTime(CoercionRule[str, datetime]):
    """String to datetime through an explicit ``strptime`` pattern."""
    pattern: str = "%Y-%m-%d"

    @property
    def source_types(self) -> tuple[type, ...]: return (str,)

    @property
    def target_type(self) -> type[datetime]: return datetime

    def coerce(self, value: Any) -> Result[datetime, AppError]:
        if not isinstance(value, str):
            return self._wrong_type(value)
        try:
            return Ok(datetime.strptime(value, self.pattern))
        except ValueError as e:
            return Err(AppError(
                code=ErrorCode.E2002_INVALID_FORMAT,
                message=f"Cannot coerce '{value}' to datetime: {e}",
                metadata={"value": value, "target": "datetime", "format": self.pattern},
            ))


@dataclass(frozen=True, slots=True)
class ExplicitCoercion:
    """First matching rule wins.

    Usage:
        coercer = ExplicitCoercion()
        coercer.coerce("123", int)    # Ok(123)
        coercer.coerce("abc", int)    # Err(AppError)
    """
    rules: tuple[CoercionRule, ...] = field(default_factory=lambda: (
        StringToInt(),
        StringToFloat(),
        StringToBool(),
        ISO8601ToDateTime(),
    ))

    def add_rule(self, rule: CoercionRule) -> ExplicitCoercion:
        return ExplicitCoercion(rules=(rule, *self.rules))

    def coerce(self, value: Any, target_type: type[T]) -> Result[T, AppError]:
        if isinstance(value, target_type) and not (target_type is not bool and isinstance(value, bool)):
            return Ok(value)

        for rule in self.rules:
            if rule.target_type is target_type and isinstance(value, rule.source_types):
                result = rule.coerce(value)
                if result.is_ok():
                    return result

        return Err(AppError(
            code=ErrorCode.E2004_INVALID_TYPE,
            message=f"Cannot coerce {type(value).__name__} to {target_type.__name__}",
            metadata={"source_type": type(value).__name__, "target_type": target_type.__name__},
        ))


DEFAULT_COERCER = ExplicitCoercion()


def coerce(value: Any, target_type: type[T]) -> Result[T, AppError]:
    return DEFAULT_COERCER.coerce(value, target_type)
