"""Path Resolver

Dot-notation lookups over nested mappings and sequences. Integer segments
index into lists (``orders.2.items.0.productId``); everything else is a
mapping key.

Usage:
    accessor = DataAccessor(data)
    accessor.get("user.address.city").string()
    accessor.get("orders.0.total").float()
"""
from __future__ import annotations

from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from typing import Any

from .cache import split_path

_MISSING = object()


def _is_sequence(value: Any) -> bool:
    return isinstance(value, Sequence) and not isinstance(value, (str, bytes, bytearray))


def resolve(data: Any, path: str) -> Any:
    """Value at ``path``, or the private missing sentinel."""
    current = data
    for segment in split_path(path):
        if isinstance(current, Mapping):
            if segment in current:
                current = current[segment]
                continue
            return _MISSING
        if _is_sequence(current) and segment.lstrip("-").isdigit():
            index = int(segment)
            if 0 <= index < len(current):
                current = current[index]
                continue
        return _MISSING
    return current


@dataclass(frozen=True, slots=True)
class LookupResult:
    """Outcome of a path lookup with typed accessors."""
    raw: Any = _MISSING

    def exists(self) -> bool: return self.raw is not _MISSING

    def value(self) -> Any: return None if self.raw is _MISSING else self.raw

    def string(self) -> str:
        return self.raw if isinstance(self.raw, str) else ""

    def int(self) -> int:
        if isinstance(self.raw, bool) or not isinstance(self.raw, (int, float)):
            return 0
        return int(self.raw)

    def float(self) -> float:
        if isinstance(self.raw, bool) or not isinstance(self.raw, (int, float)):
            return 0.0
        return float(self.raw)

    def bool(self) -> bool:
        return self.raw if isinstance(self.raw, bool) else False

    def is_array(self) -> bool: return _is_sequence(self.raw)

    def is_object(self) -> bool: return isinstance(self.raw, Mapping)

    def array(self) -> list[LookupResult]:
        if not self.is_array():
            return []
        return [LookupResult(item) for item in self.raw]

    def get(self, path: str) -> LookupResult:
        if self.raw is _MISSING:
            return LookupResult()
        return LookupResult(resolve(self.raw, path))


class DataAccessor:
    """Read-only lookup helper over a root data instance."""

    def __init__(self, data: Any):
        self._data = data

    @property
    def data(self) -> Any:
        return self._data

    def get(self, path: str) -> LookupResult:
        return LookupResult(resolve(self._data, path))

    def __call__(self, path: str) -> LookupResult:
        return self.get(path)


def lookup(data: Any, path: str) -> LookupResult:
    return LookupResult(resolve(data, path))


def join_path(segments: Sequence[str | int]) -> str:
    """Render path segments in dot notation, indices as plain integers."""
    return ".".join(str(s) for s in segments)
