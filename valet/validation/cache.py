"""Process-wide caches

Compiled regex patterns and split path segments, keyed by the literal pattern
or path string. Populated lazily on first miss and never evicted: the key
space is bounded by the number of distinct patterns and paths appearing in
schemas, which is fixed once schemas are built.
"""
from __future__ import annotations

import re
import threading
from typing import Generic, Callable, TypeVar

K = TypeVar("K")
V = TypeVar("V")


class LazyCache(Generic[K, V]):
    """Thread-safe memo of ``factory(key)``.

    Reads take no lock; a miss takes the lock and re-checks before building,
    so each key is built at most once.
    """

    def __init__(self, factory: Callable[[K], V]):
        self._factory = factory
        self._items: dict[K, V] = {}
        self._lock = threading.Lock()

    def get(self, key: K) -> V:
        try:
            return self._items[key]
        except KeyError:
            pass
        with self._lock:
            if key not in self._items:
                self._items[key] = self._factory(key)
            return self._items[key]

    def __contains__(self, key: object) -> bool: return key in self._items

    def __len__(self) -> int: return len(self._items)

    def clear(self) -> None:
        with self._lock:
            self._items.clear()


def _split_path(path: str) -> tuple[str, ...]:
    return tuple(path.split(".")) if path else ()


pattern_cache: LazyCache[str, re.Pattern[str]] = LazyCache(re.compile)
path_cache: LazyCache[str, tuple[str, ...]] = LazyCache(_split_path)


def compile_pattern(pattern: str) -> re.Pattern[str]:
    """Compiled form of ``pattern``; raises ``re.error`` for invalid input."""
    return pattern_cache.get(pattern)


def split_path(path: str) -> tuple[str, ...]:
    return path_cache.get(path)
