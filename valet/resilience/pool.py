"""Bounded Worker Pool

Evaluates independent items on at most ``max_workers`` threads and hands the
results back in input order. Callers merge the results themselves, on their
own thread, so the merge has exactly one writer.

Falls back to a plain loop when ``max_workers`` is zero or there is at most
one item.
"""
from __future__ import annotations

from collections.abc import Callable, Sequence
from concurrent.futures import ThreadPoolExecutor
from typing import TypeVar

T = TypeVar("T")
R = TypeVar("R")


class BoundedPool:
    """Index-ordered ``map`` over a capped thread pool.

    Usage:
        results = BoundedPool(4).map(lambda i, item: check(i, item), items)
    """

    def __init__(self, max_workers: int, *, thread_name_prefix: str = "valet-pool"):
        self.max_workers = max_workers
        self.thread_name_prefix = thread_name_prefix

    def is_sequential(self, count: int) -> bool:
        return self.max_workers <= 0 or count <= 1

    def map(self, fn: Callable[[int, T], R], items: Sequence[T]) -> list[R]:
        if self.is_sequential(len(items)):
            return [fn(i, item) for i, item in enumerate(items)]

        workers = min(self.max_workers, len(items))
        with ThreadPoolExecutor(max_workers=workers, thread_name_prefix=self.thread_name_prefix) as executor:
            futures = [executor.submit(fn, i, item) for i, item in enumerate(items)]
            return [future.result() for future in futures]


def evaluate_concurrently(
    items: Sequence[T],
    fn: Callable[[int, T], R],
    max_workers: int,
) -> list[R]:
    return BoundedPool(max_workers).map(fn, items)
