"""External Checker boundary

The pipeline only needs one capability from the outside world: given a
resource, an attribute, a set of distinct values and some filter predicates,
say which of the values are present. Adapters may batch further, cache or
translate predicates as they like, as long as they return one boolean per
submitted value.
"""
from __future__ import annotations

import asyncio
import inspect
from abc import ABC, abstractmethod
from collections.abc import Awaitable, Callable, Mapping, Sequence
from typing import TYPE_CHECKING, Any, Union

from .requests import Filter

if TYPE_CHECKING:
    from valet.resilience.cancellation import CancellationToken

CheckFunc = Callable[
    [str, str, Sequence[Any], Sequence[Filter]],
    Union[Mapping[Any, bool], Awaitable[Mapping[Any, bool]]],
]


class ExternalChecker(ABC):
    """Existence lookup against an external store."""

    @abstractmethod
    async def check_existence(
        self,
        cancellation: CancellationToken | None,
        table: str,
        column: str,
        values: Sequence[Any],
        filters: Sequence[Filter],
    ) -> Mapping[Any, bool]:
        """Return ``{value: found}`` for every value in ``values``.

        Raise to signal an infrastructure failure; the dispatcher records it
        against this call's group only.
        """


class FuncChecker(ExternalChecker):
    """Adapter around a plain callable.

    ``fn(table, column, values, filters)`` may be sync or async. Sync callables
    run in the default executor so they never block the event loop.

    Usage:
        checker = FuncChecker(lambda table, column, values, filters: {v: v in known for v in values})
    """

    def __init__(self, fn: CheckFunc, *, run_in_executor: bool = True):
        self._fn = fn
        self._run_in_executor = run_in_executor and not inspect.iscoroutinefunction(fn)

    async def check_existence(
        self,
        cancellation: CancellationToken | None,
        table: str,
        column: str,
        values: Sequence[Any],
        filters: Sequence[Filter],
    ) -> Mapping[Any, bool]:
        if self._run_in_executor:
            loop = asyncio.get_running_loop()
            result = await loop.run_in_executor(None, self._fn, table, column, list(values), list(filters))
        else:
            result = self._fn(table, column, list(values), list(filters))
        if inspect.isawaitable(result):
            result = await result
        if not isinstance(result, Mapping):
            raise TypeError(f"checker returned {type(result).__name__}, expected a mapping")
        return result
