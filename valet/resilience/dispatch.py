"""Parallel Dispatcher

Runs one external call per check group, all groups concurrently, with an
optional cap on in-flight calls and an optional per-call timeout.

- A failing group is recorded and never stops the others
- A cancelled token stops new calls from starting; started calls finish
- Results are folded in group order, so completion order never shows
"""
from __future__ import annotations

import asyncio
from collections.abc import Mapping, Sequence
from contextlib import nullcontext
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any

from valet.checks.batching import CheckGroup, resolve
from valet.checks.checker import ExternalChecker
from valet.errors import (
    AppError,
    CheckerErrorMapper,
    Err,
    Ok,
    Result,
    checker_error,
    checker_timeout,
    dispatch_cancelled,
)
from valet.logging import dispatch_logger
from valet.validation.errors import ErrorMap, GroupFailure, InfrastructureFailure

from .cancellation import CancellationToken

logger = dispatch_logger()


@dataclass(frozen=True)
class GroupCallResult:
    """Outcome of one group's external call."""
    group: CheckGroup
    result: Result[Mapping[Any, bool], AppError] | None  # None: never started
    duration_ms: float = 0.0

    @property
    def started(self) -> bool: return self.result is not None


@dataclass
class DispatchResult:
    """Facts per group signature plus whatever could not be determined."""
    facts: dict[str, Mapping[Any, bool]] = field(default_factory=dict)
    failures: list[GroupFailure] = field(default_factory=list)
    cancelled: bool = False
    calls: int = 0

    @property
    def infrastructure(self) -> InfrastructureFailure | None:
        if not self.failures and not self.cancelled:
            return None
        return InfrastructureFailure(failures=tuple(self.failures), cancelled=self.cancelled)

    def resolve(self, groups: Sequence[CheckGroup]) -> ErrorMap:
        return resolve(groups, self.facts)


class Dispatcher:
    """Dispatch grouped existence lookups.

    Usage:
        dispatcher = Dispatcher(checker, max_concurrency=4, timeout=2.0)
        result = await dispatcher.dispatch(groups, cancellation=token)
        errors = result.resolve(groups)
    """

    def __init__(
        self,
        checker: ExternalChecker,
        *,
        max_concurrency: int | None = None,
        timeout: float | None = None,
        error_mapper: CheckerErrorMapper | None = None,
    ):
        self.checker = checker
        self.max_concurrency = max_concurrency if max_concurrency and max_concurrency > 0 else None
        self.timeout = timeout if timeout and timeout > 0 else None
        self.error_mapper = error_mapper or CheckerErrorMapper("dispatch")

    async def dispatch(
        self,
        groups: Sequence[CheckGroup],
        cancellation: CancellationToken | None = None,
    ) -> DispatchResult:
        if not groups:
            return DispatchResult()

        semaphore = asyncio.Semaphore(self.max_concurrency) if self.max_concurrency else None

        if len(groups) == 1:
            outcomes = [await self._call(groups[0], cancellation, semaphore)]
        else:
            outcomes = await asyncio.gather(*(self._call(g, cancellation, semaphore) for g in groups))

        return self._fold(outcomes)

    async def _call(
        self,
        group: CheckGroup,
        cancellation: CancellationToken | None,
        semaphore: asyncio.Semaphore | None,
    ) -> GroupCallResult:
        async with semaphore or nullcontext():
            if cancellation is not None and cancellation.cancelled:
                return GroupCallResult(group=group, result=None)

            start = datetime.now(timezone.utc)
            logger.debug("check_group_dispatched", table=group.table, column=group.column,
                mode=group.mode.value, value_count=len(group.values))
            try:
                call = self.checker.check_existence(cancellation, group.table, group.column,
                    list(group.values), list(group.filters))
                if self.timeout is not None:
                    facts = await asyncio.wait_for(call, timeout=self.timeout)
                else:
                    facts = await call
            except asyncio.TimeoutError:
                result = checker_timeout(group.table, group.column, self.timeout or 0.0, origin="dispatch")
            except Exception as e:
                result = Err(self.error_mapper.map_exception(e))
            else:
                if isinstance(facts, Mapping):
                    result = Ok(facts)
                else:
                    result = checker_error(
                        f"Checker returned {type(facts).__name__}, expected a mapping",
                        table=group.table, column=group.column, origin="dispatch",
                    )

            duration_ms = (datetime.now(timezone.utc) - start).total_seconds() * 1000
            logger.debug("check_group_completed", table=group.table, column=group.column,
                ok=result.is_ok(), duration_ms=round(duration_ms, 2))
            return GroupCallResult(group=group, result=result, duration_ms=duration_ms)

    def _fold(self, outcomes: Sequence[GroupCallResult]) -> DispatchResult:
        folded = DispatchResult()
        for outcome in outcomes:
            group = outcome.group
            if outcome.result is None:
                folded.cancelled = True
                error = dispatch_cancelled(group.table, group.column, origin="dispatch").error
                folded.failures.append(_failure(group, error))
                continue

            folded.calls += 1
            match outcome.result:
                case Ok(facts):
                    folded.facts[group.signature] = facts
                case Err(error):
                    logger.warning("check_group_failed", table=group.table, column=group.column,
                        code=error.code.name, error=error.message, paths=list(group.paths))
                    folded.failures.append(_failure(group, error))

        if folded.cancelled:
            skipped = sum(1 for o in outcomes if not o.started)
            logger.info("dispatch_cancelled", skipped_groups=skipped, completed_groups=folded.calls)
        return folded


def _failure(group: CheckGroup, error: AppError) -> GroupFailure:
    return GroupFailure(
        signature=group.signature,
        resource=group.table,
        attribute=group.column,
        mode=group.mode.value,
        paths=group.paths,
        error=error,
    )


async def dispatch(
    groups: Sequence[CheckGroup],
    checker: ExternalChecker,
    cancellation: CancellationToken | None = None,
    *,
    max_concurrency: int | None = None,
    timeout: float | None = None,
) -> DispatchResult:
    """Dispatch ``groups`` with a one-off ``Dispatcher``."""
    return await Dispatcher(checker, max_concurrency=max_concurrency, timeout=timeout).dispatch(groups, cancellation)
