"""Validation Pipeline

Two phases per call:

1. Walk the rule tree over the data instance. Local rules produce path-keyed
   errors immediately; ``exists``/``unique`` rules only emit deferred
   requests.
2. Batch the requests by (mode, resource, filters), dispatch one lookup per
   group concurrently, and fold the answers back onto the requesting paths.

Infrastructure trouble in phase 2 (checker errors, timeouts, cancellation)
never turns into a field error. It is reported separately on
``ValidationErrors.infrastructure`` so callers can tell "invalid" apart from
"could not verify".

Usage:
    errors = validate(payload, schema)
    errors = await validate_with_checker(payload, schema, SQLAlchemyChecker(engine))
    user = parse(payload, schema)
    match safe_parse(payload, schema):
        case Ok(data): ...
        case Err(errors): ...
"""
from __future__ import annotations

from collections.abc import Mapping
from typing import TYPE_CHECKING, Any

from valet.checks.batching import batch
from valet.config import get_settings
from valet.errors.types import Err, Ok, Result
from valet.logging import validation_logger
from valet.resilience.dispatch import Dispatcher

from .base import RuleNode
from .context import ValidationContext, ValidationOptions
from .errors import Evaluation, ValidationErrors
from .schema import Schema

if TYPE_CHECKING:
    from valet.checks.checker import ExternalChecker
    from valet.resilience.cancellation import CancellationToken

logger = validation_logger()

SchemaLike = Schema | Mapping[str, RuleNode]


def _instance(data: Any) -> Mapping[str, Any]:
    if data is None:
        return {}
    if not isinstance(data, Mapping):
        raise TypeError(f"data must be a mapping, got {type(data).__name__}")
    return data


def _walk(data: Mapping[str, Any], schema: SchemaLike, options: ValidationOptions) -> Evaluation:
    schema = Schema.of(schema)
    ctx = ValidationContext.for_root(data, options)
    evaluation = schema.evaluate(ctx, data, options.abort_early)
    logger.debug("walk_finished", fields=len(schema), error_paths=len(evaluation.errors),
        deferred_requests=len(evaluation.deferred))
    return evaluation


# ============================================================================
# Entry points
# ============================================================================

def validate(data: Any, schema: SchemaLike, *, abort_early: bool = False) -> ValidationErrors | None:
    """Local rules only; deferred existence/uniqueness requests are discarded."""
    data = _instance(data)
    evaluation = _walk(data, schema, ValidationOptions(abort_early=abort_early))
    return ValidationErrors.from_map(evaluation.errors)


async def validate_with_checker(
    data: Any,
    schema: SchemaLike,
    checker: ExternalChecker,
    *,
    cancellation: CancellationToken | None = None,
    abort_early: bool = False,
    max_concurrency: int | None = None,
    timeout: float | None = None,
) -> ValidationErrors | None:
    """Full two-phase validation.

    ``max_concurrency`` caps simultaneously in-flight group calls and
    ``timeout`` bounds each call; both default to settings. With
    ``abort_early`` a walk that stopped on a failing field skips dispatch.
    """
    data = _instance(data)
    evaluation = _walk(data, schema, ValidationOptions(abort_early, checker, cancellation))
    errors = evaluation.errors

    if abort_early and errors:
        return ValidationErrors.from_map(errors)

    settings = get_settings()
    if max_concurrency is None:
        max_concurrency = settings.DISPATCH_MAX_CONCURRENCY
    if timeout is None:
        timeout = settings.DISPATCH_TIMEOUT_SECONDS

    groups = batch(evaluation.deferred)
    dispatcher = Dispatcher(checker, max_concurrency=max_concurrency, timeout=timeout)
    outcome = await dispatcher.dispatch(groups, cancellation)
    errors.merge(outcome.resolve(groups))

    logger.debug("checks_resolved", groups=len(groups), calls=outcome.calls,
        failures=len(outcome.failures), cancelled=outcome.cancelled)
    return ValidationErrors.from_map(errors, outcome.infrastructure)


def parse(data: Any, schema: SchemaLike) -> Any:
    """Return ``data`` unchanged when valid, raise ``ValidationErrors`` otherwise."""
    errors = validate(data, schema)
    if errors is not None:
        raise errors
    return data


def safe_parse(data: Any, schema: SchemaLike) -> Result[Any, ValidationErrors]:
    errors = validate(data, schema)
    return Err(errors) if errors is not None else Ok(data)


async def parse_with_checker(
    data: Any,
    schema: SchemaLike,
    checker: ExternalChecker,
    **options: Any,
) -> Any:
    """Raising variant of ``validate_with_checker``."""
    errors = await validate_with_checker(data, schema, checker, **options)
    if errors is not None:
        raise errors
    return data
