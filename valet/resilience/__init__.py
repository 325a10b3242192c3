"""Resilience Patterns

Concurrency and fault containment around external checks:
- Cancellation tokens with optional deadlines
- Parallel dispatch of check groups with a concurrency cap and per-call timeout
- Bounded thread pool for array element evaluation
"""
from .cancellation import CancellationToken

from .dispatch import (
    DispatchResult,
    Dispatcher,
    GroupCallResult,
    dispatch,
)

from .pool import (
    BoundedPool,
    evaluate_concurrently,
)

__all__ = [
    # Cancellation
    "CancellationToken",
    # Dispatch
    "DispatchResult",
    "Dispatcher",
    "GroupCallResult",
    "dispatch",
    # Pool
    "BoundedPool",
    "evaluate_concurrently",
]
