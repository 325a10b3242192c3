"""Deferred External Checks

Existence and uniqueness rules never query during the walk. They emit
``CheckRequest`` values which are batched into ``CheckGroup`` partitions (one
per resource/filter/mode signature, values deduplicated) and answered by an
``ExternalChecker``.
"""
from .requests import (
    CheckMode,
    CheckRequest,
    CheckRule,
    Filter,
    OPERATORS,
    where,
    where_eq,
    where_not,
)

from .batching import (
    CheckGroup,
    batch,
    lookup_fact,
    resolve,
    value_key,
)

from .checker import (
    CheckFunc,
    ExternalChecker,
    FuncChecker,
)

__all__ = [
    # Requests
    "CheckMode",
    "CheckRequest",
    "CheckRule",
    "Filter",
    "OPERATORS",
    "where",
    "where_eq",
    "where_not",
    # Batching
    "CheckGroup",
    "batch",
    "lookup_fact",
    "resolve",
    "value_key",
    # Checkers
    "CheckFunc",
    "ExternalChecker",
    "FuncChecker",
]
