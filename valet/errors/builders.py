"""Error Builders

Constructors for the infrastructure errors raised around external checks.
Each builder returns ``Err(AppError)`` with the matching code and metadata.
"""
from .types import AppError, ErrorCode, ErrorContext, Err


# =============================================================================
# External Checker Errors (E1xxx)
# =============================================================================

def checker_error(
    message: str,
    *,
    code: ErrorCode = ErrorCode.E1011_CHECKER_ERROR,
    table: str | None = None,
    column: str | None = None,
    origin: str = "",
    cause: Exception | None = None,
    **metadata,
) -> Err[AppError]:
    """Create an external checker failure."""
    meta = {"table": table, "column": column, **metadata}
    return Err(AppError(
        code=code,
        message=message,
        context=ErrorContext(origin=origin),
        metadata={k: v for k, v in meta.items() if v is not None},
        cause=cause,
    ))


def checker_timeout(
    table: str, column: str, timeout_seconds: float, origin: str = ""
) -> Err[AppError]:
    return checker_error(
        f"Existence check on {table}.{column} timed out after {timeout_seconds}s",
        code=ErrorCode.E1002_TIMEOUT,
        table=table,
        column=column,
        timeout_seconds=timeout_seconds,
        origin=origin,
    )


def dispatch_cancelled(
    table: str, column: str, origin: str = ""
) -> Err[AppError]:
    return checker_error(
        f"Existence check on {table}.{column} was not started: validation cancelled",
        code=ErrorCode.E1014_CANCELLED,
        table=table,
        column=column,
        origin=origin,
    )


# =============================================================================
# Storage Errors (E4xxx)
# =============================================================================

def db_error(
    message: str,
    *,
    code: ErrorCode = ErrorCode.E4000_DATABASE_GENERIC,
    table: str | None = None,
    query: str | None = None,
    origin: str = "",
    cause: Exception | None = None,
    **metadata,
) -> Err[AppError]:
    """Create storage error."""
    meta = {"table": table, **metadata}
    if query:
        meta["query"] = query[:200]
    return Err(AppError(
        code=code,
        message=message,
        context=ErrorContext(origin=origin),
        metadata={k: v for k, v in meta.items() if v is not None},
        cause=cause,
    ))


def query_failed(reason: str = "", *, table: str | None = None, origin: str = "") -> Err[AppError]:
    msg = "Existence query failed"
    if reason:
        msg += f": {reason}"
    return db_error(msg, code=ErrorCode.E4002_QUERY_FAILED, table=table, origin=origin)


def db_connection_failed(reason: str = "", origin: str = "") -> Err[AppError]:
    msg = "Database connection failed"
    if reason:
        msg += f": {reason}"
    return db_error(msg, code=ErrorCode.E4001_CONNECTION_FAILED, origin=origin)


# =============================================================================
# Internal Errors (E9xxx)
# =============================================================================

def internal_error(
    message: str,
    *,
    code: ErrorCode = ErrorCode.E9001_UNEXPECTED_ERROR,
    origin: str = "",
    cause: Exception | None = None,
    **metadata,
) -> Err[AppError]:
    """Create internal/unexpected error."""
    return Err(AppError(
        code=code,
        message=message,
        context=ErrorContext(origin=origin),
        metadata=metadata,
        cause=cause,
    ))
