"""Monadic Error Handling

Infrastructure failures (checker errors, timeouts, storage faults) are carried
as ``Result`` values holding an ``AppError``. Validation failures of user input
are not errors in this sense; see ``valet.validation.errors``.

Usage:
    from valet.errors import Ok, Err, AppError, checker_error

    match await checker.lookup(...):
        case Ok(facts):
            ...
        case Err(error):
            log.warning(error.message, code=error.code.name)
"""
from .types import (
    Result,
    Ok,
    Err,
    AppError,
    ErrorCode,
    ErrorContext,
)

from .builders import (
    checker_error,
    checker_timeout,
    dispatch_cancelled,
    db_error,
    query_failed,
    db_connection_failed,
    internal_error,
)

from .boundaries import (
    ErrorMapper,
    DatabaseErrorMapper,
    CheckerErrorMapper,
    map_errors,
    map_db_errors,
)

__all__ = [
    "Result",
    "Ok",
    "Err",
    "AppError",
    "ErrorCode",
    "ErrorContext",
    "checker_error",
    "checker_timeout",
    "dispatch_cancelled",
    "db_error",
    "query_failed",
    "db_connection_failed",
    "internal_error",
    "ErrorMapper",
    "DatabaseErrorMapper",
    "CheckerErrorMapper",
    "map_errors",
    "map_db_errors",
]
