"""Valet: two-phase validation for nested data.

Local rules run in a single walk over the data; existence and uniqueness
rules are batched into one lookup per resource and resolved concurrently
against an external store.

Usage:
    from valet import Schema, String, Int, Array, Object, validate_with_checker, SQLAlchemyChecker

    schema = Schema({
        "email": String().required().email().unique("users", "email"),
        "items": Array().of(Object().shape({
            "product_id": Int().required().exists("products", "id"),
        })).nonempty(),
    })
    errors = await validate_with_checker(payload, schema, SQLAlchemyChecker(engine))
"""
# validation must be imported before checks: check requests depend on message types
from .validation import (
    Any,
    Array,
    Bool,
    Enum,
    Float,
    InfrastructureFailure,
    Int,
    Literal,
    Object,
    Optional,
    Schema,
    String,
    Time,
    Union,
    ValidationErrors,
    parse,
    parse_with_checker,
    safe_parse,
    validate,
    validate_with_checker,
)
from .checks import FuncChecker, where, where_eq, where_not
from .resilience import CancellationToken
from .adapters import SQLAlchemyChecker

__version__ = "0.1.0"

__all__ = [
    # Entry points
    "validate",
    "validate_with_checker",
    "parse",
    "safe_parse",
    "parse_with_checker",
    # Schema and nodes
    "Schema",
    "String",
    "Int",
    "Float",
    "Bool",
    "Time",
    "Object",
    "Array",
    "Optional",
    "Enum",
    "Literal",
    "Union",
    "Any",
    # External checks
    "where",
    "where_eq",
    "where_not",
    "CancellationToken",
    "FuncChecker",
    "SQLAlchemyChecker",
    # Outcome
    "ValidationErrors",
    "InfrastructureFailure",
]
