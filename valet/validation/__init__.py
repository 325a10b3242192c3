"""Declarative Validation

Rule trees built from chainable, immutable nodes. A single walk over the data
instance yields path-keyed errors for local rules and the deferred
existence/uniqueness requests the pipeline resolves in one batched round.

Key Features:
- String, number, bool, time, object and array nodes with chainable rules
- Combinators (Optional, Enum, Literal, Union, Any)
- Cross-field rules resolved through dot/index paths
- Custom messages as strings or callables over ``MessageContext``
- Opt-in coercion for numeric and boolean strings
- Bounded concurrent evaluation of array elements

Usage:
    from valet.validation import Schema, String, Int, Array, Object, validate

    schema = Schema({
        "email": String().required().email(),
        "items": Array().of(Object().shape({"qty": Int().min(1)})).nonempty(),
    })
    errors = validate(payload, schema)
"""

# Rule nodes
from .base import RuleNode, ScalarNode, UNSET
from .string import StringNode, String
from .number import NumberNode, Int, Float
from .boolean import BoolNode, Bool
from .temporal import TimeNode, Time
from .object import ObjectNode, Object
from .array import ArrayNode, Array
from .combinators import (
    AnyNode,
    LiteralNode,
    OptionalNode,
    UnionNode,
    Any,
    Enum,
    Literal,
    Optional,
    Union,
)
from .schema import Schema

# Context, paths and messages
from .context import ValidationContext, ValidationOptions
from .paths import DataAccessor, LookupResult, lookup
from .messages import Message, MessageContext

# Leaf rules and coercion
from .validators import AtomicValidator, Custom, ValidationResult, WithMessage
from .coercion import ExplicitCoercion, coerce

# Outcome
from .errors import (
    ErrorMap,
    Evaluation,
    GroupFailure,
    InfrastructureFailure,
    ValidationErrors,
)

# Entry points
from .pipeline import (
    parse,
    parse_with_checker,
    safe_parse,
    validate,
    validate_with_checker,
)

__all__ = [
    # Nodes
    "RuleNode",
    "ScalarNode",
    "UNSET",
    "StringNode",
    "NumberNode",
    "BoolNode",
    "TimeNode",
    "ObjectNode",
    "ArrayNode",
    "AnyNode",
    "LiteralNode",
    "OptionalNode",
    "UnionNode",
    "Schema",
    # Constructors
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
    # Context
    "ValidationContext",
    "ValidationOptions",
    "DataAccessor",
    "LookupResult",
    "lookup",
    "Message",
    "MessageContext",
    # Rules
    "AtomicValidator",
    "Custom",
    "ValidationResult",
    "WithMessage",
    "ExplicitCoercion",
    "coerce",
    # Outcome
    "ErrorMap",
    "Evaluation",
    "GroupFailure",
    "InfrastructureFailure",
    "ValidationErrors",
    # Entry points
    "validate",
    "validate_with_checker",
    "parse",
    "safe_parse",
    "parse_with_checker",
]
