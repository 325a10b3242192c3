"""Message templating.

A message is either a plain string or a callable receiving ``MessageContext``.
Defaults are built from the field name so ``"email must be a string"`` reads
naturally at any depth.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable, Union

from .context import ValidationContext


@dataclass(frozen=True, slots=True)
class MessageContext:
    field: str
    path: str
    index: int | None
    value: Any
    rule: str
    param: Any
    data: Any


MessageFunc = Callable[[MessageContext], str]
Message = Union[str, MessageFunc]


def render(
    message: Message | None,
    default: str,
    ctx: ValidationContext,
    *,
    rule: str,
    value: Any = None,
    param: Any = None,
) -> str:
    """Resolve a custom message against the current context, else ``default``."""
    if message is None:
        return default
    if isinstance(message, str):
        return message
    return message(MessageContext(
        field=ctx.field_name,
        path=ctx.full_path,
        index=ctx.index,
        value=value,
        rule=rule,
        param=param,
        data=ctx.root,
    ))


def describe(values: Any) -> str:
    """Comma-joined rendering for membership messages."""
    return ", ".join(str(v) for v in values)
