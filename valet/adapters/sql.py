"""SQLAlchemy External Checker

Answers one check group with one statement:

    SELECT <column> FROM <table> WHERE <column> IN (:values) [AND <filter>...]

Tables and columns are addressed with lightweight ``table()``/``column()``
constructs, so no ORM models are needed. ``"schema.table"`` names are split
into schema and table.

Usage:
    engine = create_async_engine("postgresql+asyncpg://...")
    errors = await validate_with_checker(payload, schema, SQLAlchemyChecker(engine))
"""
from __future__ import annotations

import operator
from collections.abc import Callable, Mapping, Sequence
from typing import TYPE_CHECKING, Any

from sqlalchemy import column as sql_column, select, table as sql_table
from sqlalchemy.ext.asyncio import AsyncEngine, create_async_engine
from sqlalchemy.sql.elements import ColumnClause

from valet.checks.checker import ExternalChecker
from valet.checks.requests import Filter
from valet.config import get_settings
from valet.errors.boundaries import map_db_errors
from valet.errors.types import AppError, Ok, Result
from valet.logging import adapter_logger

if TYPE_CHECKING:
    from valet.resilience.cancellation import CancellationToken

logger = adapter_logger()

_OPERATORS: dict[str, Callable[[ColumnClause, Any], Any]] = {
    "=": operator.eq,
    "!=": operator.ne,
    "<>": operator.ne,
    "<": operator.lt,
    "<=": operator.le,
    ">": operator.gt,
    ">=": operator.ge,
    "like": lambda c, v: c.like(v),
    "not like": lambda c, v: c.not_like(v),
    "is": lambda c, v: c.is_(v),
    "is not": lambda c, v: c.is_not(v),
}


def _split_table(name: str) -> tuple[str | None, str]:
    schema, _, table = name.rpartition(".")
    return (schema or None), table


def _match_found(values: Sequence[Any], found: set[Any]) -> dict[Any, bool]:
    """Map rows back to submitted values; drivers may hand back another type."""
    found_text = {str(v) for v in found}
    facts: dict[Any, bool] = {}
    for value in values:
        try:
            hit = value in found
        except TypeError:
            hit = False
        facts[value] = hit or str(value) in found_text
    return facts


class SQLAlchemyChecker(ExternalChecker):
    """``ExternalChecker`` backed by an ``AsyncEngine``."""

    def __init__(self, engine: AsyncEngine):
        self.engine = engine

    @classmethod
    def from_settings(cls) -> SQLAlchemyChecker:
        """Engine from ``VALET_DATABASE_URL`` (``VALET_LOG_SQL`` echoes statements)."""
        settings = get_settings()
        if not settings.DATABASE_URL:
            raise ValueError("VALET_DATABASE_URL is not set")
        return cls(create_async_engine(settings.DATABASE_URL, echo=settings.LOG_SQL))

    def statement(self, table: str, column: str, values: Sequence[Any], filters: Sequence[Filter]):
        schema, name = _split_table(table)
        target = sql_column(column)
        source = sql_table(name, target, schema=schema)
        stmt = select(target).select_from(source).where(target.in_(list(values))).distinct()
        for f in filters:
            stmt = stmt.where(_OPERATORS[f.operator.lower()](sql_column(f.column), f.value))
        return stmt

    async def check_existence(
        self,
        cancellation: CancellationToken | None,
        table: str,
        column: str,
        values: Sequence[Any],
        filters: Sequence[Filter],
    ) -> Mapping[Any, bool]:
        if cancellation is not None and cancellation.cancelled:
            raise RuntimeError(f"lookup on {table}.{column} cancelled: {cancellation.reason}")
        if not values:
            return {}

        stmt = self.statement(table, column, values, filters)
        async with self.engine.connect() as conn:
            rows = await conn.execute(stmt)
            found = {row[0] for row in rows}

        logger.debug("existence_query", table=table, column=column, values=len(values),
            filters=len(filters), found=len(found))
        return _match_found(values, found)

    @map_db_errors("sql_checker")
    async def lookup(
        self,
        table: str,
        column: str,
        values: Sequence[Any],
        filters: Sequence[Filter] = (),
    ) -> Result[Mapping[Any, bool], AppError]:
        """``check_existence`` with storage failures returned as ``Err``."""
        return Ok(await self.check_existence(None, table, column, values, filters))

    async def dispose(self) -> None:
        await self.engine.dispose()
