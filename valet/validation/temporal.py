"""Time node.

Accepts ``datetime`` objects or strings. Strings are parsed as ISO-8601
unless ``format()`` sets an explicit ``strptime`` pattern. Naive values are
read in the node's ``timezone()``, UTC by default.

Usage:
    Time().required().after(datetime(2024, 1, 1))
    Time().format("%Y-%m-%d").after_field("start_date")
    Time().timezone("Europe/Oslo").after_now()
"""
from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import date, datetime, time, timezone, tzinfo
from typing import Any
from zoneinfo import ZoneInfo

from valet.errors import Ok

from .base import SKIP, ScalarNode
from .coercion import CoercionRule, FormattedDateTime, ISO8601ToDateTime
from .context import ValidationContext
from .errors import ErrorMap
from .messages import Message
from . import validators as v


def _comparable(moment: datetime) -> datetime:
    """Naive datetimes are read as UTC so naive and aware values compare."""
    return moment if moment.tzinfo is not None else moment.replace(tzinfo=timezone.utc)


@dataclass(frozen=True)
class TimeNode(ScalarNode):
    layout: str | None = None
    zone: tzinfo | None = None

    def format(self, layout: str, message: Message | None = None) -> TimeNode:
        node = replace(self, layout=layout)
        return node.message("format", message) if message is not None else node

    def timezone(self, zone: tzinfo | str) -> TimeNode:
        """Zone for naive values; accepts a ``tzinfo`` or an IANA name."""
        return replace(self, zone=ZoneInfo(zone) if isinstance(zone, str) else zone)

    @property
    def parser(self) -> CoercionRule[str, datetime]:
        return FormattedDateTime(self.layout) if self.layout else ISO8601ToDateTime()

    def localize(self, moment: datetime) -> datetime:
        if moment.tzinfo is None and self.zone is not None:
            return moment.replace(tzinfo=self.zone)
        return _comparable(moment)

    def parse(self, value: Any) -> datetime | None:
        if isinstance(value, datetime):
            return self.localize(value)
        if isinstance(value, date):
            return self.localize(datetime.combine(value, time()))
        if isinstance(value, str):
            match self.parser.coerce(value):
                case Ok(moment):
                    return self.localize(moment)
        return None

    # -------------------------------------------------------------------- bounds

    def after(self, moment: datetime, message: Message | None = None) -> TimeNode:
        return self.rule(v.TimeBound(_comparable(moment), after=True), message)

    def before(self, moment: datetime, message: Message | None = None) -> TimeNode:
        return self.rule(v.TimeBound(_comparable(moment), after=False), message)

    def after_now(self, message: Message | None = None) -> TimeNode:
        return self.rule(v.TimeNowBound(after=True), message)

    def before_now(self, message: Message | None = None) -> TimeNode:
        return self.rule(v.TimeNowBound(after=False), message)

    def between(self, start: datetime, end: datetime, message: Message | None = None) -> TimeNode:
        return self.rule(v.TimeRange(_comparable(start), _comparable(end)), message)

    def after_field(self, path: str, message: Message | None = None) -> TimeNode:
        return self.rule(v.TimeFieldBound(path, self.parse, after=True), message)

    def before_field(self, path: str, message: Message | None = None) -> TimeNode:
        return self.rule(v.TimeFieldBound(path, self.parse, after=False), message)

    # ----------------------------------------------------------------- contracts

    def prepare(self, ctx: ValidationContext, value: Any, errors: ErrorMap) -> Any:
        if not isinstance(value, (str, date)):
            self.type_error(ctx, errors, value, "a time value")
            return SKIP
        if isinstance(value, str) and value == "":
            errors.merge(self.missing(ctx).errors)
            return SKIP
        moment = self.parse(value)
        if moment is None:
            errors.add(ctx.full_path, self.render("format", f"{ctx.field_name} must be a valid time format",
                ctx, value, self.layout or "ISO-8601"))
            return SKIP
        return moment


def Time() -> TimeNode:
    return TimeNode()
