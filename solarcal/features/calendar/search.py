"""Day navigation queries: "m1d15", "month 3", "d4", "3-15".

A query names a month, a day of month, or both. Unparseable or
out-of-range input yields None so callers can fall back to text search.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Iterable, Literal, Optional

from solarcal.features.calendar.grid import build_day
from solarcal.features.calendar.rules import DEFAULT_FLAG_RULES, FlagRule
from solarcal.models.calendar import (
    DAYS_PER_MONTH,
    MONTHS_PER_YEAR,
    CalendarDayDescriptor,
    CalendarPosition,
)

_QUERY_RE = re.compile(
    r"(?:m|month)?\s*([0-9]{1,2})(?:[\s-]*(?:d|day)\s*([0-9]{1,2})|[\s-]+([0-9]{1,2}))?",
    re.IGNORECASE,
)
_BARE_DAY_RE = re.compile(r"(?:d|day)\s*([0-9]{1,2})", re.IGNORECASE)

DayQueryKind = Literal["date", "month", "day"]


@dataclass(frozen=True)
class DayQuery:
    kind: DayQueryKind
    month: Optional[int] = None
    day: Optional[int] = None

    def label(self) -> str:
        if self.kind == "date":
            return f"Month {self.month}, Day {self.day}"
        if self.kind == "month":
            return f"Month {self.month}"
        return f"Day {self.day} of every month"


def parse_day_query(text: str) -> Optional[DayQuery]:
    query = (text or "").strip()
    if not query:
        return None

    bare = _BARE_DAY_RE.fullmatch(query)
    if bare:
        day = int(bare.group(1))
        return DayQuery("day", day=day) if 1 <= day <= DAYS_PER_MONTH else None

    match = _QUERY_RE.fullmatch(query)
    if not match:
        return None
    month_text, marked_day, separated_day = match.groups()
    month = int(month_text)
    if not 1 <= month <= MONTHS_PER_YEAR:
        return None

    day_text = marked_day or separated_day
    if day_text is None:
        return DayQuery("month", month=month)
    day = int(day_text)
    if not 1 <= day <= DAYS_PER_MONTH:
        return None
    return DayQuery("date", month=month, day=day)


def resolve_day_query(
    query: DayQuery,
    year: int,
    anchor,
    rules: Iterable[FlagRule] = DEFAULT_FLAG_RULES,
) -> list[CalendarDayDescriptor]:
    """Descriptors in solar ``year`` that a query points at, in calendar order."""
    rules = tuple(rules)
    if query.kind == "date":
        positions = [CalendarPosition.of(year, query.month, query.day)]
    elif query.kind == "month":
        positions = [CalendarPosition.of(year, query.month, day) for day in range(1, DAYS_PER_MONTH + 1)]
    else:
        positions = [CalendarPosition.of(year, month, query.day) for month in range(1, MONTHS_PER_YEAR + 1)]
    return [build_day(position, anchor, rules) for position in positions]
