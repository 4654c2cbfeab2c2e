"""Month and year grids for the solar calendar.

Pure projection: every call recomputes from (year, month, anchor, rules).
Grids carry the anchor id they were built under; after an anchor change
consumers must build again.
"""

from __future__ import annotations

from typing import Iterable

from solarcal.core.errors import InvalidDateError
from solarcal.features.calendar.conversion import anchor_start_date, from_solar_position
from solarcal.features.calendar.identifiers import encode
from solarcal.features.calendar.rules import (
    DEFAULT_FLAG_RULES,
    FlagRule,
    appointment_for,
    flags_for,
    month_name,
    tekufah_for,
    weekday_name,
)
from solarcal.models.anchor import DEFAULT_ANCHOR_ID
from solarcal.models.calendar import (
    DAYS_PER_MONTH,
    MONTHS_PER_YEAR,
    CalendarDayDescriptor,
    CalendarPosition,
    MonthGrid,
    YearGrid,
)


def _anchor_id(anchor) -> str:
    return getattr(anchor, "id", None) or DEFAULT_ANCHOR_ID


def build_day(
    position: CalendarPosition,
    anchor,
    rules: Iterable[FlagRule] = DEFAULT_FLAG_RULES,
) -> CalendarDayDescriptor:
    return CalendarDayDescriptor(
        position=position,
        gregorian_date=from_solar_position(position, anchor),
        identifier=encode(position),
        weekday=position.weekday,
        weekday_name=weekday_name(position.weekday),
        flags=flags_for(position, rules),
        appointment=appointment_for(position),
        tekufah=tekufah_for(position),
    )


def build_month(
    year: int,
    month: int,
    anchor,
    rules: Iterable[FlagRule] = DEFAULT_FLAG_RULES,
) -> MonthGrid:
    """The 28 days of ``month`` in solar ``year``, in day order."""
    if not isinstance(year, int) or isinstance(year, bool):
        raise InvalidDateError(f"year must be an integer, got {year!r}")
    if not isinstance(month, int) or not 1 <= month <= MONTHS_PER_YEAR:
        raise InvalidDateError(f"month must be in 1..{MONTHS_PER_YEAR}, got {month!r}")
    anchor_start_date(anchor)
    rules = tuple(rules)
    days = tuple(
        build_day(CalendarPosition.of(year, month, day), anchor, rules)
        for day in range(1, DAYS_PER_MONTH + 1)
    )
    return MonthGrid(
        year=year,
        month=month,
        month_name=month_name(month),
        anchor_id=_anchor_id(anchor),
        days=days,
    )


def build_year(
    year: int,
    anchor,
    rules: Iterable[FlagRule] = DEFAULT_FLAG_RULES,
) -> YearGrid:
    """All 13 months (364 days) of solar ``year``."""
    start = anchor_start_date(anchor)
    rules = tuple(rules)
    months = tuple(build_month(year, month, anchor, rules) for month in range(1, MONTHS_PER_YEAR + 1))
    return YearGrid(
        year=year,
        anchor_id=_anchor_id(anchor),
        anchor_start_date=start,
        months=months,
    )
