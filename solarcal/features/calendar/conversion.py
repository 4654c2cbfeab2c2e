"""Gregorian <-> solar calendar conversion.

All arithmetic runs on proleptic Gregorian ordinals, so there is no
time-of-day, timezone or DST involved. Dates before the anchor map into
negative years (the day before the anchor is year -1, month 13, day 28).
"""

from __future__ import annotations

import re
from datetime import date, datetime, timezone
from typing import Optional, Union

from solarcal.core.errors import InvalidAnchorError, InvalidDateError
from solarcal.models.calendar import DAYS_PER_YEAR, CalendarPosition

DateInput = Union[date, datetime, str]

_ISO_DATE_RE = re.compile(r"^([0-9]{4})-([0-9]{2})-([0-9]{2})$")


def coerce_date(value: DateInput) -> date:
    """Normalize a Gregorian date input to ``datetime.date``.

    Accepts ``date``, ``datetime`` (aware values are converted to UTC before the
    time is dropped) and strict ``YYYY-MM-DD`` strings.

    Raises:
        InvalidDateError: for any other input or a day that does not exist.
    """
    if isinstance(value, datetime):
        if value.tzinfo is not None:
            value = value.astimezone(timezone.utc)
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        match = _ISO_DATE_RE.fullmatch(value.strip())
        if not match:
            raise InvalidDateError(f"Expected a YYYY-MM-DD date, got {value!r}")
        year, month, day = (int(part) for part in match.groups())
        try:
            return date(year, month, day)
        except ValueError as exc:
            raise InvalidDateError(f"{value!r} is not a real calendar date: {exc}") from exc
    raise InvalidDateError(f"Unsupported date value: {value!r}")


def anchor_start_date(anchor) -> date:
    """Extract the M1 D1 start date from a preset, any object with ``start_date``, or a date."""
    if anchor is None:
        raise InvalidAnchorError("No anchor supplied")
    if isinstance(anchor, datetime):
        raise InvalidAnchorError("Anchor must be a calendar date without a time component")
    if isinstance(anchor, date):
        return anchor
    start = getattr(anchor, "start_date", None)
    if start is None:
        raise InvalidAnchorError("Anchor has no start_date")
    if isinstance(start, datetime) or not isinstance(start, date):
        raise InvalidAnchorError(f"Anchor start_date is not a date: {start!r}")
    return start


def days_between(a: DateInput, b: DateInput) -> int:
    """Signed number of days from ``a`` to ``b`` (positive when ``b`` is later)."""
    return coerce_date(b).toordinal() - coerce_date(a).toordinal()


def to_solar_position(gregorian_date: DateInput, anchor) -> CalendarPosition:
    """Map a Gregorian date to its position relative to ``anchor``."""
    start = anchor_start_date(anchor)
    target = coerce_date(gregorian_date)
    offset = target.toordinal() - start.toordinal()
    # Floor division keeps pre-anchor days in negative years
    year, index = divmod(offset, DAYS_PER_YEAR)
    return CalendarPosition.from_day_of_year(year, index + 1)


def from_solar_position(position: CalendarPosition, anchor) -> date:
    """Inverse of :func:`to_solar_position`."""
    if not isinstance(position, CalendarPosition):
        raise InvalidDateError(f"Expected a CalendarPosition, got {type(position).__name__}")
    start = anchor_start_date(anchor)
    ordinal = start.toordinal() + position.day_offset
    try:
        return date.fromordinal(ordinal)
    except (ValueError, OverflowError) as exc:
        raise InvalidDateError(
            f"Position {position.year}/{position.month}/{position.day} falls outside the Gregorian range"
        ) from exc


def today_position(anchor, today: Optional[date] = None) -> CalendarPosition:
    """Position of today's UTC date, or of ``today`` when given."""
    current = today or datetime.now(timezone.utc).date()
    return to_solar_position(current, anchor)
