"""Date identifiers: canonical string keys for solar calendar days.

Format is ``{year}-{MM}-{DD}``. Years 0..9999 are four digits. Negative years
are ``-`` followed by the four digits of ``10000 + year``, so -1 is ``-9999``
and -2 is ``-9998``. Since ``-`` sorts before every digit, plain string
ordering matches chronological ordering across the anchor boundary.

Identifiers are only meaningful under the anchor that produced them;
switching the active anchor moves every Gregorian date to a new identifier.
"""

from __future__ import annotations

import re

from solarcal.core.errors import InvalidDateError, MalformedIdentifierError
from solarcal.models.calendar import CalendarPosition

MIN_YEAR = -9999
MAX_YEAR = 9999
_NEGATIVE_BASE = 10000

_IDENTIFIER_RE = re.compile(r"^(-?)([0-9]{4})-([0-9]{2})-([0-9]{2})$")


def encode(position: CalendarPosition) -> str:
    if not isinstance(position, CalendarPosition):
        raise MalformedIdentifierError(f"Cannot encode {type(position).__name__} as a date identifier")
    year = position.year
    if not MIN_YEAR <= year <= MAX_YEAR:
        raise MalformedIdentifierError(f"Year {year} is outside the identifier range {MIN_YEAR}..{MAX_YEAR}")
    if year < 0:
        year_part = f"-{_NEGATIVE_BASE + year:04d}"
    else:
        year_part = f"{year:04d}"
    return f"{year_part}-{position.month:02d}-{position.day:02d}"


def decode(identifier: str) -> CalendarPosition:
    if not isinstance(identifier, str):
        raise MalformedIdentifierError(f"Identifier must be a string, got {type(identifier).__name__}")
    match = _IDENTIFIER_RE.fullmatch(identifier)
    if not match:
        raise MalformedIdentifierError(f"Malformed date identifier: {identifier!r}")
    sign, year_digits, month_digits, day_digits = match.groups()
    year = int(year_digits)
    if sign:
        # "-0000" would be year -10000, outside the range
        if year == 0:
            raise MalformedIdentifierError(f"Malformed date identifier: {identifier!r}")
        year -= _NEGATIVE_BASE
    try:
        return CalendarPosition.of(year, int(month_digits), int(day_digits))
    except InvalidDateError as exc:
        raise MalformedIdentifierError(f"Out-of-range date identifier {identifier!r}: {exc.message}") from exc


def is_identifier(value) -> bool:
    try:
        decode(value)
    except MalformedIdentifierError:
        return False
    return True
