"""
solarcal/models/calendar.py

Calendar position and grid models for the 364-day solar calendar.

A year is 13 months of 28 days. Positions are pure values derived from
(Gregorian date, anchor); descriptors and grids are ephemeral render units.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from enum import Enum
from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field

from solarcal.core.errors import InvalidDateError

DAYS_PER_MONTH = 28
MONTHS_PER_YEAR = 13
DAYS_PER_YEAR = DAYS_PER_MONTH * MONTHS_PER_YEAR  # 364
DAYS_PER_WEEK = 7


@dataclass(frozen=True, order=True)
class CalendarPosition:
    """
    A day in the solar calendar. Field order gives chronological ordering.

    ``day_of_year`` is redundant with (month, day) and must agree with it.
    """

    year: int
    month: int
    day: int
    day_of_year: int

    def __post_init__(self):
        for name in ("year", "month", "day", "day_of_year"):
            value = getattr(self, name)
            if not isinstance(value, int) or isinstance(value, bool):
                raise InvalidDateError(f"{name} must be an integer, got {value!r}")
        if not 1 <= self.month <= MONTHS_PER_YEAR:
            raise InvalidDateError(f"month must be in 1..{MONTHS_PER_YEAR}, got {self.month}")
        if not 1 <= self.day <= DAYS_PER_MONTH:
            raise InvalidDateError(f"day must be in 1..{DAYS_PER_MONTH}, got {self.day}")
        expected = (self.month - 1) * DAYS_PER_MONTH + self.day
        if self.day_of_year != expected:
            raise InvalidDateError(
                f"day_of_year {self.day_of_year} does not match month {self.month} day {self.day} (expected {expected})"
            )

    @classmethod
    def of(cls, year: int, month: int, day: int) -> "CalendarPosition":
        """Build a position from (year, month, day), deriving day_of_year."""
        if not isinstance(month, int) or not isinstance(day, int):
            raise InvalidDateError(f"month and day must be integers, got {month!r}/{day!r}")
        return cls(year=year, month=month, day=day, day_of_year=(month - 1) * DAYS_PER_MONTH + day)

    @classmethod
    def from_day_of_year(cls, year: int, day_of_year: int) -> "CalendarPosition":
        if not isinstance(day_of_year, int) or not 1 <= day_of_year <= DAYS_PER_YEAR:
            raise InvalidDateError(f"day_of_year must be in 1..{DAYS_PER_YEAR}, got {day_of_year!r}")
        month = (day_of_year - 1) // DAYS_PER_MONTH + 1
        day = (day_of_year - 1) % DAYS_PER_MONTH + 1
        return cls(year=year, month=month, day=day, day_of_year=day_of_year)

    @property
    def day_offset(self) -> int:
        """Signed number of days since month 1 day 1 of year 0."""
        return self.year * DAYS_PER_YEAR + (self.day_of_year - 1)

    @property
    def weekday(self) -> int:
        """Day of the week, 1..7. Every month starts on weekday 1, so day 7 is the sabbath."""
        return (self.day - 1) % DAYS_PER_WEEK + 1

    def to_dict(self) -> dict:
        return {
            "year": self.year,
            "month": self.month,
            "day": self.day,
            "day_of_year": self.day_of_year,
        }


class DayFlag(str, Enum):
    SABBATH = "sabbath"
    MONTH_START = "month_start"
    FEAST = "feast"
    HIGH_SABBATH = "high_sabbath"
    TEKUFAH = "tekufah"


AppointmentKind = Literal["moedim", "high-sabbath", "resurrection"]


class Appointment(BaseModel):
    """Fixed appointed time (feast) at a month/day of every solar year."""

    model_config = ConfigDict(frozen=True)

    month: int = Field(ge=1, le=MONTHS_PER_YEAR)
    day: int = Field(ge=1, le=DAYS_PER_MONTH)
    label: str
    short_label: str
    kind: AppointmentKind
    refs: str
    meaning: str
    hebrew_name: Optional[str] = None
    microcopy: str = ""
    prophetic: Optional[str] = None
    day_cycle: str = "Sunrise → Sunrise"
    instructions: Optional[str] = None


class TekufahDetail(BaseModel):
    """Quarter-end marker; one for each 91-day quarter of the year."""

    model_config = ConfigDict(frozen=True)

    day_of_year: int = Field(ge=1, le=DAYS_PER_YEAR)
    label: str
    position: str
    function: str
    refs: str
    result: str


class MonthInfo(BaseModel):
    model_config = ConfigDict(frozen=True)

    month: int = Field(ge=1, le=MONTHS_PER_YEAR)
    name: str
    significance: str
    torah_name: str
    prophetic: str
    deception: str


class CalendarDayDescriptor(BaseModel):
    """One rendered day: where it sits in both calendars and how it is flagged."""

    model_config = ConfigDict(frozen=True)

    position: CalendarPosition
    gregorian_date: date
    identifier: str
    weekday: int = Field(ge=1, le=DAYS_PER_WEEK)
    weekday_name: str
    flags: tuple[DayFlag, ...] = ()
    appointment: Optional[Appointment] = None
    tekufah: Optional[TekufahDetail] = None

    def has_flag(self, flag: DayFlag) -> bool:
        return flag in self.flags


class MonthGrid(BaseModel):
    model_config = ConfigDict(frozen=True)

    year: int
    month: int = Field(ge=1, le=MONTHS_PER_YEAR)
    month_name: str
    anchor_id: str
    days: tuple[CalendarDayDescriptor, ...]


class YearGrid(BaseModel):
    model_config = ConfigDict(frozen=True)

    year: int
    anchor_id: str
    anchor_start_date: date
    months: tuple[MonthGrid, ...]

    def iter_days(self):
        for month in self.months:
            yield from month.days
