"""Calendar reference data and day-flag rules.

The grid builder never hard-codes flags; it evaluates a rule table.
``DEFAULT_FLAG_RULES`` covers weekly sabbaths, month starts, the appointed
times (feasts) and the four tekufah quarter ends. Callers may pass their
own table.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Optional

from solarcal.core.errors import InvalidDateError
from solarcal.models.calendar import (
    DAYS_PER_MONTH,
    DAYS_PER_WEEK,
    MONTHS_PER_YEAR,
    Appointment,
    CalendarPosition,
    DayFlag,
    MonthInfo,
    TekufahDetail,
)

WEEKDAY_NAMES = (
    "Yom Rishon",
    "Yom Sheni",
    "Yom Shelishi",
    "Yom Revi'i",
    "Yom Chamishi",
    "Yom Shishi",   # preparation day
    "Yom Shabbat",
)

_TORAH_MONTH_NAMES = {1: "Aviv", 2: "Ziv", 7: "Ethanim", 8: "Bul"}
_MONTH_ORDINALS = {
    3: "Third", 4: "Fourth", 5: "Fifth", 6: "Sixth", 9: "Ninth", 10: "Tenth",
    11: "Eleventh", 12: "Twelfth", 13: "Thirteenth",
}

# Quarter ends: four quarters of 91 days
TEKUFAH_DAYS_OF_YEAR = (91, 182, 273, 364)
TEKUFAH_LABELS = {
    91: "Vernal Tekufah",
    182: "Summer Tekufah",
    273: "Autumn Tekufah",
    364: "Winter Tekufah",
}

TEKUFAH_DETAILS: dict[int, TekufahDetail] = {
    doy: TekufahDetail(day_of_year=doy, label=TEKUFAH_LABELS[doy], position=position, function=function, refs=refs, result=result)
    for doy, position, function, refs, result in (
        (
            91,
            "Day 91, end of the first quarter (Spring → Summer)",
            "Anchors the year start after the Equinox; resets the weekly count",
            "Enoch 82:4-6",
            "Resets week count; next day begins Day 1 of a new month",
        ),
        (
            182,
            "Day 182, end of the second quarter (Summer → Autumn)",
            "Marks the harvest preparation season and closes the first half of the year",
            "Genesis 8:22",
            "Preserves the 91-day quarter structure",
        ),
        (
            273,
            "Day 273, end of the third quarter (Autumn → Winter)",
            "Balance point between light and darkness",
            "Enoch 72:32",
            "Ensures Sabbaths and Feasts remain fixed by count",
        ),
        (
            364,
            "Day 364, end of the Thirteenth Month (Year Completion → Spring)",
            "Prepares for renewal and the next Aviv cycle",
            "Jubilees 6:32",
            "Seals the final 91-day quarter, completing the 364-day year",
        ),
    )
}

_SUKKOT_REFS = "Lev 23:34, 39-43"


def _appointment(month, day, label, short_label, kind, refs, meaning, hebrew_name=None, **extra) -> Appointment:
    return Appointment(
        month=month,
        day=day,
        label=label,
        short_label=short_label,
        kind=kind,
        refs=refs,
        meaning=meaning,
        hebrew_name=hebrew_name,
        **extra,
    )


APPOINTMENTS: tuple[Appointment, ...] = (
    _appointment(1, 14, "Passover (Pesach)", "Pesach", "moedim", "Exodus 12:6", "The Lamb is slain.", "Pesach",
                 microcopy="Preparation Day", prophetic="Yahusha crucified."),
    _appointment(1, 15, "Unleavened Bread (Day 1)", "Unleavened", "high-sabbath", "Leviticus 23:6-7", "Beginning of freedom.", "Chag Matzot",
                 microcopy="High Sabbath", prophetic="Yahusha in the grave."),
    _appointment(1, 16, "Resurrection (First Fruits)", "First Fruits", "resurrection", "1 Corinthians 15:20", "Yahusha rises.", "Yom HaBikkurim",
                 microcopy="First Day of the Week", prophetic="Yahusha resurrected."),
    _appointment(1, 21, "Unleavened Bread (Day 7)", "Unleavened", "high-sabbath", "Leviticus 23:8", "Completion of deliverance.", "Chag Matzot",
                 microcopy="High Sabbath", prophetic="Walk in purity."),
    _appointment(3, 15, "Shavuot (Weeks)", "Shavuot", "high-sabbath", "Lev 23:15-21", "Giving of the Torah/Spirit.", "Chag Shavuot",
                 microcopy="High Sabbath", prophetic="Sealing of the Covenant people."),
    _appointment(7, 1, "Yom Teru'ah (Trumpets)", "Trumpets", "high-sabbath", "Lev 23:23-25", "Proclamation of the King's return.", "Yom Teru'ah",
                 microcopy="High Sabbath", prophetic="Herald of gathering."),
    _appointment(7, 10, "Yom Kippur (Atonement)", "Atonement", "high-sabbath", "Lev 23:26-32", "Final judgment.", "Yom haKippurim",
                 microcopy="High Sabbath", prophetic="Cleansing of the people.",
                 instructions="Afflict your soul; complete rest.", day_cycle="Evening → Evening"),
    _appointment(7, 15, "Sukkot (Tabernacles) Day 1", "Sukkot D1", "high-sabbath", "Lev 23:34-35", "Yahusha dwelling with man.", "Chag HaSukkot",
                 microcopy="High Sabbath", prophetic="Kingdom establishment begins."),
    _appointment(7, 16, "Sukkot (Day 2)", "Sukkot D2", "moedim", _SUKKOT_REFS, "Dwelling in booths.", "Chag HaSukkot",
                 microcopy="Moed (Festival)", prophetic="Ongoing joy of the Kingdom."),
    _appointment(7, 17, "Sukkot (Day 3)", "Sukkot D3", "moedim", _SUKKOT_REFS, "Dwelling in booths.", "Chag HaSukkot",
                 microcopy="Moed (Festival)", prophetic="Joy and provision."),
    _appointment(7, 18, "Sukkot (Day 4)", "Sukkot D4", "moedim", _SUKKOT_REFS, "Dwelling in booths.", "Chag HaSukkot",
                 microcopy="Moed (Festival)", prophetic="Anticipation of ingathering."),
    _appointment(7, 19, "Sukkot (Day 5)", "Sukkot D5", "moedim", _SUKKOT_REFS, "Dwelling in booths.", "Chag HaSukkot",
                 microcopy="Moed (Festival)", prophetic="Nations gathered."),
    _appointment(7, 20, "Sukkot (Day 6)", "Sukkot D6", "moedim", _SUKKOT_REFS, "Preparation for completion.", "Chag HaSukkot",
                 microcopy="Moed (Festival)"),
    _appointment(7, 21, "Sukkot (Day 7)", "Sukkot D7", "moedim", _SUKKOT_REFS, "Completion of rejoicing.", "Chag HaSukkot",
                 microcopy="Festival Day (Moed)", prophetic="Final Sabbath-like joy."),
    _appointment(7, 22, "Shemini Atzeret (Eighth Day)", "Atzeret", "high-sabbath", "Lev 23:36", "Eternal Assembly.", "Shemini Atzeret",
                 microcopy="High Sabbath", prophetic="The age to come."),
)

_APPOINTMENTS_BY_DAY = {(a.month, a.day): a for a in APPOINTMENTS}


def _unnamed(ordinal: str) -> str:
    return f'This month has no name given in the Torah; it is simply called "the {ordinal} Month."'


MONTH_INFO: dict[int, MonthInfo] = {
    info.month: info
    for info in (
        MonthInfo(
            month=1,
            name="Aviv (אָבִיב)",
            significance=(
                'This is the true "Head of the Year" (Rosh Chodeshim) commanded by Yahuah (Exodus 12:2). '
                "It is the month of the Exodus from Egypt, when the Passover lamb was slain."
            ),
            torah_name=(
                '"Aviv" means "ear of grain" or "ripening." It refers to the state of the barley, '
                "confirming the start of the new agricultural year."
            ),
            prophetic=(
                "This month contains the three spring feasts that Yahusha fulfilled: Passover (His sacrifice), "
                "Unleavened Bread (His burial), and First Fruits (His resurrection)."
            ),
            deception=(
                'The common name "Nisan" is not from the Torah. It is a Babylonian name (from the god *Nisanu*) '
                "adopted during the captivity, which corrupts the true start of the year."
            ),
        ),
        MonthInfo(
            month=2,
            name="Ziv (זִו)",
            significance=(
                "This is the second month of the sacred year. It was during this month that King Solomon "
                "began to build the first Temple (1 Kings 6:1)."
            ),
            torah_name='"Ziv" means "Brightness" or "Splendor," referencing the blossoms of spring.',
            prophetic=(
                "This month represents a time of building and establishment, continuing the new life that "
                "began in Aviv. It contains four perfect weekly Sabbaths."
            ),
            deception="The common Babylonian name for this month is *Iyar*.",
        ),
        MonthInfo(
            month=3,
            name="Sivan (סִיוָן)",
            significance=(
                "This month holds the Feast of Weeks, or Shavuot (Day 15), which is a High Sabbath. This is the "
                "time both the Torah was given at Mount Sinai and the Ruach Ha'Kodesh (Holy Spirit) was poured "
                "out in Acts 2."
            ),
            torah_name=(
                'The name "Sivan" is used in Esther 8:9. While its origin is debated, it is associated with '
                "the giving of the Torah."
            ),
            prophetic="Shavuot (Pentecost) represents the sealing of the covenant people, both with the Law and with the Spirit.",
            deception=(
                "The common Babylonian name for the next month is *Tammuz*, which is the name of a Babylonian "
                "god of vegetation."
            ),
        ),
        MonthInfo(
            month=4,
            name="The Fourth Month",
            significance=(
                "In Yahuah's 364-day calendar, this month contains no commanded feasts (Moedim). It is a month "
                "of steady rhythm, containing four perfect weekly Sabbaths on Day 7, 14, 21, and 28."
            ),
            torah_name=_unnamed("Fourth"),
            prophetic="This month represents a time of endurance and walking in the established covenant.",
            deception=(
                'The traditional name "Tammuz" comes from a Babylonian idol, a false god of vegetation for '
                "whom Israel mourned (Ezekiel 8:14)."
            ),
        ),
        MonthInfo(
            month=5,
            name="The Fifth Month",
            significance=(
                "This month is traditionally associated with mourning, as both Temples were destroyed during "
                "this time. It contains four perfect weekly Sabbaths."
            ),
            torah_name=_unnamed("Fifth"),
            prophetic="This month serves as a reminder of the consequences of breaking the covenant.",
            deception=(
                "The traditional name \"Av\" and the fast days associated with it (like Tisha B'Av) are man-made "
                "traditions of mourning. They are not commanded Moedim (appointed times) from Yahuah."
            ),
        ),
        MonthInfo(
            month=6,
            name="The Sixth Month",
            significance=(
                "This month leads up to the critical fall feasts of the seventh month. It is traditionally a "
                "time of repentance (Teshuvah) in preparation for Yom Teruah and Yom Kippur."
            ),
            torah_name=_unnamed("Sixth"),
            prophetic='This month represents the call to "prepare the way" for the return of the King.',
            deception="The common Babylonian name for this month is *Elul*.",
        ),
        MonthInfo(
            month=7,
            name="Ethanim (אֵתָנִים)",
            significance=(
                "This is the most prophetically dense month, containing three of the seven commanded Moedim: "
                "Yom Teruah (Trumpets), Yom Kippur (Atonement), and Sukkot (Tabernacles)."
            ),
            torah_name=(
                'The name "Ethanim" means "Enduring" or "Mighty," likely referring to the enduring streams '
                "or the strength of the fall harvest."
            ),
            prophetic=(
                'This month represents the "Autumn Feasts," which Yahusha will fulfill upon His return: the '
                "final trumpet blast, the day of judgment, and His eternal dwelling (tabernacles) with man."
            ),
            deception=(
                'The common name "Tishrei" is Babylonian. Rabbinic tradition incorrectly calls this the "new '
                'year" (Rosh Hashanah), which contradicts Yahuah\'s command for the new year to be in Aviv (Month 1).'
            ),
        ),
        MonthInfo(
            month=8,
            name="Bul (בּוּל)",
            significance=(
                "King Solomon finished the construction of the Temple in this month (1 Kings 6:38). It is "
                "associated with the autumn rains and planting season."
            ),
            torah_name='The name "Bul" means "Produce" or "Increase," related to the rain and harvest.',
            prophetic="This month represents the completion of the Father's house and the ingathering of the final harvest.",
            deception="The common Babylonian name for this month is *Marcheshvan*.",
        ),
        MonthInfo(
            month=9,
            name="The Ninth Month",
            significance=(
                "A month of winter and waiting. Traditionally (not scripturally) associated with Hanukkah, "
                "which commemorates the Maccabean revolt and the miracle of light."
            ),
            torah_name=_unnamed("Ninth"),
            prophetic="This month represents a time of holding fast to the light (truth) during the darkest time of the year.",
            deception="The common Babylonian name for this month is *Kislev*.",
        ),
        MonthInfo(
            month=10,
            name="The Tenth Month",
            significance=(
                "The siege of Jerusalem by Nebuchadnezzar began in this month (Ezekiel 24:1-2), beginning the "
                "judgment that led to the temple's destruction."
            ),
            torah_name=_unnamed("Tenth"),
            prophetic="This month is a somber reminder that judgment begins at the house of Yahuah.",
            deception="The common Babylonian name for this month is *Tebeth*.",
        ),
        MonthInfo(
            month=11,
            name="The Eleventh Month",
            significance=(
                "In this month, Moses repeated the Torah (the book of Deuteronomy) to the new generation of "
                "Israel before they entered the promised land (Deuteronomy 1:3)."
            ),
            torah_name=_unnamed("Eleventh"),
            prophetic=(
                "This month represents the final teaching, preparation, and passing of the torch before the "
                "remnant enters the Kingdom (the Promised Land)."
            ),
            deception="The common Babylonian name for this month is *Shebat*.",
        ),
        MonthInfo(
            month=12,
            name="The Twelfth Month",
            significance=(
                "The twelfth month of the 364-day cycle, leading into the closing month of the year. It is "
                "associated with the story of Purim (Esther)."
            ),
            torah_name=_unnamed("Twelfth"),
            prophetic="This month represents the final test and deliverance of Yahuah's people before the year is renewed.",
            deception="The common Babylonian name for this month is *Adar*.",
        ),
        MonthInfo(
            month=13,
            name="The Thirteenth Month",
            significance=(
                "The final month of the 364-day cycle, leading up to the Spring Equinox which signals the start "
                "of the new year. Its last day is the Winter Tekufah, which seals the fourth 91-day quarter."
            ),
            torah_name=_unnamed("Thirteenth"),
            prophetic="This month represents rest and completion, the Sabbath of the year before all things are made new.",
            deception=(
                "Lunar calendars insert a leap month (*Adar II*) when the seasons drift, instead of keeping "
                "a fixed count of 364 days."
            ),
        ),
    )
}


def month_name(month: int) -> str:
    """Sacred name of a month: Torah names where they exist, ordinals otherwise."""
    _check_month(month)
    if month in _TORAH_MONTH_NAMES:
        return _TORAH_MONTH_NAMES[month]
    return f"The {_MONTH_ORDINALS[month]} Month"


def month_info(month: int) -> MonthInfo:
    """Background for a month: its name, significance and history."""
    _check_month(month)
    return MONTH_INFO[month]


def _check_month(month) -> None:
    if not isinstance(month, int) or isinstance(month, bool) or not 1 <= month <= MONTHS_PER_YEAR:
        raise InvalidDateError(f"month must be in 1..{MONTHS_PER_YEAR}, got {month!r}")


def weekday_name(weekday: int) -> str:
    if not 1 <= weekday <= DAYS_PER_WEEK:
        raise InvalidDateError(f"weekday must be in 1..{DAYS_PER_WEEK}, got {weekday!r}")
    return WEEKDAY_NAMES[weekday - 1]


def appointment_for(position: CalendarPosition) -> Optional[Appointment]:
    return _APPOINTMENTS_BY_DAY.get((position.month, position.day))


def tekufah_for(position: CalendarPosition) -> Optional[TekufahDetail]:
    return TEKUFAH_DETAILS.get(position.day_of_year)


def appointments_in_month(month: int) -> list[Appointment]:
    return [a for a in APPOINTMENTS if a.month == month]


@dataclass(frozen=True)
class FlagRule:
    """A rule matches when every constraint it sets matches (unset means any)."""

    flag: DayFlag
    months: Optional[frozenset[int]] = None
    days: Optional[frozenset[int]] = None
    days_of_year: Optional[frozenset[int]] = None

    def matches(self, position: CalendarPosition) -> bool:
        if self.months is not None and position.month not in self.months:
            return False
        if self.days is not None and position.day not in self.days:
            return False
        if self.days_of_year is not None and position.day_of_year not in self.days_of_year:
            return False
        return True


def appointment_rules(appointments: Iterable[Appointment] = APPOINTMENTS) -> tuple[FlagRule, ...]:
    """Feast and high-sabbath rules for an appointment table."""
    rules = []
    for appt in appointments:
        rules.append(FlagRule(DayFlag.FEAST, months=frozenset({appt.month}), days=frozenset({appt.day})))
        if appt.kind == "high-sabbath":
            rules.append(FlagRule(DayFlag.HIGH_SABBATH, months=frozenset({appt.month}), days=frozenset({appt.day})))
    return tuple(rules)


DEFAULT_FLAG_RULES: tuple[FlagRule, ...] = (
    FlagRule(DayFlag.MONTH_START, days=frozenset({1})),
    FlagRule(DayFlag.SABBATH, days=frozenset(range(DAYS_PER_WEEK, DAYS_PER_MONTH + 1, DAYS_PER_WEEK))),
    *appointment_rules(),
    FlagRule(DayFlag.TEKUFAH, days_of_year=frozenset(TEKUFAH_DAYS_OF_YEAR)),
)


def flags_for(position: CalendarPosition, rules: Iterable[FlagRule] = DEFAULT_FLAG_RULES) -> tuple[DayFlag, ...]:
    """Flags for a day in rule-table order, each flag at most once."""
    flags: list[DayFlag] = []
    for rule in rules:
        if rule.flag not in flags and rule.matches(position):
            flags.append(rule.flag)
    return tuple(flags)
