from __future__ import annotations

import calendar
import re
from datetime import date

BIRTH_DATE_FORMAT = "%d.%m.%Y"
LEAP_DAY_RULES = {"feb28", "mar1"}

_BIRTH_DATE_PATTERN = re.compile(r"(\d{2})\.(\d{2})\.(\d{4})")


class InvalidBirthdayError(ValueError):
    pass


def parse_birth_date(raw_text: str) -> date:
    match = _BIRTH_DATE_PATTERN.fullmatch(raw_text.strip())
    if match is None:
        raise InvalidBirthdayError(f"Birth date must use DD.MM.YYYY: {raw_text!r}")

    day, month, year = (int(group) for group in match.groups())
    try:
        return date(year, month, day)
    except ValueError as exc:
        raise InvalidBirthdayError(f"Invalid calendar date: {raw_text!r}") from exc


def format_birth_date(value: date) -> str:
    return value.strftime(BIRTH_DATE_FORMAT)


def occurrence_for_year(birth_date: date, year: int, leap_day_rule: str) -> date:
    """Date on which ``birth_date`` recurs in ``year``.

    Feb 29 birthdays fall back to Feb 28 or Mar 1 in non-leap years,
    depending on ``leap_day_rule``.
    """
    if birth_date.month == 2 and birth_date.day == 29 and not calendar.isleap(year):
        if leap_day_rule == "feb28":
            return date(year, 2, 28)
        if leap_day_rule == "mar1":
            return date(year, 3, 1)
        raise InvalidBirthdayError(f"Unsupported leap day rule: {leap_day_rule}")
    return date(year, birth_date.month, birth_date.day)


def next_occurrence(birth_date: date, today: date, leap_day_rule: str) -> date:
    this_year = occurrence_for_year(birth_date, today.year, leap_day_rule)
    if this_year >= today:
        return this_year
    return occurrence_for_year(birth_date, today.year + 1, leap_day_rule)


def days_until_next_occurrence(birth_date: date, today: date, leap_day_rule: str) -> int:
    nxt = next_occurrence(birth_date, today, leap_day_rule)
    return max((nxt - today).days, 0)
