from datetime import date, timedelta

import pytest

from employee_birthdays.date_logic import (
    InvalidBirthdayError,
    days_until_next_occurrence,
    format_birth_date,
    next_occurrence,
    occurrence_for_year,
    parse_birth_date,
)


def test_days_until_future_date_same_year() -> None:
    assert days_until_next_occurrence(date(1990, 5, 15), date(2024, 5, 1), "feb28") == 14


def test_days_until_is_zero_on_birthday() -> None:
    assert days_until_next_occurrence(date(1985, 7, 20), date(2026, 7, 20), "feb28") == 0


def test_days_until_next_year_after_passed() -> None:
    today = date(2026, 6, 1)

    assert days_until_next_occurrence(date(1990, 1, 2), today, "feb28") == (date(2027, 1, 2) - today).days


def test_days_until_across_year_boundary() -> None:
    assert days_until_next_occurrence(date(1970, 1, 1), date(2025, 12, 31), "feb28") == 1


def test_days_until_stays_in_range_for_a_full_year() -> None:
    birth_date = date(1991, 3, 31)
    start = date(2023, 1, 1)
    for offset in range(800):
        today = start + timedelta(days=offset)
        days = days_until_next_occurrence(birth_date, today, "feb28")
        assert 0 <= days <= 366
        assert today + timedelta(days=days) >= today
        assert next_occurrence(birth_date, today, "feb28") == today + timedelta(days=days)


def test_feb_29_maps_to_feb_28_on_non_leap_year() -> None:
    birth_date = date(2000, 2, 29)
    today = date(2025, 2, 27)

    assert next_occurrence(birth_date, today, "feb28") == date(2025, 2, 28)
    assert days_until_next_occurrence(birth_date, today, "feb28") == 1


def test_feb_29_after_feb_28_waits_for_next_leap_year() -> None:
    birth_date = date(2000, 2, 29)
    today = date(2023, 3, 1)

    assert next_occurrence(birth_date, today, "feb28") == date(2024, 2, 29)
    assert days_until_next_occurrence(birth_date, today, "feb28") == 365


def test_feb_29_maps_to_mar_1_when_configured() -> None:
    birth_date = date(2000, 2, 29)

    assert occurrence_for_year(birth_date, 2023, "mar1") == date(2023, 3, 1)
    assert days_until_next_occurrence(birth_date, date(2023, 3, 1), "mar1") == 0


def test_feb_29_keeps_date_on_leap_year() -> None:
    assert next_occurrence(date(2000, 2, 29), date(2028, 2, 27), "feb28") == date(2028, 2, 29)


def test_unknown_leap_day_rule_rejected() -> None:
    with pytest.raises(InvalidBirthdayError):
        occurrence_for_year(date(2000, 2, 29), 2023, "closest")


def test_parse_birth_date_strict_format() -> None:
    assert parse_birth_date("15.05.1990") == date(1990, 5, 15)
    assert parse_birth_date(" 29.02.2000 ") == date(2000, 2, 29)


@pytest.mark.parametrize("raw", ["5.05.1990", "15-05-1990", "1990.05.15", "15.05.90", "31.04.1990", "29.02.2023", ""])
def test_parse_birth_date_rejects_bad_input(raw: str) -> None:
    with pytest.raises(InvalidBirthdayError):
        parse_birth_date(raw)


def test_format_birth_date() -> None:
    assert format_birth_date(date(1990, 5, 3)) == "03.05.1990"
