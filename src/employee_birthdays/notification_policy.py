from __future__ import annotations

from datetime import date

from employee_birthdays.date_logic import format_birth_date
from employee_birthdays.models import NOTIFICATION_TIERS

DAY_FORMS = ("день", "дня", "дней")

TODAY_TEMPLATE = "🎉 Сегодня день рождения у {name}! Поздравьте!"
IN_DAYS_TEMPLATE = "🎗️ До дня рождения {name} осталось {days} {day_word} ({date})"


def classify(days_until: int) -> int | None:
    if days_until in NOTIFICATION_TIERS:
        return days_until
    return None


def plural_form(number: int, forms: tuple[str, str, str] = DAY_FORMS) -> str:
    """Pick the one/few/many word form for ``number``.

    Last two digits 11-14 always take the "many" form; otherwise the last
    digit decides: 1 -> one, 2-4 -> few, anything else -> many.
    """
    one, few, many = forms
    number = abs(number)
    last_two_digits = number % 100
    if 11 <= last_two_digits <= 14:
        return many

    last_digit = number % 10
    if last_digit == 1:
        return one
    if last_digit in (2, 3, 4):
        return few
    return many


def format_notification_message(name: str, days_until: int, birth_date: date) -> str:
    if days_until == 0:
        return TODAY_TEMPLATE.format(name=name)
    return IN_DAYS_TEMPLATE.format(
        name=name,
        days=days_until,
        day_word=plural_form(days_until),
        date=format_birth_date(birth_date),
    )
