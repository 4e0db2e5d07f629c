from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta
from typing import Any

from telegram.error import TelegramError

from employee_birthdays.date_logic import days_until_next_occurrence
from employee_birthdays.models import AppConfig, Employee
from employee_birthdays.notification_policy import classify, format_notification_message
from employee_birthdays.reminder_state import record_notified, should_notify
from employee_birthdays.storage import EmployeeStore, StorageError

LOGGER = logging.getLogger(__name__)


@dataclass(frozen=True)
class DueReminder:
    employee: Employee
    tier: int
    message: str


@dataclass
class DeliveryReport:
    delivered: list[int] = field(default_factory=list)
    failed: list[int] = field(default_factory=list)


@dataclass
class CheckResult:
    today: date
    reminders: list[DueReminder] = field(default_factory=list)
    delivered_messages: int = 0
    failed_deliveries: int = 0
    skipped: bool = False

    @property
    def sent_count(self) -> int:
        return len(self.reminders)


class ReminderService:
    def __init__(self, *, bot: Any, store: EmployeeStore, config: AppConfig) -> None:
        self._bot = bot
        self._store = store
        self._config = config

    @property
    def active_window(self) -> timedelta:
        return timedelta(days=self._config.active_window_days)

    def due_reminder(self, employee: Employee, today: date) -> DueReminder | None:
        days_until = days_until_next_occurrence(employee.birthday, today, self._config.leap_day_rule)
        tier = classify(days_until)
        LOGGER.debug(
            "Checked %s: %s days until birthday (last notified tier %s)",
            employee.name,
            days_until,
            employee.last_notified_tier,
        )
        if tier is None:
            return None
        return DueReminder(
            employee=employee,
            tier=tier,
            message=format_notification_message(employee.name, tier, employee.birthday),
        )

    async def deliver(self, chat_ids: list[int], text: str) -> DeliveryReport:
        report = DeliveryReport()
        for chat_id in chat_ids:
            try:
                await self._bot.send_message(chat_id=chat_id, text=text)
            except TelegramError as exc:
                LOGGER.warning("Failed to deliver reminder to chat %s: %s", chat_id, exc)
                report.failed.append(chat_id)
            else:
                report.delivered.append(chat_id)
        return report

    async def check_and_notify(self, now: datetime) -> CheckResult:
        """Run one scheduled check, honouring the last-notified-tier ledger."""
        return await self._run(now, use_ledger=True)

    async def notify_all(self, now: datetime) -> CheckResult:
        """Manual pass: resend every in-tier reminder without touching the ledger."""
        return await self._run(now, use_ledger=False)

    async def _run(self, now: datetime, *, use_ledger: bool) -> CheckResult:
        today = now.date()
        result = CheckResult(today=today)
        LOGGER.info("Checking birthdays at %s", now.isoformat(timespec="seconds"))

        try:
            employees = self._store.list_employees()
            chat_ids = self._store.list_eligible_chats(now, self.active_window)
        except StorageError:
            LOGGER.exception("Birthday check skipped: could not load employees or chats")
            result.skipped = True
            return result

        for employee in employees:
            try:
                reminder = self.due_reminder(employee, today)
                if reminder is None:
                    continue
                if use_ledger and not should_notify(employee, reminder.tier):
                    continue

                LOGGER.info("Sending reminder: %s", reminder.message)
                report = await self.deliver(chat_ids, reminder.message)
                result.delivered_messages += len(report.delivered)
                result.failed_deliveries += len(report.failed)
                result.reminders.append(reminder)

                if use_ledger:
                    record_notified(self._store, employee, reminder.tier)
            except Exception:
                LOGGER.exception("Skipping employee %s (%s) in this check", employee.employee_id, employee.name)

        if result.reminders:
            LOGGER.info(
                "Sent %s reminders for %s: %s messages delivered, %s failed",
                result.sent_count,
                today.isoformat(),
                result.delivered_messages,
                result.failed_deliveries,
            )
        return result
