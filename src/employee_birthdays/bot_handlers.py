from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date, datetime
from zoneinfo import ZoneInfo

from telegram import Update
from telegram.ext import CallbackContext, CommandHandler, MessageHandler, filters

from employee_birthdays.date_logic import InvalidBirthdayError, format_birth_date, parse_birth_date
from employee_birthdays.models import (
    AppConfig,
    ConversationState,
    DeleteCandidate,
    Employee,
)
from employee_birthdays.reminder_service import ReminderService
from employee_birthdays.storage import EmployeeStore, StorageError

LOGGER = logging.getLogger(__name__)

COMMAND_PREFIX = "/"

START_TEXT = (
    "📅 Бот для учета дней рождения\n"
    "Доступные команды:\n"
    "/add - добавить сотрудника\n"
    "/remove - удалить сотрудника\n"
    "/list - список всех сотрудников\n"
    "/notify - отправить уведомления вручную"
)
ADD_PROMPT_TEXT = (
    "Введите данные сотрудника в формате:\n"
    "Имя Фамилия ДД.ММ.ГГГГ\n\n"
    "Пример: Иван Иванов 15.05.1990"
)
EMPTY_LIST_TEXT = "ℹ️ Список сотрудников пуст"
LIST_FAILED_TEXT = "❌ Ошибка при получении списка сотрудников"
FORMAT_ERROR_TEXT = "❌ Неверный формат. Используйте: Имя Фамилия ДД.ММ.ГГГГ"
DATE_ERROR_TEXT = "❌ Неверный формат даты. Используйте ДД.ММ.ГГГГ"
ADD_FAILED_TEXT = "❌ Ошибка при добавлении сотрудника"
INVALID_INDEX_TEXT = "❌ Неверный номер сотрудника"
REMOVE_FAILED_TEXT = "❌ Ошибка при удалении сотрудника"
NOT_FOUND_TEXT = "ℹ️ Сотрудник уже удален"
NOTHING_TO_NOTIFY_TEXT = "ℹ️ В ближайшие 14 дней дней рождения нет"
NOTIFY_DONE_TEXT = "✅ Уведомления отправлены во все активные чаты"


@dataclass(frozen=True)
class HandlerDependencies:
    store: EmployeeStore
    reminder_service: ReminderService
    config: AppConfig


def parse_employee_text(raw_text: str) -> tuple[str, date]:
    """Split ``"Name Surname DD.MM.YYYY"`` into a name and a birth date."""
    parts = raw_text.strip().rsplit(maxsplit=1)
    if len(parts) != 2:
        raise ValueError(FORMAT_ERROR_TEXT)

    name = " ".join(parts[0].split())
    if not name:
        raise ValueError(FORMAT_ERROR_TEXT)

    try:
        birthday = parse_birth_date(parts[1])
    except InvalidBirthdayError as exc:
        raise ValueError(DATE_ERROR_TEXT) from exc
    return name, birthday


def select_candidate(raw_text: str, candidates: tuple[DeleteCandidate, ...]) -> DeleteCandidate | None:
    value = raw_text.strip()
    if not (value.isascii() and value.isdecimal()):
        return None
    index = int(value)
    if index < 1 or index > len(candidates):
        return None
    return candidates[index - 1]


def _render_employee_list(employees: list[Employee]) -> str:
    lines = ["📋 Общий список сотрудников:", ""]
    for employee in employees:
        lines.append(f"• {employee.name} - {format_birth_date(employee.birthday)}")
    return "\n".join(lines)


def _render_remove_prompt(employees: list[Employee]) -> str:
    lines = ["Выберите сотрудника для удаления:"]
    for index, employee in enumerate(employees, start=1):
        lines.append(f"{index}. {employee.name} ({format_birth_date(employee.birthday)})")
    lines.append("")
    lines.append("Отправьте номер сотрудника для удаления")
    return "\n".join(lines)


def _now(deps: HandlerDependencies) -> datetime:
    return datetime.now(ZoneInfo(deps.config.timezone))


def _touch_chat(update: Update, deps: HandlerDependencies) -> int:
    chat_id = update.effective_chat.id
    try:
        deps.store.upsert_active_chat(chat_id, _now(deps))
    except StorageError:
        LOGGER.exception("Could not mark chat %s as active", chat_id)
    return chat_id


async def start_command(update: Update, context: CallbackContext) -> None:
    deps: HandlerDependencies = context.application.bot_data["handler_deps"]
    _touch_chat(update, deps)
    await update.effective_message.reply_text(START_TEXT)


async def add_command(update: Update, context: CallbackContext) -> None:
    deps: HandlerDependencies = context.application.bot_data["handler_deps"]
    _touch_chat(update, deps)
    await update.effective_message.reply_text(ADD_PROMPT_TEXT)


async def list_command(update: Update, context: CallbackContext) -> None:
    deps: HandlerDependencies = context.application.bot_data["handler_deps"]
    _touch_chat(update, deps)

    try:
        employees = deps.store.list_employees()
    except StorageError:
        LOGGER.exception("Could not load employees for /list")
        await update.effective_message.reply_text(LIST_FAILED_TEXT)
        return

    if not employees:
        await update.effective_message.reply_text(EMPTY_LIST_TEXT)
        return
    await update.effective_message.reply_text(_render_employee_list(employees))


async def remove_command(update: Update, context: CallbackContext) -> None:
    deps: HandlerDependencies = context.application.bot_data["handler_deps"]
    chat_id = _touch_chat(update, deps)

    try:
        employees = deps.store.list_employees()
    except StorageError:
        LOGGER.exception("Could not load employees for /remove")
        await update.effective_message.reply_text(LIST_FAILED_TEXT)
        return

    if not employees:
        await update.effective_message.reply_text(EMPTY_LIST_TEXT)
        return

    candidates = [DeleteCandidate(employee_id=e.employee_id, name=e.name) for e in employees]
    try:
        deps.store.set_awaiting_delete_selection(chat_id, candidates)
    except StorageError:
        LOGGER.exception("Could not store delete selection for chat %s", chat_id)
        await update.effective_message.reply_text(LIST_FAILED_TEXT)
        return

    await update.effective_message.reply_text(_render_remove_prompt(employees))


async def notify_command(update: Update, context: CallbackContext) -> None:
    deps: HandlerDependencies = context.application.bot_data["handler_deps"]
    _touch_chat(update, deps)

    result = await deps.reminder_service.notify_all(_now(deps))
    if result.skipped:
        await update.effective_message.reply_text(LIST_FAILED_TEXT)
    elif not result.reminders:
        await update.effective_message.reply_text(NOTHING_TO_NOTIFY_TEXT)
    else:
        await update.effective_message.reply_text(NOTIFY_DONE_TEXT)


async def _handle_delete_selection(
    update: Update,
    deps: HandlerDependencies,
    chat_id: int,
    candidates: tuple[DeleteCandidate, ...],
    raw_text: str,
) -> None:
    candidate = select_candidate(raw_text, candidates)
    try:
        deps.store.clear_conversation(chat_id)
    except StorageError:
        LOGGER.exception("Could not clear delete selection for chat %s", chat_id)

    if candidate is None:
        await update.effective_message.reply_text(INVALID_INDEX_TEXT)
        return

    try:
        deleted = deps.store.delete_employee(candidate.employee_id)
    except StorageError:
        LOGGER.exception("Could not delete employee %s", candidate.employee_id)
        await update.effective_message.reply_text(REMOVE_FAILED_TEXT)
        return

    if not deleted:
        LOGGER.info("Employee %s (%s) was already removed", candidate.employee_id, candidate.name)
        await update.effective_message.reply_text(NOT_FOUND_TEXT)
        return

    LOGGER.info("Removed employee %s (%s)", candidate.employee_id, candidate.name)
    await update.effective_message.reply_text(f"✅ Сотрудник {candidate.name} удален")


async def text_message(update: Update, context: CallbackContext) -> None:
    deps: HandlerDependencies = context.application.bot_data["handler_deps"]
    chat_id = _touch_chat(update, deps)
    raw_text = update.effective_message.text or ""

    try:
        conversation = deps.store.get_conversation(chat_id)
    except StorageError:
        LOGGER.exception("Could not load conversation state for chat %s", chat_id)
        await update.effective_message.reply_text(ADD_FAILED_TEXT)
        return

    if conversation.state is ConversationState.AWAITING_DELETE_SELECTION:
        await _handle_delete_selection(update, deps, chat_id, conversation.candidates, raw_text)
        return

    if raw_text.startswith(COMMAND_PREFIX):
        return

    try:
        name, birthday = parse_employee_text(raw_text)
    except ValueError as exc:
        await update.effective_message.reply_text(str(exc))
        return

    try:
        employee = deps.store.insert_employee(name, birthday, chat_id)
    except StorageError:
        LOGGER.exception("Could not add employee %s", name)
        await update.effective_message.reply_text(ADD_FAILED_TEXT)
        return

    LOGGER.info("Added employee %s (%s)", employee.employee_id, employee.name)
    await update.effective_message.reply_text(
        f"✅ Сотрудник {employee.name} добавлен (день рождения: {format_birth_date(employee.birthday)})"
    )


def build_handlers() -> list:
    return [
        CommandHandler("start", start_command),
        CommandHandler("add", add_command),
        CommandHandler("remove", remove_command),
        CommandHandler("list", list_command),
        CommandHandler("notify", notify_command),
        MessageHandler(filters.TEXT & ~filters.COMMAND, text_message),
    ]
