from __future__ import annotations

import logging
from datetime import datetime, timedelta
from pathlib import Path
from zoneinfo import ZoneInfo

from telegram.ext import Application, CallbackContext

from employee_birthdays.bot_handlers import HandlerDependencies, build_handlers
from employee_birthdays.config_store import ensure_default_config, load_config
from employee_birthdays.reminder_service import ReminderService
from employee_birthdays.settings import load_settings
from employee_birthdays.storage import EmployeeStore

LOGGER = logging.getLogger(__name__)


def configure_logging() -> None:
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    logging.getLogger("httpx").setLevel(logging.WARNING)


def _ensure_parent(path: Path) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)


async def scheduled_check_callback(context: CallbackContext) -> None:
    service: ReminderService = context.application.bot_data["reminder_service"]
    config = context.application.bot_data["handler_deps"].config
    now = datetime.now(ZoneInfo(config.timezone))
    await service.check_and_notify(now)


def main() -> None:
    configure_logging()

    settings = load_settings()
    _ensure_parent(settings.bot_config_path)
    _ensure_parent(settings.database_path)

    ensure_default_config(settings.bot_config_path)
    config = load_config(settings.bot_config_path)

    store = EmployeeStore(settings.database_path)
    store.initialize()

    application = Application.builder().token(settings.telegram_bot_token).build()

    reminder_service = ReminderService(bot=application.bot, store=store, config=config)
    application.bot_data["reminder_service"] = reminder_service
    application.bot_data["handler_deps"] = HandlerDependencies(
        store=store,
        reminder_service=reminder_service,
        config=config,
    )

    for handler in build_handlers():
        application.add_handler(handler)

    application.job_queue.run_repeating(
        scheduled_check_callback,
        interval=timedelta(minutes=config.check_interval_minutes),
        first=0,
        name="birthday-check",
    )

    LOGGER.info(
        "Bot starting: checks every %s minutes in %s",
        config.check_interval_minutes,
        config.timezone,
    )
    application.run_polling()


if __name__ == "__main__":
    main()
