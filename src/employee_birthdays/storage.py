from __future__ import annotations

import contextlib
import json
import logging
import sqlite3
from datetime import date, datetime, timedelta, timezone
from pathlib import Path
from typing import Iterator

from employee_birthdays.models import (
    ChatConversation,
    ConversationState,
    DeleteCandidate,
    Employee,
)

LOGGER = logging.getLogger(__name__)

DEFAULT_ACTIVE_WINDOW = timedelta(days=30)

SCHEMA = """
CREATE TABLE IF NOT EXISTS employees (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    name TEXT NOT NULL,
    birthday TEXT NOT NULL,
    chat_id INTEGER NOT NULL,
    last_notified_tier INTEGER
);
CREATE TABLE IF NOT EXISTS active_chats (
    chat_id INTEGER PRIMARY KEY,
    last_seen TEXT NOT NULL
);
CREATE TABLE IF NOT EXISTS chat_conversations (
    chat_id INTEGER PRIMARY KEY,
    state TEXT NOT NULL,
    payload TEXT NOT NULL
);
"""


class StorageError(RuntimeError):
    pass


def _utc_timestamp(moment: datetime) -> str:
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    return moment.astimezone(timezone.utc).isoformat(timespec="seconds")


def _row_to_employee(row: sqlite3.Row) -> Employee:
    tier = row["last_notified_tier"]
    return Employee(
        employee_id=int(row["id"]),
        name=str(row["name"]),
        birthday=date.fromisoformat(str(row["birthday"])),
        chat_id=int(row["chat_id"]),
        last_notified_tier=int(tier) if tier is not None else None,
    )


class EmployeeStore:
    """SQLite-backed store for employees, active chats and chat conversations.

    Every operation opens its own connection, so the store can be shared by
    the scheduled check and the command handlers.
    """

    def __init__(self, path: Path) -> None:
        self._path = path

    @contextlib.contextmanager
    def _connect(self, action: str) -> Iterator[sqlite3.Connection]:
        try:
            conn = sqlite3.connect(self._path)
        except sqlite3.Error as exc:
            raise StorageError(f"Could not open database {self._path} to {action}") from exc

        conn.row_factory = sqlite3.Row
        try:
            with conn:
                yield conn
        except sqlite3.Error as exc:
            raise StorageError(f"Failed to {action}") from exc
        finally:
            conn.close()

    def initialize(self) -> None:
        self._path.parent.mkdir(parents=True, exist_ok=True)
        with self._connect("initialize schema") as conn:
            conn.executescript(SCHEMA)
        LOGGER.info("Employee store ready at %s", self._path)

    def list_employees(self) -> list[Employee]:
        with self._connect("list employees") as conn:
            rows = conn.execute(
                "SELECT id, name, birthday, chat_id, last_notified_tier "
                "FROM employees ORDER BY name, id"
            ).fetchall()
        try:
            return [_row_to_employee(row) for row in rows]
        except ValueError as exc:
            raise StorageError(f"Corrupt employee row: {exc}") from exc

    def insert_employee(self, name: str, birthday: date, origin_chat_id: int) -> Employee:
        with self._connect("insert employee") as conn:
            cursor = conn.execute(
                "INSERT INTO employees (name, birthday, chat_id) VALUES (?, ?, ?)",
                (name, birthday.isoformat(), origin_chat_id),
            )
            employee_id = int(cursor.lastrowid)
        return Employee(
            employee_id=employee_id,
            name=name,
            birthday=birthday,
            chat_id=origin_chat_id,
        )

    def delete_employee(self, employee_id: int) -> bool:
        with self._connect("delete employee") as conn:
            cursor = conn.execute("DELETE FROM employees WHERE id = ?", (employee_id,))
        return cursor.rowcount > 0

    def update_last_notified_tier(self, employee_id: int, tier: int | None) -> None:
        with self._connect("update last notified tier") as conn:
            conn.execute(
                "UPDATE employees SET last_notified_tier = ? WHERE id = ?",
                (tier, employee_id),
            )

    def upsert_active_chat(self, chat_id: int, now: datetime) -> None:
        with self._connect("upsert active chat") as conn:
            conn.execute(
                "INSERT INTO active_chats (chat_id, last_seen) VALUES (?, ?) "
                "ON CONFLICT(chat_id) DO UPDATE SET last_seen = excluded.last_seen",
                (chat_id, _utc_timestamp(now)),
            )

    def list_eligible_chats(
        self,
        now: datetime,
        window: timedelta = DEFAULT_ACTIVE_WINDOW,
    ) -> list[int]:
        cutoff = _utc_timestamp(now - window)
        with self._connect("list eligible chats") as conn:
            rows = conn.execute(
                "SELECT chat_id FROM active_chats WHERE last_seen > ? ORDER BY chat_id",
                (cutoff,),
            ).fetchall()
        return [int(row["chat_id"]) for row in rows]

    def get_conversation(self, chat_id: int) -> ChatConversation:
        with self._connect("load chat conversation") as conn:
            row = conn.execute(
                "SELECT state, payload FROM chat_conversations WHERE chat_id = ?",
                (chat_id,),
            ).fetchone()

        if row is None:
            return ChatConversation(chat_id=chat_id)

        try:
            state = ConversationState(row["state"])
            payload = json.loads(row["payload"])
            candidates = tuple(
                DeleteCandidate(employee_id=int(item["employee_id"]), name=str(item["name"]))
                for item in payload.get("candidates", [])
            )
        except (ValueError, KeyError, TypeError, AttributeError) as exc:
            raise StorageError(f"Corrupt conversation state for chat {chat_id}") from exc

        return ChatConversation(chat_id=chat_id, state=state, candidates=candidates)

    def set_awaiting_delete_selection(
        self,
        chat_id: int,
        candidates: list[DeleteCandidate],
    ) -> None:
        payload = {
            "candidates": [
                {"employee_id": candidate.employee_id, "name": candidate.name}
                for candidate in candidates
            ]
        }
        with self._connect("store delete selection") as conn:
            conn.execute(
                "INSERT INTO chat_conversations (chat_id, state, payload) VALUES (?, ?, ?) "
                "ON CONFLICT(chat_id) DO UPDATE SET state = excluded.state, payload = excluded.payload",
                (
                    chat_id,
                    ConversationState.AWAITING_DELETE_SELECTION.value,
                    json.dumps(payload, ensure_ascii=False),
                ),
            )

    def clear_conversation(self, chat_id: int) -> None:
        with self._connect("clear chat conversation") as conn:
            conn.execute("DELETE FROM chat_conversations WHERE chat_id = ?", (chat_id,))
