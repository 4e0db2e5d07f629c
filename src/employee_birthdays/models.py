from __future__ import annotations

import enum
from dataclasses import dataclass, field
from datetime import date


NOTIFICATION_TIERS = (14, 7, 1, 0)


@dataclass(frozen=True)
class Employee:
    employee_id: int
    name: str
    birthday: date
    chat_id: int
    last_notified_tier: int | None = None


class ConversationState(enum.Enum):
    IDLE = "idle"
    AWAITING_DELETE_SELECTION = "awaiting_delete_selection"


@dataclass(frozen=True)
class DeleteCandidate:
    employee_id: int
    name: str


@dataclass(frozen=True)
class ChatConversation:
    chat_id: int
    state: ConversationState = ConversationState.IDLE
    candidates: tuple[DeleteCandidate, ...] = field(default_factory=tuple)


@dataclass(frozen=True)
class AppConfig:
    timezone: str
    check_interval_minutes: int
    leap_day_rule: str
    active_window_days: int
