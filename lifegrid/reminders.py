from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Protocol

from loguru import logger

MORNING_REMINDER_TIME_SETTING_KEY = "morning_reminder_time"
EVENING_REMINDER_TIME_SETTING_KEY = "evening_reminder_time"

MORNING_REMINDER_ID = "lifegrid.morning"
EVENING_REMINDER_ID = "lifegrid.evening"


class NotificationsNotAuthorized(RuntimeError):
    def __init__(self) -> None:
        super().__init__("Notifications are disabled. Enable them in system settings for LifeGrid.")


@dataclass(frozen=True)
class ReminderSchedule:
    morning_hour: int = 8
    morning_minute: int = 0
    evening_hour: int = 20
    evening_minute: int = 0

    def __post_init__(self) -> None:
        object.__setattr__(self, "morning_hour", _clamp(self.morning_hour, 23))
        object.__setattr__(self, "morning_minute", _clamp(self.morning_minute, 59))
        object.__setattr__(self, "evening_hour", _clamp(self.evening_hour, 23))
        object.__setattr__(self, "evening_minute", _clamp(self.evening_minute, 59))

    @property
    def morning(self) -> str:
        return f"{self.morning_hour:02d}:{self.morning_minute:02d}"

    @property
    def evening(self) -> str:
        return f"{self.evening_hour:02d}:{self.evening_minute:02d}"


@dataclass(frozen=True)
class ReminderRequest:
    identifier: str
    title: str
    body: str
    hour: int
    minute: int
    repeats: bool = True


class NotificationCenter(Protocol):
    def is_authorized(self) -> bool: ...

    def remove_pending(self, identifiers: list[str]) -> None: ...

    def add(self, request: ReminderRequest) -> None: ...


class SettingsStore(Protocol):
    def get_setting(self, key: str, default: str | None = None) -> str | None: ...

    def set_setting(self, key: str, value: str) -> None: ...


def build_reminder_requests(schedule: ReminderSchedule) -> list[ReminderRequest]:
    return [
        ReminderRequest(
            identifier=MORNING_REMINDER_ID,
            title="Plan your day",
            body="Set your intention for today in LifeGrid.",
            hour=schedule.morning_hour,
            minute=schedule.morning_minute,
        ),
        ReminderRequest(
            identifier=EVENING_REMINDER_ID,
            title="Time to Reflect",
            body="Log your day: quality, mood, and notes.",
            hour=schedule.evening_hour,
            minute=schedule.evening_minute,
        ),
    ]


def schedule_daily_reminders(center: NotificationCenter, schedule: ReminderSchedule) -> list[ReminderRequest]:
    """Replace both daily reminders; raises if notifications are not allowed."""
    if not center.is_authorized():
        raise NotificationsNotAuthorized()

    requests = build_reminder_requests(schedule)
    center.remove_pending([request.identifier for request in requests])
    for request in requests:
        center.add(request)
    logger.info("Scheduled reminders morning={} evening={}", schedule.morning, schedule.evening)
    return requests


def load_schedule(store: SettingsStore) -> ReminderSchedule:
    default = ReminderSchedule()
    morning = parse_hhmm(store.get_setting(MORNING_REMINDER_TIME_SETTING_KEY, default.morning))
    evening = parse_hhmm(store.get_setting(EVENING_REMINDER_TIME_SETTING_KEY, default.evening))
    morning = morning or (default.morning_hour, default.morning_minute)
    evening = evening or (default.evening_hour, default.evening_minute)
    return ReminderSchedule(
        morning_hour=morning[0],
        morning_minute=morning[1],
        evening_hour=evening[0],
        evening_minute=evening[1],
    )


def save_schedule(store: SettingsStore, schedule: ReminderSchedule) -> None:
    store.set_setting(MORNING_REMINDER_TIME_SETTING_KEY, schedule.morning)
    store.set_setting(EVENING_REMINDER_TIME_SETTING_KEY, schedule.evening)


class ReminderTracker:
    """Fires each reminder at most once per day when polled."""

    def __init__(self) -> None:
        self._last_sent: dict[str, str] = {}

    def due(self, schedule: ReminderSchedule, now: datetime) -> list[ReminderRequest]:
        today = now.date().isoformat()
        due: list[ReminderRequest] = []
        for request in build_reminder_requests(schedule):
            if (now.hour, now.minute) != (request.hour, request.minute):
                continue
            if self._last_sent.get(request.identifier) == today:
                continue
            self._last_sent[request.identifier] = today
            due.append(request)
        return due


def parse_hhmm(value: str | None) -> tuple[int, int] | None:
    text = (value or "").strip()
    parts = text.split(":")
    if len(parts) != 2 or not all(part.isdigit() for part in parts):
        return None
    hour, minute = int(parts[0]), int(parts[1])
    if 0 <= hour <= 23 and 0 <= minute <= 59:
        return (hour, minute)
    return None


def format_time(hour: int, minute: int) -> str:
    stamp = datetime(2000, 1, 1, _clamp(hour, 23), _clamp(minute, 59))
    return stamp.strftime("%I:%M %p").lstrip("0")


def _clamp(value: int, upper: int) -> int:
    return max(0, min(upper, int(value)))
