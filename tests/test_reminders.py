from __future__ import annotations

import tempfile
import unittest
from datetime import datetime
from pathlib import Path

from lifegrid.database import LifeGridDatabase
from lifegrid.reminders import (
    EVENING_REMINDER_ID,
    MORNING_REMINDER_ID,
    NotificationsNotAuthorized,
    ReminderRequest,
    ReminderSchedule,
    ReminderTracker,
    build_reminder_requests,
    format_time,
    load_schedule,
    parse_hhmm,
    save_schedule,
    schedule_daily_reminders,
)


class _FakeCenter:
    def __init__(self, authorized: bool) -> None:
        self.authorized = authorized
        self.pending: dict[str, ReminderRequest] = {}
        self.removed: list[list[str]] = []

    def is_authorized(self) -> bool:
        return self.authorized

    def remove_pending(self, identifiers: list[str]) -> None:
        self.removed.append(list(identifiers))
        for identifier in identifiers:
            self.pending.pop(identifier, None)

    def add(self, request: ReminderRequest) -> None:
        self.pending[request.identifier] = request


class ReminderTests(unittest.TestCase):
    def test_default_schedule_and_requests(self) -> None:
        requests = build_reminder_requests(ReminderSchedule())
        self.assertEqual([r.identifier for r in requests], [MORNING_REMINDER_ID, EVENING_REMINDER_ID])
        self.assertEqual((requests[0].hour, requests[0].minute), (8, 0))
        self.assertEqual((requests[1].hour, requests[1].minute), (20, 0))
        self.assertEqual(requests[1].title, "Time to Reflect")

    def test_schedule_clamps_values(self) -> None:
        schedule = ReminderSchedule(morning_hour=30, morning_minute=-5)
        self.assertEqual(schedule.morning, "23:00")

    def test_scheduling_replaces_pending_requests(self) -> None:
        center = _FakeCenter(authorized=True)
        schedule_daily_reminders(center, ReminderSchedule(7, 15, 21, 30))
        schedule_daily_reminders(center, ReminderSchedule(6, 0, 22, 0))
        self.assertEqual(center.removed[-1], [MORNING_REMINDER_ID, EVENING_REMINDER_ID])
        self.assertEqual(center.pending[MORNING_REMINDER_ID].hour, 6)
        self.assertEqual(center.pending[EVENING_REMINDER_ID].hour, 22)

    def test_scheduling_requires_authorization(self) -> None:
        center = _FakeCenter(authorized=False)
        with self.assertRaises(NotificationsNotAuthorized):
            schedule_daily_reminders(center, ReminderSchedule())
        self.assertEqual(center.pending, {})

    def test_schedule_persists_in_settings(self) -> None:
        with tempfile.TemporaryDirectory() as tmp_dir:
            db = LifeGridDatabase(Path(tmp_dir) / "lifegrid.sqlite3")
            self.assertEqual(load_schedule(db), ReminderSchedule())
            save_schedule(db, ReminderSchedule(6, 45, 21, 5))
            self.assertEqual(load_schedule(db), ReminderSchedule(6, 45, 21, 5))
            db.set_setting("evening_reminder_time", "bogus")
            self.assertEqual(load_schedule(db).evening, "20:00")

    def test_tracker_fires_once_per_day(self) -> None:
        tracker = ReminderTracker()
        schedule = ReminderSchedule(9, 0, 18, 30)
        self.assertEqual(tracker.due(schedule, datetime(2026, 2, 1, 8, 59)), [])
        fired = tracker.due(schedule, datetime(2026, 2, 1, 9, 0))
        self.assertEqual([r.identifier for r in fired], [MORNING_REMINDER_ID])
        self.assertEqual(tracker.due(schedule, datetime(2026, 2, 1, 9, 0)), [])
        self.assertEqual(len(tracker.due(schedule, datetime(2026, 2, 2, 9, 0))), 1)

    def test_tracker_keeps_only_latest_day(self) -> None:
        tracker = ReminderTracker()
        schedule = ReminderSchedule(9, 0, 18, 30)
        for day in range(1, 29):
            tracker.due(schedule, datetime(2026, 2, day, 9, 0))
        self.assertEqual(tracker._last_sent, {MORNING_REMINDER_ID: "2026-02-28"})

    def test_time_helpers(self) -> None:
        self.assertEqual(parse_hhmm("07:05"), (7, 5))
        self.assertIsNone(parse_hhmm("25:00"))
        self.assertIsNone(parse_hhmm("7pm"))
        self.assertEqual(format_time(20, 0), "8:00 PM")
        self.assertEqual(format_time(0, 5), "12:05 AM")


if __name__ == "__main__":
    unittest.main()
