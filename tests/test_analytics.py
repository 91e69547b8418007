from __future__ import annotations

import unittest
from datetime import date, datetime, timedelta, timezone

from lifegrid.analytics import (
    available_tags,
    distribution,
    entry_for_day,
    filter_entries,
    history,
    month_days,
    month_photos,
    quality_color,
    streak,
    total_logged_days,
    trend,
)
from lifegrid.models import DayEntry
from lifegrid.photos import encode_photo_payload

D = date(2026, 10, 19)


def _entry(
    day: date,
    quality: int = 5,
    mood: str = "Good",
    activities: str = "",
    plan: str = "",
    reflection: str = "",
    photo_data: bytes | None = None,
) -> DayEntry:
    stamp = datetime(day.year, day.month, day.day, 21, 0, tzinfo=timezone.utc)
    return DayEntry(
        day=day,
        quality_score=quality,
        mood_score=5,
        energy_score=5,
        progress_score=5,
        mood=mood,
        activities=activities,
        morning_plan=plan,
        evening_reflection=reflection,
        photo_data=photo_data,
        created_at=stamp,
        updated_at=stamp,
    )


class AnalyticsTests(unittest.TestCase):
    def test_streak_stops_at_first_gap(self) -> None:
        entries = [_entry(D), _entry(D - timedelta(days=1)), _entry(D - timedelta(days=2)), _entry(D - timedelta(days=4))]
        self.assertEqual(streak(entries, D), 3)

    def test_streak_is_zero_without_entry_on_reference_day(self) -> None:
        self.assertEqual(streak([_entry(D - timedelta(days=1))], D), 0)
        self.assertEqual(streak([], D), 0)

    def test_distribution_counts_every_bucket(self) -> None:
        buckets = distribution([_entry(D, 5), _entry(D - timedelta(days=1), 5), _entry(D - timedelta(days=2), 8)])
        self.assertEqual([bucket.score for bucket in buckets], list(range(1, 11)))
        counts = {bucket.score: bucket.count for bucket in buckets}
        self.assertEqual(counts[5], 2)
        self.assertEqual(counts[8], 1)
        self.assertEqual(sum(counts.values()), 3)

    def test_trend_fills_missing_days_with_zero(self) -> None:
        entries = [_entry(D, 7), _entry(D - timedelta(days=2), 4)]
        points = trend(entries, window_days=3, reference_date=D)
        self.assertEqual(
            [(point.day, point.score) for point in points],
            [(D - timedelta(days=2), 4), (D - timedelta(days=1), 0), (D, 7)],
        )

    def test_trend_default_window(self) -> None:
        points = trend([], reference_date=D)
        self.assertEqual(len(points), 30)
        self.assertEqual(points[-1].day, D)
        self.assertEqual(points[0].day, D - timedelta(days=29))

    def test_total_logged_days_counts_distinct_days(self) -> None:
        self.assertEqual(total_logged_days([_entry(D), _entry(D), _entry(D - timedelta(days=3))]), 2)

    def test_filter_by_tag(self) -> None:
        work = _entry(D, activities="Work,Exercise")
        family = _entry(D - timedelta(days=1), activities="Family")
        self.assertEqual(filter_entries([work, family], tag="Work"), [work])
        self.assertEqual(filter_entries([work, family], tag="work"), [work])
        self.assertEqual(filter_entries([work, family], tag="All"), [work, family])

    def test_filter_predicates_are_combined(self) -> None:
        a = _entry(D, 8, mood="Great", plan="Deep work on the garden", activities="Home")
        b = _entry(D - timedelta(days=1), 4, mood="Low", reflection="Garden chores")
        c = _entry(D - timedelta(days=2), 9, mood="Great", reflection="Beach")
        entries = [a, b, c]
        self.assertEqual(filter_entries(entries, mood="great"), [a, c])
        self.assertEqual(filter_entries(entries, minimum_score=8), [a, c])
        self.assertEqual(filter_entries(entries, search_text=" GARDEN "), [a, b])
        self.assertEqual(filter_entries(entries, mood="Great", search_text="garden"), [a])
        self.assertEqual(filter_entries(entries, search_text="low"), [b])
        self.assertEqual(filter_entries(entries, minimum_score=0), entries)

    def test_history_and_available_tags(self) -> None:
        older = _entry(D - timedelta(days=1), activities="Work, Travel")
        newer = _entry(D, activities="work, Family")
        self.assertEqual(history([older, newer]), [newer, older])
        self.assertEqual(available_tags([older, newer]), ["Family", "Travel", "Work", "work"])
        self.assertIs(entry_for_day([older, newer], D), newer)
        self.assertIsNone(entry_for_day([older], D))

    def test_quality_color_buckets(self) -> None:
        self.assertEqual(quality_color(None), "gray")
        self.assertEqual(quality_color(_entry(D, 10)), "green")
        self.assertEqual(quality_color(_entry(D, 7)), "mint")
        self.assertEqual(quality_color(_entry(D, 6)), "yellow")
        self.assertEqual(quality_color(_entry(D, 3)), "orange")
        self.assertEqual(quality_color(_entry(D, 1)), "red")

    def test_month_photos_in_day_order(self) -> None:
        entries = [
            _entry(date(2026, 10, 20), photo_data=encode_photo_payload([b"c", b"d"])),
            _entry(date(2026, 10, 2), photo_data=b"a"),
            _entry(date(2026, 9, 30), photo_data=b"x"),
            _entry(date(2026, 10, 5)),
        ]
        self.assertEqual(month_photos(entries, date(2026, 10, 1)), [b"a", b"c", b"d"])

    def test_month_days_pads_to_sunday(self) -> None:
        cells = month_days(date(2026, 10, 15))
        # October 1st 2026 is a Thursday
        self.assertEqual(cells[:4], [None, None, None, None])
        self.assertEqual(cells[4], date(2026, 10, 1))
        self.assertEqual(cells[-1], date(2026, 10, 31))


if __name__ == "__main__":
    unittest.main()
