from __future__ import annotations

import calendar
from datetime import date, timedelta
from typing import Iterable, Sequence

from .models import DayEntry, QualityBucket, TrendPoint, as_day
from .photos import decode_photo_payload
from .tags import canonical_mood, parse_tags

ALL_FILTER = "All"
DEFAULT_TREND_WINDOW_DAYS = 30

NO_ENTRY_COLOR = "gray"
_QUALITY_COLORS = (
    (9, "green"),
    (7, "mint"),
    (5, "yellow"),
    (3, "orange"),
)


def trend(
    entries: Sequence[DayEntry],
    window_days: int = DEFAULT_TREND_WINDOW_DAYS,
    reference_date: date | None = None,
) -> list[TrendPoint]:
    """One point per day of the window ending at ``reference_date``.

    Days without an entry score 0 so the chart still draws every day.
    """
    reference = as_day(reference_date or date.today())
    by_day = _index_by_day(entries)
    points: list[TrendPoint] = []
    for offset in range(max(0, int(window_days)) - 1, -1, -1):
        day = reference - timedelta(days=offset)
        entry = by_day.get(day)
        points.append(TrendPoint(day=day, score=entry.quality_score if entry else 0))
    return points


def distribution(entries: Iterable[DayEntry]) -> list[QualityBucket]:
    counts = {score: 0 for score in range(1, 11)}
    for entry in entries:
        if entry.quality_score in counts:
            counts[entry.quality_score] += 1
    return [QualityBucket(score=score, count=count) for score, count in counts.items()]


def streak(entries: Sequence[DayEntry], reference_date: date | None = None) -> int:
    logged = {as_day(entry.day) for entry in entries}
    cursor = as_day(reference_date or date.today())
    running = 0
    while cursor in logged:
        running += 1
        cursor -= timedelta(days=1)
    return running


def total_logged_days(entries: Iterable[DayEntry]) -> int:
    return len({as_day(entry.day) for entry in entries})


def filter_entries(
    entries: Iterable[DayEntry],
    mood: str | None = None,
    tag: str | None = None,
    minimum_score: int | None = None,
    search_text: str | None = None,
) -> list[DayEntry]:
    mood_filter = _active(mood)
    wanted_mood = canonical_mood(mood_filter) if mood_filter else None
    tag_filter = _active(tag)
    wanted_tag = tag_filter.lower() if tag_filter else None
    query = (search_text or "").strip().lower()
    minimum = int(minimum_score) if minimum_score else 0

    matches: list[DayEntry] = []
    for entry in entries:
        if wanted_mood is not None and canonical_mood(entry.mood) != wanted_mood:
            continue
        if minimum > 0 and entry.quality_score < minimum:
            continue
        if wanted_tag is not None and wanted_tag not in {t.lower() for t in parse_tags(entry.activities)}:
            continue
        if query and query not in _search_haystack(entry):
            continue
        matches.append(entry)
    return matches


def history(entries: Iterable[DayEntry]) -> list[DayEntry]:
    return sorted(entries, key=lambda entry: entry.day, reverse=True)


def available_tags(entries: Iterable[DayEntry]) -> list[str]:
    seen: set[str] = set()
    for entry in entries:
        seen.update(parse_tags(entry.activities))
    return sorted(seen)


def entry_for_day(entries: Iterable[DayEntry], day: date) -> DayEntry | None:
    target = as_day(day)
    for entry in entries:
        if as_day(entry.day) == target:
            return entry
    return None


def quality_color(entry: DayEntry | None) -> str:
    if entry is None:
        return NO_ENTRY_COLOR
    for threshold, color in _QUALITY_COLORS:
        if entry.quality_score >= threshold:
            return color
    return "red"


def month_photos(entries: Iterable[DayEntry], month: date) -> list[bytes]:
    """Every photo logged during ``month``, in day order."""
    in_month = sorted(
        (entry for entry in entries if (entry.day.year, entry.day.month) == (month.year, month.month)),
        key=lambda entry: entry.day,
    )
    photos: list[bytes] = []
    for entry in in_month:
        photos.extend(decode_photo_payload(entry.photo_data).photos)
    return photos


def month_days(month: date) -> list[date | None]:
    """Calendar grid cells for ``month``; weeks start on Sunday."""
    first = month.replace(day=1)
    leading = (first.weekday() + 1) % 7
    _, days_in_month = calendar.monthrange(first.year, first.month)
    cells: list[date | None] = [None] * leading
    cells.extend(first.replace(day=day) for day in range(1, days_in_month + 1))
    return cells


def _index_by_day(entries: Iterable[DayEntry]) -> dict[date, DayEntry]:
    index: dict[date, DayEntry] = {}
    for entry in entries:
        index.setdefault(as_day(entry.day), entry)
    return index


def _active(value: str | None) -> str | None:
    text = (value or "").strip()
    if not text or text == ALL_FILTER:
        return None
    return text


def _search_haystack(entry: DayEntry) -> str:
    return " ".join(
        [
            entry.morning_plan,
            entry.evening_reflection,
            entry.activities,
            entry.mood,
        ]
    ).lower()
