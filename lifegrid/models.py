from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime

from .photos import decode_photo_payload
from .tags import DEFAULT_MOOD, canonical_mood

MIN_SCORE = 1
MAX_SCORE = 10
DEFAULT_SCORE = 5


def as_day(value: date | datetime) -> date:
    """Truncate a timestamp to its calendar day."""
    if isinstance(value, datetime):
        return value.date()
    return value


def normalize_score(value: object) -> int:
    if value is None or isinstance(value, bool):
        return DEFAULT_SCORE
    try:
        score = int(value)
    except (TypeError, ValueError):
        return DEFAULT_SCORE
    return max(MIN_SCORE, min(MAX_SCORE, score))


@dataclass(frozen=True)
class UserProfile:
    birth_date: date
    country: str
    gender: str
    is_smoker: bool
    has_chronic_condition: bool
    created_at: datetime


@dataclass(frozen=True)
class DayEntry:
    day: date
    quality_score: int
    mood_score: int
    energy_score: int
    progress_score: int
    mood: str
    activities: str
    morning_plan: str
    evening_reflection: str
    photo_data: bytes | None
    created_at: datetime
    updated_at: datetime


@dataclass(frozen=True)
class ExpectancyRange:
    average_years: int
    lower_years: int
    upper_years: int
    std_dev_years: float


@dataclass(frozen=True)
class LifeProgress:
    age: int
    days_lived: int
    average_total_days: int
    upper_total_days: int
    average_days_left: int
    lived_ratio: float
    average_ratio: float
    expectancy: ExpectancyRange


@dataclass(frozen=True)
class TrendPoint:
    day: date
    score: int


@dataclass(frozen=True)
class QualityBucket:
    score: int
    count: int


@dataclass
class DayDraft:
    """Editable state of one day before it is saved.

    Scores and mood are normalized when the draft is persisted, so a
    draft may temporarily hold out-of-range values while being edited.
    """

    quality_score: int = DEFAULT_SCORE
    mood_score: int = DEFAULT_SCORE
    energy_score: int = DEFAULT_SCORE
    progress_score: int = DEFAULT_SCORE
    mood: str = DEFAULT_MOOD
    activities: str = ""
    morning_plan: str = ""
    evening_reflection: str = ""
    photos: list[bytes] = field(default_factory=list)
    thumbnail_index: int | None = None

    @classmethod
    def from_entry(cls, entry: DayEntry | None) -> DayDraft:
        if entry is None:
            return cls()
        payload = decode_photo_payload(entry.photo_data)
        return cls(
            quality_score=entry.quality_score,
            mood_score=entry.mood_score,
            energy_score=entry.energy_score,
            progress_score=entry.progress_score,
            mood=entry.mood,
            activities=entry.activities,
            morning_plan=entry.morning_plan,
            evening_reflection=entry.evening_reflection,
            photos=list(payload.photos),
            thumbnail_index=payload.thumbnail_index,
        )

    def has_meaningful_content(self) -> bool:
        has_text = any(
            text.strip()
            for text in (self.morning_plan, self.evening_reflection, self.activities)
        )
        has_photos = bool(self.photos)
        has_non_default_mood = canonical_mood(self.mood) != DEFAULT_MOOD
        has_non_default_score = any(
            normalize_score(score) != DEFAULT_SCORE
            for score in (
                self.quality_score,
                self.mood_score,
                self.energy_score,
                self.progress_score,
            )
        )
        return has_text or has_photos or has_non_default_mood or has_non_default_score
