"""Rough life-expectancy range from a handful of demographic inputs.

Base expectancy and standard deviation come from a small per-country table.
Smoking and chronic conditions subtract a flat number of years. The
average is never allowed to fall below the person's next birthday.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from datetime import date

from .models import ExpectancyRange, LifeProgress, UserProfile

SMOKING_PENALTY_YEARS = 5
CHRONIC_CONDITION_PENALTY_YEARS = 5
DAYS_PER_YEAR = 365


@dataclass(frozen=True)
class _CountryStats:
    substrings: tuple[str, ...]
    exact: tuple[str, ...]
    male_years: int
    female_years: int
    male_std_dev: float
    female_std_dev: float

    def matches(self, country: str) -> bool:
        return country in self.exact or any(part in country for part in self.substrings)


_COUNTRY_TABLE = (
    _CountryStats(("japan",), (), 81, 87, 4.8, 4.6),
    _CountryStats(("united states",), ("us", "usa"), 76, 81, 6.2, 6.0),
    _CountryStats(("canada",), (), 80, 84, 5.5, 5.2),
)
_DEFAULT_STATS = _CountryStats((), (), 75, 80, 6.5, 6.2)


def estimate_range(
    birth_date: date,
    country: str,
    gender: str,
    is_smoker: bool,
    has_chronic_condition: bool,
    today: date | None = None,
) -> ExpectancyRange:
    today = today or date.today()
    stats = _stats_for(country)
    is_male = (gender or "").lower() == "male"

    base = stats.male_years if is_male else stats.female_years
    std_dev = stats.male_std_dev if is_male else stats.female_std_dev
    smoking_penalty = SMOKING_PENALTY_YEARS if is_smoker else 0
    chronic_penalty = CHRONIC_CONDITION_PENALTY_YEARS if has_chronic_condition else 0

    age = current_age(birth_date, today)
    average = max(base - smoking_penalty - chronic_penalty, age + 1)
    lower = max(_round_half_up(average - 2 * std_dev), age + 1)
    upper = max(_round_half_up(average + 2 * std_dev), average + 1)
    return ExpectancyRange(
        average_years=average,
        lower_years=lower,
        upper_years=upper,
        std_dev_years=std_dev,
    )


def estimate_years(
    birth_date: date,
    country: str,
    gender: str,
    is_smoker: bool,
    has_chronic_condition: bool,
    today: date | None = None,
) -> int:
    return estimate_range(
        birth_date,
        country,
        gender,
        is_smoker,
        has_chronic_condition,
        today=today,
    ).average_years


def estimate_for_profile(profile: UserProfile, today: date | None = None) -> ExpectancyRange:
    return estimate_range(
        birth_date=profile.birth_date,
        country=profile.country,
        gender=profile.gender,
        is_smoker=profile.is_smoker,
        has_chronic_condition=profile.has_chronic_condition,
        today=today,
    )


def current_age(birth_date: date, today: date | None = None) -> int:
    today = today or date.today()
    years = today.year - birth_date.year
    if (today.month, today.day) < (birth_date.month, birth_date.day):
        years -= 1
    return max(years, 0)


def life_progress(profile: UserProfile, today: date | None = None) -> LifeProgress:
    """Figures behind the lived/remaining progress bar."""
    today = today or date.today()
    expectancy = estimate_for_profile(profile, today=today)

    days_lived = max((today - profile.birth_date).days, 0)
    average_total_days = max(expectancy.average_years * DAYS_PER_YEAR, days_lived + 1)
    upper_total_days = max(expectancy.upper_years * DAYS_PER_YEAR, average_total_days + 1)
    return LifeProgress(
        age=current_age(profile.birth_date, today),
        days_lived=days_lived,
        average_total_days=average_total_days,
        upper_total_days=upper_total_days,
        average_days_left=max(average_total_days - days_lived, 0),
        lived_ratio=_clamp_ratio(days_lived / upper_total_days),
        average_ratio=_clamp_ratio(average_total_days / upper_total_days),
        expectancy=expectancy,
    )


def _stats_for(country: str) -> _CountryStats:
    normalized = (country or "").lower()
    for stats in _COUNTRY_TABLE:
        if stats.matches(normalized):
            return stats
    return _DEFAULT_STATS


def _round_half_up(value: float) -> int:
    # round() would use banker's rounding; values here are always positive
    return int(math.floor(value + 0.5))


def _clamp_ratio(value: float) -> float:
    return min(max(value, 0.0), 1.0)
