from __future__ import annotations

import unittest
from datetime import date, datetime, timezone

from lifegrid.expectancy import current_age, estimate_range, estimate_years, life_progress
from lifegrid.models import UserProfile

TODAY = date(2026, 10, 19)


class ExpectancyTests(unittest.TestCase):
    def test_japan_male_example(self) -> None:
        result = estimate_range(date(1990, 6, 15), "Japan", "Male", False, False, today=TODAY)
        self.assertEqual(result.average_years, 81)
        self.assertEqual(result.std_dev_years, 4.8)
        self.assertEqual(result.lower_years, 71)
        self.assertEqual(result.upper_years, 91)

    def test_country_matching_is_substring_and_case_insensitive(self) -> None:
        us = estimate_range(date(1990, 1, 1), "United States of America", "male", False, False, today=TODAY)
        self.assertEqual((us.average_years, us.lower_years, us.upper_years), (76, 64, 88))
        self.assertEqual(estimate_years(date(1990, 1, 1), "USA", "Female", False, False, today=TODAY), 81)
        self.assertEqual(estimate_years(date(1990, 1, 1), "canada", "Female", False, False, today=TODAY), 84)

    def test_unknown_country_and_gender_use_default_non_male_column(self) -> None:
        result = estimate_range(date(1990, 1, 1), "Russia", "Nonbinary", False, False, today=TODAY)
        self.assertEqual(result.average_years, 80)
        self.assertEqual(result.std_dev_years, 6.2)

    def test_penalties_never_increase_average(self) -> None:
        birth = date(1995, 3, 3)
        baseline = estimate_years(birth, "Canada", "Male", False, False, today=TODAY)
        smoker = estimate_years(birth, "Canada", "Male", True, False, today=TODAY)
        chronic = estimate_years(birth, "Canada", "Male", False, True, today=TODAY)
        both = estimate_years(birth, "Canada", "Male", True, True, today=TODAY)
        self.assertEqual(baseline - smoker, 5)
        self.assertEqual(baseline - chronic, 5)
        self.assertEqual(both, 70)

    def test_average_and_lower_never_fall_below_next_birthday(self) -> None:
        result = estimate_range(date(1940, 1, 1), "Elsewhere", "Female", True, True, today=TODAY)
        self.assertEqual(current_age(date(1940, 1, 1), TODAY), 86)
        self.assertEqual(result.average_years, 87)
        self.assertEqual(result.lower_years, 87)
        self.assertEqual(result.upper_years, 99)

    def test_current_age_counts_whole_years(self) -> None:
        self.assertEqual(current_age(date(2000, 10, 20), TODAY), 25)
        self.assertEqual(current_age(date(2000, 10, 19), TODAY), 26)
        self.assertEqual(current_age(date(2030, 1, 1), TODAY), 0)

    def test_life_progress(self) -> None:
        profile = UserProfile(
            birth_date=date(1996, 10, 19),
            country="Japan",
            gender="Female",
            is_smoker=False,
            has_chronic_condition=False,
            created_at=datetime(2026, 1, 1, tzinfo=timezone.utc),
        )
        progress = life_progress(profile, today=TODAY)
        self.assertEqual(progress.age, 30)
        self.assertEqual(progress.days_lived, 10957)
        self.assertEqual(progress.average_total_days, 87 * 365)
        self.assertEqual(progress.upper_total_days, 96 * 365)
        self.assertEqual(progress.average_days_left, 87 * 365 - 10957)
        self.assertAlmostEqual(progress.lived_ratio, 10957 / (96 * 365))
        self.assertLess(progress.lived_ratio, progress.average_ratio)


if __name__ == "__main__":
    unittest.main()
