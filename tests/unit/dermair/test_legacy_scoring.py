"""Tests for the basic additive scoring path."""

from datetime import date, timedelta

import pytest

from dermair.domain.models import DailyLogEntry, LegacyRiskLevel, PollenCount, WeatherSnapshot
from dermair.services.legacy_scoring import (
    MAX_RECOMMENDATIONS,
    calculate_risk_score,
    legacy_recommendations,
    legacy_risk_level,
)

MILD = WeatherSnapshot(temperature=20, humidity=50, uv_index=2, air_quality_index=20)

HARSH = WeatherSnapshot(
    temperature=34,
    humidity=85,
    uv_index=10,
    air_quality_index=210,
    pollen_count=PollenCount(tree=4, grass=4, weed=2, overall=10),
    wind_speed=30,
)


def _logs(pairs: list[tuple[int, int]]) -> list[DailyLogEntry]:
    start = date(2025, 5, 1)
    return [
        DailyLogEntry(date=start + timedelta(days=i), itch_score=itch, redness_score=redness)
        for i, (itch, redness) in enumerate(pairs)
    ]


class TestCalculateRiskScore:
    def test_mild_day_scores_zero(self) -> None:
        assert calculate_risk_score(MILD, []) == 0

    def test_harsh_day_is_clamped(self) -> None:
        assert calculate_risk_score(HARSH, ["pollen", "heat", "wind"]) == 100

    @pytest.mark.parametrize(
        "weather,expected",
        [
            (WeatherSnapshot(temperature=20, humidity=15), 30),
            (WeatherSnapshot(temperature=20, humidity=75), 15),
            (WeatherSnapshot(temperature=-2, humidity=50), 25),
            (WeatherSnapshot(temperature=3, humidity=50), 15),
            (WeatherSnapshot(temperature=30, humidity=50), 12),
            (WeatherSnapshot(temperature=20, humidity=50, uv_index=6), 10),
            (WeatherSnapshot(temperature=20, humidity=50, air_quality_index=120), 15),
            (WeatherSnapshot(temperature=20, humidity=50, wind_speed=26), 12),
        ],
    )
    def test_single_thresholds(self, weather: WeatherSnapshot, expected: int) -> None:
        assert calculate_risk_score(weather, []) == expected

    def test_trigger_sensitivity(self) -> None:
        cold = WeatherSnapshot(temperature=5, humidity=50)

        # (15 - 5) * 1.2 = 12 on top of nothing else
        assert calculate_risk_score(cold, ["Cold"]) == 12
        assert calculate_risk_score(cold, ["heat"]) == 0

    def test_symptom_pattern_and_worsening(self) -> None:
        logs = _logs([(0, 0), (0, 0), (3, 1), (4, 2), (5, 3)])

        # last three average (4 + 2) / 2 = 3 is not above 3; worsening 8 - 4 = 4 > 2
        assert calculate_risk_score(MILD, [], logs) == 10

        flaring = _logs([(5, 3), (5, 3), (5, 3)])
        # average (5 + 3) / 2 = 4 -> 20 points, flat so no worsening bonus
        assert calculate_risk_score(MILD, [], flaring) == 20

    def test_log_order_is_normalized(self) -> None:
        logs = _logs([(1, 0), (2, 1), (5, 3)])
        assert calculate_risk_score(MILD, [], logs) == calculate_risk_score(
            MILD, [], list(reversed(logs))
        )


class TestLevelsAndAdvice:
    @pytest.mark.parametrize(
        "score,expected",
        [
            (0, LegacyRiskLevel.LOW),
            (29, LegacyRiskLevel.LOW),
            (30, LegacyRiskLevel.MEDIUM),
            (59, LegacyRiskLevel.MEDIUM),
            (60, LegacyRiskLevel.HIGH),
        ],
    )
    def test_levels(self, score: int, expected: LegacyRiskLevel) -> None:
        assert legacy_risk_level(score) == expected

    def test_recommendations_capped_and_unique(self) -> None:
        advice = legacy_recommendations(LegacyRiskLevel.HIGH, HARSH, ["pollen", "heat", "wind"])

        assert len(advice) == MAX_RECOMMENDATIONS
        assert len(set(advice)) == len(advice)
        assert advice[0] == "High risk day - take protective measures"

    def test_low_risk_mild_day(self) -> None:
        advice = legacy_recommendations(LegacyRiskLevel.LOW, MILD, [])

        assert advice == [
            "Good day for your skin! Maintain your regular routine",
            "Apply your usual moisturizer morning and evening",
        ]

    def test_trigger_advice_follows_weather_advice(self) -> None:
        weather = WeatherSnapshot(temperature=10, humidity=50)

        advice = legacy_recommendations(LegacyRiskLevel.MEDIUM, weather, ["cold"])

        assert advice[-1] == "Use heavier, occlusive moisturizers"
