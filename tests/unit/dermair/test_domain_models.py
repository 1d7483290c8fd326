"""Validation and immutability of the input and output models."""

from datetime import UTC, date, datetime

import pytest
from hypothesis import given
from hypothesis import strategies as st

from dermair.domain.models import (
    AssessmentOutcome,
    DailyLogEntry,
    LegacyRiskLevel,
    PollenCount,
    RiskLevel,
    RiskThreshold,
    UserProfile,
    WeatherSnapshot,
)


class TestWeatherSnapshot:
    @given(
        humidity=st.floats(min_value=0.0, max_value=100.0),
        temperature=st.floats(min_value=-40.0, max_value=50.0),
    )
    def test_valid_readings_accepted(self, humidity: float, temperature: float) -> None:
        weather = WeatherSnapshot(temperature=temperature, humidity=humidity)

        assert weather.humidity == humidity
        assert weather.pressure == 1013.25
        assert weather.timestamp.tzinfo == UTC

    def test_humidity_out_of_range_rejected(self) -> None:
        with pytest.raises(ValueError):
            WeatherSnapshot(temperature=20, humidity=120)

    @pytest.mark.parametrize(
        "field_name,value",
        [
            ("temperature", float("inf")),
            ("temperature", float("-inf")),
            ("temperature", float("nan")),
            ("uv_index", float("inf")),
            ("wind_speed", float("inf")),
            ("humidity", float("nan")),
        ],
    )
    def test_non_finite_readings_rejected(self, field_name: str, value: float) -> None:
        readings = {"temperature": 20.0, "humidity": 50.0, field_name: value}

        with pytest.raises(ValueError):
            WeatherSnapshot(**readings)

    def test_non_finite_pollen_rejected(self) -> None:
        with pytest.raises(ValueError):
            PollenCount(overall=float("nan"))

    def test_snapshot_is_frozen(self) -> None:
        weather = WeatherSnapshot(temperature=20, humidity=50)

        with pytest.raises(ValueError, match="frozen"):
            weather.humidity = 10  # type: ignore

    def test_pollen_total_sums_species(self) -> None:
        pollen = PollenCount(tree=2, grass=1.5, weed=0.5, overall=9)
        assert pollen.total == 4.0


class TestDailyLogEntry:
    def test_combined_score(self) -> None:
        entry = DailyLogEntry(date=date(2025, 3, 1), itch_score=4, redness_score=2)
        assert entry.combined_score == 6

    @pytest.mark.parametrize("itch,redness", [(6, 0), (-1, 0), (0, 4)])
    def test_scores_out_of_range_rejected(self, itch: int, redness: int) -> None:
        with pytest.raises(ValueError):
            DailyLogEntry(date=date(2025, 3, 1), itch_score=itch, redness_score=redness)


class TestUserProfile:
    def test_defaults(self) -> None:
        profile = UserProfile(id="u1")

        assert profile.skin_type is None
        assert profile.triggers == []
        assert profile.preferences.risk_threshold == RiskThreshold.MODERATE
        assert profile.preferences.notifications is True


class TestAssessmentOutcome:
    def test_accepts_either_risk_taxonomy(self) -> None:
        advanced = AssessmentOutcome(
            request_id=1,
            is_advanced_mode=True,
            risk_score=42.5,
            risk_level=RiskLevel.MODERATE,
            confidence=0.6,
            explanation="advanced",
        )
        basic = AssessmentOutcome(
            request_id=2,
            is_advanced_mode=False,
            risk_score=35,
            risk_level=LegacyRiskLevel.MEDIUM,
            confidence=0.7,
            explanation="basic",
        )

        assert advanced.risk_level == RiskLevel.MODERATE
        assert basic.risk_level == LegacyRiskLevel.MEDIUM
        assert isinstance(basic.generated_at, datetime)

    def test_risk_score_bounds(self) -> None:
        with pytest.raises(ValueError):
            AssessmentOutcome(
                request_id=1,
                is_advanced_mode=False,
                risk_score=101,
                risk_level=LegacyRiskLevel.HIGH,
                confidence=0.7,
                explanation="basic",
            )
