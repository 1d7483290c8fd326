"""Tests for risk alert decisions and dispatch."""

import pytest

from dermair.config import AlertConfig
from dermair.domain.models import (
    AssessmentOutcome,
    LegacyRiskLevel,
    PollenCount,
    RiskLevel,
    RiskThreshold,
    UserPreferences,
    UserProfile,
    WeatherSnapshot,
)
from dermair.services.risk_alerts import (
    AlertEvent,
    RiskAlertManager,
    alert_band,
    main_weather_factors,
)

HOT_HUMID = WeatherSnapshot(
    temperature=33,
    humidity=82,
    uv_index=9,
    air_quality_index=120,
    pollen_count=PollenCount(overall=8),
)

CALM = WeatherSnapshot(temperature=21, humidity=50)


def _outcome(score: float, level: RiskLevel | LegacyRiskLevel) -> AssessmentOutcome:
    return AssessmentOutcome(
        request_id=1,
        is_advanced_mode=isinstance(level, RiskLevel),
        risk_score=score,
        risk_level=level,
        confidence=0.7,
        explanation="test",
    )


def _profile(threshold: RiskThreshold = RiskThreshold.MODERATE, notify: bool = True) -> UserProfile:
    return UserProfile(
        id="alert-user",
        preferences=UserPreferences(risk_threshold=threshold, notifications=notify),
    )


@pytest.fixture
def manager() -> RiskAlertManager:
    return RiskAlertManager(AlertConfig(history_size=2))


class TestBands:
    @pytest.mark.parametrize(
        "level,expected",
        [
            (RiskLevel.MINIMAL, LegacyRiskLevel.LOW),
            (RiskLevel.LOW, LegacyRiskLevel.LOW),
            (RiskLevel.MODERATE, LegacyRiskLevel.MEDIUM),
            (RiskLevel.HIGH, LegacyRiskLevel.HIGH),
            (RiskLevel.SEVERE, LegacyRiskLevel.HIGH),
            (LegacyRiskLevel.MEDIUM, LegacyRiskLevel.MEDIUM),
        ],
    )
    def test_alert_band(self, level: RiskLevel | LegacyRiskLevel, expected: LegacyRiskLevel) -> None:
        assert alert_band(level) == expected

    def test_main_weather_factors(self) -> None:
        assert main_weather_factors(HOT_HUMID) == [
            "High humidity",
            "High temperature",
            "High UV",
            "Poor air quality",
            "High pollen",
        ]
        assert main_weather_factors(CALM) == []


class TestEvaluate:
    def test_high_risk_generates_alert(self, manager: RiskAlertManager) -> None:
        alert = manager.evaluate(_outcome(72.3, RiskLevel.HIGH), HOT_HUMID, _profile())

        assert alert is not None
        assert alert.severity == "high"
        assert alert.title == "High eczema flare risk today"
        assert alert.description.startswith("Flare risk is 72/100 due to high humidity")
        assert alert.profile_id == "alert-user"
        assert list(manager.alert_history) == [alert]

    def test_no_factors_keeps_plain_description(self, manager: RiskAlertManager) -> None:
        alert = manager.evaluate(_outcome(45, LegacyRiskLevel.MEDIUM), CALM, _profile())

        assert alert is not None
        assert alert.description == "Flare risk is 45/100"

    def test_below_threshold_is_silent(self, manager: RiskAlertManager) -> None:
        profile = _profile(RiskThreshold.HIGH)

        assert manager.evaluate(_outcome(45, RiskLevel.MODERATE), HOT_HUMID, profile) is None

    def test_low_band_never_alerts(self, manager: RiskAlertManager) -> None:
        profile = _profile(RiskThreshold.LOW)

        assert manager.evaluate(_outcome(20, RiskLevel.LOW), HOT_HUMID, profile) is None

    def test_notifications_disabled(self, manager: RiskAlertManager) -> None:
        profile = _profile(notify=False)

        assert manager.evaluate(_outcome(90, RiskLevel.SEVERE), HOT_HUMID, profile) is None

    def test_history_is_bounded(self, manager: RiskAlertManager) -> None:
        for score in (61, 70, 85):
            manager.evaluate(_outcome(score, RiskLevel.HIGH), CALM, _profile())

        assert [a.risk_score for a in manager.alert_history] == [70, 85]


class TestDispatch:
    async def test_sync_and_async_handlers(self, manager: RiskAlertManager) -> None:
        alert = manager.evaluate(_outcome(72, RiskLevel.HIGH), HOT_HUMID, _profile())
        assert alert is not None

        sync_seen: list[AlertEvent] = []
        async_seen: list[AlertEvent] = []

        async def async_handler(event: AlertEvent) -> None:
            async_seen.append(event)

        await manager.dispatch([alert], handlers=[sync_seen.append, async_handler])

        assert sync_seen == [alert]
        assert async_seen == [alert]

    async def test_failing_handler_does_not_stop_others(self, manager: RiskAlertManager) -> None:
        alert = manager.evaluate(_outcome(72, RiskLevel.HIGH), HOT_HUMID, _profile())
        assert alert is not None
        delivered: list[AlertEvent] = []

        def broken(event: AlertEvent) -> None:
            raise ConnectionError("push service down")

        await manager.dispatch([alert], handlers=[broken, delivered.append])

        assert delivered == [alert]

    async def test_default_handler_logs(self, manager: RiskAlertManager) -> None:
        alert = manager.evaluate(_outcome(72, RiskLevel.HIGH), HOT_HUMID, _profile())
        assert alert is not None

        await manager.dispatch([alert])

    async def test_empty_alert_list_is_noop(self, manager: RiskAlertManager) -> None:
        calls: list[AlertEvent] = []

        await manager.dispatch([], handlers=[calls.append])

        assert calls == []
