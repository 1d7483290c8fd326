"""Tests for the assessment orchestrator: degradation, caching and stale-request discarding."""

import asyncio
from datetime import UTC, date, datetime, timedelta

import pytest

from dermair.config import AssessmentConfig
from dermair.domain.models import (
    DailyLogEntry,
    LegacyRiskLevel,
    PollenCount,
    RiskLevel,
    SkinType,
    UserProfile,
    WeatherSnapshot,
)
from dermair.services.assessment import (
    BASIC_MODE_EXPLANATION,
    LEGACY_CONFIDENCE,
    LEGACY_EXPLANATION,
    AssessmentRequest,
    AssessmentService,
)
from dermair.services.risk_engine import RiskEngine

NOON = datetime(2025, 7, 15, 12, 0, tzinfo=UTC)

DRY_DAY = WeatherSnapshot(
    temperature=21,
    humidity=20,
    uv_index=3,
    air_quality_index=30,
    pollen_count=PollenCount(tree=1, overall=1),
    wind_speed=5,
    timestamp=NOON,
)


class _FailingRiskEngine(RiskEngine):
    def __init__(self) -> None:
        super().__init__()
        self.calls = 0

    def assess(self, context):  # type: ignore[no-untyped-def]
        self.calls += 1
        raise RuntimeError("weights table unavailable")


class _CountingRiskEngine(RiskEngine):
    def __init__(self) -> None:
        super().__init__()
        self.calls = 0

    def assess(self, context):  # type: ignore[no-untyped-def]
        self.calls += 1
        return super().assess(context)


@pytest.fixture
def profile() -> UserProfile:
    return UserProfile(id="user-1", skin_type=SkinType.SENSITIVE)


@pytest.fixture
def request_(profile: UserProfile) -> AssessmentRequest:
    return AssessmentRequest(at=NOON, profile=profile, weather=DRY_DAY)


@pytest.fixture
def service() -> AssessmentService:
    return AssessmentService(config=AssessmentConfig())


class TestEvaluate:
    def test_advanced_outcome(
        self, service: AssessmentService, request_: AssessmentRequest
    ) -> None:
        outcome = service.evaluate(request_, request_id=3)

        assert outcome.is_advanced_mode is True
        assert outcome.request_id == 3
        assert outcome.risk_level == RiskLevel.HIGH
        assert outcome.risk_assessment is not None
        assert outcome.recommendation_result is not None
        assert outcome.confidence == outcome.risk_assessment.confidence
        assert outcome.recommendations == [
            rec.recommendation for rec in outcome.recommendation_result.recommendations
        ]
        assert outcome.explanation == outcome.recommendation_result.reasoning

    def test_engine_failure_falls_back_to_basic_scoring(
        self, request_: AssessmentRequest
    ) -> None:
        service = AssessmentService(config=AssessmentConfig(), risk_engine=_FailingRiskEngine())

        outcome = service.evaluate(request_)

        assert outcome.is_advanced_mode is False
        assert outcome.confidence == LEGACY_CONFIDENCE == 0.7
        assert outcome.explanation == LEGACY_EXPLANATION
        assert outcome.risk_assessment is None
        # humidity 20 is "low humidity" (20 points) in the basic table
        assert outcome.risk_score == 20
        assert outcome.risk_level == LegacyRiskLevel.LOW
        assert outcome.recommendations

    def test_failures_are_not_cached(self, request_: AssessmentRequest) -> None:
        engine = _FailingRiskEngine()
        service = AssessmentService(config=AssessmentConfig(), risk_engine=engine)

        service.evaluate(request_)
        service.evaluate(request_)

        assert engine.calls == 2

    def test_disabled_advanced_mode(self, request_: AssessmentRequest) -> None:
        service = AssessmentService(config=AssessmentConfig(advanced_mode_enabled=False))

        outcome = service.evaluate(request_)

        assert outcome.is_advanced_mode is False
        assert outcome.confidence == 0.7
        assert outcome.explanation == BASIC_MODE_EXPLANATION

    def test_basic_mode_without_weather_scores_zero(self) -> None:
        service = AssessmentService(config=AssessmentConfig(advanced_mode_enabled=False))

        outcome = service.evaluate(AssessmentRequest(at=NOON, profile=UserProfile(id="u")))

        assert outcome.risk_score == 0
        assert outcome.risk_level == LegacyRiskLevel.LOW
        assert outcome.recommendations == []

    def test_missing_profile_still_assessed(self, service: AssessmentService) -> None:
        outcome = service.evaluate(AssessmentRequest(at=NOON, weather=DRY_DAY))

        assert outcome.is_advanced_mode is True
        assert 0 <= outcome.risk_score <= 100


class TestCache:
    def test_identical_requests_hit_cache(self, request_: AssessmentRequest) -> None:
        engine = _CountingRiskEngine()
        service = AssessmentService(config=AssessmentConfig(), risk_engine=engine)

        first = service.evaluate(request_, request_id=1)
        second = service.evaluate(request_, request_id=2)

        assert engine.calls == 1
        assert second.request_id == 2
        assert second.risk_assessment == first.risk_assessment
        assert second.generated_at >= first.generated_at

    def test_outcomes_are_frozen(
        self, service: AssessmentService, request_: AssessmentRequest
    ) -> None:
        outcome = service.evaluate(request_)

        with pytest.raises(ValueError, match="frozen"):
            outcome.explanation = "edited"  # type: ignore

    def test_hits_do_not_share_state(
        self, service: AssessmentService, request_: AssessmentRequest
    ) -> None:
        first = service.evaluate(request_, request_id=1)
        first.recommendations.append("edited")
        second = service.evaluate(request_, request_id=2)

        assert "edited" not in second.recommendations
        assert second.recommendations == first.recommendations[:-1]

    def test_same_hour_shares_entry(self, profile: UserProfile) -> None:
        engine = _CountingRiskEngine()
        service = AssessmentService(config=AssessmentConfig(), risk_engine=engine)

        service.evaluate(AssessmentRequest(at=NOON, profile=profile, weather=DRY_DAY))
        later = NOON.replace(minute=47, second=12)
        reading = DRY_DAY.model_copy(update={"timestamp": later})
        service.evaluate(AssessmentRequest(at=later, profile=profile, weather=reading))

        assert engine.calls == 1

    def test_other_hour_misses(self, profile: UserProfile) -> None:
        engine = _CountingRiskEngine()
        service = AssessmentService(config=AssessmentConfig(), risk_engine=engine)

        service.evaluate(AssessmentRequest(at=NOON, profile=profile, weather=DRY_DAY))
        service.evaluate(
            AssessmentRequest(at=NOON + timedelta(hours=1), profile=profile, weather=DRY_DAY)
        )

        assert engine.calls == 2

    def test_hit_refreshes_generated_at(
        self, service: AssessmentService, request_: AssessmentRequest
    ) -> None:
        first = service.evaluate(request_)
        cached = next(iter(service._cache.values()))
        stale = datetime(2000, 1, 1, tzinfo=UTC)
        service._cache[request_.cache_key()] = cached.model_copy(update={"generated_at": stale})

        second = service.evaluate(request_)

        assert second.generated_at > stale
        assert second.generated_at >= first.generated_at

    def test_cache_is_bounded(self, profile: UserProfile) -> None:
        engine = _CountingRiskEngine()
        service = AssessmentService(config=AssessmentConfig(cache_size=2), risk_engine=engine)
        requests = [
            AssessmentRequest(at=NOON.replace(hour=hour), profile=profile, weather=DRY_DAY)
            for hour in (8, 12, 16)
        ]

        outcomes = [service.evaluate(r) for r in requests]
        again = service.evaluate(requests[0])

        # The oldest entry was evicted, so it is recomputed.
        assert engine.calls == 4
        assert again.risk_assessment == outcomes[0].risk_assessment
        assert len(service._cache) == 2

    def test_zero_size_disables_cache(self, request_: AssessmentRequest) -> None:
        service = AssessmentService(config=AssessmentConfig(cache_size=0))

        service.evaluate(request_)

        assert len(service._cache) == 0

    def test_clear_cache(self, request_: AssessmentRequest) -> None:
        engine = _CountingRiskEngine()
        service = AssessmentService(config=AssessmentConfig(), risk_engine=engine)

        first = service.evaluate(request_)
        service.clear_cache()
        second = service.evaluate(request_)

        assert engine.calls == 2
        assert second.risk_assessment == first.risk_assessment


class TestAsyncAssess:
    async def test_single_request_resolves(
        self, service: AssessmentService, request_: AssessmentRequest
    ) -> None:
        outcome = await service.assess(request_)

        assert outcome is not None
        assert outcome.request_id == service.current_generation == 1

    async def test_newer_request_discards_older(
        self, service: AssessmentService, profile: UserProfile
    ) -> None:
        older = AssessmentRequest(at=NOON, profile=profile, weather=DRY_DAY)
        newer = AssessmentRequest(at=NOON.replace(hour=18), profile=profile, weather=DRY_DAY)

        first, second = await asyncio.gather(service.assess(older), service.assess(newer))

        assert first is None
        assert second is not None
        assert second.request_id == 2

    async def test_cancel_invalidates_in_flight(
        self, service: AssessmentService, request_: AssessmentRequest
    ) -> None:
        task = asyncio.create_task(service.assess(request_))
        await asyncio.sleep(0)
        service.cancel()

        assert await task is None

    async def test_logs_are_passed_through(
        self, service: AssessmentService, profile: UserProfile
    ) -> None:
        logs = [
            DailyLogEntry(date=date(2025, 7, 8) + timedelta(days=i), itch_score=i % 6, redness_score=1)
            for i in range(10)
        ]

        outcome = await service.assess(
            AssessmentRequest(at=NOON, profile=profile, weather=DRY_DAY, recent_logs=logs)
        )

        assert outcome is not None
        assert "Based on analysis of 7 recent symptom logs" in outcome.explanation
