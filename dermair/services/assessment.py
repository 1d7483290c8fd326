"""
Assessment orchestration: risk engine, then recommendation engine, per request.

Key architectural decisions:
- Generation counter: every async request takes a monotonic id; a result is
  discarded when a newer request started before it resolved
- Bounded LRU cache: identical requests are answered without recomputation
- Graceful degradation: if advanced mode is off or anything fails, fall back to
  basic additive scoring with a fixed confidence; exceptions never escape
"""

import asyncio
from collections import OrderedDict
from datetime import UTC, datetime

import structlog
from pydantic import BaseModel, ConfigDict, Field

from dermair.config import AssessmentConfig, get_config
from dermair.domain.models import (
    AssessmentOutcome,
    DailyLogEntry,
    LegacyRiskLevel,
    MedicalHistory,
    UserPreferences,
    UserProfile,
    WeatherSnapshot,
)
from dermair.services.legacy_scoring import (
    calculate_risk_score,
    legacy_recommendations,
    legacy_risk_level,
)
from dermair.services.recommendation_engine import (
    RecommendationContext,
    RecommendationEngine,
    RecommendationEngineConfig,
)
from dermair.services.risk_engine import (
    RiskAssessmentContext,
    RiskEngine,
    RiskEngineConfig,
    season_for,
)

logger = structlog.get_logger(__name__)

LEGACY_CONFIDENCE = 0.7
ANONYMOUS_PROFILE = UserProfile(id="anonymous")

LEGACY_EXPLANATION = (
    "Advanced analysis is unavailable right now. This is a basic risk estimate "
    "from current weather, your known triggers and your last few check-ins."
)
BASIC_MODE_EXPLANATION = (
    "Basic risk estimate from current weather, your known triggers and your last "
    "few check-ins. Enable advanced mode for a detailed, evidence-based analysis."
)


class AssessmentRequest(BaseModel):
    """One assessment cycle's inputs, as gathered by the caller."""

    model_config = ConfigDict(frozen=True)

    at: datetime
    profile: UserProfile | None = None
    weather: WeatherSnapshot | None = None
    recent_logs: list[DailyLogEntry] = Field(default_factory=list)
    medical_history: MedicalHistory | None = None
    preferences: UserPreferences | None = None

    def cache_key(self) -> str:
        """Keyed on hour and season rather than the full timestamp."""
        location = self.profile.location if self.profile else None
        season = season_for(self.at, location)
        inputs = self.model_dump_json(exclude={"at": True, "weather": {"timestamp"}})
        return f"{self.at.hour}|{season.value}|{inputs}"


class AssessmentService:
    """
    Runs the assessment pipeline for callers such as a UI or API layer.

    ``evaluate`` is synchronous; ``assess`` wraps it for async callers and
    drops results superseded by a newer request.
    """

    def __init__(
        self,
        config: AssessmentConfig | None = None,
        risk_engine: RiskEngine | None = None,
        recommendation_engine: RecommendationEngine | None = None,
    ) -> None:
        self.config = config or get_config().assessment
        self.logger = logger.bind(component="assessment_service")

        self.risk_engine = risk_engine or RiskEngine(
            RiskEngineConfig(log_window=self.config.risk_log_window)
        )
        self.recommendation_engine = recommendation_engine or RecommendationEngine(
            RecommendationEngineConfig(log_window=self.config.recommendation_log_window)
        )

        self._generation = 0
        self._cache: OrderedDict[str, AssessmentOutcome] = OrderedDict()

    @property
    def current_generation(self) -> int:
        return self._generation

    async def assess(self, request: AssessmentRequest) -> AssessmentOutcome | None:
        """
        Assess asynchronously, yielding once first.

        Returns None when a newer request or a cancel() happened meanwhile.
        """
        self._generation += 1
        request_id = self._generation

        await asyncio.sleep(0)

        if request_id != self._generation:
            self.logger.info(
                "stale_assessment_discarded",
                request_id=request_id,
                current_generation=self._generation,
            )
            return None

        return self.evaluate(request, request_id=request_id)

    def cancel(self) -> None:
        """Invalidate every in-flight request."""
        self._generation += 1
        self.logger.debug("assessments_cancelled", generation=self._generation)

    def evaluate(self, request: AssessmentRequest, request_id: int = 0) -> AssessmentOutcome:
        key = request.cache_key()
        cached = self._cache_get(key)
        if cached is not None:
            self.logger.debug("assessment_cache_hit", request_id=request_id)
            return cached.model_copy(
                update={"request_id": request_id, "generated_at": datetime.now(UTC)},
                deep=True,
            )

        if not self.config.advanced_mode_enabled:
            outcome = self._legacy_outcome(request, request_id, BASIC_MODE_EXPLANATION)
        else:
            try:
                outcome = self._advanced_outcome(request, request_id)
            except Exception as e:
                self.logger.error(
                    "advanced_assessment_failed", request_id=request_id, error=str(e)
                )
                # Not cached: the failure may not repeat.
                return self._legacy_outcome(request, request_id, LEGACY_EXPLANATION)

        self._cache_put(key, outcome)
        return outcome

    def clear_cache(self) -> None:
        self._cache.clear()

    def _advanced_outcome(self, request: AssessmentRequest, request_id: int) -> AssessmentOutcome:
        profile = request.profile or ANONYMOUS_PROFILE

        risk_context = RiskAssessmentContext.at(
            request.at,
            profile=profile,
            weather=request.weather,
            recent_logs=request.recent_logs,
        )
        risk_assessment = self.risk_engine.assess(risk_context)

        result = self.recommendation_engine.generate(
            RecommendationContext(
                risk_assessment=risk_assessment,
                profile=profile,
                weather=request.weather,
                recent_logs=request.recent_logs,
                medical_history=request.medical_history,
                preferences=request.preferences,
            )
        )

        self.logger.info(
            "assessment_completed",
            request_id=request_id,
            profile_id=profile.id,
            risk_score=risk_assessment.overall_risk,
            risk_level=risk_assessment.risk_level.value,
            confidence=risk_assessment.confidence,
        )

        return AssessmentOutcome(
            request_id=request_id,
            is_advanced_mode=True,
            risk_score=risk_assessment.overall_risk,
            risk_level=risk_assessment.risk_level,
            confidence=risk_assessment.confidence,
            recommendations=[rec.recommendation for rec in result.recommendations],
            risk_assessment=risk_assessment,
            recommendation_result=result,
            explanation=result.reasoning,
        )

    def _legacy_outcome(
        self, request: AssessmentRequest, request_id: int, explanation: str
    ) -> AssessmentOutcome:
        if request.weather is None or request.profile is None:
            score = 0
            level = LegacyRiskLevel.LOW
            recommendations: list[str] = []
        else:
            triggers = request.profile.triggers
            score = calculate_risk_score(request.weather, triggers, request.recent_logs)
            level = legacy_risk_level(score)
            recommendations = legacy_recommendations(level, request.weather, triggers)

        self.logger.info(
            "legacy_assessment_completed", request_id=request_id, risk_score=score
        )

        return AssessmentOutcome(
            request_id=request_id,
            is_advanced_mode=False,
            risk_score=score,
            risk_level=level,
            confidence=LEGACY_CONFIDENCE,
            recommendations=recommendations,
            explanation=explanation,
        )

    def _cache_get(self, key: str) -> AssessmentOutcome | None:
        outcome = self._cache.get(key)
        if outcome is not None:
            self._cache.move_to_end(key)
        return outcome

    def _cache_put(self, key: str, outcome: AssessmentOutcome) -> None:
        if self.config.cache_size == 0:
            return
        self._cache[key] = outcome.model_copy(deep=True)
        self._cache.move_to_end(key)
        while len(self._cache) > self.config.cache_size:
            self._cache.popitem(last=False)
