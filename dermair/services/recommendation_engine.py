"""
Evidence-based recommendation engine.

Maps a risk assessment through the dermatology knowledge base:
1. Situation analysis (condition, severity grade, acuity, urgency)
2. Protocol-driven base recommendations with templated wording
3. Personalization for age, skin type and treatment preferences
4. Phased treatment plan with fixed monitoring thresholds
5. Aggregate confidence and a deterministic reasoning text

A knowledge-base miss is not an error: the engine answers with a short
generic set instead.
"""

from collections.abc import Sequence
from types import MappingProxyType

import structlog
from pydantic import BaseModel, ConfigDict, Field

from adapters.dermatology.knowledge_base import (
    Condition,
    TreatmentId,
    TreatmentProtocol,
    get_contraindications,
    get_evidence,
    get_interactions,
    get_protocol,
    get_template,
)
from dermair.domain.models import (
    Acuity,
    AdjustmentRule,
    DailyLogEntry,
    EvidenceGrade,
    MedicalHistory,
    MedicalRecommendation,
    MetricThreshold,
    MonitoringSpec,
    Priority,
    RecommendationCategory,
    RecommendationResult,
    RiskAssessment,
    SeverityGrade,
    SituationAnalysis,
    SkinType,
    TreatmentPhase,
    TreatmentPlan,
    Urgency,
    UserPreferences,
    UserProfile,
    WeatherSnapshot,
)
from dermair.services.risk_engine import dedupe

logger = structlog.get_logger(__name__)

DEFAULT_EFFECT_SIZE = 0.8
MONITORING_CONFIDENCE = 0.92
ACUITY_WINDOW = 3

GRADE_WEIGHTS = MappingProxyType(
    {
        EvidenceGrade.GRADE_A: 1.0,
        EvidenceGrade.GRADE_B: 0.8,
        EvidenceGrade.GRADE_C: 0.6,
        EvidenceGrade.EXPERT_OPINION: 0.4,
    }
)

PHASE_DURATIONS = MappingProxyType(
    {
        TreatmentPhase.ACUTE: "1-2 weeks with daily assessment",
        TreatmentPhase.MAINTENANCE: "4-8 weeks with weekly monitoring",
        TreatmentPhase.PREVENTION: "Ongoing with monthly evaluation",
    }
)

PHASE_GOALS = MappingProxyType(
    {
        TreatmentPhase.ACUTE: (
            "Rapid symptom relief within 48-72 hours",
            "Prevent secondary complications",
            "Restore basic function and comfort",
            "Identify and eliminate triggers",
        ),
        TreatmentPhase.MAINTENANCE: (
            "Achieve sustained remission",
            "Minimize flare frequency and severity",
            "Optimize quality of life",
            "Establish long-term management routine",
        ),
        TreatmentPhase.PREVENTION: (
            "Prevent flare occurrence",
            "Maintain skin barrier integrity",
            "Educate on trigger management",
            "Monitor for early warning signs",
        ),
    }
)

PLAN_METRICS = ("itch_severity", "skin_integrity", "quality_of_life", "medication_adherence")

PLAN_THRESHOLDS = (
    MetricThreshold(metric="itch_severity", warning=4, critical=7),
    MetricThreshold(metric="skin_integrity", warning=3, critical=5),
    MetricThreshold(metric="quality_of_life", warning=3, critical=1),
)

PLAN_ADJUSTMENTS = (
    AdjustmentRule(
        condition="No improvement in 72 hours", action="Escalate to next treatment line"
    ),
    AdjustmentRule(condition="Worsening symptoms", action="Immediate medical consultation"),
    AdjustmentRule(condition="Side effects develop", action="Discontinue and reassess"),
)

NATURAL_SUBSTITUTE = "natural anti-inflammatory alternatives (consult physician)"
YOUNG_ADULT_NOTE = " Consider lifestyle factors common in young adults."
SENSITIVE_SKIN_NOTE = " Use hypoallergenic formulations."


class RecommendationEngineConfig(BaseModel):
    """Tunable windows for the recommendation engine."""

    log_window: int = Field(default=7, gt=0, description="Most recent logs considered")


class RecommendationContext(BaseModel):
    """Inputs to one recommendation run."""

    model_config = ConfigDict(frozen=True)

    risk_assessment: RiskAssessment
    profile: UserProfile
    weather: WeatherSnapshot | None = None
    recent_logs: list[DailyLogEntry] = Field(default_factory=list)
    medical_history: MedicalHistory | None = None
    preferences: UserPreferences | None = None

    @property
    def effective_preferences(self) -> UserPreferences:
        return self.preferences or self.profile.preferences


def identify_condition(triggers: Sequence[str]) -> Condition:
    """Keyword heuristic on the user's recorded triggers."""
    normalized = {trigger.strip().lower() for trigger in triggers}
    if "pollen" in normalized or "dust" in normalized:
        return Condition.ATOPIC_DERMATITIS
    if "stress" in normalized:
        return Condition.SEBORRHEIC_DERMATITIS
    return Condition.ATOPIC_DERMATITIS


def severity_grade(severity: int) -> SeverityGrade:
    if severity <= 3:
        return SeverityGrade.MILD
    if severity <= 6:
        return SeverityGrade.MODERATE
    return SeverityGrade.SEVERE


def assess_acuity(logs: Sequence[DailyLogEntry]) -> Acuity:
    """Spike in the last three logs, a sustained pattern, or both."""
    if not logs:
        return Acuity.CHRONIC

    has_spike = any(
        log.itch_score > 4 or log.redness_score > 2 for log in logs[-ACUITY_WINDOW:]
    )
    has_pattern = len(logs) >= 7 and all(
        log.itch_score > 0 or log.redness_score > 0 for log in logs
    )

    if has_spike and has_pattern:
        return Acuity.ACUTE_ON_CHRONIC
    if has_spike:
        return Acuity.ACUTE
    return Acuity.CHRONIC


def assess_urgency(overall_risk: float, grade: SeverityGrade, acuity: Acuity) -> Urgency:
    if overall_risk > 80 or grade == SeverityGrade.SEVERE:
        return Urgency.CRITICAL
    if overall_risk > 60 or acuity == Acuity.ACUTE:
        return Urgency.HIGH
    if overall_risk > 30:
        return Urgency.MEDIUM
    return Urgency.LOW


def determine_phase(assessment: RiskAssessment) -> TreatmentPhase:
    if assessment.overall_risk > 60 or assessment.severity.current > 6:
        return TreatmentPhase.ACUTE
    if assessment.severity.current > 2:
        return TreatmentPhase.MAINTENANCE
    return TreatmentPhase.PREVENTION


class RecommendationEngine:
    """Turns a risk assessment into personalized, evidence-tagged guidance."""

    def __init__(self, config: RecommendationEngineConfig | None = None) -> None:
        self.config = config or RecommendationEngineConfig()
        self.logger = logger.bind(component="recommendation_engine")

    def generate(self, context: RecommendationContext) -> RecommendationResult:
        logs = sorted(context.recent_logs, key=lambda log: (log.date, log.created_at))
        logs = logs[-self.config.log_window :]

        situation = self.analyze_situation(context, logs)
        base = self._base_recommendations(context, situation, logs)
        recommendations = self._personalize(base, context, logs)

        result = RecommendationResult(
            recommendations=recommendations,
            treatment_plan=self._treatment_plan(recommendations, context),
            confidence=self._overall_confidence(recommendations, context, logs),
            reasoning=self._reasoning(context, recommendations, logs),
        )

        self.logger.debug(
            "recommendations_generated",
            profile_id=context.profile.id,
            condition=situation.primary_condition,
            severity=situation.severity.value,
            urgency=situation.urgency.value,
            recommendation_count=len(recommendations),
            confidence=result.confidence,
        )
        return result

    def analyze_situation(
        self, context: RecommendationContext, logs: Sequence[DailyLogEntry]
    ) -> SituationAnalysis:
        assessment = context.risk_assessment
        grade = severity_grade(assessment.severity.current)
        acuity = assess_acuity(logs)

        return SituationAnalysis(
            primary_condition=identify_condition(context.profile.triggers).value,
            severity=grade,
            acuity=acuity,
            risk_factors=[factor.name for factor in assessment.factors],
            urgency=assess_urgency(assessment.overall_risk, grade, acuity),
        )

    def _base_recommendations(
        self,
        context: RecommendationContext,
        situation: SituationAnalysis,
        logs: Sequence[DailyLogEntry],
    ) -> list[MedicalRecommendation]:
        protocol = get_protocol(Condition(situation.primary_condition), situation.severity)
        if protocol is None:
            self.logger.info(
                "protocol_not_found",
                condition=situation.primary_condition,
                severity=situation.severity.value,
            )
            return self._generic_recommendations(context)

        recommendations = [
            self._from_treatment(
                treatment,
                RecommendationCategory.IMMEDIATE,
                Priority.CRITICAL if index == 0 else Priority.HIGH,
                protocol,
                context,
            )
            for index, treatment in enumerate(protocol.first_line)
        ]
        recommendations.extend(
            self._from_treatment(
                treatment, RecommendationCategory.MEDICAL, Priority.MEDIUM, protocol, context
            )
            for treatment in protocol.second_line
        )

        if protocol.monitoring:
            recommendations.append(self._monitoring_recommendation(protocol))

        return recommendations

    def _from_treatment(
        self,
        treatment: TreatmentId,
        category: RecommendationCategory,
        priority: Priority,
        protocol: TreatmentProtocol,
        context: RecommendationContext,
    ) -> MedicalRecommendation:
        template = get_template(treatment)
        if template is None:
            readable = treatment.value.replace("_", " ")
            recommendation = f"Follow evidence-based protocol for {readable}"
            rationale = "Based on clinical guidelines and research evidence"
            timeframe = "As directed"
            contraindications: list[str] = []
            monitoring = ["clinical response"]
            sources = ["Clinical Guidelines"]
        else:
            recommendation = template.recommendation
            rationale = template.rationale
            timeframe = template.timeframe
            contraindications = list(template.contraindications)
            monitoring = list(template.monitoring)
            sources = list(template.sources)

        evidence = get_evidence(treatment)
        confidence = evidence.effect_size if evidence else DEFAULT_EFFECT_SIZE

        return MedicalRecommendation(
            id=f"{category.value}_{treatment.value}",
            category=category,
            priority=priority,
            confidence=confidence,
            evidence=protocol.evidence,
            recommendation=recommendation,
            rationale=rationale,
            timeframe=timeframe,
            contraindications=dedupe(contraindications + get_contraindications(treatment)),
            monitoring=dedupe(monitoring + get_interactions(treatment)),
            sources=dedupe(sources + list(protocol.sources)),
            personalized_factors=self._profile_tags(context),
        )

    def _monitoring_recommendation(self, protocol: TreatmentProtocol) -> MedicalRecommendation:
        metrics = list(protocol.monitoring)
        return MedicalRecommendation(
            id="preventive_monitoring",
            category=RecommendationCategory.PREVENTIVE,
            priority=Priority.MEDIUM,
            confidence=MONITORING_CONFIDENCE,
            evidence=EvidenceGrade.GRADE_A,
            recommendation=f"Monitor {', '.join(metrics)} daily using standardized scales",
            rationale="Early detection of changes enables prompt intervention",
            timeframe="Daily during active phase, weekly during maintenance",
            monitoring=metrics,
            sources=["Patient Monitoring Guidelines 2023"],
            personalized_factors=["user compliance history", "symptom patterns"],
        )

    def _generic_recommendations(
        self, context: RecommendationContext
    ) -> list[MedicalRecommendation]:
        tags = self._profile_tags(context)
        return [
            MedicalRecommendation(
                id="generic_moisturize",
                category=RecommendationCategory.IMMEDIATE,
                priority=Priority.HIGH,
                confidence=0.85,
                evidence=EvidenceGrade.GRADE_A,
                recommendation="Apply fragrance-free moisturizer twice daily",
                rationale="Fundamental skin barrier support",
                timeframe="Ongoing",
                monitoring=["skin hydration"],
                sources=["General Dermatology Guidelines"],
                personalized_factors=tags,
            ),
            MedicalRecommendation(
                id="generic_symptom_tracking",
                category=RecommendationCategory.PREVENTIVE,
                priority=Priority.MEDIUM,
                confidence=0.8,
                evidence=EvidenceGrade.GRADE_B,
                recommendation="Log itch and redness daily to track flare patterns",
                rationale="Consistent tracking supports earlier intervention",
                timeframe="Daily",
                monitoring=["itch_severity", "skin_integrity"],
                sources=["General Dermatology Guidelines"],
                personalized_factors=list(tags),
            ),
        ]

    def _profile_tags(self, context: RecommendationContext) -> list[str]:
        tags = []
        if context.profile.skin_type:
            tags.append(f"skin_type_{context.profile.skin_type.value}")
        if context.profile.age_range:
            tags.append(f"age_{context.profile.age_range}")
        if context.effective_preferences.natural_preference:
            tags.append("natural_preference")
        return tags

    def personalization_accuracy(
        self, context: RecommendationContext, logs: Sequence[DailyLogEntry]
    ) -> float:
        accuracy = 0.8
        if context.profile.skin_type:
            accuracy += 0.05
        if context.profile.triggers:
            accuracy += 0.08
        if len(logs) >= 7:
            accuracy += 0.07
        if context.medical_history is not None:
            accuracy += 0.1
        return min(accuracy, 1.0)

    def _personalize(
        self,
        recommendations: Sequence[MedicalRecommendation],
        context: RecommendationContext,
        logs: Sequence[DailyLogEntry],
    ) -> list[MedicalRecommendation]:
        profile = context.profile
        accuracy = self.personalization_accuracy(context, logs)
        personalized = []

        for rec in recommendations:
            text = rec.recommendation
            tags = list(rec.personalized_factors)

            if profile.age_range:
                tags.append(f"age_{profile.age_range}")
                if profile.age_range == "18-25":
                    text += YOUNG_ADULT_NOTE

            if profile.skin_type == SkinType.SENSITIVE:
                text += SENSITIVE_SKIN_NOTE
                tags.append("sensitive_skin_adaptation")

            if context.effective_preferences.natural_preference:
                text = text.replace("corticosteroid", NATURAL_SUBSTITUTE)
                tags.append("natural_preference")

            personalized.append(
                rec.model_copy(
                    update={
                        "recommendation": text,
                        "personalized_factors": dedupe(tags),
                        "confidence": rec.confidence * accuracy,
                    }
                )
            )

        return personalized

    def _treatment_plan(
        self, recommendations: Sequence[MedicalRecommendation], context: RecommendationContext
    ) -> TreatmentPlan:
        phase = determine_phase(context.risk_assessment)
        return TreatmentPlan(
            phase=phase,
            duration=PHASE_DURATIONS[phase],
            goals=list(PHASE_GOALS[phase]),
            interventions=list(recommendations),
            monitoring=MonitoringSpec(
                metrics=list(PLAN_METRICS),
                frequency="daily" if phase == TreatmentPhase.ACUTE else "weekly",
                thresholds=list(PLAN_THRESHOLDS),
            ),
            adjustments=list(PLAN_ADJUSTMENTS),
        )

    def _data_quality(
        self, context: RecommendationContext, logs: Sequence[DailyLogEntry]
    ) -> float:
        profile = context.profile
        quality = 0.25 if context.weather is not None else 0.0

        present = [profile.skin_type, profile.triggers, profile.age_range]
        quality += sum(1 for value in present if value) / 3 * 0.25
        quality += min(len(logs) / 7, 1.0) * 0.25
        quality += context.risk_assessment.confidence * 0.25
        return quality

    def _overall_confidence(
        self,
        recommendations: Sequence[MedicalRecommendation],
        context: RecommendationContext,
        logs: Sequence[DailyLogEntry],
    ) -> float:
        avg_confidence = sum(rec.confidence for rec in recommendations) / len(recommendations)
        evidence_strength = sum(GRADE_WEIGHTS[rec.evidence] for rec in recommendations) / len(
            recommendations
        )
        data_quality = self._data_quality(context, logs)

        return round(avg_confidence * 0.4 + data_quality * 0.3 + evidence_strength * 0.3, 2)

    def _reasoning(
        self,
        context: RecommendationContext,
        recommendations: Sequence[MedicalRecommendation],
        logs: Sequence[DailyLogEntry],
    ) -> str:
        assessment = context.risk_assessment
        profile = context.profile

        grades = dedupe([rec.evidence.value for rec in recommendations])
        avg_confidence = sum(rec.confidence for rec in recommendations) / len(recommendations)

        lines = [
            "Based on comprehensive analysis of your condition:",
            "",
            "**Current Risk Assessment:**",
            f"- Overall risk: {assessment.overall_risk:.1f}% ({assessment.risk_level.value})",
            f"- Primary triggers: {', '.join(assessment.triggers.primary) or 'none identified'}",
            f"- Trajectory: {assessment.severity.trajectory.value}",
            "",
            "**Personalization Factors:**",
            f"- Skin type: {profile.skin_type.value if profile.skin_type else 'not specified'}",
            f"- Known triggers: {', '.join(profile.triggers) or 'none recorded'}",
            f"- Age group: {profile.age_range or 'not specified'}",
            "",
            "**Evidence-Based Approach:**",
            f"- Recommendations based on {', '.join(grades)} evidence",
            "- Treatment approach follows established clinical guidelines",
            "- Personalized based on your specific risk factors and preferences",
            "",
            "**Confidence:**",
            f"- Recommendation confidence: {avg_confidence * 100:.1f}%",
            f"- Based on analysis of {len(logs)} recent symptom logs",
        ]
        return "\n".join(lines)
