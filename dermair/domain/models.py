"""
Domain models for skin-flare risk assessment.

These models represent the core business concepts and are framework-agnostic.
Inputs handed to the engines are frozen; assessments and recommendations are
derived fresh on every call and never persisted here.
"""

from datetime import UTC, date, datetime
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


class SkinType(str, Enum):
    """Skin-type categories captured during onboarding."""

    SENSITIVE = "sensitive"
    DRY = "dry"
    OILY = "oily"
    COMBINATION = "combination"
    NORMAL = "normal"


class SeverityGrade(str, Enum):
    """Qualitative severity used in history entries and protocol lookup."""

    MILD = "mild"
    MODERATE = "moderate"
    SEVERE = "severe"


class Season(str, Enum):
    WINTER = "winter"
    SPRING = "spring"
    SUMMER = "summer"
    FALL = "fall"


class RiskLevel(str, Enum):
    """Discrete risk taxonomy derived from the 0-100 overall score."""

    MINIMAL = "minimal"
    LOW = "low"
    MODERATE = "moderate"
    HIGH = "high"
    SEVERE = "severe"


class LegacyRiskLevel(str, Enum):
    """Three-band taxonomy used by the basic scoring path."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class FactorCategory(str, Enum):
    ENVIRONMENTAL = "environmental"
    PHYSIOLOGICAL = "physiological"
    BEHAVIORAL = "behavioral"
    CLINICAL = "clinical"


class EvidenceTier(str, Enum):
    HIGH = "high"
    MODERATE = "moderate"
    LOW = "low"


class EvidenceGrade(str, Enum):
    """Clinical evidence grades, strongest first."""

    GRADE_A = "grade_a"
    GRADE_B = "grade_b"
    GRADE_C = "grade_c"
    EXPERT_OPINION = "expert_opinion"


class Trajectory(str, Enum):
    IMPROVING = "improving"
    STABLE = "stable"
    WORSENING = "worsening"


class RecommendationCategory(str, Enum):
    IMMEDIATE = "immediate"
    PREVENTIVE = "preventive"
    LIFESTYLE = "lifestyle"
    MEDICAL = "medical"
    EMERGENCY = "emergency"


class Priority(str, Enum):
    CRITICAL = "critical"
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


class TreatmentPhase(str, Enum):
    ACUTE = "acute"
    MAINTENANCE = "maintenance"
    PREVENTION = "prevention"


class Acuity(str, Enum):
    ACUTE = "acute"
    CHRONIC = "chronic"
    ACUTE_ON_CHRONIC = "acute_on_chronic"


class Urgency(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class TreatmentApproach(str, Enum):
    CONSERVATIVE = "conservative"
    MODERATE = "moderate"
    AGGRESSIVE = "aggressive"


class RiskThreshold(str, Enum):
    """Lowest alert band the user wants to be notified about."""

    LOW = "low"
    MODERATE = "moderate"
    HIGH = "high"


# --- Inputs supplied by external collaborators ---


class PollenCount(BaseModel):
    """Pollen levels on the 0-10 scale reported by the weather provider."""

    model_config = ConfigDict(frozen=True, allow_inf_nan=False)

    tree: float = Field(default=0.0, ge=0.0, le=10.0)
    grass: float = Field(default=0.0, ge=0.0, le=10.0)
    weed: float = Field(default=0.0, ge=0.0, le=10.0)
    overall: float = Field(default=0.0, ge=0.0, le=10.0)

    @property
    def total(self) -> float:
        return self.tree + self.grass + self.weed


class WeatherSnapshot(BaseModel):
    """Environmental conditions at capture time. Immutable once produced."""

    model_config = ConfigDict(frozen=True, allow_inf_nan=False)

    temperature: float = Field(description="Air temperature in degrees Celsius")
    humidity: float = Field(ge=0.0, le=100.0, description="Relative humidity in percent")
    pressure: float = Field(default=1013.25, gt=0.0, description="Barometric pressure in hPa")
    uv_index: float = Field(default=0.0, ge=0.0)
    air_quality_index: float = Field(default=0.0, ge=0.0, le=500.0)
    pollen_count: PollenCount = Field(default_factory=PollenCount)
    wind_speed: float = Field(default=0.0, ge=0.0, description="Wind speed in km/h")
    condition: str = Field(default="clear")
    timestamp: datetime = Field(default_factory=lambda: datetime.now(UTC))


class SeverityEntry(BaseModel):
    model_config = ConfigDict(frozen=True)

    date: date
    severity: SeverityGrade


class Location(BaseModel):
    model_config = ConfigDict(frozen=True)

    latitude: float | None = Field(default=None, ge=-90.0, le=90.0)
    longitude: float | None = Field(default=None, ge=-180.0, le=180.0)
    city: str | None = None
    country: str | None = None


class UserPreferences(BaseModel):
    model_config = ConfigDict(frozen=True)

    risk_threshold: RiskThreshold = RiskThreshold.MODERATE
    notifications: bool = True
    treatment_approach: TreatmentApproach = TreatmentApproach.MODERATE
    natural_preference: bool = False
    time_constraints: list[str] = Field(default_factory=list)


class UserProfile(BaseModel):
    """User profile as owned by the profile store. Read-only for the core."""

    model_config = ConfigDict(frozen=True)

    id: str
    skin_type: SkinType | None = None
    age_range: str | None = Field(default=None, description="e.g. 18-25, 26-35, 55+")
    triggers: list[str] = Field(default_factory=list)
    severity_history: list[SeverityEntry] = Field(default_factory=list)
    preferences: UserPreferences = Field(default_factory=UserPreferences)
    location: Location | None = None


class MedicalHistory(BaseModel):
    model_config = ConfigDict(frozen=True)

    allergies: list[str] = Field(default_factory=list)
    medications: list[str] = Field(default_factory=list)
    comorbidities: list[str] = Field(default_factory=list)
    previous_treatments: list[str] = Field(default_factory=list)


class DailyLogEntry(BaseModel):
    """One daily symptom check-in."""

    model_config = ConfigDict(frozen=True)

    date: date
    itch_score: int = Field(ge=0, le=5)
    redness_score: int = Field(ge=0, le=3)
    medication_used: bool = False
    notes: str = ""
    weather: WeatherSnapshot | None = None
    created_at: datetime = Field(default_factory=lambda: datetime.now(UTC))

    @property
    def combined_score(self) -> int:
        return self.itch_score + self.redness_score


# --- Risk engine output ---


class RiskFactor(BaseModel):
    """A named, scored contributor to overall risk with its evidence metadata."""

    model_config = ConfigDict(frozen=True)

    name: str
    category: FactorCategory
    impact: float = Field(ge=0.0, le=100.0)
    confidence: float = Field(ge=0.0, le=1.0)
    evidence: EvidenceTier
    source: str
    description: str
    interventions: list[str] = Field(default_factory=list)


class Predictions(BaseModel):
    model_config = ConfigDict(frozen=True)

    next_24h: float = Field(ge=0.0, le=100.0)
    next_7_days: float = Field(ge=0.0, le=100.0)
    next_month: float = Field(ge=0.0, le=100.0)


class RecommendationBundle(BaseModel):
    model_config = ConfigDict(frozen=True)

    immediate: list[str] = Field(default_factory=list)
    preventive: list[str] = Field(default_factory=list)
    lifestyle: list[str] = Field(default_factory=list)
    medical: list[str] = Field(default_factory=list)


class TriggerClassification(BaseModel):
    model_config = ConfigDict(frozen=True)

    primary: list[str] = Field(default_factory=list)
    secondary: list[str] = Field(default_factory=list)
    emerging: list[str] = Field(default_factory=list)


class SeveritySummary(BaseModel):
    model_config = ConfigDict(frozen=True)

    current: int = Field(ge=0, le=10)
    predicted: float = Field(ge=0.0, le=10.0)
    trajectory: Trajectory


class RiskAssessment(BaseModel):
    """Complete, explainable risk assessment for one request."""

    model_config = ConfigDict(frozen=True)

    overall_risk: float = Field(ge=0.0, le=100.0)
    risk_level: RiskLevel
    confidence: float = Field(ge=0.0, le=1.0)
    factors: list[RiskFactor]
    predictions: Predictions
    recommendations: RecommendationBundle
    triggers: TriggerClassification
    severity: SeveritySummary


# --- Recommendation engine output ---


class SituationAnalysis(BaseModel):
    """Clinical reading of the assessment that drives protocol selection."""

    model_config = ConfigDict(frozen=True)

    primary_condition: str
    severity: SeverityGrade
    acuity: Acuity
    risk_factors: list[str] = Field(default_factory=list)
    urgency: Urgency


class MedicalRecommendation(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    category: RecommendationCategory
    priority: Priority
    confidence: float = Field(ge=0.0, le=1.0)
    evidence: EvidenceGrade
    recommendation: str
    rationale: str
    timeframe: str
    contraindications: list[str] = Field(default_factory=list)
    monitoring: list[str] = Field(default_factory=list)
    sources: list[str] = Field(default_factory=list)
    personalized_factors: list[str] = Field(default_factory=list)


class MetricThreshold(BaseModel):
    model_config = ConfigDict(frozen=True)

    metric: str
    warning: float
    critical: float


class MonitoringSpec(BaseModel):
    model_config = ConfigDict(frozen=True)

    metrics: list[str]
    frequency: str
    thresholds: list[MetricThreshold]


class AdjustmentRule(BaseModel):
    model_config = ConfigDict(frozen=True)

    condition: str
    action: str


class TreatmentPlan(BaseModel):
    model_config = ConfigDict(frozen=True)

    phase: TreatmentPhase
    duration: str
    goals: list[str]
    interventions: list[MedicalRecommendation]
    monitoring: MonitoringSpec
    adjustments: list[AdjustmentRule]


class RecommendationResult(BaseModel):
    model_config = ConfigDict(frozen=True)

    recommendations: list[MedicalRecommendation]
    treatment_plan: TreatmentPlan
    confidence: float = Field(ge=0.0, le=1.0)
    reasoning: str


class AssessmentOutcome(BaseModel):
    """What the orchestrator hands back to the presentation layer."""

    model_config = ConfigDict(frozen=True)

    request_id: int = Field(ge=0)
    is_advanced_mode: bool
    risk_score: float = Field(ge=0.0, le=100.0)
    risk_level: RiskLevel | LegacyRiskLevel
    confidence: float = Field(ge=0.0, le=1.0)
    recommendations: list[str] = Field(default_factory=list)
    risk_assessment: RiskAssessment | None = None
    recommendation_result: RecommendationResult | None = None
    explanation: str
    generated_at: datetime = Field(default_factory=lambda: datetime.now(UTC))
