"""
Multi-factor flare risk engine.

Key design points:
- Independent sub-scores: every environmental reading gets its own piecewise curve
  around a clinically optimal band, then a fixed evidence weight
- Explainable output: factors are re-derived with human-readable tiers and always
  emitted, even when optimal, so the explanation is complete
- Pure computation: the engine holds no state beyond its immutable tables, so one
  instance can be shared across requests without locking
- Deterministic: only the explicit hour/season inputs carry time information
"""

import math
from collections.abc import Sequence
from dataclasses import dataclass
from datetime import datetime
from types import MappingProxyType

import structlog
from pydantic import BaseModel, ConfigDict, Field

from dermair.domain.models import (
    DailyLogEntry,
    EvidenceTier,
    FactorCategory,
    Location,
    PollenCount,
    Predictions,
    RecommendationBundle,
    RiskAssessment,
    RiskFactor,
    RiskLevel,
    Season,
    SeverityGrade,
    SeveritySummary,
    SkinType,
    Trajectory,
    TriggerClassification,
    UserProfile,
    WeatherSnapshot,
)

logger = structlog.get_logger(__name__)

STANDARD_PRESSURE_HPA = 1013.25

# Scored when the weather collaborator has nothing for us; counts as missing data.
NEUTRAL_WEATHER = WeatherSnapshot(
    temperature=21.0,
    humidity=50.0,
    pressure=STANDARD_PRESSURE_HPA,
    uv_index=0.0,
    air_quality_index=0.0,
    pollen_count=PollenCount(),
    wind_speed=0.0,
    condition="unknown",
    timestamp=datetime(1970, 1, 1),
)

ENVIRONMENTAL_WEIGHTS = MappingProxyType(
    {
        "humidity": 0.85,
        "temperature": 0.78,
        "air_quality": 0.82,
        "pollen": 0.76,
        "uv": 0.71,
        "pressure": 0.65,
        "wind": 0.58,
    }
)

PHYSIOLOGICAL_WEIGHTS = MappingProxyType(
    {"skin_barrier": 0.92, "immune_state": 0.88, "circadian": 0.72}
)

COMPONENT_WEIGHTS = MappingProxyType(
    {"environmental": 0.35, "physiological": 0.40, "behavioral": 0.15, "temporal": 0.10}
)

SEASONAL_RISK = MappingProxyType(
    {Season.WINTER: 45, Season.SPRING: 35, Season.SUMMER: 30, Season.FALL: 25}
)

EVIDENCE_WEIGHTS = MappingProxyType(
    {EvidenceTier.HIGH: 1.0, EvidenceTier.MODERATE: 0.85, EvidenceTier.LOW: 0.6}
)

SEVERITY_VALUES = MappingProxyType(
    {SeverityGrade.MILD: 1, SeverityGrade.MODERATE: 2, SeverityGrade.SEVERE: 3}
)

# Not yet modeled from log behavior; constant mid-range contribution.
BEHAVIORAL_PLACEHOLDER_RISK = 25.0

TREND_WINDOW = 7
SEVERITY_HISTORY_WINDOW = 5
MAX_USER_MODIFIER = 2.0

_NORTHERN_SEASONS = {
    12: Season.WINTER,
    1: Season.WINTER,
    2: Season.WINTER,
    3: Season.SPRING,
    4: Season.SPRING,
    5: Season.SPRING,
    6: Season.SUMMER,
    7: Season.SUMMER,
    8: Season.SUMMER,
    9: Season.FALL,
    10: Season.FALL,
    11: Season.FALL,
}
_OPPOSITE_SEASON = {
    Season.WINTER: Season.SUMMER,
    Season.SUMMER: Season.WINTER,
    Season.SPRING: Season.FALL,
    Season.FALL: Season.SPRING,
}


class RiskEngineConfig(BaseModel):
    """Tunable windows for the risk engine."""

    log_window: int = Field(default=14, gt=0, description="Most recent logs considered")


class RiskAssessmentContext(BaseModel):
    """Everything one assessment needs, already fetched by collaborators."""

    model_config = ConfigDict(frozen=True)

    weather: WeatherSnapshot | None = None
    profile: UserProfile
    recent_logs: list[DailyLogEntry] = Field(default_factory=list)
    hour: int = Field(ge=0, le=23)
    season: Season
    location: Location | None = None

    @classmethod
    def at(
        cls,
        moment: datetime,
        *,
        profile: UserProfile,
        weather: WeatherSnapshot | None = None,
        recent_logs: Sequence[DailyLogEntry] = (),
        location: Location | None = None,
    ) -> "RiskAssessmentContext":
        """Build a context with hour and season derived from ``moment``."""
        location = location or profile.location
        return cls(
            weather=weather,
            profile=profile,
            recent_logs=list(recent_logs),
            hour=moment.hour,
            season=season_for(moment, location),
            location=location,
        )


def season_for(moment: datetime, location: Location | None = None) -> Season:
    """Meteorological season, flipped for the southern hemisphere."""
    season = _NORTHERN_SEASONS[moment.month]
    if location is not None and location.latitude is not None and location.latitude < 0:
        return _OPPOSITE_SEASON[season]
    return season


# --- Numeric helpers ---


def round_half_up(value: float) -> int:
    return math.floor(value + 0.5)


def clamp(value: float, lower: float, upper: float) -> float:
    return max(lower, min(value, upper))


def linear_trend(values: Sequence[float]) -> float:
    """Least-squares slope of ``values`` against their index."""
    n = len(values)
    if n < 2:
        return 0.0

    sum_x = n * (n - 1) / 2
    sum_y = sum(values)
    sum_xy = sum(i * y for i, y in enumerate(values))
    sum_xx = sum(i * i for i in range(n))

    return (n * sum_xy - sum_x * sum_y) / (n * sum_xx - sum_x * sum_x)


def coefficient_of_variation(values: Sequence[float]) -> float:
    """Population standard deviation over mean; 0 when the mean is 0."""
    if len(values) < 2:
        return 0.0

    mean = sum(values) / len(values)
    if mean == 0:
        return 0.0

    variance = sum((v - mean) ** 2 for v in values) / len(values)
    return math.sqrt(variance) / mean


def dedupe(items: Sequence[str]) -> list[str]:
    return list(dict.fromkeys(items))


# --- Environmental sub-scores ---


def humidity_risk(humidity: float) -> float:
    """Optimal band is 40-60%, minimal at exactly 50%."""
    deviation = abs(humidity - 50)

    if humidity < 30:
        return 70 + (30 - humidity) * 2.5
    if humidity > 70:
        return 45 + (humidity - 70) * 1.8
    if deviation <= 10:
        return deviation * 0.5
    return 10 + (deviation - 10) * 1.2


def temperature_risk(temperature: float) -> float:
    """Optimal band is 18-24 degrees C."""
    if temperature < 0:
        return 80 + abs(temperature) * 2
    if temperature < 18:
        return (18 - temperature) * 3
    if temperature > 35:
        return 60 + (temperature - 35) * 2.5
    if temperature > 24:
        return (temperature - 24) * 2
    return 0.0


def air_quality_risk(aqi: float) -> float:
    # EPA AQI breakpoints
    if aqi <= 50:
        return aqi * 0.3
    if aqi <= 100:
        return 15 + (aqi - 50) * 0.8
    if aqi <= 150:
        return 55 + (aqi - 100) * 1.2
    if aqi <= 200:
        return 85 + (aqi - 150) * 1.5
    return 100.0


def pollen_risk(pollen: PollenCount) -> float:
    total = pollen.total
    if total <= 2:
        return total * 5
    if total <= 6:
        return 10 + (total - 2) * 8
    if total <= 9:
        return 42 + (total - 6) * 12
    return 78 + (total - 9) * 8


def uv_risk(uv_index: float) -> float:
    if uv_index <= 2:
        return uv_index * 2
    if uv_index <= 5:
        return 4 + (uv_index - 2) * 5
    if uv_index <= 7:
        return 19 + (uv_index - 5) * 8
    if uv_index <= 10:
        return 35 + (uv_index - 7) * 10
    return 65 + (uv_index - 10) * 12


def pressure_risk(pressure: float) -> float:
    deviation = abs(pressure - STANDARD_PRESSURE_HPA)
    if deviation <= 10:
        return deviation * 0.5
    if deviation <= 30:
        return 5 + (deviation - 10)
    return 25 + (deviation - 30) * 1.5


def wind_risk(wind_speed: float) -> float:
    if wind_speed <= 10:
        return wind_speed * 0.5
    if wind_speed <= 25:
        return 5 + (wind_speed - 10) * 1.2
    if wind_speed <= 40:
        return 23 + (wind_speed - 25) * 2
    return 53 + (wind_speed - 40) * 2.5


# --- Physiological and temporal sub-scores ---


def skin_barrier_risk(logs: Sequence[DailyLogEntry], trend: float) -> float:
    if not logs:
        return 30.0

    week = logs[-TREND_WINDOW:]
    avg_itch = sum(log.itch_score for log in week) / len(week)
    avg_redness = sum(log.redness_score for log in week) / len(week)

    return min((avg_itch + avg_redness) * 10 + max(trend, 0.0) * 15, 100.0)


def immune_state_risk(logs: Sequence[DailyLogEntry]) -> float:
    if len(logs) < 3:
        return 25.0

    week = logs[-TREND_WINDOW:]
    medication_days = sum(1 for log in week if log.medication_used)
    variability = coefficient_of_variation([log.combined_score for log in week])

    return min(medication_days * 8 + variability * 20, 100.0)


def circadian_risk(hour: int) -> float:
    """Inflammation peaks around 07:00 and 19:00, plus the sleep window."""
    risk = 0.0
    if abs(hour - 7) <= 1:
        risk += 15
    if abs(hour - 19) <= 1:
        risk += 12
    if hour >= 22 or hour <= 5:
        risk += 8
    return risk


def time_of_day_risk(hour: int) -> float:
    if 6 <= hour <= 8:
        return 20.0
    if 18 <= hour <= 20:
        return 15.0
    if hour >= 22 or hour <= 5:
        return 10.0
    return 5.0


def categorize_risk_level(overall_risk: float) -> RiskLevel:
    if overall_risk < 10:
        return RiskLevel.MINIMAL
    if overall_risk < 30:
        return RiskLevel.LOW
    if overall_risk < 60:
        return RiskLevel.MODERATE
    if overall_risk < 80:
        return RiskLevel.HIGH
    return RiskLevel.SEVERE


def user_modifier(profile: UserProfile) -> float:
    """Multiplier for skin type, trigger count and recent severity history."""
    modifier = 1.0

    if profile.skin_type == SkinType.SENSITIVE:
        modifier *= 1.2
    if profile.skin_type == SkinType.DRY:
        modifier *= 1.15

    modifier *= 1 + len(profile.triggers) * 0.05

    if profile.severity_history:
        recent = profile.severity_history[-SEVERITY_HISTORY_WINDOW:]
        avg_severity = sum(SEVERITY_VALUES[entry.severity] for entry in recent) / len(recent)
        modifier *= 1 + (avg_severity - 1) * 0.1

    return min(modifier, MAX_USER_MODIFIER)


@dataclass(frozen=True)
class ComponentScores:
    """Intermediate scores for one assessment, kept for logging and factors."""

    environmental: float
    physiological: float
    behavioral: float
    temporal: float
    skin_barrier: float
    immune_state: float
    circadian: float
    trend: float


# --- Factor catalog ---


def _factor(
    name: str,
    category: FactorCategory,
    score: float,
    confidence: float,
    evidence: EvidenceTier,
    source: str,
    description: str,
    interventions: list[str],
) -> RiskFactor:
    return RiskFactor(
        name=name,
        category=category,
        impact=min(round_half_up(score), 100),
        confidence=confidence,
        evidence=evidence,
        source=source,
        description=description,
        interventions=interventions,
    )


def humidity_factor(humidity: float) -> RiskFactor:
    if humidity < 30:
        name = "Low Humidity"
        description = (
            "Low humidity compromises skin barrier function and increases "
            "transepidermal water loss"
        )
        interventions = [
            "Use humidifier (target 40-60%)",
            "Apply heavy moisturizer",
            "Reduce hot showers",
        ]
    elif humidity > 70:
        name = "High Humidity"
        description = (
            "High humidity promotes bacterial growth and can trigger inflammatory responses"
        )
        interventions = [
            "Improve ventilation",
            "Use lighter moisturizers",
            "Consider antifungal treatments",
        ]
    elif humidity < 40 or humidity > 60:
        name = "Moderate Humidity"
        description = "Humidity levels are slightly outside optimal range but manageable"
        interventions = ["Monitor skin hydration", "Adjust moisturizer as needed"]
    else:
        name = "Optimal Humidity"
        description = "Humidity levels are within optimal range for skin health"
        interventions = [
            "Maintain current humidity levels",
            "Continue regular moisturizing routine",
        ]

    return _factor(
        name,
        FactorCategory.ENVIRONMENTAL,
        humidity_risk(humidity),
        0.92,
        EvidenceTier.HIGH,
        "Journal of Dermatological Science, 2023",
        description,
        interventions,
    )


def temperature_factor(temperature: float) -> RiskFactor:
    if temperature < 5:
        name = "Cold Temperature"
        description = (
            "Cold temperatures reduce skin blood flow and compromise barrier function"
        )
        interventions = ["Layer clothing", "Protect exposed areas", "Use occlusive moisturizers"]
    elif temperature > 30:
        name = "High Temperature"
        description = "Heat increases sweating and can trigger inflammatory cascades"
        interventions = [
            "Stay in cool environments",
            "Use cooling techniques",
            "Shower with lukewarm water",
        ]
    elif temperature < 15:
        name = "Cool Temperature"
        description = "Cooler temperatures may increase skin dryness"
        interventions = ["Dress warmly", "Use moisturizing products", "Protect exposed skin"]
    elif temperature > 24:
        name = "Warm Temperature"
        description = "Warmer temperatures may increase perspiration"
        interventions = ["Stay hydrated", "Use breathable fabrics", "Avoid excessive sweating"]
    else:
        name = "Optimal Temperature"
        description = "Temperature is within comfortable range for skin health"
        interventions = [
            "Maintain comfortable indoor temperature",
            "Dress appropriately for conditions",
        ]

    return _factor(
        name,
        FactorCategory.ENVIRONMENTAL,
        temperature_risk(temperature),
        0.89,
        EvidenceTier.HIGH,
        "British Journal of Dermatology, 2022",
        description,
        interventions,
    )


def air_quality_factor(aqi: float) -> RiskFactor:
    if aqi > 150:
        name = "Unhealthy Air Quality"
        description = "Poor air quality can significantly impact compromised skin barriers"
        interventions = [
            "Limit outdoor exposure",
            "Use air purifiers indoors",
            "Gentle cleansing after outdoor activities",
            "Consider barrier creams",
        ]
    elif aqi > 100:
        name = "Moderate Air Quality"
        description = (
            "Air pollutants can penetrate compromised skin barriers and trigger "
            "inflammatory responses"
        )
        interventions = [
            "Limit prolonged outdoor exposure",
            "Use air purifiers indoors",
            "Cleanse skin after outdoor activities",
        ]
    elif aqi > 50:
        name = "Fair Air Quality"
        description = "Air quality is acceptable but may pose minor concerns for sensitive skin"
        interventions = [
            "Be mindful during extended outdoor activities",
            "Cleanse skin regularly",
        ]
    else:
        name = "Good Air Quality"
        description = "Air quality is good with minimal risk to skin health"
        interventions = ["Enjoy outdoor activities", "Maintain regular skin cleansing"]

    return _factor(
        name,
        FactorCategory.ENVIRONMENTAL,
        air_quality_risk(aqi),
        0.87,
        EvidenceTier.HIGH,
        "Environmental Health Perspectives, 2023",
        description,
        interventions,
    )


def pollen_factor(pollen: PollenCount) -> RiskFactor:
    # Tier follows the provider's overall index; impact follows the species total.
    if pollen.overall > 9:
        name = "Very High Pollen"
        description = (
            "Very high pollen levels can significantly trigger atopic responses "
            "and worsen dermatitis"
        )
        interventions = [
            "Avoid outdoor activities during peak hours",
            "Shower immediately after being outside",
            "Consider antihistamines (consult physician)",
            "Use HEPA filters",
        ]
    elif pollen.overall > 6:
        name = "High Pollen"
        description = (
            "Pollen allergens can trigger atopic responses and worsen existing dermatitis"
        )
        interventions = [
            "Keep windows closed during peak hours",
            "Shower after outdoor activities",
            "Consider antihistamines (consult physician)",
            "Use HEPA filters",
        ]
    elif pollen.overall > 2:
        name = "Moderate Pollen"
        description = "Moderate pollen levels may affect sensitive individuals"
        interventions = [
            "Monitor symptoms",
            "Shower after extended outdoor time",
            "Keep windows closed during high pollen hours",
        ]
    else:
        name = "Low Pollen"
        description = "Pollen levels are low and pose minimal allergy risk"
        interventions = ["No special precautions needed", "Enjoy outdoor activities"]

    return _factor(
        name,
        FactorCategory.ENVIRONMENTAL,
        pollen_risk(pollen),
        0.78,
        EvidenceTier.MODERATE,
        "Allergy and Asthma Proceedings, 2022",
        description,
        interventions,
    )


def skin_barrier_factor(score: float) -> RiskFactor:
    impact = round_half_up(score)
    if impact > 60:
        name = "Compromised Skin Barrier"
        description = (
            "Recent symptom patterns indicate significantly weakened skin barrier "
            "function with high inflammation"
        )
        interventions = [
            "Apply ceramide-rich moisturizers",
            "Avoid harsh soaps",
            "Consider barrier repair creams",
            "Consult dermatologist if persists",
        ]
    elif impact > 40:
        name = "Weakened Skin Barrier"
        description = "Moderate barrier disruption detected based on symptom trends"
        interventions = [
            "Use gentle cleansers",
            "Apply emollient moisturizers",
            "Avoid hot water",
            "Pat dry instead of rubbing",
        ]
    elif impact > 25:
        name = "Mild Barrier Stress"
        description = "Slight barrier compromise, manageable with proper care"
        interventions = ["Maintain hydration", "Use pH-balanced products", "Avoid irritants"]
    else:
        name = "Normal Skin Barrier"
        description = "Skin barrier function appears healthy based on recent symptoms"
        interventions = ["Continue current skincare routine", "Maintain regular moisturizing"]

    return _factor(
        name,
        FactorCategory.PHYSIOLOGICAL,
        score,
        0.88,
        EvidenceTier.HIGH,
        "Journal of Investigative Dermatology, 2023",
        description,
        interventions,
    )


def immune_state_factor(score: float) -> RiskFactor:
    impact = round_half_up(score)
    if impact > 50:
        name = "Elevated Immune Stress"
        description = (
            "High medication use and symptom variability suggest heightened immune activation"
        )
        interventions = [
            "Prioritize sleep (7-9 hours)",
            "Consider stress reduction techniques",
            "Anti-inflammatory diet",
            "Consult physician",
        ]
    elif impact > 30:
        name = "Moderate Immune Activation"
        description = "Moderate immune system stress with variable inflammatory responses"
        interventions = [
            "Reduce inflammatory triggers",
            "Maintain consistent sleep schedule",
            "Consider probiotic foods",
        ]
    else:
        name = "Normal Immune Response"
        description = "Immune system showing balanced inflammatory response"
        interventions = ["Maintain healthy diet", "Get adequate sleep", "Manage stress levels"]

    return _factor(
        name,
        FactorCategory.PHYSIOLOGICAL,
        score,
        0.82,
        EvidenceTier.MODERATE,
        "Journal of Allergy and Clinical Immunology, 2023",
        description,
        interventions,
    )


def circadian_factor(score: float) -> RiskFactor:
    if score > 12:
        name = "Peak Inflammation Period"
        description = (
            "Currently in peak inflammation window due to cortisol and circadian rhythms"
        )
        interventions = [
            "Apply topical treatments now for maximum effect",
            "Avoid triggers during this window",
            "Schedule activities accordingly",
        ]
    elif score > 7:
        name = "Elevated Circadian Risk"
        description = "Moderately elevated inflammation risk based on time of day"
        interventions = ["Be mindful of symptom triggers", "Apply preventive moisturizer"]
    else:
        name = "Baseline Circadian State"
        description = "Normal circadian rhythm with minimal inflammation cycling"
        interventions = ["Maintain regular sleep schedule"]

    return _factor(
        name,
        FactorCategory.PHYSIOLOGICAL,
        score,
        0.75,
        EvidenceTier.MODERATE,
        "Chronobiology International, 2022",
        description,
        interventions,
    )


def skin_type_factor(skin_type: SkinType | None) -> RiskFactor:
    skin_type = skin_type or SkinType.NORMAL

    if skin_type == SkinType.SENSITIVE:
        impact = 35
        description = (
            "Highly sensitive skin type increases vulnerability to environmental triggers"
        )
        interventions = [
            "Use hypoallergenic products",
            "Patch test new products",
            "Avoid fragrances and dyes",
        ]
    elif skin_type == SkinType.DRY:
        impact = 28
        description = "Dry skin type requires enhanced moisture retention strategies"
        interventions = [
            "Use rich emollients",
            "Apply moisturizer immediately after bathing",
            "Avoid alcohol-based products",
        ]
    elif skin_type == SkinType.COMBINATION:
        impact = 15
        description = "Combination skin requires balanced approach to care"
        interventions = ["Zone-specific treatments", "Light moisturizers", "Gentle cleansing"]
    else:
        impact = 10
        description = "Normal skin type with moderate sensitivity"
        interventions = ["Use products suited to your skin type"]

    return _factor(
        f"{skin_type.value.capitalize()} Skin Type",
        FactorCategory.CLINICAL,
        impact,
        0.95,
        EvidenceTier.HIGH,
        "American Academy of Dermatology Guidelines, 2023",
        description,
        interventions,
    )


def known_triggers_factor(triggers: Sequence[str]) -> RiskFactor:
    count = len(triggers)
    if count == 0:
        return _factor(
            "No Known Triggers",
            FactorCategory.CLINICAL,
            0,
            0.90,
            EvidenceTier.HIGH,
            "Based on your personal trigger profile",
            "No personal triggers have been recorded yet",
            ["Keep trigger diary to identify patterns"],
        )

    return _factor(
        f"Known Triggers ({count})",
        FactorCategory.CLINICAL,
        min(50, count * 12),
        0.90,
        EvidenceTier.HIGH,
        "Based on your personal trigger profile",
        f"You have {count} identified trigger(s): {', '.join(triggers[:3])}",
        [
            "Avoid known triggers when possible",
            "Keep trigger diary to identify patterns",
            "Prepare preventive measures when exposure unavoidable",
        ],
    )


_SEASON_NOTES = MappingProxyType(
    {
        Season.WINTER: (
            "Winter dryness and indoor heating significantly increase eczema risk",
            [
                "Use heavy moisturizers",
                "Run humidifiers indoors",
                "Limit hot showers",
                "Layer clothing",
            ],
        ),
        Season.SPRING: (
            "Spring allergens and pollen increase atopic response risk",
            [
                "Monitor pollen counts",
                "Keep windows closed",
                "Shower after outdoor time",
                "Consider antihistamines",
            ],
        ),
        Season.SUMMER: (
            "Summer heat and humidity can trigger sweat-induced flares",
            ["Stay cool", "Wear breathable fabrics", "Rinse after sweating", "Use light moisturizers"],
        ),
        Season.FALL: (
            "Fall transition period with moderate environmental stress",
            [
                "Adjust skincare for cooler weather",
                "Prepare for winter",
                "Monitor changing conditions",
            ],
        ),
    }
)


def season_factor(season: Season) -> RiskFactor:
    description, interventions = _SEASON_NOTES[season]
    return _factor(
        f"{season.value.capitalize()} Season",
        FactorCategory.BEHAVIORAL,
        SEASONAL_RISK[season],
        0.80,
        EvidenceTier.HIGH,
        "Dermatology Research and Practice, 2022",
        description,
        list(interventions),
    )


# --- Recommendation bundle text ---

_IMMEDIATE_SEVERE = (
    "Apply intensive moisturizer immediately",
    "Move to controlled environment if possible",
    "Have rescue medications readily available",
    "Monitor symptoms closely and log changes",
)
_IMMEDIATE_ELEVATED = (
    "Apply barrier protection before exposure",
    "Implement extra skincare routine today",
    "Monitor environmental conditions",
)
_PREVENTIVE_CHECKUPS = (
    "Schedule regular dermatology check-ups",
    "Consider patch testing for new triggers",
    "Maintain detailed symptom diary",
    "Optimize home environment (humidity, air quality)",
)
_LIFESTYLE = (
    "Follow anti-inflammatory diet",
    "Maintain consistent sleep schedule",
    "Practice stress management techniques",
    "Use lukewarm water for bathing",
    "Choose breathable, natural fabrics",
)
_MEDICAL = (
    "Consult dermatologist within 48 hours",
    "Consider prophylactic treatment",
    "Discuss immunomodulatory options",
    "Review current medication effectiveness",
)


class RiskEngine:
    """
    Computes a flare risk assessment from weather, profile and recent check-ins.

    Stateless apart from its configuration; ``assess`` never raises for
    well-formed input.
    """

    def __init__(self, config: RiskEngineConfig | None = None) -> None:
        self.config = config or RiskEngineConfig()
        self.logger = logger.bind(component="risk_engine")

    def assess(self, context: RiskAssessmentContext) -> RiskAssessment:
        weather = context.weather or NEUTRAL_WEATHER
        logs = self._recent_logs(context.recent_logs)

        scores = self.score_components(weather, logs, context.hour, context.season)
        factors = self.identify_factors(weather, context.profile, scores, context.season)

        modifier = user_modifier(context.profile)
        base = (
            scores.environmental * COMPONENT_WEIGHTS["environmental"]
            + scores.physiological * COMPONENT_WEIGHTS["physiological"]
            + scores.behavioral * COMPONENT_WEIGHTS["behavioral"]
            + scores.temporal * COMPONENT_WEIGHTS["temporal"]
        )
        overall = round(min(base * modifier, 100.0), 2)

        assessment = RiskAssessment(
            overall_risk=overall,
            risk_level=categorize_risk_level(overall),
            confidence=self._confidence(context, logs, factors),
            factors=factors,
            predictions=self._predictions(overall, scores.trend),
            recommendations=self._recommendation_bundle(factors, overall),
            triggers=self._classify_triggers(factors),
            severity=self._severity(overall, scores.trend),
        )

        self.logger.debug(
            "risk_assessed",
            profile_id=context.profile.id,
            overall_risk=assessment.overall_risk,
            risk_level=assessment.risk_level.value,
            environmental=round(scores.environmental, 2),
            physiological=round(scores.physiological, 2),
            user_modifier=round(modifier, 3),
            logs_used=len(logs),
        )
        return assessment

    def _recent_logs(self, logs: Sequence[DailyLogEntry]) -> list[DailyLogEntry]:
        """Oldest first, limited to the configured window."""
        ordered = sorted(logs, key=lambda log: (log.date, log.created_at))
        return ordered[-self.config.log_window :]

    def score_components(
        self,
        weather: WeatherSnapshot,
        logs: Sequence[DailyLogEntry],
        hour: int,
        season: Season,
    ) -> ComponentScores:
        environmental = min(
            humidity_risk(weather.humidity) * ENVIRONMENTAL_WEIGHTS["humidity"]
            + temperature_risk(weather.temperature) * ENVIRONMENTAL_WEIGHTS["temperature"]
            + air_quality_risk(weather.air_quality_index) * ENVIRONMENTAL_WEIGHTS["air_quality"]
            + pollen_risk(weather.pollen_count) * ENVIRONMENTAL_WEIGHTS["pollen"]
            + uv_risk(weather.uv_index) * ENVIRONMENTAL_WEIGHTS["uv"]
            + pressure_risk(weather.pressure) * ENVIRONMENTAL_WEIGHTS["pressure"]
            + wind_risk(weather.wind_speed) * ENVIRONMENTAL_WEIGHTS["wind"],
            100.0,
        )

        trend = linear_trend([log.combined_score for log in logs[-TREND_WINDOW:]])
        barrier = skin_barrier_risk(logs, trend)
        immune = immune_state_risk(logs)
        circadian = circadian_risk(hour)
        physiological = min(
            barrier * PHYSIOLOGICAL_WEIGHTS["skin_barrier"]
            + immune * PHYSIOLOGICAL_WEIGHTS["immune_state"]
            + circadian * PHYSIOLOGICAL_WEIGHTS["circadian"],
            100.0,
        )

        temporal = (SEASONAL_RISK[season] + time_of_day_risk(hour)) / 2

        return ComponentScores(
            environmental=environmental,
            physiological=physiological,
            behavioral=BEHAVIORAL_PLACEHOLDER_RISK,
            temporal=temporal,
            skin_barrier=barrier,
            immune_state=immune,
            circadian=circadian,
            trend=trend,
        )

    def identify_factors(
        self,
        weather: WeatherSnapshot,
        profile: UserProfile,
        scores: ComponentScores,
        season: Season,
    ) -> list[RiskFactor]:
        """All factors, highest impact first. Ties keep catalog order."""
        factors = [
            humidity_factor(weather.humidity),
            temperature_factor(weather.temperature),
            air_quality_factor(weather.air_quality_index),
            pollen_factor(weather.pollen_count),
            skin_barrier_factor(scores.skin_barrier),
            immune_state_factor(scores.immune_state),
            circadian_factor(scores.circadian),
            skin_type_factor(profile.skin_type),
            known_triggers_factor(profile.triggers),
            season_factor(season),
        ]
        return sorted(factors, key=lambda factor: factor.impact, reverse=True)

    def _confidence(
        self,
        context: RiskAssessmentContext,
        logs: Sequence[DailyLogEntry],
        factors: Sequence[RiskFactor],
    ) -> float:
        avg_evidence = sum(EVIDENCE_WEIGHTS[f.evidence] for f in factors) / len(factors)

        completeness = 0
        if context.weather is not None:
            completeness += 40
        if context.profile.skin_type is not None:
            completeness += 10
        if context.profile.triggers:
            completeness += 10
        if context.profile.severity_history:
            completeness += 10
        if logs:
            completeness += 15
        if len(logs) >= 7:
            completeness += 15

        return round(0.85 * avg_evidence * completeness / 100, 2)

    def _predictions(self, overall: float, trend: float) -> Predictions:
        return Predictions(
            next_24h=round(clamp(overall + trend * 5, 0.0, 100.0), 2),
            next_7_days=round(clamp(overall + trend * 10, 0.0, 100.0), 2),
            next_month=round(clamp(overall + trend * 15, 0.0, 100.0), 2),
        )

    def _recommendation_bundle(
        self, factors: Sequence[RiskFactor], overall: float
    ) -> RecommendationBundle:
        immediate: list[str] = []
        preventive: list[str] = []

        if overall > 70:
            immediate.extend(_IMMEDIATE_SEVERE)
        elif overall > 40:
            immediate.extend(_IMMEDIATE_ELEVATED)

        for factor in factors:
            immediate.extend(factor.interventions[:2])
            preventive.extend(factor.interventions[2:])

        if overall > 30:
            preventive.extend(_PREVENTIVE_CHECKUPS)

        return RecommendationBundle(
            immediate=dedupe(immediate),
            preventive=dedupe(preventive),
            lifestyle=list(_LIFESTYLE),
            medical=list(_MEDICAL) if overall > 60 else [],
        )

    def _classify_triggers(self, factors: Sequence[RiskFactor]) -> TriggerClassification:
        primary: list[str] = []
        secondary: list[str] = []
        emerging: list[str] = []

        for factor in factors:
            if factor.impact > 60 and factor.confidence > 0.8:
                primary.append(factor.name)
            elif factor.impact > 30 and factor.confidence > 0.6:
                secondary.append(factor.name)
            elif factor.confidence > 0.7:
                emerging.append(factor.name)

        return TriggerClassification(primary=primary, secondary=secondary, emerging=emerging)

    def _severity(self, overall: float, trend: float) -> SeveritySummary:
        current = round_half_up(overall / 10)
        predicted = round(clamp(current + trend * 0.5, 0.0, 10.0), 2)

        if trend < -0.2:
            trajectory = Trajectory.IMPROVING
        elif trend > 0.2:
            trajectory = Trajectory.WORSENING
        else:
            trajectory = Trajectory.STABLE

        return SeveritySummary(current=current, predicted=predicted, trajectory=trajectory)
