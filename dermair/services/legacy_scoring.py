"""
Basic additive risk scoring.

This is the path the orchestrator degrades to when advanced assessment is
disabled or fails. It only needs the weather, the trigger list and the last
few check-ins, and produces a 0-100 score with a three-band level.
"""

from collections.abc import Sequence

import structlog

from dermair.domain.models import DailyLogEntry, LegacyRiskLevel, WeatherSnapshot
from dermair.services.risk_engine import dedupe, round_half_up

logger = structlog.get_logger(__name__)

SYMPTOM_WINDOW = 3
MAX_RECOMMENDATIONS = 8


def _environment_points(weather: WeatherSnapshot) -> list[tuple[str, int]]:
    points: list[tuple[str, int]] = []

    if weather.humidity > 80:
        points.append(("high_humidity", 25))
    elif weather.humidity > 70:
        points.append(("elevated_humidity", 15))
    elif weather.humidity < 20:
        points.append(("very_low_humidity", 30))
    elif weather.humidity < 30:
        points.append(("low_humidity", 20))

    if weather.temperature > 32:
        points.append(("extreme_heat", 20))
    elif weather.temperature > 29:
        points.append(("high_temperature", 12))
    elif weather.temperature < 0:
        points.append(("freezing_temperature", 25))
    elif weather.temperature < 5:
        points.append(("very_cold", 15))

    if weather.uv_index > 9:
        points.append(("extreme_uv", 25))
    elif weather.uv_index > 7:
        points.append(("high_uv", 18))
    elif weather.uv_index > 5:
        points.append(("moderate_uv", 10))

    if weather.air_quality_index > 200:
        points.append(("very_unhealthy_air", 35))
    elif weather.air_quality_index > 150:
        points.append(("unhealthy_air", 25))
    elif weather.air_quality_index > 100:
        points.append(("moderate_air_quality", 15))

    pollen = weather.pollen_count.overall
    if pollen > 9:
        points.append(("very_high_pollen", 25))
    elif pollen > 6:
        points.append(("high_pollen", 18))
    elif pollen > 3:
        points.append(("moderate_pollen", 10))

    if weather.wind_speed > 25:
        points.append(("strong_winds", 12))

    return points


def _trigger_points(weather: WeatherSnapshot, trigger: str) -> int:
    """Extra risk for a personal trigger under current conditions."""
    trigger = trigger.strip().lower()

    if trigger == "pollen" and weather.pollen_count.overall > 2:
        return round_half_up((weather.pollen_count.overall - 2) * 3 * 1.5)
    if trigger == "humidity" and (weather.humidity > 60 or weather.humidity < 40):
        return 15
    if trigger == "heat" and weather.temperature > 24:
        return round_half_up((weather.temperature - 24) * 0.8)
    if trigger == "cold" and weather.temperature < 15:
        return round_half_up((15 - weather.temperature) * 1.2)
    if trigger in ("dust", "pollution") and weather.air_quality_index > 50:
        return round_half_up((weather.air_quality_index - 50) * 0.3 * 1.4)
    if trigger == "wind" and weather.wind_speed > 15:
        return round_half_up((weather.wind_speed - 15) * 0.6)
    return 0


def _symptom_points(logs: Sequence[DailyLogEntry]) -> list[tuple[str, int]]:
    if not logs:
        return []

    ordered = sorted(logs, key=lambda log: (log.date, log.created_at))
    recent = ordered[-SYMPTOM_WINDOW:]
    points: list[tuple[str, int]] = []

    avg_itch = sum(log.itch_score for log in recent) / len(recent)
    avg_redness = sum(log.redness_score for log in recent) / len(recent)
    total_avg = (avg_itch + avg_redness) / 2
    if total_avg > 3:
        points.append(("recent_symptom_pattern", round_half_up(total_avg * 5)))

    if len(recent) >= 2 and recent[-1].combined_score - recent[0].combined_score > 2:
        points.append(("worsening_trend", 10))

    return points


def calculate_risk_score(
    weather: WeatherSnapshot,
    triggers: Sequence[str],
    logs: Sequence[DailyLogEntry] = (),
) -> int:
    """Additive 0-100 score from weather thresholds, triggers and recent symptoms."""
    contributions = _environment_points(weather)
    contributions.extend(
        (f"trigger_{trigger.strip().lower()}", points)
        for trigger in triggers
        if (points := _trigger_points(weather, trigger)) > 0
    )
    contributions.extend(_symptom_points(logs))

    score = max(0, min(100, sum(points for _, points in contributions)))
    logger.debug("legacy_risk_scored", score=score, contributions=dict(contributions))
    return score


def legacy_risk_level(score: float) -> LegacyRiskLevel:
    if score < 30:
        return LegacyRiskLevel.LOW
    if score < 60:
        return LegacyRiskLevel.MEDIUM
    return LegacyRiskLevel.HIGH


_LEVEL_ADVICE = {
    LegacyRiskLevel.LOW: (
        "Good day for your skin! Maintain your regular routine",
        "Apply your usual moisturizer morning and evening",
    ),
    LegacyRiskLevel.MEDIUM: (
        "Take extra precautions today",
        "Apply moisturizer more frequently (every 4-6 hours)",
        "Consider logging any symptoms that develop",
    ),
    LegacyRiskLevel.HIGH: (
        "High risk day - take protective measures",
        "Apply thick barrier cream or intensive moisturizer",
        "Monitor symptoms closely and log any changes",
        "Have your treatment medication easily accessible",
    ),
}


def _weather_advice(weather: WeatherSnapshot) -> list[str]:
    advice: list[str] = []

    if weather.humidity > 80:
        advice += [
            "High humidity: Use lighter, non-comedogenic moisturizers",
            "Ensure good ventilation and air circulation indoors",
        ]
    elif weather.humidity < 30:
        advice += [
            "Low humidity: Use a humidifier and apply heavy moisturizers",
            "Take shorter, cooler showers to prevent further drying",
        ]

    if weather.temperature > 29:
        advice += [
            "Hot weather: Stay in air-conditioned spaces when possible",
            "Wear loose, breathable clothing made from natural fibers",
            "Stay hydrated and take cool showers",
        ]
    elif weather.temperature < 5:
        advice += [
            "Cold weather: Protect exposed skin with barriers or coverings",
            "Limit time outdoors and warm up gradually when coming inside",
        ]

    if weather.uv_index > 7:
        advice += [
            "High UV: Apply broad-spectrum SPF 30+ sunscreen",
            "Wear protective clothing, hat, and sunglasses outdoors",
            "Avoid direct sun exposure between 10 AM - 4 PM",
        ]

    if weather.air_quality_index > 100:
        advice += [
            "Poor air quality: Limit outdoor activities",
            "Keep windows closed and use air purifiers if available",
            "Wash face and hands frequently to remove pollutants",
        ]

    if weather.pollen_count.overall > 6:
        advice += [
            "High pollen: Keep windows closed during peak hours (morning/evening)",
            "Change clothes after being outdoors",
            "Shower before bed to remove pollen from hair and skin",
        ]

    if weather.wind_speed > 25:
        advice += [
            "Strong winds: Apply extra moisturizer to prevent wind burn",
            "Cover exposed areas when outdoors",
        ]

    return advice


def _trigger_advice(weather: WeatherSnapshot, trigger: str) -> list[str]:
    trigger = trigger.strip().lower()

    if trigger == "pollen" and weather.pollen_count.overall > 3:
        return [
            "Pollen trigger: Consider antihistamines if recommended by your doctor",
            "Use HEPA filters and keep indoor plants to a minimum",
        ]
    if trigger in ("dust", "pollution") and weather.air_quality_index > 50:
        return [
            "Air quality trigger: Vacuum regularly with HEPA filter",
            "Dust surfaces frequently and consider air purifiers",
        ]
    if trigger == "heat" and weather.temperature > 24:
        return [
            "Heat trigger: Use cooling techniques (cold compresses, fans)",
            "Switch to lighter, cooling moisturizers",
        ]
    if trigger == "cold" and weather.temperature < 15:
        return [
            "Cold trigger: Layer clothing and protect extremities",
            "Use heavier, occlusive moisturizers",
        ]
    if trigger == "humidity" and (weather.humidity > 60 or weather.humidity < 40):
        return [
            "Humidity trigger: Monitor indoor humidity levels (aim for 40-60%)",
            "Use humidifier or dehumidifier as needed",
        ]
    if trigger == "wind" and weather.wind_speed > 15:
        return [
            "Wind trigger: Apply protective balm before going outdoors",
            "Use scarves or masks to shield face from wind",
        ]
    return []


def legacy_recommendations(
    level: LegacyRiskLevel, weather: WeatherSnapshot, triggers: Sequence[str]
) -> list[str]:
    """Level advice, then weather advice, then trigger advice; at most eight."""
    advice = list(_LEVEL_ADVICE[level])
    advice.extend(_weather_advice(weather))
    for trigger in triggers:
        advice.extend(_trigger_advice(weather, trigger))

    return dedupe(advice)[:MAX_RECOMMENDATIONS]
