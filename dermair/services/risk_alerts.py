"""
Risk alert decisions and handler dispatch.

Turns an assessment outcome into an alert when the user's preferences ask for
one. Delivery (push, email, browser notification) belongs to the handlers the
caller registers; the default handler only logs.
"""

import inspect
from collections import deque
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from datetime import UTC, datetime

import structlog

from dermair.config import AlertConfig, get_config
from dermair.domain.models import (
    AssessmentOutcome,
    LegacyRiskLevel,
    RiskLevel,
    RiskThreshold,
    UserProfile,
    WeatherSnapshot,
)

logger = structlog.get_logger(__name__)

AlertHandler = Callable[["AlertEvent"], None] | Callable[["AlertEvent"], Awaitable[None]]

_BAND_FOR_LEVEL = {
    RiskLevel.MINIMAL: LegacyRiskLevel.LOW,
    RiskLevel.LOW: LegacyRiskLevel.LOW,
    RiskLevel.MODERATE: LegacyRiskLevel.MEDIUM,
    RiskLevel.HIGH: LegacyRiskLevel.HIGH,
    RiskLevel.SEVERE: LegacyRiskLevel.HIGH,
}

_MINIMUM_BAND = {
    RiskThreshold.LOW: LegacyRiskLevel.LOW,
    RiskThreshold.MODERATE: LegacyRiskLevel.MEDIUM,
    RiskThreshold.HIGH: LegacyRiskLevel.HIGH,
}

_BAND_ORDER = {LegacyRiskLevel.LOW: 0, LegacyRiskLevel.MEDIUM: 1, LegacyRiskLevel.HIGH: 2}


@dataclass
class AlertEvent:
    """A risk alert ready for delivery."""

    severity: str
    title: str
    description: str
    profile_id: str
    risk_score: float
    factors: list[str] = field(default_factory=list)
    timestamp: datetime = field(default_factory=lambda: datetime.now(UTC))


def alert_band(level: RiskLevel | LegacyRiskLevel) -> LegacyRiskLevel:
    """Collapse either risk taxonomy onto the three alert bands."""
    if isinstance(level, LegacyRiskLevel):
        return level
    return _BAND_FOR_LEVEL[level]


def main_weather_factors(weather: WeatherSnapshot) -> list[str]:
    factors = []

    if weather.humidity > 70:
        factors.append("High humidity")
    elif weather.humidity < 30:
        factors.append("Low humidity")

    if weather.temperature > 29:
        factors.append("High temperature")
    elif weather.temperature < 5:
        factors.append("Cold weather")

    if weather.uv_index > 7:
        factors.append("High UV")
    if weather.air_quality_index > 100:
        factors.append("Poor air quality")
    if weather.pollen_count.overall > 6:
        factors.append("High pollen")

    return factors


class RiskAlertManager:
    """Decides whether an outcome warrants an alert and dispatches it."""

    def __init__(self, config: AlertConfig | None = None) -> None:
        self.config = config or get_config().alerts
        self.alert_history: deque[AlertEvent] = deque(maxlen=self.config.history_size)
        self.logger = logger.bind(component="risk_alert_manager")

    def evaluate(
        self, outcome: AssessmentOutcome, weather: WeatherSnapshot, profile: UserProfile
    ) -> AlertEvent | None:
        preferences = profile.preferences
        if not preferences.notifications:
            return None

        band = alert_band(outcome.risk_level)
        if _BAND_ORDER[band] < _BAND_ORDER[_MINIMUM_BAND[preferences.risk_threshold]]:
            return None

        # Low-risk days never notify, whatever the threshold.
        if band == LegacyRiskLevel.LOW:
            return None

        factors = main_weather_factors(weather)
        description = f"Flare risk is {outcome.risk_score:.0f}/100"
        if factors:
            description += f" due to {', '.join(factors).lower()}"

        alert = AlertEvent(
            severity=band.value,
            title=f"{band.value.capitalize()} eczema flare risk today",
            description=description,
            profile_id=profile.id,
            risk_score=outcome.risk_score,
            factors=factors,
        )
        self.alert_history.append(alert)

        self.logger.info(
            "alert_generated",
            severity=alert.severity,
            profile_id=profile.id,
            risk_score=outcome.risk_score,
            factors=factors,
        )
        return alert

    async def dispatch(
        self, alerts: list[AlertEvent], handlers: list[AlertHandler] | None = None
    ) -> None:
        """Send each alert to every handler; one failing handler does not stop the rest."""
        if not alerts:
            return

        if not handlers:
            handlers = [self._log_alert_handler]

        for alert in alerts:
            for handler in handlers:
                try:
                    if inspect.iscoroutinefunction(handler):
                        await handler(alert)
                    else:
                        handler(alert)
                except Exception as e:
                    self.logger.error(
                        "alert_dispatch_failed", error=str(e), alert_title=alert.title
                    )

    def _log_alert_handler(self, alert: AlertEvent) -> None:
        self.logger.warning(
            "risk_alert",
            severity=alert.severity,
            title=alert.title,
            description=alert.description,
            profile_id=alert.profile_id,
        )
