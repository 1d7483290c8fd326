"""
Services for the risk pipeline.

This package contains the risk engine, the recommendation engine, the basic
scoring fallback, assessment orchestration and risk alerts.
"""

from .assessment import AssessmentRequest, AssessmentService
from .recommendation_engine import RecommendationContext, RecommendationEngine
from .risk_alerts import AlertEvent, RiskAlertManager
from .risk_engine import RiskAssessmentContext, RiskEngine

__all__ = [
    "AssessmentRequest",
    "AssessmentService",
    "RiskAssessmentContext",
    "RiskEngine",
    "RecommendationContext",
    "RecommendationEngine",
    "AlertEvent",
    "RiskAlertManager",
]
