"""
Configuration management with environment variable support and validation.

Design principles:
- Environment-specific configs (dev, staging, prod)
- Validation at startup (fail fast)
- Type safety with Pydantic
- Log windows and cache sizes tunable without code changes
"""

import logging
import os
from functools import lru_cache
from typing import Literal, cast

import structlog
from dotenv import load_dotenv
from pydantic import BaseModel, Field, field_validator, model_validator

# Load environment variables from .env file
load_dotenv()

LogLevel = Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]


class AssessmentConfig(BaseModel):
    """Risk and recommendation pipeline settings."""

    advanced_mode_enabled: bool = Field(
        default=True, description="Run the multi-factor engines instead of basic scoring"
    )
    risk_log_window: int = Field(
        default=14, gt=0, description="Most recent check-ins used for risk scoring"
    )
    recommendation_log_window: int = Field(
        default=7, gt=0, description="Most recent check-ins used for recommendations"
    )
    cache_size: int = Field(default=32, ge=0, description="Cached assessment results (0 disables)")

    @field_validator("recommendation_log_window")
    @classmethod
    def recommendation_window_within_risk_window(cls, v: int, info) -> int:
        risk_window = info.data.get("risk_log_window")
        if risk_window is not None and v > risk_window:
            raise ValueError("recommendation_log_window cannot exceed risk_log_window")
        return v


class AlertConfig(BaseModel):
    """Risk alert settings."""

    history_size: int = Field(default=100, gt=0, description="Alerts kept in memory")


class LoggingConfig(BaseModel):
    """Logging configuration."""

    level: LogLevel = Field(default="INFO", description="Logging level")
    format: Literal["json", "console"] = Field(default="json", description="Logging format")


class AppConfig(BaseModel):
    """Main application configuration combining all subsystems."""

    # Environment
    environment: Literal["development", "staging", "production"] = Field(
        default="development", description="Environment"
    )
    debug: bool = Field(default=False, description="Enable debug mode")

    # Component configs
    assessment: AssessmentConfig = Field(default_factory=AssessmentConfig)
    alerts: AlertConfig = Field(default_factory=AlertConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    @model_validator(mode="after")
    def debug_only_in_dev(self) -> "AppConfig":
        """Ensure debug mode is only allowed in development environment."""
        if self.debug and self.environment != "development":
            raise ValueError("debug mode is only allowed in development environment")
        return self


def load_config_from_env() -> AppConfig:
    """Load configuration from environment variables with validation."""

    def _env_to_literal(val: str) -> Literal["development", "staging", "production"]:
        v = val.strip().lower()
        if v in {"dev", "development"}:
            return "development"
        if v in {"stage", "staging"}:
            return "staging"
        return "production"

    def _level_to_literal(val: str) -> LogLevel:
        v = val.strip().upper()
        return cast(
            LogLevel,
            v if v in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"} else "INFO",
        )

    def _parse_bool(val: str | None, default: bool) -> bool:
        if val is None:
            return default
        return val.strip().lower() in {"1", "true", "yes", "on"}

    # Detect environment
    environment = _env_to_literal(os.getenv("ENVIRONMENT", "development"))
    debug = environment == "development"

    assessment_config = AssessmentConfig(
        advanced_mode_enabled=_parse_bool(os.getenv("ADVANCED_MODE_ENABLED"), True),
        risk_log_window=int(os.getenv("RISK_LOG_WINDOW", "14")),
        recommendation_log_window=int(os.getenv("RECOMMENDATION_LOG_WINDOW", "7")),
        cache_size=int(os.getenv("ASSESSMENT_CACHE_SIZE", "32")),
    )

    alert_config = AlertConfig(
        history_size=int(os.getenv("ALERT_HISTORY_SIZE", "100")),
    )

    logging_config = LoggingConfig(
        level=_level_to_literal(os.getenv("LOG_LEVEL", "INFO")),
        format="console" if debug else "json",
    )

    return AppConfig(
        environment=environment,
        debug=debug,
        assessment=assessment_config,
        alerts=alert_config,
        logging=logging_config,
    )


@lru_cache
def get_config() -> AppConfig:
    """Get cached application configuration."""
    return load_config_from_env()


def configure_logging(config: LoggingConfig) -> None:
    """Route structlog through stdlib logging with the configured renderer."""
    logging.basicConfig(format="%(message)s", level=getattr(logging, config.level))

    renderer = (
        structlog.dev.ConsoleRenderer()
        if config.format == "console"
        else structlog.processors.JSONRenderer()
    )
    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.UnicodeDecoder(),
            renderer,
        ],
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )


# Configuration validation and helpers
def validate_config() -> None:
    """Validate configuration at startup."""
    try:
        config = get_config()
        print(f"✅ Configuration loaded for {config.environment} environment")

        if not config.assessment.advanced_mode_enabled:
            print("⚠️ Advanced assessment disabled, using basic scoring")

    except Exception as e:
        print(f"❌ Configuration validation failed: {e}")
        raise


# Development helpers
def print_config_summary() -> None:
    """Print configuration summary for debugging."""
    config = get_config()

    print("\n🔧 CONFIGURATION SUMMARY")
    print(f"Environment: {config.environment}")
    print(f"Debug Mode: {config.debug}")
    print(f"Log Level: {config.logging.level}")

    print("\n🩺 ASSESSMENT CONFIGURATION")
    print(f"Advanced Mode: {config.assessment.advanced_mode_enabled}")
    print(f"Risk Log Window: {config.assessment.risk_log_window}")
    print(f"Recommendation Log Window: {config.assessment.recommendation_log_window}")
    print(f"Cache Size: {config.assessment.cache_size}")

    print("\n🔔 ALERT CONFIGURATION")
    print(f"History Size: {config.alerts.history_size}")


if __name__ == "__main__":
    # Test configuration loading
    validate_config()
    print_config_summary()
