"""
End-to-end walkthrough of the flare risk pipeline.

This script exercises:
1. Configuration loading and validation
2. Risk assessment on a dry day, a calm day and a worsening symptom streak
3. Evidence-based recommendations and the treatment plan
4. Risk alert generation and dispatch
5. Fallback to basic scoring and stale-request discarding

Run with: uv run python demo_pipeline.py
"""

import asyncio
from datetime import UTC, date, datetime, timedelta

from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from dermair.config import configure_logging, get_config, print_config_summary, validate_config
from dermair.domain.models import (
    AssessmentOutcome,
    DailyLogEntry,
    PollenCount,
    RiskThreshold,
    SkinType,
    UserPreferences,
    UserProfile,
    WeatherSnapshot,
)
from dermair.services.assessment import AssessmentRequest, AssessmentService
from dermair.services.risk_alerts import RiskAlertManager

console = Console()

NOON = datetime(2025, 7, 15, 12, 0, tzinfo=UTC)

DRY_DAY = WeatherSnapshot(
    temperature=21,
    humidity=20,
    uv_index=3,
    air_quality_index=30,
    pollen_count=PollenCount(tree=1, overall=1),
    wind_speed=5,
    condition="clear",
)

CALM_DAY = WeatherSnapshot(
    temperature=21,
    humidity=50,
    uv_index=1,
    air_quality_index=10,
    pollen_count=PollenCount(),
    wind_speed=2,
    condition="partly cloudy",
)


def _worsening_logs() -> list[DailyLogEntry]:
    start = date(2025, 7, 8)
    return [
        DailyLogEntry(date=start + timedelta(days=i), itch_score=itch, redness_score=0)
        for i, itch in enumerate([1, 1, 2, 2, 3, 3, 4])
    ]


def _show_outcome(title: str, outcome: AssessmentOutcome) -> None:
    table = Table(title=title)
    table.add_column("Field", style="cyan")
    table.add_column("Value", style="white")

    table.add_row("Mode", "advanced" if outcome.is_advanced_mode else "basic")
    table.add_row("Risk score", f"{outcome.risk_score:.2f}")
    table.add_row("Risk level", outcome.risk_level.value)
    table.add_row("Confidence", f"{outcome.confidence:.0%}")

    if outcome.risk_assessment:
        severity = outcome.risk_assessment.severity
        table.add_row("Severity", f"{severity.current} -> {severity.predicted}")
        table.add_row("Trajectory", severity.trajectory.value)
        top = outcome.risk_assessment.factors[0]
        table.add_row("Top factor", f"{top.name} ({top.impact:.0f})")

    if outcome.recommendation_result:
        plan = outcome.recommendation_result.treatment_plan
        table.add_row("Plan phase", f"{plan.phase.value} ({plan.duration})")

    console.print(table)
    for rec in outcome.recommendations[:4]:
        console.print(f"  • {rec}")


async def check_configuration() -> bool:
    console.print(Panel("🔧 Configuration", style="blue"))

    try:
        validate_config()
        print_config_summary()
        return True
    except Exception as e:
        console.print(f"❌ Configuration check failed: {e}", style="red")
        return False


async def check_scenarios(service: AssessmentService) -> bool:
    console.print(Panel("🩺 Risk Scenarios", style="blue"))

    sensitive = UserProfile(id="demo-sensitive", skin_type=SkinType.SENSITIVE)
    normal = UserProfile(id="demo-normal", skin_type=SkinType.NORMAL)

    dry = await service.assess(AssessmentRequest(at=NOON, profile=sensitive, weather=DRY_DAY))
    calm = await service.assess(
        AssessmentRequest(at=NOON.replace(month=10), profile=normal, weather=CALM_DAY)
    )
    worsening = await service.assess(
        AssessmentRequest(
            at=NOON.replace(month=10),
            profile=normal,
            weather=CALM_DAY,
            recent_logs=_worsening_logs(),
        )
    )

    if dry is None or calm is None or worsening is None:
        console.print("❌ A scenario was unexpectedly discarded", style="red")
        return False

    _show_outcome("Dry summer day, sensitive skin", dry)
    _show_outcome("Calm autumn day, normal skin", calm)
    _show_outcome("Worsening itch streak", worsening)
    return True


async def check_alerts(service: AssessmentService) -> bool:
    console.print(Panel("🔔 Risk Alerts", style="blue"))

    profile = UserProfile(
        id="demo-alerts",
        skin_type=SkinType.DRY,
        triggers=["pollen", "heat"],
        preferences=UserPreferences(risk_threshold=RiskThreshold.MODERATE),
    )
    weather = WeatherSnapshot(
        temperature=33,
        humidity=82,
        uv_index=9,
        air_quality_index=120,
        pollen_count=PollenCount(tree=3, grass=3, weed=2, overall=8),
        wind_speed=12,
    )

    outcome = await service.assess(AssessmentRequest(at=NOON, profile=profile, weather=weather))
    if outcome is None:
        return False

    manager = RiskAlertManager()
    alert = manager.evaluate(outcome, weather, profile)
    if alert is None:
        console.print(f"No alert for {outcome.risk_level.value} risk", style="yellow")
        return True

    delivered = []
    await manager.dispatch([alert], handlers=[delivered.append])
    console.print(f"✅ {alert.title}: {alert.description}", style="green")
    return len(delivered) == 1


async def check_fallbacks(service: AssessmentService) -> bool:
    console.print(Panel("🛡️ Fallbacks", style="blue"))

    class BrokenEngine:
        def assess(self, context):
            raise RuntimeError("engine unavailable")

    degraded = AssessmentService(config=service.config, risk_engine=BrokenEngine())
    outcome = degraded.evaluate(
        AssessmentRequest(
            at=NOON, profile=UserProfile(id="demo-fallback", triggers=["cold"]), weather=DRY_DAY
        )
    )
    _show_outcome("Basic scoring after engine failure", outcome)

    request = AssessmentRequest(at=NOON, profile=UserProfile(id="demo-stale"), weather=CALM_DAY)
    first, second = await asyncio.gather(service.assess(request), service.assess(request))
    console.print(
        f"Stale request discarded: {first is None}, latest delivered: {second is not None}",
        style="yellow",
    )

    return not outcome.is_advanced_mode and outcome.confidence == 0.7 and first is None


async def run_walkthrough() -> None:
    console.print(Panel("🧴 DermAIr Risk Core - Pipeline Walkthrough", style="bold blue"))

    config = get_config()
    configure_logging(config.logging)
    service = AssessmentService(config=config.assessment)

    checks = [
        ("Configuration", check_configuration),
        ("Scenarios", lambda: check_scenarios(service)),
        ("Alerts", lambda: check_alerts(service)),
        ("Fallbacks", lambda: check_fallbacks(service)),
    ]

    results = []
    for name, check in checks:
        console.print(f"\n{'=' * 60}")
        try:
            results.append((name, await check()))
        except Exception as e:
            console.print(f"❌ {name} failed with exception: {e}", style="red")
            results.append((name, False))

    console.print(f"\n{'=' * 60}")
    summary_table = Table(title="Walkthrough Summary")
    summary_table.add_column("Check", style="cyan")
    summary_table.add_column("Result", style="white")

    passed = 0
    for name, ok in results:
        summary_table.add_row(name, "✅ PASSED" if ok else "❌ FAILED")
        passed += ok

    console.print(summary_table)
    console.print(f"\n🎯 Results: {passed}/{len(results)} checks passed")


if __name__ == "__main__":
    try:
        asyncio.run(run_walkthrough())
    except KeyboardInterrupt:
        console.print("\n👋 Walkthrough stopped by user", style="yellow")
