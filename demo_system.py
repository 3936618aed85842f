"""
System walkthrough of both scoring engines.

This script demonstrates:
1. Configuration loading and validation
2. Vital stability scoring for healthy and emergency snapshots
3. Cardiovascular risk estimation with complete and incomplete data
4. Error handling (invalid readings, underage patients)
5. Operator threshold overrides

Run with: uv run python demo_system.py
"""

from datetime import UTC, date, datetime

from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from adapters.global_config.store import InMemoryConfigStore, resolve_scoring_config
from vitalscore.__main__ import render_risk, render_stability
from vitalscore.config import configure_logging, get_config, print_config_summary
from vitalscore.domain.errors import DomainError, ValidationError
from vitalscore.domain.models import BloodPressure, PatientSnapshot
from vitalscore.services import assess_cardiovascular_risk, calculate_vital_score

console = Console()

AS_OF = date(2026, 1, 15)
NOW = datetime(2026, 1, 15, 9, 0, tzinfo=UTC)

HEALTHY = PatientSnapshot(
    birth_date=date(1990, 6, 1),
    sex="female",
    smoker=False,
    blood_pressure=BloodPressure(systolic=115, diastolic=75),
    heart_rate=68,
    activity="resting",
    glucose=92,
    glucose_timing="fasting",
    spo2=98,
    weight_kg=58,
    height_cm=162,
    total_cholesterol=180,
    hdl_cholesterol=55,
    measured_at=NOW,
)

EMERGENCY = PatientSnapshot(
    birth_date=date(1958, 3, 10),
    sex="male",
    blood_pressure=BloodPressure(systolic=186, diastolic=112),
    heart_rate=112,
    glucose=48,
    spo2=86,
    measured_at=NOW,
)

HIGH_RISK = PatientSnapshot(
    birth_date=date(1970, 9, 1),
    sex="male",
    smoker=True,
    diabetic=True,
    blood_pressure=BloodPressure(systolic=165, diastolic=95),
    total_cholesterol=210,
)

SPARSE = PatientSnapshot(birth_date=date(1980, 1, 1), heart_rate=74)


def demo_configuration() -> bool:
    console.print(Panel("🔧 Configuration", style="blue"))
    try:
        get_config()
        console.print("✅ Configuration loaded successfully", style="green")
        print_config_summary()
        return True
    except Exception as e:
        console.print(f"❌ Configuration failed: {e}", style="red")
        return False


def demo_stability() -> bool:
    console.print(Panel("❤️ Vital Stability", style="blue"))
    healthy = calculate_vital_score(HEALTHY, as_of=AS_OF, now=NOW)
    render_stability(healthy)
    emergency = calculate_vital_score(EMERGENCY, as_of=AS_OF, now=NOW)
    render_stability(emergency)
    return healthy.cleared_for_activity and emergency.is_critical


def demo_risk() -> bool:
    console.print(Panel("🫀 Cardiovascular Risk", style="blue"))
    high = assess_cardiovascular_risk(HIGH_RISK, as_of=AS_OF, now=NOW)
    render_risk(high)
    sparse = assess_cardiovascular_risk(SPARSE, as_of=AS_OF, now=NOW)
    render_risk(sparse)
    return high.recommendations[0].category == "Smoking Cessation" and sparse.confidence.score < 100


def demo_error_handling() -> bool:
    console.print(Panel("🛡️ Error Handling", style="blue"))
    ok = True
    try:
        calculate_vital_score(
            PatientSnapshot(blood_pressure=BloodPressure(systolic=400, diastolic=80)), now=NOW
        )
        ok = False
    except ValidationError as e:
        console.print(f"Rejected invalid reading: {e.message} (field={e.field})", style="yellow")
    try:
        assess_cardiovascular_risk(PatientSnapshot(birth_date=date(2012, 5, 5)), as_of=AS_OF)
        ok = False
    except DomainError as e:
        console.print(f"Refused assessment: {e.message}", style="yellow")
    return ok


def demo_overrides() -> bool:
    console.print(Panel("🎛️ Operator Overrides", style="blue"))
    store = InMemoryConfigStore()
    store.set("risk.low_hdl", 45, updated_by="demo")
    store.set("stability.missing_score", 40, updated_by="demo")
    config = resolve_scoring_config(store)
    before = calculate_vital_score(SPARSE, as_of=AS_OF, now=NOW)
    after = calculate_vital_score(SPARSE, config=config, as_of=AS_OF, now=NOW)
    console.print(f"Sparse snapshot score: {before.score} -> {after.score} with missing_score=40")
    return after.score < before.score


def run_demo() -> None:
    configure_logging()
    console.print(Panel("🧪 vitalscore - System Walkthrough", style="bold blue"))

    steps = [
        ("Configuration", demo_configuration),
        ("Vital Stability", demo_stability),
        ("Cardiovascular Risk", demo_risk),
        ("Error Handling", demo_error_handling),
        ("Operator Overrides", demo_overrides),
    ]

    results = []
    for name, step in steps:
        console.print(f"\n{'=' * 60}")
        try:
            results.append((name, step()))
        except KeyboardInterrupt:
            console.print("\n⏹️  Demo interrupted by user", style="yellow")
            break
        except Exception as e:
            console.print(f"❌ {name} failed with exception: {e}", style="red")
            results.append((name, False))

    console.print(f"\n{'=' * 60}")
    summary = Table(title="📋 Summary")
    summary.add_column("Step", style="cyan")
    summary.add_column("Result", style="white")
    for name, passed in results:
        summary.add_row(name, "✅ PASS" if passed else "❌ FAIL")
    console.print(summary)


if __name__ == "__main__":
    run_demo()
