"""
Command line scoring of a snapshot file.

Run with:
    python -m vitalscore vital snapshot.json
    python -m vitalscore risk snapshot.json --json

Exit codes: 0 success, 1 rejected input (validation/domain), 2 unreadable file.
"""

import argparse
import json
import sys
from pathlib import Path

from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from vitalscore.config import configure_logging, get_scoring_config
from vitalscore.domain.errors import ScoringError
from vitalscore.domain.models import CardiovascularRiskResult, PatientSnapshot, StabilityResult
from vitalscore.services import assess_cardiovascular_risk, calculate_vital_score

console = Console()

_STATUS_STYLES = {"excellent": "green", "good": "green", "fair": "yellow", "poor": "red"}
_RISK_STYLES = {"green": "green", "yellow": "yellow", "orange": "dark_orange", "red": "red"}


def render_stability(result: StabilityResult) -> None:
    style = _STATUS_STYLES.get(result.status.value, "white")
    console.print(
        Panel(
            f"Score: [bold]{result.score}[/bold]/100  ({result.status_label})\n"
            f"{result.activity_guidance}\n"
            f"Confidence: {result.confidence.score}% ({result.confidence.level})",
            title="Vital Stability",
            style=style,
        )
    )
    for alert in result.critical_alerts:
        console.print(f"🚨 {alert.message}: {alert.value} - {alert.action}", style="bold red")

    table = Table(title="Breakdown")
    table.add_column("Vital", style="cyan")
    table.add_column("Score", justify="right")
    table.add_column("Status")
    table.add_column("Reading")
    for factor, component in result.breakdown.items():
        table.add_row(factor.value, str(component.score), component.status, component.detail or "-")
    console.print(table)

    for rec in result.recommendations:
        console.print(f"[{rec.priority.value.upper()}] {rec.category}: {rec.action}")


def render_risk(result: CardiovascularRiskResult) -> None:
    style = _RISK_STYLES.get(result.color_code, "white")
    console.print(
        Panel(
            f"Score: [bold]{result.score}[/bold]/{result.max_score}  "
            f"{result.category.value.replace('_', ' ').title()}\n"
            f"10-year CVD risk: {result.ten_year_risk}\n"
            f"Confidence: {result.confidence.score}% ({result.confidence.level})",
            title="Cardiovascular Risk",
            style=style,
        )
    )

    table = Table(title="Risk Factors")
    table.add_column("Factor", style="cyan")
    table.add_column("Points", justify="right")
    table.add_column("Finding")
    for factor, component in result.breakdown.items():
        table.add_row(factor.value, f"{component.score}/{component.max_score}", component.label)
    console.print(table)

    for gap in result.data_gaps:
        console.print(f"⚠️  {gap}", style="yellow")
    for step in result.next_steps:
        console.print(f"{step.priority}. {step.action}")
    console.print(result.disclaimer.primary, style="dim")


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(prog="vitalscore", description="Score a patient snapshot")
    parser.add_argument("engine", choices=["vital", "risk"], help="Which engine to run")
    parser.add_argument("snapshot", help="Path to a snapshot JSON file")
    parser.add_argument("--json", action="store_true", help="Print the raw result as JSON")
    args = parser.parse_args(argv)

    configure_logging()

    path = Path(args.snapshot)
    try:
        payload = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as e:
        console.print(f"❌ Cannot read {path}: {e}", style="red")
        return 2

    config = get_scoring_config()
    try:
        snapshot = PatientSnapshot.from_payload(payload)
        if args.engine == "vital":
            result: StabilityResult | CardiovascularRiskResult = calculate_vital_score(
                snapshot, config=config
            )
        else:
            result = assess_cardiovascular_risk(snapshot, config=config)
    except ScoringError as e:
        if args.json:
            print(json.dumps(e.to_dict()))
        else:
            console.print(f"❌ {e.message}", style="red")
        return 1

    if args.json:
        print(result.model_dump_json(indent=2))
    elif isinstance(result, StabilityResult):
        render_stability(result)
    else:
        render_risk(result)
    return 0


if __name__ == "__main__":
    sys.exit(main())
