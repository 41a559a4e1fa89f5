"""
Typer CLI for the learning analytics core.

Commands:
    learning-core analyze events.jsonl --user u1       - Replay events and report patterns
    learning-core profile fixture.json --user u1       - Build a learner profile
    learning-core knowledge fixture.json --user u1 --subject spanish
    learning-core difficulty fixture.json --user u1 --exercise-type vocabulary
    learning-core version

Event files hold one JSON object per line:
    {"user_id": "u1", "type": "exercise_complete", "timestamp": "2024-05-01T10:00:00",
     "context": {"score": 0.8, "exercise_type": "vocabulary"}}

Fixture files are StaticLearnerDataSource documents (learners, concept_graphs,
exercise_difficulties).
"""
from __future__ import annotations

import json
import sys
from datetime import datetime
from pathlib import Path
from typing import Any, Optional

import typer
from loguru import logger
from pydantic import BaseModel, Field, ValidationError
from rich import print as rprint
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from config import get_settings
from learning_core import __version__
from learning_core.core.sources import StaticLearnerDataSource
from learning_core.engine import LearningAnalyticsEngine

app = typer.Typer(
    help="Adaptive learning analytics: patterns, profiles, knowledge state and difficulty",
    no_args_is_help=True,
)

console = Console()


class EventRecord(BaseModel):
    """One line of an events file."""

    user_id: str
    type: str
    timestamp: datetime
    context: dict[str, Any] = Field(default_factory=dict)


def configure_logging(level: Optional[str] = None) -> None:
    """Route loguru output to stderr at the configured level."""
    logger.remove()
    logger.add(
        sys.stderr,
        level=level or get_settings().log_level,
        format="<level>{message}</level>",
    )


# ========================================
# Loaders
# ========================================


def load_fixture(path: Optional[Path]) -> StaticLearnerDataSource:
    """Load a data-source fixture; exits with code 1 when it is invalid."""
    if path is None:
        return StaticLearnerDataSource()
    try:
        return StaticLearnerDataSource.from_dict(json.loads(path.read_text(encoding="utf-8")))
    except (ValidationError, json.JSONDecodeError) as e:
        console.print(f"[red]Invalid fixture {path}:[/red] {escape(str(e))}")
        raise typer.Exit(code=1)


def load_events(path: Path) -> list[EventRecord]:
    """Parse a JSONL events file; exits with code 1 on the first bad line."""
    records = []
    for line_number, line in enumerate(path.read_text(encoding="utf-8").splitlines(), start=1):
        if not line.strip():
            continue
        try:
            records.append(EventRecord.model_validate_json(line))
        except ValidationError as e:
            console.print(f"[red]Invalid event on line {line_number}:[/red] {escape(str(e))}")
            raise typer.Exit(code=1)
    return records


def _print_json(data: Any) -> None:
    console.print_json(json.dumps(data, default=str))


# ========================================
# Commands
# ========================================


@app.callback()
def main_callback(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Show debug logging"),
) -> None:
    """Adaptive learning analytics core."""
    configure_logging("DEBUG" if verbose else None)


@app.command("analyze")
def analyze(
    events_file: Path = typer.Argument(..., exists=True, dir_okay=False, help="JSONL events file"),
    user: str = typer.Option(..., "--user", "-u", help="Learner id"),
    timeframe: str = typer.Option("7days", "--timeframe", "-t", help="1hour, 1day, 7days or 30days"),
    fixture: Optional[Path] = typer.Option(None, "--fixture", "-f", exists=True, help="Data source fixture"),
    as_json: bool = typer.Option(False, "--json", help="Print the raw report as JSON"),
) -> None:
    """Replay recorded events and report learning patterns."""
    records = load_events(events_file)
    engine = LearningAnalyticsEngine(data_source=load_fixture(fixture))

    for record in sorted(records, key=lambda r: r.timestamp):
        engine.track_event(record.user_id, record.type, record.context, timestamp=record.timestamp)

    user_records = [r for r in records if r.user_id == user]
    now = max((r.timestamp for r in user_records), default=datetime.now())
    report = engine.analyze_learning_patterns(user, timeframe, now=now)
    notifications = engine.drain_notifications(user)

    if as_json:
        _print_json({**report, "notifications": [n.to_dict() for n in notifications]})
        return

    rprint(f"[bold]Learning patterns for {user}[/bold] ({report['timeframe']}, {report['event_count']} events)")

    performance = report["patterns"].get("performance")
    if performance and performance.get("accuracy"):
        table = Table(title="Performance", show_header=True)
        table.add_column("Metric", style="cyan")
        table.add_column("Value", justify="right", style="green")
        table.add_row("Trend", performance["trend"])
        table.add_row("Accuracy (recent)", f"{performance['accuracy']['current']:.0%}")
        table.add_row("Accuracy (overall)", f"{performance['accuracy']['overall']:.0%}")
        table.add_row("Consistency", f"{performance['consistency']:.2f}")
        table.add_row("Momentum", performance["momentum"]["direction"])
        console.print(table)

    behavior = report["patterns"].get("behavior") or []
    if behavior:
        table = Table(title="Behavior Patterns", show_header=True)
        table.add_column("Pattern", style="cyan")
        table.add_column("Strength", justify="right", style="green")
        table.add_column("Confidence", justify="right", style="yellow")
        table.add_column("Interventions", style="dim")
        for pattern in behavior:
            table.add_row(
                pattern["name"],
                f"{pattern['strength']:.2f}",
                f"{pattern['confidence']:.2f}",
                ", ".join(pattern["recommendations"]),
            )
        console.print(table)

    for insight in report["insights"]:
        rprint(f"  [cyan]•[/cyan] {insight}")
    if report["risk_factors"]:
        rprint(f"[yellow]Risks:[/yellow] {', '.join(report['risk_factors'])}")
    for notification in notifications:
        rprint(f"[magenta]![/magenta] ({notification.priority.value}) {notification.message}")


@app.command("profile")
def profile(
    fixture: Path = typer.Argument(..., exists=True, dir_okay=False, help="Data source fixture"),
    user: str = typer.Option(..., "--user", "-u", help="Learner id"),
    as_json: bool = typer.Option(False, "--json", help="Print the raw profile as JSON"),
) -> None:
    """Build a multi-dimensional learner profile."""
    engine = LearningAnalyticsEngine(data_source=load_fixture(fixture))
    result = engine.build_user_profile(user)

    if as_json:
        _print_json(result.to_dict())
        return

    table = Table(title=f"Profile: {user}", show_header=True)
    table.add_column("Dimension", style="cyan")
    table.add_column("Trait")
    table.add_column("Score", justify="right", style="green")
    for dimension in ("cognitive", "personality", "motivation", "metacognition", "skill_levels"):
        for trait, score in getattr(result, dimension).items():
            table.add_row(dimension, trait, f"{score:.2f}")
    for style, share in result.preferences.items():
        table.add_row("learning_style", style, f"{share:.2f}")
    console.print(table)

    if result.adaptations:
        rprint(f"[yellow]Adaptations:[/yellow] {', '.join(result.adaptations)}")


@app.command("knowledge")
def knowledge(
    fixture: Path = typer.Argument(..., exists=True, dir_okay=False, help="Data source fixture"),
    user: str = typer.Option(..., "--user", "-u", help="Learner id"),
    subject: str = typer.Option(..., "--subject", "-s", help="Subject to model"),
    as_json: bool = typer.Option(False, "--json", help="Print the raw knowledge state as JSON"),
) -> None:
    """Model per-concept knowledge state for a subject."""
    engine = LearningAnalyticsEngine(data_source=load_fixture(fixture))
    state = engine.model_knowledge_state(user, subject)

    if as_json:
        _print_json(state.to_dict())
        return

    table = Table(title=f"Knowledge: {user} / {subject}", show_header=True)
    table.add_column("Concept", style="cyan")
    table.add_column("Mastery", justify="right", style="green")
    table.add_column("Readiness", justify="right", style="yellow")
    table.add_column("Retention", justify="right")
    table.add_column("Review", justify="center")
    for concept_id in state.learning_path + [c for c in state.concepts if c not in state.learning_path]:
        entry = state.concepts[concept_id]
        table.add_row(
            entry.name,
            f"{entry.mastery_level:.2f}",
            f"{entry.readiness:.2f}",
            f"{entry.forgetting_curve.retention:.2f}",
            "[red]due[/red]" if entry.forgetting_curve.review_due else "",
        )
    console.print(table)

    rprint(f"Overall mastery: [bold]{state.overall_mastery:.0%}[/bold]")
    if state.next_concepts:
        rprint(f"Next concepts: {', '.join(state.next_concepts)}")
    rprint(f"Estimated time to mastery: {state.estimated_time_to_mastery} min")
    if state.cyclic_concepts:
        rprint(f"[yellow]⚠[/yellow] Prerequisite cycle: {', '.join(state.cyclic_concepts)}")


@app.command("difficulty")
def difficulty(
    fixture: Path = typer.Argument(..., exists=True, dir_okay=False, help="Data source fixture"),
    user: str = typer.Option(..., "--user", "-u", help="Learner id"),
    exercise_type: str = typer.Option("general", "--exercise-type", "-e", help="Exercise type"),
    as_json: bool = typer.Option(False, "--json", help="Print the raw recommendation as JSON"),
) -> None:
    """Recommend a difficulty for the learner's next exercise."""
    engine = LearningAnalyticsEngine(data_source=load_fixture(fixture))
    recommendation = engine.calculate_optimal_difficulty(user, exercise_type)

    if as_json:
        _print_json(recommendation.to_dict())
        return

    table = Table(title=f"Difficulty: {user} / {exercise_type}", show_header=True)
    table.add_column("Component", style="cyan")
    table.add_column("Value", justify="right", style="green")
    table.add_row("base", f"{recommendation.base:.2f}")
    for name, value in recommendation.adjustments.to_dict().items():
        table.add_row(name, f"{value:+.2f}")
    table.add_row("[bold]difficulty[/bold]", f"[bold]{recommendation.difficulty:.2f}[/bold]")
    console.print(table)

    rprint(f"Zone: {recommendation.zpd.zone.value}  Flow: {recommendation.flow.band.value}")
    rprint(f"Strategies: {', '.join(recommendation.recommendations)}")


@app.command("version")
def show_version() -> None:
    """Show version information."""
    rprint(f"[bold]learning-core[/bold] v{__version__}")


def main() -> None:
    """Entry point for the CLI."""
    app()


if __name__ == "__main__":
    main()
