"""
Typer CLI for the bandwise scheduler.

Commands:
    bandwise plan SNAPSHOT          - Show today's daily mix
    bandwise recommend SNAPSHOT     - Show ranked recommendations
    bandwise progress SNAPSHOT      - Show rotation progress and forecast
    bandwise complete SNAPSHOT SESSION [-o OUT] - Apply a finished session

SNAPSHOT and SESSION are JSON documents matching LearnerSnapshot and
SessionResult. The scheduler itself never touches files; decoding and
encoding happen here.

Usage:
    bandwise plan learner.json --now 2025-03-01T08:00
    bandwise complete learner.json session.json -o learner.next.json
"""
from __future__ import annotations

import sys
from dataclasses import fields, is_dataclass, replace
from datetime import datetime
from pathlib import Path
from typing import Any, Optional, TypeVar

import typer
from loguru import logger
from pydantic import TypeAdapter, ValidationError
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from bandwise.adaptive.band_progression import describe
from bandwise.config import get_settings
from bandwise.core.exceptions import SnapshotError
from bandwise.core.models import LearnerSnapshot, Priority
from bandwise.core.timeutils import naive_local
from bandwise.engine import LearningEngine, SessionResult

app = typer.Typer(
    help="bandwise: adaptive study planning for banded clinical training",
    no_args_is_help=True,
)
console = Console()

T = TypeVar("T")

PRIORITY_STYLES = {
    Priority.CRITICAL: "bold red",
    Priority.HIGH: "yellow",
    Priority.MEDIUM: "cyan",
    Priority.LOW: "dim",
}


# =============================================================================
# Helpers
# =============================================================================


def load_json(path: Path, model: type[T]) -> T:
    """Decode a JSON file into ``model``."""
    try:
        raw = path.read_text(encoding="utf-8")
    except OSError as e:
        raise SnapshotError(f"Cannot read {path}: {e}") from e

    try:
        decoded = TypeAdapter(model).validate_json(raw)
    except ValidationError as e:
        raise SnapshotError(f"Invalid {model.__name__} in {path}:\n{e}") from e
    return strip_timezones(decoded)


def strip_timezones(value: Any) -> Any:
    """
    Convert every aware datetime inside decoded JSON to naive local time.

    The scheduler compares timestamps against a naive ``now``, so offsets
    such as ``Z`` are resolved once here.
    """
    if isinstance(value, datetime):
        return naive_local(value)
    if is_dataclass(value) and not isinstance(value, type):
        return replace(
            value,
            **{f.name: strip_timezones(getattr(value, f.name)) for f in fields(value) if f.init},
        )
    if isinstance(value, list):
        return [strip_timezones(v) for v in value]
    if isinstance(value, dict):
        return {k: strip_timezones(v) for k, v in value.items()}
    return value


def parse_now(value: Optional[str]) -> datetime:
    if not value:
        return datetime.now()
    try:
        return naive_local(datetime.fromisoformat(value))
    except ValueError:
        console.print(f"[red]Invalid --now value:[/red] {escape(value)}")
        raise typer.Exit(code=1)


def open_snapshot(path: Path) -> LearnerSnapshot:
    try:
        return load_json(path, LearnerSnapshot)
    except SnapshotError as e:
        console.print(f"[red]{escape(str(e))}[/red]")
        raise typer.Exit(code=1)


def build_engine(seed: Optional[int] = None) -> LearningEngine:
    settings = get_settings()
    if seed is not None:
        settings = settings.model_copy(update={"random_seed": seed})
    return LearningEngine(settings)


# =============================================================================
# Commands
# =============================================================================


@app.command()
def plan(
    snapshot_path: Path = typer.Argument(..., help="Learner snapshot JSON"),
    now: Optional[str] = typer.Option(None, "--now", help="ISO timestamp to plan for"),
    seed: Optional[int] = typer.Option(None, "--seed", help="Seed interleaving choice"),
):
    """Show today's daily mix."""
    snapshot = open_snapshot(snapshot_path)
    mix = build_engine(seed).plan_day(snapshot, parse_now(now))
    definition = describe(mix.target_band)

    title = f"Daily Mix - Band {mix.target_band.value} ({definition.label})"
    if mix.is_recovery_day:
        title += " (recovery day)"

    table = Table(title=title, show_header=True)
    table.add_column("Section", style="cyan")
    table.add_column("Domain")
    table.add_column("Items", justify="right")
    table.add_column("Minutes", justify="right")

    for section in mix.sections:
        table.add_row(
            section.kind.value,
            section.domain or "-",
            str(len(section.items)),
            f"{section.estimated_minutes:.1f}",
        )
    table.add_row("total", "", str(mix.total_items), f"{mix.total_estimated_time:.1f}", style="bold")
    console.print(table)

    if mix.weak_domains:
        console.print(f"Weak domains: {', '.join(mix.weak_domains)}")
    if mix.leech_items:
        console.print(f"[yellow]{len(mix.leech_items)} leech item(s) need remedial work[/yellow]")


@app.command()
def recommend(
    snapshot_path: Path = typer.Argument(..., help="Learner snapshot JSON"),
    now: Optional[str] = typer.Option(None, "--now", help="ISO timestamp"),
    minutes: Optional[int] = typer.Option(None, "--minutes", "-m", help="Time available"),
):
    """Show ranked recommendations."""
    snapshot = open_snapshot(snapshot_path)
    recommendations = build_engine().recommend(snapshot, parse_now(now), available_minutes=minutes)

    if not recommendations:
        console.print("[dim]Nothing to recommend right now.[/dim]")
        return

    table = Table(title="Recommendations", show_header=True)
    table.add_column("#", justify="right")
    table.add_column("Priority")
    table.add_column("Title")
    table.add_column("Min", justify="right")
    table.add_column("XP", justify="right")

    for index, rec in enumerate(recommendations, start=1):
        style = PRIORITY_STYLES[rec.priority]
        title = rec.title
        if rec.daily_target is not None:
            title += f" ({rec.daily_target}/day)"
        table.add_row(
            str(index),
            f"[{style}]{rec.priority.value}[/{style}]",
            title,
            str(rec.estimated_minutes),
            f"+{rec.reward_xp}",
        )
    console.print(table)


@app.command()
def progress(
    snapshot_path: Path = typer.Argument(..., help="Learner snapshot JSON"),
    now: Optional[str] = typer.Option(None, "--now", help="ISO timestamp"),
):
    """Show rotation progress and completion forecast."""
    snapshot = open_snapshot(snapshot_path)
    report = build_engine().rotation_report(snapshot, parse_now(now))
    if report is None:
        console.print("[dim]No rotation in snapshot.[/dim]")
        return

    prog, forecast = report
    table = Table(title=f"Rotation {prog.rotation_id}", show_header=False)
    table.add_column("Metric", style="cyan")
    table.add_column("Value")
    table.add_row("Goals", f"{len(prog.goals_completed)}/{prog.total_goals}")
    table.add_row("Completion", f"{prog.completion_percentage:.0f}% (expected {prog.expected_completion:.0f}%)")
    table.add_row("Items answered", f"{prog.items_answered} ({prog.accuracy:.0%} correct)")
    table.add_row("Days remaining", str(prog.days_remaining))
    table.add_row("On track", "[green]yes[/green]" if prog.on_track else "[red]no[/red]")
    table.add_row("Projected", f"{forecast.projected_completion:.0f}%")
    table.add_row("Daily target", f"{forecast.daily_target} items")
    console.print(table)
    console.print(prog.recommendation_text)


@app.command()
def complete(
    snapshot_path: Path = typer.Argument(..., help="Learner snapshot JSON"),
    session_path: Path = typer.Argument(..., help="Session result JSON"),
    output: Optional[Path] = typer.Option(None, "--output", "-o", help="Write updated snapshot here"),
    now: Optional[str] = typer.Option(None, "--now", help="ISO timestamp"),
):
    """Apply a finished session and print the outcome."""
    snapshot = open_snapshot(snapshot_path)
    try:
        session = load_json(session_path, SessionResult)
    except SnapshotError as e:
        console.print(f"[red]{escape(str(e))}[/red]")
        raise typer.Exit(code=1)

    at = parse_now(now)
    outcome = build_engine().complete_session(snapshot, session, at)
    band = outcome.band

    console.print(f"XP earned: [green]+{outcome.xp_earned}[/green] (level {outcome.profile.gamification.level})")
    console.print(f"Streak: {outcome.profile.gamification.streak} ({outcome.streak_event.value})")
    if band.transitioned:
        console.print(
            f"Band {band.decision.value}: {band.previous_band.value} -> {band.status.current_band.value}"
        )
    else:
        console.print(f"Band {band.status.current_band.value} held: {'; '.join(band.reasons) or 'no change'}")
    if band.is_recovery_day:
        console.print("[yellow]Next session will be a recovery day.[/yellow]")

    if output is not None:
        updated = LearnerSnapshot(
            profile=outcome.profile,
            review_items=outcome.review_items,
            activity_log=[*snapshot.activity_log, *outcome.activity],
            rotation=snapshot.rotation,
            goals=snapshot.goals,
            available_content=snapshot.available_content,
            last_session_at=at,
        )
        output.write_bytes(TypeAdapter(LearnerSnapshot).dump_json(updated, indent=2))
        console.print(f"Wrote {output}")


# =============================================================================
# Entry Point
# =============================================================================


def main() -> None:
    """CLI entry point."""
    logger.remove()
    logger.add(
        sys.stderr,
        level=get_settings().log_level,
        format="<level>{message}</level>",
    )

    app()


if __name__ == "__main__":
    main()
