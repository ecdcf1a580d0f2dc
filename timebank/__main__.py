"""Command-line front end: python -m timebank.

Every invocation restores the active timers from the TimeBank database,
applies one command, and writes them back, so timers keep running
between invocations exactly as they would across app restarts.

    python -m timebank start T-12 --priority high --rate 80 --title "Invoices"
    python -m timebank pause T-12
    python -m timebank status
    python -m timebank stop T-12
    python -m timebank report
"""

from __future__ import annotations

import json
import logging
import sys
from dataclasses import dataclass
from decimal import Decimal

import click
from PyQt6.QtCore import QCoreApplication

from .analytics import get_aggregates
from .database.db import init_db
from .energy.ledger import EnergyLedger
from .energy.policy import task_start_cost
from .errors import ConflictError, NotFoundError
from .recording import SessionHandoff, SessionRecorder
from .settings import Settings, load_settings
from .tasks import PRIORITIES, TaskSnapshot
from .timer.registry import MultiTimerRegistry
from .timer.session import SessionKind
from .timer.store import SqlStore


@dataclass
class Runtime:
    settings: Settings
    registry: MultiTimerRegistry
    ledger: EnergyLedger
    recorder: SessionRecorder
    handoff: SessionHandoff


def build_runtime(settings: Settings | None = None) -> Runtime:
    """Wire up one registry/ledger/recorder set and restore state."""
    QCoreApplication.instance() or QCoreApplication(sys.argv[:1])
    init_db()
    settings = settings or load_settings()

    registry = MultiTimerRegistry(
        SqlStore(),
        durations=settings.durations,
        staleness_window=settings.staleness_window,
    )
    ledger = EnergyLedger.load(
        initial_energy=settings.initial_energy,
        max_energy=settings.max_energy,
        config=settings.energy_config(),
    )
    recorder = SessionRecorder()
    # No event loop here, so hand off synchronously.
    handoff = SessionHandoff(registry, recorder, ledger, deferred=False)
    registry.persistence_warning.connect(
        lambda msg: click.echo(f"warning: timers not saved ({msg})", err=True)
    )
    registry.restore()
    return Runtime(settings, registry, ledger, recorder, handoff)


def _format_seconds(seconds: int) -> str:
    """3725 → '1:02:05'."""
    hours, rest = divmod(seconds, 3600)
    minutes, secs = divmod(rest, 60)
    return f"{hours}:{minutes:02d}:{secs:02d}"


@click.group(context_settings={"help_option_names": ["-h", "--help"]})
@click.option("-v", "--verbose", is_flag=True, help="Log debug output.")
@click.pass_context
def cli(ctx: click.Context, verbose: bool) -> None:
    """Track work timers, energy, and earnings."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )
    ctx.obj = build_runtime()


@cli.command()
@click.argument("task_id", required=False)
@click.option("--kind", type=click.Choice([k.value for k in SessionKind]), default="focus")
@click.option("--priority", type=click.Choice(PRIORITIES), default="medium")
@click.option("--rate", type=click.FLOAT, default=None, help="Hourly rate in USD.")
@click.option("--title", default="")
@click.option("--due", type=click.DateTime(), default=None, help="Due date (UTC).")
@click.pass_obj
def start(rt: Runtime, task_id, kind, priority, rate, title, due) -> None:
    """Start timing TASK_ID (omit it for a plain break/focus session)."""
    snapshot = None
    if task_id is not None:
        snapshot = TaskSnapshot.from_lookup({
            "id": task_id,
            "priority": priority,
            "title": title,
            "due_date": due.isoformat() if due else None,
            "category": {"hourly_rate": rate},
        })
    try:
        session = rt.registry.start_timer(task_id, snapshot, kind)
    except ConflictError as exc:
        raise click.ClickException(str(exc)) from exc
    if snapshot is not None and session.kind == SessionKind.FOCUS:
        rt.ledger.record_task_start(snapshot)
        click.echo(f"Started {task_id} (-{task_start_cost(snapshot, rt.ledger.config)} energy)")
    else:
        click.echo(f"Started {session.kind.value} session")


@cli.command()
@click.argument("key")
@click.pass_obj
def pause(rt: Runtime, key: str) -> None:
    """Pause the timer for KEY."""
    try:
        session = rt.registry.pause_timer(key)
    except NotFoundError as exc:
        raise click.ClickException(str(exc)) from exc
    click.echo(f"{key}: {session.state.value} at {_format_seconds(session.elapsed_seconds)}")


@cli.command()
@click.argument("key")
@click.pass_obj
def resume(rt: Runtime, key: str) -> None:
    """Resume the timer for KEY."""
    try:
        session = rt.registry.resume_timer(key)
    except NotFoundError as exc:
        raise click.ClickException(str(exc)) from exc
    click.echo(f"{key}: {session.state.value}")


@cli.command()
@click.argument("key")
@click.option("--minutes", type=click.INT, default=None, help="Override the counted minutes.")
@click.pass_obj
def stop(rt: Runtime, key: str, minutes: int | None) -> None:
    """Stop KEY, record the session, and book its energy."""
    try:
        result = rt.registry.stop_timer(key, minutes)
    except NotFoundError as exc:
        raise click.ClickException(str(exc)) from exc
    click.echo(
        f"{key}: {_format_seconds(result.session.elapsed_seconds)} "
        f"({result.actual_minutes} min)"
    )
    for achievement in result.achievements:
        click.echo(f"  * {achievement}")


@cli.command()
@click.pass_obj
def status(rt: Runtime) -> None:
    """List active timers with their live elapsed time."""
    timers = rt.registry.timers()
    if not timers:
        click.echo("No active timers.")
        return
    live = rt.registry.live_snapshot()
    for key, session in timers.items():
        line = f"{key:<24} {session.state.value:<8} {_format_seconds(live[key])}"
        earnings = rt.registry.live_earnings(key)
        if earnings:
            line += f"  ${earnings}"
        click.echo(line)
    click.echo(f"Total live earnings: ${rt.registry.total_live_earnings()}")


@cli.command()
@click.pass_obj
def energy(rt: Runtime) -> None:
    """Show the mental bank balance and any warning."""
    state = rt.ledger.state()
    limits = rt.ledger.limits()
    click.echo(f"Energy: {state.display_energy}/{state.max_energy} (raw {state.current_energy})")
    click.echo(f"Spent today: {state.daily_expenditure}")
    click.echo(f"Streak: {state.streak_days} day(s), tasks completed: {state.total_tasks_completed}")
    click.echo(f"[{limits.warning_level}] {limits.recommendation}")


@cli.command()
@click.argument("hours", type=click.FLOAT)
@click.option("--rested", type=click.FLOAT, default=0.0, help="Hours of daytime rest.")
@click.pass_obj
def sleep(rt: Runtime, hours: float, rested: float) -> None:
    """Book overnight recovery."""
    tx = rt.ledger.record_sleep(hours, rested)
    click.echo(f"+{tx.energy_delta} energy")


@cli.command()
@click.option("--json", "as_json", is_flag=True, help="Print the flat dashboard dict.")
@click.pass_obj
def report(rt: Runtime, as_json: bool) -> None:
    """Today/week/month/total earnings and hours."""
    aggregates = get_aggregates(
        rt.recorder.sessions(),
        target_balance=Decimal(str(rt.settings.target_balance_usd)),
    )
    if as_json:
        click.echo(json.dumps(aggregates.as_dict(), indent=2))
        return
    for name in ("today", "week", "month", "total"):
        totals = getattr(aggregates, name)
        click.echo(
            f"{name:<6} ${totals.earnings:>10}  {totals.hours:>7.2f}h  "
            f"{totals.session_count} session(s)"
        )
    click.echo(f"Average rate: ${aggregates.average_hourly_rate}/hr")


def main() -> None:
    cli()


if __name__ == "__main__":
    main()
