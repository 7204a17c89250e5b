"""
Safezone CLI

Command-line interface for the Safezone attendance predictor.
"""

import logging
from datetime import date

import click
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table
from rich.panel import Panel
from rich.prompt import Prompt, Confirm, FloatPrompt

from .. import __version__
from ..core.config import load_config, save_config, CONFIG_FILE, DEV_URL, PROD_URL
from ..core.exceptions import SafezoneError
from ..core.predictor import (
    AttendancePredictor, Status, STATUS_LABELS, classes_needed_label, format_number, to_fixed,
)

console = Console()
logger = logging.getLogger(__name__)

STATUS_COLORS = {Status.SAFE: 'green', Status.AT_RISK: 'yellow', Status.SHORTAGE: 'red'}


def _status_text(status: str) -> str:
    return f"[{STATUS_COLORS.get(status, 'white')}]{STATUS_LABELS.get(status, status)}[/]"


def _pct(value: float) -> str:
    return f"{to_fixed(value)}%"


def _fail(message: str):
    console.print(f"[red]{message}[/red]")
    raise click.exceptions.Exit(1)


def _require_timetable(config):
    """Load the cached timetable or stop with a hint."""
    from ..core.client import load_cached_timetable

    try:
        timetable = load_cached_timetable(config.defaults)
    except SafezoneError as e:
        _fail(f"Error: {e}")

    if timetable is None:
        console.print("[yellow]No timetable data. Run 'safezone fetch' first.[/yellow]")
        raise click.exceptions.Exit(1)

    return timetable


@click.group()
@click.version_option(version=__version__, prog_name="Safezone")
@click.option('-v', '--verbose', is_flag=True, help='Show debug logging')
def cli(verbose):
    """
    Safezone - Attendance Predictor

    Project your end-of-term attendance and plan recoveries.

    Quick start:
      safezone setup     # Configure backend and user
      safezone fetch     # Fetch timetable and records
      safezone predict   # Per-subject projections
      safezone recovery  # Subjects below the minimum
    """
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        handlers=[RichHandler(console=console, show_path=False)],
        force=True,
    )


@cli.command()
def setup():
    """
    Interactive setup wizard.

    Stores the backend URL, your user id and default thresholds.
    """
    console.print(Panel.fit(
        "[bold blue]Safezone Setup Wizard[/bold blue]\n"
        "Let's connect Safezone to your attendance backend.",
        border_style="blue"
    ))

    config = load_config()

    # Step 1: Backend
    console.print("\n[bold]Step 1: Backend[/bold]")
    if Confirm.ask("Use a local development backend?", default=config.backend.base_url == DEV_URL):
        config.backend.base_url = DEV_URL
    else:
        config.backend.base_url = Prompt.ask(
            "Backend API URL",
            default=config.backend.base_url or PROD_URL
        )

    # Step 2: User
    console.print("\n[bold]Step 2: Account[/bold]")
    config.user_id = Prompt.ask("User id", default=config.user_id)
    config.student_name = Prompt.ask("Your name (optional)", default=config.student_name)

    # Step 3: Defaults
    console.print("\n[bold]Step 3: Defaults[/bold]")
    while True:
        min_attendance = FloatPrompt.ask(
            "Default minimum attendance %",
            default=config.defaults.min_attendance
        )
        if 0 <= min_attendance <= 100:
            break
        console.print("[red]Enter a percentage between 0 and 100[/red]")
    config.defaults.min_attendance = min_attendance

    save_config(config)
    console.print(f"\n[green]Configuration saved to {CONFIG_FILE}[/green]")

    console.print(Panel(
        f"[bold]Setup Complete![/bold]\n\n"
        f"Backend: {config.backend.base_url}\n"
        f"Minimum attendance: {config.defaults.min_attendance}%\n\n"
        f"Next steps:\n"
        f"  [cyan]safezone fetch[/cyan]    - Fetch your timetable\n"
        f"  [cyan]safezone predict[/cyan]  - View projections\n"
        f"  [cyan]safezone serve[/cyan]    - Start web dashboard",
        border_style="green"
    ))


@cli.command()
def fetch():
    """Fetch timetable and attendance records from the backend."""
    config = load_config()

    if not config.is_configured():
        _fail("Safezone is not configured. Run 'safezone setup' first.")

    logger.debug("Fetching for user %s from %s", config.user_id, config.backend.base_url)
    with console.status("[bold green]Fetching attendance..."):
        try:
            from ..core.client import fetch_attendance
            timetable = fetch_attendance(config)
        except SafezoneError as e:
            _fail(f"Error: {e}")

    if timetable:
        console.print(f"[green]Fetched {len(timetable.subjects)} subjects![/green]")
    else:
        console.print("[yellow]No timetable found. Upload one in the web app first.[/yellow]")


@cli.command()
@click.option('-a', '--absences', type=click.IntRange(min=0), default=None,
              help='Future classes to assume missed')
@click.option('-m', '--min-attendance', type=click.FloatRange(0, 100), default=None,
              help='Override the minimum attendance %')
@click.option('-w', '--weeks', type=int, default=None, help='Override the remaining weeks')
@click.option('--overall', is_flag=True, help='Only show the overall projection')
def predict(absences, min_attendance, weeks, overall):
    """Project end-of-term attendance."""
    config = load_config()
    timetable = _require_timetable(config)

    if absences is None:
        absences = config.defaults.simulated_absences

    predictor = AttendancePredictor(timetable, remaining_weeks=weeks, min_attendance=min_attendance)
    summary = predictor.overall(absences)

    console.print(Panel(
        f"[bold]Overall[/bold]  {_status_text(summary.status)}\n\n"
        f"Current:   {_pct(summary.current_percentage)} "
        f"({summary.total_attended}/{summary.total_held} classes)\n"
        f"Projected: {_pct(summary.projected_percentage)} "
        f"({summary.total_remaining} classes left)\n"
        + (f"After {absences} absences: {_pct(summary.after_absences_percentage)}\n" if absences else "")
        + f"Goal: {format_number(predictor.min_attendance)}% over {predictor.remaining_weeks} remaining weeks",
        border_style=STATUS_COLORS.get(summary.status, 'blue')
    ))

    if overall:
        return

    table = Table(title="\nSubject Predictions", show_header=True)
    table.add_column("Subject")
    table.add_column("Attended", justify="right")
    table.add_column("Current", justify="right")
    table.add_column("Projected", justify="right")
    if absences:
        table.add_column(f"-{absences}", justify="right")
    table.add_column("Status")
    table.add_column("Advice")

    for prediction in predictor.predict_all(absences):
        name = prediction.subject_name
        row = [
            name[:30] + "..." if len(name) > 30 else name,
            f"{prediction.current_attended}/{prediction.current_total}",
            _pct(prediction.current_percentage),
            _pct(prediction.projected_percentage),
        ]
        if absences:
            row.append(_pct(prediction.after_absences.percentage))
        row += [_status_text(prediction.status), prediction.recovery_message]
        table.add_row(*row)

    console.print(table)


@cli.command()
@click.option('--all', 'show_all', is_flag=True, help='Include subjects already on track')
def recovery(show_all):
    """Show how to recover subjects below the minimum."""
    from ..core.recovery import RecoveryCalculator

    timetable = _require_timetable(load_config())
    calc = RecoveryCalculator(timetable.min_attendance, timetable.remaining_weeks)
    plans = calc.analyze_all(timetable.subjects, only_at_risk=not show_all)

    if not plans:
        console.print(Panel(
            "[bold green]All subjects are on track![/bold green]\n"
            f"You're meeting the {format_number(timetable.min_attendance)}% goal across all subjects.",
            border_style="green"
        ))
        return

    table = Table(title="\nRecovery Calculator", show_header=True)
    table.add_column("Subject")
    table.add_column("Current", justify="right")
    table.add_column("Target", justify="right")
    table.add_column("Plan")
    table.add_column("After", justify="right")

    for plan in plans:
        if plan.can_recover:
            action = (f"[yellow]{classes_needed_label(plan.classes_needed)}[/yellow] "
                      f"of {plan.remaining_classes}")
        else:
            action = "[red]Recovery not possible[/red]"

        table.add_row(
            plan.subject_name,
            f"[red]{_pct(plan.current_percentage)}[/red]",
            f"{format_number(timetable.min_attendance)}%",
            action,
            _pct(plan.after_recovery_percentage),
        )

    console.print(table)
    console.print("\n[dim]Missing even one class during recovery will require additional classes.[/dim]")


@cli.command()
@click.option('-d', '--days', type=click.IntRange(min=1), default=14, help='Days to show')
def trend(days):
    """Show day-by-day attendance from cached records."""
    from ..core.accounting import cumulative_trend, daily_trend
    from ..core.client import load_cached_records

    try:
        records = load_cached_records()
    except SafezoneError as e:
        _fail(f"Error: {e}")

    if not records:
        console.print("[yellow]No attendance records. Run 'safezone fetch' first.[/yellow]")
        return

    table = Table(title=f"\nLast {days} days", show_header=True)
    table.add_column("Date")
    table.add_column("Present", justify="right")
    table.add_column("Absent", justify="right")
    table.add_column("Day %", justify="right")
    table.add_column("Running %", justify="right")

    for day in cumulative_trend(daily_trend(records, date.today(), days)):
        table.add_row(
            day.label,
            str(day.present),
            str(day.absent),
            "-" if day.percentage is None else f"{day.percentage}%",
            f"{day.cumulative}%",
        )

    console.print(table)


@cli.command()
@click.option('--port', default=5000, help='Port to run server on')
@click.option('--host', default='127.0.0.1', help='Host to bind to')
def serve(port, host):
    """Start web dashboard server."""
    config = load_config()

    console.print(Panel(
        f"[bold blue]Safezone Web Dashboard[/bold blue]\n\n"
        f"Starting server at http://{host}:{port}",
        border_style="blue"
    ))

    try:
        from ..web.server import create_app
    except ImportError:
        _fail("Web module not available. Install with: pip install safezone[web]")

    app = create_app(config)
    app.run(host=host, port=port, debug=True)


@cli.command()
def config():
    """Show current configuration."""
    cfg = load_config()

    console.print(Panel(
        f"[bold]Safezone Configuration[/bold]\n"
        f"Config file: {CONFIG_FILE}",
        border_style="blue"
    ))

    console.print(f"\n[bold]Backend:[/bold] {cfg.backend.base_url}")
    console.print(f"[bold]User id:[/bold] {cfg.user_id or '-'}")
    console.print(f"[bold]Default minimum:[/bold] {cfg.defaults.min_attendance}%")
    console.print(f"[bold]Default term length:[/bold] {cfg.defaults.total_weeks} weeks")

    if cfg.student_name:
        console.print(f"\n[bold]Student:[/bold] {cfg.student_name}")


if __name__ == '__main__':
    cli()
