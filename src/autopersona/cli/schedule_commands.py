"""CLI commands for schedule management."""

from __future__ import annotations

import typer
from rich.console import Console
from rich.table import Table

from autopersona.errors import InvalidFrequencyError

app = typer.Typer(
    name="schedules",
    help="Manage recurring generation schedules.",
    no_args_is_help=True,
)
console = Console()

_UNITS = {"hourly": "hour", "daily": "day", "weekly": "week"}


def _get_store():
    """Create a ScheduleStore on the configured database."""
    from autopersona.config.settings import get_settings
    from autopersona.db.core import engine_from_settings, init_db, make_session_factory
    from autopersona.scheduling.store import ScheduleStore

    engine = engine_from_settings(get_settings())
    init_db(engine)
    return ScheduleStore(make_session_factory(engine))


def _frequency(frequency: str, value: int, slots: list[str] | None, timezone: str):
    from autopersona.scheduling.models import parse_frequency

    try:
        return parse_frequency(
            {"type": frequency, "value": value, "time_slots": slots or [], "timezone": timezone}
        )
    except InvalidFrequencyError as exc:
        console.print(f"[red]Invalid frequency: {exc}[/red]")
        console.print("[dim]Use hourly, daily, weekly or time_slots with --slot HH:MM[/dim]")
        raise typer.Exit(1) from exc


def _describe(schedule) -> str:
    freq = schedule.frequency
    if freq.type.value == "time_slots":
        return f"{', '.join(freq.time_slots) or '09:00'} ({freq.timezone})"
    unit = _UNITS[freq.type.value]
    return f"every {unit}" if freq.value == 1 else f"every {freq.value} {unit}s"


def _save(schedule) -> None:
    store = _get_store()
    store.add(schedule)
    console.print(
        f"  [green]✓[/green] Added {schedule.kind.value} schedule "
        f"[bold]{schedule.name or schedule.id}[/bold] (ID: {schedule.id})"
    )
    console.print(f"  [dim]Frequency: {_describe(schedule)}[/dim]")
    console.print(f"  [dim]Next run: {schedule.next_scheduled_at:%Y-%m-%d %H:%M} UTC[/dim]")


@app.command("list")
def list_schedules(
    owner: str = typer.Option(None, "--owner", "-o", help="Only this owner's schedules"),
):
    """List all schedules."""
    store = _get_store()
    schedules = store.all(owner_id=owner)

    if not schedules:
        console.print("[dim]No schedules configured.[/dim]")
        console.print("[dim]Add one: autopersona schedules add-content OWNER CHARACTER_ID[/dim]")
        raise typer.Exit()

    table = Table(title="Schedules", show_lines=False)
    table.add_column("ID", style="dim", max_width=12)
    table.add_column("Name", style="bold")
    table.add_column("Kind")
    table.add_column("Owner", style="dim")
    table.add_column("Frequency")
    table.add_column("Status")
    table.add_column("Next run")
    table.add_column("Runs", justify="right")
    table.add_column("Images", justify="right")

    for schedule in schedules:
        status = "[green]active[/green]" if schedule.is_active else "[yellow]paused[/yellow]"
        next_run = (
            f"{schedule.next_scheduled_at:%Y-%m-%d %H:%M}" if schedule.next_scheduled_at else "-"
        )
        table.add_row(
            schedule.id,
            schedule.name,
            schedule.kind.value,
            schedule.owner_id,
            _describe(schedule),
            status,
            next_run,
            str(schedule.total_runs_completed),
            str(schedule.total_images_generated),
        )

    console.print(table)
    console.print(f"\n  [dim]{len(schedules)} schedules total.[/dim]\n")


@app.command("add-content")
def add_content(
    owner: str = typer.Argument(help="Owner (user) ID"),
    character_id: str = typer.Argument(help="Character to generate content for"),
    frequency: str = typer.Option("daily", "--frequency", "-f", help="hourly|daily|weekly|time_slots"),
    value: int = typer.Option(1, "--every", help="Interval multiplier"),
    slots: list[str] = typer.Option(None, "--slot", help="HH:MM, repeatable (time_slots only)"),
    timezone: str = typer.Option("UTC", "--tz", "-t", help="Timezone for time slots"),
    name: str = typer.Option("", "--name", "-n", help="Display name"),
    items: int = typer.Option(1, "--items", help="Content items per run"),
    images: int = typer.Option(1, "--images", help="Images per item"),
    content_type: str = typer.Option("lifestyle", "--type", help="Content type"),
    themes: list[str] = typer.Option(None, "--theme", help="Custom theme, repeatable"),
    auto_post: bool = typer.Option(False, "--auto-post", help="Publish generated images"),
    platforms: list[str] = typer.Option(None, "--platform", help="Target platform, repeatable"),
):
    """Add a schedule that generates content for an existing character."""
    from pydantic import ValidationError

    from autopersona.scheduling.models import Schedule, ScheduleKind

    try:
        schedule = Schedule(
            owner_id=owner,
            target_id=character_id,
            kind=ScheduleKind.CONTENT,
            name=name,
            frequency=_frequency(frequency, value, slots, timezone),
            params={
                "items_per_run": items,
                "images_per_item": images,
                "content_type": content_type,
                "custom_themes": themes or [],
                "auto_post": auto_post,
                "target_platforms": platforms or [],
            },
        )
    except ValidationError as exc:
        console.print(f"[red]Invalid schedule: {exc}[/red]")
        raise typer.Exit(1) from exc
    _save(schedule)


@app.command("add-characters")
def add_characters(
    owner: str = typer.Argument(help="Owner (user) ID"),
    frequency: str = typer.Option("daily", "--frequency", "-f", help="hourly|daily|weekly|time_slots"),
    value: int = typer.Option(1, "--every", help="Interval multiplier"),
    slots: list[str] = typer.Option(None, "--slot", help="HH:MM, repeatable (time_slots only)"),
    timezone: str = typer.Option("UTC", "--tz", "-t", help="Timezone for time slots"),
    name: str = typer.Option("", "--name", "-n", help="Display name"),
    count: int = typer.Option(5, "--count", help="Characters per run"),
    images: int = typer.Option(5, "--images", help="Images per character"),
    profile_types: list[str] = typer.Option(None, "--profile-type", help="Profile type, repeatable"),
    male: int = typer.Option(40, "--male", help="Percent male"),
    female: int = typer.Option(50, "--female", help="Percent female"),
    non_binary: int = typer.Option(10, "--non-binary", help="Percent non-binary"),
    public: bool = typer.Option(False, "--public", help="Make generated characters public"),
):
    """Add a schedule that generates brand new characters."""
    from pydantic import ValidationError

    from autopersona.scheduling.models import Schedule, ScheduleKind

    if male + female + non_binary != 100:
        console.print("[red]Gender percentages must add up to 100.[/red]")
        raise typer.Exit(1)

    try:
        schedule = Schedule(
            owner_id=owner,
            kind=ScheduleKind.CHARACTER,
            name=name,
            frequency=_frequency(frequency, value, slots, timezone),
            params={
                "characters_per_run": count,
                "images_per_character": images,
                "profile_types": profile_types or [],
                "gender_distribution": {"male": male, "female": female, "non_binary": non_binary},
                "make_public": public,
            },
        )
    except ValidationError as exc:
        console.print(f"[red]Invalid schedule: {exc}[/red]")
        raise typer.Exit(1) from exc
    _save(schedule)


@app.command("pause")
def pause_schedule(
    schedule_id: str = typer.Argument(help="Schedule ID to pause"),
):
    """Pause a schedule (it stops coming due)."""
    store = _get_store()
    schedule = store.set_active(schedule_id, False)
    if schedule is None:
        console.print(f"[red]Schedule '{schedule_id}' not found.[/red]")
        raise typer.Exit(1)
    console.print(f"  [green]✓[/green] Paused [bold]{schedule.name or schedule_id}[/bold].")


@app.command("resume")
def resume_schedule(
    schedule_id: str = typer.Argument(help="Schedule ID to resume"),
):
    """Resume a paused schedule; its next run is computed from now."""
    store = _get_store()
    schedule = store.set_active(schedule_id, True)
    if schedule is None:
        console.print(f"[red]Schedule '{schedule_id}' not found.[/red]")
        raise typer.Exit(1)
    console.print(f"  [green]✓[/green] Resumed [bold]{schedule.name or schedule_id}[/bold].")
    console.print(f"  [dim]Next run: {schedule.next_scheduled_at:%Y-%m-%d %H:%M} UTC[/dim]")


@app.command("remove")
def remove_schedule(
    schedule_id: str = typer.Argument(help="Schedule ID to remove"),
):
    """Remove a schedule permanently. Its queued jobs are left alone."""
    store = _get_store()
    if store.remove(schedule_id):
        console.print(f"  [green]✓[/green] Removed schedule [bold]{schedule_id}[/bold].")
    else:
        console.print(f"[red]Schedule '{schedule_id}' not found.[/red]")
        raise typer.Exit(1)
