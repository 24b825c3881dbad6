"""CLI commands for inspecting generation jobs."""

from __future__ import annotations

import typer
from rich.console import Console
from rich.table import Table

app = typer.Typer(
    name="jobs",
    help="Inspect queued generation jobs.",
    no_args_is_help=True,
)
console = Console()

_STATUS_STYLE = {
    "pending": "yellow",
    "generating": "cyan",
    "completed": "green",
    "failed": "red",
}


def _get_queue():
    """Create a WorkQueue on the configured database."""
    from autopersona.config.settings import get_settings
    from autopersona.db.core import engine_from_settings, init_db, make_session_factory
    from autopersona.queue.store import WorkQueue

    engine = engine_from_settings(get_settings())
    init_db(engine)
    return WorkQueue(make_session_factory(engine))


@app.command("list")
def list_jobs(
    status: str = typer.Option(None, "--status", "-s", help="pending|generating|completed|failed"),
    schedule_id: str = typer.Option(None, "--schedule", help="Only jobs from this schedule"),
    owner: str = typer.Option(None, "--owner", "-o", help="Only this owner's jobs"),
    limit: int = typer.Option(20, "--limit", "-n", min=1, help="Max jobs to show"),
):
    """List the most recent jobs."""
    from autopersona.queue.models import JobStatus

    try:
        status_filter = JobStatus(status) if status else None
    except ValueError:
        console.print(f"[red]Unknown status '{status}'.[/red]")
        raise typer.Exit(1)

    queue = _get_queue()
    jobs = queue.recent(owner_id=owner, status=status_filter, schedule_id=schedule_id, limit=limit)

    if not jobs:
        console.print("[dim]No jobs found.[/dim]")
        raise typer.Exit()

    table = Table(title="Jobs", show_lines=False)
    table.add_column("ID", style="dim", max_width=12)
    table.add_column("Kind")
    table.add_column("Status")
    table.add_column("Progress", justify="right")
    table.add_column("Schedule", style="dim", max_width=12)
    table.add_column("Created")
    table.add_column("Error", max_width=40)

    for job in jobs:
        style = _STATUS_STYLE.get(job.status.value, "white")
        table.add_row(
            job.id,
            job.kind.value,
            f"[{style}]{job.status.value}[/{style}]",
            f"{job.progress_count}/{job.total_images}",
            job.schedule_id or "-",
            f"{job.created_at:%Y-%m-%d %H:%M}",
            (job.error_message or "")[:40],
        )

    console.print(table)
    counts = queue.counts()
    summary = ", ".join(f"{n} {name}" for name, n in counts.items())
    console.print(f"\n  [dim]Queue: {summary}.[/dim]\n")


@app.command("show")
def show_job(
    job_id: str = typer.Argument(help="Job ID"),
):
    """Show one job in detail."""
    queue = _get_queue()
    job = queue.get(job_id)
    if job is None:
        console.print(f"[red]Job '{job_id}' not found.[/red]")
        raise typer.Exit(1)

    style = _STATUS_STYLE.get(job.status.value, "white")
    console.print(f"\n  [bold]Job {job.id}[/bold] ({job.kind.value})")
    console.print(f"  Status:   [{style}]{job.status.value}[/{style}]")
    console.print(f"  Owner:    {job.owner_id}")
    console.print(f"  Schedule: {job.schedule_id or '-'}")
    console.print(f"  Progress: {job.progress_count}/{job.total_images} images")
    console.print(f"  Result:   {job.result_ref or '-'}")
    console.print(f"  Created:  {job.created_at:%Y-%m-%d %H:%M:%S}")
    if job.started_at:
        console.print(f"  Started:  {job.started_at:%Y-%m-%d %H:%M:%S}")
    if job.completed_at:
        console.print(f"  Finished: {job.completed_at:%Y-%m-%d %H:%M:%S}")
    if job.error_message:
        console.print(f"  [red]Error: {job.error_message}[/red]")
    for error in job.step_errors:
        console.print(f"  [yellow]- {error}[/yellow]")
    console.print("  [dim]Payload:[/dim]")
    for key, value in job.payload.items():
        if value not in (None, [], {}):
            console.print(f"    [dim]{key}: {value}[/dim]")
    console.print()
