"""Autopersona CLI: the main entry point."""

from __future__ import annotations

import asyncio
import logging

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from autopersona import __version__
from autopersona.cli.job_commands import app as jobs_app
from autopersona.cli.schedule_commands import app as schedules_app

app = typer.Typer(
    name="autopersona",
    help="Scheduled AI character and content generation.",
    no_args_is_help=True,
    rich_markup_mode="rich",
)
app.add_typer(schedules_app, name="schedules")
app.add_typer(jobs_app, name="jobs")
console = Console()


def _setup_logging(level: str) -> None:
    logging.basicConfig(
        level=level.upper(),
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=Console(stderr=True), rich_tracebacks=True)],
        force=True,
    )


def _get_runtime():
    """Build the process runtime from settings (works without a running server)."""
    from autopersona.config.settings import get_settings
    from autopersona.runtime import build_runtime

    return build_runtime(get_settings())


@app.callback(invoke_without_command=True)
def main_callback(
    version: bool = typer.Option(False, "--version", "-V", help="Show version"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Debug logging"),
):
    if version:
        console.print(f"autopersona v{__version__}")
        raise typer.Exit()

    from autopersona.config.settings import get_settings

    _setup_logging("DEBUG" if verbose else get_settings().log_level)


@app.command()
def tick(
    wait: bool = typer.Option(
        True, "--wait/--no-wait", help="Wait for kicked-off jobs before exiting"
    ),
):
    """Run one scheduler tick: enqueue jobs for every due schedule."""
    runtime = _get_runtime()

    async def _run():
        report = await runtime.run_scheduler_tick()
        if wait:
            await runtime.driver.wait_for_kickoffs()
        return report

    try:
        report = asyncio.run(_run())
    finally:
        runtime.close()

    if report.error:
        console.print(f"[red]Tick failed: {report.error}[/red]")
        raise typer.Exit(1)
    if not report.results:
        console.print("[dim]Nothing was due.[/dim]")
        raise typer.Exit()

    table = Table(title="Tick", show_lines=False)
    table.add_column("Schedule", style="dim", max_width=12)
    table.add_column("Kind")
    table.add_column("Result")
    table.add_column("Jobs", justify="right")
    table.add_column("Error", max_width=50)
    for result in report.results:
        if result.skipped:
            status = "[dim]skipped[/dim]"
        elif result.ok:
            status = "[green]queued[/green]"
        else:
            status = "[red]failed[/red]"
        table.add_row(
            result.schedule_id,
            result.kind.value,
            status,
            str(result.jobs_queued),
            result.error or "",
        )
    console.print(table)
    console.print(
        f"\n  [dim]{report.schedules_processed} processed, {report.succeeded} succeeded, "
        f"{report.failed} failed, {report.jobs_queued} jobs queued.[/dim]\n"
    )


@app.command()
def drain(
    limit: int = typer.Option(None, "--limit", "-n", min=1, help="Max jobs to claim"),
):
    """Claim pending jobs and run them through the pipeline."""
    runtime = _get_runtime()
    try:
        report = asyncio.run(runtime.drain_queue(limit))
    finally:
        runtime.close()

    if report.error:
        console.print(f"[red]Drain failed: {report.error}[/red]")
        raise typer.Exit(1)
    if report.expired:
        console.print(f"  [yellow]Expired {report.expired} stuck jobs.[/yellow]")
    if not report.results:
        console.print("[dim]No pending jobs.[/dim]")
        raise typer.Exit()

    table = Table(title="Drain", show_lines=False)
    table.add_column("Job", style="dim", max_width=12)
    table.add_column("Status")
    table.add_column("Images", justify="right")
    table.add_column("Result", style="dim")
    table.add_column("Error", max_width=50)
    for result in report.results:
        color = "green" if result.status.value == "completed" else "red"
        table.add_row(
            result.job_id,
            f"[{color}]{result.status.value}[/{color}]",
            str(result.images_generated),
            result.result_ref or "",
            result.error_message or "",
        )
    console.print(table)
    console.print(
        f"\n  [dim]{report.processed} processed, {report.succeeded} succeeded, "
        f"{report.failed} failed.[/dim]\n"
    )


@app.command()
def serve(
    host: str = typer.Option(None, "--host", help="Bind address"),
    port: int = typer.Option(None, "--port", "-p", help="Bind port"),
    in_process: bool = typer.Option(
        None, "--in-process/--external-cron", help="Drive tick and drain from the server itself"
    ),
):
    """Run the HTTP server exposing /health and the /cron triggers."""
    import uvicorn

    from autopersona.config.settings import get_settings
    from autopersona.server.app import create_app

    settings = get_settings()
    if in_process is not None:
        settings.queue.run_in_process = in_process

    uvicorn.run(
        create_app(settings),
        host=host or settings.server.host,
        port=port or settings.server.port,
        access_log=False,
    )


@app.command("init-db")
def init_db_command():
    """Create the database tables."""
    from autopersona.config.settings import get_settings
    from autopersona.db.core import engine_from_settings, init_db

    engine = engine_from_settings(get_settings())
    try:
        init_db(engine)
    finally:
        engine.dispose()
    console.print(
        f"  [green]\u2713[/green] Database ready at "
        f"[bold]{engine.url.render_as_string(hide_password=True)}[/bold]"
    )


if __name__ == "__main__":
    app()
