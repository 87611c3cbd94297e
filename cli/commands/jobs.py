"""Jobs Commands - inspect the reflection job queue"""

import typer
from rich.console import Console
from rich.panel import Panel

from ..client.base import JotAPIError
from ..client.endpoints import JotClient
from ..utils.config_manager import config
from ..utils.formatting import (
    create_job_panel,
    create_jobs_table,
    create_stats_panel,
    print_error,
)

console = Console()
app = typer.Typer(name="jobs", help="Reflection job inspection commands")

VALID_STATUSES = ("pending", "processing", "completed", "failed")


@app.command("list")
def list_jobs(
    status: list[str] | None = typer.Option(
        None, "--status", "-s", help="Filter by status (repeatable)"
    ),
    repo_id: str | None = typer.Option(None, "--repo", help="Filter by repository id"),
    limit: int | None = typer.Option(None, "--limit", "-l", help="Number of jobs to show"),
    offset: int = typer.Option(0, "--offset", "-o", help="Skip first N jobs"),
):
    """📋 List reflection jobs, newest first"""
    invalid = [s for s in status or [] if s not in VALID_STATUSES]
    if invalid:
        print_error(f"Unknown status: {', '.join(invalid)}")
        raise typer.Exit(1)

    limit = limit or int(config.get("display.jobs_per_page", 20))

    try:
        with JotClient() as client:
            data = client.list_jobs(status=status, repo_id=repo_id, limit=limit, offset=offset)
    except JotAPIError as e:
        print_error(f"Failed to list jobs: {e}")
        raise typer.Exit(1) from None

    jobs = data.get("jobs", [])
    total = data.get("total", len(jobs))

    if not jobs:
        console.print(
            Panel("📭 [yellow]No jobs found[/yellow]", title="Empty Results", border_style="yellow")
        )
        return

    console.print(create_jobs_table(jobs, total))
    if offset + limit < total:
        console.print(f"💡 Use [cyan]--offset {offset + limit}[/cyan] to see more")


@app.command("show")
def show_job(job_id: str = typer.Argument(..., help="Job ID")):
    """🔍 Show one job"""
    try:
        with JotClient() as client:
            job = client.get_job(job_id)
    except JotAPIError as e:
        print_error(f"Failed to fetch job: {e}")
        raise typer.Exit(1) from None

    console.print(create_job_panel(job))


@app.command("stats")
def stats():
    """📊 Queue depth, status counts and stale jobs"""
    try:
        with JotClient() as client:
            data = client.job_stats()
    except JotAPIError as e:
        print_error(f"Failed to fetch stats: {e}")
        raise typer.Exit(1) from None

    console.print(create_stats_panel(data))
