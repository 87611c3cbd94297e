"""Rich Formatting Utilities for CLI Output"""

from typing import Any

from rich import box
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

console = Console()

STATUS_STYLES = {
    "pending": "yellow",
    "processing": "cyan",
    "completed": "green",
    "failed": "red",
}


def print_success(message: str):
    console.print(f"[green]✓ {message}[/green]")


def print_error(message: str):
    console.print(f"[red]✗ {message}[/red]")


def print_warning(message: str):
    console.print(f"[yellow]⚠ {message}[/yellow]")


def print_info(message: str):
    console.print(f"[blue]ℹ {message}[/blue]")


def _status(status: str) -> str:
    style = STATUS_STYLES.get(status, "white")
    return f"[{style}]{status}[/{style}]"


def create_jobs_table(jobs: list[dict[str, Any]], total: int | None = None) -> Table:
    """Create a formatted table for a jobs listing"""
    title = "Reflection Jobs" if total is None else f"Reflection Jobs ({total} total)"
    table = Table(title=title, box=box.ROUNDED)

    table.add_column("ID", justify="left", style="cyan", no_wrap=True)
    table.add_column("Repo", justify="left", style="magenta", no_wrap=True)
    table.add_column("Work Date", justify="center")
    table.add_column("Status", justify="center")
    table.add_column("Attempts", justify="center", style="yellow")
    table.add_column("Last Error", justify="left", style="dim")

    for job in jobs:
        error = job.get("last_error") or "—"
        table.add_row(
            str(job.get("id", ""))[:8],
            str(job.get("repo_id", ""))[:8],
            job.get("work_date", ""),
            _status(job.get("status", "")),
            f"{job.get('attempts', 0)}/{job.get('max_attempts', 0)}",
            error[:60] + "..." if len(error) > 60 else error,
        )

    return table


def create_job_panel(job: dict[str, Any]) -> Panel:
    content = (
        f"• ID: [cyan]{job.get('id')}[/cyan]\n"
        f"• Repo: [magenta]{job.get('repo_id')}[/magenta]\n"
        f"• Work date: {job.get('work_date')}\n"
        f"• Status: {_status(job.get('status', ''))}\n"
        f"• Attempts: [yellow]{job.get('attempts')}/{job.get('max_attempts')}[/yellow]\n"
        f"• Created: {job.get('created_at')}\n"
        f"• Started: {job.get('started_at') or '—'}\n"
        f"• Completed: {job.get('completed_at') or '—'}"
    )
    if job.get("last_error"):
        content += f"\n\n[red]Last error:[/red] {job['last_error']}"
    return Panel(content, title="Job", border_style="blue")


def create_stats_panel(stats: dict[str, Any]) -> Panel:
    by_status = stats.get("by_status", {})
    status_lines = "\n".join(
        f"  {_status(name)}: {count}" for name, count in sorted(by_status.items())
    )
    content = (
        f"📊 [bold blue]Queue Statistics[/bold blue]\n\n"
        f"• Total jobs: [blue]{stats.get('total_jobs', 0)}[/blue]\n"
        f"• Queue depth: [yellow]{stats.get('queue_depth', 0)}[/yellow]\n"
        f"• Stale jobs: [red]{stats.get('stale_jobs', 0)}[/red]\n"
        f"• Failed (24h): [red]{stats.get('failed_last_day', 0)}[/red]\n"
        f"• By status:\n{status_lines or '  —'}"
    )
    return Panel(content, title="Jobs Overview", border_style="green")


def create_counts_panel(title: str, counts: dict[str, Any]) -> Panel:
    """Render a cron invocation result"""
    lines = []
    for key, value in counts.items():
        if isinstance(value, dict):
            nested = ", ".join(f"{k}={v}" for k, v in value.items()) or "—"
            lines.append(f"• {key.replace('_', ' ')}: [dim]{nested}[/dim]")
        else:
            lines.append(f"• {key.replace('_', ' ')}: [green]{value}[/green]")
    return Panel("\n".join(lines), title=title, border_style="cyan")
