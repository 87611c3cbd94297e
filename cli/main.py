"""jot CLI - Main Entry Point"""

from typing import Optional

import typer
from rich.console import Console
from rich.panel import Panel

from .client.base import JotAPIError
from .client.endpoints import JotClient
from .commands import config, cron, jobs
from .utils.config_manager import config as config_manager
from .utils.formatting import print_error, print_info

console = Console()

app = typer.Typer(
    name="jot",
    help="📝 jot - nightly reflections job queue CLI",
    rich_markup_mode="rich",
)

app.add_typer(cron.app, name="cron")
app.add_typer(jobs.app, name="jobs")
app.add_typer(config.app, name="config")


@app.command()
def status():
    """📊 Check API status, database and queue health"""
    base_url = config_manager.get("api.base_url")
    print_info(f"Checking connection to: {base_url}")

    try:
        with JotClient(base_url) as client:
            health = client.health_check()
    except JotAPIError as e:
        print_error(f"Failed to connect: {e}")
        console.print(
            Panel(
                f"🚫 [red]Connection Failed[/red]\n\n"
                f"Make sure the jot API is running at:\n"
                f"[blue]{base_url}[/blue]\n\n"
                f"You can update the API URL with:\n"
                f"[cyan]jot config set api.base_url <url>[/cyan]",
                title="Connection Error",
                border_style="red",
            )
        )
        raise typer.Exit(1) from None

    database = health.get("database") or {}
    queue = health.get("queue") or {}
    healthy = health.get("ok", False)
    console.print(
        Panel(
            f"{'🚀 [green]Healthy[/green]' if healthy else '⚠️ [red]Degraded[/red]'}\n\n"
            f"• Version: [cyan]{health.get('version', 'unknown')}[/cyan]\n"
            f"• Environment: [yellow]{health.get('environment', 'unknown')}[/yellow]\n"
            f"• Database: {'connected' if database.get('connected') else 'unreachable'}\n"
            f"• Queue depth: [yellow]{queue.get('queue_depth', '—')}[/yellow]\n"
            f"• Stale jobs: [red]{queue.get('stale_jobs', '—')}[/red]\n"
            f"• API URL: [blue]{base_url}[/blue]",
            title="System Status",
            border_style="green" if healthy else "red",
        )
    )
    if not healthy:
        raise typer.Exit(1)


@app.command()
def version():
    """📎 Show CLI version information"""
    from . import __version__

    console.print(
        Panel(
            f"📝 [bold cyan]jot CLI[/bold cyan]\n\n• Version: [green]{__version__}[/green]",
            title="Version Info",
            border_style="cyan",
        )
    )


@app.callback()
def main(
    ctx: typer.Context,
    version: Optional[bool] = typer.Option(
        None, "--version", "-v", help="Show version and exit"
    ),
):
    """
    📝 jot CLI

    Trigger the reflection scheduler and worker, and inspect the job queue.
    """
    if version:
        from . import __version__

        console.print(f"jot CLI v{__version__}")
        raise typer.Exit()


if __name__ == "__main__":
    app()
