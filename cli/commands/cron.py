"""Cron Commands - trigger the scheduler and worker by hand"""

import typer
from rich.console import Console

from ..client.base import JotAPIError
from ..client.endpoints import JotClient
from ..utils.formatting import create_counts_panel, print_error, print_info, print_warning

console = Console()
app = typer.Typer(name="cron", help="Run the scheduler or worker once")


@app.command("schedule")
def schedule():
    """🗓️ Enqueue reflection jobs for eligible repositories"""
    try:
        with JotClient() as client:
            print_info("Running scheduler pass")
            counts = client.schedule_reflections()
    except JotAPIError as e:
        print_error(f"Scheduler failed: {e}")
        raise typer.Exit(1) from None

    console.print(create_counts_panel("Scheduler", counts))


@app.command("work")
def work(
    repeat: int = typer.Option(
        1, "--repeat", "-r", min=1, help="Invoke the worker this many times"
    ),
):
    """⚙️ Drain the job queue within one worker time budget"""
    try:
        with JotClient() as client:
            for run in range(1, repeat + 1):
                print_info(f"Running worker pass {run}/{repeat}")
                counts = client.process_jobs()
                console.print(create_counts_panel(f"Worker pass {run}", counts))
                if counts.get("failed"):
                    print_warning(
                        f"{counts['failed']} attempts failed, "
                        "see [cyan]jot jobs list --status failed[/cyan]"
                    )
                if not counts.get("processed") and not counts.get("failed"):
                    break
    except JotAPIError as e:
        print_error(f"Worker failed: {e}")
        raise typer.Exit(1) from None
