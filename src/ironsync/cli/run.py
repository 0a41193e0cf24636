"""
ironsync run - Start the sync workers.
"""

from pathlib import Path

import typer
from rich.console import Console
from rich.table import Table

from ironsync.exceptions import IronsyncError
from ironsync.service.server import run_service
from ironsync.service.worker import UpdateOutcome
from ironsync.utils.logging import get_logger

logger = get_logger("ironsync.cli.run")

app = typer.Typer(name="run", help="Run the sync workers", invoke_without_command=True)

console = Console()

OUTCOME_STYLES = {
    UpdateOutcome.UPDATED: "green",
    UpdateOutcome.NOT_MODIFIED: "dim",
    UpdateOutcome.UNCHANGED: "dim",
    UpdateOutcome.FAILED: "red",
}


@app.callback()
def run(
    ctx: typer.Context,
    env: str | None = typer.Option(None, help="Environment (selects config.<env>.yaml)"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Verbose output"),
    project_dir: Path = typer.Option(Path.cwd(), "--project-dir", "-d", help="Directory holding config.yaml"),
    once: bool = typer.Option(False, "--once", help="Process every due resource once, then exit"),
    tick: float | None = typer.Option(None, "--tick", help="Override scheduler tick period (seconds)"),
) -> None:
    """
    Start one worker per connection and keep resources in sync until interrupted.
    """
    if ctx.invoked_subcommand is not None:
        return

    try:
        results = run_service(project_dir, env=env, verbose=verbose, once=once, tick_s=tick)
    except IronsyncError as e:
        logger.error(f"Initialization failed: {e}")
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(1) from None

    if not once or results is None:
        return

    table = Table(title="Update results", show_header=True)
    table.add_column("Connection", style="cyan")
    table.add_column("Resource")
    table.add_column("Outcome")

    failed = False
    for conn_name, outcomes in results.items():
        for path, outcome in outcomes.items():
            failed = failed or outcome is UpdateOutcome.FAILED
            table.add_row(conn_name, path, f"[{OUTCOME_STYLES[outcome]}]{outcome.value}[/]")

    console.print(table)
    if failed:
        raise typer.Exit(2)
