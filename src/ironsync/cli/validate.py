"""
ironsync validate - Check configuration without touching any remote.
"""

from pathlib import Path

import typer
from rich.console import Console
from rich.table import Table

from ironsync.core.initialization import initialize
from ironsync.exceptions import IronsyncError

app = typer.Typer(name="validate", help="Validate configuration", invoke_without_command=True)

console = Console()


@app.callback()
def validate(
    ctx: typer.Context,
    env: str | None = typer.Option(None, help="Environment (selects config.<env>.yaml)"),
    project_dir: Path = typer.Option(Path.cwd(), "--project-dir", "-d", help="Directory holding config.yaml"),
) -> None:
    """
    Load config.yaml, build the connection/resource graph and list it.
    """
    if ctx.invoked_subcommand is not None:
        return

    try:
        _, manager = initialize(project_dir, env=env, setup_logging=False)
    except IronsyncError as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(1) from None

    table = Table(title="Resources", show_header=True)
    table.add_column("Connection", style="cyan")
    table.add_column("Type", style="green")
    table.add_column("Resource")
    table.add_column("Remote", style="dim")
    table.add_column("Interval / retry", justify="right")

    for conn in manager.connections():
        if not conn.resources:
            table.add_row(conn.name, conn.type.value, "[dim](no resources)[/dim]", "", "")
            continue
        for res in conn.resources:
            table.add_row(
                conn.name,
                conn.type.value,
                res.path,
                res.remote_path,
                f"{res.interval}s / {res.retry_interval}s",
            )

    console.print(table)
    console.print(
        f"[green]Configuration OK[/green]: {len(manager.list())} connection(s), "
        f"{sum(len(c.resources) for c in manager.connections())} resource(s)"
    )
