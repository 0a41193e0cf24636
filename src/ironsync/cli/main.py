"""
Main CLI entry point.
"""

import typer

from ironsync import __version__
from ironsync.cli import run, validate


def version_callback(value: bool):
    """Callback to display version and exit."""
    if value:
        typer.echo(f"ironsync version {__version__}")
        raise typer.Exit()


app = typer.Typer(
    name="ironsync",
    help="ironsync - Mirror remote files (HTTP, Gist, SFTP, FTP, Dropbox) onto the local filesystem",
    add_completion=True,
)

app.add_typer(run.app, name="run")
app.add_typer(validate.app, name="validate")


@app.callback(invoke_without_command=True)
def entrypoint(
    ctx: typer.Context,
    version: bool = typer.Option(
        False,
        "--version",
        "-V",
        callback=version_callback,
        is_eager=True,
        help="Show version and exit.",
    ),
):
    """
    ironsync - Mirror remote files onto the local filesystem.

    Run 'ironsync <command> --help' for help on a specific command.
    """
    if ctx.invoked_subcommand is None:
        typer.echo(ctx.get_help())
        raise typer.Exit()


def main():
    """Main CLI entry point."""
    app()


if __name__ == "__main__":
    main()
