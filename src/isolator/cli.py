"""
CLI entry point for the isolator.

This module provides a thin Typer-based interface over the read-only
isolator operations. Creating capsules needs a component host, a graph
builder and a dependency resolver, which the surrounding tool provides;
those runs go through isolator.engine.Isolator directly.

Commands:
    list        List the capsules of a workspace
    root-dir    Print the isolation root of a workspace
"""

import json
import logging
from pathlib import Path
from typing import Annotated, Optional

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from isolator import __version__
from isolator.config import IsolatorConfig, load_config
from isolator.engine import get_capsules_root_dir, list_capsules
from isolator.errors import IsolatorError

app = typer.Typer(
    name="isolator",
    help="Inspect isolated component capsules.",
    add_completion=False,
    no_args_is_help=True,
)

console = Console()


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        console.print(f"[bold]isolator[/bold] version {__version__}")
        raise typer.Exit()


def _setup_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        handlers=[RichHandler(console=console, show_path=False)],
        force=True,
    )


def _load_config(config_path: Path | None) -> IsolatorConfig:
    try:
        return load_config(config_path) if config_path else IsolatorConfig()
    except IsolatorError as e:
        console.print(f"[red]{e}[/red]")
        raise typer.Exit(code=1) from e


@app.callback()
def main(
    version: Annotated[
        Optional[bool],
        typer.Option(
            "--version",
            "-v",
            help="Show version and exit.",
            callback=version_callback,
            is_eager=True,
        ),
    ] = None,
) -> None:
    """
    Isolator - inspect capsules created for workspace components.
    """
    pass


ConfigOption = Annotated[
    Optional[Path],
    typer.Option(
        "--config",
        "-c",
        help="Path to an isolator config YAML file.",
        exists=True,
        readable=True,
        resolve_path=True,
    ),
]

VerboseOption = Annotated[
    bool,
    typer.Option("--verbose", help="Enable debug logging."),
]


@app.command("list")
def list_command(
    workspace: Annotated[
        Path,
        typer.Argument(help="Workspace directory the capsules were created for."),
    ] = Path("."),
    config_path: ConfigOption = None,
    json_output: Annotated[
        bool,
        typer.Option("--json", help="Output results in JSON format."),
    ] = False,
    verbose: VerboseOption = False,
) -> None:
    """
    List the capsules of a workspace.

    Example:
        $ isolator list ./my-workspace
    """
    _setup_logging(verbose)
    config = _load_config(config_path)
    workspace_path = workspace.resolve()
    try:
        results = list_capsules(workspace_path, config)
    except OSError as e:
        console.print(f"[red]Error listing capsules: {e}[/red]")
        raise typer.Exit(code=1) from e

    if json_output:
        payload = {
            "workspace": results.workspace,
            "capsules": [str(path) for path in results.capsules],
        }
        typer.echo(json.dumps(payload, indent=2))
        return

    if not results.capsules:
        console.print(f"[dim]No capsules found for {results.workspace}[/dim]")
        raise typer.Exit(code=0)

    table = Table(show_header=True, header_style="bold")
    table.add_column("Capsule", style="cyan", no_wrap=True)
    table.add_column("Path", overflow="fold")
    for path in results.capsules:
        table.add_row(path.name, str(path))

    console.print(f"Workspace: [bold]{results.workspace}[/bold]")
    console.print(table)
    console.print(f"[dim]Total: {len(results.capsules)}[/dim]")


@app.command("root-dir")
def root_dir_command(
    workspace: Annotated[
        Path,
        typer.Argument(help="Workspace directory."),
    ] = Path("."),
    config_path: ConfigOption = None,
) -> None:
    """
    Print the isolation root of a workspace.

    Example:
        $ isolator root-dir ./my-workspace
    """
    config = _load_config(config_path)
    typer.echo(str(get_capsules_root_dir(workspace.resolve(), config)))


if __name__ == "__main__":
    app()
