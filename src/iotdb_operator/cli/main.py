"""Main CLI implementation using Typer."""

from pathlib import Path
from typing import Callable, Optional, Any

import typer
from pydantic import ValidationError
from rich.console import Console
from rich.markup import escape

from iotdb_operator.cli.commands import (
    reconcile_once,
    render,
    run_operator,
    show_ports,
    show_reconcile_result,
)
from iotdb_operator.errors import OperatorError


# Create Typer app
app = typer.Typer(
    name="iotdb-operator",
    help="IoTDB DataNode operator for Kubernetes",
    add_completion=False,
)

# Console for rich output
console = Console()


def _run_cli_command(handler: Callable[..., Any], **kwargs: Any) -> Any:
    """Helper to run a CLI command with error handling."""
    try:
        return handler(**kwargs)
    except (OperatorError, ValidationError, FileNotFoundError, ValueError) as e:
        console.print(f"[red]Error:[/red] {escape(str(e))}")
        raise typer.Exit(1) from e


@app.command("run")
def run_command(
    config: Optional[Path] = typer.Option(
        None, "--config", "-c", help="Operator configuration file"
    ),
):
    """Run the operator until interrupted."""
    try:
        _run_cli_command(run_operator, config_path=config)
    except KeyboardInterrupt:
        console.print("\nOperator shutdown requested")


@app.command("reconcile")
def reconcile_command(
    namespace: str = typer.Argument(..., help="DataNode namespace"),
    name: str = typer.Argument(..., help="DataNode name"),
    config: Optional[Path] = typer.Option(
        None, "--config", "-c", help="Operator configuration file"
    ),
):
    """Run one reconciliation pass for a DataNode."""
    result = _run_cli_command(reconcile_once, namespace=namespace, name=name, config_path=config)
    show_reconcile_result(result)


@app.command("render")
def render_command(
    manifest: Path = typer.Argument(..., help="DataNode manifest file"),
    config: Optional[Path] = typer.Option(
        None, "--config", "-c", help="Operator configuration file"
    ),
):
    """Print the desired objects for a DataNode manifest."""
    _run_cli_command(render, manifest=manifest, config_path=config)


@app.command("ports")
def ports_command():
    """Show the canonical DataNode ports."""
    show_ports()


def main():
    """Main entry point for CLI."""
    app()
