"""Command implementations for CLI."""

import asyncio
import io
from pathlib import Path
from typing import Optional

import typer
from rich.console import Console
from rich.table import Table
from ruamel.yaml import YAML

from iotdb_operator.agent.config import ConfigManager
from iotdb_operator.agent.engine import DataNodeReconciler, ReconcileResult
from iotdb_operator.agent.main import build_client, run_agent
from iotdb_operator.builder import build_services, build_workload
from iotdb_operator.ownership import default_scheme
from iotdb_operator.ports import PORT_REGISTRY


console = Console()


def render_manifests(manifest: Path, config_path: Optional[Path] = None) -> str:
    """Render the desired Services and StatefulSet for a DataNode manifest."""
    manager = ConfigManager(config_path)

    async def _load():
        config = await manager.load()
        datanode = await manager.load_datanode(manifest)
        return config, datanode

    config, datanode = asyncio.run(_load())
    scheme = default_scheme()
    objects = build_services(datanode, scheme) + [build_workload(datanode, scheme, config.topology)]

    yaml = YAML()
    yaml.default_flow_style = False
    stream = io.StringIO()
    yaml.dump_all(objects, stream)
    return stream.getvalue()


def render(manifest: Path, config_path: Optional[Path] = None):
    """Print rendered manifests."""
    typer.echo(render_manifests(manifest, config_path), nl=False)


def reconcile_once(namespace: str, name: str, config_path: Optional[Path] = None) -> ReconcileResult:
    """Run a single reconciliation pass against the configured cluster."""
    manager = ConfigManager(config_path)

    async def _run():
        config = await manager.load()
        reconciler = DataNodeReconciler(
            client=build_client(config),
            scheme=default_scheme(),
            topology=config.topology,
            retry=config.retry,
        )
        return await reconciler.reconcile(namespace, name, timeout=config.agent.pass_timeout)

    return asyncio.run(_run())


def run_operator(config_path: Optional[Path] = None):
    """Run the operator until interrupted."""
    asyncio.run(run_agent(config_path))


def show_reconcile_result(result: ReconcileResult):
    """Display the actions of a pass."""
    if not result.found:
        console.print(f"[yellow]DataNode {result.namespace}/{result.name} not found[/yellow]")
        return

    if not result.changed:
        console.print(f"[green]DataNode {result.namespace}/{result.name} is up to date[/green]")
        return

    table = Table(title=f"DataNode {result.namespace}/{result.name}")
    table.add_column("Object", style="cyan")
    table.add_column("Action", style="magenta")
    for obj in result.created:
        table.add_row(obj, "created")
    for obj in result.updated:
        table.add_row(obj, "updated")
    console.print(table)


def show_ports():
    """Display the canonical port registry."""
    table = Table(title="DataNode Ports")
    table.add_column("Env name", style="cyan")
    table.add_column("Container port")
    table.add_column("Port", justify="right")
    table.add_column("Exposable")

    for definition in PORT_REGISTRY.values():
        table.add_row(
            definition.env_name,
            definition.container_port_name,
            str(definition.port),
            "yes" if definition.exposable else "no",
        )
    console.print(table)
