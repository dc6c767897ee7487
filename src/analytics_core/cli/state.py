"""CLI: analytics state"""

import json

import click
from rich.console import Console
from rich.table import Table

from analytics_core.device.state import DeviceStateSnapshot

console = Console()


@click.command("state")
@click.option("--json-output", "--json", is_flag=True)
def state_cmd(json_output):
    """Capture a device-state snapshot."""
    snapshot = DeviceStateSnapshot()
    representation = snapshot.dictionary_representation()
    if json_output:
        click.echo(json.dumps(representation, indent=2))
        return

    table = Table(title="Device state")
    table.add_column("Metric", style="bold")
    table.add_column("Value")
    for name in DeviceStateSnapshot.metric_names():
        value = getattr(snapshot, name)
        if value is None:
            table.add_row(name, "[dim]unavailable[/dim]")
        elif isinstance(value, dict):
            table.add_row(name, ", ".join(f"{k}={v}" for k, v in value.items()))
        else:
            table.add_row(name, str(value))
    console.print(table)
