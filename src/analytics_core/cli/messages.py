"""CLI: analytics messages list|add|show|mark|purge"""

import json
from datetime import datetime, timezone

import click
from rich.console import Console
from rich.table import Table

from analytics_core.device.state import DeviceStateSnapshot
from analytics_core.errors import AnalyticsError
from analytics_core.models.message import EventMessage, UploadStatus
from analytics_core.models.session import Session

console = Console()

STATUS_CHOICES = click.Choice([s.value for s in UploadStatus])


def _open_store():
    from analytics_core.cli.main import _open_store
    return _open_store()


def _format_time(timestamp: float) -> str:
    return datetime.fromtimestamp(timestamp, tz=timezone.utc).isoformat(timespec="milliseconds")


def _fail(e: AnalyticsError) -> None:
    console.print(f"[red]{e}[/red]")
    raise SystemExit(1)


@click.group()
def messages():
    """Local message store."""


@messages.command("list")
@click.option("--status", type=STATUS_CHOICES, default=None)
@click.option("--session-id", type=int, default=None)
@click.option("--json-output", "--json", is_flag=True)
def messages_list(status, session_id, json_output):
    """List stored messages."""
    store = _open_store()
    result = store.messages(status=UploadStatus(status) if status else None, session_id=session_id)
    if json_output:
        click.echo(json.dumps([m.model_dump(mode="json") for m in result], indent=2))
        return
    table = Table(title=f"Messages ({len(result)})")
    table.add_column("ID", style="bold")
    table.add_column("Session")
    table.add_column("Type")
    table.add_column("Status")
    table.add_column("Time")
    for m in result:
        table.add_row(str(m.message_id), str(m.session_id), m.message_type, m.upload_status.value, _format_time(m.timestamp))
    console.print(table)


@messages.command("add")
@click.argument("message_type")
@click.option("--info", "info_json", default="{}", help="Event attributes as a JSON object.")
@click.option("--session-id", type=int, default=0)
@click.option("--with-state", is_flag=True, help="Embed a device-state snapshot.")
def messages_add(message_type, info_json, session_id, with_state):
    """Record a message."""
    try:
        info = json.loads(info_json)
    except json.JSONDecodeError as e:
        raise click.BadParameter(f"not valid JSON: {e}", param_hint="--info")
    if not isinstance(info, dict):
        raise click.BadParameter("must be a JSON object", param_hint="--info")

    message = EventMessage.from_session(
        Session(session_id=session_id),
        message_type,
        info,
        UploadStatus.NOT_UPLOADED,
        state=DeviceStateSnapshot() if with_state else None,
    )
    try:
        stored = _open_store().add(message)
    except AnalyticsError as e:
        _fail(e)
    console.print(f"[green]Message {stored.message_id} recorded ({stored.uuid}).[/green]")


@messages.command("show")
@click.argument("message_id", type=int)
def messages_show(message_id):
    """Show a message and its decoded payload."""
    try:
        m = _open_store().get(message_id)
        info = m.message_info()
    except AnalyticsError as e:
        _fail(e)
    console.print(f"[bold]Message {m.message_id}[/bold] ({m.uuid})")
    console.print(f"  session:  {m.session_id}")
    console.print(f"  type:     {m.message_type}")
    console.print(f"  status:   {m.upload_status.value}")
    console.print(f"  time:     {_format_time(m.timestamp)}")
    console.print_json(data=info)


@messages.command("mark")
@click.argument("message_id", type=int)
@click.argument("status", type=STATUS_CHOICES)
def messages_mark(message_id, status):
    """Move a message to another upload status."""
    try:
        _open_store().transition([message_id], UploadStatus(status))
    except AnalyticsError as e:
        _fail(e)
    console.print(f"[green]Message {message_id} is now {status}.[/green]")


@messages.command("purge")
@click.option("--failed", is_flag=True, help="Also delete messages that failed permanently.")
def messages_purge(failed):
    """Delete uploaded messages."""
    statuses = [UploadStatus.UPLOADED]
    if failed:
        statuses.append(UploadStatus.UPLOAD_FAILED)
    removed = _open_store().purge(statuses)
    console.print(f"[green]Purged {removed} message(s).[/green]")
