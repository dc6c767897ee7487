"""
analytics-core CLI — `analytics` command.

Commands:
  analytics state               Capture and print device state
  analytics messages list       List stored messages
  analytics messages add TYPE   Record a message
  analytics messages show ID    Show one message and its payload
  analytics messages mark ID S  Move a message to another upload status
  analytics messages purge      Delete uploaded messages
"""

import json
import logging
from pathlib import Path
from typing import Optional

try:
    import click
    from rich.console import Console
    from rich.logging import RichHandler
except ImportError:
    raise SystemExit("CLI requires extras: pip install analytics-core[cli]")

from analytics_core import __version__
from analytics_core.store import MessageStore

console = Console()
CONFIG_DIR = Path.home() / ".analytics"
CONFIG_FILE = CONFIG_DIR / "config.json"
DEFAULT_STORE_PATH = CONFIG_DIR / "messages.jsonl"


def _load_config() -> dict:
    try:
        return json.loads(CONFIG_FILE.read_text())
    except (FileNotFoundError, json.JSONDecodeError):
        return {}


def _store_path(override: Optional[str] = None) -> Path:
    if override:
        return Path(override)
    return Path(_load_config().get("store_path", DEFAULT_STORE_PATH)).expanduser()


def _open_store() -> MessageStore:
    ctx = click.get_current_context()
    root = ctx.find_root()
    return MessageStore(_store_path(root.obj.get("store") if root.obj else None))


@click.group()
@click.version_option(__version__)
@click.option("--store", default=None, help="Message store file (default from ~/.analytics/config.json).")
@click.option("-v", "--verbose", is_flag=True, help="Log library activity.")
@click.pass_context
def main(ctx, store, verbose):
    """analytics-core CLI — inspect device state and the local message store."""
    ctx.ensure_object(dict)
    ctx.obj["store"] = store
    if verbose:
        logging.basicConfig(
            level=logging.DEBUG,
            format="%(message)s",
            handlers=[RichHandler(console=Console(stderr=True), show_path=False)],
        )


# Register subcommands from separate modules
from analytics_core.cli.state import state_cmd
from analytics_core.cli.messages import messages

main.add_command(state_cmd)
main.add_command(messages)


if __name__ == "__main__":
    main()
