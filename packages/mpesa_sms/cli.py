"""CLI for the ``mpesa_sms`` package.

Environment variables are loaded from a local ``.env`` (without overriding
values already set) before any command runs. Extraction logic lives in
``mpesa_sms.extraction``; this module only parses arguments, wires up a
:class:`~mpesa_sms.bridge.SmsBridge` and prints results.
"""

from __future__ import annotations

import csv
import json
import time
from datetime import tzinfo
from pathlib import Path
from typing import Annotated, Any

import typer
from dotenv import load_dotenv
from rich.console import Console
from rich.table import Table

from .bridge import SmsBridge, StaticPermissionGate
from .buffer import MessageBuffer
from .config import load_settings, read_log_level, resolve_timezone
from .extraction import extract
from .ingest.utils import load_messages_from_csv
from .logging_setup import configure_logging, get_logger
from .models import to_payload

app = typer.Typer(
    name="mpesa-sms",
    help="Extract transactions from M-Pesa SMS notifications",
    no_args_is_help=True,
)
console = Console()
err_console = Console(stderr=True)

_logger = get_logger("mpesa_sms.cli")

_TZ_HELP = "IANA timezone for occurred_at (default: MPESA_SMS_TIMEZONE or UTC)"
_CSV_PATH_HELP = "Path to an SMS backup CSV with address, body and date columns"


def _resolve_tz(tz_name: str | None) -> tzinfo:
    if tz_name is not None:
        return resolve_timezone(tz_name)
    return load_settings().tz


def _render_table(items: list[dict[str, Any]]) -> Table:
    table = Table(title=f"M-Pesa transactions ({len(items)})")
    table.add_column("Kind")
    table.add_column("Amount", justify="right")
    table.add_column("Category")
    table.add_column("Counterparty")
    table.add_column("Ref")
    table.add_column("Occurred at")
    for item in items:
        table.add_row(
            item["kind"],
            f"{item['amount']:,.2f}",
            item.get("category", ""),
            item.get("counterparty", ""),
            item.get("mpesa_ref", ""),
            item["occurred_at"],
        )
    return table


@app.command("parse")
def parse_cmd(
    text: Annotated[str, typer.Argument(help="Raw SMS text to parse")],
    timestamp: Annotated[
        int | None,
        typer.Option("--timestamp", help="Receipt time as epoch milliseconds (default: now)"),
    ] = None,
    tz_name: Annotated[
        str | None,
        typer.Option("--tz", help=_TZ_HELP),
    ] = None,
) -> None:
    """Parse a single message and print its payload as JSON."""

    try:
        tz = _resolve_tz(tz_name)
    except ValueError as e:
        err_console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(1) from e

    ts = timestamp if timestamp is not None else time.time_ns() // 1_000_000
    record = extract(text, ts, tz=tz)
    if record is None:
        err_console.print("No match: not a parseable M-Pesa transaction")
        raise typer.Exit(1)
    typer.echo(json.dumps(to_payload(record), ensure_ascii=False))


@app.command("import-csv")
def import_csv_cmd(
    csv_path: Annotated[
        Path,
        typer.Option("--csv-path", help=_CSV_PATH_HELP, dir_okay=False),
    ],
    tz_name: Annotated[
        str | None,
        typer.Option("--tz", help=_TZ_HELP),
    ] = None,
    table: Annotated[bool, typer.Option("--table", help="Render a table instead of JSON")] = False,
) -> None:
    """Run every message in a CSV export through the bridge and print the results."""

    try:
        tz = _resolve_tz(tz_name)
        messages = load_messages_from_csv(csv_path)
    except FileNotFoundError as e:
        err_console.print(f"[red]Error:[/red] File not found: {csv_path}")
        raise typer.Exit(1) from e
    except PermissionError as e:
        err_console.print(f"[red]Error:[/red] Permission denied: {csv_path}")
        raise typer.Exit(1) from e
    except csv.Error as e:
        err_console.print(f"[red]Error:[/red] Failed to parse CSV: {e}")
        raise typer.Exit(1) from e
    except ValueError as e:
        err_console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(1) from e

    bridge = SmsBridge(
        MessageBuffer(enabled=True),
        permissions=StaticPermissionGate(True),
        tz=tz,
    )
    for message in messages:
        bridge.receive([message])
    items = bridge.pull_new_messages()["items"]
    _logger.info("Extracted %d of %d message(s) from %s", len(items), len(messages), csv_path)

    if table:
        console.print(_render_table(items))
    else:
        typer.echo(json.dumps(items, indent=2, ensure_ascii=False))


@app.callback()
def _root() -> None:
    """Load ``.env`` from the working directory and configure logging."""

    load_dotenv(dotenv_path=Path.cwd() / ".env", override=False)
    configure_logging(read_log_level())


def main() -> None:
    app()


if __name__ == "__main__":  # pragma: no cover - exercised via console script
    main()
