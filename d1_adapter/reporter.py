from __future__ import annotations

import json
from typing import Any, Dict, List, Mapping, Optional, Sequence

from rich import box
from rich.console import Console
from rich.table import Table

# meta keys worth a row of their own; the rest of the dict is ignored
_META_KEYS = (
    "changes",
    "last_row_id",
    "rows_read",
    "rows_written",
    "duration",
    "served_by_region",
    "changed_db",
)


def _cell(value: Any) -> str:
    if value is None:
        return "[dim]NULL[/dim]"
    if isinstance(value, (dict, list)):
        return json.dumps(value)
    return str(value)


def print_rows(
    rows: Sequence[Mapping[str, Any]],
    title: str = "Results",
    console: Optional[Console] = None,
) -> None:
    """
    Render result rows as a rich table.

    Columns are the union of the row keys in first-seen order, so rows with
    missing keys still line up.
    """
    console = console or Console()

    if not rows:
        console.print("[yellow]No rows.[/yellow]")
        return

    columns: List[str] = []
    for row in rows:
        columns.extend(key for key in row if key not in columns)

    table = Table(title=title, box=box.ROUNDED, caption=f"{len(rows)} row(s)")
    for name in columns:
        table.add_column(name, style="cyan" if name == columns[0] else None, overflow="fold")

    for row in rows:
        table.add_row(*(_cell(row.get(name)) for name in columns))

    console.print(table)


def print_meta(meta: Mapping[str, Any], console: Optional[Console] = None) -> None:
    """Render the D1 execution metadata of one statement."""
    console = console or Console()
    shown: Dict[str, Any] = {key: meta[key] for key in _META_KEYS if key in meta}
    if not shown:
        return

    table = Table(title="Meta", box=box.SIMPLE)
    table.add_column("Key", style="magenta", no_wrap=True)
    table.add_column("Value", justify="right", style="green")
    for key, value in shown.items():
        table.add_row(key, _cell(value))

    console.print(table)
