from __future__ import annotations

from typing import Any, Dict, Optional, Sequence

from pydantic import BaseModel
from rich import box
from rich.console import Console
from rich.table import Table

from schema_drift.domain.schema import SchemaSnapshot


def _console(console: Optional[Console]) -> Console:
    return console or Console()


def build_outcome_table(payload: Dict[str, Any]) -> Table:
    """
    Build the rollout table: one row per reader per phase.
    """
    columns = payload.get("columns", {})
    table = Table(
        title=f"Rollout of {payload.get('step', '?')} on {payload.get('table', '?')}",
        box=box.ROUNDED,
        caption="Readers that fail after_up break during a live additive migration",
    )

    table.add_column("Phase", style="cyan", no_wrap=True)
    table.add_column("Columns", style="dim")
    table.add_column("Reader", style="bold")
    table.add_column("Record type", style="blue")
    table.add_column("Policy", style="magenta")
    table.add_column("Rows", justify="right")
    table.add_column("Result")

    for outcome in payload.get("outcomes", []):
        phase = outcome.get("phase", "?")
        if outcome.get("ok"):
            result = "[green]ok[/green]"
        else:
            result = f"[red]{outcome.get('error_type')}[/red]: {outcome.get('error')}"
        table.add_row(
            phase,
            str(len(columns.get(phase, []))),
            outcome.get("reader", "?"),
            outcome.get("record_type", "?"),
            outcome.get("policy", "?"),
            str(outcome.get("rows", 0)),
            result,
        )
    return table


def print_rollout(payload: Dict[str, Any], console: Optional[Console] = None) -> None:
    console = _console(console)
    if not payload.get("outcomes"):
        console.print("[yellow]No outcomes to display.[/yellow]")
        return
    console.print(build_outcome_table(payload))


def build_records_table(records: Sequence[BaseModel], title: str = "Records") -> Table:
    """Render mapped records; columns follow the record type's declared fields."""
    table = Table(title=title, box=box.ROUNDED)
    if not records:
        return table
    fields = list(type(records[0]).model_fields)
    for name in fields:
        table.add_column(name, justify="right" if name == "id" else "left")
    for record in records:
        values = record.model_dump()
        table.add_row(*("" if values[name] is None else str(values[name]) for name in fields))
    return table


def print_records(
    records: Sequence[BaseModel], title: str = "Records", console: Optional[Console] = None
) -> None:
    console = _console(console)
    if not records:
        console.print("[yellow]No records to display.[/yellow]")
        return
    console.print(build_records_table(records, title=title))


def build_snapshot_table(snapshot: SchemaSnapshot) -> Table:
    table = Table(title=f"Columns of {snapshot.table}", box=box.ROUNDED)
    table.add_column("#", justify="right", style="dim")
    table.add_column("Column", style="cyan")
    table.add_column("Type")
    table.add_column("Nullable")
    table.add_column("Default", style="dim")
    for position, column in enumerate(snapshot.columns, start=1):
        table.add_row(
            str(position),
            column.name,
            column.data_type,
            "yes" if column.nullable else "no",
            column.default or "",
        )
    return table


def print_snapshot(snapshot: SchemaSnapshot, console: Optional[Console] = None) -> None:
    _console(console).print(build_snapshot_table(snapshot))


__all__ = [
    "build_outcome_table",
    "build_records_table",
    "build_snapshot_table",
    "print_records",
    "print_rollout",
    "print_snapshot",
]
