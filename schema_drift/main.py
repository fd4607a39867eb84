from __future__ import annotations

import sys
from pathlib import Path
from typing import Optional

import typer

from schema_drift.config import get_settings
from schema_drift.domain.models import UserRecord, UserRecordV2
from schema_drift.domain.schema import DOWN, UP, SchemaSnapshot
from schema_drift.errors import SchemaDriftError
from schema_drift.infrastructure.bootstrap import apply_schema_file, reset_users
from schema_drift.infrastructure.store import StorePool, connect
from schema_drift.mapping.mapper import MappingPolicy
from schema_drift.migrations.step import phone_number_migration
from schema_drift.query import QuerySession
from schema_drift.reporter import print_records, print_rollout, print_snapshot
from schema_drift.rollout import available_readers, resolve_readers, run_rollout
from schema_drift.utils.logging import configure_logging

app = typer.Typer(help="Schema drift harness: strict vs lenient readers across a live migration.")


@app.callback()
def _setup() -> None:
    settings = get_settings()
    configure_logging(level=settings.log_level, json_logs=settings.log_json)


@app.command()
def info() -> None:
    """
    Show effective configuration values.
    """
    settings = get_settings()
    typer.echo(
        f"DB={settings.db_user}@{settings.db_host}:{settings.db_port}/{settings.db_name} | "
        f"table={settings.users_table} schema_file={settings.schema_file} "
        f"pool=({settings.pool_min_size},{settings.pool_max_size})"
    )


@app.command()
def bootstrap(
    schema_file: Optional[Path] = typer.Option(
        None, "--schema-file", "-f", help="Schema file to apply (default from settings)."
    ),
    reseed: bool = typer.Option(
        False, "--reseed", help="Truncate the users table and insert the seed row again."
    ),
) -> None:
    """
    Create the users table from the schema file.
    """
    settings = get_settings()
    with connect() as store:
        applied = apply_schema_file(store, schema_file)
        if reseed:
            reset_users(store, settings.users_table)
    typer.echo(f"Applied {applied}.")


@app.command()
def users(
    lenient: bool = typer.Option(
        False, "--lenient", "-l", help="Ignore columns the record type does not declare."
    ),
    v2: bool = typer.Option(False, "--v2", help="Map onto the upgraded record (with phone_number)."),
) -> None:
    """
    List every user, mapped strictly unless --lenient is given.
    """
    settings = get_settings()
    record_type = UserRecordV2 if v2 else UserRecord
    policy = MappingPolicy.LENIENT if lenient else MappingPolicy.STRICT
    with connect() as store:
        records = QuerySession(store, settings.users_table, record_type).list_all(policy)
    print_records(records, title=f"{settings.users_table} as {record_type.__name__} ({policy.value})")


@app.command()
def snapshot() -> None:
    """
    Show the current columns of the users table.
    """
    settings = get_settings()
    with connect() as store:
        current = SchemaSnapshot.capture(store, settings.users_table)
    print_snapshot(current)


@app.command()
def migrate(
    direction: str = typer.Argument(..., help="'up' adds phone_number, 'down' drops it."),
) -> None:
    """
    Apply one direction of the phone_number migration.
    """
    if direction not in (UP, DOWN):
        raise typer.BadParameter("direction must be 'up' or 'down'")
    settings = get_settings()
    with connect() as store:
        current = SchemaSnapshot.capture(store, settings.users_table)
        current.apply(phone_number_migration(store, settings.users_table), direction)
    print_snapshot(current)


@app.command()
def rollout(
    reader: Optional[list[str]] = typer.Option(
        None,
        "--reader",
        "-r",
        help=f"Reader(s) to simulate ({', '.join(available_readers())}); default all.",
    ),
    revert: bool = typer.Option(True, "--revert/--no-revert", help="Run down() at the end."),
    persist: bool = typer.Option(False, "--persist", help="Write results/latest.json."),
    results_dir: Path = typer.Option(Path("results"), "--results-dir", help="Output directory."),
) -> None:
    """
    Read with old and new app versions before and after the migration.
    """
    try:
        readers = resolve_readers(reader)
    except ValueError as exc:
        raise typer.BadParameter(str(exc)) from exc
    with StorePool() as pool:
        payload = run_rollout(
            pool.session,
            readers=readers,
            revert=revert,
            persist=persist,
            results_dir=results_dir,
        )
    print_rollout(payload)


def main() -> None:
    try:
        app()
    except SchemaDriftError as exc:
        typer.echo(f"Error: {exc}", err=True)
        sys.exit(1)
    except KeyboardInterrupt:
        typer.echo("Cancelled by user.", err=True)
        sys.exit(130)


if __name__ == "__main__":
    main()
