"""
Rollout simulation: old and new application versions reading while the
`phone_number` migration lands.

Every reader stands for one running app instance and borrows its own store
session. Readers run in three phases:

- `before`: the table has its original columns.
- `after_up`: the additive migration has been applied.
- `after_down`: the migration has been reverted (only when `revert=True`).

A reader that fails to map rows is recorded, not fatal: the point of the run
is to show which instances break. Store and migration failures abort.

Usage (example from CLI):
    from schema_drift.infrastructure import StorePool
    from schema_drift.rollout import run_rollout

    with StorePool() as pool:
        payload = run_rollout(pool.session)

Outputs are saved to `results/` when `persist=True`:
- `results/latest.json` (last run)
- `results/run-<timestamp>.json` (timestamped archive)
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Callable, ContextManager, Dict, Iterable, List, Optional, Tuple, Type, TypedDict

from pydantic import BaseModel

from schema_drift.config import get_settings
from schema_drift.domain.models import UserRecord, UserRecordV2
from schema_drift.domain.schema import DOWN, UP, SchemaSnapshot
from schema_drift.errors import MappingError, MigrationError
from schema_drift.infrastructure.store import Store
from schema_drift.mapping.mapper import MappingPolicy
from schema_drift.migrations.step import MigrationStep, phone_number_migration
from schema_drift.query import QuerySession
from schema_drift.utils.logging import get_logger

log = get_logger(__name__)

SessionFactory = Callable[[], ContextManager[Store]]

PHASE_BEFORE = "before"
PHASE_AFTER_UP = "after_up"
PHASE_AFTER_DOWN = "after_down"


@dataclass(frozen=True)
class ReaderSpec:
    """One simulated application instance."""

    name: str
    record_type: Type[BaseModel]
    policy: MappingPolicy
    description: str = ""


class ReaderOutcome(TypedDict, total=False):
    """Result of one reader in one phase."""

    reader: str
    phase: str
    record_type: str
    policy: str
    ok: bool
    rows: int
    error: Optional[str]
    error_type: Optional[str]


DEFAULT_READERS: Tuple[ReaderSpec, ...] = (
    ReaderSpec("v1-strict", UserRecord, MappingPolicy.STRICT, "deployed version, strict mapping"),
    ReaderSpec("v1-lenient", UserRecord, MappingPolicy.LENIENT, "deployed version, lenient mapping"),
    ReaderSpec("v2-strict", UserRecordV2, MappingPolicy.STRICT, "upgraded version, strict mapping"),
)


def available_readers() -> List[str]:
    """List the built-in reader names."""
    return sorted(reader.name for reader in DEFAULT_READERS)


def resolve_readers(names: Optional[Iterable[str]] = None) -> Tuple[ReaderSpec, ...]:
    if names is None:
        return DEFAULT_READERS
    requested = list(names)
    if requested == ["all"]:
        return DEFAULT_READERS
    by_name = {reader.name: reader for reader in DEFAULT_READERS}
    unknown = [name for name in requested if name not in by_name]
    if unknown:
        raise ValueError(
            f"Unknown reader(s) {', '.join(unknown)}. Available: {', '.join(available_readers())}"
        )
    return tuple(by_name[name] for name in requested)


def _run_reader(
    session_factory: SessionFactory, reader: ReaderSpec, table: str, phase: str
) -> ReaderOutcome:
    outcome = ReaderOutcome(
        reader=reader.name,
        phase=phase,
        record_type=reader.record_type.__name__,
        policy=reader.policy.value,
    )
    with session_factory() as store:
        session = QuerySession(store, table=table, record_type=reader.record_type)
        try:
            records = session.list_all(reader.policy)
        except MappingError as exc:
            log.warning(
                f"[READER FAILED] {reader.name} ({phase})",
                extra={"reader": reader.name, "phase": phase, "error": str(exc)},
            )
            outcome.update(ok=False, rows=0, error=str(exc), error_type=type(exc).__name__)
            return outcome

    log.info(
        f"[READER OK] {reader.name} ({phase})",
        extra={"reader": reader.name, "phase": phase, "rows": len(records)},
    )
    outcome.update(ok=True, rows=len(records), error=None, error_type=None)
    return outcome


def _run_phase(
    session_factory: SessionFactory,
    readers: Iterable[ReaderSpec],
    table: str,
    phase: str,
) -> List[ReaderOutcome]:
    log.info(f"[PHASE] {phase.upper()}", extra={"phase": phase})
    return [_run_reader(session_factory, reader, table, phase) for reader in readers]


def _persist_results(payload: dict, results_dir: Path) -> None:
    results_dir.mkdir(parents=True, exist_ok=True)
    latest_path = results_dir / "latest.json"
    timestamp = datetime.now(timezone.utc).strftime("%Y%m%dT%H%M%SZ")
    archive_path = results_dir / f"run-{timestamp}.json"

    for path in (latest_path, archive_path):
        with path.open("w", encoding="utf-8") as f:
            json.dump(payload, f, indent=2, sort_keys=True)

    log.info("Results persisted", extra={"latest": str(latest_path), "archive": str(archive_path)})


def _revert_after_failure(
    snapshot: SchemaSnapshot, step: MigrationStep, cause: BaseException
) -> None:
    """Run `down()` after a failed phase; a failing revert is chained to `cause`."""
    try:
        snapshot.apply(step, DOWN)
    except MigrationError as revert_error:
        log.error(
            f"[REVERT FAILED] {step.name}",
            extra={"step": step.name, "cause": f"{type(cause).__name__}: {cause}"},
        )
        raise revert_error from cause


def run_rollout(
    session_factory: SessionFactory,
    readers: Optional[Iterable[ReaderSpec]] = None,
    table: Optional[str] = None,
    revert: bool = True,
    persist: bool = False,
    results_dir: Path | str = "results",
) -> Dict[str, Any]:
    """
    Run every reader before and after the `phone_number` migration.

    Parameters
    ----------
    session_factory : callable
        Returns a context manager yielding a store session, e.g.
        `StorePool.session`. Called once per reader per phase plus once for
        the migrating session.
    readers : iterable[ReaderSpec] | None
        Simulated instances. Defaults to `DEFAULT_READERS`.
    table : str | None
        Table to migrate and read. Defaults to settings.users_table.
    revert : bool
        Whether to run `down()` afterwards and read once more.
    persist : bool
        Whether to write the payload to `results_dir`.

    Returns
    -------
    dict
        `table`, `step`, `columns` per phase and the list of `outcomes`.

    Raises
    ------
    MigrationError
        The migration (or its revert) was rejected by the store. When the
        revert fails after a failed `after_up` phase, the phase error is
        kept as `__cause__`.
    """
    effective_table = table or get_settings().users_table
    reader_specs = tuple(readers) if readers is not None else DEFAULT_READERS

    log.info(
        f"[ROLLOUT START] {effective_table}",
        extra={"table": effective_table, "readers": [reader.name for reader in reader_specs]},
    )

    outcomes: List[ReaderOutcome] = []
    columns: Dict[str, List[str]] = {}

    with session_factory() as admin:
        snapshot = SchemaSnapshot.capture(admin, effective_table)
        step = phone_number_migration(admin, effective_table)
        columns[PHASE_BEFORE] = list(snapshot.column_names)
        outcomes.extend(_run_phase(session_factory, reader_specs, effective_table, PHASE_BEFORE))

        snapshot.apply(step, UP)
        columns[PHASE_AFTER_UP] = list(snapshot.column_names)
        try:
            outcomes.extend(
                _run_phase(session_factory, reader_specs, effective_table, PHASE_AFTER_UP)
            )
        except BaseException as exc:
            if revert:
                _revert_after_failure(snapshot, step, exc)
            raise

        if revert:
            snapshot.apply(step, DOWN)
            columns[PHASE_AFTER_DOWN] = list(snapshot.column_names)
            outcomes.extend(
                _run_phase(session_factory, reader_specs, effective_table, PHASE_AFTER_DOWN)
            )

    payload: Dict[str, Any] = {
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "table": effective_table,
        "step": step.name,
        "columns": columns,
        "outcomes": outcomes,
    }

    if persist:
        _persist_results(payload, Path(results_dir))

    failures = [outcome for outcome in outcomes if not outcome["ok"]]
    log.info(
        f"[ROLLOUT COMPLETE] {len(outcomes)} reads, {len(failures)} failed",
        extra={"table": effective_table, "reads": len(outcomes), "failed": len(failures)},
    )
    return payload


__all__ = [
    "DEFAULT_READERS",
    "PHASE_AFTER_DOWN",
    "PHASE_AFTER_UP",
    "PHASE_BEFORE",
    "ReaderOutcome",
    "ReaderSpec",
    "SessionFactory",
    "available_readers",
    "resolve_readers",
    "run_rollout",
]
