"""Migration runner.

Applied versions are tracked in the ``_migrations`` document type of the
target database (one record per version with its name and ``applied_at``).
Every unit runs in its own transaction together with the write that records
it, so a unit and its bookkeeping commit or roll back as one. Units run
strictly in version order and the runner stops at the first failure.

Example:
    >>> arcadex.migrate(conn, REGISTRY)          # Ok([1, 2, 3])
    >>> arcadex.status(conn, REGISTRY)           # Ok([MigrationStatus(...), ...])
    >>> arcadex.rollback(conn, REGISTRY, steps=2)
    >>> arcadex.rollback_to(conn, 1, REGISTRY)
    >>> arcadex.reset(conn, REGISTRY)

When no registry is passed, the one named by the ``migrations`` setting of
the client configuration is used.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Sequence

from . import statements
from .config import load_config
from .errors import ArcadexError, ErrorKind, MigrationFailedError, validation_error
from .migration import Migration, MigrationRegistry, load_registry
from .models import Conn
from .result import Err, Ok, Result
from .transactions import run_transaction

LOG = logging.getLogger(__name__)

TRACKING_TYPE = "_migrations"

_TRACKING_SCHEMA = (
    f"CREATE DOCUMENT TYPE {TRACKING_TYPE}",
    f"CREATE PROPERTY {TRACKING_TYPE}.version LONG",
    f"CREATE PROPERTY {TRACKING_TYPE}.name STRING",
    f"CREATE PROPERTY {TRACKING_TYPE}.applied_at DATETIME",
    f"CREATE INDEX ON {TRACKING_TYPE} (version) UNIQUE",
)

_RECORD_APPLIED = (
    f"INSERT INTO {TRACKING_TYPE} SET version = :version, name = :name, applied_at = sysdate()"
)
_RECORD_REVERTED = f"DELETE FROM {TRACKING_TYPE} WHERE version = :version"


class Direction(str, Enum):
    UP = "up"
    DOWN = "down"


class MigrationState(str, Enum):
    APPLIED = "applied"
    PENDING = "pending"


@dataclass(frozen=True, slots=True)
class MigrationStatus:
    """One registry entry and whether the database has it."""

    version: int
    name: str
    state: MigrationState


RegistryLike = MigrationRegistry | Sequence[Migration | type[Migration]] | str | None


def resolve_registry(registry: RegistryLike = None) -> MigrationRegistry:
    """Return `registry` as a `MigrationRegistry`, consulting config when None."""

    if isinstance(registry, MigrationRegistry):
        return registry
    if isinstance(registry, str):
        return load_registry(registry)
    if registry is not None:
        return MigrationRegistry(registry)
    target = load_config().migrations
    if not target:
        raise validation_error(
            "No migration registry given",
            detail="pass one explicitly or set 'migrations' in the configuration",
        )
    return load_registry(target)


def tracking_type_exists(conn: Conn) -> Result[bool]:
    outcome = statements.query(conn, f"SELECT FROM schema:types WHERE name = '{TRACKING_TYPE}'")
    if isinstance(outcome, Err):
        return outcome
    return Ok(bool(outcome.value))


def ensure_tracking_type(conn: Conn) -> Result[None]:
    """Create the tracking type (properties and unique index) if it is missing."""

    exists = tracking_type_exists(conn)
    if isinstance(exists, Err):
        return exists
    if exists.value:
        return Ok(None)
    return _create_tracking_type(conn)


def applied_versions(conn: Conn) -> Result[list[int]]:
    """Versions recorded in the database, ascending; none when untracked."""

    exists = tracking_type_exists(conn)
    if isinstance(exists, Err):
        return exists
    if not exists.value:
        return Ok([])
    return _read_versions(conn)


def pending_migrations(registry: MigrationRegistry, applied: Sequence[int]) -> list[Migration]:
    done = set(applied)
    return sorted((unit for unit in registry if unit.version not in done), key=lambda unit: unit.version)


def run_one(conn: Conn, unit: Migration, direction: Direction) -> Result[None]:
    """Run one unit and its bookkeeping write inside a single transaction."""

    direction = Direction(direction)

    def _work(tx: Conn) -> Any:
        if direction is Direction.UP:
            outcome = unit.up(tx)
            if isinstance(outcome, Err):
                return outcome
            return statements.command(
                tx, _RECORD_APPLIED, {"version": unit.version, "name": unit.name}
            )
        outcome = unit.down(tx)
        if isinstance(outcome, Err):
            return outcome
        return statements.command(tx, _RECORD_REVERTED, {"version": unit.version})

    LOG.info(
        "Running migration",
        extra={"version": unit.version, "migration": unit.name, "direction": direction.value},
    )
    outcome = run_transaction(conn, _work)
    if isinstance(outcome, Err):
        LOG.error(
            "Migration failed",
            extra={
                "version": unit.version,
                "migration": unit.name,
                "direction": direction.value,
                "error": str(outcome.error),
            },
        )
        return Err(
            MigrationFailedError(unit.version, direction.value, outcome.error),
            secondary=outcome.secondary,
        )
    return Ok(None)


def migrate(conn: Conn, registry: RegistryLike = None) -> Result[list[int]]:
    """Apply every pending unit in ascending order; return the versions applied."""

    prepared = _prepare(conn, registry)
    if isinstance(prepared, Err):
        return prepared
    units, tracked, applied = prepared.value
    pending = pending_migrations(units, applied)
    if not pending:
        LOG.info("No pending migrations", extra={"database": conn.database})
        return Ok([])
    if not tracked:
        created = _create_tracking_type(conn)
        if isinstance(created, Err):
            return created
    return _run_all(conn, pending, Direction.UP)


def migrate_or_raise(conn: Conn, registry: RegistryLike = None) -> list[int]:
    return migrate(conn, registry).unwrap()


def rollback(conn: Conn, registry: RegistryLike = None, steps: int = 1) -> Result[list[int]]:
    """Revert the `steps` most recently applied units, newest first."""

    if isinstance(steps, bool) or not isinstance(steps, int) or steps < 1:
        return Err(validation_error(f"steps must be a positive integer, got {steps!r}"))
    prepared = _prepare(conn, registry)
    if isinstance(prepared, Err):
        return prepared
    units, _, applied = prepared.value
    return _run_all(conn, _applied_desc(units, applied)[:steps], Direction.DOWN)


def rollback_or_raise(conn: Conn, registry: RegistryLike = None, steps: int = 1) -> list[int]:
    return rollback(conn, registry, steps).unwrap()


def rollback_to(conn: Conn, target: int, registry: RegistryLike = None) -> Result[list[int]]:
    """Revert every applied unit with a version strictly greater than `target`."""

    if isinstance(target, bool) or not isinstance(target, int) or target < 0:
        return Err(validation_error(f"target must be a non-negative integer, got {target!r}"))
    prepared = _prepare(conn, registry)
    if isinstance(prepared, Err):
        return prepared
    units, _, applied = prepared.value
    doomed = [unit for unit in _applied_desc(units, applied) if unit.version > target]
    return _run_all(conn, doomed, Direction.DOWN)


def rollback_to_or_raise(conn: Conn, target: int, registry: RegistryLike = None) -> list[int]:
    return rollback_to(conn, target, registry).unwrap()


def status(conn: Conn, registry: RegistryLike = None) -> Result[list[MigrationStatus]]:
    prepared = _prepare(conn, registry)
    if isinstance(prepared, Err):
        return prepared
    units, _, applied = prepared.value
    done = set(applied)
    return Ok(
        [
            MigrationStatus(
                version=unit.version,
                name=unit.name,
                state=MigrationState.APPLIED if unit.version in done else MigrationState.PENDING,
            )
            for unit in units
        ]
    )


def status_or_raise(conn: Conn, registry: RegistryLike = None) -> list[MigrationStatus]:
    return status(conn, registry).unwrap()


def reset(conn: Conn, registry: RegistryLike = None) -> Result[list[int]]:
    """Revert every applied unit, then apply the whole registry again."""

    prepared = _prepare(conn, registry)
    if isinstance(prepared, Err):
        return prepared
    units, _, applied = prepared.value
    reverted = _run_all(conn, _applied_desc(units, applied), Direction.DOWN)
    if isinstance(reverted, Err):
        return reverted
    return migrate(conn, units)


def reset_or_raise(conn: Conn, registry: RegistryLike = None) -> list[int]:
    return reset(conn, registry).unwrap()


def _prepare(
    conn: Conn, registry: RegistryLike
) -> Result[tuple[MigrationRegistry, bool, list[int]]]:
    if conn.in_transaction:
        return Err(validation_error("Migrations manage their own transactions; pass a stateless handle"))
    try:
        units = resolve_registry(registry)
    except ArcadexError as exc:
        return Err(exc)
    tracked = tracking_type_exists(conn)
    if isinstance(tracked, Err):
        return tracked
    if not tracked.value:
        return Ok((units, False, []))
    versions = _read_versions(conn)
    if isinstance(versions, Err):
        return versions
    return Ok((units, True, versions.value))


def _read_versions(conn: Conn) -> Result[list[int]]:
    outcome = statements.query(conn, f"SELECT version FROM {TRACKING_TYPE} ORDER BY version")
    if isinstance(outcome, Err):
        return outcome
    versions: list[int] = []
    for row in outcome.value:
        version = row.get("version") if isinstance(row, dict) else None
        if isinstance(version, bool) or not isinstance(version, int):
            return Err(
                ArcadexError(
                    ErrorKind.SERVER,
                    "Malformed migration record",
                    detail=f"{TRACKING_TYPE} record without an integer version: {row!r}",
                )
            )
        versions.append(version)
    return Ok(sorted(versions))


def _create_tracking_type(conn: Conn) -> Result[None]:
    LOG.info("Creating migration tracking type", extra={"database": conn.database})
    for statement in _TRACKING_SCHEMA:
        outcome = statements.command(conn, statement)
        if isinstance(outcome, Err):
            return outcome
    return Ok(None)


def _applied_desc(registry: MigrationRegistry, applied: Sequence[int]) -> list[Migration]:
    done = set(applied)
    return sorted(
        (unit for unit in registry if unit.version in done),
        key=lambda unit: unit.version,
        reverse=True,
    )


def _run_all(conn: Conn, units: Sequence[Migration], direction: Direction) -> Result[list[int]]:
    completed: list[int] = []
    for unit in units:
        outcome = run_one(conn, unit, direction)
        if isinstance(outcome, Err):
            if completed:
                LOG.warning(
                    "Stopped after partial run",
                    extra={"completed": list(completed), "direction": direction.value},
                )
            return outcome
        completed.append(unit.version)
    return Ok(completed)


__all__ = [
    "Direction",
    "MigrationState",
    "MigrationStatus",
    "TRACKING_TYPE",
    "applied_versions",
    "ensure_tracking_type",
    "migrate",
    "migrate_or_raise",
    "pending_migrations",
    "reset",
    "reset_or_raise",
    "resolve_registry",
    "rollback",
    "rollback_or_raise",
    "rollback_to",
    "rollback_to_or_raise",
    "run_one",
    "status",
    "status_or_raise",
    "tracking_type_exists",
]
