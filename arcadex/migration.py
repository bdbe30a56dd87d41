"""Migration units and the registry that orders them.

A unit is a class with an integer ``version`` and ``up``/``down`` methods::

    class V001CreateUser(Migration):
        version = 1

        def up(self, conn):
            arcadex.command_or_raise(conn, "CREATE DOCUMENT TYPE User")
            arcadex.command_or_raise(conn, "CREATE PROPERTY User.uid STRING")

        def down(self, conn):
            arcadex.command_or_raise(conn, "DROP TYPE User IF EXISTS")

    REGISTRY = MigrationRegistry([V001CreateUser, V002AddSettings])

``up`` and ``down`` receive a transaction-scoped handle. They signal failure
by raising or by returning an `Err`.
"""

from __future__ import annotations

import importlib
import inspect
from abc import ABC, abstractmethod
from typing import Any, ClassVar, Iterable, Iterator, Sequence

from .errors import validation_error
from .models import Conn


class Migration(ABC):
    """Base class for versioned schema changes."""

    version: ClassVar[int]

    @property
    def name(self) -> str:
        return type(self).__name__

    @abstractmethod
    def up(self, conn: Conn) -> Any:
        """Apply the change."""

    @abstractmethod
    def down(self, conn: Conn) -> Any:
        """Revert the change."""

    def __repr__(self) -> str:
        return f"<{self.name} version={getattr(self, 'version', None)!r}>"


class MigrationRegistry(Sequence[Migration]):
    """Immutable, validated sequence of migrations in ascending version order.

    Versions must be positive integers declared in strictly increasing order;
    anything else is rejected here, before any database is touched.
    """

    def __init__(self, migrations: Iterable[Migration | type[Migration]]) -> None:
        units = tuple(m() if inspect.isclass(m) else m for m in migrations)
        _validate(units)
        self._units: tuple[Migration, ...] = units

    def __getitem__(self, index):  # type: ignore[no-untyped-def, override]
        return self._units[index]

    def __len__(self) -> int:
        return len(self._units)

    def __iter__(self) -> Iterator[Migration]:
        return iter(self._units)

    def __repr__(self) -> str:
        return f"MigrationRegistry(versions={list(self.versions)!r})"

    @property
    def versions(self) -> tuple[int, ...]:
        return tuple(unit.version for unit in self._units)

    def get(self, version: int) -> Migration | None:
        for unit in self._units:
            if unit.version == version:
                return unit
        return None


def load_registry(target: str) -> MigrationRegistry:
    """Import a registry from ``"package.module:ATTRIBUTE"``.

    The attribute may be a `MigrationRegistry` or a plain list of migrations.
    """

    module_name, _, attribute = target.partition(":")
    if not module_name or not attribute:
        raise validation_error(
            f"Invalid migration registry '{target}'",
            detail="expected 'package.module:ATTRIBUTE'",
        )
    try:
        module = importlib.import_module(module_name)
    except ImportError as exc:
        raise validation_error(f"Cannot import migration module '{module_name}'", detail=str(exc)) from exc
    try:
        obj = getattr(module, attribute)
    except AttributeError as exc:
        raise validation_error(
            f"Module '{module_name}' has no attribute '{attribute}'"
        ) from exc
    if isinstance(obj, MigrationRegistry):
        return obj
    if isinstance(obj, (list, tuple)):
        return MigrationRegistry(obj)
    raise validation_error(f"'{target}' is not a migration registry")


def _validate(units: Sequence[Migration]) -> None:
    previous: int | None = None
    for unit in units:
        if not isinstance(unit, Migration):
            raise validation_error(f"{unit!r} is not a Migration")
        version = getattr(unit, "version", None)
        if not isinstance(version, int) or isinstance(version, bool) or version <= 0:
            raise validation_error(f"{unit.name} has invalid version {version!r}")
        if previous is not None:
            if version == previous:
                raise validation_error(f"Duplicate migration version {version}")
            if version < previous:
                raise validation_error(
                    f"Migration versions must increase: {version} declared after {previous}"
                )
        previous = version


__all__ = ["Migration", "MigrationRegistry", "load_registry"]
