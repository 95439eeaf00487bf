"""
models/migration.py
-------------------
Typed data models for schema migrations.

Design Decision:
    ``Migration`` is a frozen dataclass holding its statements as tuples;
    sources, plans and the executor share the same objects.
"""
from __future__ import annotations

import re
from dataclasses import dataclass, field
from enum import Enum

_NUMBER_PREFIX_RE = re.compile(r"^(\d+)")


class MigrationDirection(str, Enum):
    """Which half of a migration to run."""
    UP = "up"
    DOWN = "down"


@dataclass(frozen=True)
class Migration:
    """
    One versioned change-script.

    Attributes:
        id:                      Identity, usually the file name (``1_init.sql``).
        up:                      Statements applied when migrating up, in order.
        down:                    Statements applied when migrating down.
        disable_transaction_up:  Author asked for no transaction wrapping on
                                 the way up. Informational only: the service
                                 has no multi-statement transactions.
        disable_transaction_down: Same for the way down.
    """
    id: str
    up: tuple[str, ...] = ()
    down: tuple[str, ...] = ()
    disable_transaction_up: bool = False
    disable_transaction_down: bool = False

    @property
    def version(self) -> int | None:
        """Integer value of the leading digit run, or None for non-numeric ids."""
        match = _NUMBER_PREFIX_RE.match(self.id)
        return int(match.group(1)) if match else None

    @property
    def is_numeric(self) -> bool:
        return self.version is not None

    def statements(self, direction: MigrationDirection) -> tuple[str, ...]:
        return self.up if direction is MigrationDirection.UP else self.down

    def disable_transaction(self, direction: MigrationDirection) -> bool:
        if direction is MigrationDirection.UP:
            return self.disable_transaction_up
        return self.disable_transaction_down

    def less(self, other: "Migration") -> bool:
        """
        Ordering rule:

        * numeric-prefixed ids compare by integer value,
        * a numeric-prefixed id sorts before a non-numeric one,
        * everything else (including equal numbers) compares by full id.
        """
        return migration_sort_key(self) < migration_sort_key(other)


def migration_sort_key(migration: Migration) -> tuple[int, int, str]:
    """
    Key implementing :meth:`Migration.less` for :func:`sorted`::

        sorted(["10_x", "2_y", "alpha"])  →  "2_y", "10_x", "alpha"
    """
    version = migration.version
    if version is None:
        return (1, 0, migration.id)
    return (0, version, migration.id)


def sort_migrations(migrations: list[Migration]) -> list[Migration]:
    """Return a new list ordered by :func:`migration_sort_key`."""
    return sorted(migrations, key=migration_sort_key)


@dataclass
class MigrationRecord:
    """One row of the migration ledger table."""
    id: str = ""
    applied_at: str = ""


@dataclass
class MigrationPlan:
    """Migrations selected for one run, in execution order."""
    direction: MigrationDirection
    migrations: list[Migration] = field(default_factory=list)

    @property
    def ids(self) -> list[str]:
        return [m.id for m in self.migrations]

    def __len__(self) -> int:
        return len(self.migrations)
