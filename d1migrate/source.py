"""
d1migrate/source.py
-------------------
Where migrations come from.

Every source returns its migrations already ordered by
:func:`~models.migration.migration_sort_key`, so the planner never has to
sort again.
"""
from __future__ import annotations

import abc
from importlib import resources
from pathlib import Path
from typing import Any, Iterable

from config import CONFIG
from d1migrate.parser import MigrationParseError, parse_migration
from logger import get_logger
from models.migration import Migration, sort_migrations

log = get_logger(__name__)

_SQL_SUFFIX = ".sql"


class MigrationSource(abc.ABC):
    """Provides the set of known migrations."""

    @abc.abstractmethod
    def find_migrations(self) -> list[Migration]:
        """Return every known migration, sorted by the ordering rule."""


class MemoryMigrationSource(MigrationSource):
    """A hard-coded list of migrations."""

    def __init__(self, migrations: Iterable[Migration]) -> None:
        self._migrations = list(migrations)

    def find_migrations(self) -> list[Migration]:
        return sort_migrations(self._migrations)


def _migrations_from(entries: Iterable[Any]) -> list[Migration]:
    migrations: list[Migration] = []
    for entry in entries:
        if not entry.is_file() or not entry.name.endswith(_SQL_SUFFIX):
            continue
        try:
            data = entry.read_bytes()
        except OSError as exc:
            raise MigrationParseError(entry.name, f"cannot read file: {exc}") from exc
        migrations.append(parse_migration(entry.name, data))
    return sort_migrations(migrations)


class FileMigrationSource(MigrationSource):
    """
    Every ``*.sql`` file directly inside *directory* (default
    ``CONFIG.migration.migrations_dir``); the file name is the migration id.

    Raises (from :meth:`find_migrations`):
        FileNotFoundError: The directory does not exist.
        MigrationParseError: A file could not be read or parsed.
    """

    def __init__(self, directory: str | Path | None = None) -> None:
        self.directory = Path(directory) if directory is not None else CONFIG.migration.migrations_dir

    def find_migrations(self) -> list[Migration]:
        if not self.directory.is_dir():
            raise FileNotFoundError(f"migrations directory not found: {self.directory}")
        migrations = _migrations_from(self.directory.iterdir())
        log.debug("Found %d migration(s) in '%s'.", len(migrations), self.directory)
        return migrations


class PackageMigrationSource(MigrationSource):
    """
    ``*.sql`` files bundled inside an importable package.

    Args:
        package: Package name or module object holding the files.
        root:    Sub-directory within the package (``""`` for its top level).
    """

    def __init__(self, package: str, root: str = "") -> None:
        self.package = package
        self.root = root

    def find_migrations(self) -> list[Migration]:
        base = resources.files(self.package)
        if self.root:
            base = base.joinpath(self.root)
        if not base.is_dir():
            raise FileNotFoundError(f"migrations not found in package {self.package}/{self.root}")
        return _migrations_from(base.iterdir())
