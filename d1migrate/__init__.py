"""d1migrate/__init__.py"""
from d1migrate.parser import MigrationParseError, parse_migration, split_statements
from d1migrate.source import (
    MigrationSource,
    MemoryMigrationSource,
    FileMigrationSource,
    PackageMigrationSource,
)
from d1migrate.migrator import (
    MigrationEngine,
    MigrationExecutionError,
    plan_migrations,
)

__all__ = [
    "MigrationParseError",
    "parse_migration",
    "split_statements",
    "MigrationSource",
    "MemoryMigrationSource",
    "FileMigrationSource",
    "PackageMigrationSource",
    "MigrationEngine",
    "MigrationExecutionError",
    "plan_migrations",
]
