"""models/__init__.py"""
from models.migration import (
    Migration,
    MigrationDirection,
    MigrationPlan,
    MigrationRecord,
    migration_sort_key,
    sort_migrations,
)

__all__ = [
    "Migration",
    "MigrationDirection",
    "MigrationPlan",
    "MigrationRecord",
    "migration_sort_key",
    "sort_migrations",
]
