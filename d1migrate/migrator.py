"""
d1migrate/migrator.py
---------------------
Migration engine: plans and applies/reverts migrations against the ledger.

Design Decisions:
    * The engine is a plain class with injected dependencies (any object with
      ``query(sql, params)`` returning a response envelope) and an explicit
      ledger table name. No global state.
    * Progress is reported via a callback (``progress_cb``) so CLI callers
      and tests can observe runs without parsing logs.
    * Execution is strictly sequential. Each statement is its own request:
      the service has no multi-statement transactions, so a failure part way
      through a migration leaves the earlier statements applied and the
      ledger untouched for that migration. Nothing is rolled back.
    * There is no locking. Two concurrent runs against one ledger race;
      callers must serialise migration runs themselves.
"""
from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Callable, Protocol

from config import CONFIG
from d1.envelope import raise_for_envelope, to_cursor
from d1.errors import D1Error
from d1migrate.source import MigrationSource
from logger import get_logger
from models.migration import Migration, MigrationDirection, MigrationPlan, MigrationRecord

log = get_logger(__name__)

ProgressCallback = Callable[[str, int, int], None]  # message, current, total


class Database(Protocol):
    """The query collaborator the engine needs (``D1Client``, ``ConnectionPool``)."""

    def query(self, sql: str, params: list[str] | None = None) -> Any: ...


class MigrationExecutionError(D1Error):
    """
    Raised when a statement or ledger write fails during a run.

    Attributes:
        migration_id:  Migration that failed.
        direction:     Direction being run.
        applied_count: Migrations fully completed before the failure.
    """

    def __init__(
        self,
        migration_id: str,
        direction: MigrationDirection,
        applied_count: int,
        cause: BaseException,
    ) -> None:
        super().__init__(
            f"failed to apply migration {migration_id} ({direction.value}): {cause}"
        )
        self.migration_id = migration_id
        self.direction = direction
        self.applied_count = applied_count


def plan_migrations(
    available: list[Migration],
    applied_ids: list[str],
    direction: MigrationDirection,
    max_count: int = 0,
) -> list[Migration]:
    """
    Select the migrations to run.

    Args:
        available:   Known migrations, already sorted.
        applied_ids: Ledger ids in ledger order. The engine reads the ledger
                     ``ORDER BY id ASC``, a text sort, so ``10_x`` precedes
                     ``2_y`` and a DOWN run reverts ``2_y`` before ``10_x``.
        direction:   UP runs every unapplied migration in sort order; DOWN
                     walks the ledger backwards, keeping ids that still
                     have a known migration.
        max_count:   Truncate the plan to this many entries (0 = no limit).

    Example::

        plan_migrations(known, ["1_a", "3_c", "2_b"], MigrationDirection.DOWN)
        # → 2_b, 3_c, 1_a
    """
    if direction is MigrationDirection.UP:
        applied = set(applied_ids)
        selected = [m for m in available if m.id not in applied]
    else:
        by_id = {m.id: m for m in available}
        selected = [by_id[i] for i in reversed(applied_ids) if i in by_id]

    if max_count > 0:
        selected = selected[:max_count]
    return selected


class MigrationEngine:
    """
    Applies or reverts migrations and keeps the ledger table in step.

    Args:
        db:          Query collaborator.
        table_name:  Ledger table; defaults to ``CONFIG.migration.table_name``.
        progress_cb: Optional callback ``(message, current, total)``.

    Example::

        engine = MigrationEngine(db=client)
        applied = engine.exec(FileMigrationSource("migrations"), MigrationDirection.UP)
    """

    def __init__(
        self,
        db: Database,
        table_name: str | None = None,
        progress_cb: ProgressCallback | None = None,
    ) -> None:
        self._db = db
        self._table = table_name or CONFIG.migration.table_name
        self._progress_cb = progress_cb or self._default_progress

    @property
    def table_name(self) -> str:
        return self._table

    @staticmethod
    def _default_progress(msg: str, current: int, total: int) -> None:
        log.info("%s (%d/%s)", msg, current, total if total else "?")

    def _progress(self, msg: str, current: int = 0, total: int = 0) -> None:
        self._progress_cb(msg, current, total)

    # ------------------------------------------------------------------
    # Ledger
    # ------------------------------------------------------------------

    def _run(self, sql: str, params: list[str] | None = None) -> Any:
        envelope = self._db.query(sql, params)
        raise_for_envelope(envelope)
        return envelope

    def ensure_table(self) -> None:
        """Create the ledger table if it does not exist."""
        self._run(
            f"CREATE TABLE IF NOT EXISTS {self._table} "
            f"(id TEXT PRIMARY KEY, applied_at DATETIME);"
        )

    def applied_ids(self) -> list[str]:
        """Ids recorded in the ledger, ascending by id."""
        envelope = self._db.query(f"SELECT id FROM {self._table} ORDER BY id ASC;")
        with to_cursor(envelope) as cursor:
            return [r.id for r in cursor.scan_all(MigrationRecord)]

    def applied_records(self) -> list[MigrationRecord]:
        """Full ledger rows, ascending by id."""
        self.ensure_table()
        envelope = self._db.query(
            f"SELECT id, applied_at FROM {self._table} ORDER BY id ASC;"
        )
        with to_cursor(envelope) as cursor:
            return cursor.scan_all(MigrationRecord)

    def _record(self, migration: Migration, direction: MigrationDirection) -> None:
        if direction is MigrationDirection.UP:
            applied_at = datetime.now(timezone.utc).isoformat(timespec="seconds")
            self._run(
                f"INSERT INTO {self._table} (id, applied_at) VALUES (?, ?);",
                [migration.id, applied_at],
            )
        else:
            self._run(f"DELETE FROM {self._table} WHERE id = ?;", [migration.id])

    # ------------------------------------------------------------------
    # Public entry points
    # ------------------------------------------------------------------

    def plan(
        self,
        source: MigrationSource,
        direction: MigrationDirection,
        max_count: int = 0,
    ) -> MigrationPlan:
        """
        Work out what a run would do, without applying anything.

        Creates the ledger table if needed, then diffs the source against it.
        """
        self.ensure_table()
        applied = self.applied_ids()
        available = source.find_migrations()
        selected = plan_migrations(available, applied, direction, max_count)
        log.debug(
            "Planned %d %s migration(s) from %d known, %d applied.",
            len(selected), direction.value, len(available), len(applied),
        )
        return MigrationPlan(direction=direction, migrations=selected)

    def exec(self, source: MigrationSource, direction: MigrationDirection) -> int:
        """Run every planned migration. Returns the number completed."""
        return self.exec_max(source, direction, 0)

    def exec_max(
        self,
        source: MigrationSource,
        direction: MigrationDirection,
        max_count: int,
    ) -> int:
        """
        Run at most *max_count* planned migrations (0 = no limit).

        Returns:
            Number of migrations completed.

        Raises:
            MigrationExecutionError: A statement or ledger write failed; the
                error carries the migration id and how many migrations
                completed before it.
            D1Error: Creating or reading the ledger failed.
        """
        plan = self.plan(source, direction, max_count)
        total = len(plan)
        if not total:
            self._progress(f"No {direction.value} migrations to run", 0, 0)
            return 0

        count = 0
        for migration in plan.migrations:
            self._progress(f"Migrating {direction.value} {migration.id}", count, total)
            try:
                self.apply(migration, direction)
            except D1Error as exc:
                log.error(
                    "Migration %s (%s) failed after %d completed: %s",
                    migration.id, direction.value, count, exc,
                )
                raise MigrationExecutionError(migration.id, direction, count, exc) from exc
            count += 1

        self._progress(f"Completed {count} {direction.value} migration(s)", count, total)
        return count

    def apply(self, migration: Migration, direction: MigrationDirection) -> None:
        """
        Run one direction of *migration*, statement by statement, then update
        the ledger. Errors propagate without any ledger change.
        """
        for index, statement in enumerate(migration.statements(direction)):
            log.debug("%s [%d]: %.200s", migration.id, index, statement)
            self._run(statement)
        self._record(migration, direction)
