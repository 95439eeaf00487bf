"""
d1migrate/parser.py
-------------------
Parses migration scripts into :class:`~models.migration.Migration` objects.

File Format::

    -- +migrate Up
    CREATE TABLE users (id INTEGER PRIMARY KEY, name TEXT);
    CREATE INDEX users_name ON users(name);

    -- +migrate Down notransaction
    DROP TABLE users;

Design Decisions:
    * Lines before the first directive belong to the Up section.
    * ``notransaction`` on a directive line sets that direction's flag.
    * ``-- +migrate StatementBegin`` / ``StatementEnd`` lines are accepted
      and dropped; they do not change how statements are split.
    * Statements are split on every ``;``. Semicolons inside string literals
      or comments are not special-cased.
"""
from __future__ import annotations

import io
from dataclasses import dataclass, field
from typing import IO, Union

from d1.errors import D1Error
from logger import get_logger
from models.migration import Migration, MigrationDirection

log = get_logger(__name__)

_UP = "-- +migrate Up"
_DOWN = "-- +migrate Down"
_STATEMENT_BEGIN = "-- +migrate StatementBegin"
_STATEMENT_END = "-- +migrate StatementEnd"
_NO_TRANSACTION = "notransaction"
_TERMINATOR = ";"

MigrationText = Union[str, bytes, IO[str], IO[bytes]]


class MigrationParseError(D1Error):
    """Raised when a migration script cannot be read."""

    def __init__(self, migration_id: str, reason: str) -> None:
        super().__init__(f"error parsing migration ({migration_id}): {reason}")
        self.migration_id = migration_id


@dataclass
class ParsedMigration:
    up: list[str] = field(default_factory=list)
    down: list[str] = field(default_factory=list)
    disable_transaction_up: bool = False
    disable_transaction_down: bool = False

    def add(self, direction: MigrationDirection, sql: str) -> None:
        target = self.up if direction is MigrationDirection.UP else self.down
        target.extend(split_statements(sql))


def split_statements(sql: str) -> list[str]:
    """Split *sql* on ``;`` and return the trimmed, non-empty fragments."""
    return [s.strip() for s in sql.split(_TERMINATOR) if s.strip()]


def _read_text(source: MigrationText) -> str:
    if isinstance(source, (bytes, bytearray)):
        return bytes(source).decode("utf-8")
    if isinstance(source, str):
        return source
    data = source.read()
    if isinstance(data, bytes):
        return data.decode("utf-8")
    return data


def parse_lines(text: str) -> ParsedMigration:
    """Split script *text* into its up/down statement lists."""
    parsed = ParsedMigration()
    direction = MigrationDirection.UP
    buf: list[str] = []

    for line in io.StringIO(text):
        line = line.rstrip("\r\n")
        if line.startswith(_UP) or line.startswith(_DOWN):
            if buf:
                parsed.add(direction, "\n".join(buf))
                buf = []
            if line.startswith(_UP):
                direction = MigrationDirection.UP
                if _NO_TRANSACTION in line:
                    parsed.disable_transaction_up = True
            else:
                direction = MigrationDirection.DOWN
                if _NO_TRANSACTION in line:
                    parsed.disable_transaction_down = True
        elif line.startswith(_STATEMENT_BEGIN) or line.startswith(_STATEMENT_END):
            continue
        else:
            buf.append(line)

    if buf:
        parsed.add(direction, "\n".join(buf))
    return parsed


def parse_migration(migration_id: str, source: MigrationText) -> Migration:
    """
    Parse a migration script.

    Args:
        migration_id: Identity assigned to the migration (usually its file name).
        source:       Script text, raw bytes, or an open file object.

    Returns:
        The parsed :class:`Migration`.

    Raises:
        MigrationParseError: If the script cannot be read or decoded.

    Example::

        m = parse_migration("1_init", "-- +migrate Up\\nCREATE TABLE t(x);\\n")
        # m.up == ("CREATE TABLE t(x)",)
    """
    try:
        text = _read_text(source)
    except (OSError, UnicodeDecodeError) as exc:
        raise MigrationParseError(migration_id, str(exc)) from exc

    parsed = parse_lines(text)
    log.debug(
        "Parsed migration %s: %d up / %d down statement(s).",
        migration_id, len(parsed.up), len(parsed.down),
    )
    return Migration(
        id=migration_id,
        up=tuple(parsed.up),
        down=tuple(parsed.down),
        disable_transaction_up=parsed.disable_transaction_up,
        disable_transaction_down=parsed.disable_transaction_down,
    )
