"""
d1/cursor.py
------------
Forward-only cursor over a normalized query result.

State machine::

    unstarted (position -1) ──next()──▶ on row ──next()──▶ … ──▶ exhausted
                                                                   │
    close() from any state ─────────────────────────────────────▶ closed

Design Decisions:
    * The cursor owns its rows; ``close()`` drops them and is idempotent.
    * Not thread-safe: ``next()`` mutates a single position. Two independent
      cursors over the same response require normalizing it twice.
    * Positional ``scan`` returns a tuple rather than filling out-parameters.

Example::

    with to_cursor(envelope) as cur:
        while cur.next():
            user_id, name = cur.scan(int, str)
"""
from __future__ import annotations

from typing import Any, Iterator, Sequence

from d1.errors import ArityMismatch, ConversionError, CursorClosed, NoRows
from d1.records import describe
from d1.type_converter import coerce, resolve_kind


class Cursor:
    """
    Iterator over keyed rows with positional and named decoding.

    Args:
        rows:    Keyed raw rows (column name → wire value).
        columns: Column set giving the canonical positional order. When
                 empty, it is inferred from the first row's keys.
    """

    def __init__(self, rows: Sequence[dict[str, Any]] | None, columns: Sequence[str] = ()) -> None:
        self._rows: tuple[dict[str, Any], ...] = tuple(rows or ())
        if not columns and self._rows:
            columns = list(self._rows[0])
        self._columns: tuple[str, ...] = tuple(columns)
        self._position = -1
        self._closed = False

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def __enter__(self) -> "Cursor":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> bool:
        self.close()
        return False

    def __iter__(self) -> Iterator[dict[str, Any]]:
        while self.next():
            yield self._rows[self._position]

    def __len__(self) -> int:
        return len(self._rows)

    @property
    def columns(self) -> tuple[str, ...]:
        return self._columns

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def position(self) -> int:
        return self._position

    def next(self) -> bool:
        """Advance to the next row; False once the rows are exhausted."""
        if self._position < len(self._rows):
            self._position += 1
        return self._position < len(self._rows)

    def close(self) -> None:
        self._rows = ()
        self._position = 0
        self._closed = True

    def _current(self) -> dict[str, Any]:
        if self._closed:
            raise CursorClosed("cursor is closed")
        if self._position < 0 or self._position >= len(self._rows):
            raise CursorClosed("cursor is not positioned on a row")
        return self._rows[self._position]

    # ------------------------------------------------------------------
    # Positional scan
    # ------------------------------------------------------------------

    def scan(self, *kinds: Any) -> tuple[Any, ...]:
        """
        Decode the current row in column order.

        Args:
            kinds: One destination type per column (``int``, ``str``,
                   ``float``, ``bool``, ``Any``, ``Optional[...]``). A type
                   outside the coercion table yields ``None``.

        Raises:
            CursorClosed: Closed or not positioned on a row.
            ArityMismatch: ``len(kinds) != len(columns)``.
            ConversionError: A value could not be coerced.
        """
        row = self._current()
        if len(kinds) != len(self._columns):
            raise ArityMismatch(len(self._columns), len(kinds))

        values = []
        for index, (name, dest) in enumerate(zip(self._columns, kinds)):
            kind, nullable = resolve_kind(dest)
            if kind is None:
                values.append(None)
                continue
            try:
                values.append(coerce(row.get(name), kind, nullable))
            except ConversionError as exc:
                raise ConversionError(
                    f"scan error on column index {index}, name {name!r}: {exc}"
                ) from exc
        return tuple(values)

    # ------------------------------------------------------------------
    # Named scans
    # ------------------------------------------------------------------

    def scan_into(self, record: Any) -> Any:
        """
        Fill the fields of an existing dataclass instance from the current
        row. Fields whose column is absent are left untouched.
        """
        row = self._current()
        return describe(type(record)).assign(record, row)

    def scan_all(self, record_type: type, into: list | None = None) -> list:
        """
        Build one *record_type* per remaining row.

        Args:
            record_type: Dataclass type to instantiate.
            into:        Optional list to append to; a new list otherwise.

        Returns:
            The list of records (empty when there were no rows).
        """
        if self._closed:
            raise CursorClosed("cursor is closed")
        descriptor = describe(record_type)
        records = into if into is not None else []
        index = 0
        while self.next():
            try:
                records.append(descriptor.build(self._rows[self._position]))
            except ConversionError as exc:
                raise ConversionError(f"scan failed at row {index}: {exc}") from exc
            index += 1
        return records

    def first(self, record_type: type) -> Any:
        """
        Advance once and build a *record_type* from that row.

        Raises:
            NoRows: No row was available.
        """
        if self._closed:
            raise CursorClosed("cursor is closed")
        if not self.next():
            raise NoRows()
        return describe(record_type).build(self._rows[self._position])
