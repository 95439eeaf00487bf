"""
d1/envelope.py
--------------
Response envelope model and the wire row normalizer.

Envelope format returned by every API call::

    {
      "success": true,
      "result": [
        {"results": {"columns": ["id", "name"], "rows": [[1, "a"], [2, "b"]]},
         "meta": {"last_row_id": 2, "changes": 1}}
      ],
      "errors": [{"code": 7500, "message": "..."}]
    }

Rows arrive either keyed (``{"id": 1, "name": "a"}``) or positional
(``[1, "a"]``, aligned with ``columns``). ``normalize`` turns both into a
column tuple and a list of keyed rows.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Mapping, Union

from pydantic import BaseModel, Field, ValidationError, field_validator

from d1.cursor import Cursor
from d1.errors import APIError, RowWidthMismatch, ShapeError
from logger import get_logger

log = get_logger(__name__)

RawRow = dict[str, Any]
ColumnSet = tuple[str, ...]


class ErrorDetail(BaseModel):
    """One entry of the envelope's ``errors`` list."""
    code: int | None = None
    message: str = ""


class ResponseEnvelope(BaseModel):
    """Top-level API response. ``null`` lists are read as empty."""
    success: bool
    result: Any = None
    errors: list[ErrorDetail] = Field(default_factory=list)
    messages: list[Any] = Field(default_factory=list)

    @field_validator("errors", "messages", mode="before")
    @classmethod
    def _null_as_empty(cls, value: Any) -> Any:
        return [] if value is None else value


EnvelopeLike = Union[ResponseEnvelope, Mapping[str, Any]]


@dataclass
class QueryResult:
    """Summary of a write statement, read from the ``meta`` block."""
    last_insert_id: int = 0
    rows_affected: int = 0


def parse_envelope(envelope: EnvelopeLike) -> ResponseEnvelope:
    """
    Validate a decoded JSON body as a :class:`ResponseEnvelope`.

    Raises:
        ShapeError: If the body is not an envelope.
    """
    if isinstance(envelope, ResponseEnvelope):
        return envelope
    try:
        return ResponseEnvelope.model_validate(envelope)
    except ValidationError as exc:
        raise ShapeError(f"malformed response envelope: {exc}") from exc


def raise_for_envelope(envelope: EnvelopeLike) -> ResponseEnvelope:
    """
    Return the validated envelope, or raise if the service reported failure.

    Raises:
        APIError: ``success`` is false; carries the first error message, or
                  "unknown error" when none was reported.
        ShapeError: The body is not an envelope.
    """
    env = parse_envelope(envelope)
    if not env.success:
        if env.errors:
            first = env.errors[0]
            raise APIError(first.message, code=first.code)
        raise APIError("unknown error")
    return env


def _first_result_item(env: ResponseEnvelope) -> dict[str, Any] | None:
    if not isinstance(env.result, list):
        raise ShapeError("unexpected result format: not an array")
    if not env.result:
        return None
    item = env.result[0]
    if not isinstance(item, dict):
        raise ShapeError(f"unexpected result item format: {type(item).__name__}")
    return item


def _infer_columns(rows_raw: list[Any]) -> list[str]:
    seen: dict[str, None] = {}
    for row in rows_raw:
        if isinstance(row, dict):
            seen.update(dict.fromkeys(row))
    return list(seen)


def normalize(envelope: EnvelopeLike) -> tuple[ColumnSet, list[RawRow]]:
    """
    Turn a query response into ``(columns, rows)``.

    Only the first result set is read. When the result set carries no
    ``columns`` list, the column set is the union of the keyed rows' keys in
    first-seen order.

    Raises:
        APIError: The service reported failure.
        ShapeError: ``result`` is not a list, or the first item has no
                    ``results`` block, or a row is neither object nor array.
        RowWidthMismatch: A positional row's length differs from the
                          column count.
    """
    env = raise_for_envelope(envelope)
    item = _first_result_item(env)
    if item is None:
        return (), []

    results = item.get("results")
    if not isinstance(results, dict):
        raise ShapeError("missing results map")

    rows_raw = results.get("rows")
    if not isinstance(rows_raw, list):
        if rows_raw is not None:
            log.warning("Ignoring non-list 'rows' field of type %s.", type(rows_raw).__name__)
        return (), []

    cols_raw = results.get("columns")
    if isinstance(cols_raw, list):
        columns = [c for c in cols_raw if isinstance(c, str)]
    else:
        columns = _infer_columns(rows_raw)

    rows: list[RawRow] = []
    for index, row in enumerate(rows_raw):
        if isinstance(row, dict):
            rows.append(row)
        elif isinstance(row, list):
            if len(row) != len(columns):
                raise RowWidthMismatch(index, len(columns), len(row))
            rows.append(dict(zip(columns, row)))
        else:
            raise ShapeError(f"row {index} has unexpected type: {type(row).__name__}")

    log.debug("Normalized %d row(s) over %d column(s).", len(rows), len(columns))
    return tuple(columns), rows


def to_cursor(envelope: EnvelopeLike) -> Cursor:
    """Normalize *envelope* and wrap the rows in a fresh :class:`Cursor`."""
    columns, rows = normalize(envelope)
    return Cursor(rows, columns)


def _as_int(value: Any) -> int:
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        try:
            return int(value)
        except (OverflowError, ValueError):
            return 0
    return 0


def to_result(envelope: EnvelopeLike) -> QueryResult:
    """
    Read ``last_row_id`` and the affected-row count from the first result's
    ``meta`` block. ``changes`` is preferred over ``rows_written``.

    Raises:
        APIError: The service reported failure.
        ShapeError: ``result`` is not a list of objects.
    """
    env = raise_for_envelope(envelope)
    item = _first_result_item(env)
    if item is None:
        return QueryResult()

    meta = item.get("meta")
    if not isinstance(meta, dict):
        return QueryResult()

    affected = meta["changes"] if "changes" in meta else meta.get("rows_written")
    return QueryResult(
        last_insert_id=_as_int(meta.get("last_row_id")),
        rows_affected=_as_int(affected),
    )


def scan_all(envelope: EnvelopeLike, record_type: type) -> list[Any]:
    """Normalize *envelope* and build one *record_type* per row."""
    with to_cursor(envelope) as cursor:
        return cursor.scan_all(record_type)


def get(envelope: EnvelopeLike, record_type: type) -> Any:
    """
    Normalize *envelope* and build a *record_type* from the first row.

    Raises:
        NoRows: The result set is empty.
    """
    with to_cursor(envelope) as cursor:
        return cursor.first(record_type)
