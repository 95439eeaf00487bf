"""
d1/errors.py
------------
Exception hierarchy shared by the client, the result-mapping engine and the
migration engine.

Every failure carries enough context (row index, column, migration id) to
identify what went wrong. Nothing here is retried or treated as fatal; the
caller decides.
"""
from __future__ import annotations


class D1Error(Exception):
    """Base class for every error raised by this library."""


class TransportError(D1Error):
    """Raised when the HTTP request itself failed (network, bad JSON body)."""


class APIError(D1Error):
    """Raised when the service answered but reported ``success: false``."""

    def __init__(self, message: str, code: int | None = None) -> None:
        super().__init__(f"api error: {message}")
        self.message = message
        self.code = code


class ShapeError(D1Error):
    """Raised when a response envelope does not have the expected structure."""


class RowWidthMismatch(ShapeError):
    """A positional row does not have one value per column."""

    def __init__(self, row_index: int, expected: int, actual: int) -> None:
        super().__init__(
            f"row {row_index} has {actual} values but expected {expected} columns"
        )
        self.row_index = row_index
        self.expected = expected
        self.actual = actual


class ArityMismatch(D1Error):
    """A positional scan was given the wrong number of destinations."""

    def __init__(self, expected: int, actual: int) -> None:
        super().__init__(
            f"expected {expected} destination arguments in scan, not {actual}"
        )
        self.expected = expected
        self.actual = actual


class ConversionError(D1Error):
    """A wire value could not be coerced to the requested kind."""


class CursorClosed(D1Error):
    """The cursor was closed, or is not positioned on a row."""


class NoRows(D1Error):
    """A single-row read found no rows."""

    def __init__(self, message: str = "no rows in result set") -> None:
        super().__init__(message)
