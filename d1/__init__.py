"""d1/__init__.py"""
from d1.errors import (
    D1Error,
    TransportError,
    APIError,
    ShapeError,
    RowWidthMismatch,
    ArityMismatch,
    ConversionError,
    CursorClosed,
    NoRows,
)
from d1.cursor import Cursor
from d1.records import column, describe
from d1.envelope import QueryResult, ResponseEnvelope, normalize, to_cursor, to_result
from d1.type_converter import WireKind, coerce, convert_params
from d1.client import D1Client
from d1.pool import ConnectionPool, ConnectionInfo

__all__ = [
    "D1Error",
    "TransportError",
    "APIError",
    "ShapeError",
    "RowWidthMismatch",
    "ArityMismatch",
    "ConversionError",
    "CursorClosed",
    "NoRows",
    "Cursor",
    "column",
    "describe",
    "QueryResult",
    "ResponseEnvelope",
    "normalize",
    "to_cursor",
    "to_result",
    "WireKind",
    "coerce",
    "convert_params",
    "D1Client",
    "ConnectionPool",
    "ConnectionInfo",
]
