"""
d1/type_converter.py
--------------------
Conversion between wire values and Python values.

Two directions:
    * ``coerce``          – wire value (JSON-decoded) → typed destination field.
    * ``convert_params``  – Python query arguments → the string params the
                            ``/raw`` endpoint accepts.

Wire values are one of ``None``, ``bool``, a JSON number (``int`` or
``float``), ``str``, or a nested ``dict``/``list``. Every number is treated
as floating point at the wire boundary, so integer destinations truncate
toward zero rather than round.

Design Decision:
    The coercion table is data (kind → zero value, kind → coercer) rather
    than a nested if/else tree, so each cell is testable on its own.
"""
from __future__ import annotations

import json
import math
import re
import types
import typing
from datetime import date, datetime
from enum import Enum
from typing import Any, Callable

from d1.errors import ConversionError


class WireKind(str, Enum):
    """Destination kinds the coercion table knows how to fill."""
    STRING = "string"
    INTEGER = "integer"
    FLOAT = "float"
    BOOLEAN = "boolean"
    OPAQUE = "opaque"


_KIND_BY_TYPE: dict[Any, WireKind] = {
    str: WireKind.STRING,
    int: WireKind.INTEGER,
    float: WireKind.FLOAT,
    bool: WireKind.BOOLEAN,
    object: WireKind.OPAQUE,
    Any: WireKind.OPAQUE,
}

_ZERO: dict[WireKind, Any] = {
    WireKind.STRING: "",
    WireKind.INTEGER: 0,
    WireKind.FLOAT: 0.0,
    WireKind.BOOLEAN: False,
    WireKind.OPAQUE: None,
}

_INT_RE = re.compile(r"[+-]?\d+")
_UNION_TYPES: tuple[Any, ...] = (typing.Union, types.UnionType)


def resolve_kind(annotation: Any) -> tuple[WireKind | None, bool]:
    """
    Map a type annotation to ``(kind, nullable)``.

    ``Optional[int]`` resolves to ``(WireKind.INTEGER, True)``. Annotations
    outside the table (``datetime``, ``list[str]``, ``int | str`` …) resolve
    to ``(None, False)`` and are skipped by the scanners.
    """
    if typing.get_origin(annotation) in _UNION_TYPES:
        args = [a for a in typing.get_args(annotation) if a is not type(None)]
        if len(args) == 1 and len(args) < len(typing.get_args(annotation)):
            kind, _ = resolve_kind(args[0])
            return kind, kind is not None
        return None, False
    try:
        return _KIND_BY_TYPE.get(annotation), False
    except TypeError:  # unhashable annotation objects
        return None, False


def zero_value(kind: WireKind | None) -> Any:
    """Return the value a field of *kind* takes when the wire sends null."""
    return _ZERO.get(kind) if kind is not None else None


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _describe(value: Any) -> str:
    return type(value).__name__ if value is not None else "null"


def format_number(value: int | float) -> str:
    """
    Textual form of a wire number.

    Integral floats print without a fractional part, matching how the
    service would have printed the original integer::

        format_number(25.0)  →  "25"
        format_number(2.5)   →  "2.5"
    """
    if isinstance(value, float) and math.isfinite(value) and value.is_integer() \
            and abs(value) < 1e21:
        return str(int(value))
    return str(value) if isinstance(value, int) else repr(value)


def _to_string(value: Any) -> str:
    if isinstance(value, str):
        return value
    if isinstance(value, bool):
        return "true" if value else "false"
    if _is_number(value):
        return format_number(value)
    return json.dumps(value)


def _to_integer(value: Any) -> int:
    if _is_number(value):
        if isinstance(value, float) and not math.isfinite(value):
            raise ConversionError(f"cannot convert {value!r} to integer")
        return int(value)  # int() truncates toward zero
    if isinstance(value, str):
        text = value.strip()
        if _INT_RE.fullmatch(text):
            return int(text)
        raise ConversionError(f"cannot parse {value!r} as a base-10 integer")
    raise ConversionError(f"cannot convert {_describe(value)} to integer")


def _to_float(value: Any) -> float:
    if _is_number(value):
        return float(value)
    raise ConversionError(f"cannot convert {_describe(value)} to float")


def _to_boolean(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    if _is_number(value):
        return value != 0
    raise ConversionError(f"cannot convert {_describe(value)} to boolean")


_COERCERS: dict[WireKind, Callable[[Any], Any]] = {
    WireKind.STRING: _to_string,
    WireKind.INTEGER: _to_integer,
    WireKind.FLOAT: _to_float,
    WireKind.BOOLEAN: _to_boolean,
    WireKind.OPAQUE: lambda value: value,
}


def coerce(value: Any, kind: WireKind, nullable: bool = False) -> Any:
    """
    Convert a single wire value into *kind*.

    Args:
        value:    JSON-decoded wire value.
        kind:     Destination kind.
        nullable: When True (``Optional[...]`` fields) null stays ``None``
                  instead of becoming the kind's zero value.

    Raises:
        ConversionError: If the value cannot be represented as *kind*.

    Examples::

        coerce(None, WireKind.INTEGER)   → 0
        coerce(25.0, WireKind.INTEGER)   → 25
        coerce(-2.7, WireKind.INTEGER)   → -2
        coerce("25", WireKind.STRING)    → "25"
    """
    if value is None:
        return None if nullable else _ZERO[kind]
    return _COERCERS[kind](value)


# ---------------------------------------------------------------------------
# Query parameters
# ---------------------------------------------------------------------------

def _param_to_string(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, str):
        return value
    if isinstance(value, bool):
        return "1" if value else "0"
    if _is_number(value):
        return format_number(value)
    if isinstance(value, datetime):
        return value.strftime("%Y-%m-%d %H:%M:%S")
    if isinstance(value, date):
        return value.strftime("%Y-%m-%d")
    if isinstance(value, (bytes, bytearray)):
        return bytes(value).decode("utf-8")
    return json.dumps(value)


def convert_params(*args: Any) -> list[str]:
    """
    Convert query arguments into the string list sent as ``params``.

    Booleans become ``"1"``/``"0"``, datetimes ``"YYYY-MM-DD HH:MM:SS"``,
    anything without a scalar form is JSON-encoded.

    Raises:
        ConversionError: If an argument cannot be JSON-encoded or decoded.
    """
    params: list[str] = []
    for index, arg in enumerate(args):
        try:
            params.append(_param_to_string(arg))
        except (TypeError, ValueError) as exc:
            raise ConversionError(
                f"cannot convert parameter #{index} (type {type(arg).__name__}): {exc}"
            ) from exc
    return params
