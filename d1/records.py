"""
d1/records.py
-------------
Destination-record descriptors for named scans.

A destination record is a ``@dataclass``. Each field is bound to a column:
the name given with :func:`column`, or the lower-cased field name. The
binding (column, kind, zero value, default) is computed once per record
type and cached, so scanning many rows never re-inspects the class.

Example::

    @dataclass
    class User:
        id: int = 0
        name: str = ""
        dept: str = column("dept_name", default="")

    descriptor = describe(User)
    user = descriptor.build({"id": 7.0, "name": "Ada", "dept_name": "R&D"})
"""
from __future__ import annotations

import dataclasses
import functools
import typing
from dataclasses import dataclass
from typing import Any, Mapping

from d1.errors import ConversionError
from d1.type_converter import WireKind, coerce, resolve_kind, zero_value
from logger import get_logger

log = get_logger(__name__)

COLUMN_KEY = "column"


def column(name: str, **kwargs: Any) -> Any:
    """
    Declare the column a dataclass field is filled from.

    Accepts every keyword :func:`dataclasses.field` accepts::

        user_id: int = column("user_id", default=0)
    """
    metadata = dict(kwargs.pop("metadata", None) or {})
    metadata[COLUMN_KEY] = name
    return dataclasses.field(metadata=metadata, **kwargs)


@dataclass(frozen=True)
class FieldBinding:
    """How one dataclass field is filled from a raw row."""
    name: str
    column: str
    kind: WireKind | None
    nullable: bool
    init: bool
    has_default: bool

    @property
    def is_supported(self) -> bool:
        return self.kind is not None

    def convert(self, value: Any) -> Any:
        if self.kind is None:
            raise ConversionError(
                f"field {self.name!r} (column {self.column!r}): no conversion for its type"
            )
        try:
            return coerce(value, self.kind, self.nullable)
        except ConversionError as exc:
            raise ConversionError(
                f"field {self.name!r} (column {self.column!r}): {exc}"
            ) from exc


class RecordDescriptor:
    """Column bindings for one record type."""

    def __init__(self, record_type: type, bindings: tuple[FieldBinding, ...]) -> None:
        self.record_type = record_type
        self.bindings = bindings

    @property
    def columns(self) -> list[str]:
        return [b.column for b in self.bindings if b.is_supported]

    def assign(self, record: Any, row: Mapping[str, Any]) -> Any:
        """Overwrite the fields of *record* whose column is present in *row*."""
        for binding in self.bindings:
            if binding.is_supported and binding.column in row:
                setattr(record, binding.name, binding.convert(row[binding.column]))
        return record

    def build(self, row: Mapping[str, Any]) -> Any:
        """
        Create a new record from *row*.

        Unmatched fields take their dataclass default, or the zero value of
        their kind when they have none.
        """
        kwargs: dict[str, Any] = {}
        late: dict[str, Any] = {}
        for binding in self.bindings:
            matched = binding.is_supported and binding.column in row
            if binding.init:
                if matched:
                    kwargs[binding.name] = binding.convert(row[binding.column])
                elif not binding.has_default:
                    kwargs[binding.name] = zero_value(binding.kind)
            elif matched:
                late[binding.name] = binding.convert(row[binding.column])

        record = self.record_type(**kwargs)
        for name, value in late.items():
            object.__setattr__(record, name, value)
        return record


def _binding_for(f: dataclasses.Field, hints: dict[str, Any]) -> FieldBinding:
    kind, nullable = resolve_kind(hints.get(f.name, f.type))
    if kind is None:
        log.debug("Field '%s' has no coercion rule for %r; it will be left unset.",
                  f.name, hints.get(f.name, f.type))
    return FieldBinding(
        name=f.name,
        column=f.metadata.get(COLUMN_KEY) or f.name.lower(),
        kind=kind,
        nullable=nullable,
        init=f.init,
        has_default=(
            f.default is not dataclasses.MISSING
            or f.default_factory is not dataclasses.MISSING
        ),
    )


@functools.lru_cache(maxsize=None)
def describe(record_type: type) -> RecordDescriptor:
    """
    Return the (cached) descriptor for a dataclass record type.

    Raises:
        TypeError: If *record_type* is not a dataclass type.
    """
    if not (isinstance(record_type, type) and dataclasses.is_dataclass(record_type)):
        raise TypeError(f"scan destination must be a dataclass type, got {record_type!r}")
    hints = typing.get_type_hints(record_type)
    bindings = tuple(_binding_for(f, hints) for f in dataclasses.fields(record_type))
    return RecordDescriptor(record_type, bindings)
