"""
tests/test_type_converter.py
-----------------------------
Unit tests for d1/type_converter.py.
Run with: python -m pytest tests/
"""
from __future__ import annotations

from datetime import date, datetime
from typing import Any, Optional

import pytest

from d1.errors import ConversionError
from d1.type_converter import (
    WireKind,
    coerce,
    convert_params,
    format_number,
    resolve_kind,
)


class TestResolveKind:
    @pytest.mark.parametrize("annotation, kind", [
        (str, WireKind.STRING),
        (int, WireKind.INTEGER),
        (float, WireKind.FLOAT),
        (bool, WireKind.BOOLEAN),
        (Any, WireKind.OPAQUE),
        (object, WireKind.OPAQUE),
    ])
    def test_registered_kinds(self, annotation: Any, kind: WireKind) -> None:
        assert resolve_kind(annotation) == (kind, False)

    def test_optional_is_nullable(self) -> None:
        assert resolve_kind(Optional[int]) == (WireKind.INTEGER, True)

    def test_pipe_union_with_none_is_nullable(self) -> None:
        assert resolve_kind(str | None) == (WireKind.STRING, True)

    @pytest.mark.parametrize("annotation", [datetime, list[str], int | str, bytes])
    def test_unregistered_kinds(self, annotation: Any) -> None:
        assert resolve_kind(annotation) == (None, False)


class TestCoerceNull:
    @pytest.mark.parametrize("kind, expected", [
        (WireKind.STRING, ""),
        (WireKind.INTEGER, 0),
        (WireKind.FLOAT, 0.0),
        (WireKind.BOOLEAN, False),
        (WireKind.OPAQUE, None),
    ])
    def test_null_becomes_zero_value(self, kind: WireKind, expected: Any) -> None:
        assert coerce(None, kind) == expected

    def test_null_stays_none_when_nullable(self) -> None:
        assert coerce(None, WireKind.INTEGER, nullable=True) is None


class TestCoerceString:
    def test_passthrough(self) -> None:
        assert coerce("25", WireKind.STRING) == "25"

    def test_integral_float_has_no_fraction(self) -> None:
        assert coerce(25.0, WireKind.STRING) == "25"

    def test_fractional_float(self) -> None:
        assert coerce(2.5, WireKind.STRING) == "2.5"

    @pytest.mark.parametrize("value, text", [(True, "true"), (False, "false")])
    def test_boolean_as_text(self, value: bool, text: str) -> None:
        assert coerce(value, WireKind.STRING) == text

    def test_nested_as_json_text(self) -> None:
        assert coerce({"a": [1, 2]}, WireKind.STRING) == '{"a": [1, 2]}'
        assert coerce([1, "x"], WireKind.STRING) == '[1, "x"]'


class TestCoerceInteger:
    def test_float_truncates(self) -> None:
        assert coerce(25.0, WireKind.INTEGER) == 25

    def test_truncates_toward_zero(self) -> None:
        assert coerce(2.9, WireKind.INTEGER) == 2
        assert coerce(-2.9, WireKind.INTEGER) == -2

    def test_numeric_string(self) -> None:
        assert coerce(" -42 ", WireKind.INTEGER) == -42

    @pytest.mark.parametrize("text", ["abc", "4.5", "", "1_000"])
    def test_unparsable_string(self, text: str) -> None:
        with pytest.raises(ConversionError):
            coerce(text, WireKind.INTEGER)

    def test_boolean_is_not_a_number(self) -> None:
        with pytest.raises(ConversionError):
            coerce(True, WireKind.INTEGER)

    def test_nan_rejected(self) -> None:
        with pytest.raises(ConversionError):
            coerce(float("nan"), WireKind.INTEGER)


class TestCoerceFloatBoolOpaque:
    def test_float_passthrough(self) -> None:
        assert coerce(3, WireKind.FLOAT) == 3.0
        assert isinstance(coerce(3, WireKind.FLOAT), float)

    def test_float_from_string_rejected(self) -> None:
        with pytest.raises(ConversionError):
            coerce("3.5", WireKind.FLOAT)

    def test_bool_from_number(self) -> None:
        assert coerce(1.0, WireKind.BOOLEAN) is True
        assert coerce(0, WireKind.BOOLEAN) is False

    def test_bool_passthrough(self) -> None:
        assert coerce(True, WireKind.BOOLEAN) is True

    def test_bool_from_string_rejected(self) -> None:
        with pytest.raises(ConversionError):
            coerce("true", WireKind.BOOLEAN)

    def test_opaque_keeps_nested_structures(self) -> None:
        nested = {"a": [1, 2]}
        assert coerce(nested, WireKind.OPAQUE) is nested


class TestFormatNumber:
    @pytest.mark.parametrize("value, text", [
        (25, "25"),
        (25.0, "25"),
        (-0.5, "-0.5"),
        (1e21, "1e+21"),
    ])
    def test_format(self, value: float, text: str) -> None:
        assert format_number(value) == text


class TestConvertParams:
    def test_empty(self) -> None:
        assert convert_params() == []

    def test_scalars(self) -> None:
        assert convert_params("a", 7, 2.5, None) == ["a", "7", "2.5", ""]

    def test_booleans(self) -> None:
        assert convert_params(True, False) == ["1", "0"]

    def test_datetime_and_date(self) -> None:
        assert convert_params(datetime(2024, 1, 2, 3, 4, 5), date(2024, 1, 2)) == [
            "2024-01-02 03:04:05",
            "2024-01-02",
        ]

    def test_bytes(self) -> None:
        assert convert_params(b"raw") == ["raw"]

    def test_complex_values_are_json(self) -> None:
        assert convert_params({"k": [1, 2]}) == ['{"k": [1, 2]}']

    def test_unserialisable_value_names_index(self) -> None:
        with pytest.raises(ConversionError, match="#1"):
            convert_params("ok", {1, 2})
