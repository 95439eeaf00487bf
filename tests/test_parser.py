"""
tests/test_parser.py
---------------------
Unit tests for d1migrate/parser.py.
Run with: python -m pytest tests/
"""
from __future__ import annotations

import io
import textwrap

import pytest

from d1migrate.parser import MigrationParseError, parse_migration, split_statements


INIT_SQL = textwrap.dedent("""\
    -- +migrate Up
    CREATE TABLE IF NOT EXISTS users (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        name TEXT NOT NULL
    );

    CREATE TABLE IF NOT EXISTS departments (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        name TEXT NOT NULL
    );

    -- +migrate Down
    DROP TABLE departments;
    DROP TABLE users;
""")


class TestParseMigration:
    def test_basic_scenario(self) -> None:
        text = "-- +migrate Up\nCREATE TABLE t(x);\n-- +migrate Down\nDROP TABLE t;\n"
        m = parse_migration("1_init", text)
        assert m.id == "1_init"
        assert m.up == ("CREATE TABLE t(x)",)
        assert m.down == ("DROP TABLE t",)

    def test_multiline_statements(self) -> None:
        m = parse_migration("1_init.sql", INIT_SQL)
        assert len(m.up) == 2
        assert m.up[0].startswith("CREATE TABLE IF NOT EXISTS users (")
        assert m.up[0].endswith(")")
        assert "\n" in m.up[0]
        assert m.down == ("DROP TABLE departments", "DROP TABLE users")

    def test_flags_default_false(self) -> None:
        m = parse_migration("1", INIT_SQL)
        assert not m.disable_transaction_up
        assert not m.disable_transaction_down

    def test_notransaction_flags(self) -> None:
        text = "-- +migrate Up notransaction\nA;\n-- +migrate Down notransaction\nB;\n"
        m = parse_migration("1", text)
        assert m.disable_transaction_up
        assert m.disable_transaction_down

    def test_notransaction_only_on_one_direction(self) -> None:
        text = "-- +migrate Up\nA;\n-- +migrate Down notransaction\nB;\n"
        m = parse_migration("1", text)
        assert not m.disable_transaction_up
        assert m.disable_transaction_down

    def test_lines_before_directive_are_up(self) -> None:
        m = parse_migration("1", "CREATE TABLE a(x);\n-- +migrate Down\nDROP TABLE a;")
        assert m.up == ("CREATE TABLE a(x)",)

    def test_statement_block_directives_are_inert(self) -> None:
        text = textwrap.dedent("""\
            -- +migrate Up
            -- +migrate StatementBegin
            CREATE TABLE a(x);
            CREATE TABLE b(y);
            -- +migrate StatementEnd
        """)
        m = parse_migration("1", text)
        assert m.up == ("CREATE TABLE a(x)", "CREATE TABLE b(y)")

    def test_repeated_sections_accumulate(self) -> None:
        text = "-- +migrate Up\nA;\n-- +migrate Down\nB;\n-- +migrate Up\nC;\n"
        m = parse_migration("1", text)
        assert m.up == ("A", "C")
        assert m.down == ("B",)

    def test_empty_text(self) -> None:
        m = parse_migration("empty", "")
        assert m.up == ()
        assert m.down == ()

    def test_crlf_line_endings(self) -> None:
        m = parse_migration("1", "-- +migrate Up\r\nA;\r\n-- +migrate Down\r\nB;\r\n")
        assert m.up == ("A",)
        assert m.down == ("B",)

    def test_semicolon_in_literal_is_not_special(self) -> None:
        m = parse_migration("1", "-- +migrate Up\nINSERT INTO t VALUES ('a;b');\n")
        assert m.up == ("INSERT INTO t VALUES ('a", "b')")


class TestSources:
    def test_bytes(self) -> None:
        assert parse_migration("1", b"-- +migrate Up\nA;\n").up == ("A",)

    def test_text_file_object(self) -> None:
        assert parse_migration("1", io.StringIO("-- +migrate Up\nA;\n")).up == ("A",)

    def test_binary_file_object(self) -> None:
        assert parse_migration("1", io.BytesIO(b"-- +migrate Up\nA;\n")).up == ("A",)

    def test_undecodable_bytes(self) -> None:
        with pytest.raises(MigrationParseError) as info:
            parse_migration("7_bad.sql", b"\xff\xfe\xfa")
        assert info.value.migration_id == "7_bad.sql"
        assert "7_bad.sql" in str(info.value)


class TestSplitStatements:
    def test_drops_empty_fragments(self) -> None:
        assert split_statements(" A ;; \n ;B;") == ["A", "B"]

    def test_no_terminator(self) -> None:
        assert split_statements("SELECT 1") == ["SELECT 1"]
