"""
Unit tests for formatters.py
"""

from decimal import Decimal

import pytest

from partial_dump.errors import ConfigurationError
from partial_dump.formatters import (
    DUMP_FORMATTERS,
    CopyFormatter,
    MultipleInsertFormatter,
    SingleInsertFormatter,
    UpdateFormatter,
    as_value_table,
    get_formatter,
)
from partial_dump.models import DumpType


class TestSqlEscaping:
    """Tests for the quoting shared by the INSERT and UPDATE formatters."""

    @pytest.fixture
    def formatter(self):
        return SingleInsertFormatter()

    def test_escape_none(self, formatter):
        assert formatter.escape(None) == "NULL"

    def test_escape_quote(self, formatter):
        assert formatter.escape("a'b") == "'a''b'"

    def test_escape_plain_string(self, formatter):
        assert formatter.escape("hello") == "'hello'"

    def test_numeric_text_is_quoted(self, formatter):
        assert formatter.escape("42") == "'42'"

    def test_escape_int(self, formatter):
        assert formatter.escape(42) == "42"

    def test_escape_decimal(self, formatter):
        assert formatter.escape(Decimal("1.50")) == "1.50"

    def test_escape_non_finite_float_is_quoted(self, formatter):
        assert formatter.escape(float("nan")) == "'nan'"

    def test_escape_bool(self, formatter):
        assert formatter.escape(True) == "TRUE"
        assert formatter.escape(False) == "FALSE"

    def test_backslash_is_not_escaped(self, formatter):
        assert formatter.escape("a\\b") == "'a\\b'"

    def test_update_and_inserts_share_escaping(self):
        for formatter in (MultipleInsertFormatter(), UpdateFormatter()):
            assert formatter.escape("it's") == "'it''s'"
            assert formatter.escape(None) == "NULL"


class TestCopyFormatter:
    """Tests for CopyFormatter."""

    @pytest.fixture
    def formatter(self):
        return CopyFormatter()

    def test_escape_none(self, formatter):
        assert formatter.escape(None) == "\\N"

    def test_escape_special_characters(self, formatter):
        assert formatter.escape("a\tb") == "a\\tb"
        assert formatter.escape("a\nb") == "a\\nb"
        assert formatter.escape("a\rb") == "a\\rb"
        assert formatter.escape("a\\b") == "a\\\\b"

    def test_escaped_backslash_before_n_is_not_a_newline(self, formatter):
        assert formatter.escape("\\n") == "\\\\n"

    def test_no_quoting(self, formatter):
        assert formatter.escape("it's") == "it's"

    def test_escape_bool(self, formatter):
        assert formatter.escape(True) == "t"

    @pytest.mark.parametrize("value", [
        "plain",
        "tab\there",
        "line\nbreak",
        "carriage\rreturn",
        "back\\slash",
        "\\N",
        "mixed\\\t\r\n\\n end",
        "",
    ])
    def test_escape_round_trips(self, formatter, value):
        assert formatter.unescape(formatter.escape(value)) == value

    def test_unescape_null(self, formatter):
        assert formatter.unescape("\\N") is None

    def test_parse_line(self, formatter):
        line = "1\t\\N\tx\\ty\n"
        assert formatter.parse_line(line) == ["1", None, "x\ty"]

    def test_format(self, formatter):
        result = formatter.format(
            "vehicles", ["id", "name"], [["1", "A"], ["2", "\\N"]]
        )
        assert result == (
            "COPY vehicles (id, name) FROM stdin;\n"
            "1\tA\n"
            "2\t\\N\n"
            "\\.\n"
        )

    def test_format_results_parses_back(self, formatter):
        rows = [{"id": "1", "note": "two\tparts\nand\\more"}, {"id": "2", "note": None}]
        text = formatter.format_results("notes", ["id", "note"], rows)
        data_lines = text.splitlines()[1:-1]
        parsed = [formatter.parse_line(line) for line in data_lines]
        assert parsed == [["1", "two\tparts\nand\\more"], ["2", None]]


class TestSingleInsertFormatter:
    """Tests for SingleInsertFormatter."""

    def test_format(self):
        formatter = SingleInsertFormatter()
        result = formatter.format(
            "vehicles", ["id", "name"], [["1", "'A'"], ["2", "'B'"]]
        )
        assert result == "INSERT INTO vehicles (id, name) VALUES (1,'A'), (2,'B');"

    def test_format_results(self):
        formatter = SingleInsertFormatter()
        result = formatter.format_results(
            "vehicles", ["id", "name"], [{"name": "A", "id": 1}]
        )
        assert result == "INSERT INTO vehicles (id, name) VALUES (1,'A');"


class TestMultipleInsertFormatter:
    """Tests for MultipleInsertFormatter."""

    def test_one_statement_per_row(self):
        formatter = MultipleInsertFormatter()
        result = formatter.format(
            "vehicles", ["id", "name"], [["1", "'A'"], ["2", "'B'"]]
        )
        assert result.split("\n") == [
            "INSERT INTO vehicles (id,name) VALUES (1,'A');",
            "INSERT INTO vehicles (id,name) VALUES (2,'B');",
        ]


class TestUpdateFormatter:
    """Tests for UpdateFormatter."""

    def test_format(self):
        formatter = UpdateFormatter()
        result = formatter.format(
            "vehicles", ["id", "name", "plate"], [["1", "'A'", "'X1'"]]
        )
        assert result == "UPDATE vehicles SET name='A', plate='X1' WHERE id=1;"

    def test_never_assigns_first_column(self):
        formatter = UpdateFormatter()
        result = formatter.format(
            "t", ["id", "a", "b"], [["7", "'x'", "NULL"], ["8", "'y'", "'z'"]]
        )
        for statement in result.split("\n"):
            set_clause = statement.split(" SET ")[1].split(" WHERE ")[0]
            assert "id=" not in set_clause
            assert statement.endswith(("WHERE id=7;", "WHERE id=8;"))


class TestFormatterRegistry:
    """Tests for DUMP_FORMATTERS and get_formatter."""

    def test_one_formatter_per_type(self):
        assert set(DUMP_FORMATTERS) == set(DumpType)
        assert isinstance(DUMP_FORMATTERS[DumpType.COPY], CopyFormatter)
        assert isinstance(DUMP_FORMATTERS[DumpType.INSERT], SingleInsertFormatter)
        assert isinstance(DUMP_FORMATTERS[DumpType.INSERTS], MultipleInsertFormatter)
        assert isinstance(DUMP_FORMATTERS[DumpType.UPDATES], UpdateFormatter)

    def test_get_formatter_by_name(self):
        assert get_formatter("updates") is DUMP_FORMATTERS[DumpType.UPDATES]

    def test_get_formatter_unknown(self):
        with pytest.raises(ConfigurationError):
            get_formatter("csv")


class TestAsValueTable:
    """Tests for as_value_table."""

    def test_projects_in_column_order(self):
        rows = [{"b": 2, "a": 1, "c": 3}]
        assert as_value_table(["a", "b"], rows) == [[1, 2]]

    def test_missing_key_is_none(self):
        assert as_value_table(["a"], [{}]) == [[None]]
