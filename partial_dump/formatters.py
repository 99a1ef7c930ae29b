"""
SQL formatters for Partial Dump.

A formatter takes the rows dumped from a table and renders them as text
that reloads the data: a PostgreSQL COPY block, a single compound INSERT,
one INSERT per row, or one UPDATE per row. Formatters hold no state, so
the instances in DUMP_FORMATTERS are shared.
"""

import math
import re
from collections.abc import Iterable, Mapping, Sequence
from decimal import Decimal
from typing import Any, Callable

from .errors import ConfigurationError
from .models import DumpType


def as_value_table(
    columns: Sequence[str],
    rows: Iterable[Mapping[str, Any]]
) -> list[list[Any]]:
    """
    Project row mappings onto a list of columns.

    Column names must match the keys of the row mappings exactly.
    """
    return [[row.get(column) for column in columns] for row in rows]


def _quote(value: Any) -> str:
    return "'" + str(value).replace("'", "''") + "'"


def _format_number(value: Any) -> str:
    finite = value.is_finite() if isinstance(value, Decimal) else math.isfinite(value)
    return str(value) if finite else _quote(value)


class SqlFormatter:
    """Base formatter, escaping values for use in SQL statements."""

    # Type dispatch for values that need no quoting
    _type_formatters: dict[type, Callable[[Any], str]] = {
        type(None): lambda v: 'NULL',
        bool: lambda v: 'TRUE' if v else 'FALSE',
        int: str,
        float: _format_number,
        Decimal: _format_number,
    }

    def escape(self, value: Any) -> str:
        """Escape, quote and handle NULL for an SQL literal."""
        formatter = self._type_formatters.get(type(value))
        if formatter:
            return formatter(value)
        return _quote(value)

    def format(self, table: str, columns: Sequence[str], values: Sequence[Sequence[str]]) -> str:
        raise NotImplementedError

    def format_results(
        self,
        table: str,
        columns: Sequence[str],
        rows: Iterable[Mapping[str, Any]]
    ) -> str:
        """Escape and format row mappings rather than a table of values."""
        values = [
            [self.escape(value) for value in row]
            for row in as_value_table(columns, rows)
        ]
        return self.format(table, columns, values)


class CopyFormatter(SqlFormatter):
    """Formats rows as a PostgreSQL COPY ... FROM stdin block."""

    NULL = '\\N'

    _ESCAPES = {'\\': '\\\\', '\r': '\\r', '\n': '\\n', '\t': '\\t'}
    _ESCAPE_PATTERN = re.compile(r'[\\\r\n\t]')

    _UNESCAPES = {'b': '\b', 'f': '\f', 'n': '\n', 'r': '\r', 't': '\t', 'v': '\v'}
    _UNESCAPE_PATTERN = re.compile(r'\\(.)', re.DOTALL)

    def escape(self, value: Any) -> str:
        """Escape a value for a COPY text-format field. Nothing is quoted."""
        if value is None:
            return self.NULL
        if isinstance(value, bool):
            return 't' if value else 'f'
        return self._ESCAPE_PATTERN.sub(lambda m: self._ESCAPES[m.group(0)], str(value))

    def unescape(self, field: str) -> Any:
        """Read back a single COPY text-format field."""
        if field == self.NULL:
            return None
        return self._UNESCAPE_PATTERN.sub(
            lambda m: self._UNESCAPES.get(m.group(1), m.group(1)), field
        )

    def parse_line(self, line: str) -> list[Any]:
        """Split a COPY data line into its unescaped fields."""
        return [self.unescape(field) for field in line.rstrip('\n').split('\t')]

    def format(self, table: str, columns: Sequence[str], values: Sequence[Sequence[str]]) -> str:
        lines = '\n'.join('\t'.join(row) for row in values)
        return (
            f"COPY {table} ({', '.join(columns)}) FROM stdin;\n"
            f"{lines}\n"
            "\\.\n"
        )


class SingleInsertFormatter(SqlFormatter):
    """One INSERT statement with a tuple per row."""

    def format(self, table: str, columns: Sequence[str], values: Sequence[Sequence[str]]) -> str:
        tuples = ', '.join(f"({','.join(row)})" for row in values)
        return f"INSERT INTO {table} ({', '.join(columns)}) VALUES {tuples};"


class MultipleInsertFormatter(SqlFormatter):
    """One INSERT statement per row, so a failing row does not stop the rest."""

    def format(self, table: str, columns: Sequence[str], values: Sequence[Sequence[str]]) -> str:
        column_list = ','.join(columns)
        return '\n'.join(
            f"INSERT INTO {table} ({column_list}) VALUES ({','.join(row)});"
            for row in values
        )


class UpdateFormatter(SqlFormatter):
    """
    One UPDATE statement per row, restoring rows with matching ids.

    The first column must be the id; it is used in the WHERE clause and
    never assigned.
    """

    def format(self, table: str, columns: Sequence[str], values: Sequence[Sequence[str]]) -> str:
        statements = []
        for row in values:
            assignments = ', '.join(
                f"{columns[i]}={row[i]}" for i in range(1, len(columns))
            )
            statements.append(f"UPDATE {table} SET {assignments} WHERE id={row[0]};")
        return '\n'.join(statements)


DUMP_FORMATTERS: dict[DumpType, SqlFormatter] = {
    DumpType.COPY: CopyFormatter(),
    DumpType.INSERT: SingleInsertFormatter(),
    DumpType.INSERTS: MultipleInsertFormatter(),
    DumpType.UPDATES: UpdateFormatter(),
}


def get_formatter(dump_type: DumpType | str) -> SqlFormatter:
    """Look up the formatter for a dump type."""
    try:
        return DUMP_FORMATTERS[DumpType(dump_type)]
    except (KeyError, ValueError):
        raise ConfigurationError(f"Invalid dump type: {dump_type}") from None
