"""
Table dumping functionality for Partial Dump.
"""

import logging
from collections.abc import Mapping
from decimal import Decimal
from typing import Any, Optional, Union

from .connection import QueryExecutor
from .errors import ConfigurationError, TypeCoercionError
from .formatters import get_formatter
from .models import DumpOptions, DumpResult, DumpType, Substitution, TransactionMode

OptionsArg = Union[DumpOptions, Mapping[str, Any], None]


def column_sort_key(column: str) -> tuple[bool, str]:
    """Sort key placing id first, then every other column alphabetically.

    UpdateFormatter relies on this ordering.
    """
    return (column != 'id', column)


class TableDumper:
    """Dumps the rows of a table matching a condition as SQL text."""

    def __init__(self, connection: QueryExecutor):
        self.connection = connection

    def dump(self, table: str, condition: Any, options: OptionsArg = None) -> DumpResult:
        """
        Dump rows from a table matching an SQL condition.

        Args:
            table: Name of the table, may include a schema.
            condition: Everything after WHERE in the query. May include
                ORDER BY. It is not escaped in any way.
            options: DumpOptions, or a mapping of option names to values.

        Returns:
            DumpResult holding the dump text and the ids of the dumped rows.
            The text is None when no rows matched.
        """
        options = DumpOptions.coerce(options)
        formatter = get_formatter(options.type)

        query = self.build_query(table, condition)
        logging.debug(f"Dumping table '{table}' with query: {query[:200]}")
        rows = self.connection.execute_query(query)
        if not rows:
            logging.warning(f"No rows returned: {query}")
            return DumpResult(None, [])

        ids = self.extract_ids(rows)
        columns = self.select_columns(list(rows[0].keys()), options)
        if options.type == DumpType.UPDATES and len(columns) < 2:
            raise ConfigurationError(f"No columns to update in '{table}'")

        values = []
        for row in rows:
            self.substitute_values(row, options.substitutions)
            values.append([formatter.escape(row.get(column)) for column in columns])

        parts = []
        if options.transaction:
            parts.append("BEGIN;\n\n")
        if options.delete_first:
            parts.append(self.clear_ids(table, ids))
        parts.append(formatter.format(table, columns, values))
        if options.transaction == TransactionMode.FULL:
            parts.append("\n\nCOMMIT;")

        logging.debug(f"Dumped {len(rows)} row(s) from '{table}'")
        return DumpResult(''.join(parts), ids)

    @staticmethod
    def build_query(table: str, condition: Any) -> str:
        """Build the SELECT query for a dump."""
        return f"SELECT * FROM {table} WHERE {condition}"

    @staticmethod
    def extract_ids(rows: list[dict[str, Any]]) -> list[int]:
        """Read the integer id of every row, in row order."""
        ids = []
        for index, row in enumerate(rows):
            if 'id' not in row:
                raise TypeCoercionError(f"Row {index} has no id column")
            value = row['id']
            try:
                id_value = int(value)
            except (TypeError, ValueError, OverflowError):
                id_value = None
            if id_value is None or (isinstance(value, (float, Decimal)) and id_value != value):
                raise TypeCoercionError(f"Row {index} has a non-integer id: {value!r}")
            ids.append(id_value)
        return ids

    @staticmethod
    def select_columns(keys: list[str], options: DumpOptions) -> list[str]:
        """
        Work out which columns to dump, and in which order.

        The whitelist (which always admits id) is applied before the
        blacklist; omit_ids removes id regardless of either.
        """
        columns = list(keys)
        if options.omit_ids:
            columns = [c for c in columns if c != 'id']
        if options.columns is not None:
            allowed = set(options.columns) | {'id'}
            columns = [c for c in columns if c in allowed]
        if options.omit_columns:
            columns = [c for c in columns if c not in options.omit_columns]
        return sorted(columns, key=column_sort_key)

    @staticmethod
    def substitute_values(row: dict[str, Any], substitutions: Mapping[str, Substitution]) -> None:
        """Apply substitutions to a row in place."""
        for column, substitution in substitutions.items():
            row[column] = substitution.apply(row.get(column))

    @staticmethod
    def clear_ids(table: str, ids: list[int]) -> str:
        """DELETE statement clearing rows with the dumped ids."""
        id_list = ','.join(str(i) for i in ids)
        return f"DELETE FROM {table} WHERE id IN ({id_list});\n\n"


def get_partial_dump(
    connection: QueryExecutor,
    table: str,
    condition: Any,
    options: OptionsArg = None
) -> Optional[str]:
    """Dump rows from a table, returning only the dump text (None if no rows)."""
    return TableDumper(connection).dump(table, condition, options).dump
