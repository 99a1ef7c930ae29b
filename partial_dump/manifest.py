"""
Manifest orchestration for Partial Dump.

A manifest is an ordered list of declarations: table dumps, raw SQL,
included files and sequence resets. Running it writes one .sql file per
dump plus a master file, all.sql, which replays everything in declaration
order inside a single transaction when run with psql:

    manifest = (
        Manifest()
        .dump('vehicle', 'companyId = 209', on_ids=lambda vehicles: (
            Manifest().dump('day', f"vehicleId IN {vehicles}")
        ))
        .sql("UPDATE company SET name = 'Test' WHERE id = 209")
        .reset_id_seq('vehicle', 'day')
    )
    run_manifest(conn, manifest, directory='fixtures')

Declarations run in order, so declare parents before children when there
are foreign keys. A live connection is used, so nothing is validated
beyond the dump options before the first query runs.
"""

import logging
import sys
import time
from collections.abc import Callable, Iterable
from datetime import datetime
from pathlib import Path
from typing import Any, Iterator, Optional, TextIO, Union

from .connection import QueryExecutor
from .dumper import OptionsArg, TableDumper
from .errors import ConfigurationError
from .models import (
    Declaration,
    DumpDecl,
    DumpOptions,
    IncludeDecl,
    ManifestStats,
    SeqResetDecl,
    SqlDecl,
    TableStats,
)
from .utils import count_lines, format_id_list


class Manifest:
    """Builder for an ordered list of manifest declarations."""

    def __init__(self, declarations: Optional[Iterable[Declaration]] = None):
        self.declarations: list[Declaration] = list(declarations or [])

    def __iter__(self) -> Iterator[Declaration]:
        return iter(self.declarations)

    def __len__(self) -> int:
        return len(self.declarations)

    def dump(
        self,
        table: str,
        condition: Any = "true",
        options: OptionsArg = None,
        as_name: Optional[str] = None,
        on_ids: Optional[Callable[[str], Any]] = None
    ) -> "Manifest":
        """
        Declare a table dump, written to <as_name or table>.sql.

        as_name is needed when a manifest dumps two parts of the same table.

        on_ids, if given, is called with the dumped ids as a bracketed list
        such as "(1,2,3)", ready for an SQL IN clause. It may return a
        Manifest (or any iterable of declarations) to run straight away,
        before the next declaration of this manifest.
        """
        self.declarations.append(DumpDecl(
            table=table,
            condition=condition,
            options=DumpOptions.coerce(options),
            as_name=as_name,
            on_ids=on_ids,
        ))
        return self

    def sql(self, sql: str) -> "Manifest":
        """Declare an SQL statement to run at this point. A semicolon is appended."""
        self.declarations.append(SqlDecl(sql))
        return self

    def include(self, path: str) -> "Manifest":
        """Declare a hand-written .sql file, relative to the output directory."""
        self.declarations.append(IncludeDecl(path))
        return self

    def reset_id_seq(self, *tables: str) -> "Manifest":
        """
        Declare that each table's <table>_id_seq should be moved past the
        table's current maximum id. Declare after the dumps for the tables.
        """
        if not tables:
            raise ConfigurationError("reset_id_seq needs at least one table")
        self.declarations.append(SeqResetDecl(tuple(tables)))
        return self


class ManifestScope:
    """State for one manifest run: the open master file and run statistics."""

    MASTER_FILE = 'all.sql'

    def __init__(self, connection: QueryExecutor, directory: Union[str, Path], header: str):
        self.connection = connection
        self.directory = Path(directory)
        self.header = header
        self.dumper = TableDumper(connection)
        self.stats = ManifestStats(master_path=str(self.directory / self.MASTER_FILE))
        self.master: Optional[TextIO] = None
        self.started: Optional[float] = None

    def __enter__(self) -> "ManifestScope":
        self.open()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        if exc_type is None:
            self.close()
        elif self.master:
            # Leave the partial master file on disk, without a COMMIT
            self.master.close()
            logging.error(f"Manifest aborted, {self.stats.master_path} is incomplete")

    def _puts(self, line: str) -> None:
        self.master.write(line if line.endswith('\n') else line + '\n')

    def open(self) -> None:
        """Create the master file and write its preamble."""
        self.directory.mkdir(parents=True, exist_ok=True)
        version = self.connection.get_schema_version()

        self.master = open(self.stats.master_path, 'w', encoding='utf-8')
        self._puts(f"--%%VERSION={version if version is not None else ''}")
        self._puts(f"-- {self.header}")
        self._puts("BEGIN;")
        self._puts("-- psql will exit with code 3")
        self._puts("-- if this script fails")
        self._puts("\\set ON_ERROR_STOP 1")

        self.started = time.monotonic()
        logging.info(f"Writing manifest to {self.stats.master_path}")

    def execute(self, declaration: Declaration) -> None:
        """Run a single declaration."""
        if isinstance(declaration, DumpDecl):
            self.dump(declaration)
        elif isinstance(declaration, SqlDecl):
            self.sql(declaration.sql)
        elif isinstance(declaration, IncludeDecl):
            self.include(declaration.path)
        elif isinstance(declaration, SeqResetDecl):
            self.reset_id_seq(*declaration.tables)
        else:
            raise ConfigurationError(f"Unknown manifest declaration: {declaration!r}")

    def dump(self, declaration: DumpDecl) -> None:
        result = self.dumper.dump(declaration.table, declaration.condition, declaration.options)

        if result.empty:
            logging.info(f"No file written for {declaration.file_name}")
            self.stats.empty.append(declaration.file_name)
        else:
            path = self.directory / declaration.file_name
            with open(path, 'w', encoding='utf-8') as f:
                f.write(result.dump if result.dump.endswith('\n') else result.dump + '\n')
            self._puts(f"\\i ./{declaration.file_name}")

            lines = count_lines(result.dump)
            logging.info(f"{lines} lines written to {declaration.file_name}")
            self.stats.tables.append(TableStats(
                table=declaration.table,
                file_path=str(path),
                rows_dumped=len(result.ids),
                lines_written=lines,
            ))

        if declaration.on_ids:
            dependents = declaration.on_ids(format_id_list(result.ids))
            if dependents is not None:
                for dependent in dependents:
                    self.execute(dependent)

    def sql(self, sql: str) -> None:
        self._puts(f"{sql};")

    def include(self, path: str) -> None:
        self._puts(f"\\i {path}")

    def reset_id_seq(self, *tables: str) -> None:
        for table in tables:
            self.sql(f"SELECT setval('{table}_id_seq',max(id)) FROM {table}")

    def close(self) -> None:
        """Write the master file footer and close it."""
        self.stats.elapsed = time.monotonic() - self.started
        self._puts("COMMIT;")
        self._puts(f"-- Generated in {self.stats.elapsed:.3f} seconds")
        self.master.close()


def default_header() -> str:
    return f"Generated by ./{Path(sys.argv[0]).name} at {datetime.now()}"


def run_manifest(
    connection: QueryExecutor,
    manifest: Iterable[Declaration],
    directory: Union[str, Path, None] = None,
    header: Optional[str] = None
) -> ManifestStats:
    """
    Run a manifest, writing the dump files and all.sql.

    Args:
        connection: Connection to pull data from.
        manifest: A Manifest, or any iterable of declarations.
        directory: Where all files are written. Defaults to the directory of
            the running script. Include paths are relative to it.
        header: Comment written near the top of all.sql.

    Returns:
        ManifestStats for the run. Files already written when a declaration
        fails are left in place and the error propagates.
    """
    if directory is None:
        directory = Path(sys.argv[0]).resolve().parent
    if header is None:
        header = default_header()

    with ManifestScope(connection, directory, header) as scope:
        for declaration in manifest:
            scope.execute(declaration)

    logging.info(
        f"Manifest complete: {len(scope.stats.tables)} file(s), "
        f"{scope.stats.total_rows} row(s), {len(scope.stats.empty)} empty"
    )
    return scope.stats
