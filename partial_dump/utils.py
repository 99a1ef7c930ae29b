"""
Utility functions for Partial Dump.
"""

import logging
import sys
from collections.abc import Iterable
from pathlib import Path
from typing import Any

from .errors import ConfigurationError
from .models import Declaration, DumpDecl, IncludeDecl, SeqResetDecl, SqlDecl


def setup_logging(log_settings: dict[str, Any]) -> None:
    """Setup logging configuration.

    Logs go to stderr, since stdout may be carrying dump text.
    """
    log_level = getattr(logging, log_settings.get('level', 'INFO').upper())
    log_file = log_settings.get('file')

    handlers: list[logging.Handler] = [logging.StreamHandler(sys.stderr)]

    if log_file:
        log_path = Path(log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)
        handlers.append(logging.FileHandler(log_file))

    logging.basicConfig(
        level=log_level,
        format='%(asctime)s - %(levelname)s - %(message)s',
        handlers=handlers,
        force=True
    )


def format_id_list(ids: Iterable[int]) -> str:
    """
    Format ids as a bracketed list for an SQL IN clause.

    An empty list becomes (NULL), which is valid SQL and matches nothing.
    """
    joined = ','.join(str(i) for i in ids)
    return f"({joined or 'NULL'})"


def count_lines(text: str) -> int:
    return len(text.splitlines())


def format_declaration(declaration: Declaration) -> str:
    """One-line description of a manifest declaration."""
    if isinstance(declaration, DumpDecl):
        parts = [f"type={declaration.options.type.value}"]
        if declaration.options.transaction:
            parts.append(f"transaction={declaration.options.transaction.value}")
        if declaration.on_ids:
            parts.append("with dependents")
        return (
            f"dump {declaration.table} WHERE {declaration.condition} "
            f"-> {declaration.file_name} ({', '.join(parts)})"
        )
    if isinstance(declaration, SqlDecl):
        return f"sql {declaration.sql}"
    if isinstance(declaration, IncludeDecl):
        return f"include {declaration.path}"
    if isinstance(declaration, SeqResetDecl):
        return f"reset_id_seq {', '.join(declaration.tables)}"
    raise ConfigurationError(f"Unknown manifest declaration: {declaration!r}")


def print_dry_run_info(declarations: Iterable[Declaration]) -> None:
    """Log what a manifest would do in dry-run mode."""
    for declaration in declarations:
        logging.info(f"Would {format_declaration(declaration)}")
