"""
Partial Dump
============
Dump part of a PostgreSQL table, selected by an SQL condition, as SQL that
recreates the rows:
- COPY, single INSERT, one INSERT per row, or UPDATE by id
- Column whitelists and blacklists, id omission
- Value substitutions
- Optional DELETE and transaction wrapping
- Manifests sequencing many dumps into one restore script
"""

from .config import ConfigLoader, build_manifest
from .connection import DatabaseConnection, QueryExecutor
from .dumper import TableDumper, get_partial_dump
from .errors import ConfigurationError, PartialDumpError, TypeCoercionError
from .formatters import (
    DUMP_FORMATTERS,
    CopyFormatter,
    MultipleInsertFormatter,
    SingleInsertFormatter,
    SqlFormatter,
    UpdateFormatter,
)
from .main import main, manifest_main
from .manifest import Manifest, ManifestScope, run_manifest
from .models import (
    DumpOptions,
    DumpResult,
    DumpType,
    LiteralValue,
    ManifestStats,
    TableStats,
    TransactionMode,
    Transform,
)
from .utils import format_id_list, setup_logging

__version__ = "1.0.0"

__all__ = [
    # Entry points
    "main",
    "manifest_main",
    # Core
    "TableDumper",
    "get_partial_dump",
    "Manifest",
    "ManifestScope",
    "run_manifest",
    "ConfigLoader",
    "build_manifest",
    "DatabaseConnection",
    "QueryExecutor",
    # Formatters
    "DUMP_FORMATTERS",
    "SqlFormatter",
    "CopyFormatter",
    "SingleInsertFormatter",
    "MultipleInsertFormatter",
    "UpdateFormatter",
    # Models
    "DumpOptions",
    "DumpResult",
    "DumpType",
    "TransactionMode",
    "LiteralValue",
    "Transform",
    "ManifestStats",
    "TableStats",
    # Errors
    "PartialDumpError",
    "ConfigurationError",
    "TypeCoercionError",
    # Utilities
    "format_id_list",
    "setup_logging",
]
