"""
Data models and enums for Partial Dump.
"""

from collections.abc import Callable, Iterable, Mapping
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, ClassVar, Iterator, Optional, Union

from .errors import ConfigurationError


class DumpType(Enum):
    """Supported SQL dialects for a dump."""
    COPY = "copy"
    INSERT = "insert"
    INSERTS = "inserts"
    UPDATES = "updates"


class TransactionMode(Enum):
    """How a dump is wrapped in a transaction.

    BEGIN emits a BEGIN with no matching COMMIT, so that several dumps can
    be loaded by hand inside one test transaction.
    """
    BEGIN = "begin"
    FULL = "full"


@dataclass(frozen=True)
class LiteralValue:
    """Replace a column's value with a fixed value."""
    value: Any

    def apply(self, original: Any) -> Any:
        return self.value


@dataclass(frozen=True)
class Transform:
    """Replace a column's value with the result of calling func on it."""
    func: Callable[[Any], Any]

    def apply(self, original: Any) -> Any:
        return self.func(original)


Substitution = Union[LiteralValue, Transform]


def as_substitution(value: Any) -> Substitution:
    """Wrap a plain value or callable as a Substitution."""
    if isinstance(value, (LiteralValue, Transform)):
        return value
    if callable(value):
        return Transform(value)
    return LiteralValue(value)


@dataclass
class DumpOptions:
    """Validated options for a single table dump.

    Validation runs on construction, so an invalid combination fails
    before any query is sent to the database.
    """
    type: Union[DumpType, str, None] = DumpType.COPY
    omit_ids: bool = False
    omit_columns: Optional[Iterable[str]] = None
    columns: Optional[list[str]] = None
    substitutions: Optional[Mapping[str, Any]] = None
    delete_first: bool = False
    transaction: Union[TransactionMode, str, None] = None

    OPTION_NAMES: ClassVar[tuple[str, ...]] = (
        'type', 'omit_ids', 'omit_columns', 'columns',
        'substitutions', 'delete_first', 'transaction',
    )

    def __post_init__(self) -> None:
        self.type = self._coerce_type(self.type)
        self.omit_ids = bool(self.omit_ids)
        self.delete_first = bool(self.delete_first)

        if self.columns is not None:
            if not isinstance(self.columns, (list, tuple)):
                raise ConfigurationError(
                    f"Wanted a list of columns, got {type(self.columns).__name__}"
                )
            self.columns = list(self.columns)

        if self.omit_columns is not None:
            if isinstance(self.omit_columns, str):
                raise ConfigurationError(
                    "Wanted a collection of column names for omit_columns, got str"
                )
            self.omit_columns = frozenset(self.omit_columns)

        if self.substitutions is None:
            self.substitutions = {}
        if not isinstance(self.substitutions, Mapping):
            raise ConfigurationError(
                f"Wanted a mapping of substitutions, got {type(self.substitutions).__name__}"
            )
        self.substitutions = {
            key: as_substitution(value) for key, value in self.substitutions.items()
        }

        if self.type == DumpType.UPDATES:
            if self.omit_ids:
                raise ConfigurationError("Option omit_ids not valid for update dumps")
            if self.delete_first:
                raise ConfigurationError("Option delete_first not valid for update dumps")
            if self.omit_columns and 'id' in self.omit_columns:
                raise ConfigurationError("Option omit_columns cannot drop id for update dumps")
            if self.columns is not None and not set(self.columns) - {'id'}:
                raise ConfigurationError("Option columns leaves nothing to update")

        self.transaction = self._coerce_transaction(self.transaction)

    @staticmethod
    def _coerce_type(value: Any) -> DumpType:
        if value is None:
            return DumpType.COPY
        if isinstance(value, DumpType):
            return value
        try:
            return DumpType(value)
        except ValueError:
            raise ConfigurationError(f"Invalid dump type: {value}") from None

    @staticmethod
    def _coerce_transaction(value: Any) -> Optional[TransactionMode]:
        if value is None or value is False:
            return None
        if isinstance(value, TransactionMode):
            return value
        try:
            return TransactionMode(value)
        except ValueError:
            raise ConfigurationError(f"Invalid transaction type given: {value}") from None

    @classmethod
    def from_mapping(cls, options: Mapping[str, Any]) -> "DumpOptions":
        """Build options from a plain mapping, rejecting unknown names."""
        if not isinstance(options, Mapping):
            raise ConfigurationError(
                f"Wanted a mapping of dump options, got {type(options).__name__}"
            )
        unknown = sorted(set(options) - set(cls.OPTION_NAMES))
        if unknown:
            raise ConfigurationError(f"Unknown dump option(s): {', '.join(unknown)}")
        return cls(**options)

    @classmethod
    def coerce(cls, options: Union["DumpOptions", Mapping[str, Any], None]) -> "DumpOptions":
        """Accept DumpOptions, a mapping, or None."""
        if options is None:
            return cls()
        if isinstance(options, cls):
            return options
        return cls.from_mapping(options)


@dataclass
class DumpResult:
    """Dump text plus the ids of the dumped rows.

    dump is None when no rows matched, which is distinct from an empty
    string. Unpacks as a (dump, ids) pair.
    """
    dump: Optional[str]
    ids: list[int] = field(default_factory=list)

    @property
    def empty(self) -> bool:
        return self.dump is None

    def __iter__(self) -> Iterator[Any]:
        return iter((self.dump, self.ids))


@dataclass
class DumpDecl:
    """Dump part of a table into its own file."""
    table: str
    condition: str = "true"
    options: DumpOptions = field(default_factory=DumpOptions)
    as_name: Optional[str] = None
    on_ids: Optional[Callable[[str], Any]] = None

    @property
    def file_name(self) -> str:
        return f"{self.as_name or self.table}.sql"


@dataclass
class SqlDecl:
    """Raw SQL written to the master file."""
    sql: str


@dataclass
class IncludeDecl:
    """A hand-written SQL file included from the master file."""
    path: str


@dataclass
class SeqResetDecl:
    """Reset <table>_id_seq past the current max id of each table."""
    tables: tuple[str, ...]


Declaration = Union[DumpDecl, SqlDecl, IncludeDecl, SeqResetDecl]


@dataclass
class TableStats:
    """Statistics for a single dump declaration."""
    table: str
    file_path: str = ""
    rows_dumped: int = 0
    lines_written: int = 0


@dataclass
class ManifestStats:
    """Overall manifest run statistics."""
    master_path: str = ""
    tables: list[TableStats] = field(default_factory=list)
    empty: list[str] = field(default_factory=list)
    elapsed: float = 0.0

    @property
    def total_rows(self) -> int:
        return sum(t.rows_dumped for t in self.tables)
